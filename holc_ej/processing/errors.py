"""
Error taxonomy for the HOLC / EJScreen analysis pipeline.

Fatal conditions are exceptions and abort the run. Non-fatal conditions are
warnings: the stage still returns an inspectable result (an empty table, a NaN
cell) so the report stays renderable.
"""

import warnings

from loguru import logger


class HolcAnalysisError(Exception):
    """Base exception for all pipeline failures."""


class DataLoadError(HolcAnalysisError):
    """Raised when an input dataset is missing, unreadable, empty or off-schema."""


class CRSError(HolcAnalysisError):
    """Raised when a collection has no CRS or the CRS cannot be reconciled."""


class ConfigError(HolcAnalysisError):
    """Raised for invalid or missing configuration values."""


class EmptyResultWarning(UserWarning):
    """A filter or join produced zero rows."""


class DivideByZeroAsNaN(RuntimeWarning):
    """A percentage was computed against a zero total and set to NaN."""


def warn_empty(message: str) -> None:
    """Log and emit an EmptyResultWarning."""
    logger.warning(f"  ⚠️ {message}")
    warnings.warn(message, EmptyResultWarning, stacklevel=3)


def warn_divide_by_zero(message: str) -> None:
    """Log and emit a DivideByZeroAsNaN warning."""
    logger.warning(f"  ⚠️ {message}")
    warnings.warn(message, DivideByZeroAsNaN, stacklevel=3)
