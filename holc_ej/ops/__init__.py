"""
Operations package for the HOLC / EJScreen analysis

This package centralizes the operational tools:
- Configuration management
- Pipeline orchestration and CLI

The Config class is exposed at the package level for convenient imports:
    from holc_ej.ops import Config
"""

from .config_loader import Config

__all__ = ["Config"]
