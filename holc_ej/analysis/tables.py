"""Human-readable aggregate tables."""

from typing import Dict, Optional

import numpy as np
import pandas as pd

from ..processing.aggregation import COUNT_COLUMN, GROUP_COLUMN, PERCENTAGE_COLUMN

COLUMN_LABELS: Dict[str, str] = {
    GROUP_COLUMN: "HOLC grade",
    COUNT_COLUMN: "Count",
    PERCENTAGE_COLUMN: "Share of total",
    "mean_low_income_pct": "Mean % low income",
    "mean_pm25_percentile": "Mean PM2.5 percentile",
    "mean_life_expectancy_percentile": "Mean low life expectancy percentile",
}

MISSING_GROUP_LABEL = "Ungraded"
MISSING_VALUE = "n/a"


def column_label(column: str, labels: Optional[Dict[str, str]] = None) -> str:
    """Display label for an aggregate column."""
    labels = {**COLUMN_LABELS, **(labels or {})}
    if column in labels:
        return labels[column]
    if column.startswith("mean_"):
        return "Mean " + column[len("mean_"):].replace("_", " ")
    return column.replace("_", " ").capitalize()


def _format_number(value: float, decimals: int) -> str:
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return MISSING_VALUE
    return f"{value:,.{decimals}f}"


def format_aggregate_table(
    summary: pd.DataFrame, labels: Optional[Dict[str, str]] = None, decimals: int = 1
) -> pd.DataFrame:
    """
    Render an aggregate table for display.

    Percentages become "25.0%", means are rounded, NaN cells read "n/a" and the
    missing-grade group reads "Ungraded". An empty summary gives an empty table
    with the labelled columns.
    """
    table = pd.DataFrame(index=summary.index)
    for column in summary.columns:
        values = summary[column]
        if column == GROUP_COLUMN:
            formatted = values.apply(lambda v: MISSING_GROUP_LABEL if pd.isna(v) else str(v))
        elif column == COUNT_COLUMN:
            formatted = values.apply(lambda v: f"{int(v):,}")
        elif column == PERCENTAGE_COLUMN:
            formatted = values.apply(
                lambda v: MISSING_VALUE if pd.isna(v) else f"{100 * v:.{decimals}f}%"
            )
        else:
            formatted = values.apply(lambda v: _format_number(v, decimals))
        table[column_label(column, labels)] = formatted
    return table.reset_index(drop=True)


def to_markdown(table: pd.DataFrame) -> str:
    """Markdown rendering of a formatted table."""
    if table.empty:
        header = "| " + " | ".join(table.columns) + " |"
        divider = "|" + "|".join("---" for _ in table.columns) + "|"
        return f"{header}\n{divider}\n\n*No rows.*"
    return table.to_markdown(index=False)
