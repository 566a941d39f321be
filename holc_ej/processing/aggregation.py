"""
Group-wise aggregation by HOLC grade.

Counting rules:
- count is the number of records in the group, or with count_column the number
  of records whose count_column is non-null (so an unmatched grade kept by an
  outer join reports 0).
- percentage is count / total over every group, missing-key group included.
  A zero total gives NaN in every row and a DivideByZeroAsNaN warning.
- Indicator means skip missing values in both numerator and denominator.
"""

from typing import Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd
from loguru import logger

from .errors import warn_divide_by_zero
from .schemas import HOLC_GRADES, AggregateRow

GROUP_COLUMN = "group"
COUNT_COLUMN = "count"
PERCENTAGE_COLUMN = "percentage"


def mean_column(indicator: str) -> str:
    return f"mean_{indicator}"


def order_groups(labels: Iterable, preferred: Sequence[str] = HOLC_GRADES) -> List:
    """Preferred labels first, then any others sorted, then the missing group."""
    labels = list(labels)
    present = [label for label in labels if not pd.isna(label)]
    ordered = [label for label in preferred if label in present]
    ordered += sorted((label for label in present if label not in preferred), key=str)
    if any(pd.isna(label) for label in labels):
        ordered.append(None)
    return ordered


def aggregate_by_group(
    records: pd.DataFrame,
    group_key: str,
    indicators: Sequence[str] = (),
    count_column: Optional[str] = None,
) -> pd.DataFrame:
    """
    Summarize records per distinct group_key value.

    Args:
        records: Joined records (GeoDataFrame or DataFrame)
        group_key: Categorical column to group by (usually "grade")
        indicators: Numeric columns to average per group
        count_column: Count non-null values of this column instead of rows

    Returns:
        DataFrame with columns group, count, percentage and mean_<indicator>,
        one row per group in grade order
    """
    missing = [col for col in [group_key, *indicators] if col not in records.columns]
    if count_column is not None and count_column not in records.columns:
        missing.append(count_column)
    if missing:
        raise KeyError(f"Columns not found for aggregation: {missing}")

    logger.info(f"📊 Aggregating {len(records):,} records by {group_key}...")

    keys = records[group_key].astype(object).where(records[group_key].notna(), None)
    groups = order_groups(keys.unique())

    rows = []
    for label in groups:
        mask = keys.isna() if label is None else keys == label
        group = records[mask.to_numpy()]
        if count_column is None:
            count = len(group)
        else:
            count = int(group[count_column].notna().sum())
        row = {GROUP_COLUMN: label, COUNT_COLUMN: count}
        for indicator in indicators:
            row[mean_column(indicator)] = pd.to_numeric(group[indicator], errors="coerce").mean(skipna=True)
        rows.append(row)

    columns = [GROUP_COLUMN, COUNT_COLUMN, PERCENTAGE_COLUMN] + [mean_column(i) for i in indicators]
    summary = pd.DataFrame(rows, columns=[c for c in columns if c != PERCENTAGE_COLUMN])
    # object dtype so the missing group stays None rather than a string-dtype NaN
    summary[GROUP_COLUMN] = pd.Series(groups, index=summary.index, dtype=object)
    summary[COUNT_COLUMN] = summary[COUNT_COLUMN].astype(int)

    total = int(summary[COUNT_COLUMN].sum())
    if total == 0:
        warn_divide_by_zero(f"No records to share out across {group_key} groups; percentages are NaN")
        summary[PERCENTAGE_COLUMN] = np.nan
    else:
        summary[PERCENTAGE_COLUMN] = summary[COUNT_COLUMN] / total

    summary = summary[columns]
    logger.success(f"  ✅ {len(summary)} groups, {total:,} records counted")
    return summary


def to_aggregate_rows(summary: pd.DataFrame) -> List[AggregateRow]:
    """Typed view of an aggregate table."""
    mean_cols = [col for col in summary.columns if col.startswith("mean_")]
    rows = []
    for record in summary.to_dict(orient="records"):
        label = record[GROUP_COLUMN]
        rows.append(
            AggregateRow(
                group=None if pd.isna(label) else str(label),
                count=int(record[COUNT_COLUMN]),
                percentage=float(record[PERCENTAGE_COLUMN]),
                means={col[len("mean_"):]: float(record[col]) for col in mean_cols},
            )
        )
    return rows
