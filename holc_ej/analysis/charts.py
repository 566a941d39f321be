"""
Bar charts of aggregate metrics by HOLC grade.

The x-axis always shows A, B, C, D in that order. A grade absent from the
summary keeps its slot with no bar so charts stay comparable side by side.
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from loguru import logger
from matplotlib.ticker import PercentFormatter

from ..processing.aggregation import GROUP_COLUMN
from ..processing.schemas import HOLC_GRADES
from .tables import column_label

GRADE_COLORS: Dict[str, str] = {"A": "lightgreen", "B": "lightblue", "C": "yellow", "D": "red"}


def grade_series(summary: pd.DataFrame, metric: str) -> pd.Series:
    """Metric values indexed by grade in fixed A-D order; missing grades are NaN."""
    if metric not in summary.columns:
        raise KeyError(f"Metric '{metric}' not in summary columns {list(summary.columns)}")
    graded = summary[summary[GROUP_COLUMN].notna()]
    values = pd.Series(graded[metric].to_numpy(dtype=float), index=graded[GROUP_COLUMN].astype(str))
    return values.reindex(list(HOLC_GRADES))


def plot_metric_bars(
    summary: pd.DataFrame,
    metric: str,
    output_path: Path,
    title: Optional[str] = None,
    ylabel: Optional[str] = None,
    colors: Optional[Dict[str, str]] = None,
    figsize: Tuple[float, float] = (8, 5),
    dpi: int = 150,
) -> Path:
    """
    Save one bar chart of metric by grade.

    Args:
        summary: Aggregate table from aggregate_by_group
        metric: Column to plot (count, percentage or mean_<indicator>)
        output_path: PNG destination
        title: Chart title (defaults to the metric label)
        ylabel: Y-axis label (defaults to the metric label)
        colors: Grade to bar color mapping
        figsize: Figure size in inches
        dpi: Output resolution

    Returns:
        Path of the written PNG
    """
    colors = {**GRADE_COLORS, **(colors or {})}
    values = grade_series(summary, metric)
    label = column_label(metric)

    sns.set_theme(style="white", context="notebook")
    fig, ax = plt.subplots(figsize=figsize)

    heights = values.fillna(0).to_numpy()
    bars = ax.bar(
        values.index,
        heights,
        color=[colors.get(grade, "#999999") for grade in values.index],
        edgecolor="#444444",
        linewidth=0.8,
    )
    for bar, value in zip(bars, values):
        if pd.isna(value):
            bar.set_visible(False)
            continue
        text = f"{100 * value:.1f}%" if metric == "percentage" else f"{value:,.1f}"
        ax.annotate(
            text,
            (bar.get_x() + bar.get_width() / 2, bar.get_height()),
            ha="center",
            va="bottom",
            fontsize=9,
            color="#333333",
        )

    if metric == "percentage":
        ax.yaxis.set_major_formatter(PercentFormatter(xmax=1.0))
    ax.set_xlabel("HOLC grade")
    ax.set_ylabel(ylabel or label)
    ax.set_title(title or f"{label} by HOLC grade", fontsize=13, fontweight="bold", loc="left")
    sns.despine(ax=ax)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, bbox_inches="tight", dpi=dpi, facecolor="white")
    plt.close(fig)
    logger.info(f"  📊 Chart saved: {output_path}")
    return output_path


def plot_metrics(
    summary: pd.DataFrame,
    metrics: Sequence[str],
    output_dir: Path,
    prefix: str = "",
    **kwargs,
) -> List[Path]:
    """One chart per metric, named <prefix><metric>.png."""
    return [
        plot_metric_bars(summary, metric, Path(output_dir) / f"{prefix}{metric}.png", **kwargs)
        for metric in metrics
    ]
