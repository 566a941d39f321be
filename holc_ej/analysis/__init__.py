"""
Analysis package for the HOLC / EJScreen report

Presentation only: formatted tables, bar charts, static and interactive maps,
and the markdown report that bundles them.
"""

from .charts import plot_metric_bars, plot_metrics
from .map_grades import create_interactive_grade_map, plot_grade_map
from .report import ReportOutputs, ReportSettings, render_report, write_report
from .tables import format_aggregate_table, to_markdown

__all__ = [
    "plot_metric_bars",
    "plot_metrics",
    "create_interactive_grade_map",
    "plot_grade_map",
    "ReportOutputs",
    "ReportSettings",
    "render_report",
    "write_report",
    "format_aggregate_table",
    "to_markdown",
]
