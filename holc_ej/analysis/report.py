"""
Report assembly: tables, charts and maps for one analysis run.

The markdown report links the PNG charts, the static map and, when enabled,
the interactive HTML map, all written next to it in the output directory.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from loguru import logger

from ..processing.aggregation import COUNT_COLUMN, PERCENTAGE_COLUMN, mean_column
from ..processing.pipeline import AnalysisResult
from ..processing.spatial_join import JoinHow
from .charts import GRADE_COLORS, plot_metrics
from .map_grades import create_interactive_grade_map, plot_grade_map
from .tables import format_aggregate_table, to_markdown


@dataclass(frozen=True)
class ReportSettings:
    """Presentation settings; none of these affect the numbers."""

    title: str = "HOLC Grades and Environmental Justice"
    description: str = ""
    chart_dpi: int = 150
    figure_size: Tuple[float, float] = (8, 5)
    map_dpi: int = 200
    map_tiles: str = "CartoDB Positron"
    base_zoom: int = 10
    grade_colors: Dict[str, str] = field(default_factory=lambda: dict(GRADE_COLORS))
    interactive_map: bool = True


@dataclass
class ReportOutputs:
    """Files written for one report."""

    report: Path
    charts: List[Path]
    static_map: Path
    interactive_map: Optional[Path] = None


def _join_note(how: JoinHow) -> str:
    if how is JoinHow.INNER:
        return (
            "Joins use inner semantics: block groups touching no graded district and "
            "districts containing no observation are left out, so shares are of matched "
            "records only."
        )
    return (
        "Joins use outer semantics: unmatched block groups appear under *Ungraded* and "
        "districts without observations appear with a count of 0."
    )


def write_report(
    result: AnalysisResult,
    output_dir: Path,
    settings: ReportSettings,
    charts: List[Path],
    static_map: Path,
    interactive_map: Optional[Path] = None,
) -> Path:
    """Write report.md into output_dir and return its path."""
    output_dir = Path(output_dir)
    report_path = output_dir / "report.md"
    analysis = result.settings

    indicator_table = to_markdown(format_aggregate_table(result.indicator_summary))
    observation_table = to_markdown(format_aggregate_table(result.observation_summary))
    year = analysis.observation_year if analysis.observation_year is not None else "all years"

    chart_lines = "\n".join(f"![{path.stem}]({path.name})" for path in charts)
    map_lines = f"![HOLC grades]({static_map.name})"
    if interactive_map is not None:
        map_lines += f"\n\n[Interactive map]({interactive_map.name})"

    stats_lines = "\n".join(f"- **{key.replace('_', ' ').capitalize()}**: {value:,}" for key, value in result.stats.items())

    markdown_content = f"""# {settings.title}

{settings.description}

## Scope

- **State**: {analysis.state_name}
- **County**: {analysis.county_name}
- **Excluded units**: {len(analysis.excluded_unit_ids)}
- **Observation year**: {year}
- **CRS**: {analysis.target_crs}

{stats_lines}

## EJScreen indicators by HOLC grade

Block groups intersecting each graded district, with mean indicator values.

{indicator_table}

## Biodiversity observations by HOLC grade

Observations inside each graded district and their share of all matched observations.

{observation_table}

## Charts

{chart_lines}

## Map

{map_lines}

## Notes

- {_join_note(analysis.join_how)}
- A block group intersecting several districts, or an observation on a shared
  district boundary, is counted once per district.
- Means ignore missing indicator values.

---
*Report generated on {time.strftime("%Y-%m-%d %H:%M:%S")}*
"""

    output_dir.mkdir(parents=True, exist_ok=True)
    with open(report_path, "w", encoding="utf-8") as f:
        f.write(markdown_content)

    logger.success(f"  ✅ Report written: {report_path}")
    return report_path


def render_report(result: AnalysisResult, output_dir: Path, settings: ReportSettings) -> ReportOutputs:
    """
    Render every chart, map and the markdown report for an analysis result.

    Args:
        result: Output of run_analysis
        output_dir: Directory for all files
        settings: Presentation settings

    Returns:
        ReportOutputs listing the written files
    """
    output_dir = Path(output_dir)
    logger.info(f"📄 Rendering report into {output_dir}...")
    chart_kwargs = dict(colors=settings.grade_colors, figsize=settings.figure_size, dpi=settings.chart_dpi)

    indicator_metrics = [mean_column(name) for name in result.settings.indicators]
    charts = plot_metrics(result.indicator_summary, indicator_metrics, output_dir, prefix="indicator_", **chart_kwargs)
    charts += plot_metrics(
        result.observation_summary,
        [COUNT_COLUMN, PERCENTAGE_COLUMN],
        output_dir,
        prefix="observation_",
        **chart_kwargs,
    )

    static_map = plot_grade_map(
        result.grades_in_county,
        result.county,
        output_dir / "holc_map.png",
        title=settings.title,
        colors=settings.grade_colors,
        dpi=settings.map_dpi,
    )

    interactive_map = None
    if settings.interactive_map:
        interactive_map = create_interactive_grade_map(
            result.grades_in_county,
            result.county,
            output_dir / "holc_map.html",
            title=settings.title,
            colors=settings.grade_colors,
            tiles=settings.map_tiles,
            zoom_start=settings.base_zoom,
        )

    report = write_report(result, output_dir, settings, charts, static_map, interactive_map)
    return ReportOutputs(report=report, charts=charts, static_map=static_map, interactive_map=interactive_map)
