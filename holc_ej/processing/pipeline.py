"""
HOLC grade × EJScreen × biodiversity analysis pipeline.

Stages run strictly in sequence, each consuming the previous stage's output:

1. Load      - read the three layers onto their schemas
2. Subset    - indicators to one state and county; observations to one year
3. CRS       - check every pair of layers and reproject to one target CRS
4. Clean     - drop excluded units, repair invalid geometries
5. Join      - county indicators ↔ grade polygons, then the grade polygons
               inside the county ↔ observations; both use intersects, so a
               point on a shared boundary counts for both districts
6. Aggregate - per-grade indicator means and observation shares

Nothing here renders anything; see holc_ej.analysis for tables, charts and maps.
Load and CRS errors propagate and abort the run. Empty subsets and joins only
warn, and the aggregates come back as empty tables or NaN cells.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

import geopandas as gpd
import pandas as pd
from loguru import logger

from .aggregation import aggregate_by_group
from .crs import normalize_crs
from .filters import filter_observation_year, subset_county
from .geometry_cleaning import clean_layer
from .loaders import load_grade_polygons, load_indicators, load_observations
from .schemas import GRADE_SCHEMA, INDICATOR_SCHEMA, OBSERVATION_SCHEMA, LayerSchema
from .spatial_join import JoinHow, matched_right, provenance_column, spatial_join

GRADE_JOIN_NAME = "holc"
OBSERVATION_JOIN_NAME = "observation"

DEFAULT_INDICATORS: Tuple[str, ...] = (
    "low_income_pct",
    "pm25_percentile",
    "life_expectancy_percentile",
)


@dataclass(frozen=True)
class PipelineSettings:
    """Every value the analysis depends on, passed in explicitly."""

    state_name: str = "California"
    county_name: str = "Los Angeles County"
    excluded_unit_ids: Tuple[str, ...] = ()
    target_crs: str = "EPSG:4326"
    indicators: Tuple[str, ...] = DEFAULT_INDICATORS
    join_how: JoinHow = JoinHow.INNER
    observation_year: Optional[int] = None
    grade_predicate: str = "intersects"
    observation_predicate: str = "intersects"


@dataclass(frozen=True)
class InputPaths:
    """Where the three layers live, plus schema overrides for their columns."""

    indicators: Path
    grades: Path
    observations: Path
    indicator_layer: Optional[str] = None
    indicator_schema: LayerSchema = INDICATOR_SCHEMA
    grade_schema: LayerSchema = GRADE_SCHEMA
    observation_schema: LayerSchema = OBSERVATION_SCHEMA


@dataclass
class AnalysisLayers:
    """The three loaded input layers."""

    indicators: gpd.GeoDataFrame
    grades: gpd.GeoDataFrame
    observations: gpd.GeoDataFrame


@dataclass
class AnalysisResult:
    """Everything the reporting stage needs."""

    county: gpd.GeoDataFrame
    grades: gpd.GeoDataFrame
    grades_in_county: gpd.GeoDataFrame
    observations: gpd.GeoDataFrame
    indicator_join: gpd.GeoDataFrame
    observation_join: gpd.GeoDataFrame
    indicator_summary: pd.DataFrame
    observation_summary: pd.DataFrame
    settings: PipelineSettings
    stats: Dict[str, int] = field(default_factory=dict)


def load_inputs(paths: InputPaths) -> AnalysisLayers:
    """Stage 1: read all three layers. Any failure is a DataLoadError."""
    logger.info("📥 Loading input layers...")
    return AnalysisLayers(
        indicators=load_indicators(
            paths.indicators, layer=paths.indicator_layer, schema=paths.indicator_schema
        ),
        grades=load_grade_polygons(paths.grades, schema=paths.grade_schema),
        observations=load_observations(paths.observations, schema=paths.observation_schema),
    )


def run_analysis(layers: AnalysisLayers, settings: PipelineSettings) -> AnalysisResult:
    """
    Stages 2-6 over already-loaded layers.

    Args:
        layers: Indicator, grade and observation collections
        settings: Filter values, exclusion list, CRS and join semantics

    Returns:
        AnalysisResult with intermediate layers and both aggregate tables
    """
    logger.info("🗺️ HOLC / EJScreen analysis")
    logger.info("=" * 40)

    # 2. Subset
    county = subset_county(layers.indicators, settings.state_name, settings.county_name)
    observations = filter_observation_year(layers.observations, settings.observation_year)

    # 3. CRS
    normalized = normalize_crs(
        {"indicators": county, "grades": layers.grades, "observations": observations},
        settings.target_crs,
    )

    # 4. Clean
    county = clean_layer(
        normalized["indicators"], "county indicators", excluded_ids=settings.excluded_unit_ids
    )
    grades = clean_layer(normalized["grades"], "grade polygons")
    observations = normalized["observations"]

    # 5. Join
    indicator_join = spatial_join(
        county,
        grades,
        predicate=settings.grade_predicate,
        how=settings.join_how,
        right_name=GRADE_JOIN_NAME,
    )
    grades_in_county = matched_right(grades, indicator_join, GRADE_JOIN_NAME)
    logger.info(f"  🏘️ {len(grades_in_county):,} of {len(grades):,} grade polygons fall in the county")

    observation_join = spatial_join(
        grades_in_county,
        observations,
        predicate=settings.observation_predicate,
        how=settings.join_how,
        right_name=OBSERVATION_JOIN_NAME,
    )

    # 6. Aggregate
    indicator_summary = aggregate_by_group(indicator_join, "grade", indicators=settings.indicators)
    observation_summary = aggregate_by_group(
        observation_join, "grade", count_column=provenance_column(OBSERVATION_JOIN_NAME)
    )

    stats = {
        "county_units": len(county),
        "grade_polygons": len(grades),
        "grade_polygons_in_county": len(grades_in_county),
        "observations": len(observations),
        "indicator_join_rows": len(indicator_join),
        "observation_join_rows": len(observation_join),
    }
    logger.success("✅ Analysis complete")
    for key, value in stats.items():
        logger.info(f"   {key}: {value:,}")

    return AnalysisResult(
        county=county,
        grades=grades,
        grades_in_county=grades_in_county,
        observations=observations,
        indicator_join=indicator_join,
        observation_join=observation_join,
        indicator_summary=indicator_summary,
        observation_summary=observation_summary,
        settings=settings,
        stats=stats,
    )


def run_pipeline(paths: InputPaths, settings: PipelineSettings) -> AnalysisResult:
    """Load, then analyze."""
    return run_analysis(load_inputs(paths), settings)
