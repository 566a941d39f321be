"""Attribute filters. All return new frames; an empty result is valid and warned."""

from typing import Any, Iterable, Optional

import geopandas as gpd
from loguru import logger

from .errors import DataLoadError, warn_empty


def _require_column(gdf: gpd.GeoDataFrame, column: str) -> None:
    if column not in gdf.columns:
        raise KeyError(f"Column '{column}' not found. Available columns: {list(gdf.columns)}")


def filter_by_attribute(gdf: gpd.GeoDataFrame, column: str, value: Any) -> gpd.GeoDataFrame:
    """Keep records whose column equals value."""
    _require_column(gdf, column)
    subset = gdf[gdf[column] == value].copy()
    logger.info(f"  🎯 {column} == {value!r}: {len(gdf):,} → {len(subset):,} records")
    if len(subset) == 0:
        warn_empty(f"No records with {column} == {value!r}")
    return subset


def filter_by_membership(gdf: gpd.GeoDataFrame, column: str, values: Iterable[Any]) -> gpd.GeoDataFrame:
    """Keep records whose column is one of values."""
    _require_column(gdf, column)
    values = list(values)
    subset = gdf[gdf[column].isin(values)].copy()
    logger.info(f"  🎯 {column} in {values}: {len(gdf):,} → {len(subset):,} records")
    if len(subset) == 0:
        warn_empty(f"No records with {column} in {values}")
    return subset


def subset_county(
    gdf: gpd.GeoDataFrame,
    state_name: str,
    county_name: str,
    state_column: str = "state_name",
    county_column: str = "county_name",
) -> gpd.GeoDataFrame:
    """Restrict indicator records to one state, then one county."""
    logger.info(f"🎯 Subsetting indicators to {county_name}, {state_name}...")
    state = filter_by_attribute(gdf, state_column, state_name)
    return filter_by_attribute(state, county_column, county_name)


def filter_observation_year(gdf: gpd.GeoDataFrame, year: Optional[int], column: str = "year") -> gpd.GeoDataFrame:
    """Keep observations from one year. None keeps every observation."""
    if year is None:
        return gdf.copy()
    if column not in gdf.columns or (len(gdf) > 0 and gdf[column].isna().all()):
        logger.error(f"❌ Year filter {year} requested but observations carry no {column} values")
        raise DataLoadError(
            f"Cannot restrict observations to {year}: column '{column}' is missing or empty. "
            "Set analysis.observation_year to null to keep every observation."
        )
    logger.info(f"📅 Restricting observations to {year}...")
    return filter_by_attribute(gdf, column, year)
