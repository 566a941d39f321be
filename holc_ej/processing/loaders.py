"""
Input loading for the three analysis layers.

Every loader is a one-shot batch read: the file is read with geopandas,
checked for records and projected onto its LayerSchema. Any failure is a
DataLoadError; nothing is retried.
"""

from pathlib import Path
from typing import Optional, Union

import geopandas as gpd
import pandas as pd
from loguru import logger

from .errors import DataLoadError
from .schemas import (
    GRADE_SCHEMA,
    HOLC_GRADES,
    INDICATOR_SCHEMA,
    OBSERVATION_SCHEMA,
    LayerSchema,
)

PathLike = Union[str, Path]


def read_geo_file(path: PathLike, layer: Optional[str] = None) -> gpd.GeoDataFrame:
    """
    Read any OGR-supported file (geodatabase, GeoJSON, shapefile).

    Args:
        path: File or directory (for .gdb) to read
        layer: Layer name for multi-layer sources

    Returns:
        Raw GeoDataFrame with all source columns
    """
    path = Path(path)
    if not path.exists():
        raise DataLoadError(f"Input not found: {path}")

    logger.info(f"🗺️ Loading {path.name}" + (f" (layer '{layer}')" if layer else ""))
    try:
        if layer is not None:
            gdf = gpd.read_file(path, layer=layer)
        else:
            gdf = gpd.read_file(path)
    except Exception as e:
        raise DataLoadError(f"Could not read {path}: {e}") from e

    if not isinstance(gdf, gpd.GeoDataFrame) or "geometry" not in gdf.columns:
        raise DataLoadError(f"{path} has no geometry column")
    if len(gdf) == 0:
        raise DataLoadError(f"{path} contains zero records")

    logger.info(f"  ✅ Loaded {len(gdf):,} features")
    logger.debug(f"     CRS: {gdf.crs}")
    return gdf


def apply_schema(gdf: gpd.GeoDataFrame, schema: LayerSchema, source: str = "input") -> gpd.GeoDataFrame:
    """Project a raw layer onto schema, failing on missing declared columns."""
    projected, missing = schema.project(gdf)
    if missing:
        logger.error(f"❌ Missing required {schema.name} columns: {missing}")
        logger.debug(f"Available columns: {list(gdf.columns)}")
        raise DataLoadError(f"{source} is missing required {schema.name} columns: {missing}")

    dropped = [col for col in gdf.columns if col not in _source_columns(schema) and col != gdf.geometry.name]
    if dropped:
        logger.debug(f"  🧹 Dropped {len(dropped)} undeclared {schema.name} columns")

    if schema.geometry_types:
        geom_types = set(projected.geometry.dropna().geom_type.unique())
        unexpected = geom_types - set(schema.geometry_types)
        if unexpected:
            raise DataLoadError(
                f"{source} has {sorted(unexpected)} geometries, expected {list(schema.geometry_types)}"
            )

    return projected


def _source_columns(schema: LayerSchema) -> set:
    return {spec.source for spec in schema.fields.values()}


def load_layer(
    path: PathLike, schema: LayerSchema, layer: Optional[str] = None
) -> gpd.GeoDataFrame:
    """Read a file and project it onto schema."""
    gdf = read_geo_file(path, layer=layer)
    return apply_schema(gdf, schema, source=str(path))


def load_indicators(
    path: PathLike, layer: Optional[str] = None, schema: LayerSchema = INDICATOR_SCHEMA
) -> gpd.GeoDataFrame:
    """Load EJScreen block-group indicators."""
    logger.info("📊 Loading EJScreen indicators...")
    return load_layer(path, schema, layer=layer)


def load_grade_polygons(path: PathLike, schema: LayerSchema = GRADE_SCHEMA) -> gpd.GeoDataFrame:
    """
    Load HOLC grade polygons and enforce the grade enumeration.

    Ungraded districts (missing grade) are dropped with a warning. Any other
    grade value is a DataLoadError.
    """
    logger.info("🏘️ Loading HOLC grade polygons...")
    gdf = load_layer(path, schema)
    return validate_grades(gdf, source=str(path))


def validate_grades(gdf: gpd.GeoDataFrame, source: str = "grades") -> gpd.GeoDataFrame:
    """Normalize grade labels, drop ungraded rows and reject unknown grades."""
    grades = gdf["grade"].str.strip().str.upper().replace("", pd.NA)
    ungraded = grades.isna()
    if ungraded.any():
        logger.warning(f"  ⚠️ Dropping {int(ungraded.sum())} ungraded districts")

    unknown = sorted(set(grades[~ungraded]) - set(HOLC_GRADES))
    if unknown:
        raise DataLoadError(f"{source} has grades outside {list(HOLC_GRADES)}: {unknown}")

    gdf = gdf.assign(grade=grades)[~ungraded]
    if len(gdf) == 0:
        raise DataLoadError(f"{source} contains no graded districts")

    counts = gdf["grade"].value_counts().reindex(list(HOLC_GRADES), fill_value=0)
    logger.info(f"  📊 Districts per grade: {counts.to_dict()}")
    return gdf


def load_observations(path: PathLike, schema: LayerSchema = OBSERVATION_SCHEMA) -> gpd.GeoDataFrame:
    """Load biodiversity observation points."""
    logger.info("🐦 Loading biodiversity observations...")
    return load_layer(path, schema)
