"""
Geometry cleaning: exclusion of known outlier units and validity repair.

Repair is idempotent. Valid geometries are never touched, so running the
cleaner twice gives the same result as running it once.
"""

from typing import Iterable, Optional

import geopandas as gpd
from loguru import logger
from shapely.validation import make_valid


def drop_excluded_units(
    gdf: gpd.GeoDataFrame, excluded_ids: Iterable[str], id_column: str = "unit_id"
) -> gpd.GeoDataFrame:
    """Remove records whose identifier is in excluded_ids (e.g. offshore islands)."""
    excluded = set(str(value) for value in excluded_ids)
    if not excluded:
        return gdf.copy()
    if id_column not in gdf.columns:
        raise KeyError(f"Identifier column '{id_column}' not found")

    mask = gdf[id_column].astype(str).isin(excluded)
    removed = int(mask.sum())
    if removed:
        logger.info(f"  🏝️ Dropped {removed} excluded units")
    else:
        logger.debug("  No excluded units present")
    return gdf[~mask].copy()


def repair_geometries(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Replace invalid geometries with their make_valid equivalent."""
    result = gdf.copy()
    present = result.geometry.notna()
    invalid = present & ~result.geometry.is_valid
    invalid_count = int(invalid.sum())
    if invalid_count == 0:
        logger.debug("  ✅ All geometries valid")
        return result

    logger.warning(f"  ⚠️ Found {invalid_count} invalid geometries, repairing...")
    geom_col = result.geometry.name
    result.loc[invalid, geom_col] = result.loc[invalid, geom_col].apply(make_valid)
    still_invalid = int((result.geometry.notna() & ~result.geometry.is_valid).sum())
    logger.info(f"  🔧 Repaired {invalid_count - still_invalid} geometries")
    return result


def drop_empty_geometries(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Remove records with null or empty geometry."""
    mask = gdf.geometry.isna() | gdf.geometry.is_empty
    removed = int(mask.sum())
    if removed:
        logger.info(f"  🗑️ Removed {removed} records with null or empty geometry")
    return gdf[~mask].copy()


def clean_layer(
    gdf: gpd.GeoDataFrame,
    label: str = "layer",
    excluded_ids: Optional[Iterable[str]] = None,
    id_column: str = "unit_id",
) -> gpd.GeoDataFrame:
    """Exclude units, repair geometries and drop empty ones."""
    logger.info(f"🧹 Cleaning {label} geometries...")
    original = len(gdf)
    if excluded_ids:
        gdf = drop_excluded_units(gdf, excluded_ids, id_column=id_column)
    gdf = repair_geometries(gdf)
    gdf = drop_empty_geometries(gdf)
    if len(gdf) != original:
        logger.info(f"  📊 Feature count: {original:,} → {len(gdf):,}")
    logger.success(f"  ✅ {label.title()} cleaned")
    return gdf
