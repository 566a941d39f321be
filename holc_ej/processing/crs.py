"""
CRS checks and reprojection.

Spatial predicates are only meaningful between collections expressed in the
same reference system, so every join is preceded by a check here. Each check
emits a diagnostic on match as well as on mismatch.
"""

from typing import Any, Dict, Mapping

import geopandas as gpd
from loguru import logger
from pyproj import CRS
from pyproj.exceptions import CRSError as ProjCRSError

from .errors import CRSError


def require_crs(gdf: gpd.GeoDataFrame, label: str = "collection") -> CRS:
    """Return the declared CRS or raise CRSError."""
    if gdf.crs is None:
        raise CRSError(f"{label} declares no coordinate reference system")
    return gdf.crs


def parse_crs(value: Any) -> CRS:
    """Parse a user-supplied CRS ("EPSG:4326", 4326, WKT, pyproj.CRS)."""
    try:
        return CRS.from_user_input(value)
    except ProjCRSError as e:
        raise CRSError(f"Cannot interpret target CRS {value!r}: {e}") from e


def crs_matches(
    a: gpd.GeoDataFrame, b: gpd.GeoDataFrame, label_a: str = "left", label_b: str = "right"
) -> bool:
    """Compare two collections' CRS and report the result."""
    crs_a = require_crs(a, label_a)
    crs_b = require_crs(b, label_b)
    if crs_a == crs_b:
        logger.info(f"  ✅ CRS match: {label_a} and {label_b} are both {crs_a.to_string()}")
        return True
    logger.warning(
        f"  ⚠️ CRS mismatch: {label_a} is {crs_a.to_string()}, {label_b} is {crs_b.to_string()}"
    )
    return False


def reproject(gdf: gpd.GeoDataFrame, target_crs: Any, label: str = "collection") -> gpd.GeoDataFrame:
    """Reproject gdf to target_crs. Returns a copy when it is already there."""
    current = require_crs(gdf, label)
    target = parse_crs(target_crs)
    if current == target:
        logger.debug(f"  ✅ {label} already in {target.to_string()}")
        return gdf.copy()

    logger.info(f"  🔄 Reprojecting {label} from {current.to_string()} to {target.to_string()}")
    try:
        return gdf.to_crs(target)
    except Exception as e:
        raise CRSError(f"Could not reproject {label} to {target.to_string()}: {e}") from e


def normalize_crs(layers: Mapping[str, gpd.GeoDataFrame], target_crs: Any) -> Dict[str, gpd.GeoDataFrame]:
    """
    Bring every named layer into target_crs.

    Every pair of layers is checked before reprojection so the diagnostics show
    which inputs disagreed.

    Args:
        layers: Mapping of layer label to GeoDataFrame
        target_crs: Anything pyproj accepts

    Returns:
        New mapping with every layer in target_crs
    """
    target = parse_crs(target_crs)
    logger.info(f"🌐 Normalizing {len(layers)} layers to {target.to_string()}...")

    labels = list(layers)
    for i, label_a in enumerate(labels):
        for label_b in labels[i + 1 :]:
            crs_matches(layers[label_a], layers[label_b], label_a, label_b)

    normalized = {label: reproject(gdf, target, label) for label, gdf in layers.items()}

    for label in labels[1:]:
        crs_matches(normalized[labels[0]], normalized[label], labels[0], label)
    logger.success(f"  ✅ All layers in {target.to_string()}")
    return normalized
