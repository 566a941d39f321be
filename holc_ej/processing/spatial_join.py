"""
Spatial joins with explicit cardinality semantics.

Output cardinality:
- A left record matching k > 0 right records yields k rows, one per match.
  This includes points lying on a shared boundary of two grade polygons, which
  are counted once for each polygon.
- A left record matching nothing is dropped under JoinHow.INNER and kept once,
  with right attributes and provenance null, under JoinHow.OUTER.

The pipeline uses INNER. Grade percentages are therefore shares of matched
records only.
"""

from enum import Enum
from typing import Union

import geopandas as gpd
import pandas as pd
from loguru import logger

from .crs import crs_matches
from .errors import CRSError, warn_empty

PREDICATES = ("intersects", "contains", "within")


class JoinHow(str, Enum):
    """Treatment of left records that match no right record."""

    INNER = "inner"
    OUTER = "outer"

    @property
    def geopandas_how(self) -> str:
        return "inner" if self is JoinHow.INNER else "left"


def provenance_column(right_name: str) -> str:
    """Name of the column holding the matched right record's index."""
    return f"{right_name}_index"


def spatial_join(
    left: gpd.GeoDataFrame,
    right: gpd.GeoDataFrame,
    predicate: str = "intersects",
    how: Union[JoinHow, str] = JoinHow.INNER,
    right_name: str = "right",
) -> gpd.GeoDataFrame:
    """
    Join left to right where left.geometry <predicate> right.geometry.

    Left columns and geometry are kept as-is. Right attribute columns that
    clash with left columns are suffixed with _<right_name>, and the matched
    right index is stored in <right_name>_index.

    Args:
        left: Collection whose records (and geometry) make up the output
        right: Collection supplying attributes
        predicate: "intersects", "contains" or "within"
        how: JoinHow.INNER or JoinHow.OUTER
        right_name: Label used for suffixes and the provenance column

    Returns:
        Joined GeoDataFrame, one row per matching (left, right) pair
    """
    how = JoinHow(how)
    if predicate not in PREDICATES:
        raise ValueError(f"Unsupported predicate '{predicate}', expected one of {PREDICATES}")

    logger.info(f"🔗 Spatial join ({predicate}, {how.value}) with {right_name}...")
    if not crs_matches(left, right, "left", right_name):
        raise CRSError(f"Cannot join collections in different CRS; normalize {right_name} first")

    provenance = provenance_column(right_name)
    if not left.index.is_unique:
        raise ValueError("Left collection index must be unique")
    if provenance in left.columns:
        raise ValueError(f"Left collection already has a '{provenance}' column")

    right_attrs = right.drop(columns=[right.geometry.name])
    renames = {col: f"{col}_{right_name}" for col in right_attrs.columns if col in left.columns}
    right_attrs = right_attrs.rename(columns=renames)
    right_attrs[provenance] = right.index
    right_attrs = right_attrs.reset_index(drop=True)

    right_geoms = gpd.GeoDataFrame(
        {"_right_pos": range(len(right))}, geometry=right.geometry.values, crs=right.crs
    )
    pairs = gpd.sjoin(
        left[[left.geometry.name]], right_geoms, how=how.geopandas_how, predicate=predicate
    )

    matched = pairs["_right_pos"].notna().to_numpy()
    # -1 is absent from the positional index, so unmatched rows come back all-null.
    positions = pairs["_right_pos"].fillna(-1).astype(int).to_numpy()
    attrs = right_attrs.reindex(positions).reset_index(drop=True)

    left_rows = left.drop(columns=[left.geometry.name]).loc[pairs.index].reset_index(drop=True)
    result = gpd.GeoDataFrame(
        pd.concat([left_rows, attrs], axis=1),
        geometry=pairs.geometry.values,
        crs=left.crs,
    )
    result.index = pairs.index

    matched_count = pairs.index[matched].nunique()
    logger.info(
        f"  📊 {len(left):,} left × {len(right):,} right → {len(result):,} rows "
        f"({matched_count:,} left records matched)"
    )
    multi = int(pairs.index[matched].duplicated().sum())
    if multi:
        logger.info(f"  ℹ️ {multi} extra rows from left records matching several right records")
    if len(result) == 0:
        warn_empty(f"Spatial join with {right_name} produced no rows")
    return result


def matched_left(left: gpd.GeoDataFrame, joined: gpd.GeoDataFrame, right_name: str) -> gpd.GeoDataFrame:
    """Distinct left records that have at least one match in joined."""
    provenance = provenance_column(right_name)
    has_match = joined[provenance].notna()
    keep = joined.index[has_match].unique()
    return left.loc[left.index.isin(keep)].copy()


def matched_right(right: gpd.GeoDataFrame, joined: gpd.GeoDataFrame, right_name: str) -> gpd.GeoDataFrame:
    """Distinct right records referenced by the provenance column of joined."""
    provenance = provenance_column(right_name)
    keep = joined[provenance].dropna().unique()
    return right.loc[right.index.isin(keep)].copy()
