"""Tests for spatial join cardinality."""

from __future__ import annotations

import geopandas as gpd
import pytest
from shapely.geometry import Point, box

from holc_ej.processing.errors import CRSError, EmptyResultWarning
from holc_ej.processing.spatial_join import (
    JoinHow,
    matched_left,
    matched_right,
    provenance_column,
    spatial_join,
)


@pytest.fixture
def county(indicators) -> gpd.GeoDataFrame:
    """Units 1-4 sit inside one district each; unit 5 is outside every district."""
    return indicators[indicators["unit_id"].isin(["1", "2", "3", "4", "5"])].copy()


def test_inner_join_drops_unmatched_left_records(county, grade_polygons) -> None:
    joined = spatial_join(county, grade_polygons, how=JoinHow.INNER, right_name="holc")

    assert len(joined) == 4
    assert "5" not in set(joined["unit_id"])
    assert dict(zip(joined["unit_id"], joined["grade"])) == {"1": "A", "2": "B", "3": "C", "4": "D"}


def test_outer_join_keeps_unmatched_left_records_once(county, grade_polygons) -> None:
    """An unmatched left record appears once with null right attributes."""
    joined = spatial_join(county, grade_polygons, how=JoinHow.OUTER, right_name="holc")

    assert len(joined) == 5
    unmatched = joined[joined["unit_id"] == "5"]
    assert len(unmatched) == 1
    assert unmatched["grade"].isna().all()
    assert unmatched[provenance_column("holc")].isna().all()


def test_join_how_accepts_strings(county, grade_polygons) -> None:
    joined = spatial_join(county, grade_polygons, how="outer", right_name="holc")

    assert len(joined) == 5


def test_point_on_shared_boundary_matches_both_districts(grade_polygons) -> None:
    """A boundary point yields one row per district it touches."""
    points = gpd.GeoDataFrame(
        {"species": ["Corvus corax"]}, geometry=[Point(10, 5)], crs="EPSG:4326"
    )

    joined = spatial_join(points, grade_polygons, predicate="intersects", right_name="holc")

    assert len(joined) == 2
    assert sorted(joined["grade"]) == ["A", "B"]
    assert list(joined.index) == [0, 0]


def test_polygon_intersecting_two_districts_is_counted_for_each(grade_polygons) -> None:
    straddling = gpd.GeoDataFrame({"unit_id": ["s"]}, geometry=[box(5, 2, 15, 4)], crs="EPSG:4326")

    joined = spatial_join(straddling, grade_polygons, right_name="holc")

    assert sorted(joined["grade"]) == ["A", "B"]


def test_self_join_with_contains_is_identity(grade_polygons) -> None:
    """Disjoint covering polygons joined to themselves come back unchanged."""
    joined = spatial_join(grade_polygons, grade_polygons, predicate="contains", right_name="self")

    assert len(joined) == len(grade_polygons)
    assert sorted(joined.index) == sorted(grade_polygons.index)
    assert (joined["grade"] == joined["grade_self"]).all()
    assert (joined[provenance_column("self")] == joined.index).all()


def test_left_geometry_and_crs_are_kept(county, grade_polygons) -> None:
    joined = spatial_join(county, grade_polygons, right_name="holc")

    assert joined.crs == county.crs
    for unit_id, geom in zip(joined["unit_id"], joined.geometry):
        assert geom.equals(county.loc[county["unit_id"] == unit_id].geometry.iloc[0])


def test_crs_mismatch_raises(county, grade_polygons) -> None:
    with pytest.raises(CRSError):
        spatial_join(county, grade_polygons.to_crs("EPSG:3857"), right_name="holc")


def test_empty_join_warns(grade_polygons) -> None:
    far_away = gpd.GeoDataFrame({"species": ["x"]}, geometry=[Point(100, 80)], crs="EPSG:4326")

    with pytest.warns(EmptyResultWarning):
        joined = spatial_join(far_away, grade_polygons, right_name="holc")

    assert len(joined) == 0


def test_unknown_predicate_raises(county, grade_polygons) -> None:
    with pytest.raises(ValueError, match="touches"):
        spatial_join(county, grade_polygons, predicate="touches")


def test_non_unique_left_index_raises(county, grade_polygons) -> None:
    duplicated = county.copy()
    duplicated.index = [0] * len(county)

    with pytest.raises(ValueError, match="unique"):
        spatial_join(duplicated, grade_polygons)


def test_matched_helpers_return_distinct_records(county, grade_polygons) -> None:
    """matched_left and matched_right de-duplicate the joined pairs."""
    joined = spatial_join(county, grade_polygons, how=JoinHow.OUTER, right_name="holc")

    left = matched_left(county, joined, "holc")
    right = matched_right(grade_polygons, joined, "holc")

    assert sorted(left["unit_id"]) == ["1", "2", "3", "4"]
    assert sorted(right["grade"]) == ["A", "B", "C", "D"]
