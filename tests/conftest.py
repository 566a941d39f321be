"""Shared synthetic layers for the HOLC / EJScreen tests.

Four 10x10 grade districts tile the square (0, 0)-(20, 20):

    C | D
    --+--
    A | B

Coordinates are small lon/lat values in EPSG:4326.
"""

from __future__ import annotations

from pathlib import Path

import geopandas as gpd
import matplotlib
import pandas as pd
import pytest
from shapely.geometry import Point, box

from holc_ej.processing.pipeline import AnalysisLayers
from holc_ej.processing.schemas import INDICATOR_SCHEMA

CRS = "EPSG:4326"

GRADE_ORIGINS = {"A": (0, 0), "B": (10, 0), "C": (0, 10), "D": (10, 10)}


def pytest_configure(config) -> None:
    """Render charts and maps off-screen."""
    matplotlib.use("Agg")


def grade_box(grade: str):
    x0, y0 = GRADE_ORIGINS[grade]
    return box(x0, y0, x0 + 10, y0 + 10)


def interior_points(grade: str, n_side: int = 5) -> list:
    """n_side**2 points strictly inside one grade district."""
    x0, y0 = GRADE_ORIGINS[grade]
    return [Point(x0 + 1 + 2 * i, y0 + 1 + 2 * j) for i in range(n_side) for j in range(n_side)]


@pytest.fixture
def grade_polygons() -> gpd.GeoDataFrame:
    """Canonical grade layer: one district per grade."""
    return gpd.GeoDataFrame(
        {
            "grade": pd.array(list(GRADE_ORIGINS), dtype="string"),
            "city": pd.array(["Los Angeles"] * 4, dtype="string"),
        },
        geometry=[grade_box(g) for g in GRADE_ORIGINS],
        crs=CRS,
    )


@pytest.fixture
def raw_indicators() -> gpd.GeoDataFrame:
    """Indicator layer with EJScreen source column names."""
    rows = [
        # ID, state, county, low income, pm25, life expectancy, geometry
        ("1", "California", "Los Angeles County", 10.0, 50.0, 40.0, box(1, 1, 9, 9)),
        ("2", "California", "Los Angeles County", 20.0, 60.0, 50.0, box(11, 1, 19, 9)),
        ("3", "California", "Los Angeles County", 30.0, 70.0, None, box(1, 11, 9, 19)),
        ("4", "California", "Los Angeles County", 40.0, 80.0, 70.0, box(11, 11, 19, 19)),
        ("5", "California", "Los Angeles County", 50.0, 90.0, 80.0, box(30, 30, 40, 40)),
        ("9", "California", "Los Angeles County", 99.0, 99.0, 99.0, box(2, 2, 3, 3)),
        ("7", "California", "Orange County", 70.0, 10.0, 10.0, box(3, 3, 4, 4)),
        ("8", "Nevada", "Los Angeles County", 80.0, 20.0, 20.0, box(5, 5, 6, 6)),
    ]
    ids, states, counties, low_income, pm25, life_exp, geoms = zip(*rows)
    return gpd.GeoDataFrame(
        {
            "ID": list(ids),
            "STATE_NAME": list(states),
            "CNTY_NAME": list(counties),
            "LOWINCPCT": list(low_income),
            "P_PM25": list(pm25),
            "P_LIFEEXPPCT": list(life_exp),
            "EXTRA": ["x"] * len(ids),
        },
        geometry=list(geoms),
        crs=CRS,
    )


@pytest.fixture
def indicators(raw_indicators: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Canonical indicator layer."""
    projected, missing = INDICATOR_SCHEMA.project(raw_indicators)
    assert not missing
    return projected


@pytest.fixture
def observations() -> gpd.GeoDataFrame:
    """25 points in 2022 inside each grade, plus 10 points from 2021 in A."""
    points = []
    years = []
    for grade in GRADE_ORIGINS:
        points += interior_points(grade)
        years += [2022] * 25
    points += interior_points("A")[:10]
    years += [2021] * 10
    return gpd.GeoDataFrame(
        {
            "year": pd.array(years, dtype="Int64"),
            "species": pd.array(["Corvus corax"] * len(points), dtype="string"),
        },
        geometry=points,
        crs=CRS,
    )


@pytest.fixture
def layers(indicators, grade_polygons, observations) -> AnalysisLayers:
    return AnalysisLayers(indicators=indicators, grades=grade_polygons, observations=observations)


@pytest.fixture
def input_files(tmp_path: Path, raw_indicators, grade_polygons, observations) -> dict:
    """The three layers written to GeoJSON with their source column names."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    paths = {
        "indicators": data_dir / "ejscreen.geojson",
        "grades": data_dir / "holc.geojson",
        "observations": data_dir / "birds.geojson",
    }
    raw_indicators.to_file(paths["indicators"], driver="GeoJSON")
    grade_polygons.astype({"grade": object, "city": object}).to_file(paths["grades"], driver="GeoJSON")
    observations.astype({"year": "int64", "species": object}).to_file(
        paths["observations"], driver="GeoJSON"
    )
    return paths
