"""
Typed records and layer schemas for the three input collections.

Each input layer is projected onto a LayerSchema at load time: declared source
columns are renamed to canonical field names and coerced to their declared
type, undeclared columns are dropped, and a missing declared column is a
DataLoadError. The frozen record dataclasses give a row-level view of the same
fields for callers that want typed objects rather than a GeoDataFrame.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Type, TypeVar

import geopandas as gpd
import numpy as np
import pandas as pd
from shapely.geometry.base import BaseGeometry

HOLC_GRADES: Tuple[str, ...] = ("A", "B", "C", "D")

FIELD_TYPES = ("str", "float", "int")


@dataclass(frozen=True)
class FieldSpec:
    """One canonical field: where it comes from and what type it holds."""

    source: str
    dtype: str = "str"
    required: bool = True

    def __post_init__(self) -> None:
        if self.dtype not in FIELD_TYPES:
            raise ValueError(f"Unsupported field type '{self.dtype}' for column {self.source}")


@dataclass(frozen=True)
class LayerSchema:
    """Canonical field layout of one input layer."""

    name: str
    fields: Mapping[str, FieldSpec]
    geometry_types: Tuple[str, ...] = ()

    def with_sources(self, overrides: Optional[Mapping[str, str]]) -> "LayerSchema":
        """Return a copy with source column names replaced for the given fields."""
        if not overrides:
            return self
        unknown = set(overrides) - set(self.fields)
        if unknown:
            raise ValueError(f"Unknown {self.name} fields in override: {sorted(unknown)}")
        updated = {
            key: replace(spec, source=overrides.get(key, spec.source))
            for key, spec in self.fields.items()
        }
        return replace(self, fields=updated)

    def with_extra_fields(self, extra: Optional[Mapping[str, str]], dtype: str = "float") -> "LayerSchema":
        """Return a copy with additional required fields of one type."""
        if not extra:
            return self
        updated = dict(self.fields)
        for key, source in extra.items():
            updated[key] = FieldSpec(source, dtype)
        return replace(self, fields=updated)

    @property
    def numeric_fields(self) -> List[str]:
        return [key for key, spec in self.fields.items() if spec.dtype in ("float", "int")]

    def project(self, gdf: gpd.GeoDataFrame) -> Tuple[gpd.GeoDataFrame, List[str]]:
        """
        Rename, coerce and select the declared fields of a source table.

        Returns the projected frame and the list of missing required source
        columns. Optional fields absent from the source are filled with nulls.
        """
        missing = [
            spec.source
            for spec in self.fields.values()
            if spec.required and spec.source not in gdf.columns
        ]
        if missing:
            return gdf, missing

        data: Dict[str, Any] = {}
        for key, spec in self.fields.items():
            if spec.source in gdf.columns:
                data[key] = _coerce(gdf[spec.source], spec.dtype)
            else:
                empty = pd.Series([None] * len(gdf), index=gdf.index, dtype=object)
                data[key] = _coerce(empty, spec.dtype)

        projected = gpd.GeoDataFrame(data, geometry=gdf.geometry.values, crs=gdf.crs, index=gdf.index)
        return projected, []


def _coerce(series: pd.Series, dtype: str) -> pd.Series:
    if dtype == "float":
        return pd.to_numeric(series, errors="coerce").astype(float)
    if dtype == "int":
        return pd.to_numeric(series, errors="coerce").astype("Int64")
    return series.astype("string")


INDICATOR_SCHEMA = LayerSchema(
    name="indicators",
    fields={
        "unit_id": FieldSpec("ID"),
        "state_name": FieldSpec("STATE_NAME"),
        "county_name": FieldSpec("CNTY_NAME"),
        "low_income_pct": FieldSpec("LOWINCPCT", "float"),
        "pm25_percentile": FieldSpec("P_PM25", "float"),
        "life_expectancy_percentile": FieldSpec("P_LIFEEXPPCT", "float"),
    },
    geometry_types=("Polygon", "MultiPolygon"),
)

GRADE_SCHEMA = LayerSchema(
    name="grades",
    fields={
        "grade": FieldSpec("grade"),
        "city": FieldSpec("city", required=False),
    },
    geometry_types=("Polygon", "MultiPolygon"),
)

OBSERVATION_SCHEMA = LayerSchema(
    name="observations",
    fields={
        "year": FieldSpec("year", "int", required=False),
        "species": FieldSpec("species", required=False),
    },
    geometry_types=("Point", "MultiPoint"),
)


@dataclass(frozen=True)
class IndicatorRecord:
    """One EJScreen block group."""

    unit_id: str
    state_name: str
    county_name: str
    low_income_pct: float
    pm25_percentile: float
    life_expectancy_percentile: float
    geometry: BaseGeometry


@dataclass(frozen=True)
class GradePolygon:
    """One HOLC-graded neighborhood district."""

    grade: str
    geometry: BaseGeometry
    city: Optional[str] = None


@dataclass(frozen=True)
class ObservationPoint:
    """One biodiversity sighting."""

    geometry: BaseGeometry
    year: Optional[int] = None
    species: Optional[str] = None


@dataclass(frozen=True)
class AggregateRow:
    """Summary of one grade group."""

    group: Optional[str]
    count: int
    percentage: float
    means: Dict[str, float] = field(default_factory=dict)


RecordT = TypeVar("RecordT")


def to_records(gdf: gpd.GeoDataFrame, record_type: Type[RecordT]) -> Iterator[RecordT]:
    """Yield typed records for the columns of gdf that record_type declares."""
    names = [f.name for f in fields(record_type)]
    present = [name for name in names if name in gdf.columns]
    for row in gdf[present].itertuples(index=False):
        values = {name: _to_python(value) for name, value in zip(present, row)}
        yield record_type(**values)


def _to_python(value: Any) -> Any:
    if isinstance(value, BaseGeometry):
        return value
    if value is pd.NA:
        return None
    if isinstance(value, np.generic):
        return value.item()
    return value
