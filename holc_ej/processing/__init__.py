"""
Processing package for the HOLC / EJScreen analysis

Pure data transformations: loading, subsetting, CRS normalization, geometry
cleaning, spatial joins and aggregation. Nothing in this package renders.
"""

from .aggregation import aggregate_by_group, to_aggregate_rows
from .crs import crs_matches, normalize_crs, reproject
from .errors import (
    ConfigError,
    CRSError,
    DataLoadError,
    DivideByZeroAsNaN,
    EmptyResultWarning,
    HolcAnalysisError,
)
from .filters import filter_by_attribute, filter_by_membership, subset_county
from .geometry_cleaning import clean_layer, drop_excluded_units, repair_geometries
from .pipeline import (
    AnalysisLayers,
    AnalysisResult,
    InputPaths,
    PipelineSettings,
    load_inputs,
    run_analysis,
    run_pipeline,
)
from .spatial_join import JoinHow, spatial_join

__all__ = [
    "aggregate_by_group",
    "to_aggregate_rows",
    "crs_matches",
    "normalize_crs",
    "reproject",
    "ConfigError",
    "CRSError",
    "DataLoadError",
    "DivideByZeroAsNaN",
    "EmptyResultWarning",
    "HolcAnalysisError",
    "filter_by_attribute",
    "filter_by_membership",
    "subset_county",
    "clean_layer",
    "drop_excluded_units",
    "repair_geometries",
    "AnalysisLayers",
    "AnalysisResult",
    "InputPaths",
    "PipelineSettings",
    "load_inputs",
    "run_analysis",
    "run_pipeline",
    "JoinHow",
    "spatial_join",
]
