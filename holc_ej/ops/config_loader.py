"""
Configuration Loader for the HOLC / EJScreen Analysis

This module provides a centralized way to load and access configuration
settings from a config.yaml file, and turns them into the explicit values the
pipeline takes (PipelineSettings, InputPaths).

Usage:
    from holc_ej.ops import Config

    config = Config()
    grades_path = config.get_input_path('holc_geojson')
    settings = config.build_settings()
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml  # type: ignore[import-untyped]
from loguru import logger

from ..analysis.report import ReportSettings
from ..processing.errors import ConfigError
from ..processing.pipeline import InputPaths, PipelineSettings
from ..processing.schemas import GRADE_SCHEMA, INDICATOR_SCHEMA, OBSERVATION_SCHEMA
from ..processing.spatial_join import JoinHow

PACKAGED_CONFIG = Path(__file__).parent / "config.yaml"

INPUT_KEYS = ("ejscreen_gdb", "holc_geojson", "observations_shp")


class Config:
    """Configuration manager for the HOLC / EJScreen analysis."""

    # Default values that can be overridden in config
    DEFAULTS: Dict[str, Any] = {
        "directories": {"data": "data", "output": "output"},
        "analysis": {
            "state_name": "California",
            "county_name": "Los Angeles County",
            "excluded_unit_ids": [],
            "indicators": ["low_income_pct", "pm25_percentile", "life_expectancy_percentile"],
            "join_how": "inner",
            "observation_year": None,
            "target_crs": "EPSG:4326",
        },
        "visualization": {
            "chart_dpi": 150,
            "figure_width": 8,
            "figure_height": 5,
            "map_dpi": 200,
            "map_tiles": "CartoDB Positron",
            "base_zoom": 10,
            "grade_colors": {"A": "lightgreen", "B": "lightblue", "C": "yellow", "D": "red"},
            "interactive_map": True,
        },
    }

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        project_root_override: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to config file. If None, looks for:
                        1. Environment variable HOLC_EJ_CONFIG_PATH
                        2. config.yaml in current directory
                        3. The config.yaml shipped with the package
            project_root_override: Directory that relative input/output paths
                        are resolved against
        """
        if config_file is None:
            env_config = os.environ.get("HOLC_EJ_CONFIG_PATH")
            if env_config and Path(env_config).exists():
                config_file = env_config
                logger.debug(f"Using config from environment: {config_file}")
            elif Path("config.yaml").exists():
                config_file = "config.yaml"
            else:
                config_file = PACKAGED_CONFIG
                logger.debug("Using packaged default config.yaml")

        self.config_path = Path(config_file).resolve()
        if not self.config_path.exists():
            raise ConfigError(f"Config file not found: {self.config_path}")

        if project_root_override:
            self.project_root = Path(project_root_override).resolve()
            logger.debug(f"Using project root override: {self.project_root}")
        elif os.environ.get("HOLC_EJ_PROJECT_ROOT"):
            self.project_root = Path(os.environ["HOLC_EJ_PROJECT_ROOT"]).resolve()
            logger.debug(f"Using project root from environment: {self.project_root}")
        else:
            self.project_root = self._find_project_root()

        logger.debug(f"Loading config from: {self.config_path}")
        logger.debug(f"Project root: {self.project_root}")

        try:
            with open(self.config_path, "r") as f:
                self.data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not isinstance(self.data, dict):
            raise ConfigError(f"{self.config_path} must contain a mapping at the top level")

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation with intelligent defaults.

        Args:
            key_path: Dot-separated path to the configuration value
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key_path.split(".")

        value: Any = self.data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                value = None
                break

        if value is None:
            value = self.DEFAULTS
            for key in keys:
                if isinstance(value, dict) and key in value:
                    value = value[key]
                else:
                    return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set a value using dot notation, creating intermediate sections."""
        keys = key_path.split(".")
        current = self.data
        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]
        current[keys[-1]] = value
        logger.debug(f"Added override: {key_path} = {value}")

    def with_overrides(self, overrides: Mapping[str, Any]) -> "Config":
        """Return a copy with dot-notation overrides applied."""
        updated = copy.copy(self)
        updated.data = copy.deepcopy(self.data)
        for key_path, value in overrides.items():
            updated.set(key_path, value)
        return updated

    def get_input_path(self, filename_key: str) -> Path:
        """
        Get full path to an input file, relative to the project root.

        Args:
            filename_key: Key for the filename in input_files

        Returns:
            Full absolute path to the input file
        """
        relative_path_str = self.data.get("input_files", {}).get(filename_key)
        if not relative_path_str:
            raise ConfigError(
                f"Input filename key '{filename_key}' not found in config: input_files"
            )
        return self.project_root / relative_path_str

    def get_output_dir(self, create: bool = True) -> Path:
        """Output directory for the report, charts and maps."""
        output_dir = self.project_root / self.get("directories.output")
        if create:
            output_dir.mkdir(parents=True, exist_ok=True)
        return output_dir

    def get_data_dir(self) -> Path:
        """Get the data directory path."""
        return self.project_root / self.get("directories.data")

    def get_analysis_setting(self, setting_key: str) -> Any:
        """Get analysis setting with intelligent defaults."""
        return self.get(f"analysis.{setting_key}")

    def get_visualization_setting(self, setting_key: str) -> Any:
        """Get visualization setting with intelligent defaults."""
        return self.get(f"visualization.{setting_key}")

    def get_column_overrides(self, layer: str) -> Dict[str, str]:
        """Source column overrides for one layer schema."""
        overrides = self.get(f"columns.{layer}", {}) or {}
        if not isinstance(overrides, dict):
            raise ConfigError(f"columns.{layer} must be a mapping of field to source column")
        return {str(k): str(v) for k, v in overrides.items()}

    def build_settings(self) -> PipelineSettings:
        """Turn the analysis section into explicit pipeline settings."""
        try:
            join_how = JoinHow(str(self.get_analysis_setting("join_how")).lower())
        except ValueError as e:
            raise ConfigError(
                f"analysis.join_how must be 'inner' or 'outer', got {self.get_analysis_setting('join_how')!r}"
            ) from e

        year = self.get_analysis_setting("observation_year")
        if year is not None:
            try:
                year = int(year)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"analysis.observation_year must be an integer, got {year!r}") from e

        indicators = self.get_analysis_setting("indicators") or []
        if isinstance(indicators, str):
            indicators = [indicators]
        extra = self.get_column_overrides("extra_indicators")
        available = set(INDICATOR_SCHEMA.numeric_fields) | set(extra)
        unknown = [name for name in indicators if name not in available]
        if unknown:
            raise ConfigError(f"Unknown indicators {unknown}; available: {sorted(available)}")

        return PipelineSettings(
            state_name=str(self.get_analysis_setting("state_name")),
            county_name=str(self.get_analysis_setting("county_name")),
            excluded_unit_ids=tuple(str(v) for v in self.get_analysis_setting("excluded_unit_ids") or []),
            target_crs=str(self.get_analysis_setting("target_crs")),
            indicators=tuple(indicators),
            join_how=join_how,
            observation_year=year,
        )

    def build_input_paths(self) -> InputPaths:
        """Input paths and schemas with any column overrides applied."""
        try:
            indicator_schema = INDICATOR_SCHEMA.with_sources(
                self.get_column_overrides("indicators")
            ).with_extra_fields(self.get_column_overrides("extra_indicators"))
            grade_schema = GRADE_SCHEMA.with_sources(self.get_column_overrides("grades"))
            observation_schema = OBSERVATION_SCHEMA.with_sources(
                self.get_column_overrides("observations")
            )
        except ValueError as e:
            raise ConfigError(str(e)) from e

        return InputPaths(
            indicators=self.get_input_path("ejscreen_gdb"),
            grades=self.get_input_path("holc_geojson"),
            observations=self.get_input_path("observations_shp"),
            indicator_layer=self.get("input_files.ejscreen_layer"),
            indicator_schema=indicator_schema,
            grade_schema=grade_schema,
            observation_schema=observation_schema,
        )

    def build_report_settings(self) -> ReportSettings:
        """Presentation settings from the visualization section."""
        colors = self.get_visualization_setting("grade_colors") or {}
        if not isinstance(colors, dict):
            raise ConfigError("visualization.grade_colors must map grade letters to colors")

        return ReportSettings(
            title=str(self.get("project_name", ReportSettings.title)),
            description=str(self.get("description", "")),
            chart_dpi=int(self.get_visualization_setting("chart_dpi")),
            figure_size=(
                float(self.get_visualization_setting("figure_width")),
                float(self.get_visualization_setting("figure_height")),
            ),
            map_dpi=int(self.get_visualization_setting("map_dpi")),
            map_tiles=str(self.get_visualization_setting("map_tiles")),
            base_zoom=int(self.get_visualization_setting("base_zoom")),
            grade_colors={str(k): str(v) for k, v in colors.items()},
            interactive_map=bool(self.get_visualization_setting("interactive_map")),
        )

    def validate_input_files(self) -> Dict[str, bool]:
        """Validate that input files exist."""
        results: Dict[str, bool] = {}
        for filename_key in INPUT_KEYS:
            try:
                results[filename_key] = self.get_input_path(filename_key).exists()
            except ConfigError:
                results[filename_key] = False
        return results

    def print_config_summary(self) -> None:
        """Log a summary of the current configuration."""
        logger.info("📋 Configuration Summary")
        logger.info("=" * 50)
        logger.info(f"Project: {self.get('project_name', 'Unknown')}")
        logger.info(f"Description: {self.get('description', 'No description')}")
        logger.info(f"Config file: {self.config_path}")
        logger.info(f"Project root: {self.project_root}")

        logger.info("🎯 Analysis:")
        for key in ("state_name", "county_name", "join_how", "observation_year", "target_crs"):
            logger.info(f"  {key}: {self.get_analysis_setting(key)}")
        logger.info(f"  excluded_unit_ids: {len(self.get_analysis_setting('excluded_unit_ids') or [])}")

        logger.info("📊 Input Files:")
        for file_key, exists in self.validate_input_files().items():
            status = "✅" if exists else "❌"
            logger.info(f"  {status} {file_key}")

    def _find_project_root(self) -> Path:
        """Find the project root by looking for characteristic files/directories."""
        if self.config_path == PACKAGED_CONFIG.resolve():
            return Path.cwd().resolve()

        current = self.config_path.parent
        project_markers = ["data", "output", "pyproject.toml", ".git"]

        for _ in range(5):
            markers_found = sum(1 for marker in project_markers if (current / marker).exists())
            if markers_found >= 2:
                return current
            parent = current.parent
            if parent == current:
                break
            current = parent

        logger.debug(f"No project markers found, using config directory: {self.config_path.parent}")
        return self.config_path.parent


def load_config(config_file: Optional[str] = None) -> Config:
    """
    Load configuration from file.

    Args:
        config_file: Path to configuration file

    Returns:
        Config instance
    """
    return Config(config_file)
