"""Tests for the YAML configuration manager."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from holc_ej.ops.config_loader import PACKAGED_CONFIG, Config
from holc_ej.processing.errors import ConfigError
from holc_ej.processing.spatial_join import JoinHow


def write_config(directory: Path, **sections) -> Path:
    """Write a config.yaml pointing at the conftest input files."""
    data = {
        "project_name": "Test project",
        "description": "Synthetic layers",
        "directories": {"data": "data", "output": "output"},
        "input_files": {
            "ejscreen_gdb": "data/ejscreen.geojson",
            "holc_geojson": "data/holc.geojson",
            "observations_shp": "data/birds.geojson",
        },
        "analysis": {"excluded_unit_ids": ["9"], "observation_year": 2022},
    }
    for key, value in sections.items():
        if isinstance(value, dict) and isinstance(data.get(key), dict):
            data[key] = {**data[key], **value}
        else:
            data[key] = value
    path = directory / "config.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


def test_get_uses_dot_notation_and_defaults(tmp_path) -> None:
    """Values missing from the file fall back to DEFAULTS."""
    config = Config(write_config(tmp_path))

    assert config.get("project_name") == "Test project"
    assert config.get("analysis.observation_year") == 2022
    assert config.get("analysis.county_name") == "Los Angeles County"
    assert config.get("visualization.grade_colors.A") == "lightgreen"
    assert config.get("no.such.key", "fallback") == "fallback"


def test_input_paths_resolve_against_project_root(tmp_path, input_files) -> None:
    config = Config(write_config(tmp_path), project_root_override=tmp_path)

    assert config.get_input_path("holc_geojson") == tmp_path / "data" / "holc.geojson"
    assert config.validate_input_files() == {
        "ejscreen_gdb": True,
        "holc_geojson": True,
        "observations_shp": True,
    }


def test_unknown_input_key_raises(tmp_path) -> None:
    config = Config(write_config(tmp_path))

    with pytest.raises(ConfigError, match="census_csv"):
        config.get_input_path("census_csv")


def test_missing_config_file_raises(tmp_path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        Config(tmp_path / "missing.yaml")


def test_invalid_yaml_raises(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("analysis: [unclosed")

    with pytest.raises(ConfigError, match="Invalid YAML"):
        Config(path)


def test_non_mapping_yaml_raises(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n")

    with pytest.raises(ConfigError, match="mapping"):
        Config(path)


def test_environment_variable_selects_config(tmp_path, monkeypatch) -> None:
    path = write_config(tmp_path, project_name="From env")
    monkeypatch.setenv("HOLC_EJ_CONFIG_PATH", str(path))

    assert Config().get("project_name") == "From env"


def test_packaged_config_is_the_last_resort(tmp_path, monkeypatch) -> None:
    """With no explicit, env or local config the shipped defaults are used."""
    monkeypatch.delenv("HOLC_EJ_CONFIG_PATH", raising=False)
    monkeypatch.delenv("HOLC_EJ_PROJECT_ROOT", raising=False)
    monkeypatch.chdir(tmp_path)

    config = Config()
    settings = config.build_settings()

    assert config.config_path == PACKAGED_CONFIG.resolve()
    assert config.project_root == tmp_path.resolve()
    assert settings.county_name == "Los Angeles County"
    assert len(settings.excluded_unit_ids) == 4
    assert settings.observation_year == 2022
    assert settings.join_how is JoinHow.INNER


def test_with_overrides_returns_independent_copy(tmp_path) -> None:
    config = Config(write_config(tmp_path))

    updated = config.with_overrides({"analysis.county_name": "Orange County", "analysis.join_how": "outer"})

    assert updated.get("analysis.county_name") == "Orange County"
    assert config.get("analysis.county_name") == "Los Angeles County"
    assert updated.build_settings().join_how is JoinHow.OUTER


def test_build_settings_from_config(tmp_path) -> None:
    settings = Config(write_config(tmp_path)).build_settings()

    assert settings.state_name == "California"
    assert settings.excluded_unit_ids == ("9",)
    assert settings.observation_year == 2022
    assert settings.indicators == ("low_income_pct", "pm25_percentile", "life_expectancy_percentile")


@pytest.mark.parametrize(
    "analysis, message",
    [
        ({"join_how": "sideways"}, "join_how"),
        ({"observation_year": "last year"}, "observation_year"),
        ({"indicators": ["noise_level"]}, "noise_level"),
    ],
)
def test_build_settings_rejects_bad_values(tmp_path, analysis, message) -> None:
    config = Config(write_config(tmp_path, analysis=analysis))

    with pytest.raises(ConfigError, match=message):
        config.build_settings()


def test_extra_indicators_can_be_requested(tmp_path) -> None:
    """An indicator declared under columns.extra_indicators is accepted and loaded."""
    config = Config(
        write_config(
            tmp_path,
            columns={"extra_indicators": {"diesel_pm_percentile": "P_DSLPM"}},
            analysis={"indicators": ["diesel_pm_percentile"]},
        )
    )

    settings = config.build_settings()
    paths = config.build_input_paths()

    assert settings.indicators == ("diesel_pm_percentile",)
    assert paths.indicator_schema.fields["diesel_pm_percentile"].source == "P_DSLPM"


def test_column_overrides_reach_the_schemas(tmp_path) -> None:
    config = Config(write_config(tmp_path, columns={"grades": {"grade": "holc_grade"}}))

    paths = config.build_input_paths()

    assert paths.grade_schema.fields["grade"].source == "holc_grade"
    assert paths.indicators == config.project_root / "data" / "ejscreen.geojson"


def test_unknown_column_override_raises(tmp_path) -> None:
    config = Config(write_config(tmp_path, columns={"grades": {"neighborhood": "name"}}))

    with pytest.raises(ConfigError, match="neighborhood"):
        config.build_input_paths()


def test_build_report_settings(tmp_path) -> None:
    config = Config(
        write_config(tmp_path, visualization={"grade_colors": {"D": "darkred"}, "interactive_map": False})
    )

    report = config.build_report_settings()

    assert report.title == "Test project"
    assert report.grade_colors == {"D": "darkred"}
    assert report.interactive_map is False
    assert report.figure_size == (8.0, 5.0)
