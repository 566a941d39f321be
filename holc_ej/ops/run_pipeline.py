#!/usr/bin/env python3
"""
HOLC / EJScreen Analysis Pipeline with Click CLI

Runs the full workflow (load, subset, normalize CRS, clean, join, aggregate,
report) with configuration values overridable from the command line.

Usage:
    holc-ej [OPTIONS] [COMMAND]

    # Run with the default config:
    holc-ej run

    # Override config values:
    holc-ej --set analysis.county_name="Alameda County" run
    holc-ej --set analysis.observation_year=null run

    # Keep unmatched records in the joins:
    holc-ej run --outer-join

    # Check that the input files are in place:
    holc-ej check-inputs

    # Verbose logging:
    holc-ej --verbose run
"""

import os
import sys
import time
from pathlib import Path
from typing import Any, Optional, Tuple

import click
import yaml  # type: ignore[import-untyped]
from loguru import logger

from ..analysis.report import render_report
from ..processing.errors import ConfigError, HolcAnalysisError
from ..processing.pipeline import run_pipeline
from ..processing.spatial_join import JoinHow
from .config_loader import Config


class ConfigOverride(click.ParamType):
    """KEY=VALUE pair with the value parsed as YAML (numbers, booleans, null, lists)."""

    name = "config_override"

    def convert(self, value, param, ctx) -> Tuple[str, Any]:
        if isinstance(value, tuple):
            return value
        if "=" not in value:
            self.fail(f"Invalid format: {value}. Use KEY=VALUE", param, ctx)

        key, val = value.split("=", 1)
        key = key.strip()
        if not key:
            self.fail(f"Invalid format: {value}. KEY must not be empty", param, ctx)

        try:
            parsed_val = yaml.safe_load(val)
        except yaml.YAMLError:
            parsed_val = val

        return key, parsed_val


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to config.yaml (defaults to $HOLC_EJ_CONFIG_PATH, ./config.yaml, then the packaged one)",
)
@click.option(
    "--set",
    "config_overrides",
    multiple=True,
    type=ConfigOverride(),
    help="Set config values using dot notation (e.g., analysis.observation_year=2021)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable DEBUG level logging")
@click.option(
    "--trace", is_flag=True, help="Enable TRACE level logging for deep debugging (maximum detail)"
)
@click.option("--log-file", type=str, help="Also log to specified file")
@click.pass_context
def cli(ctx, config_file, config_overrides, verbose, trace, log_file):
    """
    HOLC grade / EJScreen / biodiversity analysis

    Summarizes EJScreen indicators and bird observations by HOLC grade for one
    county, and writes a markdown report with charts and maps.

    \b
    Examples:
      holc-ej run                                           # Default config
      holc-ej --set analysis.join_how=outer run             # Keep unmatched records
      holc-ej --config my_config.yaml run --output-dir out  # Custom config and output
      holc-ej --trace run                                   # Maximum logging detail
    """
    setup_logging(verbose=verbose, enable_trace=trace, log_file=log_file)

    try:
        config = Config(config_file)
        if config_overrides:
            config = config.with_overrides(dict(config_overrides))
    except ConfigError as e:
        logger.critical(f"Configuration error: {e}")
        logger.info("💡 Make sure config.yaml exists and is valid")
        ctx.exit(1)

    logger.info(f"📋 Project: {config.get('project_name')}")
    ctx.obj = config

    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@cli.command()
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Write the report here instead of directories.output",
)
@click.option("--outer-join", is_flag=True, help="Keep unmatched records in both joins")
@click.option("--no-interactive-map", is_flag=True, help="Skip the HTML map")
@click.pass_context
def run(ctx, output_dir: Optional[Path] = None, outer_join: bool = False, no_interactive_map: bool = False):
    """Run the analysis and write the report."""
    config: Config = ctx.obj
    if outer_join:
        config = config.with_overrides({"analysis.join_how": JoinHow.OUTER.value})
    if no_interactive_map:
        config = config.with_overrides({"visualization.interactive_map": False})

    total_start = time.time()
    try:
        settings = config.build_settings()
        paths = config.build_input_paths()
        report_settings = config.build_report_settings()
        output_dir = Path(output_dir) if output_dir else config.get_output_dir()

        result = run_pipeline(paths, settings)
        outputs = render_report(result, output_dir, report_settings)
    except HolcAnalysisError as e:
        handle_critical_error(e, "Pipeline execution")
        ctx.exit(1)

    total_elapsed = time.time() - total_start
    logger.info("=" * 60)
    logger.success("🎉 PIPELINE COMPLETE")
    logger.info("=" * 60)
    logger.info(f"⏱️ Total time: {total_elapsed:.1f}s")
    logger.info(f"   📄 Report: {outputs.report}")
    logger.info(f"   📊 Charts: {len(outputs.charts)} in {output_dir}/")
    logger.info(f"   🗺️ Static map: {outputs.static_map}")
    if outputs.interactive_map is not None:
        logger.info(f"   🌐 Interactive map: {outputs.interactive_map}")


@cli.command("check-inputs")
@click.pass_context
def check_inputs(ctx):
    """Check that every configured input file exists."""
    config: Config = ctx.obj
    results = config.validate_input_files()
    for file_key, exists in results.items():
        status = "✅" if exists else "❌"
        try:
            location = config.get_input_path(file_key)
        except ConfigError:
            location = "(not configured)"
        logger.info(f"  {status} {file_key}: {location}")

    if all(results.values()):
        logger.success("✅ All input files found")
    else:
        logger.error("Some input files are missing")
        logger.info("💡 Check the file paths in config.yaml under input_files section")
        ctx.exit(1)


@cli.command("show-config")
@click.pass_context
def show_config(ctx):
    """Log the effective configuration."""
    config: Config = ctx.obj
    config.print_config_summary()
    try:
        settings = config.build_settings()
    except ConfigError as e:
        handle_critical_error(e, "Configuration")
        ctx.exit(1)
    logger.info(f"🔧 Pipeline settings: {settings}")


DETAILED_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
)
CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"


def setup_logging(verbose: bool = False, enable_trace: bool = False, log_file: Optional[str] = None) -> str:
    """
    Replace loguru's default sink with the pipeline's console (and optional file) sinks.

    TRACE wins over DEBUG; both switch to the detailed format with module and
    line numbers. The chosen level is exported as LOGURU_LEVEL so
    handle_critical_error knows whether to print tracebacks.

    Returns:
        The level name in effect
    """
    log_level = "TRACE" if enable_trace else ("DEBUG" if verbose else "INFO")

    logger.remove()
    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT if log_level == "INFO" else DETAILED_FORMAT,
        level=log_level,
        colorize=True,
        backtrace=enable_trace,
        diagnose=enable_trace,
    )
    if log_file:
        logger.add(log_file, level=log_level, format=FILE_FORMAT, rotation="10 MB", retention="7 days")

    os.environ["LOGURU_LEVEL"] = log_level

    logger.debug(f"🔧 Log level {log_level}")
    if log_file:
        logger.info(f"📄 Also logging to file: {log_file}")
    return log_level


def handle_critical_error(error: Exception, stage: str = "") -> None:
    """Report a run-ending error; with --trace the traceback is included."""
    label = stage or "Pipeline"
    logger.critical(f"💥 {label} failed with {type(error).__name__}: {error}")

    if os.environ.get("LOGURU_LEVEL") == "TRACE":
        logger.opt(exception=error).trace(f"🔍 Traceback for the {label.lower()} failure:")
    else:
        logger.info("💡 Re-run with --trace to see the traceback")


if __name__ == "__main__":
    cli()
