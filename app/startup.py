"""Application startup and configuration.

Main entry point that orchestrates application initialization including
configuration parsing, service setup, and command dispatch.
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from app.application import Application
from app.services import configure_logging
from config.service import ConfigurationService, ConfigurationServiceFactory
from core.exceptions import FishLogException
from grid.aggregator import top_grid
from logger.run_logger import RunLogger
from reports.catch_summary import RECENT_CATCHES, summarize_catches
from weights.calculator import format_weight, validate_length

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


def build_command_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fishlog", description="Fish log command-line tools")
    commands = parser.add_subparsers(dest="command", required=True)

    estimate = commands.add_parser("estimate", help="Estimate a weight from a length")
    estimate.add_argument("species", help="Species catalogue name, e.g. Geelbek")
    estimate.add_argument("length_cm", type=float, help="Measured length in centimeters")
    estimate.add_argument("--measure", default=None, help="Measure type (TL, FL, DW, PCL, LBFL)")
    estimate.add_argument("--sex", default=None, help="F or M for species with sex-specific formulas")

    grid = commands.add_parser("grid", help="Per-grid statistics from the Excel catch log")
    grid.add_argument("--output", default=None, help="Directory to export the xlsx report to")
    grid.add_argument("--export", action="store_true", help="Export the xlsx report to the configured report directory")

    summary = commands.add_parser("summary", help="Catch count, species and latest catches from the Excel catch log")
    summary.add_argument("--recent", type=int, default=RECENT_CATCHES, help="Number of latest catches to list")
    return parser


def run_application(argv: Optional[List[str]] = None) -> int:
    """Main application entry point.

    Orchestrates the startup sequence:
    1. Parse configuration from all sources (defaults, files, env, CLI)
    2. Configure logging and the run log
    3. Initialize application infrastructure
    4. Run the requested command

    Returns:
        Process exit code
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    try:
        config_service, remaining = ConfigurationServiceFactory.create_from_args(argv, CONFIG_DIR)
    except FishLogException as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    args = build_command_parser().parse_args(remaining)
    configure_logging(config_service.log_level)
    run_logger = RunLogger(config_service.run_log_dir, level=config_service.log_level)

    return asyncio.run(_run(config_service, run_logger, args))


async def _run(config_service: ConfigurationService, run_logger: RunLogger, args: argparse.Namespace) -> int:
    app = Application(config_service, run_logger=run_logger)
    app.exception_handler.install_asyncio(asyncio.get_running_loop())
    app.log_session_info()
    async with app:
        try:
            if args.command == "estimate":
                return await _estimate(app, args)
            if args.command == "summary":
                return await _summary(app, args)
            return await _grid(app, args)
        except FishLogException as e:
            logger.error(f"{args.command} failed: {e}")
            return 1


async def _estimate(app: Application, args: argparse.Namespace) -> int:
    measure = args.measure or app.config.default_measure_type
    warning = validate_length(args.length_cm, measure)
    if warning:
        print(f"Warning: {warning}")

    estimate = await app.estimate_weight().execute(args.length_cm, args.species, measure, args.sex)
    match = estimate.match
    if not estimate.available:
        print(f"No estimate for {args.species} at {measure}")
        return 1

    label = args.species
    if match.has_sex_variants:
        label = f"{args.species} ({match.sex.value})"
    print(f"{label}: {format_weight(estimate.weight_kg)} ({args.length_cm:g} cm {estimate.measure_type.value})")
    if estimate.measure_type.value != str(measure).strip().upper():
        print(f"Note: measure type changed to {estimate.measure_type.value} ({estimate.measure_type.description})")
    return 0


async def _grid(app: Application, args: argparse.Namespace) -> int:
    output = args.output or (app.config.report_dir if args.export else None)
    generator = app.grid_report()
    try:
        report = generator.generate_report(Path(output) if output else None)
    except (FileNotFoundError, FishLogException) as e:
        print(str(e), file=sys.stderr)
        return 1

    table = report["grid_table"]
    if table.empty:
        print("No grid-tagged catches logged yet")
    else:
        print(table.to_string(index=False))
    top = top_grid(report["grid_statistics"])
    if top is not None:
        print(f"Best grid: {top.grid_reference} ({top.total_catches} catches, {top.cpue:.2f} per session)")
    if "exported_file" in report:
        print(f"Report written to {report['exported_file']}")
    return 0


async def _summary(app: Application, args: argparse.Namespace) -> int:
    generator = app.grid_report()
    try:
        catches = generator.to_catches(generator.load_data())
    except (FileNotFoundError, FishLogException) as e:
        print(str(e), file=sys.stderr)
        return 1
    for line in summarize_catches(catches, args.recent).lines():
        print(line)
    return 0


__all__ = ["run_application", "build_command_parser"]
