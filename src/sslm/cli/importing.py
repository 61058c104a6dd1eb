"""Import commands for the sslm CLI.

Commands:
- import analyze: Scan a source and write an import plan
- import run: Execute an import plan
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from sslm.cli.common import (
    dest_option,
    echo_plan_summary,
    execute_and_report,
    json_events_option,
    load_config,
    output_option,
    plan_option,
    read_plan,
    setup_logging,
    strategy_option,
    subframes_option,
    validate_option,
    verbose_option,
    write_plan,
)
from sslm.core.formatting import format_bytes
from sslm.core.types import ImportStrategy, SubframeMode
from sslm.library.services import ImportService
from sslm.library.types import LibraryError


@click.group("import")
def import_() -> None:
    """Import a source (e.g. a device) into a library."""


@import_.command("analyze")
@click.argument("source", type=click.Path(exists=True, file_okay=False))
@dest_option
@strategy_option
@subframes_option
@output_option
@verbose_option
def analyze_cmd(
    source: str,
    dest: str,
    strategy: str,
    subframes: str,
    output: str | None,
    verbose: bool,
) -> None:
    """Analyze an import of SOURCE into --dest."""
    setup_logging(verbose)
    service = ImportService(load_config())

    try:
        plan = service.analyze(
            Path(source), Path(dest), ImportStrategy(strategy), SubframeMode(subframes)
        )
        space = service.estimator.check_plan(plan, Path(dest))
    except (LibraryError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    echo_plan_summary(plan)
    click.echo(
        f"  Space required: {format_bytes(space.required_with_margin)} "
        f"(available: {format_bytes(space.available_bytes)})"
    )
    if not space.has_enough_space:
        click.echo(click.style("Warning: not enough free space in destination", fg="yellow"))
    if output:
        write_plan(plan, Path(output))


@import_.command("run")
@plan_option
@dest_option
@json_events_option
@validate_option
@verbose_option
def run_cmd(
    plan_path: str,
    dest: str,
    json_events: bool,
    validate_after: bool,
    verbose: bool,
) -> None:
    """Execute an import plan. Ctrl+C cancels after the current file."""
    plan = read_plan(Path(plan_path))
    service = ImportService(load_config())
    execute_and_report(service, plan, Path(dest), json_events, verbose, validate_after)
