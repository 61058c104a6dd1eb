"""Merge commands for the sslm CLI.

Commands:
- merge analyze: Scan several libraries and write a merge plan
- merge run: Execute a merge plan
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
    sources_argument,
    subframes_option,
    validate_option,
    verbose_option,
    write_plan,
)
from sslm.core.types import SubframeMode
from sslm.library.inventory import Source
from sslm.library.services import MergeService
from sslm.library.types import LibraryError


def sources_from_paths(paths: tuple[str, ...]) -> list[Source]:
    """Build ordered sources, naming each after its directory.

    Repeated directory names get a numeric suffix so identifiers stay unique.
    """
    sources: list[Source] = []
    seen: set[str] = set()
    for index, raw in enumerate(paths, start=1):
        root = Path(raw)
        name = root.name or str(root)
        source_id = name
        suffix = index
        while source_id in seen:
            source_id = f"{name}-{suffix}"
            suffix += 1
        seen.add(source_id)
        sources.append(Source(root, source_id))
    return sources


@click.group()
def merge() -> None:
    """Merge several libraries into one destination.

    On conflicting files the newest modification time wins; ties go to the
    source listed first.
    """


@merge.command("analyze")
@sources_argument
@dest_option
@subframes_option
@output_option
@verbose_option
def analyze_cmd(
    sources: tuple[str, ...],
    dest: str,
    subframes: str,
    output: str | None,
    verbose: bool,
) -> None:
    """Analyze SOURCES (in priority order) for a merge into --dest."""
    setup_logging(verbose)
    service = MergeService(load_config())

    try:
        plan = service.analyze(sources_from_paths(sources), Path(dest), SubframeMode(subframes))
    except (LibraryError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    echo_plan_summary(plan)
    if output:
        write_plan(plan, Path(output))


@merge.command("run")
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
    """Execute a merge plan. Ctrl+C cancels after the current file."""
    plan = read_plan(Path(plan_path))
    service = MergeService(load_config())
    execute_and_report(service, plan, Path(dest), json_events, verbose, validate_after)
