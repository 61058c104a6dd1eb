"""Validate command for the sslm CLI.

Commands:
- validate: Check a destination against a plan
"""

from __future__ import annotations

from pathlib import Path

import click

from sslm.cli.common import (
    dest_option,
    json_events_option,
    load_config,
    plan_option,
    prepare_output,
    read_plan,
    validate_and_report,
    verbose_option,
)
from sslm.library.executor import TransferExecutor


@click.command()
@plan_option
@dest_option
@json_events_option
@verbose_option
def validate(plan_path: str, dest: str, json_events: bool, verbose: bool) -> None:
    """Check that every file of a plan exists in --dest with the planned size."""
    plan = read_plan(Path(plan_path))
    printer = prepare_output(json_events, verbose)
    executor = TransferExecutor(load_config())
    validate_and_report(executor.validate, plan, Path(dest), printer, json_events)
