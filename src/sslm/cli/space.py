"""Space command for the sslm CLI.

Commands:
- space: Check free space for an import or merge
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from sslm.cli.common import (
    dest_option,
    load_config,
    setup_logging,
    sources_argument,
    strategy_option,
    subframes_option,
    verbose_option,
)
from sslm.cli.merge import sources_from_paths
from sslm.core.formatting import format_bytes
from sslm.core.types import ImportStrategy, SubframeMode
from sslm.library.space import SpaceEstimator
from sslm.library.types import LibraryError


@click.command()
@sources_argument
@dest_option
@strategy_option
@subframes_option
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON.")
@verbose_option
def space(
    sources: tuple[str, ...],
    dest: str,
    strategy: str,
    subframes: str,
    as_json: bool,
    verbose: bool,
) -> None:
    """Check that --dest has room for SOURCES.

    Exits with status 1 when the required space (with a safety margin)
    exceeds the free space.
    """
    setup_logging(verbose)
    config = load_config()
    estimator = SpaceEstimator(margin=config.safety_margin)

    try:
        check = estimator.estimate(
            sources_from_paths(sources),
            Path(dest),
            strategy=ImportStrategy(strategy),
            subframe_mode=SubframeMode(subframes),
        )
    except (LibraryError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(check.to_message()))
    else:
        margin_pct = round((check.margin - 1) * 100)
        click.echo(
            f"Required:  {format_bytes(check.required_with_margin)} "
            f"({format_bytes(check.required_bytes)} + {margin_pct}% margin)"
        )
        click.echo(f"Available: {format_bytes(check.available_bytes)}")
        if check.has_enough_space:
            click.echo(click.style("Enough space.", fg="green"))
        else:
            click.echo(click.style("Not enough space.", fg="red"))

    if not check.has_enough_space:
        sys.exit(1)
