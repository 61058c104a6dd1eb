"""Shared helpers for sslm CLI commands.

This module provides:
- StatusLineAwareHandler / StatusLine: Log output that does not interleave
  with the redrawn progress line
- setup_logging: Installs handlers on the ``sslm`` logger
- EventPrinter: Renders progress events as a status line or JSON lines
- Plan file helpers and the threaded runner used for Ctrl+C cancellation
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import click
from pydantic import ValidationError

from sslm.core.config import EngineConfig
from sslm.core.formatting import format_bytes, format_duration, format_speed
from sslm.core.types import EventStatus, ImportStrategy, SubframeMode
from sslm.library.planner import TransferPlan
from sslm.library.types import LibraryError, ProgressEvent
from sslm.schemas import plan_from_json, plan_to_json

T = TypeVar("T")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

SUBFRAME_CHOICE = click.Choice([m.value for m in SubframeMode])
STRATEGY_CHOICE = click.Choice([s.value for s in ImportStrategy])

# Options shared by several commands
dest_option = click.option(
    "--dest", "-d", required=True, type=click.Path(file_okay=False), help="Destination library."
)
plan_option = click.option(
    "--plan",
    "plan_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Plan file written by an analyze command.",
)
output_option = click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the plan to this JSON file.",
)
json_events_option = click.option(
    "--json-events", is_flag=True, help="Print progress events as JSON lines."
)
validate_option = click.option(
    "--validate", "validate_after", is_flag=True, help="Validate the destination afterwards."
)
verbose_option = click.option("--verbose", "-v", is_flag=True, help="Show progress logs.")
sources_argument = click.argument(
    "sources", nargs=-1, required=True, type=click.Path(exists=True, file_okay=False)
)
subframes_option = click.option(
    "--subframes",
    type=SUBFRAME_CHOICE,
    default=SubframeMode.ALL.value,
    show_default=True,
    help="fit_only drops non-.fit files under *_sub directories.",
)
strategy_option = click.option(
    "--strategy",
    type=STRATEGY_CHOICE,
    default=ImportStrategy.FULL.value,
    show_default=True,
    help="incremental skips files whose copy has the same size and is not older.",
)


class StatusLine:
    """A single terminal line redrawn in place."""

    def __init__(self, width: int = 80) -> None:
        self.lock = threading.Lock()
        self._width = width
        self._text = ""
        self._last_len = 0

    def clear(self) -> None:
        """Erase the line (caller holds the lock)."""
        if self._last_len > 0:
            sys.stdout.write("\r" + " " * self._last_len + "\r")
            sys.stdout.flush()
            self._last_len = 0

    def redraw(self) -> None:
        """Write the current text again (caller holds the lock)."""
        if not self._text:
            return
        text = self._text
        if len(text) > self._width - 3:
            text = text[: self._width - 6] + "..."
        clear_part = " " * max(0, self._last_len - len(text))
        sys.stdout.write(f"\r{text}{clear_part}")
        sys.stdout.flush()
        self._last_len = len(text)

    def update(self, text: str) -> None:
        with self.lock:
            self._text = text
            self.redraw()

    def finish(self) -> None:
        """Clear the line for good."""
        with self.lock:
            self.clear()
            self._text = ""


class StatusLineAwareHandler(logging.Handler):
    """Logging handler that coordinates with the status line display.

    Clears the status line before printing log messages and restores it after.
    """

    def __init__(self, status_line: StatusLine) -> None:
        super().__init__()
        self._status_line = status_line

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            with self._status_line.lock:
                self._status_line.clear()
                # Same stream as the status line to prevent interleaving
                sys.stdout.write(msg + "\n")
                sys.stdout.flush()
                self._status_line.redraw()
        except Exception:
            self.handleError(record)


def setup_logging(verbose: bool = False, status_line: StatusLine | None = None) -> None:
    """Install handlers on the ``sslm`` logger.

    Args:
        verbose: Show INFO messages (WARNING and above otherwise).
        status_line: When given, log lines are routed around it.
    """
    level = logging.INFO if verbose else logging.WARNING
    sslm_logger = logging.getLogger("sslm")
    for handler in sslm_logger.handlers[:]:
        sslm_logger.removeHandler(handler)

    handler: logging.Handler
    if status_line is not None:
        handler = StatusLineAwareHandler(status_line)
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

    handler.setLevel(level)
    sslm_logger.addHandler(handler)
    sslm_logger.setLevel(level)
    sslm_logger.propagate = False


def format_event(event: ProgressEvent) -> str:
    """One-line rendering of a progress event."""
    if event.status is EventStatus.STARTING:
        return f"  Starting {event.operation} of {event.total_files} files..."
    if event.status is EventStatus.VALIDATING:
        return f"  Validating: {event.files_copied}/{event.total_files} files"
    eta = f", ETA {format_duration(event.eta)}" if event.eta is not None else ""
    return (
        f"  [{event.files_copied}/{event.total_files}] "
        f"{format_bytes(event.bytes_copied)}/{format_bytes(event.total_bytes)} "
        f"({event.bytes_percent:.0f}%) {format_speed(event.speed)}{eta} {event.current_file}"
    )


class EventPrinter:
    """Progress callback writing either JSON lines or a status line."""

    def __init__(self, json_events: bool, status_line: StatusLine | None = None) -> None:
        self._json_events = json_events
        self._status_line = status_line

    def __call__(self, event: ProgressEvent) -> None:
        if self._json_events:
            click.echo(json.dumps(event.to_message()))
            return
        if self._status_line is None:
            return
        if event.is_terminal:
            self._status_line.finish()
        else:
            self._status_line.update(format_event(event))


def prepare_output(json_events: bool, verbose: bool) -> EventPrinter:
    """Configure logging and build the matching event printer."""
    if json_events:
        setup_logging(verbose)
        return EventPrinter(json_events=True)
    status_line = StatusLine()
    setup_logging(verbose, status_line)
    return EventPrinter(json_events=False, status_line=status_line)


def load_config() -> EngineConfig:
    """Read the engine config from the environment, exiting on bad values."""
    try:
        return EngineConfig.from_env()
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def read_plan(path: Path) -> TransferPlan:
    """Load a plan file, exiting with a readable message if it is invalid."""
    try:
        data = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        click.echo(f"Error: Cannot read plan {path}: {e}", err=True)
        sys.exit(1)
    try:
        return plan_from_json(data)
    except ValidationError as e:
        click.echo(f"Error: Invalid plan file {path}:\n{e}", err=True)
        sys.exit(1)


def write_plan(plan: TransferPlan, path: Path) -> None:
    """Write a plan file."""
    try:
        Path(path).write_text(plan_to_json(plan) + "\n", encoding="utf-8")
    except OSError as e:
        click.echo(f"Error: Cannot write plan {path}: {e}", err=True)
        sys.exit(1)
    click.echo(f"Plan written to {path}")


def echo_plan_summary(plan: TransferPlan) -> None:
    click.echo(click.style("Analysis:", bold=True))
    for line in plan.summary_lines():
        click.echo(f"  {line}")
    if plan.conflict_resolutions:
        click.echo(click.style("\nConflicts:", fg="yellow"))
        for resolution in plan.conflict_resolutions[:10]:
            click.echo(
                f"  ! {resolution['relativePath']} -> "
                f"{resolution['winningSource']} ({resolution['reason']})"
            )


def run_interruptible(func: Callable[[], T], cancel: Callable[[], bool]) -> T:
    """Run a blocking operation in a thread, turning Ctrl+C into cancel().

    The operation always gets to finish its current file and emit its
    terminal event before this returns.
    """
    outcome: dict[str, Any] = {}

    def target() -> None:
        try:
            outcome["value"] = func()
        except BaseException as e:
            outcome["error"] = e

    worker = threading.Thread(target=target, name="sslm-operation", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(timeout=0.2)
    except KeyboardInterrupt:
        click.echo("\nCancelling after the current file... (Ctrl+C again to abort)", err=True)
        cancel()
        worker.join()

    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]


def execute_and_report(
    service: Any,
    plan: TransferPlan,
    destination: Path,
    json_events: bool,
    verbose: bool,
    validate: bool,
) -> None:
    """Run a plan through a service, print the outcome and set the exit code."""
    printer = prepare_output(json_events, verbose)

    if plan.is_empty:
        click.echo("Nothing to copy: destination is up to date.")
    else:
        if not json_events:
            click.echo(
                f"Copying {len(plan.files_to_copy)} files "
                f"({format_bytes(plan.total_bytes)}) to {destination}"
            )
        try:
            report = run_interruptible(
                lambda: service.execute(plan, destination, printer),
                service.cancel,
            )
        except LibraryError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

        if not json_events:
            if report.errors:
                click.echo(click.style("\nErrors:", fg="red"))
                for failure in report.errors:
                    click.echo(f"  ✗ {failure.file}: {failure.error}")
            click.echo(
                f"\nTransfer {report.state.name.lower()}: {report.files_copied}/"
                f"{report.total_files} files, {format_bytes(report.bytes_copied)} "
                f"in {format_duration(report.duration)}"
            )
            if report.error:
                click.echo(f"Error: {report.error}", err=True)

        if report.cancelled:
            sys.exit(130)
        if not report.success:
            sys.exit(1)

    if validate:
        validate_and_report(service.validate, plan, destination, printer, json_events)


def validate_and_report(
    validate: Callable[..., Any],
    plan: TransferPlan,
    destination: Path,
    printer: EventPrinter,
    json_events: bool,
) -> None:
    """Validate a destination, print mismatches and exit 1 if any."""
    try:
        report = validate(plan, destination, printer)
    except LibraryError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not json_events:
        if report.is_valid:
            click.echo(f"Validation passed: {report.files_validated} files")
        else:
            click.echo(click.style("Validation failed:", fg="red"))
            for mismatch in report.mismatches[:50]:
                click.echo(f"  ✗ {mismatch.file}: {mismatch.message}")
            if len(report.mismatches) > 50:
                click.echo(f"  ... and {len(report.mismatches) - 50} more")

    if not report.is_valid:
        sys.exit(1)
