"""Shared fixtures for sslm tests."""

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def reset_sslm_logger() -> Iterator[None]:
    """Undo the handlers CLI commands install on the sslm logger."""
    yield
    sslm_logger = logging.getLogger("sslm")
    for handler in sslm_logger.handlers[:]:
        sslm_logger.removeHandler(handler)
    sslm_logger.setLevel(logging.NOTSET)
    sslm_logger.propagate = True


@pytest.fixture
def source_a(tmp_path: Path) -> Path:
    root = tmp_path / "a"
    root.mkdir()
    return root


@pytest.fixture
def source_b(tmp_path: Path) -> Path:
    root = tmp_path / "b"
    root.mkdir()
    return root


@pytest.fixture
def dest(tmp_path: Path) -> Path:
    """Destination root (not created)."""
    return tmp_path / "dest"
