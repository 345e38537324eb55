"""Fixtures for CLI tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from typer.testing import CliRunner

from bundlelint.kernel.logging import configure_logging


@pytest.fixture
def runner() -> CliRunner:
    """Fixture providing a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Point logging back at the real stderr after a command swapped it."""
    yield
    configure_logging(level="WARNING", format="console", force_reconfigure=True)
