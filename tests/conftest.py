"""Shared test fixtures for dcmproc tests."""

import sys
from collections.abc import Iterator

import pytest
from rich.console import Console

from dcmproc.config import Settings, set_settings
from dcmproc.tools import clear_dcmtk_path_cache
from dcmproc.utils import reset_logger


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def isolated_globals() -> Iterator[None]:
    """Keep process-wide settings, logger and DCMTK cache per test."""
    set_settings(Settings())
    clear_dcmtk_path_cache()
    reset_logger()
    yield
    set_settings(None)
    clear_dcmtk_path_cache()
    reset_logger()


@pytest.fixture
def python() -> str:
    """Interpreter used as a portable child program."""
    return sys.executable


@pytest.fixture
def console() -> Console:
    return Console(
        width=200,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )
