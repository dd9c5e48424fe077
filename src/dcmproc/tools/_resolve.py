"""Location of the DCMTK command-line binaries.

Search order:
1. ``dcmtk.path`` from the settings, when set
2. ``DCMTK_PATH`` environment variable
3. Platform-specific known install locations
4. System PATH

A directory qualifies only when it holds every binary in REQUIRED_BINARIES.
The first successful lookup is cached for the life of the process.
"""

import os
import shutil
from pathlib import Path

from dcmproc._result import Err, Ok, Result
from dcmproc.config import Settings, get_settings
from dcmproc.constants import (
    DCMTK_PATH_ENV,
    IS_WINDOWS,
    REQUIRED_BINARIES,
    UNIX_SEARCH_PATHS,
    WINDOWS_SEARCH_PATHS,
)
from dcmproc.exceptions import BinaryNotFoundError
from dcmproc.utils import get_logger

NOT_FOUND_MESSAGE = (
    "DCMTK binaries not found. Install DCMTK and either:\n"
    "  - Set the DCMTK_PATH environment variable, or\n"
    "  - Install DCMTK to a standard location, or\n"
    "  - Ensure DCMTK binaries are on the system PATH"
)

_cached_path: Path | None = None


def binary_name(name: str) -> str:
    """Return the binary filename with the platform's executable suffix."""
    return f"{name}.exe" if IS_WINDOWS else name


def has_required_binaries(directory: Path) -> bool:
    """Return True if the directory contains every required DCMTK binary."""
    return all((directory / binary_name(name)).is_file() for name in REQUIRED_BINARIES)


def _search_configured(value: str, source: str) -> Result[Path] | None:
    if not value:
        return None
    directory = Path(value)
    if has_required_binaries(directory):
        return Ok(directory)
    msg = f'{source}="{value}" is set but required binaries are missing'
    return Err(BinaryNotFoundError(msg, searched=(directory,)))


def _search_known_paths() -> Path | None:
    search_paths = WINDOWS_SEARCH_PATHS if IS_WINDOWS else UNIX_SEARCH_PATHS
    for candidate in search_paths:
        if has_required_binaries(candidate):
            return candidate
    return None


def _search_system_path() -> Path | None:
    found = shutil.which(binary_name(REQUIRED_BINARIES[0]))
    if found is None:
        return None
    directory = Path(found).parent
    if has_required_binaries(directory):
        return directory
    return None


def find_dcmtk_path(
    *,
    no_cache: bool = False,
    settings: Settings | None = None,
) -> Result[Path]:
    """Locate the directory containing the DCMTK binaries.

    Args:
        no_cache: Bypass the cached result and search again.
        settings: Settings to read ``dcmtk.path`` from. Uses the
            process-wide settings if None.

    Returns:
        ``Ok(directory)`` or ``Err(BinaryNotFoundError)``.
    """
    global _cached_path  # noqa: PLW0603
    if _cached_path is not None and not no_cache:
        return Ok(_cached_path)

    logger = get_logger()
    settings = settings if settings is not None else get_settings()

    for value, source in (
        (settings.dcmtk.path, "dcmtk.path"),
        (os.environ.get(DCMTK_PATH_ENV, ""), DCMTK_PATH_ENV),
    ):
        configured = _search_configured(value, source)
        if configured is None:
            continue
        if isinstance(configured, Ok):
            _cached_path = configured.value
        logger.debug("dcmtk_path_configured", source=source, ok=configured.ok)
        return configured

    found = _search_known_paths() or _search_system_path()
    if found is not None:
        logger.debug("dcmtk_path_found", path=str(found))
        _cached_path = found
        return Ok(found)

    searched = WINDOWS_SEARCH_PATHS if IS_WINDOWS else UNIX_SEARCH_PATHS
    return Err(BinaryNotFoundError(NOT_FOUND_MESSAGE, searched=searched))


def clear_dcmtk_path_cache() -> None:
    """Forget the cached DCMTK directory."""
    global _cached_path  # noqa: PLW0603
    _cached_path = None


def resolve_binary(tool_name: str, *, settings: Settings | None = None) -> Result[Path]:
    """Resolve the full path of a named DCMTK binary.

    The binary itself is not checked beyond the REQUIRED_BINARIES probe; a
    missing optional tool surfaces later as a SpawnError.
    """
    match find_dcmtk_path(settings=settings):
        case Ok(directory):
            return Ok(directory / binary_name(tool_name))
        case Err(error):
            if isinstance(error, BinaryNotFoundError):
                error.tool_name = tool_name
            return Err(error)
