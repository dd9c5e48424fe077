# pyright: reportAny=false
"""Settings discovery and loading.

Sources are deep-merged in increasing precedence:
1. Built-in defaults
2. User config file (``<user config dir>/dcmproc/config.toml``)
3. An explicit config file
4. ``DCMPROC_*`` environment variables
"""

from pathlib import Path
from typing import TYPE_CHECKING, Any

import platformdirs
from pydantic import ValidationError

from dcmproc.exceptions import ConfigLoadError, ConfigValidationError
from dcmproc.utils import create_logger

from ._loader import deep_merge, parse_env_vars, read_toml_file
from ._models import Settings

if TYPE_CHECKING:
    from collections.abc import Mapping

    from structlog.typing import FilteringBoundLogger

_settings: Settings | None = None


def get_user_config_path() -> Path:
    r"""Get the platform-specific user config file path.

    - Linux: ``~/.config/dcmproc/config.toml``
    - macOS: ``~/Library/Application Support/dcmproc/config.toml``
    - Windows: ``%APPDATA%\dcmproc\config.toml``

    The path is returned whether or not the file exists.
    """
    return platformdirs.user_config_path("dcmproc") / "config.toml"


def load_settings(
    path: Path | None = None,
    *,
    environ: "Mapping[str, str] | None" = None,
    include_user: bool = True,
) -> Settings:
    """Load settings from every source and validate the merged result.

    Args:
        path: Explicit config file. It must exist when given.
        environ: Environment to read instead of ``os.environ``.
        include_user: Whether to read the user config file.

    Returns:
        The validated settings.

    Raises:
        ConfigLoadError: If a file is missing or cannot be parsed.
        ConfigValidationError: If the merged values are invalid.
    """
    merged: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]

    if include_user:
        user_path = get_user_config_path()
        if user_path.is_file():
            merged = deep_merge(merged, read_toml_file(user_path))

    if path is not None:
        try:
            merged = deep_merge(merged, read_toml_file(path))
        except FileNotFoundError as e:
            msg = f"Config file not found: {path}"
            raise ConfigLoadError(msg, path=path) from e

    merged = deep_merge(
        merged, parse_env_vars(environ=dict(environ) if environ is not None else None)
    )

    try:
        return Settings.model_validate(merged)
    except ValidationError as e:
        source = str(path) if path is not None else None
        msg = f"Invalid configuration: {e.error_count()} error(s)"
        raise ConfigValidationError(
            msg,
            source=source,
            errors=[dict(error) for error in e.errors()],
        ) from e


def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def set_settings(settings: Settings | None) -> None:
    """Replace the process-wide settings; None reloads on next access."""
    global _settings  # noqa: PLW0603
    _settings = settings


def create_logger_from_settings(settings: Settings) -> "FilteringBoundLogger":
    """Build a logger from the logging section of the settings."""
    config = settings.logging
    return create_logger(
        config.file,
        level=config.level.value,
        log_format=config.format.value,
        max_bytes=config.max_bytes,
        backup_count=config.backup_count,
    )
