"""dcmproc configuration.

Example:
    >>> from dcmproc.config import load_settings
    >>> settings = load_settings()
    >>> settings.process.default_timeout_ms
    30000
"""

from dcmproc.exceptions import ConfigError, ConfigLoadError, ConfigValidationError

from ._load import (
    create_logger_from_settings,
    get_settings,
    get_user_config_path,
    load_settings,
    set_settings,
)
from ._loader import (
    ENV_PREFIX,
    copy_value,
    deep_merge,
    parse_env_vars,
    parse_string_value,
    read_toml_file,
    set_nested_key,
)
from ._models import (
    DcmtkSettings,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ProcessSettings,
    Settings,
)

__all__ = [
    "ENV_PREFIX",
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DcmtkSettings",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "ProcessSettings",
    "Settings",
    "copy_value",
    "create_logger_from_settings",
    "deep_merge",
    "get_settings",
    "get_user_config_path",
    "load_settings",
    "parse_env_vars",
    "parse_string_value",
    "read_toml_file",
    "set_nested_key",
]
