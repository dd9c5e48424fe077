"""Settings models.

Every section is a frozen Pydantic model that ignores unknown keys, so a
config file written for a newer release still loads.
"""

from enum import StrEnum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from dcmproc.constants import (
    DEFAULT_DRAIN_TIMEOUT_MS,
    DEFAULT_START_TIMEOUT_MS,
    DEFAULT_TIMEOUT_MS,
    MAX_BUFFER_BYTES,
)


class LogLevel(StrEnum):
    """Log level threshold values, from most to least verbose."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty logs to stderr).
        max_bytes: Rotate the log file at this size. Requires backup_count.
        backup_count: Number of rotated files to keep. Requires max_bytes.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.WARNING
    format: LogFormat = LogFormat.TEXT
    file: str = ""
    max_bytes: int | None = Field(default=None, gt=0)
    backup_count: int | None = Field(default=None, ge=0)


class ProcessSettings(BaseModel):
    """Process execution defaults.

    Attributes:
        default_timeout_ms: Deadline for short-lived runs.
        start_timeout_ms: Readiness deadline for supervised programs.
        drain_timeout_ms: Grace between SIGTERM and SIGKILL on stop.
        max_buffer_bytes: Capture ceiling per output stream.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    default_timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    start_timeout_ms: int = Field(default=DEFAULT_START_TIMEOUT_MS, gt=0)
    drain_timeout_ms: int = Field(default=DEFAULT_DRAIN_TIMEOUT_MS, gt=0)
    max_buffer_bytes: int = Field(default=MAX_BUFFER_BYTES, ge=0)


class DcmtkSettings(BaseModel):
    """DCMTK binary discovery.

    Attributes:
        path: Directory holding the DCMTK binaries. When set it is used
            instead of searching DCMTK_PATH, known locations and PATH.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    path: str = ""


class Settings(BaseModel):
    """Top-level dcmproc settings."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    process: ProcessSettings = ProcessSettings()
    logging: LoggingConfig = LoggingConfig()
    dcmtk: DcmtkSettings = DcmtkSettings()
