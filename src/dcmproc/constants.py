"""Library-wide constants.

All timeouts are in milliseconds and all buffers are bounded.
"""

import sys
from pathlib import Path

# =============================================================================
# Timeouts
# =============================================================================

# Default deadline for short-lived process execution.
DEFAULT_TIMEOUT_MS: int = 30_000

# Default deadline for a long-lived process to report readiness.
DEFAULT_START_TIMEOUT_MS: int = 10_000

# Default grace between SIGTERM and SIGKILL when stopping a process tree.
DEFAULT_DRAIN_TIMEOUT_MS: int = 5_000

# Grace used to reap a child after a timeout or cancellation.
REAP_TIMEOUT_MS: int = 1_000

# =============================================================================
# Bounded Limits
# =============================================================================

# Maximum bytes captured per stream before further output is dropped (10 MiB).
MAX_BUFFER_BYTES: int = 10 * 1024 * 1024

# Read size for draining child streams.
READ_CHUNK_BYTES: int = 65_536

# =============================================================================
# DCMTK Discovery
# =============================================================================

IS_WINDOWS: bool = sys.platform == "win32"

# Known DCMTK binary locations on Windows.
WINDOWS_SEARCH_PATHS: tuple[Path, ...] = (
    Path("C:\\Program Files\\DCMTK\\bin"),
    Path("C:\\Program Files (x86)\\DCMTK\\bin"),
    Path("C:\\ProgramData\\chocolatey\\bin"),
)

# Known DCMTK binary locations on Unix/macOS.
UNIX_SEARCH_PATHS: tuple[Path, ...] = (
    Path("/usr/local/bin"),
    Path("/usr/bin"),
    Path("/opt/local/bin"),
    Path("/opt/homebrew/bin"),
)

# Binaries that must all be present for a directory to count as a DCMTK install.
REQUIRED_BINARIES: tuple[str, ...] = (
    "dcm2json",
    "dcm2xml",
    "dcmodify",
    "dcmdump",
    "dcmrecv",
    "dcmsend",
    "echoscu",
)

# Environment variable pointing at the DCMTK bin directory.
DCMTK_PATH_ENV: str = "DCMTK_PATH"
