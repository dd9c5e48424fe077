"""Text helpers for bounded, human-readable diagnostics."""

from collections.abc import Iterable

# Maximum length for the arguments portion of an error message.
MAX_ARGS_LENGTH: int = 200

# Maximum length for the stderr excerpt of an error message.
MAX_STDERR_LENGTH: int = 500

ELLIPSIS = "..."


def truncate(value: str, max_length: int) -> str:
    """Truncate a string to a maximum length, appending "..." if truncated.

    Args:
        value: The string to truncate.
        max_length: The maximum number of characters kept from ``value``.

    Returns:
        The original string or its first ``max_length`` characters plus "...".
    """
    if len(value) <= max_length:
        return value
    return f"{value[:max_length]}{ELLIPSIS}"


def format_args(args: Iterable[str], max_length: int = MAX_ARGS_LENGTH) -> str:
    """Join an argument vector with spaces and cap the result."""
    return truncate(" ".join(args), max_length)


def format_command(
    program: str,
    args: Iterable[str] = (),
    max_length: int = MAX_ARGS_LENGTH,
) -> str:
    """Render a program and its arguments as one capped command line.

    Args:
        program: Path or name of the executable.
        args: Arguments passed to it.
        max_length: Maximum number of characters before truncation.

    Returns:
        The command line, e.g. ``"echoscu -aet ME localhost 104"``.
    """
    return truncate(" ".join((program, *args)), max_length)
