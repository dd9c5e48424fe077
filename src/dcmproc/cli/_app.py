"""The command-line interface for dcmproc."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console

from dcmproc.config import (
    ConfigError,
    LogLevel,
    create_logger_from_settings,
    load_settings,
    set_settings,
)
from dcmproc.utils import set_logger

from ._commands import register_commands
from ._shared import ExitCode, exit_with_error

HELP = "Run and supervise DCMTK command-line programs."


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    """Build the dcmproc CLI.

    Global options (``--config``, ``--log-level``) are handled by the meta
    app; call ``app.meta()`` to honor them, or ``app()`` to run commands with
    the process-wide settings.
    """
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="dcmproc",
        help=HELP,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        config: Annotated[
            Path | None, Parameter(name="--config", help="Path to config file")
        ] = None,
        log_level: Annotated[
            LogLevel | None, Parameter(name="--log-level", help="Log level override")
        ] = None,
    ) -> None:
        """Launch dcmproc with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            config: Explicit path to config file.
            log_level: Override the configured log level.
        """
        try:
            settings = load_settings(config)
        except ConfigError as e:
            exit_with_error(str(e), ExitCode.CONFIG_ERROR, console=error_console)

        if log_level is not None:
            settings = settings.model_copy(
                update={"logging": settings.logging.model_copy(update={"level": log_level})}
            )

        set_settings(settings)
        set_logger(create_logger_from_settings(settings))
        app(tokens)

    register_commands(app, console, error_console)
    return app


def main() -> None:
    """Default entrypoint for the `dcmproc` CLI."""
    app = create_app()
    app.meta()


if __name__ == "__main__":
    main()
