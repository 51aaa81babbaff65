"""Typer application and CLI entry point for ucloud-login.

This module wires together the top-level Typer application, registers the
``login``, ``refresh`` and ``roles`` commands, and configures output and
logging from the global flags.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a SIGINT handler and
invokes the Typer app. :class:`~ucloud_login.exceptions.LoginError`
instances that escape a command exit with the error's ``exit_code``.
"""

from __future__ import annotations

import logging
import signal
import sys
from typing import Any

import typer
from rich.logging import RichHandler

from ucloud_login import __version__
from ucloud_login.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="ucloud-login",
    help="Log in to BUPT ucloud through the university SSO.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"ucloud-login {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool, quiet: bool) -> None:
    """Route the package's log records to stderr through Rich.

    ``--verbose`` shows the login state transitions and every request
    (DEBUG); the default shows warnings such as failed OCR attempts;
    ``--quiet`` keeps only errors.
    """
    from ucloud_login.output import get_output

    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logger = logging.getLogger("ucloud_login")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = RichHandler(
        console=get_output().stderr_console,
        show_path=False,
        show_time=verbose,
    )
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~ucloud_login.output.OutputManager`
    and the package logger from the CLI flags.
    """
    from ucloud_login.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(format=fmt, no_color=no_color, quiet=quiet)
    )
    configure_logging(verbose=verbose, quiet=quiet)


def register_commands() -> None:
    """Attach the built-in commands to :data:`app`."""
    from ucloud_login.commands.login import login_command, refresh_command, roles_command

    app.command("login")(login_command)
    app.command("refresh")(refresh_command)
    app.command("roles")(roles_command)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``ucloud-login`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from ucloud_login.exceptions import LoginError
        from ucloud_login.output import error

        if isinstance(exc, LoginError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        error("Run again with --verbose for details.")
        sys.exit(EXIT_GENERIC_FAILURE)


register_commands()
