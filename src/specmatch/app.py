"""Typer application factory and CLI entry point for specmatch.

This module wires together the top-level Typer application and registers the
built-in sub-commands (``spec``, ``check``, ``diff``, ``extract``, ``config``,
``cache``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, registers commands, and
invokes the Typer app. :class:`~specmatch.exceptions.SpecmatchError` exits
with its own code; any other exception is written to a crash log under the
cache directory.

See Also:
    :mod:`specmatch.config`: Configuration resolution used by every command.
    :mod:`specmatch.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from specmatch import __version__
from specmatch.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="specmatch",
    help="Check API code and OpenAPI specs for interface consistency.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)

_registered = False


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"specmatch {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    """Route ``specmatch`` log records to stderr through Rich.

    Warnings (degraded analysis, skipped rules) are always shown; debug
    records only with ``--verbose``.
    """
    logger = logging.getLogger("specmatch")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=verbose,
        markup=False,
    )
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


@app.callback()
def main_callback(
    ctx: typer.Context,
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
    output_file: Optional[str] = typer.Option(
        None, "-o", "--output", help="Output file path."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~specmatch.output.OutputManager` and the
    ``specmatch`` logger from CLI flags, and stores shared options in the
    Typer context so that sub-commands can read them via ``ctx.obj``.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug-level diagnostic output.
        output_file: Redirect primary data output to a file path.
    """
    from specmatch.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(
        format=fmt,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
        output_file=output_file,
    )
    set_output(output)
    _configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["format"] = fmt.value if fmt != OutputFormat.AUTO else None
    ctx.obj["no_color"] = no_color
    ctx.obj["quiet"] = quiet
    ctx.obj["verbose"] = verbose
    ctx.obj["output_file"] = output_file


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path.

    Args:
        exc: The unhandled exception to log.

    Returns:
        Absolute path to the written crash log file.
    """
    from specmatch.config import get_cache_dir

    logs_dir = get_cache_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def register_commands() -> None:
    """Attach the built-in sub-commands to :data:`app`. Safe to call twice."""
    global _registered
    if _registered:
        return

    from specmatch.commands.cache import cache_app
    from specmatch.commands.check import check_command, diff_command, extract_command
    from specmatch.commands.config import config_app
    from specmatch.commands.spec import spec_app

    app.add_typer(spec_app, name="spec", help="Validate, convert, and inspect specs.")
    app.command("check")(check_command)
    app.command("diff")(diff_command)
    app.command("extract")(extract_command)
    app.add_typer(config_app, name="config", help="Configuration management.")
    app.add_typer(cache_app, name="cache", help="Spec cache management.")
    _registered = True


def main() -> None:
    """CLI entry point invoked by the ``specmatch`` console script.

    Performs the following sequence:

    1. Install signal handlers for clean Ctrl-C behaviour.
    2. Register built-in sub-commands.
    3. Invoke the Typer application.

    Unhandled :class:`~specmatch.exceptions.SpecmatchError` instances
    cause a clean exit with the error's ``exit_code``. All other exceptions
    produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        register_commands()
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from specmatch.exceptions import SpecmatchError
        from specmatch.output import error

        if isinstance(exc, SpecmatchError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
