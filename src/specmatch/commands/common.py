"""Helpers shared by the command modules."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, NoReturn, Optional

import typer

from specmatch.exceptions import SpecmatchError
from specmatch.exit_codes import EXIT_INCOMPATIBLE
from specmatch.models import GlobalConfig
from specmatch.output import OutputFormat, OutputManager, error, set_output


def fail(exc: SpecmatchError) -> NoReturn:
    """Report *exc* on stderr and exit with its code."""
    error(str(exc))
    raise typer.Exit(code=exc.exit_code)


@contextmanager
def reporting_errors() -> Iterator[None]:
    """Turn a :class:`SpecmatchError` raised in the block into a clean exit."""
    try:
        yield
    except SpecmatchError as exc:
        fail(exc)


def resolve(ctx: typer.Context, overrides: Optional[dict[str, Any]] = None) -> GlobalConfig:
    """Resolve the effective configuration for a command.

    When no output flag was given on the command line and the configuration
    names a format, the global output manager is rebuilt with it.
    """
    from specmatch.config import resolve_config

    obj = ctx.obj or {}
    with reporting_errors():
        config = resolve_config(cli_format=obj.get("format"), cli_overrides=overrides)

    if obj.get("format") is None and config.output.format != OutputFormat.AUTO.value:
        try:
            fmt = OutputFormat(config.output.format)
        except ValueError:
            error(f"Unknown output format in config: {config.output.format}")
            raise typer.Exit(code=2) from None
        set_output(OutputManager(
            format=fmt,
            no_color=obj.get("no_color", False),
            quiet=obj.get("quiet", False),
            verbose=obj.get("verbose", False),
            output_file=obj.get("output_file"),
        ))
    return config


def check_overrides(
    rules: Optional[list[str]] = None,
    no_warnings: bool = False,
    ignore_minor: bool = False,
    strict_methods: bool = False,
) -> dict[str, Any]:
    """Build the partial config dict for the flags shared by ``check`` and ``diff``."""
    overrides: dict[str, Any] = {}
    check: dict[str, Any] = {}
    if rules:
        check["custom_rules"] = list(rules)
    if no_warnings:
        check["include_warnings"] = False
    if ignore_minor:
        check["ignore_minor_differences"] = True
    if check:
        overrides["check"] = check
    if strict_methods:
        overrides["extractor"] = {"strict_method_detection": True}
    return overrides


def exit_for(ok: bool) -> None:
    """Exit with :data:`~specmatch.exit_codes.EXIT_INCOMPATIBLE` unless *ok*."""
    if not ok:
        raise typer.Exit(code=EXIT_INCOMPATIBLE)
