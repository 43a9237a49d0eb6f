"""Consistency commands -- compare code with a spec or with other code.

Registered directly on the root app:

* ``specmatch check CODE --spec SPEC`` -- every endpoint the code uses must
  be declared by the spec.
* ``specmatch diff --frontend F --backend B`` -- every endpoint the frontend
  calls must be served by the backend.
* ``specmatch extract PATH`` -- list the code features found under a path.

``CODE``, ``F``, and ``B`` may be single files or directories; directories are
scanned recursively.  ``check`` and ``diff`` exit with
:data:`~specmatch.exit_codes.EXIT_INCOMPATIBLE` when error-severity issues
are found.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

import typer

from specmatch.commands.common import check_overrides, exit_for, reporting_errors, resolve
from specmatch.exceptions import InvalidUsageError
from specmatch.models import CodeFeatureSet, SourceLocation
from specmatch.output import debug, get_output, info, print_result

if TYPE_CHECKING:
    from specmatch.analysis import ScanResult
    from specmatch.engine import InterfaceEngine


def _code_input(
    engine: InterfaceEngine,
    source: str,
    include: Optional[list[str]],
    exclude: Optional[list[str]],
    no_ast: bool,
) -> Union[str, ScanResult]:
    """Read ``-`` from stdin, otherwise scan the file or directory at *source*."""
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if not path.exists():
        raise InvalidUsageError(f"No such file or directory: {source}")
    scan = engine.scan(path, include or None, exclude or None, use_ast=not no_ast)
    debug(f"Scanned {len(scan.files)} file(s) under {source}")
    return scan


def check_command(
    ctx: typer.Context,
    code: str = typer.Argument(help="Source file or directory, or '-' for stdin."),
    spec: str = typer.Option(..., "--spec", "-s", help="Spec file path or URL."),
    rule: Optional[list[str]] = typer.Option(
        None, "--rule", "-r", help="Built-in custom rule to apply (repeatable)."
    ),
    no_warnings: bool = typer.Option(
        False, "--no-warnings", help="Only report error-severity issues."
    ),
    ignore_minor: bool = typer.Option(
        False, "--ignore-minor", help="Skip undeclared-parameter checks."
    ),
    strict_methods: bool = typer.Option(
        False, "--strict-methods", help="Only treat real HTTP verbs as methods."
    ),
    include: Optional[list[str]] = typer.Option(
        None, "--include", help="Glob of files to scan (repeatable)."
    ),
    exclude: Optional[list[str]] = typer.Option(
        None, "--exclude", help="Glob of files to skip (repeatable)."
    ),
    no_ast: bool = typer.Option(
        False, "--no-ast", help="Use pattern matching for Python files too."
    ),
) -> None:
    """Check source code against an OpenAPI or Swagger spec.

    Example::

        specmatch check src/api --spec openapi.yaml
        specmatch check client.ts --spec openapi.yaml --rule no-trailing-slash
    """
    from specmatch.engine import InterfaceEngine

    config = resolve(ctx, check_overrides(rule, no_warnings, ignore_minor, strict_methods))
    engine = InterfaceEngine.from_config(config)
    with reporting_errors():
        source = _code_input(engine, code, include, exclude, no_ast)
        result = engine.validate_interface(source, spec)

    print_result(result)
    exit_for(result.is_valid)


def diff_command(
    ctx: typer.Context,
    frontend: str = typer.Option(..., "--frontend", "-f", help="Frontend file or directory."),
    backend: str = typer.Option(..., "--backend", "-b", help="Backend file or directory."),
    spec: Optional[str] = typer.Option(
        None, "--spec", "-s", help="Spec used for schema checks."
    ),
    rule: Optional[list[str]] = typer.Option(
        None, "--rule", "-r", help="Built-in custom rule to apply (repeatable)."
    ),
    no_warnings: bool = typer.Option(
        False, "--no-warnings", help="Only report error-severity issues."
    ),
    ignore_minor: bool = typer.Option(
        False, "--ignore-minor", help="Skip undeclared-parameter checks."
    ),
    strict_methods: bool = typer.Option(
        False, "--strict-methods", help="Only treat real HTTP verbs as methods."
    ),
    no_ast: bool = typer.Option(
        False, "--no-ast", help="Use pattern matching for Python files too."
    ),
) -> None:
    """Compare the endpoints a frontend calls with those a backend serves.

    Example::

        specmatch diff --frontend web/src --backend server/app
        specmatch --json diff -f web/src -b server/app --spec openapi.yaml
    """
    from specmatch.engine import InterfaceEngine

    if frontend == "-" and backend == "-":
        get_output().error("Only one side can be read from stdin")
        raise typer.Exit(code=2)

    config = resolve(ctx, check_overrides(rule, no_warnings, ignore_minor, strict_methods))
    engine = InterfaceEngine.from_config(config)
    with reporting_errors():
        front = _code_input(engine, frontend, None, None, no_ast)
        back = _code_input(engine, backend, None, None, no_ast)
        result = engine.analyze_differences(front, back, spec)

    if result.metadata.degraded_sides:
        info(f"Analysis degraded for: {', '.join(result.metadata.degraded_sides)}")
    print_result(result)
    exit_for(result.is_compatible)


def _feature_rows(features: CodeFeatureSet) -> list[list[str]]:
    def where(file: Optional[str], line: int) -> str:
        return str(SourceLocation(file=file, line=line))

    rows = [
        ["endpoint", e.path, e.pattern or "", where(e.file, e.line)]
        for e in features.endpoints
    ]
    rows += [["method", m.method, m.pattern or "", where(m.file, m.line)] for m in features.methods]
    rows += [["schema", s.name, "", where(s.file, s.line)] for s in features.schema_names]
    rows += [
        ["parameter", p.name, p.type or "", where(p.file, p.line)] for p in features.parameters
    ]
    return rows


def extract_command(
    ctx: typer.Context,
    source: str = typer.Argument(help="Source file or directory, or '-' for stdin."),
    strict_methods: bool = typer.Option(
        False, "--strict-methods", help="Only treat real HTTP verbs as methods."
    ),
    include: Optional[list[str]] = typer.Option(
        None, "--include", help="Glob of files to scan (repeatable)."
    ),
    exclude: Optional[list[str]] = typer.Option(
        None, "--exclude", help="Glob of files to skip (repeatable)."
    ),
    no_ast: bool = typer.Option(
        False, "--no-ast", help="Use pattern matching for Python files too."
    ),
) -> None:
    """List the endpoints, methods, schemas, and parameters found in code.

    Example::

        specmatch extract src/api
        specmatch --json extract client.ts
    """
    from specmatch.engine import InterfaceEngine

    config = resolve(ctx, check_overrides(strict_methods=strict_methods))
    engine = InterfaceEngine.from_config(config)
    with reporting_errors():
        code = _code_input(engine, source, include, exclude, no_ast)
    features, degraded = engine.extract(code, side=source)

    if degraded:
        info("Some input could not be analysed; results may be incomplete.")
    rows = _feature_rows(features)
    if not rows:
        info("No features found.")
        return
    get_output().print_table(
        ["Kind", "Value", "Detail", "Location"], rows, title=f"Features ({len(rows)})"
    )
