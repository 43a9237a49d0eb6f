"""Spec commands -- validate, convert, and inspect specifications.

Provides the ``specmatch spec`` sub-command group:

* ``validate`` checks the document structure and resolves every ``$ref``.
* ``convert`` rewrites a Swagger 2.0 document as OpenAPI 3.x.
* ``inspect`` lists operations, schemas, security schemes, or API info.
"""

from __future__ import annotations

import json

import typer
import yaml

from specmatch.commands.common import exit_for, reporting_errors, resolve
from specmatch.exceptions import InvalidUsageError
from specmatch.models import SpecFormat
from specmatch.output import format_data, get_output, info, print_data, print_result


spec_app = typer.Typer(no_args_is_help=True)

_INSPECT_VIEWS = ("paths", "schemas", "security", "info")


@spec_app.command("validate")
def spec_validate(
    ctx: typer.Context,
    source: str = typer.Argument(help="Spec file path, URL, or '-' for stdin."),
) -> None:
    """Validate the structure of a spec and resolve its references.

    Exits with code 8 when structural errors are found, and with the
    loader's own code (4, 6, 7) when the file is missing, has a broken
    ``$ref``, or cannot be parsed.

    Example::

        specmatch spec validate openapi.yaml
        specmatch --json spec validate https://example.com/swagger.json
    """
    from specmatch.engine import InterfaceEngine

    config = resolve(ctx)
    engine = InterfaceEngine.from_config(config)
    with reporting_errors():
        result = engine.validate_spec(source)

    print_result(result)
    exit_for(result.is_valid)


@spec_app.command("convert")
def spec_convert(
    ctx: typer.Context,
    source: str = typer.Argument(help="Swagger 2.0 file path, URL, or '-' for stdin."),
    target_version: str = typer.Option(
        "3.0", "--target-version", "-t", help="OpenAPI version to emit: 3.0 or 3.1."
    ),
    validate_result: bool = typer.Option(
        False, "--validate", help="Resolve every $ref in the converted document."
    ),
    as_yaml: bool = typer.Option(False, "--yaml", help="Emit YAML instead of JSON."),
) -> None:
    """Convert a Swagger 2.0 document to OpenAPI 3.x.

    Example::

        specmatch spec convert swagger.json > openapi.json
        specmatch spec convert swagger.yaml --target-version 3.1 --yaml
    """
    from specmatch.parser import convert_swagger_to_openapi, detect_format, load_document

    config = resolve(ctx)
    with reporting_errors():
        document = load_document(source, timeout=config.parser.timeout)
        spec_format, version = detect_format(document)
        if spec_format != SpecFormat.SWAGGER:
            raise InvalidUsageError(
                f"{source} is already OpenAPI {version}; only Swagger 2.0 can be converted"
            )
        converted = convert_swagger_to_openapi(document, target_version, validate_result)

    if as_yaml:
        print_data(yaml.safe_dump(converted, sort_keys=False, allow_unicode=True))
    else:
        print_data(json.dumps(converted, indent=2, ensure_ascii=False))


@spec_app.command("inspect")
def spec_inspect(
    ctx: typer.Context,
    source: str = typer.Argument(help="Spec file path, URL, or '-' for stdin."),
    show: str = typer.Option(
        "paths", "--show", help="What to list: paths, schemas, security, or info."
    ),
) -> None:
    """Show the operations, schemas, security schemes, or info of a spec.

    Example::

        specmatch spec inspect openapi.yaml
        specmatch spec inspect swagger.json --show schemas
    """
    from specmatch.engine import InterfaceEngine

    if show not in _INSPECT_VIEWS:
        get_output().error(f"--show must be one of: {', '.join(_INSPECT_VIEWS)}")
        raise typer.Exit(code=2)

    config = resolve(ctx)
    engine = InterfaceEngine.from_config(config)
    with reporting_errors():
        spec = engine.load_spec(source)

    output = get_output()
    if show == "paths":
        rows = [
            [
                op.method.value.upper(),
                op.path,
                op.operation_id or "-",
                "Yes" if op.deprecated else "",
            ]
            for op in sorted(spec.operations, key=lambda o: o.key)
        ]
        output.print_table(
            ["Method", "Path", "Operation", "Deprecated"],
            rows,
            title=f"{spec.metadata.title} -- Paths ({len(rows)})",
        )

    elif show == "schemas":
        if not spec.schemas:
            info("No schemas defined in this spec.")
            return
        rows = []
        for schema in spec.schemas:
            props = list(schema.shape.get("properties", {}) or {})
            listed = ", ".join(props[:5]) + ("..." if len(props) > 5 else "")
            rows.append([
                schema.name,
                str(schema.shape.get("type", "object")),
                str(schema.usage_count),
                listed,
            ])
        output.print_table(
            ["Schema", "Type", "References", "Properties"], rows, title=f"Schemas ({len(rows)})"
        )

    elif show == "security":
        if not spec.security_schemes:
            info("No security schemes defined.")
            return
        rows = [
            [name, scheme.type, scheme.scheme or "-", scheme.location or "-"]
            for name, scheme in spec.security_schemes.items()
        ]
        output.print_table(["Name", "Type", "Scheme", "Location"], rows, title="Security Schemes")

    else:
        meta = spec.metadata
        format_data({
            "title": meta.title,
            "version": meta.api_version,
            "format": spec.format.value,
            "spec_version": spec.version,
            "description": meta.description or "-",
            "servers": [s.url for s in meta.servers],
            "operations": len(spec.operations),
            "schemas": len(spec.schemas),
            "security_schemes": list(spec.security_schemes),
        })
