"""Extract operations, schemas, and metadata from an OpenAPI document.

This module walks an OpenAPI 3.x document (Swagger 2.0 input is converted
first by the normalizer) and builds a :class:`~specmatch.models.NormalizedSpec`
containing every operation, parameter, request body, response, component
schema, and security scheme declared in the document.

The single public entry point is :func:`extract_spec`.  Internally it delegates
to private helpers that each handle one section of the document:

* ``_extract_metadata`` -- ``info``, ``servers``, ``tags``, and ``externalDocs``.
* ``_extract_operations`` -- the ``paths`` object, iterating over every
  path + HTTP method combination.
* ``_extract_schemas`` -- ``components/schemas`` with ``$ref`` usage counts.
* ``_extract_security_schemes`` -- the ``components/securitySchemes`` map.

Parameter merging follows the OpenAPI specification: path-level parameters
provide defaults, and operation-level parameters override them when they share
the same ``name`` and ``in`` values.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Optional

from specmatch.models import (
    HTTPMethod,
    NormalizedSpec,
    OperationDescriptor,
    ParameterDescriptor,
    ParameterLocation,
    RequestBodyDescriptor,
    ResponseDescriptor,
    SchemaDescriptor,
    SecurityScheme,
    ServerInfo,
    SpecFormat,
    SpecMetadata,
)

logger = logging.getLogger(__name__)

_SCHEMA_REF_PREFIX = "#/components/schemas/"


def extract_spec(
    document: dict[str, Any],
    spec_format: SpecFormat,
    version: str,
    unresolved: Optional[dict[str, Any]] = None,
    source: Optional[str] = None,
) -> NormalizedSpec:
    """Build a :class:`~specmatch.models.NormalizedSpec` from an OpenAPI document.

    Args:
        document: The OpenAPI 3.x document, usually with ``$ref`` pointers
            already resolved.
        spec_format: Family of the document as originally loaded.
        version: Version string of the document as originally loaded
            (``"2.0"`` for converted Swagger input).
        unresolved: The same document before dereferencing, used to count
            ``$ref`` usages of each component schema.  Defaults to
            *document*.
        source: Resolved path or URL of the document, recorded in metadata.

    Returns:
        A fully populated :class:`~specmatch.models.NormalizedSpec`.

    Example::

        raw = load_document("petstore.yaml")
        spec = extract_spec(resolve_refs(raw), SpecFormat.OPENAPI, "3.0.3", raw)
        for op in spec.operations:
            print(op.method.value.upper(), op.path)
    """
    return NormalizedSpec(
        version=version,
        format=spec_format,
        operations=_extract_operations(document),
        schemas=_extract_schemas(document, unresolved if unresolved is not None else document),
        metadata=_extract_metadata(document, source),
        security_schemes=_extract_security_schemes(document),
        document=document,
    )


def _extract_metadata(spec: dict[str, Any], source: Optional[str]) -> SpecMetadata:
    """Extract the ``info`` object plus servers, tags, and external docs."""
    info = spec.get("info") or {}

    return SpecMetadata(
        title=info.get("title") or "Untitled API",
        api_version=str(info.get("version") or "1.0.0"),
        description=info.get("description"),
        servers=_extract_servers(spec),
        contact=info.get("contact"),
        license=info.get("license"),
        external_docs=spec.get("externalDocs"),
        tags=[tag for tag in spec.get("tags", []) if isinstance(tag, dict)],
        source=source,
    )


def _extract_servers(spec: dict[str, Any]) -> list[ServerInfo]:
    return [
        ServerInfo(url=server.get("url", "/"), description=server.get("description"))
        for server in spec.get("servers") or []
        if isinstance(server, dict)
    ]


def _extract_operations(spec: dict[str, Any]) -> list[OperationDescriptor]:
    """Extract all operations from the ``paths`` object.

    Methods are visited in :class:`~specmatch.models.HTTPMethod` order so
    the result is stable for a given document.  Security follows the
    OpenAPI override rule: an operation-level ``security`` array replaces
    the global one, and an explicit ``[]`` means "no auth required".
    """
    paths = spec.get("paths") or {}
    global_security = spec.get("security")
    operations: list[OperationDescriptor] = []

    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue

        path_params = path_item.get("parameters", [])

        for method in HTTPMethod:
            operation = path_item.get(method.value)
            if not isinstance(operation, dict):
                continue

            merged_params = _merge_parameters(path_params, operation.get("parameters", []))

            security = operation.get("security")
            if security is None:
                security = global_security

            operations.append(
                OperationDescriptor(
                    path=path,
                    method=method,
                    operation_id=operation.get("operationId"),
                    summary=operation.get("summary"),
                    tags=operation.get("tags", []),
                    parameters=_extract_parameters(merged_params),
                    request_body=_extract_request_body(operation.get("requestBody")),
                    responses=_extract_responses(operation.get("responses") or {}),
                    security=security,
                    deprecated=operation.get("deprecated", False),
                )
            )

    return operations


def _merge_parameters(
    path_params: list[dict[str, Any]],
    op_params: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters override path-level parameters with the same
    name and location (``in`` field).
    """
    op_keys = {(p.get("name", ""), p.get("in", "")) for p in op_params if isinstance(p, dict)}
    merged = [
        p
        for p in path_params
        if isinstance(p, dict) and (p.get("name", ""), p.get("in", "")) not in op_keys
    ]
    merged.extend(p for p in op_params if isinstance(p, dict))
    return merged


def _extract_parameters(params_list: list[dict[str, Any]]) -> list[ParameterDescriptor]:
    """Convert raw parameter dicts into descriptors.

    Path parameters are always required.  Unresolved ``$ref`` parameters and
    parameters with unrecognised locations are skipped.
    """
    parameters: list[ParameterDescriptor] = []

    for param in params_list:
        if "$ref" in param or "name" not in param:
            logger.debug("Skipping unresolved parameter %s", param.get("$ref", param))
            continue
        try:
            location = ParameterLocation(param.get("in", "query"))
        except ValueError:
            continue

        schema = param.get("schema")
        required = bool(param.get("required", False)) or location == ParameterLocation.PATH

        parameters.append(
            ParameterDescriptor(
                name=str(param["name"]),
                location=location,
                required=required,
                description=param.get("description"),
                schema_type=_extract_schema_type(schema),
                schema=schema if isinstance(schema, dict) else None,
            )
        )

    return parameters


def _extract_schema_type(schema: Any) -> Optional[str]:
    """Return the declared type of *schema*, or ``None`` when absent.

    OpenAPI 3.1 type arrays (e.g. ``["string", "null"]``) yield their first
    non-null entry.
    """
    if not isinstance(schema, dict) or "type" not in schema:
        return None

    type_value = schema["type"]
    if isinstance(type_value, list):
        non_null = [t for t in type_value if t != "null"]
        return str(non_null[0]) if non_null else None
    return str(type_value)


def _first_schema(content: dict[str, Any]) -> Optional[dict[str, Any]]:
    for media in content.values():
        if isinstance(media, dict) and isinstance(media.get("schema"), dict):
            return media["schema"]
    return None


def _extract_request_body(body: Any) -> Optional[RequestBodyDescriptor]:
    if not isinstance(body, dict):
        return None

    content = body.get("content") or {}
    return RequestBodyDescriptor(
        required=body.get("required", False),
        description=body.get("description"),
        content_types=list(content.keys()),
        schema=_first_schema(content),
    )


def _extract_responses(responses: dict[str, Any]) -> list[ResponseDescriptor]:
    result: list[ResponseDescriptor] = []

    for status_code, response in responses.items():
        if not isinstance(response, dict):
            continue
        content = response.get("content") or {}
        result.append(
            ResponseDescriptor(
                status_code=str(status_code),
                description=response.get("description"),
                content_types=list(content.keys()),
                schema=_first_schema(content),
            )
        )

    return result


def _extract_schemas(
    spec: dict[str, Any], unresolved: dict[str, Any]
) -> list[SchemaDescriptor]:
    """Extract named component schemas with their ``$ref`` usage counts."""
    schemas = (spec.get("components") or {}).get("schemas") or {}
    usage = _count_schema_refs(unresolved)

    return [
        SchemaDescriptor(
            name=name,
            shape=shape if isinstance(shape, dict) else {},
            usage_count=usage.get(name, 0),
        )
        for name, shape in schemas.items()
    ]


def _count_schema_refs(obj: Any, counter: Optional[Counter[str]] = None) -> Counter[str]:
    if counter is None:
        counter = Counter()
    if isinstance(obj, dict):
        ref = obj.get("$ref")
        if isinstance(ref, str) and ref.startswith(_SCHEMA_REF_PREFIX):
            counter[ref[len(_SCHEMA_REF_PREFIX):].replace("~1", "/").replace("~0", "~")] += 1
        for value in obj.values():
            _count_schema_refs(value, counter)
    elif isinstance(obj, list):
        for item in obj:
            _count_schema_refs(item, counter)
    return counter


def _extract_security_schemes(spec: dict[str, Any]) -> dict[str, SecurityScheme]:
    """Extract ``components/securitySchemes`` into typed models."""
    raw_schemes = (spec.get("components") or {}).get("securitySchemes") or {}
    schemes: dict[str, SecurityScheme] = {}

    for name, scheme in raw_schemes.items():
        if not isinstance(scheme, dict) or "type" not in scheme:
            continue
        schemes[name] = SecurityScheme(
            name=name,
            type=scheme["type"],
            description=scheme.get("description"),
            param_name=scheme.get("name"),
            location=scheme.get("in"),
            scheme=scheme.get("scheme"),
            bearer_format=scheme.get("bearerFormat"),
            flows=scheme.get("flows"),
            openid_connect_url=scheme.get("openIdConnectUrl"),
        )

    return schemes
