"""Convert Swagger 2.0 documents into OpenAPI 3.x documents.

The conversion is a deterministic structural mapping:

1. ``info`` passes through; ``servers`` are built from every scheme in
   ``schemes`` combined with ``host`` and ``basePath``.
2. Per operation, the first ``in: body`` parameter becomes a ``requestBody``
   with content type ``application/json``; a ``$ref`` to a shared body
   parameter becomes a ``$ref`` into ``components.requestBodies``.  Later
   body parameters are dropped.  A path-level body applies to operations
   that declare none.
3. Every other parameter keeps ``name``, ``in``, ``description``, and
   ``required`` (forced on for path parameters).  Its primitive type fields
   are rolled into an inline ``schema``; undefined fields are dropped.
4. A response's top-level ``schema`` moves to
   ``content['application/json'].schema``; ``headers`` are kept.
5. ``definitions``, ``parameters``, ``responses``, and
   ``securityDefinitions`` move under ``components``; every
   ``$ref`` pointer is rewritten to match.  OAuth2 flow names map to their
   OpenAPI equivalents.
6. All unrecognised top-level fields pass through unchanged.

The single public function is :func:`convert_swagger_to_openapi`.
"""

from __future__ import annotations

import copy
from typing import Any

from specmatch.exceptions import ConversionError, RefResolutionError
from specmatch.parser.resolver import resolve_refs

# Path-item keys that hold operations in Swagger 2.0.
_SWAGGER_METHODS = ("get", "put", "post", "delete", "options", "head", "patch")

# Parameter fields that move into the inline schema.
_SCHEMA_FIELDS = (
    "type",
    "format",
    "items",
    "collectionFormat",
    "enum",
    "default",
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
    "minLength",
    "maxLength",
    "pattern",
    "minItems",
    "maxItems",
    "uniqueItems",
    "multipleOf",
)

_OAUTH2_FLOWS = {
    "implicit": "implicit",
    "password": "password",
    "application": "clientCredentials",
    "accessCode": "authorizationCode",
}

_REF_PREFIXES = (
    ("#/definitions/", "#/components/schemas/"),
    ("#/parameters/", "#/components/parameters/"),
    ("#/responses/", "#/components/responses/"),
)
_PARAMETER_REF = "#/components/parameters/"
_REQUEST_BODY_REF = "#/components/requestBodies/"

# Top-level Swagger fields consumed by the mapping; everything else is copied.
_CONSUMED_FIELDS = frozenset({
    "swagger",
    "info",
    "host",
    "basePath",
    "schemes",
    "consumes",
    "produces",
    "paths",
    "definitions",
    "parameters",
    "responses",
    "securityDefinitions",
})

_TARGET_VERSIONS = {"3.0": "3.0.3", "3.1": "3.1.0"}


def convert_swagger_to_openapi(
    spec: dict[str, Any],
    target_version: str = "3.0",
    validate_result: bool = False,
) -> dict[str, Any]:
    """Convert a Swagger 2.0 document into an OpenAPI 3.x document.

    The input is not modified.

    Args:
        spec: A parsed Swagger 2.0 document.
        target_version: ``"3.0"`` or ``"3.1"`` (a full version string such as
            ``"3.0.3"`` is also accepted and used verbatim).
        validate_result: Dereference the converted document afterwards so
            that structural errors (for example pointers to missing
            definitions) surface as :class:`ConversionError`.

    Returns:
        A new OpenAPI 3.x document.

    Raises:
        ConversionError: If *spec* is not a Swagger 2.x document, the target
            version is not 3.x, or validation of the result fails.

    Example::

        openapi = convert_swagger_to_openapi(load_document("swagger.json"))
        assert openapi["openapi"] == "3.0.3"
    """
    swagger_version = str(spec.get("swagger", ""))
    if not swagger_version.startswith("2."):
        raise ConversionError(
            f"Expected a Swagger 2.x document, got swagger={swagger_version or 'missing'}"
        )
    openapi_version = _TARGET_VERSIONS.get(target_version, target_version)
    if not openapi_version.startswith("3."):
        raise ConversionError(f"Unsupported target OpenAPI version: {target_version}")

    source = _rewrite_refs(copy.deepcopy(spec))

    result: dict[str, Any] = {
        "openapi": openapi_version,
        "info": source.get("info", {}),
    }

    servers = _convert_servers(source)
    if servers:
        result["servers"] = servers

    body_names = frozenset(
        name
        for name, param in (source.get("parameters") or {}).items()
        if isinstance(param, dict) and param.get("in") == "body"
    )
    result["paths"] = {
        path: _convert_path_item(item, body_names)
        for path, item in (source.get("paths") or {}).items()
        if isinstance(item, dict)
    }

    components = _convert_components(source)
    if components:
        result["components"] = components

    for key, value in source.items():
        if key not in _CONSUMED_FIELDS and key not in result:
            result[key] = value

    if validate_result:
        try:
            resolve_refs(result, resolve_external=False)
        except RefResolutionError as exc:
            raise ConversionError(f"Converted document is invalid: {exc}") from exc

    return result


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


def _convert_servers(spec: dict[str, Any]) -> list[dict[str, str]]:
    if not any(key in spec for key in ("host", "basePath", "schemes")):
        return []

    host = spec.get("host") or "localhost"
    base_path = spec.get("basePath") or ""
    schemes = spec.get("schemes") or ["https"]
    return [
        {
            "url": f"{scheme}://{host}{base_path}",
            "description": f"{scheme.upper()} server",
        }
        for scheme in schemes
    ]


def _convert_path_item(item: dict[str, Any], body_names: frozenset[str]) -> dict[str, Any]:
    converted: dict[str, Any] = {}
    shared_body: dict[str, Any] | None = None

    if isinstance(item.get("parameters"), list):
        parameters, shared_body = _split_parameters(item["parameters"], body_names)
        converted["parameters"] = parameters

    for key, value in item.items():
        if key in _SWAGGER_METHODS and isinstance(value, dict):
            converted[key] = _convert_operation(value, body_names, shared_body)
        elif key.startswith("x-") or key == "$ref":
            converted[key] = value

    return converted


def _convert_operation(
    operation: dict[str, Any],
    body_names: frozenset[str],
    shared_body: dict[str, Any] | None = None,
) -> dict[str, Any]:
    converted: dict[str, Any] = {}
    parameters, body = _split_parameters(operation.get("parameters", []), body_names)

    for key, value in operation.items():
        if key in ("parameters", "consumes", "produces", "schemes"):
            continue
        if key == "responses":
            converted["responses"] = {
                status: _convert_response(response)
                for status, response in value.items()
            }
        else:
            converted[key] = value

    if parameters:
        converted["parameters"] = parameters
    body = body or shared_body
    if body is not None:
        converted["requestBody"] = body

    return converted


def _split_parameters(
    params: list[Any], body_names: frozenset[str]
) -> tuple[list[dict[str, Any]], dict[str, Any] | None]:
    """Separate a Swagger parameter list into OpenAPI parameters and a request body.

    A ``$ref`` to a shared ``in: body`` parameter counts as a body.  The first
    body wins; later ones are dropped.
    """
    parameters: list[dict[str, Any]] = []
    body: dict[str, Any] | None = None
    for param in params:
        if not isinstance(param, dict):
            continue
        body_ref = _body_ref(param, body_names)
        if body_ref is None and param.get("in") != "body":
            parameters.append(_convert_parameter(param))
        elif body is None:
            body = {"$ref": body_ref} if body_ref else _convert_body(param)
    return parameters, body


def _body_ref(param: dict[str, Any], body_names: frozenset[str]) -> str | None:
    ref = param.get("$ref")
    if not isinstance(ref, str) or not ref.startswith(_PARAMETER_REF):
        return None
    name = ref[len(_PARAMETER_REF):]
    return _REQUEST_BODY_REF + name if name in body_names else None


def _convert_parameter(param: dict[str, Any]) -> dict[str, Any]:
    """Convert a non-body parameter, rolling type fields into ``schema``."""
    if "$ref" in param:
        return dict(param)

    location = param.get("in")
    converted: dict[str, Any] = {
        "name": param.get("name"),
        "in": location,
        "description": param.get("description"),
        "required": bool(param.get("required", False)) or location == "path",
    }
    schema = {key: param[key] for key in _SCHEMA_FIELDS if param.get(key) is not None}
    if schema:
        converted["schema"] = schema
    for key, value in param.items():
        if key.startswith("x-"):
            converted[key] = value
    return {key: value for key, value in converted.items() if value is not None}


def _convert_body(param: dict[str, Any]) -> dict[str, Any]:
    body: dict[str, Any] = {
        "description": param.get("description"),
        "required": bool(param.get("required", False)),
        "content": {"application/json": {"schema": param.get("schema", {})}},
    }
    return {key: value for key, value in body.items() if value is not None}


def _convert_response(response: Any) -> Any:
    if not isinstance(response, dict) or "$ref" in response:
        return response

    converted: dict[str, Any] = {"description": response.get("description", "")}
    if "schema" in response:
        converted["content"] = {"application/json": {"schema": response["schema"]}}
    if "headers" in response:
        converted["headers"] = {
            name: _convert_header(header) for name, header in response["headers"].items()
        }
    for key, value in response.items():
        if key.startswith("x-"):
            converted[key] = value
    return converted


def _convert_header(header: dict[str, Any]) -> dict[str, Any]:
    converted: dict[str, Any] = {}
    if header.get("description") is not None:
        converted["description"] = header["description"]
    schema = {key: header[key] for key in _SCHEMA_FIELDS if header.get(key) is not None}
    if schema:
        converted["schema"] = schema
    return converted


def _convert_components(spec: dict[str, Any]) -> dict[str, Any]:
    components: dict[str, Any] = {}

    if spec.get("definitions"):
        components["schemas"] = spec["definitions"]

    params = spec.get("parameters") or {}
    converted_params = {
        name: _convert_parameter(p) for name, p in params.items() if p.get("in") != "body"
    }
    if converted_params:
        components["parameters"] = converted_params
    bodies = {name: _convert_body(p) for name, p in params.items() if p.get("in") == "body"}
    if bodies:
        components["requestBodies"] = bodies

    if spec.get("responses"):
        components["responses"] = {
            name: _convert_response(response)
            for name, response in spec["responses"].items()
        }

    if spec.get("securityDefinitions"):
        components["securitySchemes"] = {
            name: _convert_security_scheme(scheme)
            for name, scheme in spec["securityDefinitions"].items()
        }

    return components


def _convert_security_scheme(scheme: dict[str, Any]) -> dict[str, Any]:
    scheme_type = scheme.get("type")

    if scheme_type == "basic":
        converted: dict[str, Any] = {"type": "http", "scheme": "basic"}
    elif scheme_type == "oauth2":
        flow_name = _OAUTH2_FLOWS.get(scheme.get("flow", ""), scheme.get("flow", "implicit"))
        flow: dict[str, Any] = {"scopes": scheme.get("scopes", {})}
        if "authorizationUrl" in scheme:
            flow["authorizationUrl"] = scheme["authorizationUrl"]
        if "tokenUrl" in scheme:
            flow["tokenUrl"] = scheme["tokenUrl"]
        converted = {"type": "oauth2", "flows": {flow_name: flow}}
    else:
        converted = {
            key: value for key, value in scheme.items() if key in ("type", "name", "in")
        }

    if scheme.get("description") is not None:
        converted["description"] = scheme["description"]
    return converted


def _rewrite_refs(obj: Any) -> Any:
    """Point Swagger ``$ref`` locations at their ``components`` counterparts."""
    if isinstance(obj, dict):
        rewritten = {}
        for key, value in obj.items():
            if key == "$ref" and isinstance(value, str):
                for old, new in _REF_PREFIXES:
                    if value.startswith(old):
                        value = new + value[len(old):]
                        break
                rewritten[key] = value
            else:
                rewritten[key] = _rewrite_refs(value)
        return rewritten
    if isinstance(obj, list):
        return [_rewrite_refs(item) for item in obj]
    return obj
