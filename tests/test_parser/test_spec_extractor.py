"""Tests for specmatch.parser.extractor."""

from __future__ import annotations

from typing import Any

import pytest

from specmatch.models import (
    HTTPMethod,
    NormalizedSpec,
    OperationDescriptor,
    ParameterLocation,
    SpecFormat,
)
from specmatch.parser.extractor import _merge_parameters, extract_spec
from specmatch.parser.resolver import resolve_refs


def _extract(raw: dict[str, Any]) -> NormalizedSpec:
    return extract_spec(resolve_refs(raw), SpecFormat.OPENAPI, str(raw["openapi"]), raw)


def _op(spec: NormalizedSpec, path: str, method: str) -> OperationDescriptor:
    for op in spec.operations:
        if op.path == path and op.method.value == method:
            return op
    raise AssertionError(f"{method} {path} not found")


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


class TestMetadata:
    def test_info_fields(self, petstore_30_raw: dict[str, Any]) -> None:
        meta = _extract(petstore_30_raw).metadata
        assert meta.title == "Petstore API"
        assert meta.api_version == "1.0.0"
        assert meta.description == "A sample pet store"

    def test_servers_and_tags(self, petstore_30_raw: dict[str, Any]) -> None:
        meta = _extract(petstore_30_raw).metadata
        assert [s.url for s in meta.servers] == ["https://petstore.example.com/v1"]
        assert meta.servers[0].description == "Production"
        assert meta.tags == [{"name": "pets", "description": "Pet operations"}]

    def test_defaults_when_info_missing(self) -> None:
        spec = extract_spec({"openapi": "3.0.0", "paths": {}}, SpecFormat.OPENAPI, "3.0.0")
        assert spec.metadata.title == "Untitled API"
        assert spec.metadata.api_version == "1.0.0"
        assert spec.metadata.source is None

    def test_source_recorded(self) -> None:
        spec = extract_spec({}, SpecFormat.OPENAPI, "3.0.0", source="/tmp/openapi.json")
        assert spec.metadata.source == "/tmp/openapi.json"

    def test_format_and_version_as_given(self) -> None:
        spec = extract_spec({}, SpecFormat.SWAGGER, "2.0")
        assert spec.format == SpecFormat.SWAGGER
        assert spec.version == "2.0"


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


class TestOperations:
    def test_all_operations_found(self, petstore_30_raw: dict[str, Any]) -> None:
        spec = _extract(petstore_30_raw)
        assert sorted(op.key for op in spec.operations) == [
            ("/pets", "GET"),
            ("/pets", "POST"),
            ("/pets/{petId}", "DELETE"),
            ("/pets/{petId}", "GET"),
        ]
        assert spec.paths == ["/pets", "/pets/{petId}"]

    def test_operation_fields(self, petstore_30_raw: dict[str, Any]) -> None:
        op = _op(_extract(petstore_30_raw), "/pets", "get")
        assert op.operation_id == "listPets"
        assert op.summary == "List all pets"
        assert op.tags == ["pets"]
        assert op.deprecated is False

    def test_deprecated_and_security(self, petstore_30_raw: dict[str, Any]) -> None:
        op = _op(_extract(petstore_30_raw), "/pets/{petId}", "delete")
        assert op.deprecated is True
        assert op.security == [{"apiKey": []}]

    def test_query_parameter(self, petstore_30_raw: dict[str, Any]) -> None:
        (param,) = _op(_extract(petstore_30_raw), "/pets", "get").parameters
        assert param.name == "limit"
        assert param.location == ParameterLocation.QUERY
        assert param.required is False
        assert param.schema_type == "integer"
        assert param.schema_ == {"type": "integer", "format": "int32"}

    def test_path_level_parameters_inherited(self, petstore_30_raw: dict[str, Any]) -> None:
        spec = _extract(petstore_30_raw)
        for method in ("get", "delete"):
            (param,) = _op(spec, "/pets/{petId}", method).parameters
            assert param.name == "petId"
            assert param.location == ParameterLocation.PATH
            assert param.required is True

    def test_request_body(self, petstore_30_raw: dict[str, Any]) -> None:
        body = _op(_extract(petstore_30_raw), "/pets", "post").request_body
        assert body is not None
        assert body.required is True
        assert body.content_types == ["application/json"]
        assert body.schema_["required"] == ["name"]

    def test_responses(self, petstore_30_raw: dict[str, Any]) -> None:
        responses = _op(_extract(petstore_30_raw), "/pets/{petId}", "get").responses
        assert [r.status_code for r in responses] == ["200", "404"]
        assert responses[1].schema_["properties"]["code"] == {"type": "integer"}

    def test_response_without_content(self, petstore_30_raw: dict[str, Any]) -> None:
        (response,) = _op(_extract(petstore_30_raw), "/pets/{petId}", "delete").responses
        assert response.status_code == "204"
        assert response.content_types == []
        assert response.schema_ is None

    def test_global_security_applies_unless_overridden(self) -> None:
        raw = {
            "openapi": "3.0.0",
            "security": [{"token": []}],
            "paths": {
                "/a": {
                    "get": {"responses": {}},
                    "post": {"security": [], "responses": {}},
                }
            },
        }
        spec = _extract(raw)
        assert _op(spec, "/a", "get").security == [{"token": []}]
        assert _op(spec, "/a", "post").security == []

    def test_non_method_keys_ignored(self) -> None:
        raw = {
            "openapi": "3.0.0",
            "paths": {"/a": {"summary": "x", "x-ext": {}, "get": {"responses": {}}}},
        }
        assert [op.method for op in _extract(raw).operations] == [HTTPMethod.GET]

    def test_openapi_31_type_arrays(self) -> None:
        raw = {
            "openapi": "3.1.0",
            "paths": {
                "/a": {
                    "get": {
                        "parameters": [
                            {"name": "q", "in": "query", "schema": {"type": ["string", "null"]}}
                        ],
                        "responses": {},
                    }
                }
            },
        }
        (param,) = _op(_extract(raw), "/a", "get").parameters
        assert param.schema_type == "string"

    def test_unknown_parameter_location_skipped(self) -> None:
        raw = {
            "openapi": "3.0.0",
            "paths": {
                "/a": {"get": {"parameters": [{"name": "x", "in": "nowhere"}], "responses": {}}}
            },
        }
        assert _op(_extract(raw), "/a", "get").parameters == []


class TestMergeParameters:
    def test_operation_overrides_path_level(self) -> None:
        path_params = [
            {"name": "id", "in": "path", "description": "path-level"},
            {"name": "trace", "in": "header"},
        ]
        op_params = [{"name": "id", "in": "path", "description": "op-level"}]
        merged = _merge_parameters(path_params, op_params)
        assert merged == [
            {"name": "trace", "in": "header"},
            {"name": "id", "in": "path", "description": "op-level"},
        ]

    def test_same_name_different_location_kept(self) -> None:
        merged = _merge_parameters(
            [{"name": "id", "in": "query"}], [{"name": "id", "in": "header"}]
        )
        assert len(merged) == 2


# ---------------------------------------------------------------------------
# Schemas and security
# ---------------------------------------------------------------------------


class TestSchemas:
    def test_schema_names(self, petstore_30_raw: dict[str, Any]) -> None:
        assert _extract(petstore_30_raw).schema_names == {"Pet", "NewPet", "Error"}

    def test_usage_counts_from_unresolved_document(
        self, petstore_30_raw: dict[str, Any]
    ) -> None:
        counts = {s.name: s.usage_count for s in _extract(petstore_30_raw).schemas}
        assert counts == {"Pet": 3, "NewPet": 1, "Error": 1}

    def test_shape_is_resolved(self, petstore_30_raw: dict[str, Any]) -> None:
        pet = next(s for s in _extract(petstore_30_raw).schemas if s.name == "Pet")
        assert set(pet.shape["properties"]) == {"id", "name", "tag"}


class TestSecuritySchemes:
    def test_api_key_scheme(self, petstore_30_raw: dict[str, Any]) -> None:
        scheme = _extract(petstore_30_raw).security_schemes["apiKey"]
        assert scheme.type == "apiKey"
        assert scheme.param_name == "X-API-Key"
        assert scheme.location == "header"

    def test_schemes_without_type_skipped(self) -> None:
        raw = {
            "openapi": "3.0.0",
            "components": {
                "securitySchemes": {
                    "bad": {"name": "x"},
                    "bearer": {"type": "http", "scheme": "bearer"},
                }
            },
        }
        schemes = _extract(raw).security_schemes
        assert list(schemes) == ["bearer"]
        assert schemes["bearer"].scheme == "bearer"


class TestUniqueness:
    def test_duplicate_operations_rejected(self) -> None:
        op = OperationDescriptor(path="/a", method=HTTPMethod.GET)
        with pytest.raises(ValueError, match="Duplicate operation GET /a"):
            NormalizedSpec(version="3.0.0", format=SpecFormat.OPENAPI, operations=[op, op])
