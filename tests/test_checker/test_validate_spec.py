"""Tests for specmatch.checker.checker.validate_spec_document."""

from __future__ import annotations

from typing import Any

from specmatch.checker import validate_spec_document
from specmatch.models import CheckOptions, IssueType, Severity

_OK = {"200": {"description": "ok"}}


def _messages(result) -> list[str]:
    return [i.message for i in (*result.errors, *result.warnings)]


class TestStructure:
    def test_valid_petstore(self, petstore_30_raw: dict[str, Any]) -> None:
        result = validate_spec_document(petstore_30_raw)
        assert result.is_valid
        assert result.errors == ()
        assert result.warnings == ()
        assert result.validation_type == "spec"
        assert result.metadata.spec_version == "3.0.3"
        assert result.metadata.source_endpoint_count == 2
        assert result.summary.compatibility_score == 100

    def test_valid_swagger(self, swagger_20_raw: dict[str, Any]) -> None:
        result = validate_spec_document(swagger_20_raw)
        assert result.is_valid
        assert result.metadata.spec_version == "2.0"

    def test_missing_paths(self) -> None:
        result = validate_spec_document(
            {"openapi": "3.0.0", "info": {"title": "x", "version": "1"}}
        )
        assert not result.is_valid
        (error,) = result.errors
        assert error.type == IssueType.SPEC_STRUCTURE
        assert error.severity == Severity.ERROR
        assert error.message == "Missing required field 'paths'"
        assert error.location.side == "spec"

    def test_every_missing_field_reported(self) -> None:
        result = validate_spec_document({})
        assert _messages(result) == [
            "Missing required field 'openapi' or 'swagger'",
            "Missing required field 'info'",
            "Missing required field 'paths'",
        ]
        assert result.metadata.spec_version is None

    def test_paths_must_be_an_object(self) -> None:
        result = validate_spec_document({"openapi": "3.0.0", "info": {}, "paths": []})
        assert _messages(result) == ["Field 'paths' must be an object"]

    def test_non_object_document(self) -> None:
        result = validate_spec_document(["openapi"])
        assert not result.is_valid
        assert _messages(result) == ["Specification must be an object, got list"]


class TestWarnings:
    def _doc(self, paths: dict[str, Any]) -> dict[str, Any]:
        return {"openapi": "3.0.0", "info": {"title": "x", "version": "1"}, "paths": paths}

    def test_ambiguous_templates(self) -> None:
        result = validate_spec_document(self._doc({
            "/users/{id}": {"get": {"responses": _OK}},
            "/users/{name}": {"get": {"responses": _OK}},
        }))
        assert result.is_valid
        (warning,) = result.warnings
        assert warning.message == "Path templates /users/{id} and /users/{name} are ambiguous"
        assert warning.path == "/users/{name}"

    def test_operation_without_responses(self) -> None:
        result = validate_spec_document(self._doc({"/a": {"post": {}}}))
        (warning,) = result.warnings
        assert warning.message == "POST /a declares no responses"
        assert warning.method == "POST"

    def test_warnings_can_be_excluded(self) -> None:
        result = validate_spec_document(
            self._doc({"/a": {"post": {}}}), CheckOptions(include_warnings=False)
        )
        assert result.warnings == ()
        assert result.summary.suppressed_count == 1

    def test_severity_override(self) -> None:
        options = CheckOptions(severity_overrides={IssueType.SPEC_STRUCTURE: Severity.WARNING})
        result = validate_spec_document({}, options)
        assert result.is_valid
        assert len(result.warnings) == 3
