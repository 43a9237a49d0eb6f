"""Tests for specmatch.checker.checker.ConsistencyChecker."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from specmatch.analysis import PatternFeatureExtractor
from specmatch.checker import BUILTIN_RULES, ApiSurface, ConsistencyChecker
from specmatch.models import (
    CheckOptions,
    DiffAnalysisResult,
    ExtractorConfig,
    HTTPMethod,
    IssueType,
    NormalizedSpec,
    OperationDescriptor,
    ParameterDescriptor,
    ParameterLocation,
    Severity,
    SpecFormat,
)

CODE_DIR = Path(__file__).parent.parent / "fixtures" / "code"


def _code(text: str, label: str = "frontend") -> ApiSurface:
    features = PatternFeatureExtractor(ExtractorConfig()).extract_all(text)
    return ApiSurface.from_features(label, features)


def _spec_surface(*operations: tuple[str, str]) -> ApiSurface:
    spec = NormalizedSpec(
        version="3.0.3",
        format=SpecFormat.OPENAPI,
        operations=[
            OperationDescriptor(path=path, method=HTTPMethod(method)) for path, method in operations
        ],
    )
    return ApiSurface.from_spec("spec", spec)


def _spec_with_parameters(
    path: str, method: str, *parameters: ParameterDescriptor
) -> ApiSurface:
    spec = NormalizedSpec(
        version="3.0.3",
        format=SpecFormat.OPENAPI,
        operations=[
            OperationDescriptor(path=path, method=HTTPMethod(method), parameters=list(parameters))
        ],
    )
    return ApiSurface.from_spec("spec", spec)


def _types(result: DiffAnalysisResult) -> list[IssueType]:
    return [issue.type for issue in result.issues]


@pytest.fixture
def checker() -> ConsistencyChecker:
    return ConsistencyChecker()


@pytest.fixture
def frontend() -> ApiSurface:
    return _code((CODE_DIR / "frontend" / "api.ts").read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


class TestEndpoints:
    def test_matching_call_is_compatible(self, checker: ConsistencyChecker) -> None:
        result = checker.compare(
            _code("axios.get('/api/users')"), _spec_surface(("/api/users", "get"))
        )
        assert result.is_compatible
        assert result.issues == ()
        assert result.summary.compatibility_score == 100

    def test_typo_gets_suggestion(self, checker: ConsistencyChecker) -> None:
        result = checker.compare(
            _code("axios.get('/api/prodcts')"), _spec_surface(("/api/products", "get"))
        )
        assert not result.is_compatible
        missing, extra = result.issues
        assert missing.type == IssueType.ENDPOINT_MISSING
        assert missing.severity == Severity.ERROR
        assert missing.suggestion == "/api/products"
        assert missing.message == (
            "Endpoint /api/prodcts is used by frontend but not found in spec"
        )
        assert (missing.location.side, missing.location.line) == ("frontend", 1)
        assert extra.type == IssueType.ENDPOINT_EXTRA
        assert extra.severity == Severity.WARNING
        assert extra.location.side == "spec"
        assert extra.message == (
            "Endpoint /api/products is provided by spec but not used by frontend"
        )

    def test_templates_match_concrete_paths(self, checker: ConsistencyChecker) -> None:
        result = checker.compare(
            _code("fetch(`/api/users/${id}`)\naxios.get('/api/users/42')"),
            _spec_surface(("/api/users/{userId}", "get")),
        )
        assert IssueType.ENDPOINT_MISSING not in _types(result)
        assert IssueType.ENDPOINT_EXTRA not in _types(result)

    def test_trailing_slash_and_query_ignored(self, checker: ConsistencyChecker) -> None:
        result = checker.compare(
            _code("axios.get('/api/users/?page=2')"), _spec_surface(("/api/users", "get"))
        )
        assert result.issues == ()

    def test_frontend_against_petstore(
        self, checker: ConsistencyChecker, frontend: ApiSurface, petstore_spec: NormalizedSpec
    ) -> None:
        result = checker.compare(frontend, ApiSurface.from_spec("spec", petstore_spec))
        assert _types(result) == [
            IssueType.ENDPOINT_MISSING,
            IssueType.ENDPOINT_MISSING,
            IssueType.ENDPOINT_EXTRA,
            IssueType.ENDPOINT_EXTRA,
            IssueType.PARAMETER_EXTRA,
            IssueType.PARAMETER_EXTRA,
        ]
        assert [i.suggestions for i in result.errors] == [
            ("/pets", "/pets/{petId}"),
            ("/pets", "/pets/{petId}"),
        ]
        assert result.summary.compatibility_score == 0
        assert result.summary.missing_endpoints == 2
        assert result.summary.extra_endpoints == 2


# ---------------------------------------------------------------------------
# Methods
# ---------------------------------------------------------------------------


class TestMethods:
    def test_unused_backend_methods(self, checker: ConsistencyChecker) -> None:
        backend = _code(
            "app.get('/api/users', h)\napp.post('/api/users', h)\napp.delete('/api/users', h)",
            label="backend",
        )
        result = checker.compare(_code("axios.get('/api/users')"), backend)
        assert _types(result) == [IssueType.METHOD_MISMATCH, IssueType.METHOD_MISMATCH]
        assert [i.method for i in result.issues] == ["POST", "DELETE"]
        assert all(i.severity == Severity.ERROR for i in result.issues)
        assert result.issues[0].message == (
            "backend supports POST /api/users, but frontend never uses it"
        )
        assert result.issues[0].location.line == 2

    def test_unsupported_method_suggests_alternative(
        self, checker: ConsistencyChecker
    ) -> None:
        result = checker.compare(
            _code("axios.put('/api/users')"), _spec_surface(("/api/users", "post"))
        )
        unsupported, unused = result.issues
        assert unsupported.method == "PUT"
        assert unsupported.suggestion == "POST"
        assert unsupported.message == "frontend uses PUT /api/users, but spec only supports POST"
        assert unused.method == "POST"
        assert unused.suggestion is None

    def test_no_methods_on_one_side_skips_comparison(
        self, checker: ConsistencyChecker
    ) -> None:
        result = checker.compare(
            _code("const url = '/api/users';"), _spec_surface(("/api/users", "post"))
        )
        assert result.issues == ()

    def test_non_verb_token_is_invalid_method(self, checker: ConsistencyChecker) -> None:
        result = checker.compare(
            _code("api.fetchUsers('/api/users')"), _spec_surface(("/api/users", "get"))
        )
        (issue,) = result.issues
        assert issue.type == IssueType.INVALID_METHOD
        assert issue.method == "FETCHUSERS"
        assert not result.is_compatible

    def test_strict_detection_avoids_invalid_method(self, checker: ConsistencyChecker) -> None:
        features = PatternFeatureExtractor(
            ExtractorConfig(strict_method_detection=True)
        ).extract_all("api.fetchUsers('/api/users')")
        result = checker.compare(
            ApiSurface.from_features("frontend", features),
            _spec_surface(("/api/users", "get")),
        )
        assert result.issues == ()


# ---------------------------------------------------------------------------
# Schemas and parameters
# ---------------------------------------------------------------------------


class TestSchemasAndParameters:
    def test_schema_missing_from_spec(
        self, checker: ConsistencyChecker, petstore_spec: NormalizedSpec
    ) -> None:
        source = _code("interface Order { id: number }\ninterface Pet { id: number }")
        result = checker.compare(source, ApiSurface.from_spec("spec", petstore_spec))
        schema_issues = [i for i in result.issues if i.type == IssueType.SCHEMA_MISSING]
        assert len(schema_issues) == 1
        assert "Type 'Order' declared in frontend" in schema_issues[0].message
        assert schema_issues[0].suggestion == "Error"
        assert schema_issues[0].severity == Severity.WARNING

    def test_schemas_ignored_without_spec(self, checker: ConsistencyChecker) -> None:
        result = checker.compare(_code("interface Order {}"), _code("", label="backend"))
        assert IssueType.SCHEMA_MISSING not in _types(result)

    def test_untyped_parameter(self, checker: ConsistencyChecker) -> None:
        result = checker.compare(_code("function f(id) {}"), _code("", label="backend"))
        (issue,) = result.issues
        assert issue.type == IssueType.PARAMETER_MISSING_TYPE
        assert issue.message == "Parameter 'id' in frontend has no type annotation"

    def test_extra_parameters(
        self, checker: ConsistencyChecker, frontend: ApiSurface, petstore_spec: NormalizedSpec
    ) -> None:
        result = checker.compare(frontend, ApiSurface.from_spec("spec", petstore_spec))
        extra = [i for i in result.issues if i.type == IssueType.PARAMETER_EXTRA]
        assert [i.message for i in extra] == [
            "Parameter 'pet' in frontend is not declared by spec",
            "Parameter 'id' in frontend is not declared by spec",
        ]

    def test_ignore_minor_differences(
        self, frontend: ApiSurface, petstore_spec: NormalizedSpec
    ) -> None:
        checker = ConsistencyChecker(CheckOptions(ignore_minor_differences=True))
        result = checker.compare(frontend, ApiSurface.from_spec("spec", petstore_spec))
        assert IssueType.PARAMETER_EXTRA not in _types(result)

    def test_required_parameter_missing(self, checker: ConsistencyChecker) -> None:
        target = _spec_with_parameters(
            "/api/users",
            "get",
            ParameterDescriptor(name="q", location=ParameterLocation.QUERY, required=True),
            ParameterDescriptor(name="page", location=ParameterLocation.QUERY),
        )
        result = checker.compare(_code("axios.get('/api/users')"), target)
        (issue,) = result.issues
        assert issue.type == IssueType.PARAMETER_MISSING
        assert issue.severity == Severity.WARNING
        assert issue.message == (
            "Required query parameter 'q' of GET /api/users in spec is not sent by frontend"
        )
        assert (issue.path, issue.method, issue.location.line) == ("/api/users", "GET", 1)
        assert result.is_compatible

    def test_required_parameter_sent(self, checker: ConsistencyChecker) -> None:
        target = _spec_with_parameters(
            "/api/users",
            "get",
            ParameterDescriptor(
                name="q", location=ParameterLocation.QUERY, required=True, schema_type="string"
            ),
        )
        source = _code("function search(q: string) {}\naxios.get('/api/users')")
        assert checker.compare(source, target).issues == ()

    def test_path_parameters_come_from_the_path(self, checker: ConsistencyChecker) -> None:
        target = _spec_with_parameters(
            "/api/users/{id}",
            "get",
            ParameterDescriptor(name="id", location=ParameterLocation.PATH, required=True),
        )
        assert checker.compare(_code("axios.get('/api/users/42')"), target).issues == ()

    def test_required_parameter_of_unused_method_ignored(
        self, checker: ConsistencyChecker
    ) -> None:
        spec = NormalizedSpec(
            version="3.0.3",
            format=SpecFormat.OPENAPI,
            operations=[
                OperationDescriptor(path="/api/users", method=HTTPMethod.GET),
                OperationDescriptor(
                    path="/api/users",
                    method=HTTPMethod.POST,
                    parameters=[ParameterDescriptor(
                        name="q", location=ParameterLocation.QUERY, required=True
                    )],
                ),
            ],
        )
        result = checker.compare(
            _code("axios.get('/api/users')"), ApiSurface.from_spec("spec", spec)
        )
        assert _types(result) == [IssueType.METHOD_MISMATCH]

    def test_type_mismatch_against_spec(self, checker: ConsistencyChecker) -> None:
        target = _spec_with_parameters(
            "/api/users",
            "get",
            ParameterDescriptor(
                name="limit", location=ParameterLocation.QUERY, schema_type="integer"
            ),
        )
        result = checker.compare(
            _code("function list(limit: string) {}\naxios.get('/api/users')"), target
        )
        (issue,) = result.issues
        assert issue.type == IssueType.PARAMETER_TYPE_MISMATCH
        assert issue.severity == Severity.WARNING
        assert issue.message == "Parameter 'limit' is string in frontend but integer in spec"
        assert issue.location.line == 1

    def test_type_aliases_agree(self, checker: ConsistencyChecker) -> None:
        target = _spec_with_parameters(
            "/api/users",
            "get",
            ParameterDescriptor(
                name="limit", location=ParameterLocation.QUERY, schema_type="integer"
            ),
        )
        source = _code("function list(limit: number) {}\naxios.get('/api/users')")
        assert checker.compare(source, target).issues == ()

    def test_type_mismatch_between_code_sides(self, checker: ConsistencyChecker) -> None:
        source = _code("function getUser(id: number) {}\naxios.get('/api/users')")
        target = _code("def get_user(id: str):\n    pass\napp.get('/api/users', h)", "backend")
        result = checker.compare(source, target)
        assert _types(result) == [IssueType.PARAMETER_TYPE_MISMATCH]
        assert result.issues[0].message == (
            "Parameter 'id' is number in frontend but str in backend"
        )

    def test_no_shared_path_no_parameter_comparison(
        self, checker: ConsistencyChecker
    ) -> None:
        target = _spec_with_parameters(
            "/api/orders",
            "get",
            ParameterDescriptor(
                name="limit", location=ParameterLocation.QUERY, required=True,
                schema_type="integer",
            ),
        )
        result = checker.compare(
            _code("function list(limit: string) {}\naxios.get('/api/users')"), target
        )
        assert IssueType.PARAMETER_MISSING not in _types(result)
        assert IssueType.PARAMETER_TYPE_MISMATCH not in _types(result)


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


def _ten_calls_one_extra() -> tuple[ApiSurface, ApiSurface]:
    source = _code("\n".join(f"axios.get('/api/a{i}')" for i in range(10)))
    target = _spec_surface(*[(f"/api/a{i}", "get") for i in range(10)], ("/api/extra", "get"))
    return source, target


class TestOptions:
    def test_score_uses_both_sides(self, checker: ConsistencyChecker) -> None:
        result = checker.compare(*_ten_calls_one_extra())
        assert _types(result) == [IssueType.ENDPOINT_EXTRA]
        assert result.is_compatible
        # 100 - 5 / 21 * 100
        assert result.summary.compatibility_score == 76

    def test_warnings_filtered_but_still_scored(self) -> None:
        checker = ConsistencyChecker(CheckOptions(include_warnings=False))
        result = checker.compare(*_ten_calls_one_extra())
        assert result.issues == ()
        assert result.summary.suppressed_count == 1
        assert result.summary.total_issues == 0
        assert result.summary.compatibility_score == 76
        assert result.recommendations == ()

    def test_severity_override(self) -> None:
        checker = ConsistencyChecker(
            CheckOptions(severity_overrides={IssueType.ENDPOINT_EXTRA: Severity.ERROR})
        )
        result = checker.compare(*_ten_calls_one_extra())
        assert not result.is_compatible
        assert result.errors[0].type == IssueType.ENDPOINT_EXTRA

    def test_suggestion_limit(self) -> None:
        checker = ConsistencyChecker(CheckOptions(max_suggestions=1))
        result = checker.compare(
            _code("axios.get('/api/pets')"), _spec_surface(("/pets", "get"), ("/pets/{id}", "get"))
        )
        assert result.errors[0].suggestions == ("/pets",)


# ---------------------------------------------------------------------------
# Custom rules
# ---------------------------------------------------------------------------


class TestCustomRules:
    def test_rule_runs_and_is_recorded(self) -> None:
        checker = ConsistencyChecker(CheckOptions(custom_rules=["no-trailing-slash"]))
        result = checker.compare(_code("app.get('/users/', h)"), _code("app.get('/users', h)"))
        (issue,) = result.issues
        assert issue.type == IssueType.CUSTOM
        assert issue.rule == "no-trailing-slash"
        assert result.metadata.rules_applied[-1] == "no-trailing-slash"

    def test_unknown_rule_skipped(self) -> None:
        checker = ConsistencyChecker(CheckOptions(custom_rules=["no-such-rule"]))
        result = checker.compare(_code(""), _code(""))
        assert "no-such-rule" not in result.metadata.rules_applied
        assert result.issues == ()

    def test_failing_rule_skipped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def explode(ctx):
            raise RuntimeError("boom")

        monkeypatch.setitem(BUILTIN_RULES, "explode", explode)
        checker = ConsistencyChecker(CheckOptions(custom_rules=["explode"]))
        result = checker.compare(_code(""), _code(""))
        assert "explode" not in result.metadata.rules_applied
        assert result.is_compatible


# ---------------------------------------------------------------------------
# Result properties
# ---------------------------------------------------------------------------


class TestResult:
    def test_empty_inputs(self, checker: ConsistencyChecker) -> None:
        result = checker.compare(_code(""), _code("", label="backend"))
        assert result.is_compatible
        assert result.issues == ()
        assert result.summary.compatibility_score == 100

    def test_metadata(self, checker: ConsistencyChecker, petstore_spec: NormalizedSpec) -> None:
        result = checker.compare(
            _code("axios.get('/pets')", label="web"),
            ApiSurface.from_spec("openapi", petstore_spec),
            degraded_sides=("web",),
        )
        meta = result.metadata
        assert (meta.source_label, meta.target_label) == ("web", "openapi")
        assert (meta.source_endpoint_count, meta.target_endpoint_count) == (1, 2)
        assert meta.degraded_sides == ("web",)
        assert meta.spec_version == "3.0.3"
        assert meta.rules_applied[0] == "endpoint-consistency"
        assert meta.duration_ms >= 0

    def test_repeatable(self, checker: ConsistencyChecker, frontend: ApiSurface,
                        petstore_spec: NormalizedSpec) -> None:
        target = ApiSurface.from_spec("spec", petstore_spec)
        first = checker.compare(frontend, target)
        second = checker.compare(frontend, target)
        assert first.issues == second.issues
        assert first.summary == second.summary

    def test_swapping_sides_swaps_missing_and_extra(self, checker: ConsistencyChecker) -> None:
        a = _code("axios.get('/api/a')\naxios.get('/api/shared')")
        b = _code("app.get('/api/b', h)\napp.get('/api/shared', h)", label="backend")
        forward = checker.compare(a, b).summary
        backward = checker.compare(b, a).summary
        assert forward.missing_endpoints == backward.extra_endpoints == 1
        assert forward.extra_endpoints == backward.missing_endpoints == 1

    def test_result_is_immutable(self, checker: ConsistencyChecker) -> None:
        result = checker.compare(_code(""), _code(""))
        with pytest.raises(ValidationError):
            result.is_compatible = False

    def test_recommendations_ordered_by_priority(
        self, checker: ConsistencyChecker, frontend: ApiSurface, petstore_spec: NormalizedSpec
    ) -> None:
        result = checker.compare(frontend, ApiSurface.from_spec("spec", petstore_spec))
        assert [(r.priority, r.category) for r in result.recommendations] == [
            ("high", "compatibility"),
            ("high", "compatibility"),
            ("low", "maintainability"),
            ("low", "compatibility"),
        ]
        assert result.recommendations[0].text == "2 endpoint(s) are called but not provided"
        assert result.recommendations[1].text == "Low compatibility score: 0%"
