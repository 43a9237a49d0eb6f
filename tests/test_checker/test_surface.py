"""Tests for specmatch.checker.surface."""

from __future__ import annotations

from pathlib import Path

import pytest

from specmatch.analysis import PatternFeatureExtractor
from specmatch.checker.surface import (
    ApiSurface,
    is_template,
    normalize_path,
    paths_equivalent,
    template_key,
)
from specmatch.models import (
    CodeFeatureSet,
    EndpointFeature,
    ExtractorConfig,
    MethodFeature,
    NormalizedSpec,
)

CODE_DIR = Path(__file__).parent.parent / "fixtures" / "code"


def _surface(text: str, label: str = "frontend") -> ApiSurface:
    features = PatternFeatureExtractor(ExtractorConfig()).extract_all(text)
    return ApiSurface.from_features(label, features)


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


class TestNormalizePath:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("/users/", "/users"),
            ("/users?page=1", "/users"),
            ("/users/?page=1", "/users"),
            ("/docs#intro", "/docs"),
            ("/", "/"),
            (" /a ", "/a"),
        ],
    )
    def test_normalize(self, raw: str, expected: str) -> None:
        assert normalize_path(raw) == expected


class TestPathsEquivalent:
    @pytest.mark.parametrize(
        "a,b",
        [
            ("/users/{id}", "/users/42"),
            ("/users/{id}", "/users/:userId"),
            ("/users/<int:id>", "/users/7"),
            ("/api/pets/${id}", "/api/pets/{petId}"),
            ("/users/", "/users"),
            ("/users/42", "/users/{id}"),
        ],
    )
    def test_equivalent(self, a: str, b: str) -> None:
        assert paths_equivalent(a, b)

    @pytest.mark.parametrize(
        "a,b",
        [
            ("/users", "/users/42"),
            ("/users/{id}", "/users/42/posts"),
            ("/users", "/orders"),
            ("/api/users", "/users"),
        ],
    )
    def test_not_equivalent(self, a: str, b: str) -> None:
        assert not paths_equivalent(a, b)

    def test_literal_segments_are_escaped(self) -> None:
        assert not paths_equivalent("/a.b", "/axb")


class TestTemplates:
    def test_is_template(self) -> None:
        assert is_template("/users/{id}")
        assert is_template("/users/:id")
        assert not is_template("/users/me")

    def test_template_key(self) -> None:
        assert template_key("/users/{id}/posts/:pid") == "/users/{}/posts/{}"
        assert template_key("/users/") == "/users"


# ---------------------------------------------------------------------------
# Surfaces
# ---------------------------------------------------------------------------


class TestFromFeatures:
    def test_frontend_fixture(self) -> None:
        surface = _surface((CODE_DIR / "frontend" / "api.ts").read_text(encoding="utf-8"))
        assert surface.label == "frontend"
        assert not surface.is_spec
        assert surface.paths == ["/api/pets", "/api/pets/${id}"]
        pets = surface.endpoints[0]
        assert pets.methods == ["GET", "POST"]
        assert pets.method_lines == {"GET": 9, "POST": 14}
        assert (pets.location.side, pets.location.line) == ("frontend", 9)
        assert surface.endpoints[1].methods == []
        assert [s.name for s in surface.schema_names] == ["Pet"]

    def test_trailing_config_method_attached(self) -> None:
        surface = _surface("request({\n  url: '/api/orders',\n  method: 'post',\n})")
        assert surface.endpoints[0].methods == ["POST"]

    def test_other_methods_below_not_attached(self) -> None:
        surface = _surface("axios.get('/api/a')\nclient.post(payload)")
        assert surface.endpoints[0].methods == ["GET"]

    def test_spellings_collapse_into_one_endpoint(self) -> None:
        surface = _surface("app.get('/users/', h)\napp.get('/users', h)")
        assert surface.paths == ["/users"]
        assert surface.endpoints[0].spellings == ["/users/", "/users"]

    def test_same_line_in_other_file_not_attached(self) -> None:
        features = CodeFeatureSet(
            endpoints=[EndpointFeature(path="/a", line=1, raw_match="'/a'", file="a.ts")],
            methods=[MethodFeature(method="GET", line=1, raw_match=".get(", file="b.ts")],
        )
        assert ApiSurface.from_features("x", features).endpoints[0].methods == []

    def test_parameter_names(self) -> None:
        surface = _surface("function f(id: string, limit: number) {}")
        assert surface.parameter_names() == {"id", "limit"}


class TestFromSpec:
    def test_petstore(self, petstore_spec: NormalizedSpec) -> None:
        surface = ApiSurface.from_spec("spec", petstore_spec)
        assert surface.is_spec
        assert surface.paths == ["/pets", "/pets/{petId}"]
        assert set(surface.endpoints[0].methods) == {"GET", "POST"}
        assert set(surface.endpoints[1].methods) == {"GET", "DELETE"}
        assert surface.endpoints[0].location is None

    def test_find_matches_templates(self, petstore_spec: NormalizedSpec) -> None:
        surface = ApiSurface.from_spec("spec", petstore_spec)
        assert surface.find("/pets/42").path == "/pets/{petId}"
        assert surface.find("/pets/").path == "/pets"
        assert surface.find("/owners") is None

    def test_parameter_names(self, petstore_spec: NormalizedSpec) -> None:
        assert ApiSurface.from_spec("spec", petstore_spec).parameter_names() == {
            "limit",
            "petId",
        }
