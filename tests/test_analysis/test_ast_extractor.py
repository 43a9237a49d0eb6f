"""Tests for specmatch.analysis.ast_extractor."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from specmatch.analysis.ast_extractor import PythonAstExtractor

BACKEND = Path(__file__).parent.parent / "fixtures" / "code" / "backend" / "app.py"


@pytest.fixture
def extractor() -> PythonAstExtractor:
    return PythonAstExtractor()


def _routes(extractor: PythonAstExtractor, source: str) -> list[tuple[str, str, int]]:
    text = textwrap.dedent(source)
    endpoints = extractor.extract_endpoints(text)
    methods = extractor.extract_methods(text)
    by_line = {m.line: m.method for m in methods}
    return [(e.path, by_line.get(e.line, ""), e.line) for e in endpoints]


class TestFastAPI:
    def test_router_prefix_applied(self, extractor: PythonAstExtractor) -> None:
        text = BACKEND.read_text(encoding="utf-8")
        endpoints = extractor.extract_endpoints(text)
        assert [(e.path, e.line, e.pattern) for e in endpoints] == [
            ("/api/pets/", 13, "decorator"),
            ("/api/pets/", 18, "decorator"),
            ("/api/pets/{id}", 23, "decorator"),
        ]
        assert [m.method for m in extractor.extract_methods(text)] == ["GET", "POST", "GET"]

    def test_raw_match_is_decorator_source(self, extractor: PythonAstExtractor) -> None:
        text = BACKEND.read_text(encoding="utf-8")
        assert extractor.extract_endpoints(text)[0].raw_match == 'router.get("/")'

    def test_include_router_prefix_wins(self, extractor: PythonAstExtractor) -> None:
        source = """\
            router = APIRouter(prefix="/items")

            @router.delete("/{item_id}")
            async def remove(item_id: int):
                pass

            app.include_router(router, prefix="/v2/items")
        """
        assert _routes(extractor, source) == [("/v2/items/{item_id}", "DELETE", 3)]

    def test_plain_app_routes(self, extractor: PythonAstExtractor) -> None:
        source = """\
            @app.put("/users/{user_id}")
            def update(user_id: str):
                pass
        """
        assert _routes(extractor, source) == [("/users/{user_id}", "PUT", 1)]

    def test_non_literal_paths_skipped(self, extractor: PythonAstExtractor) -> None:
        source = """\
            @app.get(PATH)
            def handler():
                pass
        """
        assert extractor.extract_endpoints(textwrap.dedent(source)) == []

    def test_trace_routes_not_reported(self, extractor: PythonAstExtractor) -> None:
        source = """\
            @app.trace("/debug")
            def debug():
                pass

            requests.trace("/debug")
        """
        assert _routes(extractor, source) == []


class TestFlask:
    def test_route_with_methods(self, extractor: PythonAstExtractor) -> None:
        text = textwrap.dedent("""\
            @app.route("/items", methods=["GET", "POST"])
            def items():
                pass
        """)
        assert [e.path for e in extractor.extract_endpoints(text)] == ["/items"]
        assert [m.method for m in extractor.extract_methods(text)] == ["GET", "POST"]

    def test_route_defaults_to_get(self, extractor: PythonAstExtractor) -> None:
        text = textwrap.dedent("""\
            bp = Blueprint("orders", __name__, url_prefix="/api/orders")

            @bp.route("/<int:order_id>")
            def show(order_id):
                pass
        """)
        assert [e.path for e in extractor.extract_endpoints(text)] == [
            "/api/orders/<int:order_id>"
        ]
        assert [m.method for m in extractor.extract_methods(text)] == ["GET"]


class TestClientCalls:
    def test_http_client_calls(self, extractor: PythonAstExtractor) -> None:
        source = """\
            import requests

            users = requests.get("/api/users", timeout=5)
            session.request("DELETE", "/api/users/1")
            client.post("/api/users", json={})
        """
        assert _routes(extractor, source) == [
            ("/api/users", "GET", 3),
            ("/api/users/1", "DELETE", 4),
            ("/api/users", "POST", 5),
        ]

    def test_absolute_urls_and_dict_get_ignored(self, extractor: PythonAstExtractor) -> None:
        source = """\
            requests.get("https://example.com/api/users")
            config.get("timeout")
        """
        assert extractor.extract_endpoints(textwrap.dedent(source)) == []


class TestDeclarations:
    def test_classes_as_schemas(self, extractor: PythonAstExtractor) -> None:
        text = BACKEND.read_text(encoding="utf-8")
        assert [(s.name, s.line) for s in extractor.extract_schemas(text)] == [("Pet", 8)]

    def test_parameters_with_annotations(self, extractor: PythonAstExtractor) -> None:
        text = textwrap.dedent("""\
            def handler(request, user_id: int, q: Optional[str] = None, *args, **extra):
                pass

            class View:
                def get(self, page):
                    pass
        """)
        params = extractor.extract_parameters(text)
        assert [(p.name, p.type) for p in params] == [
            ("user_id", "int"),
            ("q", "Optional[str]"),
            ("args", None),
            ("extra", None),
            ("page", None),
        ]

    def test_fixture_parameters(self, extractor: PythonAstExtractor) -> None:
        text = BACKEND.read_text(encoding="utf-8")
        assert [(p.name, p.type) for p in extractor.extract_parameters(text)] == [
            ("limit", "int"),
            ("pet", "Pet"),
            ("id", "str"),
        ]


class TestStateless:
    def test_extract_all_matches_single_passes(self, extractor: PythonAstExtractor) -> None:
        text = BACKEND.read_text(encoding="utf-8")
        features = extractor.extract_all(text)
        assert features.endpoints == extractor.extract_endpoints(text)
        assert features.methods == extractor.extract_methods(text)
        assert features.schema_names == extractor.extract_schemas(text)
        assert features.parameters == extractor.extract_parameters(text)

    def test_interleaved_texts(self, extractor: PythonAstExtractor) -> None:
        first = BACKEND.read_text(encoding="utf-8")
        second = '@app.post("/orders")\ndef create(order: Order):\n    pass\n'
        before = extractor.extract_all(first)
        assert [e.path for e in extractor.extract_all(second).endpoints] == ["/orders"]
        assert extractor.extract_all(first) == before
        assert vars(extractor) == {}


class TestInvalidSource:
    def test_syntax_error_raises(self, extractor: PythonAstExtractor) -> None:
        with pytest.raises(SyntaxError):
            extractor.extract_all("interface Pet { name: string }")

    def test_name(self, extractor: PythonAstExtractor) -> None:
        assert extractor.name == "python-ast"
