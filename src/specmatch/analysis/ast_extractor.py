"""AST-based feature extraction for Python sources.

Parses the text with :mod:`ast` instead of matching regular expressions, which
removes most false positives of the pattern extractor on Python code.  It
recognises:

* Route decorators: ``@router.get("/path")``, ``@app.post("/path")``, and
  ``@app.route("/path", methods=["GET", "POST"])``.
* ``APIRouter(prefix=...)`` assignments and
  ``app.include_router(router, prefix=...)`` calls, which are prepended to
  decorator paths.
* HTTP client calls with a literal path: ``requests.get("/api/users")``,
  ``client.post("/items")``, ``session.request("DELETE", "/items/1")``.
* Class definitions as schema names, and function arguments as parameters.

Text that is not valid Python raises :class:`SyntaxError`; the total
:func:`~specmatch.analysis.extractor.extract` turns that into a degraded,
empty result.
"""

from __future__ import annotations

import ast
from typing import Optional

from specmatch.analysis.base import IGNORED_PARAMETERS, FeatureExtractor
from specmatch.models import (
    CodeFeatureSet,
    EndpointFeature,
    MethodFeature,
    ParameterFeature,
    SchemaFeature,
)

# HTTP methods recognised on decorator and call attributes: the canonical verbs only.
_HTTP_METHODS = frozenset({"get", "post", "put", "patch", "delete", "head", "options"})

_Route = tuple[str, list[str], ast.Call, str]


class PythonAstExtractor(FeatureExtractor):
    """Extract code features from Python source by walking its syntax tree.

    The extractor keeps no state between calls.  :meth:`extract_all` parses
    the text once and runs every pass over that tree.
    """

    @property
    def name(self) -> str:
        return "python-ast"

    def extract_all(self, text: str) -> CodeFeatureSet:
        tree = ast.parse(text)
        routes = _routes(tree)
        return CodeFeatureSet(
            endpoints=_endpoints(text, routes),
            methods=_methods(text, routes),
            schema_names=_schemas(tree),
            parameters=_parameters(tree),
        )

    def extract_endpoints(self, text: str) -> list[EndpointFeature]:
        return _endpoints(text, _routes(ast.parse(text)))

    def extract_methods(self, text: str) -> list[MethodFeature]:
        return _methods(text, _routes(ast.parse(text)))

    def extract_schemas(self, text: str) -> list[SchemaFeature]:
        return _schemas(ast.parse(text))

    def extract_parameters(self, text: str) -> list[ParameterFeature]:
        return _parameters(ast.parse(text))


# --- Routes ---


def _routes(tree: ast.Module) -> list[_Route]:
    """Return ``(path, methods, call_node, rule)`` for every route site."""
    router_prefixes = _resolve_router_prefixes(tree)
    include_prefixes = _resolve_include_router_prefixes(tree)

    routes: list[_Route] = []
    decorator_ids: set[int] = set()

    for node in ast.walk(tree):
        if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            continue
        for decorator in node.decorator_list:
            parsed = _parse_route_decorator(decorator, router_prefixes, include_prefixes)
            if parsed is None:
                continue
            decorator_ids.add(id(decorator))
            path, methods = parsed
            routes.append((path, methods, decorator, "decorator"))

    for node in ast.walk(tree):
        if not isinstance(node, ast.Call) or id(node) in decorator_ids:
            continue
        parsed = _parse_client_call(node)
        if parsed is not None:
            path, methods = parsed
            routes.append((path, methods, node, "client-call"))

    routes.sort(key=lambda r: (r[2].lineno, r[2].col_offset))
    return routes


def _endpoints(text: str, routes: list[_Route]) -> list[EndpointFeature]:
    return [
        EndpointFeature(
            path=path,
            line=call.lineno,
            raw_match=_segment(text, call),
            pattern=rule,
        )
        for path, _, call, rule in routes
    ]


def _methods(text: str, routes: list[_Route]) -> list[MethodFeature]:
    methods: list[MethodFeature] = []
    for _, verbs, call, rule in routes:
        raw = _segment(text, call)
        for verb in verbs:
            methods.append(
                MethodFeature(method=verb, line=call.lineno, raw_match=raw, pattern=rule)
            )
    return methods


# --- Declarations ---


def _schemas(tree: ast.Module) -> list[SchemaFeature]:
    schemas = [
        SchemaFeature(name=node.name, line=node.lineno)
        for node in ast.walk(tree)
        if isinstance(node, ast.ClassDef)
    ]
    schemas.sort(key=lambda s: s.line)
    return schemas


def _parameters(tree: ast.Module) -> list[ParameterFeature]:
    params: list[ParameterFeature] = []
    for node in ast.walk(tree):
        if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            continue
        args = node.args
        all_args = [*args.posonlyargs, *args.args, *args.kwonlyargs]
        if args.vararg is not None:
            all_args.append(args.vararg)
        if args.kwarg is not None:
            all_args.append(args.kwarg)
        for arg in all_args:
            if arg.arg in IGNORED_PARAMETERS:
                continue
            params.append(
                ParameterFeature(
                    name=arg.arg,
                    type=ast.unparse(arg.annotation) if arg.annotation is not None else None,
                    line=arg.lineno,
                )
            )
    params.sort(key=lambda p: p.line)
    return params


def _segment(text: str, node: ast.AST) -> str:
    return ast.get_source_segment(text, node) or ast.unparse(node)


def _string_arg(node: ast.expr) -> Optional[str]:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return None


def _parse_route_decorator(
    decorator: ast.expr,
    router_prefixes: dict[str, str],
    include_prefixes: dict[str, str],
) -> Optional[tuple[str, list[str]]]:
    """Extract ``(full_path, methods)`` from a route decorator, or ``None``.

    ``@app.route("/x")`` without ``methods=`` is reported as ``GET``.
    """
    if not isinstance(decorator, ast.Call) or not isinstance(decorator.func, ast.Attribute):
        return None
    if not decorator.args:
        return None
    route_path = _string_arg(decorator.args[0])
    if route_path is None:
        return None

    attr = decorator.func.attr
    if attr in _HTTP_METHODS:
        methods = [attr.upper()]
    elif attr in ("route", "api_route"):
        methods = ["GET"]
        for kw in decorator.keywords:
            if kw.arg == "methods" and isinstance(kw.value, (ast.List, ast.Tuple, ast.Set)):
                listed = [_string_arg(elt) for elt in kw.value.elts]
                methods = [m.upper() for m in listed if m]
    else:
        return None

    prefix = ""
    if isinstance(decorator.func.value, ast.Name):
        var_name = decorator.func.value.id
        # include_router overrides win over the router's own prefix.
        prefix = include_prefixes.get(var_name, router_prefixes.get(var_name, ""))

    full_path = prefix.rstrip("/") + "/" + route_path.lstrip("/") if prefix else route_path
    while "//" in full_path:
        full_path = full_path.replace("//", "/")
    return full_path, methods


def _parse_client_call(call: ast.Call) -> Optional[tuple[str, list[str]]]:
    """Recognise ``x.get("/path")`` and ``x.request("POST", "/path")``."""
    if not isinstance(call.func, ast.Attribute):
        return None
    attr = call.func.attr

    if attr in _HTTP_METHODS and call.args:
        path = _string_arg(call.args[0])
        if path and path.startswith("/"):
            return path, [attr.upper()]
    elif attr == "request" and len(call.args) >= 2:
        verb = _string_arg(call.args[0])
        path = _string_arg(call.args[1])
        if verb and verb.lower() in _HTTP_METHODS and path and path.startswith("/"):
            return path, [verb.upper()]
    return None


def _resolve_router_prefixes(tree: ast.Module) -> dict[str, str]:
    """Find ``router = APIRouter(prefix="...")`` assignments."""
    prefixes: dict[str, str] = {}
    for node in ast.walk(tree):
        if not isinstance(node, ast.Assign):
            continue
        if len(node.targets) != 1 or not isinstance(node.targets[0], ast.Name):
            continue
        call = node.value
        if not isinstance(call, ast.Call):
            continue
        if _get_call_name(call) not in ("APIRouter", "Router", "Blueprint"):
            continue
        for kw in call.keywords:
            if kw.arg in ("prefix", "url_prefix"):
                value = _string_arg(kw.value)
                if value is not None:
                    prefixes[node.targets[0].id] = value
                    break
    return prefixes


def _resolve_include_router_prefixes(tree: ast.Module) -> dict[str, str]:
    """Find ``app.include_router(router, prefix="...")`` calls."""
    prefixes: dict[str, str] = {}
    for node in ast.walk(tree):
        if not isinstance(node, ast.Expr) or not isinstance(node.value, ast.Call):
            continue
        call = node.value
        if not isinstance(call.func, ast.Attribute):
            continue
        if call.func.attr not in ("include_router", "register_blueprint"):
            continue
        if not call.args or not isinstance(call.args[0], ast.Name):
            continue
        for kw in call.keywords:
            if kw.arg in ("prefix", "url_prefix"):
                value = _string_arg(kw.value)
                if value is not None:
                    prefixes[call.args[0].id] = value
                    break
    return prefixes


def _get_call_name(call: ast.Call) -> Optional[str]:
    """Return the simple name of a Call node's function."""
    if isinstance(call.func, ast.Name):
        return call.func.id
    if isinstance(call.func, ast.Attribute):
        return call.func.attr
    return None
