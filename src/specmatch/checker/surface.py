"""Comparable API surfaces.

An :class:`ApiSurface` is the view of one side of a comparison that the
checker works on: the distinct endpoint paths, the HTTP method tokens tied to
each path, the declared schema names, and the parameters.  It can be built
from a code feature set or from a normalized spec, so code-vs-code and
code-vs-spec comparisons share one algorithm.

Path matching treats placeholder segments (``{id}``, ``:id``, ``<id>``,
``<int:id>``, ``${id}``) as wildcards: ``/users/{id}`` matches ``/users/42``
and ``/users/:userId``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from specmatch.models import (
    CodeFeatureSet,
    MethodFeature,
    NormalizedSpec,
    ParameterFeature,
    SchemaFeature,
    SourceLocation,
)

# Placeholder segments in the syntaxes used by OpenAPI, Express, Flask, and
# JavaScript template literals.
_PLACEHOLDER = re.compile(r"^(?:\{[^/{}]+\}|:[A-Za-z_]\w*|<(?:\w+:)?\w+>|\$\{[^/{}]+\})$")

# Method features outside the endpoint's own line that still belong to it.
_TRAILING_METHOD_PATTERNS = frozenset({"config-method"})


def normalize_path(path: str) -> str:
    """Strip a query string, fragment, and trailing slash from *path*."""
    path = path.split("?", 1)[0].split("#", 1)[0].strip()
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


@lru_cache(maxsize=1024)
def path_pattern(path: str) -> re.Pattern[str]:
    """Compile *path* into an anchored pattern with placeholder wildcards."""
    segments = normalize_path(path).split("/")
    parts = ["[^/]+" if _PLACEHOLDER.match(seg) else re.escape(seg) for seg in segments]
    return re.compile("/".join(parts))


def is_template(path: str) -> bool:
    """True when *path* contains at least one placeholder segment."""
    return any(_PLACEHOLDER.match(seg) for seg in normalize_path(path).split("/"))


def template_key(path: str) -> str:
    """Return *path* with every placeholder segment replaced by ``{}``."""
    return "/".join(
        "{}" if _PLACEHOLDER.match(seg) else seg for seg in normalize_path(path).split("/")
    )


def paths_equivalent(a: str, b: str) -> bool:
    """True when either path, as a template, matches the other in full."""
    a_norm, b_norm = normalize_path(a), normalize_path(b)
    if a_norm == b_norm:
        return True
    return bool(path_pattern(a_norm).fullmatch(b_norm) or path_pattern(b_norm).fullmatch(a_norm))


@dataclass
class SurfaceEndpoint:
    """One distinct path of a surface.

    Attributes:
        path: The path as first seen, normalized.
        methods: Upper-cased method tokens tied to the path, in first-seen
            order.  May contain non-HTTP tokens.
        location: Where the path was first seen; ``None`` for spec paths.
        method_lines: First line each method token was seen on.
        spellings: Every raw form of the path, before normalization.
    """

    path: str
    methods: list[str] = field(default_factory=list)
    location: Optional[SourceLocation] = None
    method_lines: dict[str, Optional[int]] = field(default_factory=dict)
    spellings: list[str] = field(default_factory=list)

    def add_method(self, method: str, line: Optional[int]) -> None:
        if method not in self.methods:
            self.methods.append(method)
            self.method_lines[method] = line


@dataclass
class ApiSurface:
    """The comparable view of one side.

    Attributes:
        label: Side name used in locations and messages.
        endpoints: Distinct paths in first-seen order.
        schema_names: Declared type names (code surfaces only).
        parameters: Declared parameters (code surfaces only).
        spec: The spec the surface was built from, if any.
    """

    label: str
    endpoints: list[SurfaceEndpoint] = field(default_factory=list)
    schema_names: list[SchemaFeature] = field(default_factory=list)
    parameters: list[ParameterFeature] = field(default_factory=list)
    spec: Optional[NormalizedSpec] = None

    @property
    def is_spec(self) -> bool:
        return self.spec is not None

    @property
    def paths(self) -> list[str]:
        return [e.path for e in self.endpoints]

    def find(self, path: str) -> Optional[SurfaceEndpoint]:
        """Return the first endpoint equivalent to *path*."""
        for endpoint in self.endpoints:
            if paths_equivalent(endpoint.path, path):
                return endpoint
        return None

    def parameter_names(self) -> set[str]:
        """Names of every parameter the side declares."""
        if self.spec is not None:
            return {p.name for op in self.spec.operations for p in op.parameters}
        return {p.name for p in self.parameters}

    def _endpoint(self, path: str, location: Optional[SourceLocation]) -> SurfaceEndpoint:
        normalized = normalize_path(path)
        for endpoint in self.endpoints:
            if endpoint.path == normalized:
                break
        else:
            endpoint = SurfaceEndpoint(path=normalized, location=location)
            self.endpoints.append(endpoint)
        if path not in endpoint.spellings:
            endpoint.spellings.append(path)
        return endpoint

    @classmethod
    def from_features(
        cls, label: str, features: CodeFeatureSet, method_window: int = 3
    ) -> ApiSurface:
        """Build a surface from extracted code features.

        A method token belongs to an endpoint when it was found on the same
        line (and in the same file), or when it is a ``method:`` config field
        at most *method_window* lines below the endpoint.
        """
        surface = cls(
            label=label,
            schema_names=list(features.schema_names),
            parameters=list(features.parameters),
        )

        methods_by_line: dict[tuple[Optional[str], int], list[MethodFeature]] = {}
        for method in features.methods:
            methods_by_line.setdefault((method.file, method.line), []).append(method)

        for feature in features.endpoints:
            endpoint = surface._endpoint(
                feature.path,
                SourceLocation(side=label, file=feature.file, line=feature.line),
            )
            for offset in range(method_window + 1):
                for method in methods_by_line.get((feature.file, feature.line + offset), []):
                    if offset and method.pattern not in _TRAILING_METHOD_PATTERNS:
                        continue
                    endpoint.add_method(method.method, method.line)
        return surface

    @classmethod
    def from_spec(cls, label: str, spec: NormalizedSpec) -> ApiSurface:
        """Build a surface from the operations of a normalized spec."""
        surface = cls(label=label, spec=spec)
        for op in spec.operations:
            endpoint = surface._endpoint(op.path, None)
            endpoint.add_method(op.key[1], None)
        return surface
