"""Abstract base class for code feature extractors.

Every extractor implements the same four operations so that the pattern-based
default (:class:`~specmatch.analysis.patterns.PatternFeatureExtractor`) and
the Python AST implementation
(:class:`~specmatch.analysis.ast_extractor.PythonAstExtractor`) can be swapped
without touching the consistency checker.

Extractors may raise on input they cannot handle; callers go through
:func:`~specmatch.analysis.extractor.extract`, which turns any failure into an
empty feature set.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from bisect import bisect_right

from specmatch.models import (
    CodeFeatureSet,
    EndpointFeature,
    MethodFeature,
    ParameterFeature,
    SchemaFeature,
)

# Framework plumbing that shows up in every handler signature.
IGNORED_PARAMETERS = frozenset({
    "self", "cls", "req", "res", "next", "request", "response",
    "ctx", "context", "event", "e", "err", "error",
})


class FeatureExtractor(ABC):
    """Recover endpoints, methods, schema names, and parameters from source text.

    Subclasses must implement :attr:`name` and the three required
    ``extract_*`` methods.  :meth:`extract_parameters` defaults to finding
    nothing.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier, e.g. ``"pattern"`` or ``"python-ast"``."""
        ...

    @abstractmethod
    def extract_endpoints(self, text: str) -> list[EndpointFeature]:
        """Return every endpoint path referenced in *text*."""
        ...

    @abstractmethod
    def extract_methods(self, text: str) -> list[MethodFeature]:
        """Return every HTTP method candidate in *text*, upper-cased."""
        ...

    @abstractmethod
    def extract_schemas(self, text: str) -> list[SchemaFeature]:
        """Return the declared type names in *text*."""
        ...

    def extract_parameters(self, text: str) -> list[ParameterFeature]:
        """Return declared parameters in *text*."""
        return []

    def extract_all(self, text: str) -> CodeFeatureSet:
        """Run every extraction pass and bundle the results."""
        return CodeFeatureSet(
            endpoints=self.extract_endpoints(text),
            methods=self.extract_methods(text),
            schema_names=self.extract_schemas(text),
            parameters=self.extract_parameters(text),
        )


class LineIndex:
    """Map character offsets of a text to 1-based line numbers.

    Example::

        index = LineIndex("a\\nb\\nc")
        assert index.line_of(2) == 2
    """

    def __init__(self, text: str) -> None:
        self._starts = [0]
        self._starts.extend(i + 1 for i, ch in enumerate(text) if ch == "\n")

    def line_of(self, offset: int) -> int:
        return bisect_right(self._starts, offset)
