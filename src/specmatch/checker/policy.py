"""Severity policy and scoring weights.

The default severity of every issue category is a table lookup so tests can
assert an exact taxonomy.  :class:`SeverityPolicy` layers per-type overrides
(from :attr:`~specmatch.models.CheckOptions.severity_overrides`) on top.
:func:`types_compatible` decides whether two declared parameter types agree.
"""

from __future__ import annotations

import re
from typing import Mapping, Optional

from specmatch.models import IssueType, Severity

DEFAULT_SEVERITIES: dict[IssueType, Severity] = {
    IssueType.ENDPOINT_MISSING: Severity.ERROR,
    IssueType.ENDPOINT_EXTRA: Severity.WARNING,
    IssueType.METHOD_MISMATCH: Severity.ERROR,
    IssueType.INVALID_METHOD: Severity.ERROR,
    IssueType.SCHEMA_MISSING: Severity.WARNING,
    IssueType.PARAMETER_MISSING_TYPE: Severity.WARNING,
    IssueType.PARAMETER_MISSING: Severity.WARNING,
    IssueType.PARAMETER_TYPE_MISMATCH: Severity.WARNING,
    IssueType.PARAMETER_EXTRA: Severity.WARNING,
    IssueType.SPEC_STRUCTURE: Severity.ERROR,
    IssueType.CUSTOM: Severity.WARNING,
}

SCORE_WEIGHTS: dict[Severity, int] = {
    Severity.ERROR: 10,
    Severity.WARNING: 5,
}

CANONICAL_METHODS: frozenset[str] = frozenset(
    {"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"}
)

# Closest alternatives to offer when a method is not supported.
SIMILAR_METHODS: dict[str, tuple[str, ...]] = {
    "GET": ("POST", "PUT"),
    "POST": ("PUT", "PATCH", "GET"),
    "PUT": ("POST", "PATCH"),
    "PATCH": ("PUT", "POST"),
    "DELETE": ("POST", "PUT"),
}

# Spellings of one primitive type across languages and JSON Schema.  A bare
# ``number`` may hold either an integer or a float.
TYPE_ALIASES: dict[str, frozenset[str]] = {
    "integer": frozenset({"int", "integer", "int32", "int64", "long", "short", "number"}),
    "number": frozenset({"float", "double", "decimal", "real", "number"}),
    "string": frozenset({"str", "string", "text"}),
    "boolean": frozenset({"bool", "boolean"}),
    "array": frozenset({"list", "array", "tuple", "sequence", "set"}),
}

# Types that accept any value; never reported as a mismatch.
OPAQUE_TYPES = frozenset({"any", "object", "dynamic", "unknown", "mixed"})

_KNOWN_TYPES = frozenset().union(*TYPE_ALIASES.values())
_OPTIONAL = re.compile(r"^Optional\[(.+)\]$")
_NULLABLE = re.compile(r"\s*\|\s*(?:None|null|undefined)\b")
_ARRAY = re.compile(r"^(?:List|Array|Sequence|Tuple|Set|list|tuple|set)\s*[<\[]|\[\]$")


class SeverityPolicy:
    """Resolve the severity of an issue type.

    Args:
        overrides: Per-type replacements for :data:`DEFAULT_SEVERITIES`.
    """

    def __init__(self, overrides: Optional[Mapping[IssueType, Severity]] = None) -> None:
        self._table = dict(DEFAULT_SEVERITIES)
        self._overrides = dict(overrides or {})
        self._table.update(self._overrides)

    def severity_for(self, issue_type: IssueType, default: Optional[Severity] = None) -> Severity:
        """Return the severity for *issue_type*.

        *default* is a rule's own choice for ``custom`` issues; an explicit
        override still wins over it.
        """
        if issue_type in self._overrides:
            return self._overrides[issue_type]
        if default is not None:
            return default
        return self._table[issue_type]


def similar_method(method: str, available: list[str]) -> Optional[str]:
    """Return the first alternative to *method* that *available* supports."""
    for candidate in SIMILAR_METHODS.get(method, ()):
        if candidate in available:
            return candidate
    return None


def normalize_type(type_name: str) -> str:
    """Reduce a declared type to a lower-case comparable spelling.

    Optional and nullable wrappers are dropped, and every list or array
    form becomes ``array``: ``Optional[int]`` is ``int``, ``Pet[]`` and
    ``list[Pet]`` are ``array``.
    """
    name = type_name.strip()
    optional = _OPTIONAL.match(name)
    if optional:
        name = optional.group(1).strip()
    name = _NULLABLE.sub("", name).rstrip("?").strip()
    if _ARRAY.search(name):
        return "array"
    return name.lower()


def types_compatible(a: str, b: str) -> bool:
    """True unless *a* and *b* are known primitive types that cannot agree.

    Custom type names and opaque types always agree with anything.
    """
    left, right = normalize_type(a), normalize_type(b)
    if left == right or left in OPAQUE_TYPES or right in OPAQUE_TYPES:
        return True
    if left not in _KNOWN_TYPES or right not in _KNOWN_TYPES:
        return True
    return any(left in spellings and right in spellings for spellings in TYPE_ALIASES.values())
