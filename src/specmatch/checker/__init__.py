"""Consistency checker -- diff code features against each other or a spec.

Typical usage::

    from specmatch.checker import ApiSurface, ConsistencyChecker

    result = ConsistencyChecker().compare(
        ApiSurface.from_features("frontend", frontend_features),
        ApiSurface.from_spec("spec", spec),
    )

Sub-modules:

* :mod:`~specmatch.checker.surface` -- Comparable view of one side and
  placeholder-aware path matching.
* :mod:`~specmatch.checker.similarity` -- Path similarity and suggestions.
* :mod:`~specmatch.checker.policy` -- Severity table and score weights.
* :mod:`~specmatch.checker.rules` -- Built-in custom rules.
* :mod:`~specmatch.checker.report` -- Score, summary, recommendations.
* :mod:`~specmatch.checker.checker` -- :class:`ConsistencyChecker` and
  :func:`validate_spec_document`.
"""

from specmatch.checker.checker import ConsistencyChecker, validate_spec_document
from specmatch.checker.policy import DEFAULT_SEVERITIES, SeverityPolicy
from specmatch.checker.rules import BUILTIN_RULES, RuleContext
from specmatch.checker.similarity import similarity, suggest
from specmatch.checker.surface import ApiSurface, paths_equivalent

__all__ = [
    "BUILTIN_RULES",
    "DEFAULT_SEVERITIES",
    "ApiSurface",
    "ConsistencyChecker",
    "RuleContext",
    "SeverityPolicy",
    "paths_equivalent",
    "similarity",
    "suggest",
    "validate_spec_document",
]
