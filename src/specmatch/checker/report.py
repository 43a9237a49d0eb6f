"""Score, summary, and recommendations for a finished comparison."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from specmatch.checker.policy import SCORE_WEIGHTS
from specmatch.models import (
    DiffIssue,
    DiffSummary,
    IssueType,
    Recommendation,
    Severity,
)

_PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}

# Scores below this add a recommendation to review the whole interface.
LOW_SCORE_THRESHOLD = 70

# (category, priority when only warnings, text template, action) per issue type.
_ADVICE: dict[IssueType, tuple[str, str, str, str]] = {
    IssueType.ENDPOINT_MISSING: (
        "compatibility",
        "medium",
        "{count} endpoint(s) are called but not provided",
        "Implement the missing endpoints or correct the calling paths",
    ),
    IssueType.ENDPOINT_EXTRA: (
        "maintainability",
        "low",
        "{count} endpoint(s) are provided but never called",
        "Remove unused endpoints or add the corresponding calls",
    ),
    IssueType.METHOD_MISMATCH: (
        "compatibility",
        "medium",
        "{count} HTTP method(s) differ between the two sides",
        "Align the HTTP methods used for each shared path",
    ),
    IssueType.INVALID_METHOD: (
        "correctness",
        "medium",
        "{count} token(s) used as HTTP methods are not valid verbs",
        "Use one of GET, POST, PUT, DELETE, PATCH, HEAD, or OPTIONS",
    ),
    IssueType.SCHEMA_MISSING: (
        "documentation",
        "low",
        "{count} type(s) declared in code are missing from the spec schemas",
        "Add the schemas to components.schemas or rename the types to match",
    ),
    IssueType.PARAMETER_MISSING_TYPE: (
        "type-safety",
        "low",
        "{count} parameter(s) have no type annotation",
        "Annotate parameters with explicit types",
    ),
    IssueType.PARAMETER_MISSING: (
        "compatibility",
        "medium",
        "{count} required parameter(s) declared by the target are never sent",
        "Pass the required parameters or make them optional in the target",
    ),
    IssueType.PARAMETER_TYPE_MISMATCH: (
        "type-safety",
        "medium",
        "{count} parameter(s) are typed differently on the two sides",
        "Align the parameter types on both sides",
    ),
    IssueType.PARAMETER_EXTRA: (
        "compatibility",
        "low",
        "{count} parameter(s) are not declared by the other side",
        "Remove the parameters or declare them on the other side",
    ),
    IssueType.SPEC_STRUCTURE: (
        "specification",
        "medium",
        "{count} structural problem(s) found in the specification",
        "Fix the specification document structure",
    ),
    IssueType.CUSTOM: (
        "custom",
        "medium",
        "{count} issue(s) reported by rule '{rule}'",
        "Review the findings of rule '{rule}'",
    ),
}


def compatibility_score(issues: Iterable[DiffIssue], endpoint_total: int) -> int:
    """Return the 0-100 score for *issues* over *endpoint_total* paths.

    ``max(0, round(100 - weighted / max(endpoint_total, 1) * 100))`` with
    halves rounded up.
    """
    weighted = sum(SCORE_WEIGHTS[issue.severity] for issue in issues)
    raw = Decimal(100) - Decimal(weighted) / Decimal(max(endpoint_total, 1)) * 100
    return max(0, int(raw.quantize(Decimal(1), rounding=ROUND_HALF_UP)))


def summarize(
    issues: tuple[DiffIssue, ...],
    score: int,
    suppressed: int = 0,
) -> DiffSummary:
    """Count the returned *issues*; *score* comes from every generated issue."""
    affected = {issue.path for issue in issues if issue.path}
    return DiffSummary(
        total_issues=len(issues),
        error_count=sum(1 for i in issues if i.severity == Severity.ERROR),
        warning_count=sum(1 for i in issues if i.severity == Severity.WARNING),
        suppressed_count=suppressed,
        compatibility_score=score,
        missing_endpoints=sum(1 for i in issues if i.type == IssueType.ENDPOINT_MISSING),
        extra_endpoints=sum(1 for i in issues if i.type == IssueType.ENDPOINT_EXTRA),
        affected_endpoints=len(affected),
    )


def recommend(
    issues: Iterable[DiffIssue], score: Optional[int] = None
) -> tuple[Recommendation, ...]:
    """Synthesise one recommendation per issue category.

    ``custom`` issues are grouped per rule.  A group containing any error is
    ``high`` priority; otherwise the category's own priority applies.  A
    *score* below :data:`LOW_SCORE_THRESHOLD` adds one ``high`` priority
    recommendation to review the interface as a whole.  Results are ordered
    high to low, then by first occurrence.
    """
    groups: dict[tuple[IssueType, str], list[DiffIssue]] = {}
    for issue in issues:
        rule = issue.rule if issue.type == IssueType.CUSTOM else ""
        groups.setdefault((issue.type, rule), []).append(issue)

    recommendations = []
    for (issue_type, rule), members in groups.items():
        category, priority, text, action = _ADVICE[issue_type]
        if any(m.severity == Severity.ERROR for m in members):
            priority = "high"
        recommendations.append(Recommendation(
            priority=priority,
            category=category,
            text=text.format(count=len(members), rule=rule),
            action=action.format(rule=rule),
        ))

    if score is not None and score < LOW_SCORE_THRESHOLD:
        recommendations.append(Recommendation(
            priority="high",
            category="compatibility",
            text=f"Low compatibility score: {score}%",
            action="Review and fix API interface mismatches systematically",
        ))

    recommendations.sort(key=lambda r: _PRIORITY_ORDER[r.priority])
    return tuple(recommendations)
