"""Built-in custom rules.

A rule is a plain function that receives a :class:`RuleContext` and returns
the issues it found.  Rules are looked up by name in :data:`BUILTIN_RULES`;
the checker runs the names listed in
:attr:`~specmatch.models.CheckOptions.custom_rules` in order, logging and
skipping unknown names and rules that raise.

Rules that only make sense against a spec return nothing when no spec takes
part in the comparison.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from specmatch.checker.policy import SeverityPolicy
from specmatch.checker.surface import ApiSurface
from specmatch.models import (
    DiffIssue,
    IssueType,
    NormalizedSpec,
    Severity,
    SourceLocation,
)

# Parameter annotations that say nothing about the expected type.
_UNTYPED_ANNOTATIONS = frozenset({"any", "Any", "object", "Object", "unknown", "typing.Any"})


@dataclass
class RuleContext:
    """Inputs shared by every rule of one comparison."""

    source: ApiSurface
    target: ApiSurface
    spec: Optional[NormalizedSpec]
    policy: SeverityPolicy

    @property
    def surfaces(self) -> tuple[ApiSurface, ApiSurface]:
        return self.source, self.target

    def issue(
        self,
        rule: str,
        message: str,
        severity: Optional[Severity] = None,
        location: Optional[SourceLocation] = None,
        path: Optional[str] = None,
        method: Optional[str] = None,
        suggestion: Optional[str] = None,
    ) -> DiffIssue:
        """Build a ``custom`` issue; *severity* is the rule's own default."""
        return DiffIssue(
            type=IssueType.CUSTOM,
            severity=self.policy.severity_for(IssueType.CUSTOM, severity),
            message=message,
            location=location,
            suggestion=suggestion,
            suggestions=(suggestion,) if suggestion else (),
            rule=rule,
            path=path,
            method=method,
        )


Rule = Callable[[RuleContext], list[DiffIssue]]


def _specs(ctx: RuleContext) -> Iterator[tuple[str, NormalizedSpec]]:
    """Yield ``(label, spec)`` for every spec taking part, each once."""
    seen: set[int] = set()
    for surface in ctx.surfaces:
        if surface.spec is not None and id(surface.spec) not in seen:
            seen.add(id(surface.spec))
            yield surface.label, surface.spec
    if ctx.spec is not None and id(ctx.spec) not in seen:
        yield "spec", ctx.spec


def require_response_schemas(ctx: RuleContext) -> list[DiffIssue]:
    """Flag operations whose success responses declare no schema.

    ``204`` responses carry no body and are ignored.
    """
    issues = []
    for label, spec in _specs(ctx):
        for op in spec.operations:
            success = [
                r for r in op.responses
                if r.status_code.startswith("2") and r.status_code != "204"
            ]
            if not success or any(r.schema_ for r in success):
                continue
            method, path = op.key[1], op.path
            issues.append(ctx.issue(
                "require-response-schemas",
                f"{method} {path} declares no schema for its success response",
                location=SourceLocation(side=label),
                path=path,
                method=method,
                suggestion="Add a response schema under content['application/json'].schema",
            ))
    return issues


def validate_parameter_types(ctx: RuleContext) -> list[DiffIssue]:
    """Flag spec parameters without a type and code parameters typed as ``any``."""
    issues = []
    for label, spec in _specs(ctx):
        for op in spec.operations:
            for param in op.parameters:
                if param.schema_type is not None or (param.schema_ and "$ref" in param.schema_):
                    continue
                issues.append(ctx.issue(
                    "validate-parameter-types",
                    f"Parameter '{param.name}' of {op.key[1]} {op.path} has no type",
                    location=SourceLocation(side=label),
                    path=op.path,
                    method=op.key[1],
                ))

    for surface in ctx.surfaces:
        if surface.is_spec:
            continue
        for param in surface.parameters:
            if param.type in _UNTYPED_ANNOTATIONS:
                issues.append(ctx.issue(
                    "validate-parameter-types",
                    f"Parameter '{param.name}' is declared as '{param.type}'",
                    location=SourceLocation(side=surface.label, file=param.file, line=param.line),
                    suggestion="Use a concrete type",
                ))
    return issues


def check_security_definitions(ctx: RuleContext) -> list[DiffIssue]:
    """Flag security requirements that name an undeclared scheme.

    These issues default to error severity.
    """
    issues = []
    for label, spec in _specs(ctx):
        declared = set(spec.security_schemes)
        for op in spec.operations:
            for requirement in op.security or []:
                for scheme in requirement:
                    if scheme in declared:
                        continue
                    issues.append(ctx.issue(
                        "check-security-definitions",
                        f"{op.key[1]} {op.path} requires undeclared security scheme '{scheme}'",
                        severity=Severity.ERROR,
                        location=SourceLocation(side=label),
                        path=op.path,
                        method=op.key[1],
                        suggestion=f"Declare '{scheme}' under components.securitySchemes",
                    ))
    return issues


def no_trailing_slash(ctx: RuleContext) -> list[DiffIssue]:
    """Flag paths spelled with a trailing slash."""
    issues = []
    for surface in ctx.surfaces:
        for endpoint in surface.endpoints:
            for spelling in endpoint.spellings:
                bare = spelling.split("?", 1)[0]
                if len(bare) > 1 and bare.endswith("/"):
                    issues.append(ctx.issue(
                        "no-trailing-slash",
                        f"Path '{spelling}' ends with a trailing slash",
                        location=endpoint.location or SourceLocation(side=surface.label),
                        path=endpoint.path,
                        suggestion=endpoint.path,
                    ))
    return issues


BUILTIN_RULES: dict[str, Rule] = {
    "require-response-schemas": require_response_schemas,
    "validate-parameter-types": validate_parameter_types,
    "check-security-definitions": check_security_definitions,
    "no-trailing-slash": no_trailing_slash,
}
