"""The consistency checker.

:class:`ConsistencyChecker` compares a *source* surface, whose endpoints must
be served, with a *target* surface that serves them: frontend against
backend, or code against a spec.  Every step runs unconditionally and the
issues are unioned:

1. Endpoint comparison (``endpoint_missing``, ``endpoint_extra``), with
   similarity suggestions for every missing path.
2. Method comparison for paths present on both sides (``method_mismatch``)
   and method tokens that are not HTTP verbs (``invalid_method``).
3. Schema names absent from the spec (``schema_missing``), untyped
   parameters (``parameter_missing_type``), required spec parameters of a
   matched operation the source never names (``parameter_missing``),
   parameters typed differently on the two sides
   (``parameter_type_mismatch``), and parameters unknown to the target
   (``parameter_extra``).
4. Custom rules from :data:`~specmatch.checker.rules.BUILTIN_RULES`.

:func:`validate_spec_document` checks the structure of a raw spec document
on its own.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Iterator, Optional, Sequence

from specmatch.checker.policy import (
    CANONICAL_METHODS,
    SeverityPolicy,
    similar_method,
    types_compatible,
)
from specmatch.checker.report import compatibility_score, recommend, summarize
from specmatch.checker.rules import BUILTIN_RULES, RuleContext
from specmatch.checker.similarity import suggest
from specmatch.checker.surface import (
    ApiSurface,
    SurfaceEndpoint,
    is_template,
    normalize_path,
    template_key,
)
from specmatch.models import (
    AnalysisMetadata,
    CheckOptions,
    DiffAnalysisResult,
    DiffIssue,
    HTTPMethod,
    IssueType,
    NormalizedSpec,
    OperationDescriptor,
    ParameterLocation,
    Severity,
    SourceLocation,
    ValidationResult,
)

logger = logging.getLogger(__name__)

_CORE_RULES = (
    "endpoint-consistency",
    "method-consistency",
    "method-validity",
    "schema-consistency",
    "parameter-types",
    "parameter-consistency",
)


class ConsistencyChecker:
    """Diff two API surfaces.

    The checker holds no per-call state; one instance may serve concurrent
    comparisons.

    Args:
        options: Check options; defaults to :class:`~specmatch.models.CheckOptions`.
        policy: Severity policy; defaults to one built from
            ``options.severity_overrides``.

    Example::

        checker = ConsistencyChecker()
        result = checker.compare(
            ApiSurface.from_features("frontend", frontend_features),
            ApiSurface.from_features("backend", backend_features),
        )
        print(result.is_compatible, result.summary.compatibility_score)
    """

    def __init__(
        self,
        options: Optional[CheckOptions] = None,
        policy: Optional[SeverityPolicy] = None,
    ) -> None:
        self.options = options or CheckOptions()
        self.policy = policy or SeverityPolicy(self.options.severity_overrides)

    def compare(
        self,
        source: ApiSurface,
        target: ApiSurface,
        spec: Optional[NormalizedSpec] = None,
        degraded_sides: Sequence[str] = (),
    ) -> DiffAnalysisResult:
        """Compare *source* with *target*.

        Args:
            source: The side whose endpoints must be served.
            target: The side that serves them.
            spec: Spec for schema comparison and spec-aware custom rules.
                Defaults to the spec either surface was built from.
            degraded_sides: Labels of sides whose extraction degraded,
                recorded in the result metadata.

        Returns:
            An immutable :class:`~specmatch.models.DiffAnalysisResult`.
        """
        started = time.perf_counter()
        spec = spec or target.spec or source.spec

        issues: list[DiffIssue] = []
        pairs = self._compare_endpoints(source, target, issues)
        self._compare_methods(pairs, source, target, issues)
        for surface in (source, target):
            self._check_method_tokens(surface, issues)
        if spec is not None:
            for surface in (source, target):
                self._check_schemas(surface, spec, issues)
        for surface in (source, target):
            self._check_parameter_types(surface, issues)
        self._compare_parameters(pairs, source, target, issues)
        if not self.options.ignore_minor_differences:
            self._check_extra_parameters(source, target, issues)

        rules_applied = list(_CORE_RULES)
        ctx = RuleContext(source=source, target=target, spec=spec, policy=self.policy)
        for name in self.options.custom_rules:
            rule = BUILTIN_RULES.get(name)
            if rule is None:
                logger.warning("Unknown custom rule '%s', skipping", name)
                continue
            try:
                issues.extend(rule(ctx))
            except Exception as exc:
                logger.warning("Custom rule '%s' failed: %s", name, exc)
                continue
            rules_applied.append(name)

        score = compatibility_score(issues, len(source.endpoints) + len(target.endpoints))
        is_compatible = not any(i.severity == Severity.ERROR for i in issues)

        returned = tuple(issues)
        if not self.options.include_warnings:
            returned = tuple(i for i in issues if i.severity != Severity.WARNING)

        return DiffAnalysisResult(
            is_compatible=is_compatible,
            issues=returned,
            summary=summarize(returned, score, suppressed=len(issues) - len(returned)),
            recommendations=recommend(returned, score),
            metadata=AnalysisMetadata(
                timestamp=datetime.now(timezone.utc),
                duration_ms=(time.perf_counter() - started) * 1000,
                source_label=source.label,
                target_label=target.label,
                source_endpoint_count=len(source.endpoints),
                target_endpoint_count=len(target.endpoints),
                rules_applied=tuple(rules_applied),
                degraded_sides=tuple(degraded_sides),
                spec_version=spec.version if spec is not None else None,
            ),
        )

    # ------------------------------------------------------------------ #
    # Steps
    # ------------------------------------------------------------------ #

    def _issue(
        self,
        issue_type: IssueType,
        rule: str,
        message: str,
        location: Optional[SourceLocation],
        path: Optional[str] = None,
        method: Optional[str] = None,
        suggestions: Sequence[str] = (),
    ) -> DiffIssue:
        return DiffIssue(
            type=issue_type,
            severity=self.policy.severity_for(issue_type),
            message=message,
            location=location,
            suggestion=suggestions[0] if suggestions else None,
            suggestions=tuple(suggestions),
            rule=rule,
            path=path,
            method=method,
        )

    def _compare_endpoints(
        self, source: ApiSurface, target: ApiSurface, issues: list[DiffIssue]
    ) -> list[tuple[SurfaceEndpoint, SurfaceEndpoint]]:
        pairs: list[tuple[SurfaceEndpoint, SurfaceEndpoint]] = []
        matched: set[int] = set()

        for endpoint in source.endpoints:
            counterpart = target.find(endpoint.path)
            if counterpart is not None:
                pairs.append((endpoint, counterpart))
                matched.add(id(counterpart))
                continue
            issues.append(self._issue(
                IssueType.ENDPOINT_MISSING,
                "endpoint-consistency",
                f"Endpoint {endpoint.path} is used by {source.label} "
                f"but not found in {target.label}",
                endpoint.location or SourceLocation(side=source.label),
                path=endpoint.path,
                suggestions=suggest(
                    endpoint.path,
                    target.paths,
                    threshold=self.options.suggestion_threshold,
                    limit=self.options.max_suggestions,
                ),
            ))

        for endpoint in target.endpoints:
            if id(endpoint) in matched or source.find(endpoint.path) is not None:
                continue
            issues.append(self._issue(
                IssueType.ENDPOINT_EXTRA,
                "endpoint-consistency",
                f"Endpoint {endpoint.path} is provided by {target.label} "
                f"but not used by {source.label}",
                endpoint.location or SourceLocation(side=target.label),
                path=endpoint.path,
            ))
        return pairs

    def _compare_methods(
        self,
        pairs: list[tuple[SurfaceEndpoint, SurfaceEndpoint]],
        source: ApiSurface,
        target: ApiSurface,
        issues: list[DiffIssue],
    ) -> None:
        for src, tgt in pairs:
            src_methods = [m for m in src.methods if m in CANONICAL_METHODS]
            tgt_methods = [m for m in tgt.methods if m in CANONICAL_METHODS]
            if not src_methods or not tgt_methods:
                continue

            for method in src_methods:
                if method in tgt_methods:
                    continue
                alternative = similar_method(method, tgt_methods)
                issues.append(self._issue(
                    IssueType.METHOD_MISMATCH,
                    "method-consistency",
                    f"{source.label} uses {method} {src.path}, "
                    f"but {target.label} only supports {', '.join(tgt_methods)}",
                    _method_location(source, src, method),
                    path=src.path,
                    method=method,
                    suggestions=(alternative,) if alternative else (),
                ))
            for method in tgt_methods:
                if method in src_methods:
                    continue
                issues.append(self._issue(
                    IssueType.METHOD_MISMATCH,
                    "method-consistency",
                    f"{target.label} supports {method} {tgt.path}, "
                    f"but {source.label} never uses it",
                    _method_location(target, tgt, method),
                    path=tgt.path,
                    method=method,
                ))

    def _check_method_tokens(self, surface: ApiSurface, issues: list[DiffIssue]) -> None:
        reported: set[str] = set()
        for endpoint in surface.endpoints:
            for method in endpoint.methods:
                if method in CANONICAL_METHODS or method in reported:
                    continue
                reported.add(method)
                issues.append(self._issue(
                    IssueType.INVALID_METHOD,
                    "method-validity",
                    f"'{method}' used with {endpoint.path} in {surface.label} "
                    f"is not a valid HTTP method",
                    _method_location(surface, endpoint, method),
                    path=endpoint.path,
                    method=method,
                ))

    def _check_schemas(
        self, surface: ApiSurface, spec: NormalizedSpec, issues: list[DiffIssue]
    ) -> None:
        if surface.is_spec:
            return
        known = spec.schema_names
        reported: set[str] = set()
        for schema in surface.schema_names:
            if schema.name in known or schema.name in reported:
                continue
            reported.add(schema.name)
            issues.append(self._issue(
                IssueType.SCHEMA_MISSING,
                "schema-consistency",
                f"Type '{schema.name}' declared in {surface.label} "
                f"has no matching schema in the specification",
                SourceLocation(side=surface.label, file=schema.file, line=schema.line),
                suggestions=suggest(
                    schema.name,
                    sorted(known),
                    threshold=self.options.suggestion_threshold,
                    limit=self.options.max_suggestions,
                ),
            ))

    def _check_parameter_types(self, surface: ApiSurface, issues: list[DiffIssue]) -> None:
        for param in surface.parameters:
            if param.type is not None:
                continue
            issues.append(self._issue(
                IssueType.PARAMETER_MISSING_TYPE,
                "parameter-types",
                f"Parameter '{param.name}' in {surface.label} has no type annotation",
                SourceLocation(side=surface.label, file=param.file, line=param.line),
            ))

    def _compare_parameters(
        self,
        pairs: list[tuple[SurfaceEndpoint, SurfaceEndpoint]],
        source: ApiSurface,
        target: ApiSurface,
        issues: list[DiffIssue],
    ) -> None:
        if not pairs:
            return
        if target.spec is not None:
            self._check_required_parameters(pairs, source, target, issues)

        target_types = _typed_parameters(target, [tgt for _, tgt in pairs])
        for name, (declared, location) in _typed_parameters(
            source, [src for src, _ in pairs]
        ).items():
            counterpart = target_types.get(name)
            if counterpart is None or types_compatible(declared, counterpart[0]):
                continue
            issues.append(self._issue(
                IssueType.PARAMETER_TYPE_MISMATCH,
                "parameter-consistency",
                f"Parameter '{name}' is {declared} in {source.label} "
                f"but {counterpart[0]} in {target.label}",
                location,
            ))

    def _check_required_parameters(
        self,
        pairs: list[tuple[SurfaceEndpoint, SurfaceEndpoint]],
        source: ApiSurface,
        target: ApiSurface,
        issues: list[DiffIssue],
    ) -> None:
        sent = source.parameter_names()
        reported: set[tuple[str, str, str]] = set()
        for src, tgt in pairs:
            src_methods = [m for m in src.methods if m in CANONICAL_METHODS]
            for op in _operations_on(target.spec, [tgt]):
                path, method = op.key
                if src_methods and method not in src_methods:
                    continue
                for param in op.parameters:
                    if not param.required or param.location == ParameterLocation.PATH:
                        continue
                    if param.name in sent or (path, method, param.name) in reported:
                        continue
                    reported.add((path, method, param.name))
                    issues.append(self._issue(
                        IssueType.PARAMETER_MISSING,
                        "parameter-consistency",
                        f"Required {param.location.value} parameter '{param.name}' of "
                        f"{method} {path} in {target.label} is not sent by {source.label}",
                        _method_location(source, src, method),
                        path=path,
                        method=method,
                    ))

    def _check_extra_parameters(
        self, source: ApiSurface, target: ApiSurface, issues: list[DiffIssue]
    ) -> None:
        known = target.parameter_names()
        if not known:
            return

        if source.spec is not None:
            candidates = [
                (name, SourceLocation(side=source.label))
                for name in sorted(source.parameter_names())
            ]
        else:
            candidates = [
                (p.name, SourceLocation(side=source.label, file=p.file, line=p.line))
                for p in source.parameters
            ]

        reported: set[str] = set()
        for name, location in candidates:
            if name in known or name in reported:
                continue
            reported.add(name)
            issues.append(self._issue(
                IssueType.PARAMETER_EXTRA,
                "parameter-consistency",
                f"Parameter '{name}' in {source.label} is not declared by {target.label}",
                location,
                suggestions=suggest(
                    name,
                    sorted(known),
                    threshold=self.options.suggestion_threshold,
                    limit=self.options.max_suggestions,
                ),
            ))


def _method_location(
    surface: ApiSurface, endpoint: SurfaceEndpoint, method: str
) -> SourceLocation:
    line = endpoint.method_lines.get(method)
    if endpoint.location is None:
        return SourceLocation(side=surface.label, line=line)
    return SourceLocation(
        side=surface.label,
        file=endpoint.location.file,
        line=line if line is not None else endpoint.location.line,
    )


def _operations_on(
    spec: NormalizedSpec, endpoints: Sequence[SurfaceEndpoint]
) -> Iterator[OperationDescriptor]:
    paths = {endpoint.path for endpoint in endpoints}
    for op in spec.operations:
        if normalize_path(op.path) in paths:
            yield op


def _typed_parameters(
    surface: ApiSurface, endpoints: Sequence[SurfaceEndpoint]
) -> dict[str, tuple[str, SourceLocation]]:
    """First declared type of each parameter name on *surface*.

    Spec parameters count only on *endpoints*; code parameters are not tied
    to a path and always count.
    """
    typed: dict[str, tuple[str, SourceLocation]] = {}
    if surface.spec is not None:
        for op in _operations_on(surface.spec, endpoints):
            for param in op.parameters:
                if param.schema_type:
                    typed.setdefault(
                        param.name, (param.schema_type, SourceLocation(side=surface.label))
                    )
        return typed
    for feature in surface.parameters:
        if feature.type:
            typed.setdefault(
                feature.name,
                (feature.type, SourceLocation(
                    side=surface.label, file=feature.file, line=feature.line
                )),
            )
    return typed


# ------------------------------------------------------------------ #
# Spec-only validation
# ------------------------------------------------------------------ #


def validate_spec_document(
    document: Any,
    options: Optional[CheckOptions] = None,
) -> ValidationResult:
    """Check the structure of a raw spec document.  Never raises.

    Reports one ``spec_structure`` error for each missing required top-level
    field (the ``openapi``/``swagger`` version, ``info``, ``paths``), and
    warnings for ambiguous path templates and operations without responses.

    Args:
        document: The parsed document, normally a dict.
        options: Check options for severity overrides and warning filtering.

    Returns:
        A :class:`~specmatch.models.ValidationResult` with
        ``validation_type="spec"``.
    """
    started = time.perf_counter()
    opts = options or CheckOptions()
    policy = SeverityPolicy(opts.severity_overrides)

    def issue(message: str, path: Optional[str] = None, method: Optional[str] = None,
              severity: Optional[Severity] = None) -> DiffIssue:
        return DiffIssue(
            type=IssueType.SPEC_STRUCTURE,
            severity=policy.severity_for(IssueType.SPEC_STRUCTURE, severity),
            message=message,
            location=SourceLocation(side="spec"),
            rule="spec-structure",
            path=path,
            method=method,
        )

    issues: list[DiffIssue] = []
    paths: dict[str, Any] = {}

    if not isinstance(document, dict):
        issues.append(issue(
            f"Specification must be an object, got {type(document).__name__}"
        ))
    else:
        if "openapi" not in document and "swagger" not in document:
            issues.append(issue("Missing required field 'openapi' or 'swagger'"))
        if "info" not in document:
            issues.append(issue("Missing required field 'info'"))
        if "paths" not in document:
            issues.append(issue("Missing required field 'paths'"))
        elif not isinstance(document["paths"], dict):
            issues.append(issue("Field 'paths' must be an object"))
        else:
            paths = document["paths"]

    seen_templates: dict[str, str] = {}
    for path, item in paths.items():
        if is_template(path):
            key = template_key(path)
            if key in seen_templates:
                issues.append(issue(
                    f"Path templates {seen_templates[key]} and {path} are ambiguous",
                    path=path,
                    severity=Severity.WARNING,
                ))
            else:
                seen_templates[key] = path

        if not isinstance(item, dict):
            continue
        for method in HTTPMethod:
            operation = item.get(method.value)
            if isinstance(operation, dict) and not operation.get("responses"):
                issues.append(issue(
                    f"{method.value.upper()} {path} declares no responses",
                    path=path,
                    method=method.value.upper(),
                    severity=Severity.WARNING,
                ))

    score = compatibility_score(issues, len(paths))
    returned = tuple(issues)
    if not opts.include_warnings:
        returned = tuple(i for i in issues if i.severity != Severity.WARNING)
    summary = summarize(returned, score, suppressed=len(issues) - len(returned))

    version = None
    if isinstance(document, dict):
        version = document.get("openapi") or document.get("swagger")

    return ValidationResult(
        is_valid=not any(i.severity == Severity.ERROR for i in issues),
        errors=tuple(i for i in returned if i.severity == Severity.ERROR),
        warnings=tuple(i for i in returned if i.severity == Severity.WARNING),
        summary=summary,
        recommendations=recommend(returned, score),
        metadata=AnalysisMetadata(
            timestamp=datetime.now(timezone.utc),
            duration_ms=(time.perf_counter() - started) * 1000,
            source_label="spec",
            target_label="spec",
            source_endpoint_count=len(paths),
            rules_applied=("spec-structure",),
            spec_version=str(version) if version is not None else None,
        ),
        validation_type="spec",
    )
