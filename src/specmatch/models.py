"""Canonical Pydantic models shared across all specmatch modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into four groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`OutputConfig`, :class:`CacheConfig`, :class:`NormalizerOptions`,
    :class:`ExtractorConfig`, :class:`CheckOptions`, and :class:`GlobalConfig`.

**Normalized spec models** -- produced by the spec normalizer and consumed by
the consistency checker:
    :class:`HTTPMethod`, :class:`SpecFormat`, :class:`ParameterLocation`,
    :class:`ParameterDescriptor`, :class:`RequestBodyDescriptor`,
    :class:`ResponseDescriptor`, :class:`SecurityScheme`,
    :class:`OperationDescriptor`, :class:`SchemaDescriptor`,
    :class:`ServerInfo`, :class:`SpecMetadata`, and :class:`NormalizedSpec`.

**Code feature models** -- produced per call by the feature extractor:
    :class:`EndpointFeature`, :class:`MethodFeature`, :class:`SchemaFeature`,
    :class:`ParameterFeature`, and :class:`CodeFeatureSet`.

**Result models** -- immutable outputs of the checker:
    :class:`Severity`, :class:`IssueType`, :class:`SourceLocation`,
    :class:`DiffIssue`, :class:`DiffSummary`, :class:`Recommendation`,
    :class:`AnalysisMetadata`, :class:`DiffAnalysisResult`, and
    :class:`ValidationResult`.

All models use Pydantic v2. Result models are frozen and hold tuples so a
result cannot be altered after the checker returns it.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# --- Shared enums ---


class Severity(str, enum.Enum):
    """Severity of a :class:`DiffIssue`. Only errors make a result incompatible."""

    ERROR = "error"
    WARNING = "warning"


class IssueType(str, enum.Enum):
    """Category of a :class:`DiffIssue`.

    The default severity of each category lives in
    :data:`specmatch.checker.policy.DEFAULT_SEVERITIES`.
    """

    ENDPOINT_MISSING = "endpoint_missing"
    ENDPOINT_EXTRA = "endpoint_extra"
    METHOD_MISMATCH = "method_mismatch"
    INVALID_METHOD = "invalid_method"
    SCHEMA_MISSING = "schema_missing"
    PARAMETER_MISSING_TYPE = "parameter_missing_type"
    PARAMETER_MISSING = "parameter_missing"
    PARAMETER_TYPE_MISMATCH = "parameter_type_mismatch"
    PARAMETER_EXTRA = "parameter_extra"
    SPEC_STRUCTURE = "spec_structure"
    CUSTOM = "custom"


# --- Configuration ---


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class CacheConfig(BaseModel):
    """Normalized-spec cache settings stored in :class:`GlobalConfig`."""

    enabled: bool = Field(default=True, description="Enable the spec cache")
    backend: str = Field(default="memory", description="Cache backend: memory or disk")
    max_entries: int = Field(default=32, ge=1, description="Maximum cached specs")
    size_limit_mb: int = Field(
        default=64, ge=1, description="Disk backend size limit in megabytes"
    )


class NormalizerOptions(BaseModel):
    """Options controlling how a specification is loaded and normalized."""

    dereference: bool = Field(default=True, description="Resolve $ref pointers")
    resolve_external_refs: bool = Field(
        default=True, description="Follow $ref pointers into other files or URLs"
    )
    continue_on_error: bool = Field(
        default=False,
        description="Leave circular or dangling $ref pointers in place instead of failing",
    )
    validate_spec: bool = Field(
        default=False,
        alias="validate",
        description="Force a fresh load, bypassing cached results",
    )
    timeout: float = Field(
        default=30.0, gt=0, description="Seconds allowed for reading the spec source"
    )

    model_config = ConfigDict(populate_by_name=True)

    def cache_stamp(self) -> tuple[bool, bool, bool]:
        """Return the subset of options that changes the normalized result."""
        return (self.dereference, self.resolve_external_refs, self.continue_on_error)


class ExtractorConfig(BaseModel):
    """Settings for the heuristic code feature extractor."""

    api_prefixes: list[str] = Field(
        default_factory=lambda: ["/api/"],
        description="Quoted literals starting with one of these are endpoint candidates",
    )
    max_input_chars: int = Field(
        default=1_000_000, ge=1, description="Larger inputs degrade to an empty feature set"
    )
    strict_method_detection: bool = Field(
        default=False,
        description="Only accept real HTTP verbs as method candidates",
    )


class CheckOptions(BaseModel):
    """Options for a single consistency check."""

    include_warnings: bool = Field(
        default=True, description="Return warning-severity issues in the result list"
    )
    ignore_minor_differences: bool = Field(
        default=False, description="Do not report extra parameters"
    )
    custom_rules: list[str] = Field(
        default_factory=list, description="Built-in custom rules to run, in order"
    )
    severity_overrides: dict[IssueType, Severity] = Field(
        default_factory=dict, description="Per-issue-type severity replacements"
    )
    suggestion_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    max_suggestions: int = Field(default=3, ge=0)


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/specmatch/config.json``.

    Loaded and saved by :func:`~specmatch.config.load_global_config` and
    :func:`~specmatch.config.save_global_config`. A project-local
    ``specmatch.json`` is deep-merged on top, then environment variables and
    CLI flags. See :func:`~specmatch.config.resolve_config` for the full
    precedence chain.
    """

    check: CheckOptions = Field(default_factory=CheckOptions)
    extractor: ExtractorConfig = Field(default_factory=ExtractorConfig)
    parser: NormalizerOptions = Field(default_factory=NormalizerOptions)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


# --- Normalized spec ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised by OpenAPI path-item objects."""

    GET = "get"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"
    HEAD = "head"
    OPTIONS = "options"
    TRACE = "trace"


class SpecFormat(str, enum.Enum):
    """Document family, detected from the top-level version field."""

    OPENAPI = "openapi"
    SWAGGER = "swagger"


class ParameterLocation(str, enum.Enum):
    """Locations where an API parameter can appear, per the ``in`` field.

    ``formData`` only occurs in Swagger 2.0 documents.
    """

    QUERY = "query"
    HEADER = "header"
    PATH = "path"
    COOKIE = "cookie"
    FORM_DATA = "formData"


class ParameterDescriptor(BaseModel):
    """A single parameter of an :class:`OperationDescriptor`."""

    name: str
    location: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    schema_type: Optional[str] = Field(default=None, description="JSON Schema type")
    schema_: Optional[dict[str, Any]] = Field(default=None, alias="schema")

    model_config = ConfigDict(populate_by_name=True)


class RequestBodyDescriptor(BaseModel):
    """Request body of an operation, with its first declared schema."""

    required: bool = False
    description: Optional[str] = None
    content_types: list[str] = Field(default_factory=list)
    schema_: Optional[dict[str, Any]] = Field(default=None, alias="schema")

    model_config = ConfigDict(populate_by_name=True)


class ResponseDescriptor(BaseModel):
    """Response declared for one status code."""

    status_code: str
    description: Optional[str] = None
    content_types: list[str] = Field(default_factory=list)
    schema_: Optional[dict[str, Any]] = Field(default=None, alias="schema")

    model_config = ConfigDict(populate_by_name=True)


class SecurityScheme(BaseModel):
    """A security scheme declared under ``components/securitySchemes``.

    Only the fields relevant to ``type`` are populated.
    """

    name: str
    type: str  # apiKey, http, oauth2, openIdConnect
    description: Optional[str] = None
    param_name: Optional[str] = None
    location: Optional[str] = None
    scheme: Optional[str] = None
    bearer_format: Optional[str] = None
    flows: Optional[dict[str, Any]] = None
    openid_connect_url: Optional[str] = None


class OperationDescriptor(BaseModel):
    """One path + method pair of a normalized spec."""

    path: str
    method: HTTPMethod
    operation_id: Optional[str] = None
    summary: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    parameters: list[ParameterDescriptor] = Field(default_factory=list)
    request_body: Optional[RequestBodyDescriptor] = None
    responses: list[ResponseDescriptor] = Field(default_factory=list)
    security: Optional[list[dict[str, list[str]]]] = None
    deprecated: bool = False

    @property
    def key(self) -> tuple[str, str]:
        """``(path, METHOD)`` identity of the operation."""
        return self.path, self.method.value.upper()


class SchemaDescriptor(BaseModel):
    """A named, reusable component schema.

    ``usage_count`` is the number of ``$ref`` pointers to the schema in the
    document before dereferencing.
    """

    name: str
    shape: dict[str, Any] = Field(default_factory=dict)
    usage_count: int = 0


class ServerInfo(BaseModel):
    """A server entry, either declared or synthesised from Swagger host fields."""

    url: str
    description: Optional[str] = None


class SpecMetadata(BaseModel):
    """Descriptive metadata of a normalized spec."""

    title: str = "Untitled API"
    api_version: str = "1.0.0"
    description: Optional[str] = None
    servers: list[ServerInfo] = Field(default_factory=list)
    contact: Optional[dict[str, Any]] = None
    license: Optional[dict[str, Any]] = None
    external_docs: Optional[dict[str, Any]] = None
    tags: list[dict[str, Any]] = Field(default_factory=list)
    source: Optional[str] = Field(
        default=None, description="Resolved file path or URL, None for in-memory input"
    )


class NormalizedSpec(BaseModel):
    """Structured form of an OpenAPI or Swagger document.

    Built once per source by :class:`~specmatch.parser.normalizer.SpecNormalizer`.
    Swagger 2.0 documents keep ``format=swagger`` and their original version
    while their operations and schemas are read through the OpenAPI
    converter.

    See Also:
        :class:`OperationDescriptor`: Individual operation within the spec.
    """

    version: str
    format: SpecFormat
    operations: list[OperationDescriptor] = Field(default_factory=list)
    schemas: list[SchemaDescriptor] = Field(default_factory=list)
    metadata: SpecMetadata = Field(default_factory=SpecMetadata)
    security_schemes: dict[str, SecurityScheme] = Field(default_factory=dict)
    document: dict[str, Any] = Field(
        default_factory=dict,
        exclude=True,
        repr=False,
        description="Processed document the descriptors were read from",
    )

    @model_validator(mode="after")
    def _check_unique_operations(self) -> NormalizedSpec:
        seen: set[tuple[str, str]] = set()
        for op in self.operations:
            if op.key in seen:
                raise ValueError(f"Duplicate operation {op.key[1]} {op.key[0]}")
            seen.add(op.key)
        return self

    @property
    def paths(self) -> list[str]:
        """Distinct operation paths in declaration order."""
        return list(dict.fromkeys(op.path for op in self.operations))

    @property
    def schema_names(self) -> set[str]:
        """Names of all component schemas."""
        return {schema.name for schema in self.schemas}

    def operations_for(self, path: str) -> list[OperationDescriptor]:
        """Return the operations declared under *path*."""
        return [op for op in self.operations if op.path == path]


# --- Code features ---


class EndpointFeature(BaseModel):
    """An endpoint path recovered from source text."""

    model_config = ConfigDict(frozen=True)

    path: str
    line: int
    raw_match: str
    pattern: Optional[str] = Field(default=None, description="Name of the rule that matched")
    file: Optional[str] = None


class MethodFeature(BaseModel):
    """An HTTP method candidate recovered from source text.

    ``method`` is upper-cased and may be a non-verb token when strict method
    detection is off.
    """

    model_config = ConfigDict(frozen=True)

    method: str
    line: int
    raw_match: str
    pattern: Optional[str] = Field(default=None, description="Name of the rule that matched")
    file: Optional[str] = None


class SchemaFeature(BaseModel):
    """A declared type name (interface, type alias, or class)."""

    model_config = ConfigDict(frozen=True)

    name: str
    line: int
    file: Optional[str] = None


class ParameterFeature(BaseModel):
    """A declared parameter. ``type`` is ``None`` when no annotation was found."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: Optional[str] = None
    line: int
    file: Optional[str] = None


class CodeFeatureSet(BaseModel):
    """Everything the extractor recovered from one side's source text.

    Produced per call and never cached.
    """

    endpoints: list[EndpointFeature] = Field(default_factory=list)
    methods: list[MethodFeature] = Field(default_factory=list)
    schema_names: list[SchemaFeature] = Field(default_factory=list)
    parameters: list[ParameterFeature] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when no feature of any kind was found."""
        return not (self.endpoints or self.methods or self.schema_names or self.parameters)

    @classmethod
    def merged(cls, feature_sets: list[CodeFeatureSet]) -> CodeFeatureSet:
        """Concatenate several feature sets, preserving order."""
        result = cls()
        for features in feature_sets:
            result.endpoints.extend(features.endpoints)
            result.methods.extend(features.methods)
            result.schema_names.extend(features.schema_names)
            result.parameters.extend(features.parameters)
        return result


# --- Results ---


class SourceLocation(BaseModel):
    """Where an issue was found."""

    model_config = ConfigDict(frozen=True)

    side: Optional[str] = None
    file: Optional[str] = None
    line: Optional[int] = None

    def __str__(self) -> str:
        parts = [p for p in (self.side, self.file) if p]
        if self.line is not None:
            parts.append(f"line {self.line}")
        return ":".join(parts) if parts else "-"


class DiffIssue(BaseModel):
    """A single finding of the consistency checker."""

    model_config = ConfigDict(frozen=True)

    type: IssueType
    severity: Severity
    message: str
    location: Optional[SourceLocation] = None
    suggestion: Optional[str] = None
    suggestions: tuple[str, ...] = ()
    rule: str
    path: Optional[str] = None
    method: Optional[str] = None


class DiffSummary(BaseModel):
    """Counts and score of a check.

    Counts describe the returned issue list; ``suppressed_count`` is the
    number of warnings hidden by ``include_warnings=False``. The score is
    computed from every generated issue.
    """

    model_config = ConfigDict(frozen=True)

    total_issues: int = 0
    error_count: int = 0
    warning_count: int = 0
    suppressed_count: int = 0
    compatibility_score: int = 100
    missing_endpoints: int = 0
    extra_endpoints: int = 0
    affected_endpoints: int = 0


class Recommendation(BaseModel):
    """A prioritised follow-up synthesised from one issue category."""

    model_config = ConfigDict(frozen=True)

    priority: str  # high, medium, low
    category: str
    text: str
    action: str


class AnalysisMetadata(BaseModel):
    """Bookkeeping about how a result was produced."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    duration_ms: float = 0.0
    source_label: str = "source"
    target_label: str = "target"
    source_endpoint_count: int = 0
    target_endpoint_count: int = 0
    rules_applied: tuple[str, ...] = ()
    degraded_sides: tuple[str, ...] = ()
    spec_version: Optional[str] = None


class DiffAnalysisResult(BaseModel):
    """Outcome of comparing two surfaces. Immutable once produced."""

    model_config = ConfigDict(frozen=True)

    is_compatible: bool
    issues: tuple[DiffIssue, ...] = ()
    summary: DiffSummary = Field(default_factory=DiffSummary)
    recommendations: tuple[Recommendation, ...] = ()
    metadata: AnalysisMetadata

    @property
    def errors(self) -> tuple[DiffIssue, ...]:
        return tuple(i for i in self.issues if i.severity == Severity.ERROR)

    @property
    def warnings(self) -> tuple[DiffIssue, ...]:
        return tuple(i for i in self.issues if i.severity == Severity.WARNING)


class ValidationResult(BaseModel):
    """Outcome of validating code against a spec, or a spec on its own."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    errors: tuple[DiffIssue, ...] = ()
    warnings: tuple[DiffIssue, ...] = ()
    summary: DiffSummary = Field(default_factory=DiffSummary)
    recommendations: tuple[Recommendation, ...] = ()
    metadata: AnalysisMetadata
    validation_type: str = "interface"

    @classmethod
    def from_analysis(
        cls, result: DiffAnalysisResult, validation_type: str = "interface"
    ) -> ValidationResult:
        """Split a :class:`DiffAnalysisResult` into errors and warnings."""
        return cls(
            is_valid=result.is_compatible,
            errors=result.errors,
            warnings=result.warnings,
            summary=result.summary,
            recommendations=result.recommendations,
            metadata=result.metadata,
            validation_type=validation_type,
        )
