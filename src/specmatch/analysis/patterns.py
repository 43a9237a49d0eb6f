"""Pattern-based feature extraction for arbitrary source languages.

This is a low-fidelity heuristic: instead of parsing the source,
it runs ordered lists of regular expressions over the raw text.  It works the
same on TypeScript, JavaScript, Python, Java, and anything that looks like
them, at the cost of false positives.

Endpoint rule categories, in order:

1. ``quoted-literal`` -- quoted strings starting with a configured API
   prefix, e.g. ``'/api/users'``.
2. ``call-route`` -- any ``.name('/path'`` call, e.g. ``app.get('/users'``.
3. ``route-call`` -- ``route('/path'``.
4. ``config-path`` -- ``path: '/x'`` or ``url: '/x'`` object fields.
5. ``annotation`` -- ``@GetMapping("/x")``, ``@RequestMapping("/x")``,
   ``@Get('/x')``.

A candidate must start with ``/``.  Duplicates are removed within a category
by ``(value, offset)`` but not across categories.

Method rule categories, in order: ``verb-call`` (``.get(``), ``any-call``
(``.anything(``, skipped under strict detection), ``annotation`` (``@GET``,
``@PostMapping``, ``RequestMethod.PUT``), and ``config-method``
(``method: 'POST'``, ``methods=["GET"]``).  Method candidates are removed as
duplicates across all categories by ``(method, offset)``.
"""

from __future__ import annotations

import re
from typing import Iterator, Optional

from specmatch.analysis.base import IGNORED_PARAMETERS, FeatureExtractor, LineIndex
from specmatch.models import (
    EndpointFeature,
    ExtractorConfig,
    MethodFeature,
    ParameterFeature,
    SchemaFeature,
)

_VERBS = "GET|POST|PUT|DELETE|PATCH|HEAD|OPTIONS"

_ENDPOINT_RULES: tuple[tuple[str, tuple[re.Pattern[str], ...]], ...] = (
    ("call-route", (re.compile(r"""\.\w+\s*\(\s*['"`]([^'"`\n]{1,512})['"`]"""),)),
    ("route-call", (re.compile(r"""\broute\s*\(\s*['"`]([^'"`\n]{1,512})['"`]"""),)),
    (
        "config-path",
        (re.compile(r"""\b(?:path|url)\s*:\s*['"`]([^'"`\n]{1,512})['"`]"""),),
    ),
    (
        "annotation",
        (
            re.compile(
                r"""@(?:Request|Get|Post|Put|Delete|Patch)Mapping\s*\(\s*"""
                r"""(?:(?:value|path)\s*=\s*)?\{?\s*['"]([^'"\n]{1,512})['"]"""
            ),
            re.compile(
                r"""@(?:Get|Post|Put|Delete|Patch|Head|Options|All|Controller)"""
                r"""\s*\(\s*['"]([^'"\n]{1,512})['"]"""
            ),
        ),
    ),
)

_VERB_CALL = re.compile(rf"\.({_VERBS})\s*\(", re.IGNORECASE)
_ANY_CALL = re.compile(r"\.(\w+)\s*\(")
_METHOD_ANNOTATIONS = (
    re.compile(rf"@({_VERBS})(?:Mapping)?\b", re.IGNORECASE),
    re.compile(rf"\bRequestMethod\.({_VERBS})\b"),
)
_CONFIG_METHOD = re.compile(rf"""\bmethod\s*:\s*['"`]({_VERBS})['"`]""", re.IGNORECASE)
# Spans lines so multi-line lists match; capped at 256 characters.
_METHOD_LIST = re.compile(r"""\bmethods\s*=\s*[\[(]([^\])]{0,256})[\])]""")
_QUOTED_VERB = re.compile(rf"""['"]({_VERBS})['"]""", re.IGNORECASE)

_SCHEMA_RULES = (
    re.compile(r"\binterface\s+([A-Za-z_$][\w$]*)"),
    re.compile(r"\btype\s+([A-Za-z_$][\w$]*)(?:\s*<[^<=>\n]{0,128}>)?\s*="),
    re.compile(r"\btype\s+([A-Za-z_]\w*)\s+struct\b"),
    re.compile(r"\bclass\s+([A-Za-z_$][\w$]*)"),
)

_SIGNATURES = (
    re.compile(
        r"\b(?:def|function)\s*\*?\s*[\w$]*\s*(?:<[^<>()\n]{0,128}>)?\s*\(([^()]{0,1024})\)"
    ),
    re.compile(r"\(([^()]{0,1024})\)\s*(?::\s*[^=;{}()\n]{1,128}?)?\s*=>"),
)
_PARAM_DECL = re.compile(
    r"^(?:(?:public|private|protected|readonly)\s+)*(?:\.\.\.|\*{1,2})?"
    r"([A-Za-z_$][\w$]*)\??\s*(?::\s*(.+))?$",
    re.DOTALL,
)
_JAVA_PARAMS = re.compile(
    r"@(?:PathVariable|RequestParam|RequestHeader|RequestBody)(?:\s*\([^()]{0,256}\))?\s+"
    r"(?:final\s+)?([\w.<>\[\]?, ]{1,128}?)\s+(\w+)\s*[,)]"
)
_ACCESSOR_PARAMS = (
    re.compile(r"\breq(?:uest)?\.(?:params|query|body)\.([A-Za-z_$][\w$]*)"),
    re.compile(r"""\brequest\.(?:args|form|values|query_params)\.get\(\s*['"](\w+)['"]"""),
)


class PatternFeatureExtractor(FeatureExtractor):
    """Regex-driven :class:`~specmatch.analysis.base.FeatureExtractor`.

    Args:
        config: Extractor settings; ``api_prefixes`` drives the
            ``quoted-literal`` rule and ``strict_method_detection`` disables
            the ``any-call`` method rule.
    """

    def __init__(self, config: Optional[ExtractorConfig] = None) -> None:
        self._config = config or ExtractorConfig()
        prefixes = "|".join(re.escape(p) for p in self._config.api_prefixes if p)
        self._quoted_literal: Optional[re.Pattern[str]] = (
            re.compile(rf"""['"`]((?:{prefixes})[^'"`\s]{{0,512}})['"`]""") if prefixes else None
        )

    @property
    def name(self) -> str:
        return "pattern"

    # --- Endpoints ---

    def extract_endpoints(self, text: str) -> list[EndpointFeature]:
        index = LineIndex(text)
        rules = list(_ENDPOINT_RULES)
        if self._quoted_literal is not None:
            rules.insert(0, ("quoted-literal", (self._quoted_literal,)))

        endpoints: list[EndpointFeature] = []
        for rule_name, patterns in rules:
            seen: set[tuple[str, int]] = set()
            for pattern in patterns:
                for match in pattern.finditer(text):
                    value = match.group(1).strip()
                    if not value.startswith("/") or (value, match.start()) in seen:
                        continue
                    seen.add((value, match.start()))
                    endpoints.append(
                        EndpointFeature(
                            path=value,
                            line=index.line_of(match.start()),
                            raw_match=match.group(0),
                            pattern=rule_name,
                        )
                    )
        return endpoints

    # --- Methods ---

    def extract_methods(self, text: str) -> list[MethodFeature]:
        index = LineIndex(text)
        seen: set[tuple[str, int]] = set()
        methods: list[MethodFeature] = []

        for rule_name, token, offset, raw in self._method_candidates(text):
            method = token.lstrip(".@").upper()
            if (method, offset) in seen:
                continue
            seen.add((method, offset))
            methods.append(
                MethodFeature(
                    method=method,
                    line=index.line_of(offset),
                    raw_match=raw,
                    pattern=rule_name,
                )
            )
        return methods

    def _method_candidates(self, text: str) -> Iterator[tuple[str, str, int, str]]:
        """Yield ``(rule, token, offset, raw_match)`` in rule order."""
        for match in _VERB_CALL.finditer(text):
            yield "verb-call", match.group(1), match.start(), match.group(0)

        if not self._config.strict_method_detection:
            for match in _ANY_CALL.finditer(text):
                yield "any-call", match.group(1), match.start(), match.group(0)

        for pattern in _METHOD_ANNOTATIONS:
            for match in pattern.finditer(text):
                yield "annotation", match.group(1), match.start(), match.group(0)

        for match in _CONFIG_METHOD.finditer(text):
            yield "config-method", match.group(1), match.start(), match.group(0)
        for match in _METHOD_LIST.finditer(text):
            for verb in _QUOTED_VERB.finditer(match.group(1)):
                yield (
                    "config-method",
                    verb.group(1),
                    match.start(1) + verb.start(),
                    match.group(0),
                )

    # --- Schemas ---

    def extract_schemas(self, text: str) -> list[SchemaFeature]:
        index = LineIndex(text)
        seen: set[tuple[str, int]] = set()
        schemas: list[SchemaFeature] = []
        for pattern in _SCHEMA_RULES:
            for match in pattern.finditer(text):
                key = (match.group(1), match.start(1))
                if key in seen:
                    continue
                seen.add(key)
                schemas.append(
                    SchemaFeature(name=match.group(1), line=index.line_of(match.start(1)))
                )
        return schemas

    # --- Parameters ---

    def extract_parameters(self, text: str) -> list[ParameterFeature]:
        index = LineIndex(text)
        seen: set[tuple[str, int]] = set()
        params: list[ParameterFeature] = []

        def add(name: str, type_: Optional[str], offset: int) -> None:
            if name in IGNORED_PARAMETERS or (name, offset) in seen:
                return
            seen.add((name, offset))
            params.append(ParameterFeature(name=name, type=type_, line=index.line_of(offset)))

        for pattern in _SIGNATURES:
            for match in pattern.finditer(text):
                for piece, offset in _split_params(match.group(1), match.start(1)):
                    decl = _PARAM_DECL.match(_strip_default(piece))
                    if decl is None:
                        continue
                    type_ = decl.group(2).strip() if decl.group(2) else None
                    add(decl.group(1), type_ or None, offset)

        for match in _JAVA_PARAMS.finditer(text):
            add(match.group(2), match.group(1).strip(), match.start(2))

        for pattern in _ACCESSOR_PARAMS:
            for match in pattern.finditer(text):
                add(match.group(1), None, match.start(1))

        return params


def _split_params(params: str, base: int) -> Iterator[tuple[str, int]]:
    """Split a parameter list on top-level commas.

    Yields ``(piece, absolute_offset)`` with surrounding whitespace removed.
    """
    depth = 0
    start = 0
    for i, ch in enumerate(params + ","):
        if ch in "<[{(":
            depth += 1
        elif ch in ">]})" and depth > 0:
            depth -= 1
        elif ch == "," and depth == 0:
            piece = params[start:i]
            stripped = piece.strip()
            if stripped:
                yield stripped, base + start + (len(piece) - len(piece.lstrip()))
            start = i + 1


def _strip_default(piece: str) -> str:
    """Drop a ``= default`` suffix that is not part of an arrow (``=>``)."""
    depth = 0
    for i, ch in enumerate(piece):
        if ch in "<[{(":
            depth += 1
        elif ch in ">]})" and depth > 0:
            depth -= 1
        elif ch == "=" and depth == 0 and piece[i + 1:i + 2] != ">":
            return piece[:i].rstrip()
    return piece
