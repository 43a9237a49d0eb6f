"""High-level facade over the normalizer, the extractor, and the checker.

:class:`InterfaceEngine` wires the three parts together for the common
entry points:

* :meth:`InterfaceEngine.load_spec` -- cached spec loading.
* :meth:`InterfaceEngine.validate_spec` -- structural validation of a spec
  document or file.
* :meth:`InterfaceEngine.validate_interface` -- code against a spec.
* :meth:`InterfaceEngine.analyze_differences` -- frontend against backend,
  optionally with a spec for schema checks.

Only spec loading raises.  Source text that cannot be analysed degrades to
an empty feature set, and the degraded side is named in the result metadata.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Union

from specmatch.analysis import FeatureExtractor, ScanResult, SourceScanner, extract_with_status
from specmatch.cache import SpecCacheBackend, create_spec_cache
from specmatch.checker import ApiSurface, ConsistencyChecker, validate_spec_document
from specmatch.config import get_cache_dir
from specmatch.models import (
    CheckOptions,
    CodeFeatureSet,
    DiffAnalysisResult,
    GlobalConfig,
    NormalizedSpec,
    NormalizerOptions,
    ValidationResult,
)
from specmatch.parser import SpecNormalizer, load_document

logger = logging.getLogger(__name__)

CodeInput = Union[str, CodeFeatureSet, ScanResult]
SpecInput = Union[str, Path, dict[str, Any], NormalizedSpec]


class InterfaceEngine:
    """Check code and specs for interface consistency.

    Args:
        config: Effective configuration; defaults to
            :class:`~specmatch.models.GlobalConfig` defaults.
        cache: Spec cache.  When omitted one is built from ``config.cache``.
        extractor: Feature extraction strategy; defaults to the pattern
            extractor.
        normalizer: Spec normalizer.  When given, *cache* is ignored.
        cache_dir: Directory for the disk cache backend.

    Example::

        engine = InterfaceEngine()
        result = engine.validate_interface(open("client.ts").read(), "openapi.yaml")
        if not result.is_valid:
            for issue in result.errors:
                print(issue.message)
    """

    def __init__(
        self,
        config: Optional[GlobalConfig] = None,
        cache: Optional[SpecCacheBackend] = None,
        extractor: Optional[FeatureExtractor] = None,
        normalizer: Optional[SpecNormalizer] = None,
        cache_dir: Optional[Union[str, Path]] = None,
    ) -> None:
        self._config = config or GlobalConfig()
        self._extractor = extractor
        if normalizer is None:
            if cache is None:
                cache = create_spec_cache(self._config.cache, cache_dir)
            normalizer = SpecNormalizer(cache=cache, options=self._config.parser)
        self._normalizer = normalizer

    @classmethod
    def from_config(cls, config: GlobalConfig) -> InterfaceEngine:
        """Build an engine whose disk cache, if selected, lives in the XDG cache dir."""
        cache_dir = get_cache_dir() if config.cache.backend == "disk" else None
        return cls(config=config, cache_dir=cache_dir)

    @property
    def config(self) -> GlobalConfig:
        return self._config

    @property
    def normalizer(self) -> SpecNormalizer:
        return self._normalizer

    # ------------------------------------------------------------------ #
    # Specs
    # ------------------------------------------------------------------ #

    def load_spec(
        self, source: SpecInput, options: Optional[NormalizerOptions] = None
    ) -> NormalizedSpec:
        """Load and normalize *source*; a :class:`NormalizedSpec` is returned as is.

        Raises:
            SpecmatchError: Any loading error of
                :meth:`~specmatch.parser.normalizer.SpecNormalizer.load`.
        """
        if isinstance(source, NormalizedSpec):
            return source
        return self._normalizer.load(source, options)

    def validate_spec(
        self,
        source: Union[str, Path, dict[str, Any]],
        options: Optional[CheckOptions] = None,
    ) -> ValidationResult:
        """Validate the structure of a spec document or file.

        A dict is checked with
        :func:`~specmatch.checker.checker.validate_spec_document` and never
        raises.  A file or URL is loaded first, so a missing or unparsable
        file raises; a structurally sound document is then normalized with
        a fresh load, which surfaces reference errors.

        Raises:
            SpecNotFound: The file does not exist.
            SpecParseError: The file is not valid JSON or YAML.
            RefResolutionError: A ``$ref`` cannot be resolved.
        """
        opts = options or self._config.check
        if isinstance(source, dict):
            return validate_spec_document(source, opts)

        document = load_document(source, timeout=self._config.parser.timeout)
        result = validate_spec_document(document, opts)
        if result.is_valid:
            fresh = self._config.parser.model_copy(update={"validate_spec": True})
            # stdin cannot be read twice
            self._normalizer.load(document if str(source) == "-" else source, fresh)
        return result

    # ------------------------------------------------------------------ #
    # Code
    # ------------------------------------------------------------------ #

    def extract(self, code: CodeInput, side: str = "code") -> tuple[CodeFeatureSet, bool]:
        """Return the features of *code* and whether extraction degraded.

        *code* may be raw source text, a ready feature set, or a
        :class:`~specmatch.analysis.scanner.ScanResult`, which counts as
        degraded when any of its files failed.
        """
        if isinstance(code, ScanResult):
            return code.features, bool(code.failures)
        if isinstance(code, CodeFeatureSet):
            return code, False
        features, notice = extract_with_status(
            code, self._extractor, self._config.extractor, side=side
        )
        return features, notice is not None

    def scan(
        self,
        source: Union[str, Path],
        include_patterns: Optional[list[str]] = None,
        exclude_patterns: Optional[list[str]] = None,
        use_ast: bool = True,
    ) -> ScanResult:
        """Extract features from a file or directory tree on disk."""
        scanner = SourceScanner(self._config.extractor, use_ast=use_ast)
        return scanner.scan(source, include_patterns, exclude_patterns)

    def validate_interface(
        self,
        code: CodeInput,
        spec_source: SpecInput,
        options: Optional[CheckOptions] = None,
        code_label: str = "code",
    ) -> ValidationResult:
        """Check that every endpoint *code* uses is declared by the spec.

        Raises:
            SpecmatchError: Only when the spec cannot be loaded.
        """
        spec = self.load_spec(spec_source)
        features, degraded = self.extract(code, code_label)

        checker = ConsistencyChecker(options or self._config.check)
        result = checker.compare(
            ApiSurface.from_features(code_label, features),
            ApiSurface.from_spec("spec", spec),
            spec=spec,
            degraded_sides=(code_label,) if degraded else (),
        )
        return ValidationResult.from_analysis(result, "interface")

    def analyze_differences(
        self,
        frontend: CodeInput,
        backend: CodeInput,
        spec_source: Optional[SpecInput] = None,
        options: Optional[CheckOptions] = None,
    ) -> DiffAnalysisResult:
        """Compare the endpoints a frontend calls with those a backend serves.

        Raises:
            SpecmatchError: Only when *spec_source* is given and cannot be
                loaded.
        """
        spec = self.load_spec(spec_source) if spec_source is not None else None
        frontend_features, frontend_degraded = self.extract(frontend, "frontend")
        backend_features, backend_degraded = self.extract(backend, "backend")

        degraded = [
            side
            for side, flag in (("frontend", frontend_degraded), ("backend", backend_degraded))
            if flag
        ]
        if degraded:
            logger.debug("Comparing with degraded sides: %s", ", ".join(degraded))

        checker = ConsistencyChecker(options or self._config.check)
        return checker.compare(
            ApiSurface.from_features("frontend", frontend_features),
            ApiSurface.from_features("backend", backend_features),
            spec=spec,
            degraded_sides=degraded,
        )
