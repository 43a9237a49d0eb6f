"""Total entry point for code feature extraction.

:func:`extract` never raises.  Input that is not a string, exceeds
:attr:`~specmatch.models.ExtractorConfig.max_input_chars`, makes the
extractor fail, or yields no features at all degrades to an empty
:class:`~specmatch.models.CodeFeatureSet` plus a logged warning.
:func:`extract_with_status` additionally hands back the
:class:`~specmatch.exceptions.AnalysisDegraded` notice so callers can record
which side degraded.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from specmatch.analysis.base import FeatureExtractor
from specmatch.analysis.patterns import PatternFeatureExtractor
from specmatch.exceptions import AnalysisDegraded
from specmatch.models import CodeFeatureSet, ExtractorConfig

logger = logging.getLogger(__name__)


def extract(
    source_text: Any,
    extractor: Optional[FeatureExtractor] = None,
    config: Optional[ExtractorConfig] = None,
    file: Optional[str] = None,
) -> CodeFeatureSet:
    """Extract endpoints, methods, schema names, and parameters from *source_text*.

    Args:
        source_text: Source code of any language.
        extractor: Extraction strategy; defaults to
            :class:`~specmatch.analysis.patterns.PatternFeatureExtractor`.
        config: Extractor settings.
        file: Optional file name stamped onto every feature.

    Returns:
        The recovered features, possibly empty.  Never raises.
    """
    features, _ = extract_with_status(source_text, extractor, config, file=file)
    return features


def extract_with_status(
    source_text: Any,
    extractor: Optional[FeatureExtractor] = None,
    config: Optional[ExtractorConfig] = None,
    file: Optional[str] = None,
    side: Optional[str] = None,
) -> tuple[CodeFeatureSet, Optional[AnalysisDegraded]]:
    """Like :func:`extract`, but also return the degradation notice, if any.

    Blank text is not a degradation: there was nothing to find.
    """
    cfg = config or ExtractorConfig()
    label = file or side or "source"

    if not isinstance(source_text, str):
        return _degraded(
            f"Cannot analyse {label}: expected text, got {type(source_text).__name__}", side
        )

    if len(source_text) > cfg.max_input_chars:
        return _degraded(
            f"Cannot analyse {label}: {len(source_text)} characters exceeds the "
            f"limit of {cfg.max_input_chars}",
            side,
        )

    strategy = extractor or PatternFeatureExtractor(cfg)
    try:
        features = strategy.extract_all(source_text)
    except Exception as exc:
        return _degraded(f"{strategy.name} extractor failed on {label}: {exc}", side)

    if features.is_empty and source_text.strip():
        return _degraded(f"No interface features found in {label}", side)

    if file is not None:
        features = attach_file(features, file)
    return features, None


def _degraded(
    message: str, side: Optional[str]
) -> tuple[CodeFeatureSet, AnalysisDegraded]:
    notice = AnalysisDegraded(message, side=side)
    logger.warning("Analysis degraded: %s", notice)
    return CodeFeatureSet(), notice


def attach_file(features: CodeFeatureSet, file: str) -> CodeFeatureSet:
    """Return a copy of *features* with every feature stamped with *file*."""
    return CodeFeatureSet(
        endpoints=[f.model_copy(update={"file": file}) for f in features.endpoints],
        methods=[f.model_copy(update={"file": file}) for f in features.methods],
        schema_names=[f.model_copy(update={"file": file}) for f in features.schema_names],
        parameters=[f.model_copy(update={"file": file}) for f in features.parameters],
    )
