"""Code feature extractor -- recover interface usage from source text.

Typical usage::

    from specmatch.analysis import extract

    features = extract(open("api.ts").read())
    print([e.path for e in features.endpoints])

Sub-modules:

* :mod:`~specmatch.analysis.base` -- :class:`FeatureExtractor` interface.
* :mod:`~specmatch.analysis.patterns` -- Regex extractor for any language.
* :mod:`~specmatch.analysis.ast_extractor` -- :mod:`ast` extractor for Python.
* :mod:`~specmatch.analysis.extractor` -- Total :func:`extract` wrapper.
* :mod:`~specmatch.analysis.scanner` -- Whole-tree scanning.
"""

from specmatch.analysis.ast_extractor import PythonAstExtractor
from specmatch.analysis.base import FeatureExtractor
from specmatch.analysis.extractor import extract, extract_with_status
from specmatch.analysis.patterns import PatternFeatureExtractor
from specmatch.analysis.scanner import ScanResult, SourceScanner

__all__ = [
    "FeatureExtractor",
    "PatternFeatureExtractor",
    "PythonAstExtractor",
    "ScanResult",
    "SourceScanner",
    "extract",
    "extract_with_status",
]
