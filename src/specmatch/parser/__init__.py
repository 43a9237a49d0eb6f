"""Spec normalizer -- load, convert, resolve ``$ref`` pointers, and extract operations.

This sub-package turns a raw OpenAPI 3.x or Swagger 2.0 document (JSON or
YAML; local file, remote URL, stdin, or an in-memory dict) into a
:class:`~specmatch.models.NormalizedSpec` that the consistency checker can
consume.

Typical usage::

    from specmatch.parser import SpecNormalizer

    spec = SpecNormalizer().load("swagger.json")
    print(spec.format, spec.version, spec.paths)

Sub-modules:

* :mod:`~specmatch.parser.loader` -- I/O layer (URL, file, stdin) plus
  JSON/YAML parsing and format detection.
* :mod:`~specmatch.parser.resolver` -- Recursive ``$ref`` resolution across
  documents with circular-reference detection.
* :mod:`~specmatch.parser.converter` -- Swagger 2.0 to OpenAPI 3.x mapping.
* :mod:`~specmatch.parser.extractor` -- Walks the resolved document and
  produces the descriptor models.
* :mod:`~specmatch.parser.normalizer` -- :class:`SpecNormalizer`, the
  cache-aware pipeline.
"""

from specmatch.parser.converter import convert_swagger_to_openapi
from specmatch.parser.extractor import extract_spec
from specmatch.parser.loader import detect_format, load_document, parse_text
from specmatch.parser.normalizer import SpecNormalizer
from specmatch.parser.resolver import resolve_refs

__all__ = [
    "SpecNormalizer",
    "convert_swagger_to_openapi",
    "detect_format",
    "extract_spec",
    "load_document",
    "parse_text",
    "resolve_refs",
]
