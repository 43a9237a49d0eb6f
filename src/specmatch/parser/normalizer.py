"""Turn a spec source into a :class:`~specmatch.models.NormalizedSpec`.

:class:`SpecNormalizer` is the public face of the parser package.  It accepts
a file path, URL, ``'-'`` for stdin, or an already-parsed dict, and runs the
pipeline:

1. :func:`~specmatch.parser.loader.load_document` -- read and parse.
2. :func:`~specmatch.parser.loader.detect_format` -- OpenAPI or Swagger.
3. :func:`~specmatch.parser.converter.convert_swagger_to_openapi` -- Swagger
   documents only, so a single extraction path serves both families.
4. :func:`~specmatch.parser.resolver.resolve_refs` -- unless disabled.
5. :func:`~specmatch.parser.extractor.extract_spec`.

File-backed results are stored in an injected cache keyed by resolved
absolute path.  A cached entry is reused only when the file is unchanged, the
options match, and the caller did not ask for a fresh load.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Optional

from specmatch.cache import CacheEntry, SpecCacheBackend
from specmatch.models import NormalizedSpec, NormalizerOptions, SpecFormat
from specmatch.parser.converter import convert_swagger_to_openapi
from specmatch.parser.extractor import extract_spec
from specmatch.parser.loader import detect_format, is_url, load_document, parse_text
from specmatch.parser.resolver import resolve_refs

logger = logging.getLogger(__name__)


class SpecNormalizer:
    """Load and normalize OpenAPI 3.x and Swagger 2.0 specifications.

    Args:
        cache: Optional cache backend.  Without one every call re-parses.
        options: Default options used when :meth:`load` receives none.

    Example::

        normalizer = SpecNormalizer(cache=SpecCache())
        spec = normalizer.load("openapi.yaml")
        print(spec.format, len(spec.operations))
    """

    def __init__(
        self,
        cache: Optional[SpecCacheBackend] = None,
        options: Optional[NormalizerOptions] = None,
    ) -> None:
        self._cache = cache
        self._options = options or NormalizerOptions()

    @property
    def cache(self) -> Optional[SpecCacheBackend]:
        """The injected cache backend, if any."""
        return self._cache

    def load(
        self,
        source: str | Path | dict[str, Any],
        options: Optional[NormalizerOptions] = None,
    ) -> NormalizedSpec:
        """Load *source* and return its normalized form.

        Args:
            source: A file path, http(s) URL, ``'-'`` for stdin, or a parsed
                document dict.  Dicts and non-file sources are never cached.
            options: Load options; defaults to the normalizer's options.

        Returns:
            The normalized spec.

        Raises:
            SpecNotFound: The file does not exist.
            SpecParseError: The text is not valid JSON or YAML.
            SpecFormatError: The document has no ``openapi``/``swagger`` field.
            RefResolutionError: A dangling or circular ``$ref`` was found
                and ``continue_on_error`` is off.
            ConversionError: A Swagger document could not be converted.
        """
        opts = options or self._options

        if isinstance(source, dict):
            return self._normalize(source, opts, base=None)

        location = str(source)
        if location == "-" or is_url(location):
            document = load_document(location, timeout=opts.timeout)
            return self._normalize(document, opts, base=None if location == "-" else location)

        path = Path(location).expanduser()
        key = str(path.resolve())
        fingerprint = _fingerprint(path)

        if self._cache is not None and not opts.validate_spec and fingerprint is not None:
            entry = self._cache.get(key)
            if (
                entry is not None
                and entry.fingerprint == fingerprint
                and entry.stamp == opts.cache_stamp()
            ):
                logger.debug("Spec cache hit for %s", key)
                return entry.spec

        document = load_document(path, timeout=opts.timeout)
        spec = self._normalize(document, opts, base=key)

        if self._cache is not None and fingerprint is not None:
            self._cache.set(
                key, CacheEntry(spec=spec, fingerprint=fingerprint, stamp=opts.cache_stamp())
            )
        return spec

    def load_text(
        self, text: str, options: Optional[NormalizerOptions] = None
    ) -> NormalizedSpec:
        """Normalize JSON or YAML *text* held in memory. Never cached."""
        return self._normalize(parse_text(text), options or self._options, base=None)

    def clear_cache(self) -> None:
        """Drop every cached spec."""
        if self._cache is not None:
            self._cache.clear()

    def stats(self) -> dict[str, Any]:
        """Return cache statistics, or ``{"enabled": False}`` without a cache."""
        if self._cache is None:
            return {"enabled": False}
        return {"enabled": True, **self._cache.stats()}

    def _normalize(
        self,
        document: dict[str, Any],
        opts: NormalizerOptions,
        base: Optional[str],
    ) -> NormalizedSpec:
        spec_format, version = detect_format(document)

        if spec_format == SpecFormat.SWAGGER:
            openapi_doc = convert_swagger_to_openapi(document)
        else:
            openapi_doc = document

        if opts.dereference:
            processed = resolve_refs(
                openapi_doc,
                base=base,
                resolve_external=opts.resolve_external_refs,
                continue_on_error=opts.continue_on_error,
                timeout=opts.timeout,
            )
        else:
            processed = copy.deepcopy(openapi_doc)

        return extract_spec(
            processed, spec_format, version, unresolved=openapi_doc, source=base
        )


def _fingerprint(path: Path) -> Optional[tuple[int, int]]:
    """Return ``(mtime_ns, size)`` of *path*, or ``None`` if it cannot be stat'ed."""
    try:
        stat = path.stat()
    except OSError:
        return None
    return stat.st_mtime_ns, stat.st_size
