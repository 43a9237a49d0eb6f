"""Resolve ``$ref`` JSON Reference pointers in OpenAPI and Swagger documents.

Documents commonly use ``$ref`` pointers (e.g.,
``{"$ref": "#/components/schemas/Pet"}``) to avoid repetition.  This module
performs a recursive deep-copy traversal of the document, replacing every
``$ref`` with the actual referenced object.

Supported pointer forms:

* **Internal** -- ``#/components/schemas/Pet``.
* **External file** -- ``common.yaml#/Error`` or ``./models/pet.json``,
  resolved relative to the file that contains the pointer.
* **External URL** -- ``https://example.com/schemas.json#/Pet``, fetched with
  :mod:`httpx`.

External pointers are followed only when ``resolve_external`` is set.

Circular references are detected via a ``seen`` set of absolute pointer keys
on the resolution stack.  A cycle, like a pointer to a missing target, raises
:class:`~specmatch.exceptions.RefResolutionError` unless ``continue_on_error``
is set, in which case the ``$ref`` dict is kept as-is at that point.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urljoin

from specmatch.exceptions import RefResolutionError, SpecmatchError
from specmatch.parser.loader import is_url, load_document

logger = logging.getLogger(__name__)


def resolve_refs(
    spec: dict[str, Any],
    base: str | Path | None = None,
    resolve_external: bool = True,
    continue_on_error: bool = False,
    timeout: float = 30.0,
) -> dict[str, Any]:
    """Resolve all ``$ref`` pointers in *spec*.

    Creates a deep copy of the input and recursively replaces every ``$ref``
    dict with the object it points to.

    Args:
        spec: The raw document, as returned by
            :func:`~specmatch.parser.loader.load_document`.
        base: File path or URL the document was loaded from.  Relative
            external pointers are resolved against it (or against the
            working directory when ``None``).
        resolve_external: Follow pointers into other files or URLs.
        continue_on_error: Keep circular or dangling ``$ref`` dicts in place
            instead of raising.
        timeout: Seconds allowed for each external document fetch.

    Returns:
        A **new** dictionary with all resolvable ``$ref`` pointers replaced.

    Raises:
        RefResolutionError: On a dangling, circular, or disallowed external
            reference when ``continue_on_error`` is off.

    Example::

        raw = load_document("petstore.yaml")
        resolved = resolve_refs(raw, base="petstore.yaml")
    """
    resolver = RefResolver(
        spec,
        base=base,
        resolve_external=resolve_external,
        continue_on_error=continue_on_error,
        timeout=timeout,
    )
    return resolver.resolve()


class RefResolver:
    """Stateful resolver for a single document and the documents it points to.

    External documents are loaded at most once per resolver.  Pointers that
    were left unresolved under ``continue_on_error`` are listed in
    :attr:`unresolved`.

    Args:
        document: The root document.  It is deep-copied, never mutated.
        base: Location of the root document (file path or URL).
        resolve_external: Follow pointers into other files or URLs.
        continue_on_error: Keep circular or dangling ``$ref`` dicts in place.
        timeout: Seconds allowed for each external document fetch.
    """

    def __init__(
        self,
        document: dict[str, Any],
        base: str | Path | None = None,
        resolve_external: bool = True,
        continue_on_error: bool = False,
        timeout: float = 30.0,
    ) -> None:
        self._root = copy.deepcopy(document)
        self._base = _absolute_location(str(base)) if base is not None else None
        self._resolve_external = resolve_external
        self._continue_on_error = continue_on_error
        self._timeout = timeout
        self._documents: dict[str, dict[str, Any]] = {}
        self.unresolved: list[str] = []

    def resolve(self) -> dict[str, Any]:
        """Return the fully resolved copy of the root document."""
        return self._deep_resolve(self._root, self._root, self._base, frozenset())

    def _deep_resolve(
        self,
        obj: Any,
        root: dict[str, Any],
        base: Optional[str],
        seen: frozenset[str],
    ) -> Any:
        """Recursively resolve all ``$ref`` pointers within *obj*.

        *root* and *base* describe the document that *obj* belongs to, so
        that relative pointers inside external documents resolve against
        their own file.  ``seen`` holds the absolute keys currently on the
        resolution stack; each branch extends its own copy so that sibling
        references do not interfere with each other.
        """
        if isinstance(obj, dict):
            ref = obj.get("$ref")
            if isinstance(ref, str):
                return self._follow(obj, ref, root, base, seen)
            return {key: self._deep_resolve(value, root, base, seen) for key, value in obj.items()}

        if isinstance(obj, list):
            return [self._deep_resolve(item, root, base, seen) for item in obj]

        return obj

    def _follow(
        self,
        obj: dict[str, Any],
        ref: str,
        root: dict[str, Any],
        base: Optional[str],
        seen: frozenset[str],
    ) -> Any:
        try:
            location, pointer = self._split(ref, base)
            key = f"{location or base or ''}#{pointer}"
            if key in seen:
                raise RefResolutionError(f"Circular $ref detected: {ref}", ref=ref)

            if location is None:
                target_root, target_base = root, base
            else:
                target_root, target_base = self._load_external(location, ref), location
            target = _resolve_pointer(pointer, target_root, ref)
        except RefResolutionError as exc:
            if not self._continue_on_error:
                raise
            logger.warning("Leaving $ref unresolved: %s", exc)
            self.unresolved.append(ref)
            return obj

        return self._deep_resolve(target, target_root, target_base, seen | {key})

    def _split(self, ref: str, base: Optional[str]) -> tuple[Optional[str], str]:
        """Split *ref* into an absolute document location and a JSON pointer.

        The location is ``None`` for pointers into the current document.
        """
        if ref.startswith("#"):
            return None, ref[1:]

        if not self._resolve_external:
            raise RefResolutionError(
                f"External $ref not allowed: {ref}. "
                "Enable external reference resolution to follow it.",
                ref=ref,
            )

        location, _, pointer = ref.partition("#")
        if is_url(location):
            absolute = location
        elif base is not None and is_url(base):
            absolute = urljoin(base, location)
        elif base is not None:
            absolute = str((Path(base).parent / location).resolve())
        else:
            absolute = str(Path(location).resolve())
        return absolute, pointer

    def _load_external(self, location: str, ref: str) -> dict[str, Any]:
        if location not in self._documents:
            logger.debug("Loading external document %s", location)
            try:
                self._documents[location] = load_document(location, timeout=self._timeout)
            except SpecmatchError as exc:
                raise RefResolutionError(
                    f"Cannot resolve $ref '{ref}': {exc}", ref=ref
                ) from exc
        return self._documents[location]


def _absolute_location(location: str) -> str:
    if is_url(location) or location == "-":
        return location
    return str(Path(location).resolve())


def _resolve_pointer(pointer: str, root: dict[str, Any], ref: str) -> Any:
    """Navigate *root* along a JSON pointer.

    Handles RFC 6901 escaping (``~0`` for ``~``, ``~1`` for ``/``) and list
    indices.  An empty pointer designates the whole document.

    Raises:
        RefResolutionError: If any segment does not exist.
    """
    if pointer == "":
        return root
    if not pointer.startswith("/"):
        raise RefResolutionError(
            f"Cannot resolve $ref '{ref}': unsupported fragment '#{pointer}'", ref=ref
        )

    current: Any = root
    for segment in pointer[1:].split("/"):
        segment = segment.replace("~1", "/").replace("~0", "~")

        if isinstance(current, dict):
            if segment not in current:
                raise RefResolutionError(
                    f"Cannot resolve $ref '{ref}': key '{segment}' not found at path",
                    ref=ref,
                )
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError) as exc:
                raise RefResolutionError(
                    f"Cannot resolve $ref '{ref}': invalid array index '{segment}'",
                    ref=ref,
                ) from exc
        else:
            raise RefResolutionError(
                f"Cannot resolve $ref '{ref}': cannot navigate into {type(current).__name__}",
                ref=ref,
            )

    return current
