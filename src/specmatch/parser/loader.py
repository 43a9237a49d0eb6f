"""Load API specifications from a URL, local file, stdin, or raw text.

This module handles all I/O for fetching raw OpenAPI or Swagger documents and
converting them into Python dictionaries.  It supports both JSON and YAML
formats with automatic format detection, and identifies which document family
(OpenAPI 3.x or Swagger 2.0) a parsed document belongs to.

The public functions are:

* :func:`load_document` -- Load and parse a document from any supported source.
* :func:`parse_text` -- Parse JSON or YAML text that is already in memory.
* :func:`detect_format` -- Return the document family and version string.

Reading a local file is the only blocking step of the whole pipeline, so it
runs in a worker thread bounded by the caller's timeout.
"""

from __future__ import annotations

import json
import sys
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from pathlib import Path
from typing import Any

import httpx
import yaml

from specmatch.exceptions import SpecFormatError, SpecNotFound, SpecParseError
from specmatch.models import SpecFormat


def load_document(source: str | Path, timeout: float = 30.0) -> dict[str, Any]:
    """Load a spec document from URL, file path, or stdin ('-').

    Supports JSON and YAML formats.
    Auto-detects format from content/extension.

    Args:
        source: A URL (http/https), file path, or '-' for stdin.
        timeout: Seconds allowed for the fetch or file read.

    Returns:
        The parsed document as a dictionary.

    Raises:
        SpecNotFound: If a file path does not exist.
        SpecParseError: If the source cannot be read or parsed.
    """
    source = str(source)
    if source == "-":
        return _load_from_stdin()
    elif is_url(source):
        return _load_from_url(source, timeout)
    else:
        return _load_from_file(source, timeout)


def is_url(source: str) -> bool:
    """Return True for http(s) URLs."""
    return source.startswith(("http://", "https://"))


def _load_from_stdin() -> dict[str, Any]:
    """Read a document from stdin.

    Raises:
        SpecParseError: If stdin is empty or content cannot be parsed.
    """
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise SpecParseError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise SpecParseError("No input received from stdin")

    return parse_text(content, hint="stdin")


def _load_from_url(url: str, timeout: float) -> dict[str, Any]:
    """Fetch a document from URL. Supports JSON and YAML responses.

    Raises:
        SpecNotFound: If the server answers 404.
        SpecParseError: If the URL cannot be fetched or content cannot be parsed.
    """
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        if exc.response.status_code == 404:
            raise SpecNotFound(f"Specification not found at {url}") from exc
        raise SpecParseError(
            f"HTTP {exc.response.status_code} fetching spec from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise SpecParseError(f"Failed to fetch spec from {url}: {exc}") from exc

    content = response.text
    # Use content-type as a hint for parsing
    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"

    return parse_text(content, hint=hint)


def _load_from_file(path: str, timeout: float) -> dict[str, Any]:
    """Load a document from a local file.

    Supports .json, .yaml, and .yml extensions. Falls back to content-based
    detection if the extension is not recognized.

    Raises:
        SpecNotFound: If the file does not exist.
        SpecParseError: If the file cannot be read in time or parsed.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise SpecNotFound(f"Specification file not found: {path}")

    content = read_text(file_path, timeout)

    if not content.strip():
        raise SpecParseError(f"Spec file is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"

    return parse_text(content, hint=hint)


def read_text(path: Path, timeout: float) -> str:
    """Read *path* as UTF-8 in a worker thread, giving up after *timeout* seconds.

    Raises:
        SpecParseError: On read errors or when the timeout expires.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="specmatch-read")
    try:
        future = executor.submit(path.read_text, encoding="utf-8")
        return future.result(timeout=timeout)
    except FutureTimeout as exc:
        raise SpecParseError(
            f"Timed out after {timeout:g}s reading spec file {path}"
        ) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise SpecParseError(f"Failed to read spec file {path}: {exc}") from exc
    finally:
        executor.shutdown(wait=False)


def parse_text(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML.
    Valid JSON is also valid YAML, but JSON parsing is stricter and faster.

    Args:
        content: The raw string content.
        hint: Optional format hint ('json' or 'yaml').

    Returns:
        The parsed dictionary.

    Raises:
        SpecParseError: If the content cannot be parsed as either format.
    """
    json_error: Exception | None = None
    yaml_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
            if not isinstance(result, dict):
                raise SpecParseError(
                    "Spec must be a JSON/YAML object (got "
                    f"{type(result).__name__})"
                )
            return result
        except json.JSONDecodeError as exc:
            json_error = exc
            if hint == "json":
                raise SpecParseError(f"Invalid JSON: {exc}") from exc

    try:
        result = yaml.safe_load(content)
        if not isinstance(result, dict):
            raise SpecParseError(
                "Spec must be a JSON/YAML object (got "
                f"{type(result).__name__ if result is not None else 'empty document'})"
            )
        return result
    except yaml.YAMLError as exc:
        yaml_error = exc

    msg = "Failed to parse spec as JSON or YAML"
    if json_error:
        msg += f"\n  JSON error: {json_error}"
    if yaml_error:
        msg += f"\n  YAML error: {yaml_error}"
    raise SpecParseError(msg)


def detect_format(document: dict[str, Any]) -> tuple[SpecFormat, str]:
    """Identify the document family from its top-level version field.

    ``openapi`` wins when a document carries both fields.

    Args:
        document: The parsed document.

    Returns:
        A ``(format, version)`` tuple, e.g. ``(SpecFormat.SWAGGER, "2.0")``.

    Raises:
        SpecFormatError: If neither ``openapi`` nor ``swagger`` is present.
    """
    if "openapi" in document:
        return SpecFormat.OPENAPI, str(document["openapi"])
    if "swagger" in document:
        return SpecFormat.SWAGGER, str(document["swagger"])
    raise SpecFormatError(
        "Invalid specification format: missing 'openapi' or 'swagger' field"
    )
