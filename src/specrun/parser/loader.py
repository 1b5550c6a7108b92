"""Read OpenAPI documents from a URL, a local file or stdin.

:func:`load_spec` returns the decoded top-level object and
:func:`load_spec_index` goes one step further and indexes it. All I/O for
documents lives here; :class:`~specrun.parser.index.SpecIndex` only ever sees
the decoded dict.

Format detection, first match wins:

1. file suffix (``.json`` / ``.yaml`` / ``.yml``) or response content type;
2. otherwise JSON is tried, then YAML.

YAML is decoded with ``yaml.safe_load``. Unquoted status codes therefore come
back as ``int`` keys; the index turns them back into strings.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Optional

import httpx
import yaml

from specrun.exceptions import SpecParseError
from specrun.output import debug
from specrun.parser.index import SpecIndex

STDIN_SOURCE = "-"
URL_FETCH_TIMEOUT_SECONDS = 30.0

_SUFFIX_FORMATS = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}


def load_spec(source: str) -> dict[str, Any]:
    """Load the document at *source*.

    Args:
        source: An ``http(s)://`` URL, a file path, or ``"-"`` for stdin.

    Raises:
        SpecParseError: If the source cannot be read, cannot be decoded, or
            does not hold an object at the top level.
    """
    if source == STDIN_SOURCE:
        text, fmt = _read_stdin(), None
    elif source.startswith(("http://", "https://")):
        text, fmt = _fetch(source)
    else:
        text, fmt = _read_file(source)
    debug(f"Loaded spec from {source} ({len(text)} chars, format={fmt or 'auto'})")
    return parse_document(text, fmt)


def load_spec_index(source: str) -> SpecIndex:
    """:func:`load_spec` followed by :class:`SpecIndex` construction."""
    index = SpecIndex(load_spec(source))
    debug(f"Indexed {index.operations_count} operations from {source}")
    return index


def parse_document(text: str, fmt: Optional[str] = None) -> dict[str, Any]:
    """Decode *text* as JSON or YAML.

    With ``fmt="json"`` a JSON error is final; with ``fmt="yaml"`` JSON is not
    attempted. Without a format, JSON is tried first and YAML second, and
    both errors are reported if neither works.

    Raises:
        SpecParseError: On a decoding failure or a non-object document.
    """
    json_error: Optional[json.JSONDecodeError] = None
    if fmt != "yaml":
        try:
            return _require_object(json.loads(text))
        except json.JSONDecodeError as exc:
            if fmt == "json":
                raise SpecParseError(f"Invalid JSON: {exc}") from exc
            json_error = exc

    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        lines = ["Failed to parse spec as JSON or YAML"]
        if json_error is not None:
            lines.append(f"  JSON error: {json_error}")
        lines.append(f"  YAML error: {exc}")
        raise SpecParseError("\n".join(lines)) from exc
    return _require_object(document)


# ------------------------------------------------------------------ #
# Sources
# ------------------------------------------------------------------ #


def _read_stdin() -> str:
    try:
        text = sys.stdin.read()
    except OSError as exc:
        raise SpecParseError(f"Failed to read from stdin: {exc}") from exc
    if not text.strip():
        raise SpecParseError("No input received from stdin")
    return text


def _fetch(url: str) -> tuple[str, Optional[str]]:
    try:
        response = httpx.get(url, timeout=URL_FETCH_TIMEOUT_SECONDS, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecParseError(
            f"HTTP {exc.response.status_code} fetching spec from {url}",
            details={"url": url, "status": exc.response.status_code},
        ) from exc
    except httpx.RequestError as exc:
        raise SpecParseError(f"Failed to fetch spec from {url}: {exc}", details={"url": url}) from exc

    content_type = response.headers.get("content-type", "").lower()
    if "json" in content_type:
        fmt: Optional[str] = "json"
    elif "yaml" in content_type or "yml" in content_type:
        fmt = "yaml"
    else:
        fmt = None
    return response.text, fmt


def _read_file(path: str) -> tuple[str, Optional[str]]:
    file_path = Path(path).expanduser()
    if not file_path.is_file():
        raise SpecParseError(f"Spec file not found: {path}", details={"path": path})
    try:
        text = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SpecParseError(f"Failed to read spec file {path}: {exc}", details={"path": path}) from exc
    if not text.strip():
        raise SpecParseError(f"Spec file is empty: {path}", details={"path": path})
    return text, _SUFFIX_FORMATS.get(file_path.suffix.lower())


def _require_object(document: Any) -> dict[str, Any]:
    if isinstance(document, dict):
        return document
    got = "empty document" if document is None else type(document).__name__
    raise SpecParseError(f"Spec must be a JSON/YAML object (got {got})")
