"""Parse caller-supplied request inputs.

Callers hand over raw strings (``key=value`` pairs, inline JSON, file paths);
this module turns them into the typed values the request compiler expects,
raising :class:`~specrun.exceptions.InvalidArgumentError` for anything
malformed.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Mapping, Optional

from specrun.exceptions import InvalidArgumentError

QueryItems = list[tuple[str, str]]


def parse_pairs(pairs: Iterable[str], flag: str = "pair") -> list[tuple[str, str]]:
    """Split each ``key=value`` string on its first ``=``.

    Args:
        pairs: Raw pair strings, e.g. ``["filter[app]=123", "a=b=c"]``.
        flag: Name of the input the pairs came from, used in error messages.

    Returns:
        ``(name, value)`` tuples in input order. Values may be empty.

    Raises:
        InvalidArgumentError: If a pair has no ``=`` or an empty key.
    """
    out: list[tuple[str, str]] = []
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep:
            raise InvalidArgumentError(
                f"Invalid {flag} '{pair}'. Expected key=value.",
                details={"flag": flag, "value": pair},
            )
        if not name:
            raise InvalidArgumentError(
                f"Invalid {flag} '{pair}'. Key must not be empty.",
                details={"flag": flag, "value": pair},
            )
        out.append((name, value))
    return out


def parse_pair_dict(pairs: Iterable[str], flag: str = "pair") -> dict[str, str]:
    """Like :func:`parse_pairs` but collapsed to a dict; the last value per key wins."""
    return dict(parse_pairs(pairs, flag))


def parse_query(pairs: Iterable[str]) -> QueryItems:
    """Parse repeatable query items; duplicates are preserved in order."""
    return parse_pairs(pairs, flag="query")


def strip_authorization(headers: Mapping[str, str]) -> dict[str, str]:
    """Drop any ``Authorization`` header; the transport sets its own."""
    return {k: v for k, v in headers.items() if k.lower() != "authorization"}


def load_body(body_json: Optional[str] = None, body_file: Optional[str] = None) -> Optional[bytes]:
    """Load a request body from inline JSON or a file.

    Inline JSON is validated and re-serialized without whitespace so the same
    input always produces the same bytes. File contents are sent verbatim.

    Raises:
        InvalidArgumentError: If both sources are given, the JSON is
            malformed, or the file cannot be read.
    """
    if body_json is not None and body_file is not None:
        raise InvalidArgumentError("Provide only one of a JSON body or a body file.")

    if body_json is not None:
        try:
            parsed = json.loads(body_json)
        except json.JSONDecodeError as exc:
            raise InvalidArgumentError(f"Invalid JSON body: {exc}") from exc
        return json.dumps(parsed, separators=(",", ":"), ensure_ascii=False).encode("utf-8")

    if body_file is not None:
        path = Path(body_file).expanduser()
        try:
            return path.read_bytes()
        except OSError as exc:
            raise InvalidArgumentError(
                f"Failed to read body file {body_file}: {exc}",
                details={"path": body_file},
            ) from exc

    return None
