"""Helpers for inspecting :class:`~specrun.models.RawResponse` bodies.

These sit between the transport (which never raises on HTTP status) and
callers that want decoded JSON or structured errors:

* :func:`raise_for_status` -- map a non-2xx response to
  :class:`~specrun.exceptions.APIError`.
* :func:`api_error_details` -- best-effort parse of an error body.
* :func:`decode_json_body` / :func:`require_json_body` -- decode success
  bodies.
* :func:`header_value` -- case-insensitive header lookup.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional

from specrun.exceptions import APIError, NonJSONOutputError
from specrun.models import RawResponse


def header_value(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Look up *name* in *headers*, exact match first, then case-insensitively."""
    if name in headers:
        return headers[name]
    lower = name.lower()
    for key, value in headers.items():
        if key.lower() == lower:
            return value
    return None


def decode_json_body(body: bytes) -> Any:
    """Decode *body* as JSON; ``None`` for an empty or non-JSON body."""
    if not body:
        return None
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def require_json_body(response: RawResponse) -> Any:
    """Decode the response body, refusing non-JSON content.

    An empty body decodes to ``None``.

    Raises:
        NonJSONOutputError: If the body is non-empty and not valid JSON.
    """
    if not response.body:
        return None
    try:
        return json.loads(response.body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise NonJSONOutputError(response.content_type) from exc


def api_error_details(body: bytes) -> dict[str, Any]:
    """Best-effort structured view of an error body.

    Returns ``{"body": <decoded JSON>}`` when the body is JSON,
    ``{"body": <text>}`` when it is some other non-empty payload, and ``{}``
    for an empty body.
    """
    if not body:
        return {}
    decoded = decode_json_body(body)
    if decoded is not None:
        return {"body": decoded}
    return {"body": body.decode("utf-8", errors="replace")}


def raise_for_status(response: RawResponse) -> RawResponse:
    """Return *response* unchanged if successful, else raise :class:`APIError`.

    JSON:API ``errors`` entries are summarized into the message, one line
    per error as ``status | code | title | detail``.

    Raises:
        APIError: If the status code is outside ``[200, 300)``.
    """
    if response.is_success:
        return response

    details = api_error_details(response.body)
    message = f"API request failed with status {response.status_code}."
    summary = _summarize_errors(details.get("body"))
    if summary:
        message = f"{message}\n{summary}"
    raise APIError(response.status_code, message, details=details)


def _summarize_errors(body: Any) -> str:
    if not isinstance(body, dict):
        return ""
    errors = body.get("errors")
    if not isinstance(errors, list):
        return ""
    lines = []
    for entry in errors:
        if not isinstance(entry, dict):
            continue
        parts = [str(entry[k]) for k in ("status", "code", "title", "detail") if entry.get(k) not in (None, "")]
        if parts:
            lines.append(" | ".join(parts))
    return "\n".join(lines)
