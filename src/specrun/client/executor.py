"""Compile call plans into concrete requests and execute them.

:func:`resolve_request` is pure: it binds a
:class:`~specrun.models.CallPlan` to caller-supplied values and returns a
:class:`~specrun.models.ResolvedRequest`, never touching the network.
:func:`execute_operation` resolves and then sends through any
:class:`RawHTTPPerformer` (normally
:meth:`~specrun.client.transport.AuthTransport.perform`).

Header precedence, evaluated separately for ``Accept`` and
``Content-Type``::

    explicit override (non-blank)  >  caller header (non-blank)  >  plan default

The URL helpers here are shared with :mod:`specrun.client.paginator`.
"""

from __future__ import annotations

import re
from typing import Iterable, Mapping, Optional, Protocol
from urllib.parse import quote, unquote_plus, urlencode, urljoin, urlsplit, urlunsplit

from specrun.client.response import header_value, raise_for_status
from specrun.exceptions import MissingParameterError
from specrun.models import CallPlan, RawResponse, ResolvedRequest
from specrun.output import debug

JSON_MEDIA_TYPE = "application/json"

# Characters allowed unescaped in a single path segment ("/" is not)
_PATH_SEGMENT_SAFE = "!$&'()*+,;=@"
_QUERY_SAFE = "[],:"
_PATH_TOKEN = re.compile(r"\{([^}]+)\}")

__all__ = [
    "RawHTTPPerformer",
    "append_query",
    "execute_operation",
    "raise_for_status",
    "resolve_request",
    "set_query_param",
]


class RawHTTPPerformer(Protocol):
    """Anything that can send a request and return a :class:`RawResponse`."""

    async def perform(
        self,
        method: str,
        url: str,
        body: Optional[bytes],
        add_json_headers: bool,
        headers: Mapping[str, str],
    ) -> RawResponse: ...


def resolve_request(
    plan: CallPlan,
    api_root: str,
    path_params: Optional[Mapping[str, str]] = None,
    query_items: Iterable[tuple[str, str]] = (),
    extra_headers: Optional[Mapping[str, str]] = None,
    body: Optional[bytes] = None,
    accept_override: Optional[str] = None,
    content_type_override: Optional[str] = None,
    suppress_json_headers: bool = False,
) -> ResolvedRequest:
    """Bind *plan* to concrete values.

    Args:
        plan: The operation's call plan.
        api_root: Absolute URL the operation path is resolved against.
        path_params: Values for ``{name}`` tokens; percent-encoded as a
            single path segment.
        query_items: ``(name, value)`` pairs appended after any query the
            resolved URL already has. Duplicates are kept.
        extra_headers: Caller headers, copied into the result.
        body: Request body; only its length is recorded.
        accept_override: Forced ``Accept`` value.
        content_type_override: Forced ``Content-Type`` value (only used with
            a body).
        suppress_json_headers: Never let the transport add JSON headers.

    Raises:
        MissingParameterError: Listing every required path parameter that
            was not supplied.
    """
    path_params = path_params or {}
    extra_headers = extra_headers or {}

    missing = [name for name in plan.required_path_params if name not in path_params]
    if missing:
        raise MissingParameterError(
            f"Missing path parameter(s): {', '.join(missing)}.",
            details={"missingPath": missing},
        )

    path = _substitute_path_params(plan.path_template, path_params)
    url = append_query(urljoin(api_root, path.lstrip("/")), query_items)

    forced_accept = _non_blank(accept_override)
    forced_content_type = _non_blank(content_type_override)
    accept = forced_accept or _non_blank(header_value(extra_headers, "Accept")) or plan.accept
    content_type = (
        forced_content_type
        or _non_blank(header_value(extra_headers, "Content-Type"))
        or plan.content_type
    )

    add_json_headers = not suppress_json_headers and (accept is None or accept == JSON_MEDIA_TYPE)

    headers = dict(extra_headers)
    if accept and (not add_json_headers or accept != JSON_MEDIA_TYPE or forced_accept):
        _set_header(headers, "Accept", accept)
    if body is not None and content_type:
        if not add_json_headers or content_type != JSON_MEDIA_TYPE or forced_content_type:
            _set_header(headers, "Content-Type", content_type)

    return ResolvedRequest(
        method=plan.method,
        url=url,
        headers=headers,
        body_bytes=len(body) if body is not None else 0,
        add_json_headers=add_json_headers,
    )


async def execute_operation(
    plan: CallPlan,
    api_root: str,
    performer: RawHTTPPerformer,
    path_params: Optional[Mapping[str, str]] = None,
    query_items: Iterable[tuple[str, str]] = (),
    extra_headers: Optional[Mapping[str, str]] = None,
    body: Optional[bytes] = None,
    accept_override: Optional[str] = None,
    content_type_override: Optional[str] = None,
    suppress_json_headers: bool = False,
    check: bool = True,
) -> RawResponse:
    """Resolve *plan* and send it through *performer*.

    Args:
        check: Raise :class:`~specrun.exceptions.APIError` for a non-2xx
            response. With ``False`` the response is returned as-is.

    Raises:
        MissingParameterError: See :func:`resolve_request`.
        APIError: On a non-2xx status when *check* is true.
    """
    resolved = resolve_request(
        plan,
        api_root,
        path_params=path_params,
        query_items=query_items,
        extra_headers=extra_headers,
        body=body,
        accept_override=accept_override,
        content_type_override=content_type_override,
        suppress_json_headers=suppress_json_headers,
    )
    debug(f"Executing {plan.operation_id}: {resolved.method} {resolved.url}")
    response = await performer.perform(
        resolved.method,
        resolved.url,
        body,
        resolved.add_json_headers,
        resolved.headers,
    )
    return raise_for_status(response) if check else response


# ------------------------------------------------------------------ #
# URL helpers
# ------------------------------------------------------------------ #


def append_query(url: str, items: Iterable[tuple[str, str]]) -> str:
    """Append *items* to the query of *url*, keeping what is already there."""
    items = list(items)
    if not items:
        return url
    parts = urlsplit(url)
    encoded = urlencode(items, quote_via=quote, safe=_QUERY_SAFE)
    query = f"{parts.query}&{encoded}" if parts.query else encoded
    return urlunsplit(parts._replace(query=query))


def set_query_param(url: str, name: str, value: str) -> str:
    """Drop every *name* parameter from *url* and append ``name=value``.

    Other query segments are kept byte for byte, so opaque server cursors
    survive unchanged.
    """
    parts = urlsplit(url)
    kept = [
        segment
        for segment in parts.query.split("&")
        if segment and unquote_plus(segment.partition("=")[0]) != name
    ]
    kept.append(urlencode([(name, value)], quote_via=quote, safe=_QUERY_SAFE))
    return urlunsplit(parts._replace(query="&".join(kept)))


def _substitute_path_params(template: str, values: Mapping[str, str]) -> str:
    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in values:
            return match.group(0)
        return quote(values[name], safe=_PATH_SEGMENT_SAFE)

    return _PATH_TOKEN.sub(replace, template)


def _non_blank(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _set_header(headers: dict[str, str], name: str, value: str) -> None:
    for key in [k for k in headers if k.lower() == name.lower()]:
        del headers[key]
    headers[name] = value
