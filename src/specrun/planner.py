"""Derive call plans from operation descriptors.

A :class:`~specrun.models.CallPlan` is the static contract of one operation:
which path, query and header parameters must be supplied, which media types
are negotiated, and whether the operation is mutating and therefore needs an
explicit confirmation. :func:`build_call_plan` is a pure function of the
descriptor, so plans can be memoized freely (see
:meth:`~specrun.parser.index.SpecIndex.plan`).

Two presentation helpers build on a plan:

* :func:`describe_operation` -- a JSON-friendly summary of one operation.
* :func:`run_template` -- the minimal inputs needed to run an operation,
  including a request-body skeleton.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Optional

from specrun.models import MUTATING_METHODS, CallPlan, OperationDescriptor

if TYPE_CHECKING:
    from specrun.parser.schema import SchemaResolver

JSON_MEDIA_TYPE = "application/json"

# Headers the transport manages itself; never reported as required inputs
_MANAGED_HEADERS = frozenset({"authorization", "accept", "content-type"})

_PATH_TOKEN = re.compile(r"\{([^}]+)\}")


def build_call_plan(op: OperationDescriptor) -> CallPlan:
    """Compute the :class:`CallPlan` for *op*."""
    required_query = _required_params(op, "query")
    response_types = _response_content_types(op)
    request_types = _request_content_types(op)
    accept = _negotiate(response_types)

    body = op.request_body or {}
    return CallPlan(
        method=op.method,
        path_template=op.path,
        operation_id=op.operation_id,
        required_path_params=extract_path_params(op.path),
        required_query_params=required_query,
        required_header_params=_required_header_params(op),
        suggested_query_pairs=_suggested_query_pairs(op, required_query),
        request_body_required=body.get("required") is True,
        request_content_types=request_types,
        response_content_types=response_types,
        accept=accept,
        content_type=_negotiate(request_types),
        add_json_headers=accept is None or accept == JSON_MEDIA_TYPE,
        requires_confirm=method_requires_confirm(op.method),
    )


def extract_path_params(path_template: str) -> list[str]:
    """Return ``{name}`` tokens of *path_template* in first-seen order, unique.

    Example::

        >>> extract_path_params("/v1/apps/{id}/builds/{buildId}/{id}")
        ['id', 'buildId']
    """
    names: list[str] = []
    for match in _PATH_TOKEN.finditer(path_template):
        name = match.group(1)
        if name and name not in names:
            names.append(name)
    return names


def method_requires_confirm(method: str) -> bool:
    """Whether *method* is a mutating verb."""
    return method.upper() in MUTATING_METHODS


def _negotiate(media_types: list[str]) -> Optional[str]:
    if JSON_MEDIA_TYPE in media_types:
        return JSON_MEDIA_TYPE
    return media_types[0] if media_types else None


def _response_content_types(op: OperationDescriptor) -> list[str]:
    """Media types of the first response (by status code) declaring content."""
    if not op.responses:
        return []
    for _, response in sorted(op.responses.items(), key=lambda kv: str(kv[0])):
        if not isinstance(response, dict):
            continue
        content = response.get("content")
        if isinstance(content, dict) and content:
            return sorted(content)
    return []


def _request_content_types(op: OperationDescriptor) -> list[str]:
    if not op.request_body:
        return []
    content = op.request_body.get("content")
    return sorted(content) if isinstance(content, dict) else []


def _required_params(op: OperationDescriptor, location: str) -> list[str]:
    names = {
        p["name"]
        for p in op.parameters
        if p.get("in") == location and p.get("required") is True and isinstance(p.get("name"), str)
    }
    return sorted(names)


def _required_header_params(op: OperationDescriptor) -> list[str]:
    names: set[str] = set()
    for p in op.parameters:
        if p.get("in") != "header" or p.get("required") is not True:
            continue
        name = p.get("name")
        if not isinstance(name, str):
            continue
        trimmed = name.strip()
        if trimmed and trimmed.lower() not in _MANAGED_HEADERS:
            names.add(trimmed)
    return sorted(names)


def _suggested_query_pairs(op: OperationDescriptor, required_query: list[str]) -> list[str]:
    pairs: list[str] = []
    if any(p.get("in") == "query" and p.get("name") == "limit" for p in op.parameters):
        pairs.append("limit=50")
    pairs.extend(f"{name}=VALUE" for name in required_query if name != "limit")
    return pairs


# ------------------------------------------------------------------ #
# Presentation helpers
# ------------------------------------------------------------------ #


def describe_operation(
    op: OperationDescriptor, plan: CallPlan, resolver: SchemaResolver
) -> dict[str, Any]:
    """Summarize *op* and its plan as a JSON-friendly mapping.

    Parameters are grouped by location and sorted by name; their schemas are
    reduced to ``$ref``, ``type`` and ``enum``.
    """
    return {
        "method": op.method,
        "path": op.path,
        "operationId": op.operation_id,
        "tags": list(op.tags),
        "summary": op.summary or "",
        "description": op.description or "",
        "dangerous": plan.requires_confirm,
        "requiresConfirm": plan.requires_confirm,
        "required": {
            "path": list(plan.required_path_params),
            "query": list(plan.required_query_params),
            "header": list(plan.required_header_params),
        },
        "parameters": _group_parameters(op.parameters),
        "request": {
            "bodyRequired": plan.request_body_required,
            "contentTypes": list(plan.request_content_types),
            "contentType": plan.content_type,
        },
        "response": {
            "contentTypes": list(plan.response_content_types),
            "accept": plan.accept,
            "kind": resolver.response_kind(op),
        },
    }


def run_template(
    op: OperationDescriptor, plan: CallPlan, resolver: SchemaResolver
) -> dict[str, Any]:
    """Return the minimal inputs needed to run *op*.

    ``pathParams`` and ``query`` hold ``VALUE`` placeholders for every
    required parameter; ``body`` is the request-body skeleton (or ``None``).
    ``accept`` and ``contentType`` are only set when the caller must pass
    them explicitly, i.e. when they are not the defaults the transport adds.
    """
    accept: Optional[str] = None
    if not plan.add_json_headers and plan.accept:
        accept = plan.accept
    content_type: Optional[str] = None
    if plan.content_type and (plan.content_type != JSON_MEDIA_TYPE or not plan.add_json_headers):
        content_type = plan.content_type

    return {
        "operationId": plan.operation_id,
        "method": plan.method,
        "path": plan.path_template,
        "pathParams": {name: "VALUE" for name in plan.required_path_params},
        "query": [f"{name}=VALUE" for name in plan.required_query_params],
        "confirm": plan.requires_confirm,
        "noJSONHeaders": not plan.add_json_headers,
        "accept": accept,
        "contentType": content_type,
        "body": resolver.body_template(op),
        "hints": {
            "pathParams": list(plan.required_path_params),
            "requiredQuery": list(plan.required_query_params),
            "requiredHeaders": list(plan.required_header_params),
            "suggestedQuery": list(plan.suggested_query_pairs),
            "contentType": plan.content_type,
            "accept": plan.accept,
            "dangerous": plan.requires_confirm,
        },
    }


def _group_parameters(params: list[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    grouped: dict[str, list[dict[str, Any]]] = {}
    for p in params:
        location = p.get("in")
        if not isinstance(location, str):
            continue
        grouped.setdefault(location, []).append(_summarize_param(p))
    for entries in grouped.values():
        entries.sort(key=lambda e: e["name"])
    return grouped


def _summarize_param(p: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {
        "name": p["name"] if isinstance(p.get("name"), str) else "",
        "in": p.get("in", ""),
        "required": p.get("required") is True,
    }
    schema = p.get("schema")
    if isinstance(schema, dict):
        summary: dict[str, Any] = {}
        for key in ("$ref", "type", "enum"):
            if key in schema:
                summary[key] = schema[key]
        out["schema"] = summary
    if isinstance(p.get("description"), str):
        out["description"] = p["description"]
    return out
