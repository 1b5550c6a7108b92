"""Resolve component schema references and synthesize skeleton values.

Only local component references (``#/components/schemas/<Name>``) are
followed; any other ``$ref`` form is returned unresolved. Composition
keywords are simplified deterministically:

* ``allOf`` -- skeletons of every branch are shallow-merged, later branches
  overwrite earlier keys (last wins).
* ``oneOf`` / ``anyOf`` -- only the first branch is used.

Skeletons are deliberately minimal: objects only carry their ``required``
properties and arrays are always empty. They are meant as request-body
templates a user fills in, not as realistic examples.
"""

from __future__ import annotations

from typing import Any, Optional

from specrun.models import JSONValue, OperationDescriptor

PLACEHOLDER = "VALUE"
MAX_DEPTH = 6

_COMPONENT_PREFIX = "#/components/schemas/"


class SchemaResolver:
    """Schema helper bound to one OpenAPI document.

    Args:
        raw: The decoded OpenAPI document whose ``components/schemas`` are
            used to resolve references.
    """

    def __init__(self, raw: dict[str, Any]) -> None:
        components = raw.get("components")
        schemas = components.get("schemas") if isinstance(components, dict) else None
        self._schemas: dict[str, Any] = schemas if isinstance(schemas, dict) else {}

    def resolve_ref(self, ref: str) -> Optional[dict[str, Any]]:
        """Return the component schema *ref* points to, or ``None``."""
        if not ref.startswith(_COMPONENT_PREFIX):
            return None
        target = self._schemas.get(ref[len(_COMPONENT_PREFIX):])
        return target if isinstance(target, dict) else None

    def resolve_schema(self, schema: dict[str, Any]) -> dict[str, Any]:
        """Follow a top-level local ``$ref``; anything else is returned as-is."""
        ref = schema.get("$ref")
        if isinstance(ref, str):
            resolved = self.resolve_ref(ref)
            if resolved is not None:
                return resolved
        return schema

    def skeleton(self, schema: dict[str, Any], depth: int = 0) -> JSONValue:
        """Build a minimal example value for *schema*.

        Args:
            schema: A schema object, possibly a ``$ref``.
            depth: Current recursion depth; beyond :data:`MAX_DEPTH` the
                placeholder string is returned.
        """
        if depth > MAX_DEPTH:
            return PLACEHOLDER

        schema = self.resolve_schema(schema)

        all_of = schema.get("allOf")
        if isinstance(all_of, list) and all_of:
            merged: dict[str, Any] = {}
            for branch in all_of:
                if not isinstance(branch, dict):
                    continue
                part = self.skeleton(branch, depth + 1)
                if isinstance(part, dict):
                    merged.update(part)
            return merged

        for keyword in ("oneOf", "anyOf"):
            options = schema.get(keyword)
            if isinstance(options, list) and options and isinstance(options[0], dict):
                return self.skeleton(options[0], depth + 1)

        type_ = schema.get("type")
        type_ = type_.strip() if isinstance(type_, str) else None

        if type_ == "object" or "properties" in schema:
            props = schema.get("properties")
            props = props if isinstance(props, dict) else {}
            required = schema.get("required")
            required = [r for r in required if isinstance(r, str)] if isinstance(required, list) else []
            out: dict[str, Any] = {}
            for name in sorted(required):
                if name not in props:
                    out[name] = PLACEHOLDER
                    continue
                prop = props[name]
                out[name] = self.skeleton(prop if isinstance(prop, dict) else {}, depth + 1)
            return out

        if type_ == "array":
            return []

        if type_ == "string" or type_ is None:
            values = schema.get("enum")
            if isinstance(values, list) and values:
                return values[0]
            return PLACEHOLDER

        if type_ in ("integer", "number"):
            return 0

        if type_ == "boolean":
            return False

        return PLACEHOLDER

    def response_kind(self, op: OperationDescriptor) -> str:
        """Classify the first declared response schema as array, object or unknown.

        Responses are scanned in status-code order and media types in sorted
        order; the first entry carrying a ``schema`` decides.
        """
        if not op.responses:
            return "unknown"
        for _, response in sorted(op.responses.items(), key=lambda kv: str(kv[0])):
            if not isinstance(response, dict):
                continue
            content = response.get("content")
            if not isinstance(content, dict):
                continue
            for _, media in sorted(content.items()):
                if not isinstance(media, dict) or not isinstance(media.get("schema"), dict):
                    continue
                resolved = self.resolve_schema(media["schema"])
                type_ = resolved.get("type")
                if type_ == "array":
                    return "array"
                if type_ == "object":
                    return "object"
                if "properties" in resolved or "$ref" in resolved:
                    return "object"
        return "unknown"

    def body_template(self, op: OperationDescriptor) -> JSONValue:
        """Return a skeleton for the operation's request body, or ``None``.

        ``application/json`` is preferred; otherwise the first media type in
        sorted order is used.
        """
        if not op.request_body:
            return None
        content = op.request_body.get("content")
        if not isinstance(content, dict) or not content:
            return None
        media_type = "application/json" if "application/json" in content else sorted(content)[0]
        entry = content.get(media_type)
        if not isinstance(entry, dict) or not isinstance(entry.get("schema"), dict):
            return None
        return self.skeleton(entry["schema"])
