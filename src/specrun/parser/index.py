"""Index the operations of a decoded OpenAPI document.

:class:`SpecIndex` walks the ``paths`` object of a raw OpenAPI document and
builds one :class:`~specrun.models.OperationDescriptor` per path + verb pair
(``get``, ``post``, ``put``, ``patch``, ``delete``). Operations are kept in a
stable order (path, then method) and indexed two ways: by ``operationId``
and by ``"<METHOD> <path>"``.

Parameter merging is intentionally permissive: path-level parameters are
prepended to operation-level ones and nothing is deduplicated by name.

Nothing here resolves ``$ref`` pointers eagerly; schemas stay as declared and
are resolved on demand by :class:`~specrun.parser.schema.SchemaResolver`.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Iterable, Optional

from specrun.exceptions import InvalidArgumentError, SpecParseError
from specrun.models import CallPlan, HTTPMethod, OperationDescriptor
from specrun.planner import build_call_plan

# Path-item keys that become operations, in lookup order
_HTTP_METHODS = tuple(m.value.lower() for m in HTTPMethod)


class SpecIndex:
    """Flat, indexed view over the operations of one OpenAPI document.

    Args:
        raw: The decoded OpenAPI document.

    Raises:
        SpecParseError: If *raw* is not a JSON object.

    Example::

        index = SpecIndex(raw)
        op = index.resolve_operation(operation_id="apps_getCollection")
        plan = index.plan(op)
    """

    def __init__(self, raw: Any) -> None:
        if not isinstance(raw, dict):
            raise SpecParseError(
                "Invalid OpenAPI spec: top-level JSON is not an object."
            )
        self.raw: dict[str, Any] = raw

        self.openapi: Optional[str] = _as_str(raw.get("openapi"))
        info = raw.get("info")
        info = info if isinstance(info, dict) else {}
        self.title: Optional[str] = _as_str(info.get("title"))
        self.version: Optional[str] = _as_str(info.get("version"))

        self.server_url: Optional[str] = None
        servers = raw.get("servers")
        if isinstance(servers, list) and servers and isinstance(servers[0], dict):
            self.server_url = _as_str(servers[0].get("url"))

        paths = raw.get("paths")
        paths = paths if isinstance(paths, dict) else {}
        self.paths_count = len(paths)

        self.operations: list[OperationDescriptor] = _extract_operations(paths)
        self.operations_count = len(self.operations)

        self._by_id: dict[str, OperationDescriptor] = {}
        self._by_method_path: dict[str, OperationDescriptor] = {}
        for op in self.operations:
            self._by_id[op.operation_id] = op
            self._by_method_path[op.key] = op

        self._plans: dict[str, CallPlan] = {}

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    def lookup(self, operation_id: Optional[str]) -> Optional[OperationDescriptor]:
        """Return the operation with *operation_id*, or ``None``."""
        if operation_id is None or not operation_id.strip():
            return None
        return self._by_id.get(operation_id)

    def lookup_method_path(
        self, method: Optional[str], path: Optional[str]
    ) -> Optional[OperationDescriptor]:
        """Return the operation for *method* + *path* (verb is case-insensitive)."""
        if method is None or path is None:
            return None
        m = method.strip().upper()
        p = path.strip()
        if not m or not p:
            return None
        return self._by_method_path.get(f"{m} {p}")

    def resolve_operation(
        self,
        operation_id: Optional[str] = None,
        method: Optional[str] = None,
        path: Optional[str] = None,
    ) -> OperationDescriptor:
        """Find an operation by id first, then by method + path.

        Raises:
            InvalidArgumentError: If neither selector matches.
        """
        op = self.lookup(operation_id) or self.lookup_method_path(method, path)
        if op is None:
            raise InvalidArgumentError(
                "Operation not found. Provide an operationId or a method and path.",
                details={"operationId": operation_id, "method": method, "path": path},
            )
        return op

    def plan(self, op: OperationDescriptor) -> CallPlan:
        """Return the (memoized) :class:`CallPlan` for *op*."""
        plan = self._plans.get(op.key)
        if plan is None:
            plan = build_call_plan(op)
            self._plans[op.key] = plan
        return plan

    # ------------------------------------------------------------------ #
    # Listing
    # ------------------------------------------------------------------ #

    def filter_operations(
        self,
        tags: Iterable[str] = (),
        methods: Iterable[str] = (),
        path_prefix: Optional[str] = None,
        text: Optional[str] = None,
    ) -> list[OperationDescriptor]:
        """Return the operations matching every supplied filter.

        Args:
            tags: Any-of tag filter, case-insensitive.
            methods: Any-of verb filter, case-insensitive.
            path_prefix: Literal prefix the path must start with.
            text: Case-insensitive substring searched across path, method,
                operationId, summary, description, tags and parameter names.
        """
        wanted_tags = [t.lower() for t in tags if t]
        wanted_methods = {m.upper() for m in methods if m}
        prefix = path_prefix.strip() if path_prefix else ""
        needle = text.strip().lower() if text else ""

        result: list[OperationDescriptor] = []
        for op in self.operations:
            if wanted_methods and op.method not in wanted_methods:
                continue
            if prefix and not op.path.startswith(prefix):
                continue
            if wanted_tags:
                op_tags = [t.lower() for t in op.tags]
                if not any(t in op_tags for t in wanted_tags):
                    continue
            if needle and needle not in _search_haystack(op):
                continue
            result.append(op)
        return result

    def tag_counts(self) -> dict[str, int]:
        """Return how many operations carry each tag."""
        counts: Counter[str] = Counter()
        for op in self.operations:
            counts.update(op.tags)
        return dict(counts)

    # ------------------------------------------------------------------ #
    # Component schemas
    # ------------------------------------------------------------------ #

    @property
    def component_schemas(self) -> dict[str, Any]:
        components = self.raw.get("components")
        if not isinstance(components, dict):
            return {}
        schemas = components.get("schemas")
        return schemas if isinstance(schemas, dict) else {}

    def schema_names(self, filter: Optional[str] = None, limit: int = 200) -> list[str]:
        """List component schema names, sorted, optionally substring-filtered."""
        names = sorted(self.component_schemas)
        if filter and filter.strip():
            needle = filter.lower()
            names = [n for n in names if needle in n.lower()]
        return names[: max(0, limit)]

    def schema(self, name: str) -> Any:
        """Return the component schema called *name*.

        Raises:
            InvalidArgumentError: If no such schema is declared.
        """
        schemas = self.component_schemas
        if name not in schemas:
            raise InvalidArgumentError(f"Schema not found: {name}", details={"name": name})
        return schemas[name]


def _extract_operations(paths: dict[str, Any]) -> list[OperationDescriptor]:
    operations: list[OperationDescriptor] = []

    for path, item in paths.items():
        if not isinstance(item, dict):
            continue
        path_params = _dict_items(item.get("parameters"))

        for method_str in _HTTP_METHODS:
            operation = item.get(method_str)
            if not isinstance(operation, dict):
                continue
            method = method_str.upper()

            op_id = operation.get("operationId")
            op_id = op_id.strip() if isinstance(op_id, str) else ""
            tags = operation.get("tags")
            request_body = operation.get("requestBody")
            responses = operation.get("responses")

            operations.append(
                OperationDescriptor(
                    method=method,
                    path=path,
                    operation_id=op_id or f"{method} {path}",
                    summary=_as_str(operation.get("summary")),
                    description=_as_str(operation.get("description")),
                    tags=[t for t in tags if isinstance(t, str)] if isinstance(tags, list) else [],
                    parameters=path_params + _dict_items(operation.get("parameters")),
                    request_body=request_body if isinstance(request_body, dict) else None,
                    responses={str(k): v for k, v in responses.items()} if isinstance(responses, dict) else None,
                )
            )

    operations.sort(key=lambda op: (op.path, op.method))
    return operations


def _search_haystack(op: OperationDescriptor) -> str:
    parts = [op.path, op.method, op.operation_id]
    if op.summary:
        parts.append(op.summary)
    if op.description:
        parts.append(op.description)
    parts.append(" ".join(op.tags))
    names = [p["name"] for p in op.parameters if isinstance(p.get("name"), str)]
    if names:
        parts.append(" ".join(names))
    return "\n".join(parts).lower()


def _dict_items(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None
