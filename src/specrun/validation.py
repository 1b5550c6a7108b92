"""Guards run before a request leaves the process.

* :func:`ensure_confirmed` -- refuse mutating operations without an explicit
  confirmation.
* :func:`validate_preflight` -- check required inputs and lightweight
  schema constraints (type and enum) of supplied parameter values.

Both raise rather than return a status so callers can let the error reach
the boundary unchanged.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Optional

from specrun.exceptions import ConfirmationRequiredError, ValidationFailedError
from specrun.models import CallPlan, OperationDescriptor

# ASCII digits only; no surrounding whitespace or underscores
_INTEGER = re.compile(r"[+-]?[0-9]+")
_NUMBER = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def ensure_confirmed(
    plan: CallPlan,
    confirm: bool,
    dry_run: bool = False,
    replay: bool = False,
) -> None:
    """Raise unless a mutating *plan* was confirmed.

    Dry runs and fixture replays never reach the network, so they are
    allowed without confirmation.

    Raises:
        ConfirmationRequiredError: If the plan requires confirmation and none
            of *confirm*, *dry_run* or *replay* is set.
    """
    if not plan.requires_confirm or confirm or dry_run or replay:
        return
    raise ConfirmationRequiredError(
        f"{plan.method} {plan.path_template} is a mutating operation; confirmation is required.",
        details={"operationId": plan.operation_id, "method": plan.method},
    )


def validate_preflight(
    plan: CallPlan,
    op: OperationDescriptor,
    path_params: Mapping[str, str],
    query_items: Iterable[tuple[str, str]],
    headers: Mapping[str, str],
    body: Optional[bytes],
) -> None:
    """Validate supplied values against *plan* and the declared parameter schemas.

    Runs in two stages. First, missing required query parameters and a
    missing required body are reported together. Then every supplied value
    whose parameter declares a ``schema`` is checked; all violations are
    collected before raising.

    Raises:
        ValidationFailedError: With ``missingQuery`` / ``missingBody`` details
            for the first stage, or ``invalid`` (a list of violations) for the
            second.
    """
    query_items = list(query_items)
    provided = {name for name, _ in query_items}

    missing: dict[str, Any] = {}
    missing_query = [name for name in plan.required_query_params if name not in provided]
    if missing_query:
        missing["missingQuery"] = missing_query
    if plan.request_body_required and body is None:
        missing["missingBody"] = True
    if missing:
        raise ValidationFailedError("Validation failed.", details=missing)

    invalid: list[dict[str, Any]] = []
    for param in op.parameters:
        name = param.get("name")
        location = param.get("in")
        schema = param.get("schema")
        if not isinstance(name, str) or not isinstance(location, str) or not isinstance(schema, dict):
            continue
        for value in _supplied_values(name, location, path_params, query_items, headers):
            violation = _check_value(name, location, schema, value)
            if violation is not None:
                invalid.append(violation)

    if invalid:
        raise ValidationFailedError("Parameter validation failed.", details={"invalid": invalid})


def _supplied_values(
    name: str,
    location: str,
    path_params: Mapping[str, str],
    query_items: list[tuple[str, str]],
    headers: Mapping[str, str],
) -> list[str]:
    if location == "path":
        return [path_params[name]] if name in path_params else []
    if location == "query":
        return [v for n, v in query_items if n == name]
    if location == "header":
        return [headers[name]] if name in headers else []
    return []


def _check_value(name: str, location: str, schema: dict[str, Any], value: str) -> Optional[dict[str, Any]]:
    type_ = schema.get("type")
    if isinstance(type_, str) and not _matches_type(type_, value):
        return {"name": name, "in": location, "type": type_, "value": value}

    allowed = schema.get("enum")
    if isinstance(allowed, list) and allowed:
        choices = sorted({_enum_str(v) for v in allowed})
        if value not in choices:
            return {"name": name, "in": location, "enum": choices, "value": value}
    return None


def _matches_type(type_: str, value: str) -> bool:
    if type_ == "integer":
        return _INTEGER.fullmatch(value) is not None
    if type_ == "number":
        return _NUMBER.fullmatch(value) is not None
    if type_ == "boolean":
        return value.lower() in ("true", "false")
    return True


def _enum_str(value: Any) -> str:
    # Match how the value would appear on a command line
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
