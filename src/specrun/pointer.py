"""RFC 6901 JSON pointer evaluation over decoded JSON values."""

from __future__ import annotations

from typing import Any

from specrun.exceptions import InvalidArgumentError, SelectorNotFoundError


def select(value: Any, pointer: str) -> Any:
    """Return the part of *value* addressed by *pointer*.

    Args:
        value: A decoded JSON value.
        pointer: Empty (selects the whole document) or a ``/``-prefixed
            pointer. Empty segments are significant: ``"/"`` addresses the
            key ``""``.

    Returns:
        The selected value, unchanged.

    Raises:
        InvalidArgumentError: If *pointer* is non-empty and does not start
            with ``/``, or an array is indexed with a non-integer segment.
        SelectorNotFoundError: If a key is missing, an index is out of
            range, or traversal reaches a scalar.

    Example::

        >>> select({"data": [{"id": "a"}, {"id": "b"}]}, "/data/1/id")
        'b'
    """
    if pointer == "":
        return value
    if not pointer.startswith("/"):
        raise InvalidArgumentError(
            "Invalid JSON pointer. Must be empty or start with '/'.",
            details={"pointer": pointer},
        )

    current = value
    for raw in pointer.split("/")[1:]:
        segment = _unescape(raw)
        if isinstance(current, dict):
            if segment not in current:
                raise SelectorNotFoundError(pointer)
            current = current[segment]
        elif isinstance(current, list):
            index = _parse_index(segment)
            if index < 0 or index >= len(current):
                raise SelectorNotFoundError(pointer)
            current = current[index]
        else:
            raise SelectorNotFoundError(pointer)
    return current


def _unescape(segment: str) -> str:
    # Order matters: "~01" must decode to "~1", not "/"
    return segment.replace("~1", "/").replace("~0", "~")


def _parse_index(segment: str) -> int:
    try:
        return int(segment)
    except ValueError as exc:
        raise InvalidArgumentError(
            f"Invalid JSON pointer segment '{segment}'. Expected an array index.",
            details={"segment": segment},
        ) from exc
