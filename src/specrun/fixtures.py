"""Record and replay request/response fixtures.

A fixture directory holds::

    record.json     metadata: operationId, request summary, response status
                    and headers, optional pagination info
    response.body   the raw response bytes
    request.body    the raw request bytes (only when the request had a body)

Bodies are stored as separate files so they round-trip byte for byte,
whatever their content type. Every file is written atomically (temp file in
the same directory, then :func:`os.replace`).
"""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from specrun.client.response import header_value
from specrun.exceptions import InvalidArgumentError
from specrun.models import Fixture, RawResponse, RecordedRequest
from specrun.output import debug

RECORD_FILENAME = "record.json"
RESPONSE_BODY_FILENAME = "response.body"
REQUEST_BODY_FILENAME = "request.body"

PathLike = Union[str, Path]


def write_fixture(
    directory: PathLike,
    operation_id: str,
    request: RecordedRequest,
    response: RawResponse,
    paginate: Optional[dict[str, Any]] = None,
) -> Path:
    """Write a fixture for one executed call into *directory*.

    The directory is created if needed. Existing fixture files are replaced.

    Args:
        directory: Target directory.
        operation_id: Operation the call belongs to.
        request: What was sent. Its headers are written as given, so callers
            must not pass an ``Authorization`` header.
        response: What came back.
        paginate: Optional pagination summary stored alongside.

    Returns:
        The fixture directory as a :class:`Path`.
    """
    root = Path(directory).expanduser()
    record = {
        "recordedAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "operationId": operation_id,
        "request": request.as_json(),
        "response": {
            "status": response.status_code,
            "headers": dict(response.headers),
            "bytes": len(response.body),
            "contentType": header_value(response.headers, "Content-Type"),
        },
        "paginate": paginate,
    }

    _atomic_write(root / RECORD_FILENAME, json.dumps(record, sort_keys=True).encode("utf-8"))
    _atomic_write(root / RESPONSE_BODY_FILENAME, response.body)
    if request.body is not None:
        _atomic_write(root / REQUEST_BODY_FILENAME, request.body)
    else:
        (root / REQUEST_BODY_FILENAME).unlink(missing_ok=True)

    debug(f"Recorded {operation_id} fixture to {root}")
    return root


def read_fixture(directory: PathLike) -> Fixture:
    """Load a fixture previously written by :func:`write_fixture`.

    Raises:
        InvalidArgumentError: If ``record.json`` or ``response.body`` is
            missing or unreadable, or the record lacks required fields.
    """
    root = Path(directory).expanduser()
    record = _read_record(root / RECORD_FILENAME)

    req = record.get("request")
    if not isinstance(req, dict) or not isinstance(req.get("method"), str) or not isinstance(req.get("url"), str):
        raise InvalidArgumentError(
            f"Invalid {RECORD_FILENAME} (missing request fields).", details={"path": str(root)}
        )

    resp = record.get("response")
    status = resp.get("status") if isinstance(resp, dict) else None
    if not isinstance(status, int) or isinstance(status, bool):
        raise InvalidArgumentError(
            f"Invalid {RECORD_FILENAME} (missing response fields).", details={"path": str(root)}
        )

    request_body_path = root / REQUEST_BODY_FILENAME
    request_body = _read_bytes(request_body_path) if request_body_path.is_file() else None

    paginate = record.get("paginate")
    debug(f"Replaying fixture from {root}")
    return Fixture(
        request=RecordedRequest(
            method=req["method"],
            url=req["url"],
            headers=_string_map(req.get("headers")),
            body=request_body,
        ),
        response=RawResponse(
            status_code=status,
            headers=_string_map(resp.get("headers")),
            body=_read_bytes(root / RESPONSE_BODY_FILENAME),
        ),
        paginate=paginate if isinstance(paginate, dict) else None,
    )


def _read_record(path: Path) -> dict[str, Any]:
    try:
        record = json.loads(path.read_bytes())
    except OSError as exc:
        raise InvalidArgumentError(f"Cannot read {path}: {exc}", details={"path": str(path)}) from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidArgumentError(f"Invalid JSON in {path}: {exc}", details={"path": str(path)}) from exc
    if not isinstance(record, dict):
        raise InvalidArgumentError(
            f"Invalid {RECORD_FILENAME} (not an object).", details={"path": str(path)}
        )
    return record


def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise InvalidArgumentError(f"Cannot read {path}: {exc}", details={"path": str(path)}) from exc


def _string_map(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): v if isinstance(v, str) else str(v) for k, v in value.items()}


def _atomic_write(path: Path, data: bytes) -> None:
    """Write *data* to *path* atomically using temp file + rename.

    The temporary file is created next to *path* so ``os.replace`` is an
    atomic rename on POSIX. On failure the temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
