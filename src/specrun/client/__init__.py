"""HTTP execution layer for specrun.

- :class:`AuthTransport` -- async httpx transport with bearer auth and retry.
- :func:`resolve_request` / :func:`execute_operation` -- compile and send
  one operation.
- :func:`paginate_get` -- follow JSON:API cursor links and merge pages.
- :func:`raise_for_status` and friends -- response inspection helpers.
"""

from specrun.client.executor import (
    RawHTTPPerformer,
    execute_operation,
    resolve_request,
)
from specrun.client.paginator import paginate_get
from specrun.client.response import (
    api_error_details,
    decode_json_body,
    header_value,
    raise_for_status,
    require_json_body,
)
from specrun.client.transport import AuthTransport

__all__ = [
    "AuthTransport",
    "RawHTTPPerformer",
    "api_error_details",
    "decode_json_body",
    "execute_operation",
    "header_value",
    "paginate_get",
    "raise_for_status",
    "require_json_body",
    "resolve_request",
]
