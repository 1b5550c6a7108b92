"""Canonical Pydantic models shared across all specrun modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Spec models** -- derived from the loaded OpenAPI document:
    :class:`HTTPMethod`, :class:`OperationDescriptor` and :class:`CallPlan`.

**Request/response models** -- produced per invocation:
    :class:`ResolvedRequest`, :class:`RawResponse`, :class:`PaginatedResult`,
    :class:`RecordedRequest` and :class:`Fixture`.

**Settings models** -- handed in by whatever resolves configuration:
    :class:`PrivateKeySource`, :class:`Credentials`, :class:`CachedToken`,
    :class:`RetryPolicy` and :class:`ResolvedSettings`.

JSON payloads are never modelled: request bodies, schemas and responses stay
plain decoded values (``dict``, ``list``, ``str``, ``int``, ``float``,
``bool``, ``None``), typed as :data:`JSONValue`.
"""

from __future__ import annotations

import enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

JSONValue = Union[dict[str, Any], list[Any], str, int, float, bool, None]
"""A decoded JSON value."""

DEFAULT_BASE_URL = "https://api.appstoreconnect.apple.com/v1/"


# --- Spec Models ---


class HTTPMethod(str, enum.Enum):
    """HTTP verbs indexed from OpenAPI path-item objects.

    Only these five verbs become :class:`OperationDescriptor` entries; other
    path-item keys (``head``, ``options``, ``parameters``, ...) are ignored.
    """

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
"""Verbs whose call plans require an explicit confirmation."""


class OperationDescriptor(BaseModel):
    """A single indexed API operation (one URL path + HTTP method pair).

    Parameters, request body and responses are kept as the raw decoded
    OpenAPI objects. Path-level parameters are already prepended to the
    operation-level ones.
    """

    model_config = ConfigDict(frozen=True)

    method: str = Field(description="Upper-case HTTP verb")
    path: str = Field(description="Path template with {name} segments")
    operation_id: str
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    parameters: list[dict[str, Any]] = Field(default_factory=list)
    request_body: Optional[dict[str, Any]] = None
    responses: Optional[dict[str, Any]] = None

    @property
    def key(self) -> str:
        """Identity key, ``"<METHOD> <path>"``."""
        return f"{self.method} {self.path}"


class CallPlan(BaseModel):
    """Static, derived request/response contract of one operation.

    Built by :func:`~specrun.planner.build_call_plan`. A call plan is a pure
    function of its :class:`OperationDescriptor`.
    """

    model_config = ConfigDict(frozen=True)

    method: str
    path_template: str
    operation_id: str

    required_path_params: list[str] = Field(default_factory=list)
    required_query_params: list[str] = Field(default_factory=list)
    required_header_params: list[str] = Field(default_factory=list)
    suggested_query_pairs: list[str] = Field(default_factory=list)

    request_body_required: bool = False
    request_content_types: list[str] = Field(default_factory=list)
    response_content_types: list[str] = Field(default_factory=list)

    accept: Optional[str] = None
    content_type: Optional[str] = None
    add_json_headers: bool = True
    requires_confirm: bool = False


# --- Request/Response Models ---


class ResolvedRequest(BaseModel):
    """A fully concrete request ready to hand to a performer."""

    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body_bytes: int = 0
    add_json_headers: bool = True


class RawResponse(BaseModel):
    """Status, headers and undecoded body bytes of an HTTP response."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""

    @property
    def is_success(self) -> bool:
        """Whether the status code is in ``[200, 300)``."""
        return 200 <= self.status_code < 300

    @property
    def content_type(self) -> Optional[str]:
        """The ``Content-Type`` header, looked up case-insensitively."""
        lower = "content-type"
        for name, value in self.headers.items():
            if name.lower() == lower:
                return value
        return None


class PaginatedResult(BaseModel):
    """Merged outcome of a paginated GET traversal.

    ``json`` is the first page's object with ``data`` replaced by the
    concatenated items, ``included`` by the deduplicated side-loaded
    resources and ``links`` by the last page's links.
    """

    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    json_body: dict[str, Any] = Field(default_factory=dict, alias="json")
    page_count: int = 0
    item_count: int = 0
    first_request: ResolvedRequest

    model_config = ConfigDict(populate_by_name=True)


class RecordedRequest(BaseModel):
    """Request half of a recorded fixture."""

    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: Optional[bytes] = None

    def as_json(self) -> dict[str, Any]:
        """Return the JSON-friendly summary written to ``record.json``."""
        return {
            "method": self.method,
            "url": self.url,
            "headers": dict(self.headers),
            "bodyBytes": len(self.body) if self.body is not None else 0,
        }


class Fixture(BaseModel):
    """A recorded request/response pair replayable without network access."""

    request: RecordedRequest
    response: RawResponse
    paginate: Optional[dict[str, Any]] = None


# --- Settings Models ---


class PrivateKeySource(BaseModel):
    """Where the ES256 private key comes from: inline PEM text or a file path.

    Example::

        PrivateKeySource.file("~/keys/AuthKey_ABC123.p8")
        PrivateKeySource.pem(pem_text)
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["pem", "file"]
    value: str

    @classmethod
    def pem(cls, text: str) -> PrivateKeySource:
        return cls(kind="pem", value=text)

    @classmethod
    def file(cls, path: str) -> PrivateKeySource:
        return cls(kind="file", value=path)


class Credentials(BaseModel):
    """API key credentials used to mint JWTs."""

    model_config = ConfigDict(frozen=True)

    issuer_id: str
    key_id: str
    private_key: PrivateKeySource


class CachedToken(BaseModel):
    """A minted bearer token and its expiry as epoch seconds."""

    token: str
    expires_at: float


class RetryPolicy(BaseModel):
    """Retry budget for authorized requests.

    Both values are clamped to be non-negative on construction.
    """

    max_attempts: int = Field(default=3, description="Additional attempts after the first")
    base_delay_seconds: float = Field(default=1.0, description="Linear backoff step")

    @field_validator("max_attempts", "base_delay_seconds")
    @classmethod
    def _clamp_non_negative(cls, value: float) -> float:
        return max(0, value)


class ResolvedSettings(BaseModel):
    """Effective settings for one invocation.

    Produced by :func:`~specrun.config.resolve_settings` (or any external
    resolver) and consumed by :class:`~specrun.client.transport.AuthTransport`.
    """

    base_url: str = Field(default=DEFAULT_BASE_URL)
    timeout_seconds: float = Field(default=60.0)
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
    credentials: Optional[Credentials] = None

    @field_validator("base_url")
    @classmethod
    def _trailing_slash(cls, value: str) -> str:
        value = value.strip()
        return value if value.endswith("/") else value + "/"

    @field_validator("timeout_seconds")
    @classmethod
    def _min_timeout(cls, value: float) -> float:
        return max(1.0, value)
