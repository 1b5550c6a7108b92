"""Authorized HTTP transport with retry and linear backoff.

:class:`AuthTransport` wraps :class:`httpx.AsyncClient` and adds what every
API call needs: a bearer token from an :class:`~specrun.auth.base.AuthPlugin`,
default JSON ``Accept`` / ``Content-Type`` headers, and retries for
transient failures.

Retry rules apply only to authorized requests:

* transport failures (:class:`httpx.TransportError`) and HTTP 429 / 5xx are
  retried up to ``retry_policy.max_attempts`` additional times;
* the delay is the ``Retry-After`` header (seconds, when positive and
  finite, capped at ``MAX_RETRY_AFTER_SECONDS``) or
  ``base_delay_seconds * (attempt + 1)``;
* auth errors are raised immediately, never retried.

Unauthorized requests (plain downloads) are sent exactly once. The
transport never raises on HTTP status; callers use
:func:`~specrun.client.response.raise_for_status`.
"""

from __future__ import annotations

import asyncio
import math
from typing import Awaitable, Callable, Mapping, Optional

import httpx

from specrun.auth.base import AuthPlugin
from specrun.auth.es256 import ES256TokenAuth
from specrun.client.response import header_value, raise_for_status
from specrun.exceptions import AuthError, InternalError, NetworkError
from specrun.models import RawResponse, ResolvedSettings, RetryPolicy
from specrun.output import get_output, redact_headers

JSON_MEDIA_TYPE = "application/json"
MAX_RETRY_AFTER_SECONDS = 300.0

Sleep = Callable[[float], Awaitable[None]]


class AuthTransport:
    """Async transport for one invocation. Must be used as an async context manager.

    Args:
        settings: Resolved settings; supplies timeout, retry policy and,
            when *auth* is not given, the credentials for an
            :class:`~specrun.auth.es256.ES256TokenAuth`.
        auth: Explicit authorizer, overriding the one built from settings.
        client: Pre-built :class:`httpx.AsyncClient` (tests inject one with
            :class:`httpx.MockTransport`). An injected client is not closed
            on exit.
        sleep: Awaitable used between retries. Defaults to
            :func:`asyncio.sleep`.

    Example::

        async with AuthTransport(settings) as transport:
            response = await transport.perform("GET", url, None, True, {})
    """

    def __init__(
        self,
        settings: ResolvedSettings,
        auth: Optional[AuthPlugin] = None,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[Sleep] = None,
    ) -> None:
        self._settings = settings
        if auth is None and settings.credentials is not None:
            auth = ES256TokenAuth(settings.credentials)
        self._auth = auth
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep or asyncio.sleep

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._settings.retry_policy

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> AuthTransport:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._settings.timeout_seconds,
                follow_redirects=True,
            )
            self._owns_client = True
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def perform(
        self,
        method: str,
        url: str,
        body: Optional[bytes],
        add_json_headers: bool,
        headers: Mapping[str, str],
    ) -> RawResponse:
        """Send an authorized request; the performer used by the executor and paginator."""
        return await self.execute(
            method,
            url,
            body=body,
            authorize=True,
            add_json_headers=add_json_headers,
            headers=headers,
        )

    async def download(self, url: str) -> bytes:
        """GET *url* without authorization, retries or JSON headers.

        Raises:
            APIError: If the response status is outside ``[200, 300)``.
            NetworkError: On transport failure.
        """
        response = await self.execute("GET", url, authorize=False, add_json_headers=False)
        return raise_for_status(response).body

    async def execute(
        self,
        method: str,
        url: str,
        body: Optional[bytes] = None,
        authorize: bool = True,
        add_json_headers: bool = True,
        headers: Optional[Mapping[str, str]] = None,
    ) -> RawResponse:
        """Send one logical request, retrying transient failures when authorized.

        Args:
            method: HTTP verb.
            url: Absolute URL.
            body: Raw request body, if any.
            authorize: Attach ``Authorization: Bearer <token>`` and enable retries.
            add_json_headers: Add JSON ``Accept`` (and ``Content-Type`` when a
                body is present) unless already set.
            headers: Caller headers, sent as given.

        Returns:
            The final :class:`RawResponse`, whatever its status.

        Raises:
            AuthError: If authorization is requested but unavailable or fails.
            NetworkError: If the transport fails on the last attempt.
        """
        if self._client is None:
            raise InternalError("AuthTransport used outside of its async context manager.")

        output = get_output()
        attempts = self.retry_policy.max_attempts if authorize else 0
        last_error: Optional[httpx.TransportError] = None

        for attempt in range(attempts + 1):
            request_headers = self._build_headers(headers or {}, body, authorize, add_json_headers)
            output.debug(f"{method} {url} headers={redact_headers(request_headers)}")

            try:
                response = await self._client.request(
                    method, url, content=body, headers=request_headers
                )
            except httpx.TransportError as exc:
                last_error = exc
                if attempt < attempts:
                    delay = self.retry_delay_seconds(attempt, None)
                    output.debug(
                        f"Transport error: {exc}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{attempts})"
                    )
                    await self._pause(delay)
                    continue
                raise NetworkError(
                    f"Request failed after {attempt + 1} attempt(s): {exc}",
                    details={"method": method, "url": url},
                ) from exc

            raw = RawResponse(
                status_code=response.status_code,
                headers=dict(response.headers.items()),
                body=response.content,
            )
            if authorize and _is_retryable(raw.status_code) and attempt < attempts:
                delay = self.retry_delay_seconds(attempt, raw)
                output.debug(
                    f"HTTP {raw.status_code}, retrying in {delay}s "
                    f"(attempt {attempt + 1}/{attempts})"
                )
                await self._pause(delay)
                continue

            output.debug(f"HTTP {raw.status_code} ({len(raw.body)} bytes)")
            return raw

        # Every iteration either returns, raises or continues with attempts left
        raise NetworkError(f"Request failed: {last_error}")  # pragma: no cover

    def retry_delay_seconds(self, attempt: int, response: Optional[RawResponse]) -> float:
        """Delay before retry number *attempt* (zero-based).

        A positive, finite numeric ``Retry-After`` header wins, capped at
        :data:`MAX_RETRY_AFTER_SECONDS`; otherwise the delay grows linearly
        with the attempt index.
        """
        if response is not None:
            value = header_value(response.headers, "Retry-After")
            if value is not None:
                try:
                    seconds = float(value.strip())
                except ValueError:
                    seconds = 0.0
                if math.isfinite(seconds) and seconds > 0:
                    return min(seconds, MAX_RETRY_AFTER_SECONDS)
        return self.retry_policy.base_delay_seconds * (attempt + 1)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _build_headers(
        self,
        headers: Mapping[str, str],
        body: Optional[bytes],
        authorize: bool,
        add_json_headers: bool,
    ) -> dict[str, str]:
        merged = dict(headers)
        if authorize:
            if self._auth is None:
                raise AuthError(
                    "No credentials configured for an authorized request.",
                    reason="missing_credentials",
                )
            merged = {k: v for k, v in merged.items() if k.lower() != "authorization"}
            merged.update(self._auth.authenticate().headers)
        if add_json_headers:
            if header_value(merged, "Accept") is None:
                merged["Accept"] = JSON_MEDIA_TYPE
            if body is not None and header_value(merged, "Content-Type") is None:
                merged["Content-Type"] = JSON_MEDIA_TYPE
        return merged

    async def _pause(self, delay: float) -> None:
        if delay > 0:
            await self._sleep(delay)


def _is_retryable(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500
