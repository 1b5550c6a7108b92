"""Exception hierarchy for specrun.

All exceptions inherit from :class:`SpecrunError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specrun.exit_codes`
and a stable ``kind`` string used by callers to map errors to messages or
machine-readable envelopes. Structured metadata (missing names, invalid
values, parsed API error bodies) travels in ``details``.

Subclass hierarchy::

    SpecrunError                  (exit 1)
    +-- MissingParameterError     (exit 2, missing_required_option)
    +-- InvalidArgumentError      (exit 2, invalid_argument)
    |   +-- SpecParseError        (exit 2, invalid_argument)
    +-- ConfirmationRequiredError (exit 2, confirm_required)
    +-- ValidationFailedError     (exit 2, validation_failed)
    +-- SelectorNotFoundError     (exit 2, select_not_found)
    +-- NonJSONOutputError        (exit 2, non_json_requires_out)
    +-- AuthError                 (exit 3, auth_error)
    +-- NetworkError              (exit 4, network_error)
    +-- APIError                  (exit 5, api_error)
    +-- InternalError             (exit 6, internal_error)
"""

from __future__ import annotations

from typing import Any, Optional

from specrun.exit_codes import (
    EXIT_API_ERROR,
    EXIT_AUTH_FAILURE,
    EXIT_GENERIC_FAILURE,
    EXIT_INTERNAL_ERROR,
    EXIT_INVALID_USAGE,
    EXIT_NETWORK_ERROR,
)


class SpecrunError(Exception):
    """Base exception for all specrun errors.

    Every subclass sets a class-level ``exit_code`` and ``kind``. The
    ``details`` mapping holds structured metadata and is always a dict.

    Args:
        message: Human-readable error description.
        details: Optional structured metadata about the failure.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE
    kind: str = "error"

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        exit_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details or {})
        if exit_code is not None:
            self.exit_code = exit_code

    @property
    def status(self) -> Optional[int]:
        """HTTP status associated with the error, if any."""
        return None


class MissingParameterError(SpecrunError):
    """Raised when a required path, query, header or body input is absent."""

    exit_code = EXIT_INVALID_USAGE
    kind = "missing_required_option"


class InvalidArgumentError(SpecrunError):
    """Raised for malformed inputs: bad pointers, bad ``key=value`` pairs, unreadable files."""

    exit_code = EXIT_INVALID_USAGE
    kind = "invalid_argument"


class SpecParseError(InvalidArgumentError):
    """Raised when the OpenAPI document cannot be loaded or is not a JSON object."""


class ConfirmationRequiredError(SpecrunError):
    """Raised when a mutating operation is invoked without an explicit confirm."""

    exit_code = EXIT_INVALID_USAGE
    kind = "confirm_required"


class ValidationFailedError(SpecrunError):
    """Raised when supplied values violate the declared parameter schemas.

    ``details`` carries every violation found, never just the first one.
    """

    exit_code = EXIT_INVALID_USAGE
    kind = "validation_failed"


class SelectorNotFoundError(SpecrunError):
    """Raised when a JSON pointer does not resolve to a value."""

    exit_code = EXIT_INVALID_USAGE
    kind = "select_not_found"

    def __init__(self, pointer: str):
        super().__init__(f"JSON pointer not found: {pointer}", details={"pointer": pointer})
        self.pointer = pointer


class NonJSONOutputError(SpecrunError):
    """Raised when a non-JSON response body would have to be rendered as JSON."""

    exit_code = EXIT_INVALID_USAGE
    kind = "non_json_requires_out"

    def __init__(self, content_type: Optional[str] = None):
        if content_type:
            message = (
                f"Response is not JSON (Content-Type: {content_type}). "
                "Write the response bytes to a file instead."
            )
        else:
            message = "Response is not JSON. Write the response bytes to a file instead."
        super().__init__(message, details={"contentType": content_type})
        self.content_type = content_type


class AuthError(SpecrunError):
    """Raised for missing or invalid key material and JWT signing failures.

    ``reason`` distinguishes ``missing_private_key`` from ``signing_failed``.
    Auth errors are never retried by the transport.
    """

    exit_code = EXIT_AUTH_FAILURE
    kind = "auth_error"

    def __init__(self, message: str, reason: str = "auth", details: Optional[dict[str, Any]] = None):
        super().__init__(message, details=details)
        self.reason = reason


class NetworkError(SpecrunError):
    """Raised on transport-level failures once all retries are exhausted."""

    exit_code = EXIT_NETWORK_ERROR
    kind = "network_error"


class APIError(SpecrunError):
    """Raised when the API answers with a status outside ``[200, 300)``.

    Args:
        status: The HTTP status code.
        message: Human-readable summary.
        details: Best-effort parse of the error body (see
            :func:`specrun.client.response.api_error_details`).
    """

    exit_code = EXIT_API_ERROR
    kind = "api_error"

    def __init__(self, status: int, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, details=details)
        self._status = status

    @property
    def status(self) -> Optional[int]:
        return self._status


class InternalError(SpecrunError):
    """Raised when an internal invariant is violated."""

    exit_code = EXIT_INTERNAL_ERROR
    kind = "internal_error"
