"""Tests for the exception hierarchy and exit codes."""

from __future__ import annotations

import pytest

from specrun import exit_codes
from specrun.exceptions import (
    APIError,
    AuthError,
    ConfirmationRequiredError,
    InternalError,
    InvalidArgumentError,
    MissingParameterError,
    NetworkError,
    NonJSONOutputError,
    SelectorNotFoundError,
    SpecParseError,
    SpecrunError,
    ValidationFailedError,
)


class TestKindsAndExitCodes:
    @pytest.mark.parametrize(
        "exc, kind, code",
        [
            (MissingParameterError("m"), "missing_required_option", exit_codes.EXIT_INVALID_USAGE),
            (InvalidArgumentError("m"), "invalid_argument", exit_codes.EXIT_INVALID_USAGE),
            (SpecParseError("m"), "invalid_argument", exit_codes.EXIT_INVALID_USAGE),
            (ConfirmationRequiredError("m"), "confirm_required", exit_codes.EXIT_INVALID_USAGE),
            (ValidationFailedError("m"), "validation_failed", exit_codes.EXIT_INVALID_USAGE),
            (SelectorNotFoundError("/x"), "select_not_found", exit_codes.EXIT_INVALID_USAGE),
            (NonJSONOutputError("text/csv"), "non_json_requires_out", exit_codes.EXIT_INVALID_USAGE),
            (AuthError("m"), "auth_error", exit_codes.EXIT_AUTH_FAILURE),
            (NetworkError("m"), "network_error", exit_codes.EXIT_NETWORK_ERROR),
            (APIError(500, "m"), "api_error", exit_codes.EXIT_API_ERROR),
            (InternalError("m"), "internal_error", exit_codes.EXIT_INTERNAL_ERROR),
        ],
    )
    def test_mapping(self, exc: SpecrunError, kind: str, code: int) -> None:
        assert isinstance(exc, SpecrunError)
        assert exc.kind == kind
        assert exc.exit_code == code

    def test_exit_code_override(self) -> None:
        assert InvalidArgumentError("m", exit_code=9).exit_code == 9
        assert InvalidArgumentError("m").exit_code == exit_codes.EXIT_INVALID_USAGE


class TestDetails:
    def test_default_details_empty(self) -> None:
        exc = InvalidArgumentError("bad")
        assert exc.details == {}
        assert exc.message == "bad"
        assert str(exc) == "bad"
        assert exc.status is None

    def test_api_error_status(self) -> None:
        exc = APIError(404, "missing", details={"body": {"errors": []}})
        assert exc.status == 404
        assert exc.details == {"body": {"errors": []}}

    def test_auth_error_reason(self) -> None:
        assert AuthError("x", reason="signing_failed").reason == "signing_failed"

    def test_non_json_message_mentions_content_type(self) -> None:
        exc = NonJSONOutputError("application/a-gzip")
        assert "application/a-gzip" in exc.message
        assert exc.details == {"contentType": "application/a-gzip"}
        assert NonJSONOutputError().details == {"contentType": None}
