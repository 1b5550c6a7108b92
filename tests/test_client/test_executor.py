"""Tests for request compilation and execution."""

from __future__ import annotations

import asyncio
import json
from typing import Mapping, Optional

import pytest

from specrun.client.executor import (
    append_query,
    execute_operation,
    resolve_request,
    set_query_param,
)
from specrun.exceptions import APIError, MissingParameterError
from specrun.models import CallPlan, RawResponse
from specrun.parser.index import SpecIndex

API_ROOT = "https://api.example.com/"


class FakePerformer:
    """Records every perform() call and answers with canned responses."""

    def __init__(self, *responses: RawResponse) -> None:
        self.responses = list(responses) or [RawResponse(status_code=200, body=b"{}")]
        self.calls: list[dict] = []

    async def perform(
        self,
        method: str,
        url: str,
        body: Optional[bytes],
        add_json_headers: bool,
        headers: Mapping[str, str],
    ) -> RawResponse:
        self.calls.append(
            {"method": method, "url": url, "body": body, "add_json_headers": add_json_headers, "headers": dict(headers)}
        )
        return self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]


def _plan(spec_index: SpecIndex, operation_id: str) -> CallPlan:
    return spec_index.plan(spec_index.resolve_operation(operation_id=operation_id))


# ---------------------------------------------------------------------------
# resolve_request: URL
# ---------------------------------------------------------------------------


class TestResolveUrl:
    def test_path_params_encoded_as_single_segment(self, spec_index: SpecIndex) -> None:
        resolved = resolve_request(
            _plan(spec_index, "apps_builds_getInstance"),
            API_ROOT,
            path_params={"id": "a/b c", "buildId": "9?x#y"},
        )
        assert resolved.url == "https://api.example.com/v1/apps/a%2Fb%20c/builds/9%3Fx%23y"
        assert resolved.method == "GET"

    def test_missing_path_params_listed(self, spec_index: SpecIndex) -> None:
        with pytest.raises(MissingParameterError) as exc_info:
            resolve_request(_plan(spec_index, "apps_builds_getInstance"), API_ROOT, path_params={})
        assert exc_info.value.details == {"missingPath": ["id", "buildId"]}
        assert "id, buildId" in exc_info.value.message

    def test_query_appended_with_duplicates(self, spec_index: SpecIndex) -> None:
        resolved = resolve_request(
            _plan(spec_index, "apps_getCollection"),
            API_ROOT,
            query_items=[("filter[name]", "My App"), ("fields[apps]", "name,bundleId"), ("fields[apps]", "sku")],
        )
        assert resolved.url == (
            "https://api.example.com/v1/apps"
            "?filter[name]=My%20App&fields[apps]=name,bundleId&fields[apps]=sku"
        )

    def test_api_root_with_prefix(self, spec_index: SpecIndex) -> None:
        resolved = resolve_request(_plan(spec_index, "apps_getCollection"), "https://proxy.example.com/asc/")
        assert resolved.url == "https://proxy.example.com/asc/v1/apps"

    def test_resolution_is_idempotent(self, spec_index: SpecIndex) -> None:
        plan = _plan(spec_index, "apps_getInstance")
        kwargs = {"path_params": {"id": "123"}, "query_items": [("include", "builds")], "body": None}
        assert resolve_request(plan, API_ROOT, **kwargs) == resolve_request(plan, API_ROOT, **kwargs)


# ---------------------------------------------------------------------------
# resolve_request: headers
# ---------------------------------------------------------------------------


class TestResolveHeaders:
    def test_json_plan_leaves_defaults_to_transport(self, spec_index: SpecIndex) -> None:
        resolved = resolve_request(
            _plan(spec_index, "builds_createInstance"), API_ROOT, body=b'{"data":{}}'
        )
        assert resolved.headers == {}
        assert resolved.add_json_headers is True
        assert resolved.body_bytes == 11

    def test_non_json_accept_from_plan(self, spec_index: SpecIndex) -> None:
        resolved = resolve_request(_plan(spec_index, "salesReports_get"), API_ROOT)
        assert resolved.headers == {"Accept": "application/a-gzip"}
        assert resolved.add_json_headers is False

    def test_caller_header_beats_plan(self, spec_index: SpecIndex) -> None:
        resolved = resolve_request(
            _plan(spec_index, "apps_getCollection"),
            API_ROOT,
            extra_headers={"accept": "application/vnd.api+json", "X-Request-Id": "r1"},
        )
        assert resolved.headers == {"Accept": "application/vnd.api+json", "X-Request-Id": "r1"}
        assert resolved.add_json_headers is False

    def test_override_beats_caller_header(self, spec_index: SpecIndex) -> None:
        resolved = resolve_request(
            _plan(spec_index, "builds_createInstance"),
            API_ROOT,
            extra_headers={"Content-Type": "text/plain"},
            body=b"{}",
            content_type_override="application/vnd.api+json",
        )
        assert resolved.headers == {"Content-Type": "application/vnd.api+json"}

    def test_blank_override_ignored(self, spec_index: SpecIndex) -> None:
        resolved = resolve_request(
            _plan(spec_index, "salesReports_get"), API_ROOT, accept_override="   "
        )
        assert resolved.headers == {"Accept": "application/a-gzip"}

    def test_forced_json_accept_is_explicit(self, spec_index: SpecIndex) -> None:
        resolved = resolve_request(
            _plan(spec_index, "salesReports_get"), API_ROOT, accept_override="application/json"
        )
        assert resolved.headers == {"Accept": "application/json"}
        assert resolved.add_json_headers is True

    def test_content_type_only_with_body(self, spec_index: SpecIndex) -> None:
        resolved = resolve_request(
            _plan(spec_index, "builds_createInstance"),
            API_ROOT,
            content_type_override="application/vnd.api+json",
        )
        assert "Content-Type" not in resolved.headers

    def test_suppress_json_headers(self, spec_index: SpecIndex) -> None:
        resolved = resolve_request(
            _plan(spec_index, "apps_getCollection"), API_ROOT, suppress_json_headers=True
        )
        assert resolved.add_json_headers is False
        assert resolved.headers == {"Accept": "application/json"}


# ---------------------------------------------------------------------------
# execute_operation
# ---------------------------------------------------------------------------


class TestExecuteOperation:
    def test_sends_resolved_request(self, spec_index: SpecIndex) -> None:
        performer = FakePerformer(RawResponse(status_code=201, body=b'{"data":{"id":"b1"}}'))
        body = b'{"data":{"type":"builds"}}'
        response = asyncio.run(
            execute_operation(_plan(spec_index, "builds_createInstance"), API_ROOT, performer, body=body)
        )
        assert response.status_code == 201
        assert performer.calls == [
            {
                "method": "POST",
                "url": "https://api.example.com/v1/builds",
                "body": body,
                "add_json_headers": True,
                "headers": {},
            }
        ]

    def test_error_status_raises_with_summary(self, spec_index: SpecIndex) -> None:
        errors = {
            "errors": [
                {
                    "status": "404",
                    "code": "NOT_FOUND",
                    "title": "The specified resource does not exist",
                    "detail": "There is no resource of type 'apps' with id '0'",
                }
            ]
        }
        performer = FakePerformer(RawResponse(status_code=404, body=json.dumps(errors).encode()))
        with pytest.raises(APIError) as exc_info:
            asyncio.run(
                execute_operation(
                    _plan(spec_index, "apps_getInstance"), API_ROOT, performer, path_params={"id": "0"}
                )
            )
        exc = exc_info.value
        assert exc.status == 404
        assert exc.details == {"body": errors}
        assert "404 | NOT_FOUND | The specified resource does not exist" in exc.message

    def test_unchecked_returns_error_response(self, spec_index: SpecIndex) -> None:
        performer = FakePerformer(RawResponse(status_code=500, body=b"boom"))
        response = asyncio.run(
            execute_operation(_plan(spec_index, "apps_getCollection"), API_ROOT, performer, check=False)
        )
        assert response.status_code == 500

    def test_missing_params_never_reach_performer(self, spec_index: SpecIndex) -> None:
        performer = FakePerformer()
        with pytest.raises(MissingParameterError):
            asyncio.run(execute_operation(_plan(spec_index, "apps_getInstance"), API_ROOT, performer))
        assert performer.calls == []


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------


class TestQueryHelpers:
    def test_append_keeps_existing_query(self) -> None:
        assert append_query("https://h/x?a=1", [("b", "2")]) == "https://h/x?a=1&b=2"

    def test_append_nothing(self) -> None:
        assert append_query("https://h/x?a=1", []) == "https://h/x?a=1"

    def test_set_query_param_replaces_all(self) -> None:
        url = "https://h/v1/builds?cursor=abc&limit=10&limit=20"
        assert set_query_param(url, "limit", "200") == "https://h/v1/builds?cursor=abc&limit=200"

    def test_set_query_param_adds(self) -> None:
        assert set_query_param("https://h/v1/builds", "limit", "5") == "https://h/v1/builds?limit=5"

    def test_set_query_param_keeps_other_segments_verbatim(self) -> None:
        url = "https://h/v1/builds?cursor=ab+cd%2Fe&x=%7E&limit=2"
        assert set_query_param(url, "limit", "200") == "https://h/v1/builds?cursor=ab+cd%2Fe&x=%7E&limit=200"
