"""Tests for specrun.parser.loader."""

from __future__ import annotations

import io
import json
import textwrap
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from specrun.exceptions import SpecParseError
from specrun.parser.index import SpecIndex
from specrun.parser.loader import load_spec, load_spec_index, parse_document

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"

_YAML_SPEC = textwrap.dedent("""\
    openapi: "3.0.1"
    info:
      title: YAML Test
      version: "1.0"
    paths:
      /v1/apps:
        get:
          operationId: apps_getCollection
          responses:
            200:
              description: OK
""")


class TestLoadFromFile:
    def test_json_file(self) -> None:
        result = load_spec(str(FIXTURES_DIR / "jsonapi_spec.json"))
        assert result["info"]["title"] == "Example Connect API"

    def test_yaml_file(self, tmp_path: Path) -> None:
        spec_file = tmp_path / "spec.yaml"
        spec_file.write_text(_YAML_SPEC, encoding="utf-8")
        result = load_spec(str(spec_file))
        assert result["paths"]["/v1/apps"]["get"]["operationId"] == "apps_getCollection"

    def test_file_not_found(self) -> None:
        with pytest.raises(SpecParseError, match="not found"):
            load_spec("/nonexistent/openapi.json")

    def test_empty_file(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty.json"
        empty.write_text("   \n", encoding="utf-8")
        with pytest.raises(SpecParseError, match="empty"):
            load_spec(str(empty))

    def test_invalid_json_with_json_extension(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.json"
        bad.write_text("{invalid json", encoding="utf-8")
        with pytest.raises(SpecParseError, match="Invalid JSON"):
            load_spec(str(bad))

    def test_top_level_array_rejected(self, tmp_path: Path) -> None:
        array_file = tmp_path / "array.json"
        array_file.write_text("[1, 2, 3]", encoding="utf-8")
        with pytest.raises(SpecParseError, match="must be a JSON/YAML object"):
            load_spec(str(array_file))


class TestLoadFromStdin:
    def test_reads_json(self) -> None:
        spec_json = json.dumps({"openapi": "3.0.1", "info": {"title": "stdin", "version": "1"}})
        with patch("specrun.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO(spec_json)
            result = load_spec("-")
        assert result["info"]["title"] == "stdin"

    def test_empty_stdin(self) -> None:
        with patch("specrun.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO(" \n\t")
            with pytest.raises(SpecParseError, match="No input"):
                load_spec("-")


class TestLoadFromUrl:
    def test_json(self) -> None:
        mock_response = httpx.Response(
            status_code=200,
            json={"openapi": "3.0.1", "info": {"title": "Remote", "version": "1.0"}},
            request=httpx.Request("GET", "https://example.com/openapi.json"),
        )
        with patch("specrun.parser.loader.httpx.get", return_value=mock_response) as mock_get:
            result = load_spec("https://example.com/openapi.json")
        assert result["info"]["title"] == "Remote"
        assert mock_get.call_args.kwargs["follow_redirects"] is True

    def test_yaml_content_type(self) -> None:
        mock_response = httpx.Response(
            status_code=200,
            text=_YAML_SPEC,
            headers={"content-type": "application/yaml"},
            request=httpx.Request("GET", "https://example.com/openapi.yaml"),
        )
        with patch("specrun.parser.loader.httpx.get", return_value=mock_response):
            result = load_spec("https://example.com/openapi.yaml")
        assert result["info"]["title"] == "YAML Test"

    def test_http_error(self) -> None:
        mock_response = httpx.Response(
            status_code=404,
            request=httpx.Request("GET", "https://example.com/missing.json"),
        )
        with patch("specrun.parser.loader.httpx.get", return_value=mock_response):
            with pytest.raises(SpecParseError, match="HTTP 404"):
                load_spec("https://example.com/missing.json")

    def test_connection_error(self) -> None:
        with patch(
            "specrun.parser.loader.httpx.get",
            side_effect=httpx.ConnectError("refused"),
        ):
            with pytest.raises(SpecParseError, match="Failed to fetch"):
                load_spec("https://example.com/openapi.json")


class TestParseContent:
    def test_json_then_yaml_fallback(self) -> None:
        assert parse_document("a: 1")["a"] == 1

    def test_unparseable(self) -> None:
        with pytest.raises(SpecParseError, match="Failed to parse spec"):
            parse_document("key: [unclosed")

    def test_empty_yaml_document(self) -> None:
        with pytest.raises(SpecParseError, match="empty document"):
            parse_document("---\n", "yaml")


class TestLoadSpecIndex:
    def test_builds_index(self) -> None:
        index = load_spec_index(str(FIXTURES_DIR / "jsonapi_spec.json"))
        assert isinstance(index, SpecIndex)
        assert index.lookup("apps_getCollection") is not None

    def test_yaml_integer_status_codes(self, tmp_path: Path) -> None:
        spec_file = tmp_path / "spec.yml"
        spec_file.write_text(_YAML_SPEC, encoding="utf-8")
        op = load_spec_index(str(spec_file)).lookup("apps_getCollection")
        assert op is not None
        assert op.responses == {"200": {"description": "OK"}}
