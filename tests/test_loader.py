"""Tests for OpenAPI document loading."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import httpx
import pytest

from near_rpc_codegen.cli import main
from near_rpc_codegen.loader import SpecFetchError, SpecParseError, load_spec, write_cache

from .fixture_helpers import fixture_dir, near_fixture_path

_URL = "https://example.org/openapi.json"


def _document(version: str = "3.0.0") -> dict[str, Any]:
    return {
        "openapi": version,
        "info": {"title": "NEAR RPC", "version": "1.2.3"},
        "paths": {},
    }


def _client(handler: httpx.MockTransport) -> httpx.Client:
    return httpx.Client(transport=handler, follow_redirects=True)


def test_loads_local_json(caplog: pytest.LogCaptureFixture) -> None:
    """Local JSON documents load and their version and info are logged."""
    with caplog.at_level(logging.INFO, logger="near_rpc_codegen.loader"):
        document = load_spec(near_fixture_path())
    assert document["openapi"] == "3.0.0"
    assert "OpenAPI version: 3.0.0" in caplog.text
    assert "title: NEAR Protocol JSON RPC API" in caplog.text


def test_loads_local_yaml() -> None:
    """``.yaml`` files are parsed as YAML."""
    document = load_spec(fixture_dir() / "minimal.yaml")
    assert document["openapi"] == "3.0.3"


@pytest.mark.parametrize("version", ["3.1.0", "2.0", "3", "4.0.0"])
def test_rejects_unsupported_versions(tmp_path: Path, version: str) -> None:
    """Only OpenAPI 3.0.x is accepted."""
    path = tmp_path / "spec.json"
    path.write_text(json.dumps(_document(version)), encoding="utf-8")
    with pytest.raises(SpecParseError, match="Unsupported OpenAPI version"):
        load_spec(path)


def test_rejects_missing_version(tmp_path: Path) -> None:
    """A document without ``openapi`` is malformed."""
    path = tmp_path / "spec.json"
    path.write_text(json.dumps({"info": {}, "paths": {}}), encoding="utf-8")
    with pytest.raises(SpecParseError, match="openapi"):
        load_spec(path)


@pytest.mark.parametrize("payload", ["{not json", "[1, 2, 3]"])
def test_rejects_malformed_json(tmp_path: Path, payload: str) -> None:
    """Invalid JSON and non-object documents are parse errors."""
    path = tmp_path / "spec.json"
    path.write_text(payload, encoding="utf-8")
    with pytest.raises(SpecParseError):
        load_spec(path)


def test_rejects_structurally_invalid_document(tmp_path: Path) -> None:
    """Documents failing OpenAPI model validation are parse errors."""
    path = tmp_path / "spec.json"
    path.write_text(json.dumps({"openapi": "3.0.0", "paths": {}}), encoding="utf-8")
    with pytest.raises(SpecParseError, match="validation failed"):
        load_spec(path)


def test_missing_local_file_is_fetch_error(tmp_path: Path) -> None:
    """Unreadable paths are fetch errors."""
    with pytest.raises(SpecFetchError):
        load_spec(tmp_path / "absent.json")


def test_downloads_and_caches_document(tmp_path: Path) -> None:
    """Remote documents are fetched and written to the cache after validation."""
    body = json.dumps(_document())
    requested: list[str] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        return httpx.Response(200, text=body)

    cache_path = tmp_path / "cache" / "open-api-near-spec.json"
    with _client(httpx.MockTransport(_handler)) as client:
        document = load_spec(_URL, cache_path=cache_path, client=client)

    assert requested == [_URL]
    assert document["info"] == {"title": "NEAR RPC", "version": "1.2.3"}
    assert cache_path.read_text(encoding="utf-8") == body
    assert [path.name for path in cache_path.parent.iterdir()] == [cache_path.name]


def test_invalid_download_does_not_touch_cache(tmp_path: Path) -> None:
    """A rejected document leaves an existing cache file unchanged."""
    cache_path = tmp_path / "open-api-near-spec.json"
    cache_path.write_text("previous", encoding="utf-8")

    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=json.dumps(_document("3.1.0")))

    with _client(httpx.MockTransport(_handler)) as client:
        with pytest.raises(SpecParseError):
            load_spec(_URL, cache_path=cache_path, client=client)
    assert cache_path.read_text(encoding="utf-8") == "previous"


def test_http_failure_is_fetch_error() -> None:
    """Non-success status codes and transport errors are fetch errors."""

    def _not_found(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="missing")

    with _client(httpx.MockTransport(_not_found)) as client:
        with pytest.raises(SpecFetchError, match="404"):
            load_spec(_URL, client=client)

    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with _client(httpx.MockTransport(_refuse)) as client:
        with pytest.raises(SpecFetchError, match="refused"):
            load_spec(_URL, client=client)


def test_non_utf8_file_is_parse_error(tmp_path: Path) -> None:
    """Undecodable bytes are reported as a parse error, and the CLI exits with 1."""
    path = tmp_path / "spec.json"
    path.write_bytes(b'{"openapi": "3.0.0", "info": {"title": "\xff\xfe"}}')
    with pytest.raises(SpecParseError, match="UTF-8"):
        load_spec(path)
    output_dir = tmp_path / "out"
    assert main(["--source", str(path), "--output", str(output_dir), "--no-cache"]) == 1
    assert not output_dir.exists()


def test_failed_cache_write_leaves_no_temp_file(tmp_path: Path) -> None:
    """A cache path that cannot be replaced raises and leaves nothing behind."""
    cache_path = tmp_path / "cache.json"
    cache_path.mkdir()
    with pytest.raises(SpecFetchError, match="cache"):
        write_cache(cache_path, json.dumps(_document()))
    assert [path.name for path in tmp_path.iterdir()] == ["cache.json"]
    assert list(cache_path.iterdir()) == []
