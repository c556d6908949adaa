"""OpenAPI document loading and basic validation."""

from __future__ import annotations

import logging
import os
from pathlib import Path
import tempfile
from typing import Optional, Union

import httpx
import yaml
from openapi_python_client.schema import OpenAPI
from pydantic import ValidationError

from .json_types import JSONObject, JSONValue, decode_json_value

logger = logging.getLogger(__name__)

NEAR_OPENAPI_URL = (
    "https://raw.githubusercontent.com/near/nearcore/master/chain/jsonrpc/openapi/openapi.json"
)
SUPPORTED_VERSION_PREFIX = ("3", "0")

_YAML_SUFFIXES = frozenset({".yaml", ".yml"})


class SpecFetchError(RuntimeError):
    """Raised when the OpenAPI document cannot be read or downloaded."""


class SpecParseError(RuntimeError):
    """Raised when the OpenAPI document is malformed or has an unsupported version."""


def load_spec(
    source: Union[str, Path],
    *,
    cache_path: Optional[Path] = None,
    timeout: float = 30.0,
    client: Optional[httpx.Client] = None,
) -> JSONObject:
    """Load, parse and validate an OpenAPI 3.0 document.

    Args:
        source (Union[str, Path]): ``http(s)://`` URL or local file path.
        cache_path (Optional[Path]): Where to keep a copy of a downloaded document.
        timeout (float): HTTP timeout in seconds, used when ``client`` is not given.
        client (Optional[httpx.Client]): HTTP client to download with.

    Returns:
        JSONObject: The parsed document.

    Raises:
        SpecFetchError: When the source cannot be read or downloaded.
        SpecParseError: When the document is malformed or not OpenAPI 3.0.
    """
    source_text = str(source)
    remote = is_remote_source(source_text)
    if remote:
        raw = _fetch_remote(source_text, timeout=timeout, client=client)
        yaml_format = False
    else:
        path = Path(source_text)
        raw = _read_local(path)
        yaml_format = path.suffix.lower() in _YAML_SUFFIXES

    document = _parse_document(raw, source=source_text, yaml_format=yaml_format)
    version = get_openapi_version(document)
    ensure_supported_version(version)

    try:
        OpenAPI.model_validate(document)
    except ValidationError as exc:
        raise SpecParseError(f"OpenAPI schema validation failed for {source_text}: {exc}") from exc

    logger.info("OpenAPI version: %s", version)
    info = document.get("info")
    if isinstance(info, dict):
        for key, value in info.items():
            logger.info("%s: %s", key, value)

    if remote and cache_path is not None:
        write_cache(cache_path, raw)
    return document


def is_remote_source(source: str) -> bool:
    """Return whether ``source`` is an HTTP(S) URL."""
    return source.startswith(("http://", "https://"))


def get_openapi_version(document: JSONObject) -> str:
    """Return the declared OpenAPI version string."""
    version = document.get("openapi")
    if not isinstance(version, str) or not version.strip():
        raise SpecParseError("Missing or invalid 'openapi' version field")
    return version.strip()


def ensure_supported_version(version: str) -> None:
    """Validate that the input version is OpenAPI 3.0.x."""
    parts = tuple(version.split(".")[:2])
    if parts != SUPPORTED_VERSION_PREFIX:
        raise SpecParseError(f"Unsupported OpenAPI version {version}; only 3.0.x is supported")


def write_cache(cache_path: Path, raw: str) -> None:
    """Atomically replace ``cache_path`` with ``raw``."""
    directory = cache_path.parent
    temp_name: Optional[str] = None
    try:
        directory.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=directory,
            prefix=f".{cache_path.name}.",
            delete=False,
        ) as handle:
            temp_name = handle.name
            handle.write(raw)
        os.replace(temp_name, cache_path)
    except OSError as exc:
        if temp_name is not None:
            Path(temp_name).unlink(missing_ok=True)
        raise SpecFetchError(f"Failed to write cache file {cache_path}: {exc}") from exc
    logger.info("Cached OpenAPI document at %s", cache_path)


def _fetch_remote(url: str, *, timeout: float, client: Optional[httpx.Client]) -> str:
    logger.info("Fetching OpenAPI document from %s", url)
    try:
        if client is not None:
            response = client.get(url)
        else:
            with httpx.Client(follow_redirects=True, timeout=timeout) as owned_client:
                response = owned_client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise SpecFetchError(f"Failed to download OpenAPI document from {url}: {exc}") from exc
    return response.text


def _read_local(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecFetchError(f"Failed to read OpenAPI file {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise SpecParseError(f"OpenAPI file {path} is not valid UTF-8: {exc}") from exc


def _parse_document(raw: str, *, source: str, yaml_format: bool) -> JSONObject:
    payload: JSONValue
    if yaml_format:
        try:
            payload = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise SpecParseError(f"Failed to parse YAML in {source}: {exc}") from exc
    else:
        try:
            payload = decode_json_value(raw)
        except ValidationError as exc:
            raise SpecParseError(f"Failed to parse JSON in {source}: {exc}") from exc

    if not isinstance(payload, dict):
        raise SpecParseError(
            f"OpenAPI document must deserialize to a mapping, got {type(payload)!r}"
        )
    return payload
