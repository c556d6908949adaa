"""Generic JSON-RPC transport that generated clients build on."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import TracebackType
from typing import Any, Optional

import httpx
from jsonschema import Draft7Validator
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .json_types import JSONValue, MutableJSONObject, decode_json_value, encode_json_value

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
REQUEST_ID = "dontcare"

INVALID_REQUEST = -32600
_RECOVERY_HINTS: dict[int, str] = {
    -32700: "Invalid JSON was received. Check the request format.",
    -32600: "Check that the request parameters are valid.",
    -32601: "The method does not exist. Check the method name.",
    -32602: "Invalid parameters provided. Check the request parameters.",
    -32603: "Internal JSON-RPC error. Try again later.",
}

_RESPONSE_ENVELOPE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["jsonrpc"],
    "properties": {
        "jsonrpc": {"const": JSONRPC_VERSION},
        "error": {
            "type": "object",
            "required": ["code", "message"],
            "properties": {
                "code": {"type": "integer"},
                "message": {"type": "string"},
            },
        },
    },
}
_ENVELOPE_VALIDATOR = Draft7Validator(_RESPONSE_ENVELOPE_SCHEMA)


class RpcError(Exception):
    """Base exception for JSON-RPC client failures."""


class RpcServerError(RpcError):
    """Error object returned by the RPC server, or an unusable response envelope."""

    def __init__(self, code: int, message: str, data: JSONValue = None) -> None:
        super().__init__(f"RPC Error ({code}): {message}")
        self.code = code
        self.message = message
        self.data = data

    @property
    def recovery_hint(self) -> str:
        """Suggest what the caller can do about this error code."""
        if self.code in _RECOVERY_HINTS:
            return _RECOVERY_HINTS[self.code]
        if -32099 <= self.code <= -32000:
            return "Server error. The RPC server encountered an error."
        return "Unknown RPC error. Check the error message for details."


class RpcNetworkError(RpcError):
    """Connection failure, timeout, or non-200 HTTP response."""

    def __init__(self, message: str, response_body: Optional[str] = None) -> None:
        super().__init__(f"Network Error: {message}")
        self.message = message
        self.response_body = response_body


class RpcValidationError(RpcError):
    """Arguments or a result that do not have the expected shape."""

    recovery_hint = "Check your input parameters and ensure they match the expected format"

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        prefix = f"Validation Error in {field}" if field else "Validation Error"
        super().__init__(f"{prefix}: {message}")
        self.message = message
        self.field = field


@dataclass(frozen=True)
class ClientConfig:
    """Settings for one RPC endpoint.

    ``retries`` counts attempts after the first one; the wait before retry
    ``n`` is ``backoff * 2 ** (n - 1)`` seconds.
    """

    endpoint: str
    headers: Mapping[str, str] = field(default_factory=dict)
    timeout: float = 30.0
    retries: int = 3
    backoff: float = 1.0

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout!r}")
        if self.retries < 0:
            raise ValueError(f"retries must not be negative, got {self.retries!r}")
        if self.backoff < 0:
            raise ValueError(f"backoff must not be negative, got {self.backoff!r}")


class JsonRpcTransport:
    """Send JSON-RPC 2.0 requests over HTTP POST.

    Use as an async context manager, or call :meth:`aclose` when done.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self._transport = transport
        self._http = httpx.AsyncClient(
            headers={"Content-Type": "application/json", **config.headers},
            timeout=config.timeout,
            transport=transport,
        )

    async def __aenter__(self) -> JsonRpcTransport:
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    def with_config(self, **overrides: Any) -> JsonRpcTransport:
        """Return a new client of the same type with config fields replaced."""
        return type(self)(replace(self.config, **overrides), transport=self._transport)

    async def invoke(self, method: Enum, params: Optional[JSONValue] = None) -> JSONValue:
        """Call ``method`` and return the ``result`` member of the response.

        Network failures are retried with exponential backoff; server errors
        are raised immediately.

        Raises:
            TypeError: If ``method`` is not an enumeration member.
            RpcServerError: If the server returns an error object or an
                invalid envelope.
            RpcNetworkError: If every attempt failed at the network level.
        """
        if not isinstance(method, Enum):
            raise TypeError(f"method must be an RpcMethod member, got {type(method).__name__}")
        request: MutableJSONObject = {
            "jsonrpc": JSONRPC_VERSION,
            "id": REQUEST_ID,
            "method": method.value,
        }
        if params is not None:
            request["params"] = params
        body = encode_json_value(request)

        attempts = self.config.retries + 1
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=self.config.backoff),
            retry=retry_if_exception_type(RpcNetworkError),
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self._send(method.value, body)
        except RetryError as exc:
            last_error = exc.last_attempt.exception()
            response_body = (
                last_error.response_body if isinstance(last_error, RpcNetworkError) else None
            )
            raise RpcNetworkError(
                f"Request failed after {attempts} attempts",
                response_body=response_body,
            ) from last_error
        raise AssertionError("unreachable")

    async def _send(self, method_name: str, body: bytes) -> JSONValue:
        logger.debug("Calling %s at %s", method_name, self.config.endpoint)
        try:
            response = await self._http.post(self.config.endpoint, content=body)
        except httpx.HTTPError as exc:
            logger.warning("Request for %s failed: %s", method_name, exc)
            raise RpcNetworkError(str(exc) or type(exc).__name__) from exc

        if response.status_code != httpx.codes.OK:
            logger.warning("Request for %s returned HTTP %s", method_name, response.status_code)
            raise RpcNetworkError(
                f"HTTP error: {response.status_code}",
                response_body=response.text,
            )
        return _unwrap_result(response.content)


def _unwrap_result(payload: bytes) -> JSONValue:
    try:
        envelope = decode_json_value(payload)
    except ValidationError as exc:
        raise RpcServerError(INVALID_REQUEST, "Invalid response: body is not JSON") from exc

    envelope_errors = sorted(_ENVELOPE_VALIDATOR.iter_errors(envelope), key=str)
    if envelope_errors or not isinstance(envelope, Mapping):
        detail = envelope_errors[0].message if envelope_errors else "not an object"
        raise RpcServerError(INVALID_REQUEST, f"Invalid response: {detail}")

    error = envelope.get("error")
    if isinstance(error, Mapping):
        code = error["code"]
        message = error["message"]
        raise RpcServerError(
            code if isinstance(code, int) else INVALID_REQUEST,
            message if isinstance(message, str) else "Unknown error",
            error.get("data"),
        )
    if "result" not in envelope:
        raise RpcServerError(INVALID_REQUEST, "Invalid response: missing result")
    return envelope["result"]
