"""NEAR JSON-RPC client generator package."""

from __future__ import annotations

from .cli import main
from .convenience import NearRpcConvenienceMixin, parse_call_result_to_json
from .generator import GenerationRun, run_generation
from .transport import (
    ClientConfig,
    JsonRpcTransport,
    RpcError,
    RpcNetworkError,
    RpcServerError,
    RpcValidationError,
)

__all__ = [
    "ClientConfig",
    "GenerationRun",
    "JsonRpcTransport",
    "NearRpcConvenienceMixin",
    "RpcError",
    "RpcNetworkError",
    "RpcServerError",
    "RpcValidationError",
    "main",
    "parse_call_result_to_json",
    "run_generation",
]
