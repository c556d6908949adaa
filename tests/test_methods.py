"""Tests for RPC method table extraction."""

from __future__ import annotations

import logging
from typing import Any, Optional

import pytest

from near_rpc_codegen.methods import MethodTableError, check_method_schemas, extract_methods
from near_rpc_codegen.type_mapper import DanglingReferenceError


def _operation(
    operation_id: str,
    *,
    request: Optional[str] = None,
    response: Optional[str] = None,
) -> dict[str, Any]:
    operation: dict[str, Any] = {
        "operationId": operation_id,
        "responses": {"200": {"description": ""}},
    }
    if request is not None:
        operation["requestBody"] = {
            "content": {"application/json": {"schema": {"$ref": f"#/components/schemas/{request}"}}}
        }
    if response is not None:
        operation["responses"]["200"]["content"] = {
            "application/json": {"schema": {"$ref": f"#/components/schemas/{response}"}}
        }
    return {"post": operation}


def test_extracts_sorted_entries_and_lookup_table() -> None:
    """Entries are ordered by operation id; the lookup table by path."""
    table = extract_methods(
        {
            "/status": _operation("status"),
            "/EXPERIMENTAL_changes": _operation("EXPERIMENTAL_changes"),
            "/block": _operation("block"),
        }
    )
    assert table.operation_ids == ("EXPERIMENTAL_changes", "block", "status")
    assert [entry.operation_id for entry in table.entries] == list(table.operation_ids)
    assert list(table.path_to_method().items()) == [
        ("/EXPERIMENTAL_changes", "EXPERIMENTAL_changes"),
        ("/block", "block"),
        ("/status", "status"),
    ]


def test_operation_id_kept_verbatim_even_when_path_differs() -> None:
    """The method name comes from the operation id, not the path."""
    table = extract_methods({"/query/view_account": _operation("query")})
    assert table.path_to_method() == {"/query/view_account": "query"}


def test_request_and_response_schema_names() -> None:
    """Body references are recorded by schema name."""
    table = extract_methods(
        {
            "/block": _operation(
                "block",
                request="JsonRpcRequest_for_block",
                response="JsonRpcResponse_for_RpcBlockResponse_and_RpcError",
            )
        }
    )
    entry = table.entries[0]
    assert entry.request_schema == "JsonRpcRequest_for_block"
    assert entry.response_schema == "JsonRpcResponse_for_RpcBlockResponse_and_RpcError"


def test_description_falls_back_to_summary() -> None:
    """Operations without a description use their summary."""
    path_item = _operation("gas_price")
    path_item["post"]["summary"] = "Returns gas price."
    table = extract_methods({"/gas_price": path_item})
    assert table.entries[0].description == "Returns gas price."


def test_paths_without_operation_id_are_skipped(caplog: pytest.LogCaptureFixture) -> None:
    """Paths lacking ``post.operationId`` are logged and reported."""
    with caplog.at_level(logging.WARNING, logger="near_rpc_codegen.methods"):
        table = extract_methods(
            {
                "/health": {"post": {"responses": {"200": {"description": ""}}}},
                "/get_only": {"get": {"operationId": "get_only"}},
                "/block": _operation("block"),
            }
        )
    assert table.operation_ids == ("block",)
    assert table.skipped_paths == ("/get_only", "/health")
    assert "/health" in caplog.text
    assert "/get_only" in caplog.text


def test_duplicate_operation_ids_are_fatal() -> None:
    """Two paths with the same operation id break the method/path bijection."""
    with pytest.raises(MethodTableError, match="block"):
        extract_methods({"/block": _operation("block"), "/block_v2": _operation("block")})


def test_check_method_schemas_rejects_unknown_schema() -> None:
    """Method bodies must reference declared schemas."""
    table = extract_methods({"/block": _operation("block", request="Missing")})
    with pytest.raises(DanglingReferenceError, match="Missing"):
        check_method_schemas(table, {"Other"})
    check_method_schemas(table, {"Missing"})
