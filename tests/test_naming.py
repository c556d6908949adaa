"""Tests for identifier helpers."""

from __future__ import annotations

import pytest

from near_rpc_codegen.naming import (
    class_name,
    is_plain_identifier,
    rpc_method_to_function_name,
    sanitize_identifier,
    type_name_from_ref,
    unique_name,
    variant_base_name,
)


@pytest.mark.parametrize(
    ("operation_id", "expected"),
    [
        ("EXPERIMENTAL_changes", "experimentalChanges"),
        ("EXPERIMENTAL_changes_in_block", "experimentalChangesInBlock"),
        ("EXPERIMENTAL_light_client_proof", "experimentalLightClientProof"),
        ("network_info", "networkInfo"),
        ("broadcast_tx_async", "broadcastTxAsync"),
        ("status", "status"),
        ("block", "block"),
    ],
)
def test_rpc_method_to_function_name(operation_id: str, expected: str) -> None:
    """Operation ids become camelCase wrapper names."""
    assert rpc_method_to_function_name(operation_id) == expected


def test_rpc_method_to_function_name_sanitizes_invalid_text() -> None:
    """Names that are not identifiers after conversion are sanitized."""
    assert rpc_method_to_function_name("2fa-check") == "x_2fa_check"
    assert rpc_method_to_function_name("class") == "class_"
    assert rpc_method_to_function_name("___") == "method"


def test_sanitize_identifier() -> None:
    """Arbitrary text becomes a valid identifier."""
    assert sanitize_identifier("next-bp-hash") == "next_bp_hash"
    assert sanitize_identifier("near-final") == "near_final"
    assert sanitize_identifier("9lives") == "x_9lives"
    assert sanitize_identifier("from") == "from_"
    assert sanitize_identifier("!!!") == "root"
    assert sanitize_identifier("MixedCase", lowercase=False) == "MixedCase"


def test_is_plain_identifier() -> None:
    """Plain identifiers are valid, not keywords and not private."""
    assert is_plain_identifier("JsonRpcRequest_for_block")
    assert not is_plain_identifier("_private")
    assert not is_plain_identifier("import")
    assert not is_plain_identifier("has-dash")


def test_class_name() -> None:
    """Class names are PascalCase."""
    assert class_name("block_id") == "BlockId"
    assert class_name("near-final") == "NearFinal"
    assert class_name("") == "Root"


def test_type_name_from_ref() -> None:
    """References resolve to their final path segment."""
    assert type_name_from_ref("#/components/schemas/AccountId") == "AccountId"
    assert type_name_from_ref("AccountId") == "AccountId"


def test_variant_base_name() -> None:
    """Titles are lowercased with underscores removed."""
    assert variant_base_name("account_changes") == "accountchanges"
    assert variant_base_name("Block_Id") == "blockid"


def test_unique_name() -> None:
    """Suffixes start at ``first_suffix`` and skip taken names."""
    assert unique_name("x", set()) == "x"
    assert unique_name("x", {"x"}) == "x1"
    assert unique_name("x", {"x", "x1"}) == "x2"
    assert unique_name("Model", {"Model"}, first_suffix=2) == "Model2"
