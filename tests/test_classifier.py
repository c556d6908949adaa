"""Tests for schema classification."""

from __future__ import annotations

from typing import Any

import pytest

from near_rpc_codegen.classifier import classify, union_branches
from near_rpc_codegen.model_types import SchemaKind


@pytest.mark.parametrize(
    ("schema", "expected"),
    [
        ({"$ref": "#/components/schemas/CryptoHash"}, SchemaKind.ALIAS),
        ({"type": "string"}, SchemaKind.ALIAS),
        ({"type": "string", "enum": ["final", "optimistic"]}, SchemaKind.ALIAS),
        ({"type": "integer", "format": "uint64"}, SchemaKind.ALIAS),
        ({"type": "array", "items": {"type": "string"}}, SchemaKind.ALIAS),
        ({"oneOf": [{"type": "string"}, {"type": "integer"}]}, SchemaKind.UNION),
        ({"anyOf": [{"type": "string"}]}, SchemaKind.UNION),
        ({"type": "object", "oneOf": [{"type": "string"}]}, SchemaKind.UNION),
        ({"type": "object"}, SchemaKind.EMPTY),
        ({"type": "object", "oneOf": []}, SchemaKind.EMPTY),
        ({"type": "object", "properties": {}}, SchemaKind.EMPTY),
        ({}, SchemaKind.EMPTY),
        ({"type": "object", "properties": {"a": {"type": "string"}}}, SchemaKind.RECORD),
        ({"properties": {"a": {"type": "string"}}}, SchemaKind.RECORD),
    ],
    ids=lambda value: repr(value),
)
def test_classify(schema: dict[str, Any], expected: SchemaKind) -> None:
    """Classification follows ref, union, alias, empty, record precedence."""
    assert classify(schema) is expected


def test_union_takes_precedence_over_properties() -> None:
    """Schemas with both ``oneOf`` and ``properties`` are unions."""
    schema = {
        "type": "object",
        "properties": {"id": {"type": "string"}},
        "oneOf": [{"properties": {"result": {"type": "string"}}}],
    }
    assert classify(schema) is SchemaKind.UNION


def test_one_of_preferred_over_any_of() -> None:
    """When both lists are present the ``oneOf`` branches are used."""
    schema = {"oneOf": [{"type": "string"}], "anyOf": [{"type": "integer"}, {"type": "boolean"}]}
    assert union_branches(schema) == [{"type": "string"}]


def test_any_of_used_when_one_of_empty() -> None:
    """An empty ``oneOf`` falls through to ``anyOf``."""
    schema = {"oneOf": [], "anyOf": [{"type": "integer"}]}
    assert union_branches(schema) == [{"type": "integer"}]
