"""Choose the generation strategy for a named component schema."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .model_types import SchemaKind

_STRUCTURE_KEYS: tuple[str, ...] = ("properties", "oneOf", "anyOf")


def classify(schema: Mapping[str, Any]) -> SchemaKind:
    """Classify a schema as alias, union, empty marker, or record.

    A bare ``$ref`` is an alias of the referenced type. Otherwise unions are
    checked first, then primitive aliases, then empty markers; records are the
    residual case. ``anyOf`` is treated exactly like ``oneOf``.
    """
    if isinstance(schema.get("$ref"), str):
        return SchemaKind.ALIAS
    if union_branches(schema):
        return SchemaKind.UNION
    if _is_primitive_alias(schema):
        return SchemaKind.ALIAS
    if not _non_empty_properties(schema):
        return SchemaKind.EMPTY
    return SchemaKind.RECORD


def union_branches(schema: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    """Return the branches of a ``oneOf`` (preferred) or ``anyOf`` list."""
    for key in ("oneOf", "anyOf"):
        branches = schema.get(key)
        if isinstance(branches, list) and branches:
            return [branch if isinstance(branch, Mapping) else {} for branch in branches]
    return []


def _is_primitive_alias(schema: Mapping[str, Any]) -> bool:
    schema_type = schema.get("type")
    if not isinstance(schema_type, str) or schema_type == "object":
        return False
    return not any(key in schema for key in _STRUCTURE_KEYS)


def _non_empty_properties(schema: Mapping[str, Any]) -> bool:
    properties = schema.get("properties")
    return isinstance(properties, Mapping) and bool(properties)
