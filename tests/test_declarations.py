"""Tests for declaration synthesis."""

from __future__ import annotations

from typing import Any

import pytest

from near_rpc_codegen.declarations import DeclarationSynthesizer, synthesize_declarations
from near_rpc_codegen.model_types import DeclarationDef, SchemaKind
from near_rpc_codegen.type_mapper import DanglingReferenceError


def _by_schema_name(schemas: dict[str, Any]) -> dict[str, DeclarationDef]:
    return {declaration.schema_name: declaration for declaration in synthesize_declarations(schemas)}


def test_declarations_sorted_by_schema_name() -> None:
    """Output order does not depend on input order."""
    schemas = {"Zeta": {"type": "string"}, "Alpha": {"type": "object"}, "Mid": {"type": "boolean"}}
    names = [declaration.schema_name for declaration in synthesize_declarations(schemas)]
    assert names == ["Alpha", "Mid", "Zeta"]


def test_alias_declaration() -> None:
    """Primitive schemas and bare references become aliases."""
    declarations = _by_schema_name(
        {
            "CryptoHash": {"type": "string", "description": "Hash\nin base58."},
            "BlockHash": {"$ref": "#/components/schemas/CryptoHash"},
            "Heights": {"type": "array", "items": {"type": "integer", "format": "uint64"}},
        }
    )
    assert declarations["CryptoHash"].kind is SchemaKind.ALIAS
    assert declarations["CryptoHash"].annotation == "str"
    assert declarations["CryptoHash"].description == "Hash\nin base58."
    assert declarations["BlockHash"].annotation == "CryptoHash"
    assert declarations["Heights"].annotation == "list[UInt64]"


def test_record_fields_sorted_with_required_flags() -> None:
    """Record fields are ordered by property name and carry requiredness."""
    declarations = _by_schema_name(
        {
            "Version": {
                "type": "object",
                "properties": {
                    "version": {"type": "string", "description": "Semver."},
                    "build": {"type": "string"},
                    "commit": {"type": "string"},
                },
                "required": ["version", "build"],
            }
        }
    )
    record = declarations["Version"]
    assert record.kind is SchemaKind.RECORD
    assert [field.name for field in record.fields] == ["build", "commit", "version"]
    assert [field.required for field in record.fields] == [True, False, True]
    assert record.fields[2].description == "Semver."


def test_record_field_names_are_sanitized_with_alias() -> None:
    """Invalid or reserved property names get a Python name and keep the source name."""
    declarations = _by_schema_name(
        {
            "StateChange": {
                "type": "object",
                "properties": {
                    "next-bp-hash": {"type": "string"},
                    "type": {"type": "string"},
                    "model_config": {"type": "string"},
                    "_private": {"type": "string"},
                },
            }
        }
    )
    fields = {field.source_name: field.name for field in declarations["StateChange"].fields}
    assert fields == {
        "_private": "private",
        "model_config": "model_config_field",
        "next-bp-hash": "next_bp_hash",
        "type": "type_field",
    }


def test_field_names_do_not_shadow_type_names() -> None:
    """A property named like a generated type is renamed."""
    declarations = _by_schema_name(
        {
            "Finality": {"type": "string"},
            "Request": {
                "type": "object",
                "properties": {"Finality": {"$ref": "#/components/schemas/Finality"}},
            },
        }
    )
    field = declarations["Request"].fields[0]
    assert field.name == "Finality_field"
    assert field.annotation == "Finality"


def test_colliding_field_names_are_suffixed() -> None:
    """Two properties that sanitize to the same name stay distinct."""
    declarations = _by_schema_name(
        {
            "Pair": {
                "type": "object",
                "properties": {"a-b": {"type": "string"}, "a_b": {"type": "string"}},
            }
        }
    )
    assert [field.name for field in declarations["Pair"].fields] == ["a_b", "a_b_2"]


def test_type_names_prefer_verbatim_schema_names() -> None:
    """Valid schema names are kept; invalid or reserved ones are made unique."""
    synthesizer = DeclarationSynthesizer(
        {
            "BlockId": {"type": "string"},
            "block-id": {"type": "string"},
            "Field": {"type": "string"},
        }
    )
    assert synthesizer.type_names == {
        "BlockId": "BlockId",
        "Field": "Field2",
        "block-id": "BlockId2",
    }


def test_union_variants_in_branch_order() -> None:
    """Record, literal and positional branches each become variants."""
    declarations = _by_schema_name(
        {
            "BlockId": {"type": "string"},
            "Reference": {
                "oneOf": [
                    {
                        "type": "object",
                        "title": "block_id",
                        "properties": {"block_id": {"$ref": "#/components/schemas/BlockId"}},
                        "required": ["block_id"],
                    },
                    {"type": "string", "enum": ["Final", "near-final"]},
                    {"type": "integer", "format": "uint64"},
                    {"type": "object", "properties": {"x": {"type": "string"}}},
                ]
            },
        }
    )
    union = declarations["Reference"]
    assert union.kind is SchemaKind.UNION
    assert [variant.name for variant in union.variants] == [
        "blockid",
        "final",
        "near_final",
        "case0",
        "case1",
    ]
    assert [variant.class_name for variant in union.variants] == [
        "ReferenceBlockid",
        "ReferenceFinal",
        "ReferenceNearFinal",
        "ReferenceCase0",
        "ReferenceCase1",
    ]
    assert union.variants[0].fields[0].annotation == "BlockId"
    assert union.variants[1].literal == "Final"
    assert union.variants[3].annotation == "UInt64"


def test_union_variant_names_are_unique() -> None:
    """Repeated variant titles get ``1``, ``2`` suffixes."""
    branch = {"type": "object", "title": "x", "properties": {"a": {"type": "string"}}}
    declarations = _by_schema_name({"Repeated": {"oneOf": [branch, branch, branch]}})
    variants = declarations["Repeated"].variants
    assert [variant.name for variant in variants] == ["x", "x1", "x2"]
    assert len({variant.class_name for variant in variants}) == 3


def test_variant_class_names_do_not_collide_with_schemas() -> None:
    """A variant class never reuses a schema's generated name."""
    declarations = _by_schema_name(
        {
            "ReqA": {"type": "string"},
            "Req": {
                "oneOf": [{"type": "object", "title": "a", "properties": {"v": {"type": "string"}}}]
            },
        }
    )
    variant = declarations["Req"].variants[0]
    assert variant.name == "a"
    assert variant.class_name == "ReqA2"


def test_any_of_union_and_empty_marker() -> None:
    """``anyOf`` builds a union; objects without properties are empty markers."""
    declarations = _by_schema_name(
        {
            "Either": {"anyOf": [{"type": "string"}, {"type": "boolean"}]},
            "Marker": {"type": "object", "oneOf": [], "description": "No payload."},
        }
    )
    assert declarations["Either"].kind is SchemaKind.UNION
    assert [variant.annotation for variant in declarations["Either"].variants] == ["str", "bool"]
    assert declarations["Marker"].kind is SchemaKind.EMPTY
    assert declarations["Marker"].description == "No payload."


def test_dangling_reference_names_schema() -> None:
    """Unknown references abort synthesis and name the offending schema."""
    schemas = {
        "Holder": {"type": "object", "properties": {"x": {"$ref": "#/components/schemas/Nope"}}}
    }
    with pytest.raises(DanglingReferenceError, match="Holder"):
        synthesize_declarations(schemas)


def test_positional_variants_count_fallback_branches_only() -> None:
    """``case<N>`` advances on fallback branches; untitled records reuse the current count."""
    declarations = _by_schema_name(
        {
            "Mixed": {
                "oneOf": [
                    {"type": "string", "enum": ["alpha"]},
                    {"type": "integer"},
                    {"type": "object", "properties": {"a": {"type": "string"}}},
                    {"type": "boolean"},
                    {"type": "object", "properties": {"b": {"type": "string"}}},
                ]
            }
        }
    )
    assert [variant.name for variant in declarations["Mixed"].variants] == [
        "alpha",
        "case0",
        "case1",
        "case11",
        "case2",
    ]
