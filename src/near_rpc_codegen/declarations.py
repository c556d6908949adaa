"""Synthesize declarations for every entry of ``components.schemas``."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel, RootModel

from .classifier import classify, union_branches
from .model_types import DeclarationDef, FieldDef, SchemaKind, VariantDef
from .naming import (
    class_name,
    is_plain_identifier,
    sanitize_identifier,
    unique_name,
    variant_base_name,
)
from .type_mapper import PREAMBLE_ALIASES, DanglingReferenceError, map_schema

_BASEMODEL_RESERVED = set(dir(BaseModel))
_ROOTMODEL_RESERVED = set(dir(RootModel))
_BUILTIN_IDENTIFIER_RESERVED = {
    "bool",
    "bytes",
    "dict",
    "float",
    "int",
    "list",
    "str",
    "tuple",
    "type",
}
# Names bound at module level in every generated models module.
MODULE_RESERVED_NAMES: frozenset[str] = frozenset(
    {
        "Annotated",
        "BaseModel",
        "ConfigDict",
        "Field",
        "Literal",
        "Optional",
        "RootModel",
        "Union",
        "annotations",
        *PREAMBLE_ALIASES,
        *_BUILTIN_IDENTIFIER_RESERVED,
    }
)


class DeclarationSynthesizer:
    """Create declaration definitions from a ``components.schemas`` mapping."""

    def __init__(self, schemas: Mapping[str, Any]) -> None:
        self._schemas: dict[str, Mapping[str, Any]] = {
            name: schema if isinstance(schema, Mapping) else {}
            for name, schema in schemas.items()
        }
        self._type_names = _build_type_names(self._schemas)
        self._used_names: set[str] = set(MODULE_RESERVED_NAMES) | set(self._type_names.values())

    @property
    def type_names(self) -> dict[str, str]:
        """Component name to generated Python name."""
        return dict(self._type_names)

    def synthesize(self) -> tuple[DeclarationDef, ...]:
        """Build one declaration per schema, ordered by schema name."""
        return tuple(self._build_declaration(name) for name in sorted(self._schemas))

    def _build_declaration(self, schema_name: str) -> DeclarationDef:
        schema = self._schemas[schema_name]
        kind = classify(schema)
        name = self._type_names[schema_name]
        description = _string_or_none(schema.get("description"))
        try:
            if kind is SchemaKind.ALIAS:
                return DeclarationDef(
                    kind=kind,
                    schema_name=schema_name,
                    name=name,
                    description=description,
                    annotation=self._annotation(schema),
                )
            if kind is SchemaKind.UNION:
                return DeclarationDef(
                    kind=kind,
                    schema_name=schema_name,
                    name=name,
                    description=description,
                    variants=self._build_variants(name, union_branches(schema)),
                )
            if kind is SchemaKind.RECORD:
                return DeclarationDef(
                    kind=kind,
                    schema_name=schema_name,
                    name=name,
                    description=description,
                    fields=self._build_fields(schema),
                )
        except DanglingReferenceError as exc:
            raise DanglingReferenceError(f"Schema {schema_name!r}: {exc}") from exc
        return DeclarationDef(
            kind=SchemaKind.EMPTY,
            schema_name=schema_name,
            name=name,
            description=description,
        )

    def _build_fields(self, schema: Mapping[str, Any]) -> tuple[FieldDef, ...]:
        properties = schema.get("properties")
        if not isinstance(properties, Mapping):
            return ()
        raw_required = schema.get("required")
        required_names = (
            {item for item in raw_required if isinstance(item, str)}
            if isinstance(raw_required, list)
            else set()
        )

        fields: list[FieldDef] = []
        used_field_names: set[str] = set()
        for source_name in sorted(properties):
            raw_prop = properties[source_name]
            prop_schema = raw_prop if isinstance(raw_prop, Mapping) else {}
            field_name = self._field_name(source_name, used_field_names)
            used_field_names.add(field_name)
            fields.append(
                FieldDef(
                    name=field_name,
                    source_name=source_name,
                    annotation=self._annotation(prop_schema),
                    required=source_name in required_names,
                    description=_string_or_none(prop_schema.get("description")),
                )
            )
        return tuple(fields)

    def _build_variants(
        self,
        union_name: str,
        branches: list[Mapping[str, Any]],
    ) -> tuple[VariantDef, ...]:
        variants: list[VariantDef] = []
        variant_names: set[str] = set()

        def claim(base_name: str) -> tuple[str, str]:
            variant_name = unique_name(base_name, variant_names)
            variant_names.add(variant_name)
            variant_class = unique_name(
                f"{union_name}{class_name(variant_name)}",
                self._used_names,
                first_suffix=2,
            )
            self._used_names.add(variant_class)
            return variant_name, variant_class

        # Positional names count fallback branches only; untitled records borrow the count.
        fallback_index = 0
        for branch in branches:
            properties = branch.get("properties")
            literals = branch.get("enum")
            if isinstance(properties, Mapping) and properties:
                title = branch.get("title")
                if isinstance(title, str) and title:
                    base_name = variant_base_name(title)
                else:
                    base_name = f"case{fallback_index}"
                variant_name, variant_class = claim(base_name)
                variants.append(
                    VariantDef(
                        name=variant_name,
                        class_name=variant_class,
                        fields=self._build_fields(branch),
                    )
                )
            elif _is_string_enum(literals):
                for literal in literals:
                    variant_name, variant_class = claim(sanitize_identifier(literal))
                    variants.append(
                        VariantDef(name=variant_name, class_name=variant_class, literal=literal)
                    )
            else:
                variant_name, variant_class = claim(f"case{fallback_index}")
                fallback_index += 1
                variants.append(
                    VariantDef(
                        name=variant_name,
                        class_name=variant_class,
                        annotation=self._annotation(branch),
                    )
                )
        return tuple(variants)

    def _field_name(self, source_name: str, used_names: set[str]) -> str:
        candidate = (
            source_name if is_plain_identifier(source_name) else sanitize_identifier(source_name)
        )
        if (
            candidate in _BASEMODEL_RESERVED
            or candidate in _ROOTMODEL_RESERVED
            or candidate in MODULE_RESERVED_NAMES
            or candidate in self._used_names
        ):
            candidate = f"{candidate}_field"
        if candidate not in used_names:
            return candidate

        suffix = 2
        while f"{candidate}_{suffix}" in used_names:
            suffix += 1
        return f"{candidate}_{suffix}"

    def _annotation(self, schema: Mapping[str, Any]) -> str:
        return map_schema(schema, type_names=self._type_names)


def synthesize_declarations(schemas: Mapping[str, Any]) -> tuple[DeclarationDef, ...]:
    """Return the declarations for a ``components.schemas`` mapping."""
    return DeclarationSynthesizer(schemas).synthesize()


def _build_type_names(schemas: Mapping[str, Any]) -> dict[str, str]:
    type_names: dict[str, str] = {}
    used: set[str] = set(MODULE_RESERVED_NAMES)
    # Verbatim names are claimed first so sanitized names never take them.
    for schema_name in sorted(schemas):
        if is_plain_identifier(schema_name) and schema_name not in used:
            type_names[schema_name] = schema_name
            used.add(schema_name)
    for schema_name in sorted(schemas):
        if schema_name in type_names:
            continue
        name = unique_name(class_name(schema_name), used, first_suffix=2)
        type_names[schema_name] = name
        used.add(name)
    return type_names


def _is_string_enum(value: Any) -> bool:
    return isinstance(value, list) and bool(value) and all(isinstance(item, str) for item in value)


def _string_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None
