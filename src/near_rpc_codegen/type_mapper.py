"""Map JSON schema fragments to Python type annotations."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

from .naming import type_name_from_ref

UINT64_ANNOTATION = "UInt64"
INT32_ANNOTATION = "Int32"
TEXT_ANNOTATION = "str"

# Constrained integer aliases declared at the top of every generated models module.
PREAMBLE_ALIASES: dict[str, str] = {
    UINT64_ANNOTATION: f"Annotated[int, Field(ge=0, le={2**64 - 1})]",
    INT32_ANNOTATION: f"Annotated[int, Field(ge={-(2**31)}, le={2**31 - 1})]",
}


class DanglingReferenceError(RuntimeError):
    """Raised when a ``$ref`` names a schema absent from ``components.schemas``."""


def map_schema(
    schema: Mapping[str, Any],
    *,
    type_names: Optional[Mapping[str, str]] = None,
) -> str:
    """Return the annotation for a schema fragment.

    Args:
        schema (Mapping[str, Any]): Schema node to map.
        type_names (Optional[Mapping[str, str]]): Component name to generated
            declaration name. When omitted, referenced names are used verbatim.

    Returns:
        str: Python annotation source. Unrecognized shapes fall back to ``str``.
    """
    ref = schema.get("$ref")
    if isinstance(ref, str):
        return _resolve_ref(ref, type_names)

    schema_type = schema.get("type")
    schema_format = schema.get("format")

    if schema_type == "integer":
        if schema_format == "uint64":
            return UINT64_ANNOTATION
        if schema_format == "int32":
            return INT32_ANNOTATION
        return "int"
    if schema_type == "string":
        return TEXT_ANNOTATION
    if schema_type == "boolean":
        return "bool"
    if schema_type == "array":
        items = schema.get("items")
        if isinstance(items, Mapping):
            return f"list[{map_schema(items, type_names=type_names)}]"
        return f"list[{TEXT_ANNOTATION}]"
    # Objects without a named record are not expanded inline.
    return TEXT_ANNOTATION


def _resolve_ref(ref: str, type_names: Optional[Mapping[str, str]]) -> str:
    name = type_name_from_ref(ref)
    if type_names is None:
        return name
    resolved = type_names.get(name)
    if resolved is None:
        raise DanglingReferenceError(f"Reference {ref!r} does not name a known schema")
    return resolved
