"""Internal datatypes for generation and verification."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SchemaKind(Enum):
    """Generation strategy chosen for a named schema."""

    ALIAS = "alias"
    UNION = "union"
    EMPTY = "empty"
    RECORD = "record"


@dataclass(frozen=True)
class FieldDef:
    """Represents a single pydantic model field."""

    name: str
    source_name: str
    annotation: str
    required: bool
    description: Optional[str] = None


@dataclass(frozen=True)
class VariantDef:
    """One alternative of a generated union.

    Record-like variants carry ``fields``; literal variants carry the enum
    ``literal`` they stand for; positional fallbacks carry the annotation of
    the branch they wrap.
    """

    name: str
    class_name: str
    fields: tuple[FieldDef, ...] = ()
    literal: Optional[str] = None
    annotation: Optional[str] = None


@dataclass(frozen=True)
class DeclarationDef:
    """A synthesized declaration for one entry of ``components.schemas``."""

    kind: SchemaKind
    schema_name: str
    name: str
    description: Optional[str] = None
    annotation: Optional[str] = None
    fields: tuple[FieldDef, ...] = ()
    variants: tuple[VariantDef, ...] = ()


@dataclass(frozen=True)
class MethodEntry:
    """An RPC method extracted from ``paths.<path>.post.operationId``."""

    path: str
    operation_id: str
    description: Optional[str] = None
    request_schema: Optional[str] = None
    response_schema: Optional[str] = None


@dataclass(frozen=True)
class MethodTable:
    """All RPC methods of one run plus the paths that were skipped."""

    entries: tuple[MethodEntry, ...]
    skipped_paths: tuple[str, ...] = ()

    @property
    def operation_ids(self) -> tuple[str, ...]:
        """Operation ids in lexicographic order."""
        return tuple(sorted(entry.operation_id for entry in self.entries))

    def path_to_method(self) -> dict[str, str]:
        """Return the path lookup table sorted by path."""
        return {entry.path: entry.operation_id for entry in sorted(self.entries, key=_path_key)}


@dataclass(frozen=True)
class GeneratedModule:
    """Rendered source for one output file."""

    file_name: str
    source: str


@dataclass(frozen=True)
class GenerationResult:
    """Generation output metadata."""

    output_dir: str
    openapi_version: str
    declaration_count: int
    method_count: int
    files: tuple[str, ...]
    warnings: tuple[str, ...]


def _path_key(entry: MethodEntry) -> str:
    return entry.path
