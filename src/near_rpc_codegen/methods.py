"""Extract the RPC method table from the OpenAPI ``paths`` object."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Collection, Mapping
from typing import Any, Optional

from .model_types import MethodEntry, MethodTable
from .naming import type_name_from_ref
from .type_mapper import DanglingReferenceError

logger = logging.getLogger(__name__)

_JSON_MEDIA_TYPE = "application/json"
_SUCCESS_STATUS = "200"


class MethodTableError(RuntimeError):
    """Raised when paths cannot be mapped one-to-one onto RPC methods."""


def extract_methods(paths: Mapping[str, Any]) -> MethodTable:
    """Map every path with a ``post.operationId`` to its RPC method.

    Paths without an operation id are skipped, logged, and listed in
    ``MethodTable.skipped_paths``.

    Args:
        paths (Mapping[str, Any]): The OpenAPI ``paths`` object.

    Returns:
        MethodTable: Entries sorted by operation id.

    Raises:
        MethodTableError: When two paths share an operation id.
    """
    entries: list[MethodEntry] = []
    skipped: list[str] = []
    for path in sorted(paths):
        operation = _post_operation(paths[path])
        operation_id = operation.get("operationId") if operation is not None else None
        if operation is None or not isinstance(operation_id, str) or not operation_id:
            logger.warning("Path %s has no post.operationId, skipping", path)
            skipped.append(path)
            continue
        entries.append(
            MethodEntry(
                path=path,
                operation_id=operation_id,
                description=_string_or_none(operation.get("description"))
                or _string_or_none(operation.get("summary")),
                request_schema=_request_schema(operation),
                response_schema=_response_schema(operation),
            )
        )

    duplicates = _duplicate_operation_ids(entries)
    if duplicates:
        joined = ", ".join(duplicates)
        raise MethodTableError(f"Operation ids used by more than one path: {joined}")

    entries.sort(key=lambda entry: entry.operation_id)
    return MethodTable(entries=tuple(entries), skipped_paths=tuple(skipped))


def check_method_schemas(table: MethodTable, schema_names: Collection[str]) -> None:
    """Ensure request and response bodies reference declared schemas.

    Raises:
        DanglingReferenceError: When a referenced schema is not declared.
    """
    for entry in table.entries:
        for role, schema_name in (
            ("request", entry.request_schema),
            ("response", entry.response_schema),
        ):
            if schema_name is not None and schema_name not in schema_names:
                raise DanglingReferenceError(
                    f"Method {entry.operation_id!r} {role} references unknown schema "
                    f"{schema_name!r}"
                )


def _post_operation(path_item: Any) -> Optional[Mapping[str, Any]]:
    if not isinstance(path_item, Mapping):
        return None
    post = path_item.get("post")
    return post if isinstance(post, Mapping) else None


def _request_schema(operation: Mapping[str, Any]) -> Optional[str]:
    return _json_schema_ref(operation.get("requestBody"))


def _response_schema(operation: Mapping[str, Any]) -> Optional[str]:
    responses = operation.get("responses")
    if not isinstance(responses, Mapping):
        return None
    return _json_schema_ref(responses.get(_SUCCESS_STATUS))


def _json_schema_ref(body: Any) -> Optional[str]:
    if not isinstance(body, Mapping):
        return None
    content = body.get("content")
    if not isinstance(content, Mapping):
        return None
    media = content.get(_JSON_MEDIA_TYPE)
    if not isinstance(media, Mapping):
        return None
    schema = media.get("schema")
    if not isinstance(schema, Mapping):
        return None
    ref = schema.get("$ref")
    return type_name_from_ref(ref) if isinstance(ref, str) else None


def _duplicate_operation_ids(entries: list[MethodEntry]) -> list[str]:
    counts = Counter(entry.operation_id for entry in entries)
    return sorted(name for name, count in counts.items() if count > 1)


def _string_or_none(value: Any) -> Optional[str]:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped:
            return stripped
    return None
