"""Naming helpers for schema, variant, and RPC method identifiers."""

from __future__ import annotations

import keyword
import re
from collections.abc import Set

_IDENTIFIER_SANITIZE_RE = re.compile(r"[^0-9a-zA-Z_]+")
_MULTIPLE_UNDERSCORES_RE = re.compile(r"_+")

EXPERIMENTAL_PREFIX = "EXPERIMENTAL_"


def sanitize_identifier(raw: str, *, lowercase: bool = True) -> str:
    """Convert arbitrary text into a valid Python identifier."""
    text = raw.lower() if lowercase else raw
    text = _IDENTIFIER_SANITIZE_RE.sub("_", text)
    text = _MULTIPLE_UNDERSCORES_RE.sub("_", text).strip("_")
    if not text:
        text = "root"
    if text[0].isdigit():
        text = f"x_{text}"
    if keyword.iskeyword(text):
        text = f"{text}_"
    return text


def is_plain_identifier(name: str) -> bool:
    """Return whether ``name`` can be used verbatim as a public identifier."""
    return (
        name.isidentifier()
        and not keyword.iskeyword(name)
        and not name.startswith("_")
    )


def class_name(raw: str) -> str:
    """Convert a name to PascalCase class name."""
    clean = sanitize_identifier(raw)
    return "".join(part.capitalize() for part in clean.split("_") if part) or "Model"


def type_name_from_ref(ref: str) -> str:
    """Return the component name a ``$ref`` points at (its final path segment)."""
    return ref.rsplit("/", maxsplit=1)[-1]


def variant_base_name(raw: str) -> str:
    """Normalize a union branch title or enum literal into a variant name."""
    return sanitize_identifier(raw.lower().replace("_", ""))


def rpc_method_to_function_name(operation_id: str) -> str:
    """Derive the client wrapper name for an RPC operation id.

    ``EXPERIMENTAL_changes`` becomes ``experimentalChanges``, ``network_info``
    becomes ``networkInfo`` and ``status`` stays ``status``.
    """
    if operation_id.startswith(EXPERIMENTAL_PREFIX):
        remainder = operation_id[len(EXPERIMENTAL_PREFIX) :]
        words = [part.capitalize() for part in remainder.split("_") if part]
        candidate = "experimental" + "".join(words)
    else:
        parts = [part for part in operation_id.split("_") if part]
        candidate = "".join(
            part.lower() if index == 0 else part.capitalize() for index, part in enumerate(parts)
        )
    if not candidate:
        return "method"
    if is_plain_identifier(candidate):
        return candidate
    return sanitize_identifier(candidate, lowercase=False)


def unique_name(base_name: str, used_names: Set[str], *, first_suffix: int = 1) -> str:
    """Return ``base_name`` or the first numerically suffixed form not in ``used_names``.

    The caller records the returned name.
    """
    if base_name not in used_names:
        return base_name
    suffix = first_suffix
    while f"{base_name}{suffix}" in used_names:
        suffix += 1
    return f"{base_name}{suffix}"
