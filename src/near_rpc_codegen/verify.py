"""Consistency verification between the method table, declarations and generated package."""

from __future__ import annotations

import inspect
import itertools
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any, TypeAliasType

from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for
from pydantic import BaseModel, PydanticUndefinedAnnotation, PydanticUserError

from .codegen_ast import CLIENT_CLASS_NAME, ENUM_CLASS_NAME, client_method_names
from .convenience import NearRpcConvenienceMixin
from .model_types import DeclarationDef, MethodTable, SchemaKind
from .module_loading import load_package_from_path, load_submodule, unload_package


class VerificationError(RuntimeError):
    """Raised when the generated package cannot be imported for verification."""


@dataclass(frozen=True)
class VerificationMismatch:
    """One verification mismatch."""

    subject: str
    check: str
    expected: Any
    actual: Any


@dataclass(frozen=True)
class VerificationReport:
    """Result of the verification phase."""

    verified_count: int
    mismatch_count: int
    mismatches: tuple[VerificationMismatch, ...]


def verify_generated_package(
    output_dir: Path,
    declarations: tuple[DeclarationDef, ...],
    table: MethodTable,
) -> VerificationReport:
    """Import the generated package and check it against the inputs it was built from.

    Args:
        output_dir (Path): Generated package directory.
        declarations (tuple[DeclarationDef, ...]): Declarations that were rendered.
        table (MethodTable): Method table that was rendered.

    Returns:
        VerificationReport: Number of checks performed and every mismatch found.
    """
    package_name = f"near_rpc_generated_{next(_COUNTER)}"
    try:
        package = load_package_from_path(package_name=package_name, package_dir=output_dir)
        models = load_submodule(package, "models")
        methods = load_submodule(package, "methods")
        client = load_submodule(package, "client")
    except Exception as exc:
        unload_package(package_name)
        raise VerificationError(
            f"Failed to import generated package from {output_dir}: {exc}"
        ) from exc

    try:
        checks = _Checks()
        _check_declarations(checks, models, declarations)
        _check_methods(checks, methods, table)
        _check_client(checks, client, table)
    finally:
        unload_package(package_name)

    return VerificationReport(
        verified_count=checks.count,
        mismatch_count=len(checks.mismatches),
        mismatches=tuple(checks.mismatches),
    )


def format_report(report: VerificationReport) -> str:
    """Render report as CLI output text."""
    lines = [
        f"Verified checks: {report.verified_count}",
        f"Mismatches: {report.mismatch_count}",
    ]
    for mismatch in report.mismatches:
        lines.extend(
            [
                f"- {mismatch.subject}",
                f"  check: {mismatch.check}",
                f"  expected: {short_repr(mismatch.expected)}",
                f"  actual: {short_repr(mismatch.actual)}",
            ]
        )
    return "\n".join(lines)


def short_repr(value: Any, *, limit: int = 160) -> str:
    """A short representation for mismatch diagnostics."""
    text = repr(value)
    return text if len(text) <= limit else f"{text[: limit - 3]}..."


class _Checks:
    def __init__(self) -> None:
        self.count = 0
        self.mismatches: list[VerificationMismatch] = []

    def expect(self, subject: str, check: str, expected: Any, actual: Any) -> bool:
        self.count += 1
        if expected == actual:
            return True
        self.mismatches.append(
            VerificationMismatch(subject=subject, check=check, expected=expected, actual=actual)
        )
        return False


def _check_declarations(
    checks: _Checks,
    models: ModuleType,
    declarations: tuple[DeclarationDef, ...],
) -> None:
    for declaration in declarations:
        value = getattr(models, declaration.name, None)
        if declaration.kind is SchemaKind.ALIAS:
            checks.expect(declaration.name, "type alias", True, isinstance(value, TypeAliasType))
            continue
        is_model = isinstance(value, type) and issubclass(value, BaseModel)
        if not checks.expect(declaration.name, "pydantic model", True, is_model):
            continue
        try:
            value.model_rebuild(_types_namespace=models.__dict__)
        except (PydanticUndefinedAnnotation, PydanticUserError) as exc:
            checks.expect(declaration.name, "model rebuild", None, str(exc))
            continue
        checks.expect(declaration.name, "json schema", None, _schema_error(value))
        if declaration.kind is SchemaKind.RECORD:
            expected_aliases = sorted(field.source_name for field in declaration.fields)
            actual_aliases = sorted(
                info.alias or name for name, info in value.model_fields.items()
            )
            checks.expect(declaration.name, "field names", expected_aliases, actual_aliases)


def _check_methods(checks: _Checks, methods: ModuleType, table: MethodTable) -> None:
    enum_type = getattr(methods, ENUM_CLASS_NAME)
    enum_values = [member.value for member in enum_type]
    checks.expect(ENUM_CLASS_NAME, "members", list(table.operation_ids), sorted(enum_values))
    checks.expect(ENUM_CLASS_NAME, "all_methods()", enum_values, enum_type.all_methods())

    path_to_method = {path: member.value for path, member in methods.PATH_TO_METHOD.items()}
    checks.expect("PATH_TO_METHOD", "paths", table.path_to_method(), path_to_method)
    repeated = sorted(name for name, count in Counter(path_to_method.values()).items() if count > 1)
    checks.expect("PATH_TO_METHOD", "one path per method", [], repeated)
    checks.expect(
        "PATH_TO_METHOD",
        "covers enumeration",
        sorted(enum_values),
        sorted(set(path_to_method.values())),
    )


def _check_client(checks: _Checks, client: ModuleType, table: MethodTable) -> None:
    client_type = getattr(client, CLIENT_CLASS_NAME)
    checks.expect(
        CLIENT_CLASS_NAME,
        "convenience helpers",
        True,
        issubclass(client_type, NearRpcConvenienceMixin),
    )
    for operation_id, name in client_method_names(table).items():
        wrapper = getattr(client_type, name, None)
        checks.expect(
            f"{CLIENT_CLASS_NAME}.{name}",
            f"coroutine for {operation_id}",
            True,
            inspect.iscoroutinefunction(wrapper),
        )


def _schema_error(model: type[BaseModel]) -> Any:
    try:
        schema = model.model_json_schema()
    except (PydanticUndefinedAnnotation, PydanticUserError) as exc:
        return str(exc)
    try:
        validator_for(schema).check_schema(schema)
    except SchemaError as exc:
        return exc.message
    return None


_COUNTER = itertools.count(1)
