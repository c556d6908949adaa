"""High-level generator orchestration."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from .codegen_ast import (
    render_client_module,
    render_methods_module,
    render_models_module,
    render_package_init,
)
from .declarations import DeclarationSynthesizer
from .json_types import JSONObject
from .loader import SpecFetchError, SpecParseError, get_openapi_version, load_spec
from .methods import MethodTableError, check_method_schemas, extract_methods
from .model_types import DeclarationDef, GeneratedModule, GenerationResult, MethodTable
from .type_mapper import DanglingReferenceError
from .verify import VerificationError, VerificationReport, verify_generated_package
from .writer import OutputWriteError, write_package

logger = logging.getLogger(__name__)

# Every error that aborts a run.
FATAL_ERRORS: tuple[type[Exception], ...] = (
    SpecFetchError,
    SpecParseError,
    DanglingReferenceError,
    MethodTableError,
    OutputWriteError,
    VerificationError,
)


@dataclass(frozen=True)
class GenerationRun:
    """Generation result with optional verification report."""

    result: GenerationResult
    verification_report: Optional[VerificationReport]


def run_generation(
    *,
    source: Union[str, Path],
    output_dir: Path,
    cache_path: Optional[Path] = None,
    verify: bool = False,
) -> GenerationRun:
    """Generate the NEAR client package from an OpenAPI document.

    Args:
        source (Union[str, Path]): URL or local path of the OpenAPI document.
        output_dir (Path): Package directory where generated files are written.
        cache_path (Optional[Path]): Where to keep a copy of a downloaded document.
        verify (bool): Whether to import and check the package after writing it.

    Returns:
        GenerationRun: Generation metadata and optional verification report.
    """
    document = load_spec(source, cache_path=cache_path)
    return generate_from_document(document, output_dir=output_dir, verify=verify)


def generate_from_document(
    document: JSONObject,
    *,
    output_dir: Path,
    verify: bool = False,
) -> GenerationRun:
    """Generate the client package from an already loaded document."""
    version = get_openapi_version(document)
    declarations, table = build_generation_inputs(document)
    modules = render_package(declarations, table, openapi_version=version)
    written = write_package(output_dir=output_dir, modules=modules)

    warnings = tuple(f"Path {path} has no post.operationId; skipped" for path in table.skipped_paths)
    result = GenerationResult(
        output_dir=str(output_dir),
        openapi_version=version,
        declaration_count=len(declarations),
        method_count=len(table.entries),
        files=tuple(str(path) for path in written),
        warnings=warnings,
    )
    logger.info(
        "Generated %d declarations and %d methods into %s",
        result.declaration_count,
        result.method_count,
        output_dir,
    )
    if warnings:
        logger.info("Skipped %d paths without an operation id", len(warnings))

    if not verify:
        return GenerationRun(result=result, verification_report=None)

    report = verify_generated_package(output_dir, declarations, table)
    return GenerationRun(result=result, verification_report=report)


def build_generation_inputs(
    document: JSONObject,
) -> tuple[tuple[DeclarationDef, ...], MethodTable]:
    """Synthesize declarations and extract methods, then cross-check them."""
    schemas = _component_schemas(document)
    paths = document.get("paths")
    table = extract_methods(paths if isinstance(paths, Mapping) else {})

    synthesizer = DeclarationSynthesizer(schemas)
    declarations = synthesizer.synthesize()
    check_method_schemas(table, synthesizer.type_names)
    return declarations, table


def render_package(
    declarations: tuple[DeclarationDef, ...],
    table: MethodTable,
    *,
    openapi_version: str,
) -> list[GeneratedModule]:
    """Render every module of the generated package without touching the filesystem."""
    return [
        GeneratedModule(
            file_name="__init__.py",
            source=render_package_init(
                openapi_version=openapi_version,
                method_count=len(table.entries),
            ),
        ),
        GeneratedModule(
            file_name="models.py",
            source=render_models_module(declarations, openapi_version=openapi_version),
        ),
        GeneratedModule(
            file_name="methods.py",
            source=render_methods_module(table, openapi_version=openapi_version),
        ),
        GeneratedModule(
            file_name="client.py",
            source=render_client_module(table, openapi_version=openapi_version),
        ),
    ]


def _component_schemas(document: JSONObject) -> Mapping[str, Any]:
    components = document.get("components")
    if not isinstance(components, Mapping):
        return {}
    schemas = components.get("schemas")
    return schemas if isinstance(schemas, Mapping) else {}


__all__ = [
    "FATAL_ERRORS",
    "GenerationRun",
    "build_generation_inputs",
    "generate_from_document",
    "render_package",
    "run_generation",
]
