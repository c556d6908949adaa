"""Helpers for dynamically loading the generated Python package."""

from __future__ import annotations

import importlib
import importlib.util
from pathlib import Path
import sys
from types import ModuleType


def load_package_from_path(*, package_name: str, package_dir: Path) -> ModuleType:
    """Import a package directory and register it in ``sys.modules``.

    Relative imports inside the package resolve against ``package_name``.

    Args:
        package_name (str): Temporary import name for the package.
        package_dir (Path): Directory holding the package ``__init__.py``.

    Returns:
        ModuleType: Imported package object.
    """
    init_path = package_dir / "__init__.py"
    spec = importlib.util.spec_from_file_location(
        package_name,
        init_path,
        submodule_search_locations=[str(package_dir)],
    )
    if spec is None or spec.loader is None:
        raise RuntimeError(f"Unable to import package from: {package_dir}")

    package = importlib.util.module_from_spec(spec)
    sys.modules[package_name] = package
    try:
        spec.loader.exec_module(package)
    except Exception:
        unload_package(package_name)
        raise
    return package


def load_submodule(package: ModuleType, name: str) -> ModuleType:
    """Import ``name`` from an already loaded package."""
    return importlib.import_module(f"{package.__name__}.{name}")


def unload_package(package_name: str) -> None:
    """Drop a dynamically loaded package and its submodules from ``sys.modules``."""
    prefix = f"{package_name}."
    for module_name in [name for name in sys.modules if name == package_name or name.startswith(prefix)]:
        sys.modules.pop(module_name, None)
