"""Filesystem writer for the generated client package."""

from __future__ import annotations

import logging
import os
from pathlib import Path
import shutil
import subprocess
import sys
import tempfile
from typing import Optional

from .model_types import GeneratedModule

logger = logging.getLogger(__name__)

RUFF_TARGET_VERSION = "py312"

# Pinned so generated output does not follow ruff's changing default rule set.
_GENERATED_RUFF_SELECT_CODES: tuple[str, ...] = (
    "E4",
    "E7",
    "E9",
    "F",
)
_GENERATED_RUFF_IGNORE_CODES: tuple[str, ...] = (
    "E501",
    "E741",
)
_STAGING_PREFIX = "_near_rpc_staging_"
_BACKUP_DIR_NAME = "_previous"


class OutputWriteError(RuntimeError):
    """Raised when output files cannot be written or formatted."""


def write_package(*, output_dir: Path, modules: list[GeneratedModule]) -> tuple[Path, ...]:
    """Write rendered modules into ``output_dir`` through a staging directory.

    Files are written and formatted next to the output directory first, then
    moved into place with ``os.replace``. If any move fails, files already
    replaced are restored so the output keeps its previous contents. Files in
    ``output_dir`` that are not part of ``modules`` are left alone.

    Args:
        output_dir (Path): Target package directory.
        modules (list[GeneratedModule]): Rendered module sources.

    Returns:
        tuple[Path, ...]: Paths of the written files, in ``modules`` order.
    """
    parent = output_dir.parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
        staging_dir = Path(tempfile.mkdtemp(prefix=_STAGING_PREFIX, dir=parent))
    except OSError as exc:
        raise OutputWriteError(f"Failed to create staging directory in {parent}: {exc}") from exc

    try:
        for module in modules:
            _write_file(staging_dir / module.file_name, module.source)
        format_generated_tree(package_dir=staging_dir)

        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(
                f"Failed to create output directory {output_dir}: {exc}"
            ) from exc

        written = _move_into_place(
            staging_dir=staging_dir,
            output_dir=output_dir,
            file_names=[module.file_name for module in modules],
        )
    finally:
        shutil.rmtree(staging_dir, ignore_errors=True)
    return written


def _move_into_place(
    *, staging_dir: Path, output_dir: Path, file_names: list[str]
) -> tuple[Path, ...]:
    backup_dir = staging_dir / _BACKUP_DIR_NAME
    replaced: list[tuple[Path, Optional[Path]]] = []
    try:
        backup_dir.mkdir()
        for file_name in file_names:
            target = output_dir / file_name
            backup: Optional[Path] = None
            if target.exists():
                backup = backup_dir / file_name
                os.replace(target, backup)
            replaced.append((target, backup))
            os.replace(staging_dir / file_name, target)
            logger.debug("Wrote %s", target)
    except OSError as exc:
        _restore(replaced)
        raise OutputWriteError(f"Failed to move generated files into {output_dir}: {exc}") from exc
    return tuple(target for target, _ in replaced)


def _restore(replaced: list[tuple[Path, Optional[Path]]]) -> None:
    for target, backup in reversed(replaced):
        try:
            if backup is not None and backup.exists():
                os.replace(backup, target)
            elif backup is None:
                target.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Failed to restore %s: %s", target, exc)


def format_generated_tree(*, package_dir: Path) -> None:
    """Run Ruff auto-fixes and formatter against generated files.

    Args:
        package_dir (Path): Directory holding the generated modules.
    """
    common = ("--isolated", "--target-version", RUFF_TARGET_VERSION)
    _run_ruff(package_dir=package_dir, args=("format", *common, str(package_dir)))
    _run_ruff(
        package_dir=package_dir,
        args=(
            "check",
            *common,
            "--fix",
            "--select",
            ",".join(_GENERATED_RUFF_SELECT_CODES),
            "--ignore",
            ",".join(_GENERATED_RUFF_IGNORE_CODES),
            str(package_dir),
        ),
    )
    _run_ruff(package_dir=package_dir, args=("format", *common, str(package_dir)))


def _run_ruff(*, package_dir: Path, args: tuple[str, ...]) -> None:
    command = [sys.executable, "-m", "ruff", *args]
    command_desc = " ".join(args[:1])
    try:
        subprocess.run(
            command,
            check=True,
            capture_output=True,
            text=True,
        )
    except OSError as exc:
        raise OutputWriteError(
            f"Failed to execute ruff {command_desc} for {package_dir}: {exc}"
        ) from exc
    except subprocess.CalledProcessError as exc:
        error_text = exc.stderr.strip() or exc.stdout.strip() or str(exc)
        raise OutputWriteError(f"ruff {command_desc} failed for {package_dir}: {error_text}") from exc


def _write_file(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise OutputWriteError(f"Failed to write file {path}: {exc}") from exc
