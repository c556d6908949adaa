"""Command line interface for NEAR RPC client generation."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

from .generator import FATAL_ERRORS, run_generation
from .loader import NEAR_OPENAPI_URL
from .verify import format_report

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = Path("generated") / "near_rpc"
DEFAULT_CACHE_PATH = Path("open-api-near-spec.json")


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    parser = argparse.ArgumentParser(
        prog="near-rpc-codegen",
        description="Generate a typed async NEAR JSON-RPC client from the OpenAPI document",
    )
    parser.add_argument(
        "--source",
        default=NEAR_OPENAPI_URL,
        help="URL or path of the OpenAPI document (default: nearcore master)",
    )
    parser.add_argument(
        "--output",
        default=str(DEFAULT_OUTPUT_DIR),
        help=f"Output package directory (default: {DEFAULT_OUTPUT_DIR})",
    )
    cache_group = parser.add_mutually_exclusive_group()
    cache_group.add_argument(
        "--cache",
        default=str(DEFAULT_CACHE_PATH),
        help=f"Where to keep a copy of a downloaded document (default: {DEFAULT_CACHE_PATH})",
    )
    cache_group.add_argument(
        "--no-cache",
        action="store_true",
        help="Do not keep a copy of the downloaded document",
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Import the generated package and check it for consistency",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Run CLI and return process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    cache_path = None if args.no_cache else Path(args.cache)
    try:
        run = run_generation(
            source=args.source,
            output_dir=Path(args.output),
            cache_path=cache_path,
            verify=bool(args.verify),
        )
    except FATAL_ERRORS as exc:
        logger.error("%s", exc)
        return 1

    for warning in run.result.warnings:
        print(f"Warning: {warning}")
    print(
        f"Generated {run.result.declaration_count} types and "
        f"{run.result.method_count} methods in {run.result.output_dir}"
    )

    if run.verification_report is not None:
        print(format_report(run.verification_report))
        if run.verification_report.mismatch_count > 0:
            return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
