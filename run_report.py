"""Build the civic space chapter tables and figures."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Callable, TypeVar

from civic_space import report

T = TypeVar("T")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def run_with_guard(label: str, func: Callable[..., T], *args, **kwargs) -> T:
    """Execute a callable and re-wrap failures as a labelled exit message."""

    try:
        return func(*args, **kwargs)
    except FileNotFoundError as exc:
        missing = getattr(exc, "filename", None) or str(exc)
        raise SystemExit(f"[{label}] Missing file: {missing}") from exc
    except Exception as exc:
        raise SystemExit(f"[{label}] Failed with error: {exc}") from exc


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the civic space chapter figures.")
    parser.add_argument(
        "--vdem-path",
        type=Path,
        default=None,
        help="Optional override for the V-Dem country-year CSV.",
    )
    parser.add_argument(
        "--ngo-laws-path",
        type=Path,
        default=None,
        help="Optional override for the DCJW NGO law spreadsheet.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Root directory for outputs (defaults to output/).",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    out_dir = run_with_guard(
        "report",
        report.run,
        output_dir=args.output_dir,
        vdem_path=args.vdem_path,
        ngo_laws_path=args.ngo_laws_path,
    )
    logger.info(f"Outputs written to {out_dir}")


if __name__ == "__main__":
    main()
