"""Shared paths, constants and output helpers for the civic space chapter."""
from __future__ import annotations

import json
import platform
from dataclasses import dataclass
from datetime import datetime, timezone
from importlib import metadata
from pathlib import Path
from typing import Mapping, Sequence

import pandas as pd

VDEM_PATH = Path("data/raw_data/V-Dem-CY-Full+Others-v9.csv")
NGO_LAWS_PATH = Path("data/raw_data/DCJW_NGO_Laws.xlsx")
OUTPUT_ROOT = Path("output")

# Rows x columns of the full V-Dem country-year release the chapter was built on.
EXPECTED_VDEM_SHAPE: tuple[int, int] = (26537, 4641)

# Window used to decide whether a country is "generally autocratic".
REGIME_WINDOW: tuple[int, int] = (1990, 2013)
AUTOCRACY_SHARE_THRESHOLD = 0.5

# Years shown in the V-Dem figures and covered by the NGO law panel.
PLOT_YEARS: tuple[int, int] = (1980, 2018)
NGO_PANEL_YEARS: tuple[int, int] = (1990, 2014)

REGIME_LABELS: Mapping[int, str] = {
    0: "Closed autocracy",
    1: "Electoral autocracy",
    2: "Electoral democracy",
    3: "Liberal democracy",
}

REGIME_GROUP_LABELS: Mapping[bool, str] = {
    True: "Generally autocratic",
    False: "Generally democratic",
}

FIGURE_SIZE: tuple[float, float] = (6.5, 4.0)
FIGURE_DPI = 300
FIGURE_FORMATS: Sequence[str] = ("pdf", "png")

SESSION_PACKAGES: Sequence[str] = (
    "pandas",
    "numpy",
    "matplotlib",
    "seaborn",
    "scipy",
    "statsmodels",
    "pyarrow",
    "openpyxl",
    "pycountry",
)


@dataclass
class LoadResult:
    """Container for a loaded table and associated diagnostics."""

    data: pd.DataFrame
    diagnostics: Mapping[str, object]


def validate_shape(
    data: pd.DataFrame,
    expected_shape: tuple[int, int],
    *,
    label: str = "dataset",
) -> None:
    """Raise ``ValueError`` unless ``data`` has exactly ``expected_shape``."""

    rows, columns = data.shape
    expected_rows, expected_columns = expected_shape
    if (rows, columns) == (expected_rows, expected_columns):
        return

    problems = []
    if rows != expected_rows:
        problems.append(f"{rows:,} rows (expected {expected_rows:,})")
    if columns != expected_columns:
        problems.append(f"{columns:,} columns (expected {expected_columns:,})")
    raise ValueError(
        f"The {label} has " + " and ".join(problems) + ". "
        "Downstream steps rely on the exact release; check the input file."
    )


def prepare_output_dir(subdir: str | None = None, output_root: Path | None = None) -> Path:
    """Ensure an output directory exists and return it."""

    root = Path(output_root) if output_root is not None else OUTPUT_ROOT
    directory = root / subdir if subdir else root
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def write_json(path: Path, payload: Mapping[str, object]) -> Path:
    """Write ``payload`` as indented UTF-8 JSON; dates and paths become strings."""

    path.write_text(
        json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False, default=str) + "\n",
        encoding="utf-8",
    )
    return path


def write_summary(
    directory: Path,
    findings: Sequence[str],
    *,
    title: str = "Civic space chapter",
    sources: Mapping[str, Path | str] | None = None,
    filename: str = "summary.txt",
) -> Path:
    """Write the plain-text run summary.

    The file opens with ``title``, the run date and the input files, followed
    by one bullet per finding.
    """

    generated = datetime.now(timezone.utc)
    lines = [title, "=" * len(title), f"Generated: {generated:%Y-%m-%d %H:%M} UTC"]
    if sources:
        lines.append("")
        lines.append("Inputs:")
        lines.extend(f"  {label}: {source}" for label, source in sources.items())
    lines.append("")
    lines.append("Findings:")
    lines.extend(f"  - {finding}" for finding in findings)

    path = directory / filename
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def write_session_info(
    directory: Path,
    *,
    inputs: Mapping[str, Path | str] | None = None,
) -> Path:
    """Record the interpreter, library versions and input files behind a run."""

    versions: dict[str, str | None] = {}
    for pkg in SESSION_PACKAGES:
        try:
            versions[pkg] = metadata.version(pkg)
        except metadata.PackageNotFoundError:
            versions[pkg] = None

    files = {}
    for label, source in (inputs or {}).items():
        source = Path(source)
        files[label] = {
            "path": str(source),
            "bytes": source.stat().st_size if source.exists() else None,
        }

    return write_json(
        directory / "session_info.txt",
        {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "python": platform.python_version(),
            "platform": platform.platform(),
            "packages": versions,
            "inputs": files,
        },
    )
