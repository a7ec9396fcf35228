"""NGO law codings (DCJW): loading, name resolution and the yearly panel."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Mapping, Sequence

import pandas as pd
import pycountry

from . import common

logger = logging.getLogger(__name__)

QUESTION_PATTERN = re.compile(r"^(q_\d+[a-z])(_year)?$")
LONG_COLUMNS: Sequence[str] = ("country", "year", "question", "value")
PANEL_KEYS: Sequence[str] = ("country_code", "question", "year")

# Questions grouped by the kind of barrier the law raises for NGOs.
BARRIER_QUESTIONS: Mapping[str, Sequence[str]] = {
    "entry": ("q_2a", "q_2b", "q_2c", "q_2d"),
    "funding": ("q_3a", "q_3b", "q_3c", "q_3d", "q_3e", "q_3f"),
    "advocacy": ("q_4a", "q_4b"),
}

# Names whose V-Dem code differs from ISO 3166 or that pycountry cannot look up.
COUNTRY_NAME_OVERRIDES: Mapping[str, str] = {
    "Bolivia": "BOL",
    "Brunei": "BRN",
    "Burma/Myanmar": "MMR",
    "Cape Verde": "CPV",
    "Congo": "COG",
    "Cote d'Ivoire": "CIV",
    "Czech Republic": "CZE",
    "Democratic Republic of Congo": "COD",
    "Democratic Republic of the Congo": "COD",
    "East Timor": "TLS",
    "Gambia": "GMB",
    "Iran": "IRN",
    "Ivory Coast": "CIV",
    "Kosovo": "XKX",
    "Laos": "LAO",
    "Macedonia": "MKD",
    "Moldova": "MDA",
    "North Korea": "PRK",
    "Palestine/West Bank": "PSE",
    "Republic of Congo": "COG",
    "Republic of the Congo": "COG",
    "Russia": "RUS",
    "South Korea": "KOR",
    "Swaziland": "SWZ",
    "Syria": "SYR",
    "Taiwan": "TWN",
    "Tanzania": "TZA",
    "The Gambia": "GMB",
    "Turkey": "TUR",
    "Venezuela": "VEN",
    "Vietnam": "VNM",
}


def resolve_country_code(name: object) -> str | None:
    """Resolve a country name to its three-letter code, or ``None``."""

    if name is None or pd.isna(name):
        return None
    cleaned = str(name).strip()
    if not cleaned:
        return None

    if cleaned in COUNTRY_NAME_OVERRIDES:
        return COUNTRY_NAME_OVERRIDES[cleaned]

    try:
        return pycountry.countries.lookup(cleaned).alpha_3
    except LookupError:
        return None


def _wide_to_long(raw: pd.DataFrame) -> pd.DataFrame:
    """Reshape the DCJW layout (``q_2a``, ``q_2a_year``, ...) to long records."""

    lookup = {str(col).strip().lower(): col for col in raw.columns}
    if "country" not in lookup:
        raise KeyError("The NGO law spreadsheet has no Country column.")

    questions = []
    for key in lookup:
        match = QUESTION_PATTERN.match(key)
        if match and match.group(1) not in questions:
            questions.append(match.group(1))

    parts = []
    for question in sorted(questions):
        if question not in lookup or f"{question}_year" not in lookup:
            logger.warning(f"Skipping {question}: value or year column missing")
            continue
        parts.append(
            pd.DataFrame(
                {
                    "country": raw[lookup["country"]],
                    "question": question,
                    "year": raw[lookup[f"{question}_year"]],
                    "value": raw[lookup[question]],
                }
            )
        )
    if not parts:
        raise KeyError("The NGO law spreadsheet has no q_XX / q_XX_year column pairs.")
    return pd.concat(parts, ignore_index=True)


def _to_long(raw: pd.DataFrame) -> pd.DataFrame:
    lookup = {str(col).strip().lower(): col for col in raw.columns}
    if all(col in lookup for col in LONG_COLUMNS):
        long = raw.loc[:, [lookup[col] for col in LONG_COLUMNS]].copy()
        long.columns = list(LONG_COLUMNS)
        long["question"] = long["question"].astype(str).str.strip().str.lower()
        return long
    return _wide_to_long(raw)


def load_ngo_laws(
    data_path: Path | None = None,
    *,
    sheet_name: str | int = 0,
) -> common.LoadResult:
    """Load NGO law codings as long records keyed by resolved country code."""

    path = Path(data_path) if data_path is not None else common.NGO_LAWS_PATH
    if not path.exists():
        raise FileNotFoundError(f"NGO law dataset not found at {path}.")

    raw = pd.read_excel(path, sheet_name=sheet_name)
    records = _to_long(raw)
    logger.info(f"Loaded NGO law codings: {len(raw)} rows, {len(records)} question records")

    names = records["country"].dropna().astype(str).str.strip().unique()
    codes = {name: resolve_country_code(name) for name in names}
    unmatched = sorted(name for name, code in codes.items() if code is None)
    if unmatched:
        logger.warning(
            f"{len(unmatched)} country names could not be matched and are dropped: "
            + ", ".join(unmatched)
        )

    records["country"] = records["country"].astype("string").str.strip()
    records["country_code"] = records["country"].map(codes)
    records["year"] = pd.to_numeric(records["year"], errors="coerce")
    records["value"] = pd.to_numeric(records["value"], errors="coerce")

    undated = records["year"].isna()
    uncoded = records["year"].notna() & records["value"].isna()
    undated_laws = int((records["year"].isna() & (records["value"] >= 1)).sum())
    if undated_laws:
        logger.warning(f"{undated_laws} coded laws have no year and are dropped")

    keep = records["country_code"].notna() & ~undated & ~uncoded
    data = records.loc[keep, ["country", "country_code", "question", "year", "value"]]
    data = data.astype({"year": int}).reset_index(drop=True)

    diagnostics = {
        "data_path": str(path),
        "raw_rows": int(len(raw)),
        "records": int(len(data)),
        "undated_records": int(undated.sum()),
        "uncoded_records": int(uncoded.sum()),
        "unmatched_countries": unmatched,
        "country_codes": sorted({code for code in codes.values() if code is not None}),
    }
    return common.LoadResult(data=data, diagnostics=diagnostics)


def deduplicate(records: pd.DataFrame) -> pd.DataFrame:
    """Collapse repeated (country, year, question) records to their maximum value."""

    keys = list(PANEL_KEYS)
    duplicates = int(records.duplicated(keys).sum())
    if duplicates:
        logger.warning(f"{duplicates} duplicate NGO law records collapsed to their maximum value")
    return records.groupby(keys, as_index=False, sort=True).agg(value=("value", "max"))


def forward_fill_panel(
    records: pd.DataFrame,
    *,
    years: tuple[int, int] = common.NGO_PANEL_YEARS,
    countries: Iterable[str] | None = None,
) -> pd.DataFrame:
    """Expand sparse records to a complete country x question x year panel.

    Each year takes the most recent earlier value for its country and
    question; years before the first record are 0.
    """

    start, end = years
    records = deduplicate(records)

    codes = set(records["country_code"])
    if countries is not None:
        codes |= set(countries)
    if records.empty:
        questions = sorted(q for qs in BARRIER_QUESTIONS.values() for q in qs)
    else:
        questions = sorted(records["question"].unique())
    first_year = min(start, int(records["year"].min())) if not records.empty else start

    grid = pd.MultiIndex.from_product(
        [sorted(codes), questions, range(first_year, end + 1)],
        names=list(PANEL_KEYS),
    )
    observed = records.set_index(list(PANEL_KEYS))["value"]
    filled = (
        observed.reindex(grid)
        .groupby(level=["country_code", "question"])
        .ffill()
        .fillna(0)
    )
    panel = filled.reset_index()
    panel = panel[panel["year"].between(start, end)].reset_index(drop=True)
    return panel


def barrier_indicators(panel: pd.DataFrame) -> pd.DataFrame:
    """Flag each country-year for every barrier type with at least one law present."""

    question_barrier = {
        question: barrier
        for barrier, questions in BARRIER_QUESTIONS.items()
        for question in questions
    }
    coded = panel.assign(barrier=panel["question"].map(question_barrier))
    coded = coded.dropna(subset=["barrier"])
    coded["present"] = coded["value"] >= 1

    flags = (
        coded.groupby(["country_code", "year", "barrier"])["present"]
        .any()
        .unstack("barrier", fill_value=False)
        .reindex(columns=list(BARRIER_QUESTIONS), fill_value=False)
        .astype(bool)
    )
    flags.columns = [f"barrier_{barrier}" for barrier in flags.columns]
    flags["barrier_count"] = flags.sum(axis=1)
    return flags.reset_index()
