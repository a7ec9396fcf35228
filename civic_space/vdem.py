"""V-Dem country-year panel: loading, derived indicators and regime labels."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import pandas as pd

from . import common

logger = logging.getLogger(__name__)

ELECTION_TYPE_COLUMNS: Sequence[str] = tuple(f"v2eltype_{i}" for i in range(10))

# Columns kept in the slim analysis view.
VDEM_COLUMNS: Sequence[str] = (
    "country_name",
    "country_text_id",
    "year",
    "v2x_regime",
    "v2elmulpar_ord",
    "v2csreprss",
    "v2csreprss_ord",
    "v2cseeorgs",
    "v2xcs_ccsi",
    *ELECTION_TYPE_COLUMNS,
)

NUMERIC_COLUMNS: Sequence[str] = (
    "v2x_regime",
    "v2elmulpar_ord",
    "v2csreprss",
    "v2csreprss_ord",
    "v2cseeorgs",
    "v2xcs_ccsi",
    *ELECTION_TYPE_COLUMNS,
)


def load_vdem(
    data_path: Path | None = None,
    *,
    expected_shape: tuple[int, int] | None = common.EXPECTED_VDEM_SHAPE,
) -> common.LoadResult:
    """Load the V-Dem panel, check its shape and return the typed slim view.

    ``expected_shape=None`` skips the shape check.
    """

    path = Path(data_path) if data_path is not None else common.VDEM_PATH
    if not path.exists():
        raise FileNotFoundError(
            f"V-Dem dataset not found at {path}. Download the country-year release first."
        )

    raw = pd.read_csv(path, low_memory=False)
    logger.info(f"Loaded V-Dem panel: {raw.shape[0]:,} rows, {raw.shape[1]:,} columns")
    if expected_shape is not None:
        common.validate_shape(raw, expected_shape, label="V-Dem dataset")

    missing_columns = [col for col in VDEM_COLUMNS if col not in raw.columns]
    if missing_columns:
        raise KeyError(
            "The V-Dem dataset is missing expected columns: "
            + ", ".join(missing_columns)
        )

    data = raw.loc[:, list(VDEM_COLUMNS)].copy()
    data["country_name"] = data["country_name"].astype("string")
    data["country_text_id"] = data["country_text_id"].astype("string")
    data["year"] = pd.to_numeric(data["year"], errors="coerce").astype("Int64")
    for column in NUMERIC_COLUMNS:
        data[column] = pd.to_numeric(data[column], errors="coerce")

    diagnostics = {
        "data_path": str(path),
        "raw_rows": int(raw.shape[0]),
        "raw_columns": int(raw.shape[1]),
        "countries": int(data["country_text_id"].nunique()),
        "year_min": int(data["year"].min()) if data["year"].notna().any() else None,
        "year_max": int(data["year"].max()) if data["year"].notna().any() else None,
    }
    return common.LoadResult(data=data, diagnostics=diagnostics)


def threshold_flag(series: pd.Series, threshold: float, *, at_most: bool = False) -> pd.Series:
    """Flag values at or above ``threshold`` (at or below with ``at_most``).

    Missing values stay missing.
    """

    values = pd.to_numeric(series, errors="coerce")
    flags = values <= threshold if at_most else values >= threshold
    return flags.astype("boolean").mask(values.isna())


def _election_held(data: pd.DataFrame) -> pd.Series:
    election_types = data.loc[:, list(ELECTION_TYPE_COLUMNS)]
    any_observed = election_types.notna().any(axis=1)
    held = election_types.max(axis=1, skipna=True) >= 1
    return held.astype("boolean").mask(~any_observed)


def derive_indicators(data: pd.DataFrame) -> pd.DataFrame:
    """Add per-record boolean and categorical indicators to the panel."""

    panel = data.copy()
    panel["is_autocracy"] = threshold_flag(panel["v2x_regime"], 1, at_most=True)
    panel["regime_label"] = pd.Categorical(
        panel["v2x_regime"].map(common.REGIME_LABELS),
        categories=list(common.REGIME_LABELS.values()),
        ordered=True,
    )
    panel["multiparty"] = threshold_flag(panel["v2elmulpar_ord"], 2)
    panel["election_held"] = _election_held(panel)
    panel["cso_repressed"] = threshold_flag(panel["v2csreprss_ord"], 1, at_most=True)
    return panel


def classify_regimes(
    panel: pd.DataFrame,
    *,
    window: tuple[int, int] = common.REGIME_WINDOW,
    threshold: float = common.AUTOCRACY_SHARE_THRESHOLD,
) -> pd.DataFrame:
    """Label each country by the share of autocratic years inside ``window``.

    Both window bounds are inclusive and years without a regime coding are
    left out of the denominator.
    """

    start, end = window
    in_window = panel.loc[
        panel["year"].between(start, end).fillna(False) & panel["is_autocracy"].notna(),
        ["country_text_id", "is_autocracy"],
    ]
    in_window = in_window.assign(autocratic=in_window["is_autocracy"].astype(int))

    regimes = (
        in_window.groupby("country_text_id", sort=True)
        .agg(
            years_observed=("autocratic", "size"),
            years_autocratic=("autocratic", "sum"),
        )
        .reset_index()
    )
    regimes["autocracy_share"] = regimes["years_autocratic"] / regimes["years_observed"]
    regimes["generally_autocratic"] = regimes["autocracy_share"] >= threshold

    logger.info(
        f"Classified {len(regimes)} countries over {start}-{end}: "
        f"{int(regimes['generally_autocratic'].sum())} generally autocratic"
    )
    return regimes


def attach_regime_labels(
    frame: pd.DataFrame,
    regimes: pd.DataFrame,
    *,
    code_column: str = "country_text_id",
) -> pd.DataFrame:
    """Join the country-level regime label onto yearly records."""

    labels = regimes.loc[:, ["country_text_id", "generally_autocratic"]].rename(
        columns={"country_text_id": code_column}
    )
    labels[code_column] = labels[code_column].astype("string")
    frame = frame.assign(**{code_column: frame[code_column].astype("string")})
    merged = frame.merge(labels, on=code_column, how="left", validate="many_to_one")
    merged["generally_autocratic"] = merged["generally_autocratic"].astype("boolean")
    merged["regime_group"] = (
        merged["generally_autocratic"]
        .astype(object)
        .map(common.REGIME_GROUP_LABELS)
        .astype("string")
    )

    unlabelled = merged.loc[merged["generally_autocratic"].isna(), code_column].nunique()
    if unlabelled:
        logger.warning(f"{unlabelled} countries have no regime label and drop out of regime splits")
    return merged
