"""Grouped descriptive statistics feeding the chapter figures."""
from __future__ import annotations

import logging
from typing import Mapping, Sequence

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats.proportion import proportion_confint

from . import common, ngo_laws

logger = logging.getLogger(__name__)

CIVIL_SOCIETY_INDICATORS: Mapping[str, str] = {
    "v2csreprss": "CSO repression",
    "v2cseeorgs": "CSO entry and exit",
    "v2xcs_ccsi": "Core civil society index",
}

BARRIER_LABELS: Mapping[str, str] = {
    f"barrier_{barrier}": f"{barrier.capitalize()} barriers"
    for barrier in ngo_laws.BARRIER_QUESTIONS
}


def proportion_by_group(
    data: pd.DataFrame,
    flag: str,
    by: Sequence[str],
    *,
    alpha: float = 0.05,
) -> pd.DataFrame:
    """Share of records with ``flag`` set per group, with Wilson intervals.

    Records with a missing flag do not count towards the denominator and
    groups without any observed record are dropped.
    """

    keys = list(by)
    observed = data.loc[data[flag].notna(), keys].copy()
    observed["success"] = data.loc[data[flag].notna(), flag].astype(int)

    table = (
        observed.groupby(keys, observed=True, sort=True)["success"]
        .agg(n="count", successes="sum")
        .reset_index()
    )
    table = table[table["n"] > 0].reset_index(drop=True)
    table["estimate"] = table["successes"] / table["n"]

    lower, upper = proportion_confint(
        table["successes"].to_numpy(dtype=float),
        table["n"].to_numpy(dtype=float),
        alpha=alpha,
        method="wilson",
    )
    table["ci_lower"] = np.clip(np.asarray(lower, dtype=float), 0, 1)
    table["ci_upper"] = np.clip(np.asarray(upper, dtype=float), 0, 1)
    return table


def mean_by_group(
    data: pd.DataFrame,
    value: str,
    by: Sequence[str],
    *,
    confidence: float = 0.95,
) -> pd.DataFrame:
    """Group means with t-based confidence intervals.

    Missing values are excluded and empty groups dropped. A group with a
    single observation has no interval.
    """

    keys = list(by)
    observed = data.loc[data[value].notna(), [*keys, value]]

    table = (
        observed.groupby(keys, observed=True, sort=True)[value]
        .agg(n="count", estimate="mean", sd="std")
        .reset_index()
    )
    table = table[table["n"] > 0].reset_index(drop=True)

    n = table["n"].to_numpy(dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        sem = table["sd"].to_numpy(dtype=float) / np.sqrt(n)
        critical = stats.t.ppf((1 + confidence) / 2, df=np.where(n > 1, n - 1, np.nan))
    table["ci_lower"] = table["estimate"] - critical * sem
    table["ci_upper"] = table["estimate"] + critical * sem
    return table


def stack_series(tables: Mapping[str, pd.DataFrame], *, label: str = "category") -> pd.DataFrame:
    """Concatenate named series into one long table with a ``label`` column."""

    frames = [table.assign(**{label: name}) for name, table in tables.items()]
    if not frames:
        return pd.DataFrame(columns=[label])
    stacked = pd.concat(frames, ignore_index=True)
    columns = [label, *[col for col in stacked.columns if col != label]]
    return stacked.loc[:, columns]


def _within_years(panel: pd.DataFrame, years: tuple[int, int] | None) -> pd.DataFrame:
    if years is None:
        return panel
    start, end = years
    return panel[panel["year"].between(start, end).fillna(False)]


def autocracy_election_series(
    panel: pd.DataFrame,
    *,
    years: tuple[int, int] | None = common.PLOT_YEARS,
) -> pd.DataFrame:
    """Yearly share of autocracies holding elections and allowing multiple parties."""

    autocracies = _within_years(panel, years)
    autocracies = autocracies[autocracies["is_autocracy"].fillna(False).astype(bool)]
    return stack_series(
        {
            "Held national election": proportion_by_group(
                autocracies, "election_held", ["year"]
            ),
            "Multiple parties allowed": proportion_by_group(
                autocracies, "multiparty", ["year"]
            ),
        }
    )


def civil_society_series(
    panel: pd.DataFrame,
    *,
    years: tuple[int, int] | None = common.PLOT_YEARS,
) -> pd.DataFrame:
    """Yearly civil society index means by regime group."""

    subset = _within_years(panel, years)
    return stack_series(
        {
            label: mean_by_group(subset, column, ["regime_group", "year"])
            for column, label in CIVIL_SOCIETY_INDICATORS.items()
        },
        label="indicator",
    )


def cso_repression_shares(
    panel: pd.DataFrame,
    *,
    years: tuple[int, int] | None = common.PLOT_YEARS,
) -> pd.DataFrame:
    """Yearly share of countries with severe or substantial CSO repression by regime group."""

    return proportion_by_group(
        _within_years(panel, years), "cso_repressed", ["regime_group", "year"]
    )


def barrier_series(barriers: pd.DataFrame) -> pd.DataFrame:
    """Yearly share of countries with each NGO barrier type by regime group."""

    return stack_series(
        {
            label: proportion_by_group(barriers, column, ["regime_group", "year"])
            for column, label in BARRIER_LABELS.items()
        },
        label="barrier",
    )


def regime_type_shares(
    panel: pd.DataFrame,
    *,
    years: tuple[int, int] | None = common.PLOT_YEARS,
) -> pd.DataFrame:
    """Yearly count and share of countries in each Regimes of the World category."""

    subset = _within_years(panel, years).dropna(subset=["regime_label"])
    counts = (
        subset.groupby(["year", "regime_label"], observed=True, sort=True)
        .size()
        .rename("n")
        .reset_index()
    )
    counts["estimate"] = counts["n"] / counts.groupby("year")["n"].transform("sum")
    return counts
