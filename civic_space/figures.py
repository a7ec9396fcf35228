"""Static chapter figures rendered from the aggregate series."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
import seaborn as sns  # noqa: E402
from matplotlib.ticker import PercentFormatter  # noqa: E402

from . import common  # noqa: E402

logger = logging.getLogger(__name__)

REGIME_GROUP_ORDER: Sequence[str] = tuple(common.REGIME_GROUP_LABELS.values())


def _apply_theme() -> None:
    sns.set_theme(style="whitegrid", context="paper", palette="colorblind")


def _plot_lines(ax: plt.Axes, series: pd.DataFrame, group: str, order: Sequence[str]) -> None:
    """Draw one line with a shaded interval per value of ``group``."""

    palette = sns.color_palette("colorblind", n_colors=max(len(order), 1))
    for color, name in zip(palette, order):
        subset = series[series[group] == name].sort_values("year")
        if subset.empty:
            continue
        years = subset["year"].to_numpy(dtype=float)
        ax.plot(years, subset["estimate"].to_numpy(dtype=float), color=color, label=name, linewidth=1.5)
        ax.fill_between(
            years,
            subset["ci_lower"].to_numpy(dtype=float),
            subset["ci_upper"].to_numpy(dtype=float),
            color=color,
            alpha=0.2,
            linewidth=0,
        )


def _ordered(values: pd.Series, preferred: Sequence[str] | None = None) -> list[str]:
    present = [str(value) for value in values.dropna().unique()]
    if preferred is None:
        return sorted(present)
    return [name for name in preferred if name in present] + sorted(
        name for name in present if name not in preferred
    )


def plot_autocracy_elections(series: pd.DataFrame) -> plt.Figure:
    """Share of autocracies holding elections and allowing multiple parties."""

    _apply_theme()
    fig, ax = plt.subplots(figsize=common.FIGURE_SIZE)
    _plot_lines(ax, series, "category", _ordered(series["category"]))

    ax.set_ylim(0, 1)
    ax.yaxis.set_major_formatter(PercentFormatter(xmax=1))
    ax.set_xlabel("Year")
    ax.set_ylabel("Share of autocracies")
    ax.set_title("Elections in autocracies")
    ax.legend(frameon=False, loc="lower right")
    fig.tight_layout()
    return fig


def plot_civil_society(
    series: pd.DataFrame,
    indicators: Sequence[str] = ("CSO repression", "CSO entry and exit"),
) -> plt.Figure:
    """Mean civil society indices by regime group, one panel per indicator."""

    _apply_theme()
    fig, axes = plt.subplots(1, len(indicators), figsize=common.FIGURE_SIZE, sharey=True, squeeze=False)
    order = _ordered(series["regime_group"], REGIME_GROUP_ORDER) if not series.empty else []
    for ax, indicator in zip(axes[0], indicators):
        _plot_lines(ax, series[series["indicator"] == indicator], "regime_group", order)
        ax.set_title(indicator)
        ax.set_xlabel("Year")
    axes[0][0].set_ylabel("Mean index value (higher = more open)")
    axes[0][0].legend(frameon=False, loc="lower left")
    fig.tight_layout()
    return fig


def plot_ngo_barriers(series: pd.DataFrame) -> plt.Figure:
    """Share of countries with each NGO barrier type, split by regime group."""

    _apply_theme()
    groups = _ordered(series["regime_group"], REGIME_GROUP_ORDER) if not series.empty else []
    fig, axes = plt.subplots(
        1, max(len(groups), 1), figsize=common.FIGURE_SIZE, sharey=True, squeeze=False
    )
    barriers = _ordered(series["barrier"]) if not series.empty else []
    for ax, group in zip(axes[0], groups):
        _plot_lines(ax, series[series["regime_group"] == group], "barrier", barriers)
        ax.set_title(group)
        ax.set_xlabel("Year")
    axes[0][0].set_ylim(0, 1)
    axes[0][0].yaxis.set_major_formatter(PercentFormatter(xmax=1))
    axes[0][0].set_ylabel("Share of countries")
    axes[0][0].legend(frameon=False, loc="upper left")
    fig.tight_layout()
    return fig


def save_figure(fig: plt.Figure, output_prefix: Path) -> list[Path]:
    """Save a figure as vector PDF and fixed-size raster PNG."""

    output_prefix = Path(output_prefix)
    output_prefix.parent.mkdir(parents=True, exist_ok=True)
    paths = []
    for fmt in common.FIGURE_FORMATS:
        path = output_prefix.with_name(f"{output_prefix.name}.{fmt}")
        fig.savefig(path, dpi=common.FIGURE_DPI, format=fmt)
        logger.info(f"  - Saved {path}")
        paths.append(path)
    return paths
