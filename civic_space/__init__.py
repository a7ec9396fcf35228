"""Descriptive analysis and figures for the civic space in autocracies chapter."""

from . import common, figures, ngo_laws, report, summaries, vdem  # noqa: F401

__all__ = [
    "common",
    "figures",
    "ngo_laws",
    "report",
    "summaries",
    "vdem",
]
