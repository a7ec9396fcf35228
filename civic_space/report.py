"""End-to-end chapter report: load, validate, aggregate, plot and export."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import matplotlib.pyplot as plt

from . import common, figures, ngo_laws, summaries, vdem

logger = logging.getLogger(__name__)

PANEL_EXPORT_COLUMNS = (
    "country_name",
    "country_text_id",
    "year",
    "v2x_regime",
    "regime_label",
    "is_autocracy",
    "election_held",
    "multiparty",
    "cso_repressed",
    "v2csreprss",
    "v2cseeorgs",
    "v2xcs_ccsi",
    "generally_autocratic",
    "regime_group",
)


def _latest(series, category_col: str, category: str) -> str:
    subset = series[series[category_col] == category]
    if subset.empty:
        return "n/a"
    row = subset.sort_values("year").iloc[-1]
    return f"{row['estimate']:.1%} in {int(row['year'])}"


def run(
    *,
    output_dir: Path | None = None,
    vdem_path: Path | None = None,
    ngo_laws_path: Path | None = None,
    expected_shape: tuple[int, int] | None = common.EXPECTED_VDEM_SHAPE,
) -> Path:
    """Execute the chapter pipeline and persist tables, figures and diagnostics."""

    out_dir = common.prepare_output_dir(output_root=output_dir)
    tables_dir = common.prepare_output_dir("tables", out_dir)
    figures_dir = common.prepare_output_dir("figures", out_dir)
    data_dir = common.prepare_output_dir("data", out_dir)

    logger.info("[1/5] Loading and validating V-Dem panel...")
    vdem_result = vdem.load_vdem(vdem_path, expected_shape=expected_shape)
    panel = vdem.derive_indicators(vdem_result.data)
    regimes = vdem.classify_regimes(panel)
    panel = vdem.attach_regime_labels(panel, regimes)

    logger.info("[2/5] Loading NGO law codings...")
    ngo_result = ngo_laws.load_ngo_laws(ngo_laws_path)
    ngo_panel = ngo_laws.forward_fill_panel(
        ngo_result.data, countries=ngo_result.diagnostics["country_codes"]
    )
    barriers = ngo_laws.barrier_indicators(ngo_panel)
    barriers = vdem.attach_regime_labels(barriers, regimes, code_column="country_code")

    logger.info("[3/5] Aggregating series...")
    election_series = summaries.autocracy_election_series(panel)
    civil_society = summaries.civil_society_series(panel)
    repression = summaries.cso_repression_shares(panel)
    barrier_series = summaries.barrier_series(barriers)
    regime_shares = summaries.regime_type_shares(panel)

    regimes.to_csv(tables_dir / "regime_classification.csv", index=False)
    election_series.to_csv(tables_dir / "autocracy_elections.csv", index=False)
    civil_society.to_csv(tables_dir / "civil_society_by_regime.csv", index=False)
    repression.to_csv(tables_dir / "cso_repression_by_regime.csv", index=False)
    barrier_series.to_csv(tables_dir / "ngo_barriers_by_regime.csv", index=False)
    regime_shares.to_csv(tables_dir / "regime_type_shares.csv", index=False)
    panel.loc[:, list(PANEL_EXPORT_COLUMNS)].to_parquet(
        data_dir / "country_year_panel.parquet", index=False
    )

    logger.info("[4/5] Rendering figures...")
    for name, fig in (
        ("fig_autocracy_elections", figures.plot_autocracy_elections(election_series)),
        ("fig_civil_society_regimes", figures.plot_civil_society(civil_society)),
        ("fig_ngo_barriers", figures.plot_ngo_barriers(barrier_series)),
    ):
        figures.save_figure(fig, figures_dir / name)
        plt.close(fig)

    logger.info("[5/5] Writing diagnostics and summary...")
    n_autocratic = int(regimes["generally_autocratic"].sum())
    common.write_json(
        out_dir / "data_check.json",
        {
            "vdem": dict(vdem_result.diagnostics),
            "ngo_laws": dict(ngo_result.diagnostics),
            "countries_classified": int(len(regimes)),
            "countries_generally_autocratic": n_autocratic,
            "ngo_panel_rows": int(len(barriers)),
            "generated_at": datetime.now(timezone.utc).isoformat(),
        },
    )

    summary_lines = [
        f"{vdem_result.diagnostics['countries']} countries in the V-Dem panel; "
        f"{n_autocratic} of {len(regimes)} generally autocratic over "
        f"{common.REGIME_WINDOW[0]}-{common.REGIME_WINDOW[1]}.",
        "Autocracies holding an election: "
        + _latest(election_series, "category", "Held national election") + ".",
        "Autocracies allowing multiple parties: "
        + _latest(election_series, "category", "Multiple parties allowed") + ".",
        f"NGO law panel covers {barriers['country_code'].nunique()} countries; "
        f"{len(ngo_result.diagnostics['unmatched_countries'])} names unmatched.",
        f"NGO law records dropped: {ngo_result.diagnostics['undated_records']} without a year, "
        f"{ngo_result.diagnostics['uncoded_records']} without a value.",
    ]
    inputs = {
        "V-Dem": vdem_result.diagnostics["data_path"],
        "NGO laws": ngo_result.diagnostics["data_path"],
    }
    common.write_summary(
        out_dir, summary_lines, title="Civil society in autocracies", sources=inputs
    )
    common.write_session_info(out_dir, inputs=inputs)

    print("Chapter summary:")
    for line in summary_lines:
        print(f"  - {line}")

    return out_dir
