import numpy as np
import pandas as pd
import pytest

from civic_space import common, vdem


def test_validate_shape_accepts_exact_shape():
    frame = pd.DataFrame(np.zeros((3, 2)))
    common.validate_shape(frame, (3, 2))


def test_validate_shape_reports_rows_and_columns():
    frame = pd.DataFrame(np.zeros((2, 3)))
    with pytest.raises(ValueError) as excinfo:
        common.validate_shape(frame, (26537, 4641), label="V-Dem dataset")

    message = str(excinfo.value)
    assert "2 rows (expected 26,537)" in message
    assert "3 columns (expected 4,641)" in message


def test_load_vdem_halts_on_unexpected_shape(tmp_path, make_vdem_frame):
    path = tmp_path / "vdem.csv"
    make_vdem_frame([{"country": "AAA", "year": 2000, "v2x_regime": 0}]).to_csv(path, index=False)

    with pytest.raises(ValueError, match="expected 26,537"):
        vdem.load_vdem(path)


def test_load_vdem_returns_slim_typed_view(tmp_path, make_vdem_frame):
    frame = make_vdem_frame(
        [
            {"country": "AAA", "year": 2000, "v2x_regime": 0},
            {"country": "BBB", "year": 2001, "v2x_regime": 3},
        ]
    )
    frame["v2extra_col"] = 1.0
    path = tmp_path / "vdem.csv"
    frame.to_csv(path, index=False)

    result = vdem.load_vdem(path, expected_shape=frame.shape)

    assert list(result.data.columns) == list(vdem.VDEM_COLUMNS)
    assert str(result.data["year"].dtype) == "Int64"
    assert result.diagnostics["raw_columns"] == frame.shape[1]
    assert result.diagnostics["countries"] == 2
    assert result.diagnostics["year_min"] == 2000


def test_load_vdem_lists_missing_columns(tmp_path, make_vdem_frame):
    frame = make_vdem_frame([{"country": "AAA", "year": 2000}]).drop(columns=["v2xcs_ccsi"])
    path = tmp_path / "vdem.csv"
    frame.to_csv(path, index=False)

    with pytest.raises(KeyError, match="v2xcs_ccsi"):
        vdem.load_vdem(path, expected_shape=None)


def test_load_vdem_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        vdem.load_vdem(tmp_path / "absent.csv")


def test_threshold_flag_is_monotonic_and_keeps_missing():
    series = pd.Series([0, 1, 2, 3, 4, np.nan])

    result = vdem.threshold_flag(series, 2)

    assert result.iloc[:5].tolist() == [False, False, True, True, True]
    assert result.isna().tolist() == [False] * 5 + [True]


def test_threshold_flag_at_most():
    result = vdem.threshold_flag(pd.Series([0, 1, 2]), 1, at_most=True)
    assert result.tolist() == [True, True, False]


def test_derive_indicators(make_vdem_frame):
    frame = make_vdem_frame(
        [
            {"country": "AAA", "year": 2000, "v2x_regime": 0, "v2elmulpar_ord": 1, "election": 1},
            {"country": "AAA", "year": 2001, "v2x_regime": 1, "v2elmulpar_ord": 2, "election": 0},
            {"country": "BBB", "year": 2000, "v2x_regime": 3, "v2csreprss_ord": 4, "election": np.nan},
        ]
    )

    panel = vdem.derive_indicators(frame)

    assert panel["is_autocracy"].tolist() == [True, True, False]
    assert panel["regime_label"].astype(str).tolist() == [
        "Closed autocracy",
        "Electoral autocracy",
        "Liberal democracy",
    ]
    assert bool(panel.loc[0, "multiparty"]) is False
    assert bool(panel.loc[1, "multiparty"]) is True
    assert pd.isna(panel.loc[2, "multiparty"])
    assert bool(panel.loc[0, "election_held"]) is True
    assert bool(panel.loc[1, "election_held"]) is False
    assert pd.isna(panel.loc[2, "election_held"])
    assert bool(panel.loc[2, "cso_repressed"]) is False


def test_classify_regimes_uses_inclusive_window_and_threshold(make_vdem_frame):
    rows = [
        # Two of four window years autocratic: exactly at the threshold.
        {"country": "AAA", "year": 1989, "v2x_regime": 2},
        {"country": "AAA", "year": 1990, "v2x_regime": 1},
        {"country": "AAA", "year": 2000, "v2x_regime": 2},
        {"country": "AAA", "year": 2001, "v2x_regime": 2},
        {"country": "AAA", "year": 2013, "v2x_regime": 0},
        {"country": "AAA", "year": 2014, "v2x_regime": 3},
        # One of three window years autocratic; outside years would tip it.
        {"country": "BBB", "year": 1989, "v2x_regime": 0},
        {"country": "BBB", "year": 1990, "v2x_regime": 0},
        {"country": "BBB", "year": 1991, "v2x_regime": 2},
        {"country": "BBB", "year": 1992, "v2x_regime": 3},
        {"country": "BBB", "year": 2014, "v2x_regime": 0},
        # Missing regime codings leave the denominator.
        {"country": "CCC", "year": 2000},
        {"country": "CCC", "year": 2001, "v2x_regime": 1},
    ]
    panel = vdem.derive_indicators(make_vdem_frame(rows))

    regimes = vdem.classify_regimes(panel).set_index("country_text_id")

    assert regimes.loc["AAA", "years_observed"] == 4
    assert regimes.loc["AAA", "autocracy_share"] == pytest.approx(0.5)
    assert bool(regimes.loc["AAA", "generally_autocratic"]) is True
    assert regimes.loc["BBB", "autocracy_share"] == pytest.approx(1 / 3)
    assert bool(regimes.loc["BBB", "generally_autocratic"]) is False
    assert regimes.loc["CCC", "years_observed"] == 1
    assert bool(regimes.loc["CCC", "generally_autocratic"]) is True


def test_attach_regime_labels_keeps_rows_and_marks_unmatched(make_vdem_frame):
    panel = vdem.derive_indicators(
        make_vdem_frame(
            [
                {"country": "AAA", "year": 2000, "v2x_regime": 0},
                {"country": "AAA", "year": 2001, "v2x_regime": 0},
                {"country": "ZZZ", "year": 2000, "v2x_regime": 3},
            ]
        )
    )
    regimes = pd.DataFrame({"country_text_id": ["AAA"], "generally_autocratic": [True]})

    labelled = vdem.attach_regime_labels(panel, regimes)

    assert len(labelled) == 3
    assert labelled["regime_group"].iloc[:2].tolist() == ["Generally autocratic"] * 2
    assert pd.isna(labelled["regime_group"].iloc[2])


def test_attach_regime_labels_rejects_duplicate_country_labels(make_vdem_frame):
    panel = make_vdem_frame([{"country": "AAA", "year": 2000, "v2x_regime": 0}])
    regimes = pd.DataFrame(
        {"country_text_id": ["AAA", "AAA"], "generally_autocratic": [True, False]}
    )

    with pytest.raises(pd.errors.MergeError):
        vdem.attach_regime_labels(panel, regimes)
