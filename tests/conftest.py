import numpy as np
import pandas as pd
import pytest

from civic_space import vdem


def _vdem_row(country, year, election=0, **values):
    row = {
        "country_name": f"Country {country}",
        "country_text_id": country,
        "year": year,
        "v2x_regime": np.nan,
        "v2elmulpar_ord": np.nan,
        "v2csreprss": np.nan,
        "v2csreprss_ord": np.nan,
        "v2cseeorgs": np.nan,
        "v2xcs_ccsi": np.nan,
    }
    for column in vdem.ELECTION_TYPE_COLUMNS:
        row[column] = np.nan if pd.isna(election) else 0
    if not pd.isna(election):
        row["v2eltype_0"] = election
    row.update(values)
    return row


@pytest.fixture
def make_vdem_frame():
    """Build a V-Dem style frame from ``{"country": ..., "year": ..., ...}`` rows."""

    def _make(rows):
        return pd.DataFrame([_vdem_row(**row) for row in rows])

    return _make
