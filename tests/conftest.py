"""Pytest configuration helpers.

Ensure the project's `src/` directory is on `sys.path` so imports like
`from covid_report...` work during test collection, and provide small
synthetic frames shaped like the JHU inputs.
"""
from pathlib import Path
import sys

import pandas as pd
import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    # Insert at front so tests prefer local package sources
    sys.path.insert(0, str(SRC))


def make_wide(rows, dates):
    """Build a validated wide series.

    rows: list of (province_state, country_region, [value per date])
    dates: list of JHU-style headers, e.g. ["1/22/20", "1/23/20"]
    """
    records = []
    for province, country, values in rows:
        rec = {"province_state": province, "country_region": country, "Lat": 0.0, "Long": 0.0}
        rec.update(dict(zip(dates, values)))
        records.append(rec)
    return pd.DataFrame.from_records(records, columns=["province_state", "country_region", "Lat", "Long"] + list(dates))


def make_lookup(rows):
    """rows: list of (province_state, country_region, population)."""
    return pd.DataFrame.from_records(rows, columns=["province_state", "country_region", "population"])


@pytest.fixture
def example_inputs():
    """Country X over two days with a one million population."""
    dates = ["1/1/20", "1/2/20"]
    cases = make_wide([(None, "X", [10, 15])], dates)
    deaths = make_wide([(None, "X", [1, 2])], dates)
    lookup = make_lookup([(None, "X", 1_000_000)])
    return cases, deaths, lookup
