import pandas as pd
import pytest
import requests

from covid_report.config import ReportConfig
from covid_report.exceptions import IngestionError
from covid_report.services import ingestion_service
from covid_report.services.ingestion_service import (
    fetch_csv,
    load_population_lookup,
    load_sources,
    load_time_series,
)


CASES_CSV = (
    "Province/State,Country/Region,Lat,Long,1/22/20,1/23/20\n"
    ",Afghanistan,33.9,67.7,0,0\n"
    "Greenland,Denmark,71.7,-42.6,0,1\n"
)

DEATHS_CSV = (
    "Province/State,Country/Region,Lat,Long,1/22/20,1/23/20\n"
    ",Afghanistan,33.9,67.7,0,0\n"
    "Greenland,Denmark,71.7,-42.6,0,0\n"
)

LOOKUP_CSV = (
    "UID,iso2,iso3,code3,FIPS,Admin2,Province_State,Country_Region,Lat,Long_,Combined_Key,Population\n"
    "4,AF,AFG,4,,,,Afghanistan,33.9,67.7,Afghanistan,38928341\n"
    "304,GL,GRL,304,,,Greenland,Denmark,71.7,-42.6,\"Greenland, Denmark\",56772\n"
    "84001001,US,USA,840,1001,Autauga,Alabama,US,32.5,-86.6,\"Autauga, Alabama, US\",55869\n"
    "84000001,US,USA,840,,,Alabama,US,32.3,-86.9,\"Alabama, US\",4903185\n"
)


class _FakeResponse:
    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


def test_load_time_series_renames_identifier_columns(tmp_path):
    path = tmp_path / "cases.csv"
    path.write_text(CASES_CSV, encoding="utf-8")

    df = load_time_series(path)

    assert {"province_state", "country_region", "Lat", "Long", "1/22/20", "1/23/20"} == set(df.columns)
    assert len(df) == 2


def test_missing_identifier_column_is_a_schema_error(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("Country/Region,Lat,Long,1/22/20\nItaly,0,0,1\n", encoding="utf-8")

    with pytest.raises(IngestionError, match="Province/State"):
        load_time_series(path)


def test_series_without_dates_is_rejected(tmp_path):
    path = tmp_path / "nodates.csv"
    path.write_text("Province/State,Country/Region,Lat,Long\n,Italy,0,0\n", encoding="utf-8")

    with pytest.raises(IngestionError, match="No date columns"):
        load_time_series(path)


def test_population_lookup_keeps_admin1_rows_only(tmp_path):
    path = tmp_path / "lookup.csv"
    path.write_text(LOOKUP_CSV, encoding="utf-8")

    lookup = load_population_lookup(path)

    assert list(lookup.columns) == ["province_state", "country_region", "population"]
    assert len(lookup) == 3
    alabama = lookup[lookup["province_state"] == "Alabama"]
    assert alabama["population"].tolist() == [4903185]


def test_missing_local_file_raises(tmp_path):
    with pytest.raises(IngestionError, match="not found"):
        fetch_csv(tmp_path / "missing.csv")


def test_fetch_csv_over_http(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return _FakeResponse(CASES_CSV)

    monkeypatch.setattr(ingestion_service.requests, "get", fake_get)

    df = fetch_csv("https://example.org/cases.csv", timeout=5)

    assert calls == [("https://example.org/cases.csv", 5)]
    assert len(df) == 2


def test_http_error_is_fatal(monkeypatch):
    monkeypatch.setattr(ingestion_service.requests, "get", lambda url, timeout: _FakeResponse("", status_code=404))

    with pytest.raises(IngestionError, match="Could not fetch"):
        fetch_csv("https://example.org/missing.csv")


def test_connection_error_is_fatal(monkeypatch):
    def fake_get(url, timeout):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(ingestion_service.requests, "get", fake_get)

    with pytest.raises(IngestionError):
        fetch_csv("https://example.org/cases.csv")


def test_load_sources_fetches_each_source_once(monkeypatch):
    payloads = {
        "https://example.org/cases.csv": CASES_CSV,
        "https://example.org/deaths.csv": DEATHS_CSV,
        "https://example.org/lookup.csv": LOOKUP_CSV,
    }
    fetched = []

    def fake_get(url, timeout):
        fetched.append(url)
        return _FakeResponse(payloads[url])

    monkeypatch.setattr(ingestion_service.requests, "get", fake_get)
    config = ReportConfig(
        cases_url="https://example.org/cases.csv",
        deaths_url="https://example.org/deaths.csv",
        lookup_url="https://example.org/lookup.csv",
    )

    sources = load_sources(config)

    assert sorted(fetched) == sorted(payloads)
    assert isinstance(sources.cases, pd.DataFrame)
    assert len(sources.lookup) == 3


def test_non_utf8_local_file_is_an_ingestion_error(tmp_path):
    path = tmp_path / "latin1.csv"
    path.write_bytes(b"a,b\n\xff\xfe,1\n")

    with pytest.raises(IngestionError, match="UTF-8"):
        fetch_csv(path)
