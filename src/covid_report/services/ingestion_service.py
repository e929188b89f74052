"""Ingestion service.

Fetches the JHU CSSE global time series (confirmed cases and deaths) and the
UID/ISO/FIPS lookup table, validates their columns and returns them as
pandas DataFrames with snake_case identifier columns.

Each source is fetched exactly once per run. There is no retry and no cached
fallback: a network failure or a schema mismatch raises `IngestionError`.
"""
from __future__ import annotations

from dataclasses import dataclass
from io import StringIO
from pathlib import Path
import logging

import pandas as pd
import requests

from covid_report.config import ReportConfig
from covid_report.exceptions import IngestionError


logger = logging.getLogger(__name__)

# Raw JHU column name -> pipeline column name
TIME_SERIES_ID_COLUMNS = {
    "Province/State": "province_state",
    "Country/Region": "country_region",
}
COORDINATE_COLUMNS = ("Lat", "Long")

LOOKUP_COLUMNS = {
    "Province_State": "province_state",
    "Country_Region": "country_region",
    "Population": "population",
}


@dataclass(frozen=True)
class RawSources:
    cases: pd.DataFrame
    deaths: pd.DataFrame
    lookup: pd.DataFrame


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def fetch_csv(source: str | Path, timeout: float = 60.0) -> pd.DataFrame:
    """Read a CSV from an http(s) URL or a local path.

    Raises
    ------
    IngestionError
        If the URL cannot be fetched, returns a non-2xx status, the file does
        not exist, or the payload is not parseable as CSV.
    """
    source_str = str(source)

    if _is_url(source_str):
        try:
            response = requests.get(source_str, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise IngestionError(f"Could not fetch {source_str}: {exc}") from exc
        text = response.text
    else:
        path = Path(source_str)
        if not path.exists():
            raise IngestionError(f"Source file not found: {path}")
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise IngestionError(f"Source file {path} is not valid UTF-8: {exc}") from exc

    try:
        df = pd.read_csv(StringIO(text))
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise IngestionError(f"Could not parse CSV from {source_str}: {exc}") from exc

    logger.info("Fetched %d rows x %d columns from %s", len(df), len(df.columns), source_str)
    return df


def validate_time_series(df: pd.DataFrame, label: str = "time series") -> pd.DataFrame:
    """Check a wide JHU series and rename its identifier columns.

    The latitude/longitude columns are kept; the reshaper drops them. Date
    headers are not parsed here.
    """
    required = set(TIME_SERIES_ID_COLUMNS) | set(COORDINATE_COLUMNS)
    missing = required - set(df.columns)
    if missing:
        raise IngestionError(f"Missing required columns in {label}: {sorted(missing)}")

    date_columns = [c for c in df.columns if c not in required]
    if not date_columns:
        raise IngestionError(f"No date columns found in {label}")

    return df.rename(columns=TIME_SERIES_ID_COLUMNS)


def validate_population_lookup(df: pd.DataFrame) -> pd.DataFrame:
    """Reduce the UID lookup table to (province_state, country_region, population).

    County-level rows (non-empty `Admin2`) are dropped so the table is keyed
    at the admin-1 level the global series uses. All other identifier and
    geographic columns are discarded.
    """
    missing = set(LOOKUP_COLUMNS) - set(df.columns)
    if missing:
        raise IngestionError(f"Missing required columns in population lookup: {sorted(missing)}")

    if "Admin2" in df.columns:
        county_rows = df["Admin2"].notna()
        if county_rows.any():
            logger.info("Dropping %d county-level rows from population lookup", int(county_rows.sum()))
        df = df[~county_rows]

    return df[list(LOOKUP_COLUMNS)].rename(columns=LOOKUP_COLUMNS).reset_index(drop=True)


def load_time_series(source: str | Path, label: str = "time series", timeout: float = 60.0) -> pd.DataFrame:
    return validate_time_series(fetch_csv(source, timeout=timeout), label=label)


def load_population_lookup(source: str | Path, timeout: float = 60.0) -> pd.DataFrame:
    return validate_population_lookup(fetch_csv(source, timeout=timeout))


def load_sources(config: ReportConfig) -> RawSources:
    """Fetch the cases series, the deaths series and the population lookup."""

    cases = load_time_series(config.cases_url, label="cases series", timeout=config.http_timeout)
    deaths = load_time_series(config.deaths_url, label="deaths series", timeout=config.http_timeout)
    lookup = load_population_lookup(config.lookup_url, timeout=config.http_timeout)

    logger.info(
        "Loaded sources: %d case rows, %d death rows, %d lookup rows",
        len(cases),
        len(deaths),
        len(lookup),
    )
    return RawSources(cases=cases, deaths=deaths, lookup=lookup)
