"""Wide-to-long reshaping of the JHU time series.

The raw series has one row per region and one column per date ("1/22/20").
`reshape_time_series` turns that into one row per (region, date).
"""
from __future__ import annotations

from datetime import datetime
from typing import List
import logging

import pandas as pd

from covid_report.exceptions import JoinAmbiguityError, ParseError


logger = logging.getLogger(__name__)

ID_COLUMNS = ["province_state", "country_region"]
KEY_COLUMNS = ID_COLUMNS + ["date"]
DROPPED_COLUMNS = ["Lat", "Long"]
DATE_HEADER_FORMAT = "%m/%d/%y"


def parse_date_header(header: str) -> pd.Timestamp:
    """Parse a month/day/2-digit-year column header.

    Raises ParseError instead of skipping the column, so a malformed header
    can never silently shorten the time range.
    """
    try:
        return pd.Timestamp(datetime.strptime(str(header).strip(), DATE_HEADER_FORMAT))
    except ValueError as exc:
        raise ParseError(f"Date column header {header!r} does not match {DATE_HEADER_FORMAT}") from exc


def date_columns(wide: pd.DataFrame) -> List[str]:
    return [c for c in wide.columns if c not in ID_COLUMNS and c not in DROPPED_COLUMNS]


def reshape_time_series(wide: pd.DataFrame, value_name: str) -> pd.DataFrame:
    """Reshape a wide series into (province_state, country_region, date, <value_name>).

    Parameters
    ----------
    wide : pd.DataFrame
        Validated wide series (see `ingestion_service.validate_time_series`).
    value_name : str
        Name of the metric column in the output, e.g. "cases" or "deaths".

    Returns
    -------
    pd.DataFrame
        len(wide) * number-of-date-columns rows; `date` is datetime64 and the
        metric is nullable Int64.
    """
    missing = set(ID_COLUMNS) - set(wide.columns)
    if missing:
        raise ValueError(f"Missing identifier columns: {sorted(missing)}")

    df = wide.drop(columns=DROPPED_COLUMNS, errors="ignore")

    dupes = df.duplicated(subset=ID_COLUMNS, keep=False)
    if dupes.any():
        keys = df.loc[dupes, ID_COLUMNS].drop_duplicates().to_records(index=False).tolist()
        raise JoinAmbiguityError(f"Duplicate region rows in {value_name} series: {keys}")

    headers = date_columns(df)
    parsed = {h: parse_date_header(h) for h in headers}
    if len(set(parsed.values())) != len(parsed):
        raise ParseError(f"Date column headers in {value_name} series map to repeated dates")
    df = df.rename(columns=parsed)

    long_df = df.melt(id_vars=ID_COLUMNS, var_name="date", value_name=value_name)
    long_df["date"] = pd.to_datetime(long_df["date"])

    try:
        values = pd.to_numeric(long_df[value_name], errors="raise")
    except (ValueError, TypeError) as exc:
        raise ParseError(f"Non-numeric {value_name} value in time series: {exc}") from exc
    try:
        long_df[value_name] = values.astype("Int64")
    except (ValueError, TypeError) as exc:
        raise ParseError(f"Non-integral {value_name} value in time series: {exc}") from exc

    logger.info(
        "Reshaped %s series: %d regions x %d dates -> %d rows",
        value_name,
        len(df),
        len(headers),
        len(long_df),
    )
    return long_df.reset_index(drop=True)
