"""Aggregations over the DailyObservation relation.

Three independent views are derived:

- the global daily trend with day-over-day new cases/deaths,
- per-country peak totals with per-million rates,
- the same per-country totals keyed by map boundary names.

Country totals take the maximum of the daily country-level sums. For a
cumulative, non-decreasing series that is the latest count; if upstream ever
revises figures downwards it is the historical peak instead.
"""
from __future__ import annotations

from typing import List
import logging

import numpy as np
import pandas as pd

from covid_report.data_models.country_total import CountryMapTotal, CountryTotal
from covid_report.data_models.global_trend import GlobalTrendPoint
from covid_report.exceptions import DivisionHazardError


logger = logging.getLogger(__name__)

PER_MILLION = 1_000_000

# JHU country name -> name used by the world boundary dataset.
# No value may also appear as a key, so applying it twice changes nothing.
MAP_NAME_OVERRIDES = {
    "US": "USA",
    "Congo (Kinshasa)": "Democratic Republic of the Congo",
    "Congo (Brazzaville)": "Republic of Congo",
    "Korea, North": "North Korea",
    "Korea, South": "South Korea",
    "Burma": "Myanmar",
    "Cote d'Ivoire": "Ivory Coast",
    "United Kingdom": "UK",
}


def compute_global_trend(observations: pd.DataFrame) -> pd.DataFrame:
    """Sum cases and deaths over all regions per date and take first differences.

    Missing deaths count as 0 in the sums. The first date has <NA> for
    new_cases and new_deaths.
    """
    trend = (
        observations.groupby("date", as_index=False)[["cases", "deaths"]]
        .sum()
        .sort_values("date")
        .reset_index(drop=True)
    )
    trend["cases"] = trend["cases"].astype("Int64")
    trend["deaths"] = trend["deaths"].astype("Int64")
    trend["new_cases"] = trend["cases"].diff()
    trend["new_deaths"] = trend["deaths"].diff()

    logger.info("Computed global trend over %d dates", len(trend))
    return trend


def _country_peaks(observations: pd.DataFrame) -> pd.DataFrame:
    """Collapse admin-1 rows to country/day sums, then take each country's maximum.

    Rows without a population are excluded.
    """
    with_population = observations[observations["population"].notna()]
    excluded = len(observations) - len(with_population)
    if excluded:
        logger.info("Excluding %d rows without population from country totals", excluded)

    daily = with_population.groupby(["country_region", "date"], as_index=False)[
        ["cases", "deaths", "population"]
    ].sum()

    peaks = daily.groupby("country_region", as_index=False)[["cases", "deaths", "population"]].max()
    for col in ("cases", "deaths", "population"):
        peaks[col] = peaks[col].astype("int64")
    return peaks.sort_values("country_region").reset_index(drop=True)


def per_million(counts: pd.Series, population: pd.Series) -> np.ndarray:
    """counts * 1e6 / population, NaN where population is 0."""
    pop = population.to_numpy(dtype="float64")
    num = counts.to_numpy(dtype="float64") * PER_MILLION
    out = np.full(len(pop), np.nan)
    np.divide(num, pop, out=out, where=pop != 0)
    return out


def compute_country_totals(observations: pd.DataFrame, strict: bool = False) -> pd.DataFrame:
    """Per-country peak cases, deaths and population with per-million rates.

    Parameters
    ----------
    observations : pd.DataFrame
        The DailyObservation relation.
    strict : bool
        If True, a country with population 0 raises DivisionHazardError.
        Otherwise its rates are NaN and a warning is logged.
    """
    totals = _country_peaks(observations)

    zero_population = totals["population"] == 0
    if zero_population.any():
        countries = totals.loc[zero_population, "country_region"].tolist()
        if strict:
            raise DivisionHazardError(f"Population is 0 for: {countries}")
        logger.warning("Population is 0 for %s; per-million rates left undefined", countries)

    totals["cases_per_million"] = per_million(totals["cases"], totals["population"])
    totals["deaths_per_million"] = per_million(totals["deaths"], totals["population"])

    logger.info("Computed totals for %d countries", len(totals))
    return totals


def remap_country_name(name: str) -> str:
    return MAP_NAME_OVERRIDES.get(name, name)


def remap_country_names(names: pd.Series) -> pd.Series:
    """Translate country names to the boundary dataset's convention; unknown names pass through."""
    return names.map(remap_country_name)


def compute_country_map_totals(observations: pd.DataFrame) -> pd.DataFrame:
    """Country peak totals keyed by map-compatible `region` names."""
    peaks = _country_peaks(observations)
    map_totals = pd.DataFrame(
        {
            "region": remap_country_names(peaks["country_region"]),
            "cases": peaks["cases"],
            "deaths": peaks["deaths"],
        }
    )
    return map_totals


def _optional_int(value) -> int | None:
    return None if pd.isna(value) else int(value)


def _optional_float(value) -> float | None:
    return None if pd.isna(value) else float(value)


def to_global_trend_points(trend: pd.DataFrame) -> List[GlobalTrendPoint]:
    return [
        GlobalTrendPoint(
            date=pd.Timestamp(row.date).date(),
            cases=int(row.cases),
            deaths=int(row.deaths),
            new_cases=_optional_int(row.new_cases),
            new_deaths=_optional_int(row.new_deaths),
        )
        for row in trend.itertuples(index=False)
    ]


def to_country_totals(totals: pd.DataFrame) -> List[CountryTotal]:
    return [
        CountryTotal(
            country_region=row.country_region,
            cases=int(row.cases),
            deaths=int(row.deaths),
            population=int(row.population),
            cases_per_million=_optional_float(row.cases_per_million),
            deaths_per_million=_optional_float(row.deaths_per_million),
        )
        for row in totals.itertuples(index=False)
    ]


def to_country_map_totals(map_totals: pd.DataFrame) -> List[CountryMapTotal]:
    return [
        CountryMapTotal(region=row.region, cases=int(row.cases), deaths=int(row.deaths))
        for row in map_totals.itertuples(index=False)
    ]
