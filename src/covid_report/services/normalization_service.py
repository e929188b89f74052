"""Join and normalisation of the reshaped series.

Stages, in the order `build_daily_observations` applies them:

1. full outer join of cases and deaths on (province_state, country_region, date)
2. left join of the population lookup on (province_state, country_region)
3. region overrides (Greenland is reported under Denmark upstream)
4. drop rows without a positive case count

Each stage is a pure function returning a new DataFrame.
"""
from __future__ import annotations

from typing import Any, List, Literal
import logging

import pandas as pd

from covid_report.data_models.observation import DailyObservation
from covid_report.exceptions import JoinAmbiguityError, ParseError
from covid_report.services.reshape_service import ID_COLUMNS, KEY_COLUMNS


logger = logging.getLogger(__name__)

# province_state -> country_region it must be reported under
REGION_OVERRIDES = {
    "Greenland": "Greenland",
}

OBSERVATION_COLUMNS = KEY_COLUMNS + ["cases", "deaths", "population"]


def _normalize_keys(df: pd.DataFrame) -> pd.DataFrame:
    """Give the identifier columns one dtype on both sides of a join.

    Missing admin-1 regions become None so they compare equal across frames
    regardless of whether pandas read the column as float (all NaN) or object.
    """
    out = df.copy()
    for col in ID_COLUMNS:
        series = out[col].astype(object)
        out[col] = series.where(series.notna(), None)
    return out


def _check_unique(df: pd.DataFrame, keys: List[str], label: str) -> None:
    dupes = df.duplicated(subset=keys, keep=False)
    if dupes.any():
        sample = df.loc[dupes, keys].drop_duplicates().head(5).to_records(index=False).tolist()
        raise JoinAmbiguityError(f"Duplicate join keys in {label}: {sample}")


def join_cases_deaths(cases: pd.DataFrame, deaths: pd.DataFrame) -> pd.DataFrame:
    """Full outer join of the long cases and deaths relations.

    A key present on one side only keeps <NA> for the other metric: <NA>
    means "not reported", 0 means "reported zero".
    """
    cases = _normalize_keys(cases)
    deaths = _normalize_keys(deaths)
    _check_unique(cases, KEY_COLUMNS, "cases series")
    _check_unique(deaths, KEY_COLUMNS, "deaths series")

    joined = cases[KEY_COLUMNS + ["cases"]].merge(
        deaths[KEY_COLUMNS + ["deaths"]],
        on=KEY_COLUMNS,
        how="outer",
        validate="one_to_one",
    )
    joined["cases"] = joined["cases"].astype("Int64")
    joined["deaths"] = joined["deaths"].astype("Int64")

    logger.info(
        "Joined cases and deaths: %d rows (%d without cases, %d without deaths)",
        len(joined),
        int(joined["cases"].isna().sum()),
        int(joined["deaths"].isna().sum()),
    )
    return joined


def parse_population(values: pd.Series) -> pd.Series:
    """Convert population values to nullable Int64.

    Missing values stay <NA>; anything present but non-numeric or
    non-integral raises ParseError rather than being coerced to null.
    """
    numeric = pd.to_numeric(values, errors="coerce")
    bad = values.notna() & numeric.isna()
    if bad.any():
        raise ParseError(f"Non-numeric population values: {values[bad].unique().tolist()[:5]}")

    try:
        return numeric.astype("Int64")
    except (TypeError, ValueError) as exc:
        raise ParseError(f"Non-integral population values: {exc}") from exc


def attach_population(
    observations: pd.DataFrame,
    lookup: pd.DataFrame,
    on_duplicate: Literal["first", "error"] = "first",
) -> pd.DataFrame:
    """Left join population onto the observations by (province_state, country_region).

    Parameters
    ----------
    observations : pd.DataFrame
        Output of `join_cases_deaths`.
    lookup : pd.DataFrame
        Columns province_state, country_region, population.
    on_duplicate : {"first", "error"}
        Policy when the lookup holds more than one row for a key. "first"
        keeps the first row and logs a warning; "error" raises
        JoinAmbiguityError.
    """
    lookup = _normalize_keys(lookup)[ID_COLUMNS + ["population"]].copy()
    lookup["population"] = parse_population(lookup["population"])

    dupes = lookup.duplicated(subset=ID_COLUMNS, keep="first")
    if dupes.any():
        if on_duplicate == "error":
            _check_unique(lookup, ID_COLUMNS, "population lookup")
        logger.warning(
            "Population lookup has %d duplicate region keys; keeping the first row of each",
            int(dupes.sum()),
        )
        lookup = lookup[~dupes]

    out = _normalize_keys(observations).merge(lookup, on=ID_COLUMNS, how="left", validate="many_to_one")

    unmatched = out["population"].isna()
    if unmatched.any():
        regions = out.loc[unmatched, "country_region"].nunique()
        logger.info("No population found for %d rows across %d countries", int(unmatched.sum()), regions)

    return out


def apply_region_overrides(observations: pd.DataFrame) -> pd.DataFrame:
    """Rewrite country_region for admin-1 regions that must stand on their own."""
    out = observations.copy()
    for province, country in REGION_OVERRIDES.items():
        mask = out["province_state"] == province
        out.loc[mask, "country_region"] = country
    return out


def filter_reported_cases(observations: pd.DataFrame) -> pd.DataFrame:
    """Keep rows with cases > 0. Rows with <NA> cases are dropped."""
    keep = (observations["cases"] > 0).fillna(False).astype(bool)
    dropped = int((~keep).sum())
    if dropped:
        logger.info("Dropped %d rows with zero or missing cases", dropped)
    return observations[keep].reset_index(drop=True)


def build_daily_observations(
    cases: pd.DataFrame,
    deaths: pd.DataFrame,
    lookup: pd.DataFrame,
    on_duplicate: Literal["first", "error"] = "first",
) -> pd.DataFrame:
    """Produce the DailyObservation relation from the reshaped series and the lookup."""

    joined = join_cases_deaths(cases, deaths)
    with_population = attach_population(joined, lookup, on_duplicate=on_duplicate)
    overridden = apply_region_overrides(with_population)
    observations = filter_reported_cases(overridden)

    observations = observations[OBSERVATION_COLUMNS].sort_values(
        ["country_region", "province_state", "date"], na_position="first"
    ).reset_index(drop=True)

    logger.info(
        "Built %d daily observations for %d countries",
        len(observations),
        observations["country_region"].nunique(),
    )
    return observations


def _none_if_na(value: Any) -> Any:
    return None if pd.isna(value) else value


def to_daily_observations(observations: pd.DataFrame) -> List[DailyObservation]:
    """Convert the observation frame to typed `DailyObservation` records."""
    records: List[DailyObservation] = []
    for row in observations.itertuples(index=False):
        deaths = _none_if_na(row.deaths)
        population = _none_if_na(row.population)
        records.append(
            DailyObservation(
                province_state=_none_if_na(row.province_state),
                country_region=row.country_region,
                date=pd.Timestamp(row.date).date(),
                cases=int(row.cases),
                deaths=int(deaths) if deaths is not None else None,
                population=int(population) if population is not None else None,
            )
        )
    return records
