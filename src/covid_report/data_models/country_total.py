"""Country-level aggregate models."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class CountryTotal(BaseModel):
    """Peak cumulative cases and deaths for a country, with per-million rates.

    The rates are None when the population is 0 (the rate is undefined).
    """

    country_region: str
    cases: int
    deaths: int
    population: int

    cases_per_million: Optional[float] = None
    deaths_per_million: Optional[float] = None


class CountryMapTotal(BaseModel):
    """Country totals keyed by the name used in the map boundary dataset."""

    region: str
    cases: int
    deaths: int
