"""Daily observation model.

One row of the joined cases/deaths relation for a single region and date.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class DailyObservation(BaseModel):
    """Cumulative cases and deaths for one region on one date.

    `deaths` is None when the deaths series has no row for this key, which
    is different from a reported 0. `population` is None when the region
    has no entry in the population lookup.
    """

    province_state: Optional[str] = None
    country_region: str
    date: date

    cases: int = Field(gt=0)
    deaths: Optional[int] = Field(default=None, ge=0)
    population: Optional[int] = Field(default=None, ge=0)
