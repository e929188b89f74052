from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel


class GlobalTrendPoint(BaseModel):
    """Worldwide cumulative totals on one date, with day-over-day differences.

    `new_cases` / `new_deaths` are None on the first date of the series.
    """

    date: date
    cases: int
    deaths: int
    new_cases: Optional[int] = None
    new_deaths: Optional[int] = None
