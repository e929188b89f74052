from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class RegressionSummary(BaseModel):
    """Ordinary least squares fit of one per-million rate on another."""

    predictor: str
    response: str

    slope: float
    intercept: float
    r_squared: float
    p_value: float
    stderr: float           # standard error of the slope
    n_observations: int


class RankedCountry(BaseModel):
    country_region: str
    value: float


class ReportSummary(BaseModel):
    as_of_date: date
    n_countries: int

    global_cases: int
    global_deaths: int
    peak_new_cases: Optional[int] = None
    peak_new_cases_date: Optional[date] = None

    ranking_metric: str
    highest: List[RankedCountry]
    lowest: List[RankedCountry]

    regression: Optional[RegressionSummary] = None

    summary: str
    key_points: List[str]

    session_info: Dict[str, str] = Field(default_factory=dict)
