"""Rankings and the per-million rate regression over country totals."""
from __future__ import annotations

from typing import List
import logging

import numpy as np
import pandas as pd
from scipy import stats

from covid_report.data_models.report_summary import RankedCountry, RegressionSummary
from covid_report.exceptions import InsufficientDataError


logger = logging.getLogger(__name__)

PREDICTOR = "cases_per_million"
RESPONSE = "deaths_per_million"
MIN_REGRESSION_ROWS = 3


def rank_countries(
    totals: pd.DataFrame,
    by: str = RESPONSE,
    n: int = 5,
    highest: bool = True,
) -> pd.DataFrame:
    """Top (highest=True) or bottom N countries by `by`, skipping undefined values."""
    defined = totals[totals[by].notna()]
    if highest:
        ranked = defined.nlargest(n, by)
    else:
        ranked = defined.nsmallest(n, by)
    return ranked.reset_index(drop=True)


def to_ranked_countries(ranked: pd.DataFrame, by: str = RESPONSE) -> List[RankedCountry]:
    return [
        RankedCountry(country_region=row["country_region"], value=float(row[by]))
        for _, row in ranked.iterrows()
    ]


def _regression_frame(totals: pd.DataFrame, predictor: str, response: str) -> pd.DataFrame:
    return totals[[predictor, response]].dropna()


def fit_rate_regression(
    totals: pd.DataFrame,
    predictor: str = PREDICTOR,
    response: str = RESPONSE,
) -> RegressionSummary:
    """Fit response ~ predictor by ordinary least squares.

    Rows where either rate is undefined are left out. Raises
    InsufficientDataError when fewer than three rows remain or the predictor
    is constant.
    """
    data = _regression_frame(totals, predictor, response)
    if len(data) < MIN_REGRESSION_ROWS:
        raise InsufficientDataError(
            f"Need at least {MIN_REGRESSION_ROWS} countries with defined rates, got {len(data)}"
        )

    x = data[predictor].to_numpy(dtype=float)
    y = data[response].to_numpy(dtype=float)
    if np.all(x == x[0]):
        raise InsufficientDataError(f"{predictor} is constant across all countries")

    fit = stats.linregress(x, y)

    summary = RegressionSummary(
        predictor=predictor,
        response=response,
        slope=float(fit.slope),
        intercept=float(fit.intercept),
        r_squared=float(fit.rvalue ** 2),
        p_value=float(fit.pvalue),
        stderr=float(fit.stderr),
        n_observations=int(len(data)),
    )
    logger.info(
        "Fitted %s ~ %s over %d countries: slope=%.6f intercept=%.4f R^2=%.4f",
        response,
        predictor,
        summary.n_observations,
        summary.slope,
        summary.intercept,
        summary.r_squared,
    )
    return summary


def add_predictions(totals: pd.DataFrame, fit: RegressionSummary) -> pd.DataFrame:
    """Return a copy of `totals` with a `pred` column holding fitted values."""
    out = totals.copy()
    out["pred"] = fit.intercept + fit.slope * out[fit.predictor]
    return out
