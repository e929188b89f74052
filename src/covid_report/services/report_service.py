from __future__ import annotations

from typing import Dict, List, Optional
import platform
import sys

import matplotlib
import numpy as np
import pandas as pd
import pydantic
import scipy

from covid_report.data_models.report_summary import RankedCountry, RegressionSummary, ReportSummary
from covid_report.services.regression_service import RESPONSE, rank_countries, to_ranked_countries


def collect_session_info() -> Dict[str, str]:
    """Interpreter, platform and library versions used for the run."""
    return {
        "python": sys.version.split()[0],
        "platform": platform.platform(),
        "pandas": pd.__version__,
        "numpy": np.__version__,
        "scipy": scipy.__version__,
        "matplotlib": matplotlib.__version__,
        "pydantic": pydantic.VERSION,
    }


def _names(items: List[RankedCountry]) -> str:
    return ", ".join(f"{i.country_region} ({i.value:.1f})" for i in items) if items else "none"


def _describe_fit(fit: RegressionSummary) -> str:
    """Plain-language reading of the regression.

    - R^2 >= 0.5 => strong
    - 0.2 <= R^2 < 0.5 => moderate
    - R^2 < 0.2 => weak
    """
    if fit.r_squared >= 0.5:
        strength = "strong"
    elif fit.r_squared >= 0.2:
        strength = "moderate"
    else:
        strength = "weak"
    direction = "positive" if fit.slope > 0 else "negative"
    return (
        f"There is a {strength} {direction} linear relationship between cases and deaths per million "
        f"(R² = {fit.r_squared:.3f}): each additional 1,000 cases per million is associated with "
        f"{fit.slope * 1000:.2f} more deaths per million."
    )


def build_report_summary(
    trend: pd.DataFrame,
    totals: pd.DataFrame,
    fit: Optional[RegressionSummary],
    top_n: int = 5,
    session_info: Optional[Dict[str, str]] = None,
) -> ReportSummary:
    """Assemble the closing interpretation of the report.

    `trend` is the global trend frame, `totals` the country totals frame.
    The regression may be None when it could not be fitted.
    """
    if trend.empty:
        raise ValueError("Global trend is empty; nothing to summarise")

    last = trend.iloc[-1]
    as_of = pd.Timestamp(last["date"]).date()
    global_cases = int(last["cases"])
    global_deaths = int(last["deaths"])

    peak_new_cases = None
    peak_date = None
    new_cases = trend["new_cases"].dropna()
    if not new_cases.empty:
        idx = new_cases.astype("int64").idxmax()
        peak_new_cases = int(trend.at[idx, "new_cases"])
        peak_date = pd.Timestamp(trend.at[idx, "date"]).date()

    highest = to_ranked_countries(rank_countries(totals, by=RESPONSE, n=top_n, highest=True))
    lowest = to_ranked_countries(rank_countries(totals, by=RESPONSE, n=top_n, highest=False))

    fatality = global_deaths / global_cases if global_cases > 0 else None

    summary = (
        f"As of {as_of.isoformat()}, {global_cases:,} confirmed cases and {global_deaths:,} deaths "
        f"have been reported across {len(totals)} countries with population data."
    )
    if fit is not None:
        summary += " " + _describe_fit(fit)

    key_points = [
        f"Global confirmed cases: {global_cases:,}; global deaths: {global_deaths:,}.",
    ]
    if fatality is not None:
        key_points.append(f"Crude global case fatality ratio: {fatality * 100:.2f}%.")
    if peak_new_cases is not None:
        key_points.append(f"Largest single-day rise in cases: {peak_new_cases:,} on {peak_date.isoformat()}.")
    key_points.append(f"Highest deaths per million: {_names(highest)}.")
    key_points.append(f"Lowest deaths per million: {_names(lowest)}.")
    if fit is not None:
        key_points.append(
            f"Regression of {fit.response} on {fit.predictor} over {fit.n_observations} countries: "
            f"slope {fit.slope:.6f}, intercept {fit.intercept:.2f}, p-value {fit.p_value:.3g}."
        )
        key_points.append(
            "Reported counts depend on each country's testing and reporting practice, "
            "so per-million comparisons reflect reporting as much as spread."
        )
    else:
        key_points.append("The rate regression could not be fitted on the available data.")

    return ReportSummary(
        as_of_date=as_of,
        n_countries=int(len(totals)),
        global_cases=global_cases,
        global_deaths=global_deaths,
        peak_new_cases=peak_new_cases,
        peak_new_cases_date=peak_date,
        ranking_metric=RESPONSE,
        highest=highest,
        lowest=lowest,
        regression=fit,
        summary=summary,
        key_points=key_points,
        session_info=session_info or {},
    )
