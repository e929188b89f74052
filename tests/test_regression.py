import numpy as np
import pandas as pd
import pytest

from covid_report.exceptions import InsufficientDataError
from covid_report.services.regression_service import (
    add_predictions,
    fit_rate_regression,
    rank_countries,
    to_ranked_countries,
)


def _totals(rows):
    """rows: (country_region, cases_per_million, deaths_per_million)"""
    return pd.DataFrame.from_records(rows, columns=["country_region", "cases_per_million", "deaths_per_million"])


def test_fit_recovers_exact_line():
    totals = _totals([(f"C{i}", float(x), 2.0 + 0.01 * x) for i, x in enumerate([100, 2000, 35000, 80000, 150000])])

    fit = fit_rate_regression(totals)

    assert fit.slope == pytest.approx(0.01)
    assert fit.intercept == pytest.approx(2.0)
    assert fit.r_squared == pytest.approx(1.0)
    assert fit.n_observations == 5
    assert fit.predictor == "cases_per_million"
    assert fit.response == "deaths_per_million"


def test_fit_skips_undefined_rates():
    totals = _totals(
        [
            ("A", 1.0, 3.0),
            ("B", 2.0, 5.0),
            ("C", 3.0, 7.0),
            ("Ship", np.nan, np.nan),
        ]
    )
    fit = fit_rate_regression(totals)
    assert fit.n_observations == 3
    assert fit.slope == pytest.approx(2.0)


def test_fit_needs_enough_rows():
    totals = _totals([("A", 1.0, 3.0), ("B", np.nan, 1.0), ("C", 2.0, 4.0)])
    with pytest.raises(InsufficientDataError):
        fit_rate_regression(totals)


def test_fit_rejects_constant_predictor():
    totals = _totals([("A", 1.0, 3.0), ("B", 1.0, 4.0), ("C", 1.0, 5.0)])
    with pytest.raises(InsufficientDataError):
        fit_rate_regression(totals)


def test_add_predictions_uses_fitted_line():
    totals = _totals([("A", 0.0, 1.0), ("B", 1.0, 3.0), ("C", 2.0, 5.0)])
    fit = fit_rate_regression(totals)

    predicted = add_predictions(totals, fit)

    assert predicted["pred"].tolist() == pytest.approx([1.0, 3.0, 5.0])
    assert "pred" not in totals.columns


def test_rank_countries_top_and_bottom():
    totals = _totals(
        [
            ("A", 10.0, 50.0),
            ("B", 10.0, 5.0),
            ("C", 10.0, 500.0),
            ("D", 10.0, 0.5),
            ("Ship", np.nan, np.nan),
        ]
    )

    top = rank_countries(totals, n=2, highest=True)
    bottom = rank_countries(totals, n=2, highest=False)

    assert top["country_region"].tolist() == ["C", "A"]
    assert bottom["country_region"].tolist() == ["D", "B"]

    ranked = to_ranked_countries(top)
    assert ranked[0].country_region == "C"
    assert ranked[0].value == pytest.approx(500.0)
