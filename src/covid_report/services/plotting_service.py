"""Figures for the report.

Every function writes one PNG and returns its path. Nothing here feeds back
into the data pipeline.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional
import logging

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd

from covid_report.data_models.report_summary import RegressionSummary
from covid_report.exceptions import IngestionError


logger = logging.getLogger(__name__)

DPI = 150


def _save(fig, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=DPI)
    plt.close(fig)
    logger.info("Wrote figure %s", path)
    return path


def plot_global_trend(trend: pd.DataFrame, path: Path) -> Path:
    """Cumulative global cases and deaths on a log scale."""
    fig, ax = plt.subplots(figsize=(10, 5))
    ax.plot(trend["date"], trend["cases"].astype(float), label="cases", color="tab:blue")
    ax.plot(trend["date"], trend["deaths"].astype(float), label="deaths", color="tab:red")
    ax.set_yscale("log")
    ax.set_title("COVID-19 worldwide cumulative cases and deaths")
    ax.set_xlabel("Date")
    ax.set_ylabel("Count (log scale)")
    ax.grid(True, linestyle="--", alpha=0.5)
    ax.legend()
    return _save(fig, path)


def plot_new_cases(trend: pd.DataFrame, path: Path) -> Path:
    """Daily new global cases and deaths."""
    data = trend.dropna(subset=["new_cases", "new_deaths"])

    fig, (ax_cases, ax_deaths) = plt.subplots(2, 1, figsize=(10, 7), sharex=True)
    ax_cases.plot(data["date"], data["new_cases"].astype(float), color="tab:blue")
    ax_cases.set_ylabel("New cases")
    ax_cases.set_title("COVID-19 worldwide new cases and deaths per day")
    ax_cases.grid(True, linestyle="--", alpha=0.5)

    ax_deaths.plot(data["date"], data["new_deaths"].astype(float), color="tab:red")
    ax_deaths.set_ylabel("New deaths")
    ax_deaths.set_xlabel("Date")
    ax_deaths.grid(True, linestyle="--", alpha=0.5)
    return _save(fig, path)


def plot_rate_regression(predicted: pd.DataFrame, fit: RegressionSummary, path: Path) -> Path:
    """Scatter of the two per-million rates with the fitted line.

    `predicted` is the output of `regression_service.add_predictions`.
    """
    data = predicted.dropna(subset=[fit.predictor, fit.response]).sort_values(fit.predictor)

    fig, ax = plt.subplots(figsize=(8, 6))
    ax.scatter(data[fit.predictor], data[fit.response], color="tab:blue", alpha=0.7, label="countries")
    ax.plot(data[fit.predictor], data["pred"], color="tab:red", label="linear fit")
    ax.set_xlabel("Cases per million")
    ax.set_ylabel("Deaths per million")
    ax.set_title(f"Deaths vs cases per million (R² = {fit.r_squared:.3f})")
    ax.grid(True, linestyle="--", alpha=0.4)
    ax.legend()
    return _save(fig, path)


def plot_choropleth(
    map_totals: pd.DataFrame,
    boundary_file: Optional[Path],
    path: Path,
    name_column: str = "name",
    value: str = "cases",
) -> Optional[Path]:
    """Shade countries of a boundary file by `value` from the map totals.

    Returns None without drawing when no boundary file is configured.
    Regions whose names have no boundary are logged. A missing or unreadable
    boundary file, or one without `name_column`, raises IngestionError.
    """
    if boundary_file is None:
        logger.info("No boundary file configured; skipping choropleth")
        return None

    import geopandas as gpd

    boundary_file = Path(boundary_file)
    if not boundary_file.exists():
        raise IngestionError(f"Boundary file not found: {boundary_file}")
    try:
        world = gpd.read_file(boundary_file)
    except Exception as exc:
        raise IngestionError(f"Could not read boundary file {boundary_file}: {exc}") from exc
    if name_column not in world.columns:
        raise IngestionError(f"Boundary file {boundary_file} has no column {name_column!r}")

    unmatched = sorted(set(map_totals["region"]) - set(world[name_column]))
    if unmatched:
        logger.info("%d regions have no boundary: %s", len(unmatched), ", ".join(unmatched[:10]))

    merged = world.merge(map_totals, how="left", left_on=name_column, right_on="region")

    fig, ax = plt.subplots(figsize=(12, 6))
    merged.plot(
        column=value,
        ax=ax,
        legend=True,
        cmap="OrRd",
        missing_kwds={"color": "lightgrey"},
    )
    ax.set_title(f"COVID-19 {value} by country")
    ax.set_axis_off()
    return _save(fig, path)
