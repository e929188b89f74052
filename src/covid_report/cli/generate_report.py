"""Generate the COVID-19 report: fetch, reshape, join, aggregate, plot, fit, summarise.

Outputs land in --output-dir:

  report_summary.json    ReportSummary (totals, rankings, regression, interpretation)
  global_trend.csv       global cumulative and new cases/deaths per date
  country_totals.csv     per-country totals with per-million rates
  country_map_totals.csv per-country totals keyed by map region name
  *.png                  figures
"""
# Example:
#
#   covid-report --output-dir out --boundary-file data/world.geojson --top-n 5
#
# Offline run against local copies of the JHU files:
#
#   covid-report --cases-url data/confirmed.csv --deaths-url data/deaths.csv \
#       --lookup-url data/UID_ISO_FIPS_LookUp_Table.csv
from __future__ import annotations

from pathlib import Path
from typing import List, Optional
import argparse
import logging
import sys

from covid_report.config import LOG_LEVELS, ReportConfig
from covid_report.exceptions import CovidReportError, InsufficientDataError
from covid_report.services.aggregation_service import (
    compute_country_map_totals,
    compute_country_totals,
    compute_global_trend,
)
from covid_report.services.ingestion_service import load_sources
from covid_report.services.normalization_service import build_daily_observations
from covid_report.services.plotting_service import (
    plot_choropleth,
    plot_global_trend,
    plot_new_cases,
    plot_rate_regression,
)
from covid_report.services.regression_service import add_predictions, fit_rate_regression
from covid_report.services.report_service import build_report_summary, collect_session_info
from covid_report.services.reshape_service import reshape_time_series

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate the COVID-19 cases and deaths report.")
    parser.add_argument("--cases-url", dest="cases_url", default=None,
                        help="URL or path of the wide confirmed-cases series.")
    parser.add_argument("--deaths-url", dest="deaths_url", default=None,
                        help="URL or path of the wide deaths series.")
    parser.add_argument("--lookup-url", dest="lookup_url", default=None,
                        help="URL or path of the UID/ISO/FIPS population lookup table.")
    parser.add_argument("--output-dir", dest="output_dir", default=None,
                        help="Directory for the JSON summary, CSV tables and figures (default: out).")
    parser.add_argument("--boundary-file", dest="boundary_file", default=None,
                        help="World boundary file (GeoJSON/shapefile) for the choropleth. Skipped if omitted.")
    parser.add_argument("--boundary-name-column", dest="boundary_name_column", default=None,
                        help="Column of the boundary file holding country names (default: name).")
    parser.add_argument("--top-n", dest="top_n", type=int, default=None,
                        help="Number of countries in the highest/lowest deaths-per-million rankings (default 5).")
    parser.add_argument("--on-duplicate-lookup", dest="on_duplicate_lookup", choices=("first", "error"),
                        default=None,
                        help="What to do when the population lookup repeats a region key.")
    parser.add_argument("--strict-rates", dest="strict_rates", action="store_true", default=None,
                        help="Fail instead of leaving per-million rates undefined when population is 0.")
    parser.add_argument("--log-level", dest="log_level", default=None, type=str.upper,
                        choices=LOG_LEVELS,
                        help="Logging level (default INFO).")
    return parser


def run_report(config: ReportConfig) -> Path:
    """Run the whole report and return the path of the written summary JSON."""
    out = Path(config.output_dir)
    out.mkdir(parents=True, exist_ok=True)

    sources = load_sources(config)

    cases = reshape_time_series(sources.cases, "cases")
    deaths = reshape_time_series(sources.deaths, "deaths")
    observations = build_daily_observations(
        cases, deaths, sources.lookup, on_duplicate=config.on_duplicate_lookup
    )

    trend = compute_global_trend(observations)
    totals = compute_country_totals(observations, strict=config.strict_rates)
    map_totals = compute_country_map_totals(observations)

    trend.to_csv(out / "global_trend.csv", index=False)
    totals.to_csv(out / "country_totals.csv", index=False)
    map_totals.to_csv(out / "country_map_totals.csv", index=False)

    plot_global_trend(trend, out / "global_trend.png")
    plot_new_cases(trend, out / "global_new_cases.png")
    plot_choropleth(
        map_totals,
        config.boundary_file,
        out / "cases_choropleth.png",
        name_column=config.boundary_name_column,
    )

    fit = None
    try:
        fit = fit_rate_regression(totals)
    except InsufficientDataError as exc:
        logger.warning("Skipping rate regression: %s", exc)
    if fit is not None:
        plot_rate_regression(add_predictions(totals, fit), fit, out / "rate_regression.png")

    summary = build_report_summary(
        trend,
        totals,
        fit,
        top_n=config.top_n,
        session_info=collect_session_info(),
    )

    summary_path = out / "report_summary.json"
    summary_path.write_text(summary.model_dump_json(indent=2), encoding="utf-8")
    logger.info("Wrote report summary to %s", summary_path)
    return summary_path


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = ReportConfig.from_env(**vars(args))

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        summary_path = run_report(config)
    except CovidReportError as exc:
        logger.error("Report failed: %s", exc)
        return 1

    print(summary_path.read_text(encoding="utf-8"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
