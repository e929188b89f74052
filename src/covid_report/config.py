"""Run configuration for the report.

Defaults point at the JHU CSSE COVID-19 repository. Every field can be
overridden through a `COVID_REPORT_<FIELD>` environment variable, and the
CLI flags override both.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


JHU_BASE_URL = (
    "https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/"
    "csse_covid_19_data/"
)
CASES_URL = JHU_BASE_URL + "csse_covid_19_time_series/time_series_covid19_confirmed_global.csv"
DEATHS_URL = JHU_BASE_URL + "csse_covid_19_time_series/time_series_covid19_deaths_global.csv"
LOOKUP_URL = JHU_BASE_URL + "UID_ISO_FIPS_LookUp_Table.csv"

ENV_PREFIX = "COVID_REPORT_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ReportConfig(BaseModel):
    cases_url: str = CASES_URL
    deaths_url: str = DEATHS_URL
    lookup_url: str = LOOKUP_URL

    output_dir: Path = Path("out")
    http_timeout: float = Field(default=60.0, gt=0)

    top_n: int = Field(default=5, ge=1)

    # Optional world boundary file (shapefile / GeoJSON) for the choropleth
    boundary_file: Optional[Path] = None
    boundary_name_column: str = "name"

    on_duplicate_lookup: Literal["first", "error"] = "first"
    strict_rates: bool = False

    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {value!r}")
        return level

    @classmethod
    def from_env(cls, **overrides) -> "ReportConfig":
        """Build a config from `COVID_REPORT_*` variables, then apply non-None overrides."""
        values = {}
        for name in cls.model_fields:
            raw = os.environ.get(ENV_PREFIX + name.upper())
            if raw is not None and raw != "":
                values[name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
