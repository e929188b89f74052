import json
import logging

import pandas as pd
import pytest

from covid_report.exceptions import IngestionError
from covid_report.services.plotting_service import plot_choropleth


def _square(x0, y0, size=10.0):
    return [[
        [x0, y0],
        [x0 + size, y0],
        [x0 + size, y0 + size],
        [x0, y0 + size],
        [x0, y0],
    ]]


def _write_boundaries(path, names, name_key="name"):
    features = []
    for i, name in enumerate(names):
        features.append(
            {
                "type": "Feature",
                "properties": {name_key: name},
                "geometry": {"type": "Polygon", "coordinates": _square(i * 20.0, 0.0)},
            }
        )
    path.write_text(json.dumps({"type": "FeatureCollection", "features": features}), encoding="utf-8")
    return path


def _map_totals():
    return pd.DataFrame({"region": ["USA", "Atlantis"], "cases": [100, 5], "deaths": [4, 0]})


def test_choropleth_written_and_unmatched_regions_logged(tmp_path, caplog):
    boundaries = _write_boundaries(tmp_path / "world.geojson", ["USA", "France"])
    out = tmp_path / "out" / "cases_choropleth.png"

    with caplog.at_level(logging.INFO, logger="covid_report.services.plotting_service"):
        written = plot_choropleth(_map_totals(), boundaries, out)

    assert written == out
    assert out.exists() and out.stat().st_size > 0
    assert any("Atlantis" in rec.getMessage() for rec in caplog.records)


def test_choropleth_custom_name_column(tmp_path):
    boundaries = _write_boundaries(tmp_path / "world.geojson", ["USA"], name_key="ADMIN")
    out = tmp_path / "map.png"

    assert plot_choropleth(_map_totals(), boundaries, out, name_column="ADMIN") == out
    assert out.exists()


def test_choropleth_missing_name_column_is_rejected(tmp_path):
    boundaries = _write_boundaries(tmp_path / "world.geojson", ["USA"], name_key="ADMIN")

    with pytest.raises(IngestionError, match="no column 'name'"):
        plot_choropleth(_map_totals(), boundaries, tmp_path / "map.png")


def test_choropleth_missing_boundary_file_is_rejected(tmp_path):
    with pytest.raises(IngestionError, match="not found"):
        plot_choropleth(_map_totals(), tmp_path / "missing.geojson", tmp_path / "map.png")


def test_choropleth_skipped_without_boundary_file(tmp_path):
    assert plot_choropleth(_map_totals(), None, tmp_path / "map.png") is None
    assert not (tmp_path / "map.png").exists()
