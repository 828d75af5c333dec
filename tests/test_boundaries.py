import io
from urllib import error

import geopandas as gpd
import pytest
from shapely.geometry import Point, box

from geo import boundaries as boundary_module
from geo.boundaries import (
    boundary_url,
    congress_for_year,
    fetch_boundary_archive,
    filter_states,
    load_boundaries,
    normalize_boundaries,
    simplified_cache_path,
    boundary_cache_path,
    simplify_boundaries,
)


class FakeResponse(io.BytesIO):
    status = 200

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


def test_congress_for_year():
    assert congress_for_year(2019) == 116
    assert congress_for_year(2021) == 117


def test_boundary_urls():
    assert boundary_url("state", year=2019, resolution="20m", base_url="https://example.org/tiger") == (
        "https://example.org/tiger/GENZ2019/shp/cb_2019_us_state_20m.zip"
    )
    assert boundary_url("cd", year=2019, resolution="500k").endswith("cb_2019_us_cd116_500k.zip")
    with pytest.raises(ValueError, match="tract"):
        boundary_url("tract")


def test_normalize_congressional_districts():
    raw = gpd.GeoDataFrame(
        {
            "GEOID": ["3903", "0200", "39ZZ"],
            "STATEFP": ["39", "02", "39"],
            "CD116FP": ["03", "00", "ZZ"],
        },
        geometry=[box(0, 0, 1, 1), box(1, 0, 2, 1), box(2, 0, 3, 1)],
        crs="EPSG:4269",
    )
    result = normalize_boundaries(raw, "cd")
    assert result["geoid"].tolist() == ["0200", "3903"]
    assert result["label"].tolist() == ["AK-AL", "OH-03"]
    assert list(result.columns) == ["geoid", "state_fips", "name", "label", "level", "geometry"]
    assert result.crs.to_epsg() == 4326


def test_normalize_counties():
    raw = gpd.GeoDataFrame(
        {"GEOID": ["39049"], "STATEFP": ["39"], "NAME": ["Franklin"]},
        geometry=[box(0, 0, 1, 1)],
        crs="EPSG:4326",
    )
    result = normalize_boundaries(raw, "county")
    assert result["label"].tolist() == ["Franklin, OH"]
    assert result["level"].tolist() == ["county"]


def test_normalize_reports_missing_columns():
    raw = gpd.GeoDataFrame({"GEOID": ["01"]}, geometry=[box(0, 0, 1, 1)], crs="EPSG:4326")
    with pytest.raises(ValueError, match="STATEFP"):
        normalize_boundaries(raw, "state")


def test_fetch_downloads_once(tmp_path, monkeypatch):
    calls = []

    def fake_urlopen(req, timeout):
        calls.append(req.full_url)
        return FakeResponse(b"PK-archive")

    monkeypatch.setattr(boundary_module.request, "urlopen", fake_urlopen)
    path = fetch_boundary_archive("state", year=2019, cache_dir=tmp_path)
    assert path.read_bytes() == b"PK-archive"
    assert path.name.startswith("cb_2019_us_state_")

    again = fetch_boundary_archive("state", year=2019, cache_dir=tmp_path)
    assert again == path
    assert len(calls) == 1

    fetch_boundary_archive("state", year=2019, cache_dir=tmp_path, force=True)
    assert len(calls) == 2


def test_fetch_wraps_http_errors(tmp_path, monkeypatch):
    def fake_urlopen(req, timeout):
        raise error.HTTPError(req.full_url, 404, "Not Found", None, None)

    monkeypatch.setattr(boundary_module.request, "urlopen", fake_urlopen)
    with pytest.raises(RuntimeError, match="cb_2019_us_county_.*404"):
        fetch_boundary_archive("county", year=2019, cache_dir=tmp_path)
    assert not any(tmp_path.iterdir())


def test_fetch_rejects_empty_download(tmp_path, monkeypatch):
    monkeypatch.setattr(boundary_module.request, "urlopen", lambda req, timeout: FakeResponse(b""))
    with pytest.raises(RuntimeError, match="empty"):
        fetch_boundary_archive("state", year=2019, cache_dir=tmp_path)


def test_load_prefers_simplified_copy(tmp_path, monkeypatch, square_boundaries):
    def no_network(req, timeout):
        raise AssertionError("network should not be used")

    monkeypatch.setattr(boundary_module.request, "urlopen", no_network)
    archive = boundary_cache_path("state", year=2019, cache_dir=tmp_path)
    square_boundaries.to_file(simplified_cache_path(archive), driver="GeoJSON")

    loaded = load_boundaries("state", year=2019, cache_dir=tmp_path)
    assert loaded["geoid"].tolist() == ["01", "02"]
    assert loaded.crs.to_epsg() == 4326

    only_beta = load_boundaries("state", year=2019, cache_dir=tmp_path, exclude_states=["1"])
    assert only_beta["geoid"].tolist() == ["02"]

    with pytest.raises(ValueError, match="No state boundaries"):
        load_boundaries("state", year=2019, cache_dir=tmp_path, states=["72"])


def test_filter_states(square_boundaries):
    assert filter_states(square_boundaries, states=["02"])["geoid"].tolist() == ["02"]
    assert len(filter_states(square_boundaries)) == 2


def test_simplify_reduces_vertices():
    circle = gpd.GeoDataFrame({"geoid": ["01"]}, geometry=[Point(0, 0).buffer(1.0)], crs="EPSG:4326")
    simplified = simplify_boundaries(circle, 0.1)
    before = len(circle.geometry.iloc[0].exterior.coords)
    after = len(simplified.geometry.iloc[0].exterior.coords)
    assert after < before
    assert simplified.crs == circle.crs
    assert len(simplify_boundaries(circle, 0).geometry.iloc[0].exterior.coords) == before
