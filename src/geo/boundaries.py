"""Administrative boundary polygons from the US Census cartographic boundary files."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterable, Optional
from urllib import error, request

import geopandas as gpd
import numpy as np
import shapely

from config import (
    BOUNDARY_BASE_URL,
    BOUNDARY_CACHE_DIR,
    BOUNDARY_RESOLUTION,
    BOUNDARY_TIMEOUT,
    BOUNDARY_YEAR,
)

WGS84_CRS = "EPSG:4326"
BOUNDARY_LEVELS = ("state", "county", "cd")
# US territories; most national maps leave them out
TERRITORY_FIPS = ("60", "66", "69", "72", "78")

STATE_ABBREVIATIONS: Dict[str, str] = {
    "01": "AL", "02": "AK", "04": "AZ", "05": "AR", "06": "CA", "08": "CO",
    "09": "CT", "10": "DE", "11": "DC", "12": "FL", "13": "GA", "15": "HI",
    "16": "ID", "17": "IL", "18": "IN", "19": "IA", "20": "KS", "21": "KY",
    "22": "LA", "23": "ME", "24": "MD", "25": "MA", "26": "MI", "27": "MN",
    "28": "MS", "29": "MO", "30": "MT", "31": "NE", "32": "NV", "33": "NH",
    "34": "NJ", "35": "NM", "36": "NY", "37": "NC", "38": "ND", "39": "OH",
    "40": "OK", "41": "OR", "42": "PA", "44": "RI", "45": "SC", "46": "SD",
    "47": "TN", "48": "TX", "49": "UT", "50": "VT", "51": "VA", "53": "WA",
    "54": "WV", "55": "WI", "56": "WY", "60": "AS", "66": "GU", "69": "MP",
    "72": "PR", "78": "VI",
}

_CD_COLUMN_PATTERN = re.compile(r"^CD\d+FP$")
# At-large seats (00) and non-voting delegates (98) get an "AL" label
_AT_LARGE_CODES = {"00", "98"}
_UNDEFINED_DISTRICT = "ZZ"


def congress_for_year(year: int) -> int:
    """Number of the Congress in session during ``year``."""
    return (int(year) - 1789) // 2 + 1


def _layer_name(level: str, year: int, congress: Optional[int]) -> str:
    if level not in BOUNDARY_LEVELS:
        raise ValueError(f"Unknown boundary level {level!r}; expected one of {BOUNDARY_LEVELS}")
    if level == "cd":
        return f"cd{congress or congress_for_year(year)}"
    return level


def boundary_url(
    level: str,
    *,
    year: int = BOUNDARY_YEAR,
    resolution: str = BOUNDARY_RESOLUTION,
    congress: Optional[int] = None,
    base_url: str = BOUNDARY_BASE_URL,
) -> str:
    """URL of the cartographic boundary archive for a level."""
    layer = _layer_name(level, year, congress)
    return f"{base_url.rstrip('/')}/GENZ{year}/shp/cb_{year}_us_{layer}_{resolution}.zip"


def boundary_cache_path(
    level: str,
    *,
    year: int = BOUNDARY_YEAR,
    resolution: str = BOUNDARY_RESOLUTION,
    congress: Optional[int] = None,
    cache_dir: Optional[Path] = None,
) -> Path:
    """Local path of the cached archive for a level."""
    url = boundary_url(level, year=year, resolution=resolution, congress=congress)
    return Path(cache_dir or BOUNDARY_CACHE_DIR) / url.rsplit("/", 1)[-1]


def simplified_cache_path(archive_path: Path) -> Path:
    """Where the simplified GeoJSON for an archive is written."""
    return archive_path.with_suffix(".simplified.geojson")


def fetch_boundary_archive(
    level: str,
    *,
    year: int = BOUNDARY_YEAR,
    resolution: str = BOUNDARY_RESOLUTION,
    congress: Optional[int] = None,
    cache_dir: Optional[Path] = None,
    force: bool = False,
    timeout: float = BOUNDARY_TIMEOUT,
) -> Path:
    """Download a boundary archive into the cache unless it is already there."""
    url = boundary_url(level, year=year, resolution=resolution, congress=congress)
    destination = boundary_cache_path(
        level, year=year, resolution=resolution, congress=congress, cache_dir=cache_dir
    )
    if destination.exists() and not force:
        return destination

    req = request.Request(url, headers={"User-Agent": "fatal-crash-slides"})
    try:
        with request.urlopen(req, timeout=timeout) as resp:
            if resp.status < 200 or resp.status >= 300:
                raise RuntimeError(f"Boundary provider returned status {resp.status} for {url}")
            content = resp.read()
    except error.HTTPError as exc:
        raise RuntimeError(
            f"Boundary download failed for {url}: HTTP {exc.code} {exc.reason}"
        ) from exc
    except error.URLError as exc:
        raise RuntimeError(f"Boundary download failed for {url}: {exc.reason}") from exc

    if not content:
        raise RuntimeError(f"Boundary provider returned an empty file for {url}")

    destination.parent.mkdir(parents=True, exist_ok=True)
    partial = destination.with_suffix(destination.suffix + ".part")
    partial.write_bytes(content)
    partial.replace(destination)
    return destination


def _ensure_wgs84(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    if gdf.crs is None:
        return gdf.set_crs(WGS84_CRS)
    if gdf.crs.to_epsg() != 4326:
        return gdf.to_crs(WGS84_CRS)
    return gdf


def normalize_boundaries(gdf: gpd.GeoDataFrame, level: str) -> gpd.GeoDataFrame:
    """
    Reduce a raw boundary layer to the canonical columns.

    Returns a GeoDataFrame in EPSG:4326 with ``geoid``, ``state_fips``,
    ``name``, ``label``, ``level`` and ``geometry``, sorted by ``geoid``.
    """
    if level not in BOUNDARY_LEVELS:
        raise ValueError(f"Unknown boundary level {level!r}; expected one of {BOUNDARY_LEVELS}")

    required = ["GEOID", "STATEFP"] + (["NAME"] if level != "cd" else [])
    missing = [col for col in required if col not in gdf.columns]
    cd_column = None
    if level == "cd":
        cd_column = next((c for c in gdf.columns if _CD_COLUMN_PATTERN.match(str(c))), None)
        if cd_column is None:
            missing.append("CD<congress>FP")
    if missing:
        raise ValueError(
            f"Boundary layer for level {level!r} is missing column(s): {', '.join(missing)}"
        )

    raw = gdf
    if cd_column is not None:
        raw = raw[raw[cd_column].astype(str) != _UNDEFINED_DISTRICT]

    state_fips = raw["STATEFP"].astype(str).str.zfill(2)
    abbreviations = state_fips.map(STATE_ABBREVIATIONS).fillna(state_fips)

    if level == "cd":
        district = raw[cd_column].astype(str).str.zfill(2)
        seat = district.where(~district.isin(_AT_LARGE_CODES), "AL")
        names = abbreviations + "-" + seat
        labels = names
    elif level == "county":
        names = raw["NAME"].astype(str)
        labels = names + ", " + abbreviations
    else:
        names = raw["NAME"].astype(str)
        labels = names

    result = gpd.GeoDataFrame(
        {
            "geoid": raw["GEOID"].astype(str),
            "state_fips": state_fips,
            "name": names,
            "label": labels,
            "level": level,
        },
        geometry=raw.geometry.values,
        crs=raw.crs,
    )
    result = _ensure_wgs84(result)
    return result.sort_values("geoid").reset_index(drop=True)


def filter_states(
    boundaries: gpd.GeoDataFrame,
    *,
    states: Optional[Iterable[str]] = None,
    exclude_states: Optional[Iterable[str]] = None,
) -> gpd.GeoDataFrame:
    """Keep or drop boundaries by two-digit state FIPS code."""
    result = boundaries
    if states:
        keep = {str(s).zfill(2) for s in states}
        result = result[result["state_fips"].isin(keep)]
    if exclude_states:
        drop = {str(s).zfill(2) for s in exclude_states}
        result = result[~result["state_fips"].isin(drop)]
    return result.reset_index(drop=True)


def simplify_boundaries(gdf: gpd.GeoDataFrame, tolerance: float) -> gpd.GeoDataFrame:
    """Topology-preserving simplification; ``tolerance`` is in degrees."""
    result = gdf.copy()
    if tolerance and tolerance > 0:
        simplified = shapely.simplify(np.asarray(result.geometry.values), tolerance, preserve_topology=True)
        result["geometry"] = gpd.GeoSeries(simplified, index=result.index, crs=result.crs)
    return result


def load_boundaries(
    level: str,
    *,
    year: int = BOUNDARY_YEAR,
    resolution: str = BOUNDARY_RESOLUTION,
    congress: Optional[int] = None,
    cache_dir: Optional[Path] = None,
    states: Optional[Iterable[str]] = None,
    exclude_states: Optional[Iterable[str]] = None,
    force: bool = False,
) -> gpd.GeoDataFrame:
    """
    Load boundary polygons for one level, downloading them on first use.

    A simplified GeoJSON written by ``scripts/cache_boundaries.py`` next to
    the archive is preferred when present.
    """
    archive = boundary_cache_path(
        level, year=year, resolution=resolution, congress=congress, cache_dir=cache_dir
    )
    simplified = simplified_cache_path(archive)
    if simplified.exists() and not force:
        boundaries = _ensure_wgs84(gpd.read_file(simplified))
        boundaries["geoid"] = boundaries["geoid"].astype(str)
        boundaries["state_fips"] = boundaries["state_fips"].astype(str).str.zfill(2)
    else:
        archive = fetch_boundary_archive(
            level,
            year=year,
            resolution=resolution,
            congress=congress,
            cache_dir=cache_dir,
            force=force,
        )
        boundaries = normalize_boundaries(gpd.read_file(archive), level)

    boundaries = filter_states(boundaries, states=states, exclude_states=exclude_states)
    if boundaries.empty:
        raise ValueError(f"No {level} boundaries left after filtering")
    return boundaries

