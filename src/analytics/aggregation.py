"""
Aggregations joining crash records to boundary polygons.

Every table produced here is derived from a crash frame (``lat``/``lon`` plus
the calendar columns) and a boundary frame (``geoid``/``label``/``geometry``).
Each crash is assigned to exactly one region, so counts always add up to the
number of input rows.
"""
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import geopandas as gpd
import numpy as np
import pandas as pd

from crashes.schema import MONTH_LABELS, SEASONS

WGS84_CRS = "EPSG:4326"
# CONUS Albers equal-area; only used to measure distances for the nearest-region fallback
PROJECTED_CRS = "EPSG:5070"


def _crash_points(crashes: pd.DataFrame) -> gpd.GeoDataFrame:
    return gpd.GeoDataFrame(
        index=crashes.index,
        geometry=gpd.points_from_xy(crashes["lon"], crashes["lat"]),
        crs=WGS84_CRS,
    )


def _require_boundaries(boundaries: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    if boundaries is None or boundaries.empty:
        raise ValueError("Boundary set is empty; cannot assign crashes to regions")
    missing = [col for col in ("geoid", "geometry") if col not in boundaries.columns]
    if missing:
        raise ValueError(f"Boundary frame is missing column(s): {', '.join(missing)}")
    if boundaries.crs is None:
        return boundaries.set_crs(WGS84_CRS)
    if boundaries.crs.to_epsg() != 4326:
        return boundaries.to_crs(WGS84_CRS)
    return boundaries


def assign_regions(crashes: pd.DataFrame, boundaries: gpd.GeoDataFrame) -> pd.Series:
    """
    Region ``geoid`` for every crash, aligned with ``crashes.index``.

    Points on a shared border go to the first matching polygon; points outside
    every polygon (offshore, rounding at coastlines) go to the nearest one.
    """
    boundaries = _require_boundaries(boundaries)
    if crashes.index.has_duplicates:
        raise ValueError("Crash frame index must be unique")
    if crashes.empty:
        return pd.Series([], index=crashes.index, dtype=object, name="geoid")

    points = _crash_points(crashes)
    regions = boundaries[["geoid", "geometry"]].reset_index(drop=True)

    joined = gpd.sjoin(points, regions, how="left", predicate="intersects")
    joined = joined[~joined.index.duplicated(keep="first")]
    assigned = joined["geoid"].reindex(crashes.index).astype(object)

    unmatched = assigned.isna()
    if unmatched.any():
        nearest = gpd.sjoin_nearest(
            points.loc[unmatched].to_crs(PROJECTED_CRS),
            regions.to_crs(PROJECTED_CRS),
            how="left",
        )
        nearest = nearest[~nearest.index.duplicated(keep="first")]
        assigned.loc[unmatched] = nearest["geoid"].reindex(assigned.index[unmatched]).values

    return assigned.rename("geoid")


def _representative_points(boundaries: gpd.GeoDataFrame) -> pd.DataFrame:
    points = boundaries.geometry.representative_point()
    return pd.DataFrame(
        {
            "geoid": boundaries["geoid"].values,
            "label": boundaries["label"].values if "label" in boundaries.columns else boundaries["geoid"].values,
            "lat": points.y.values,
            "lon": points.x.values,
        }
    )


def aggregate_choropleth(
    crashes: pd.DataFrame,
    boundaries: gpd.GeoDataFrame,
    *,
    population: Optional[pd.DataFrame] = None,
    per: int = 100_000,
) -> gpd.GeoDataFrame:
    """
    Count crashes per boundary polygon.

    Args:
        crashes: Crash records with ``lat``/``lon``.
        boundaries: Polygons with ``geoid``; all of them appear in the result.
        population: Optional ``geoid``/``population`` table; adds ``crash_rate``
            (crashes per ``per`` residents).

    Returns:
        GeoDataFrame with the boundary columns plus ``crash_count`` and, when
        available, ``fatalities`` and ``crash_rate``.
    """
    boundaries = _require_boundaries(boundaries)
    crashes = crashes.reset_index(drop=True)
    region = assign_regions(crashes, boundaries)

    counts = region.value_counts()
    cells = boundaries.copy().reset_index(drop=True)
    cells["crash_count"] = cells["geoid"].map(counts).fillna(0).astype(int)

    if "fatalities" in crashes.columns:
        fatalities = (
            pd.to_numeric(crashes["fatalities"], errors="coerce")
            .fillna(0)
            .groupby(region)
            .sum()
        )
        cells["fatalities"] = cells["geoid"].map(fatalities).fillna(0).astype(int)

    if population is not None:
        pop = population.assign(geoid=population["geoid"].astype(str))
        pop = pop.drop_duplicates("geoid").set_index("geoid")["population"]
        residents = pd.to_numeric(cells["geoid"].map(pop), errors="coerce")
        residents = residents.where(residents > 0)
        cells["population"] = residents
        cells["crash_rate"] = cells["crash_count"] / residents * per

    return cells


def aggregate_minicharts(
    crashes: pd.DataFrame,
    boundaries: gpd.GeoDataFrame,
    *,
    category: str = "season",
    categories: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Per-region category breakdown placed at each region's representative point.

    Only regions with at least one crash are returned. Category columns follow
    ``categories`` (default: seasons for ``season``, sorted values otherwise).
    ``total`` counts every crash in the region, including crashes whose
    category is missing or not listed, so totals sum to the input row count.
    """
    if category not in crashes.columns:
        raise ValueError(f"Crash frame has no {category!r} column")
    boundaries = _require_boundaries(boundaries)
    crashes = crashes.reset_index(drop=True)

    if categories is None:
        categories = SEASONS if category == "season" else sorted(crashes[category].dropna().unique())
    categories = list(categories)

    region = assign_regions(crashes, boundaries)
    totals = region.value_counts()
    breakdown = (
        pd.crosstab(region, crashes[category])
        .reindex(index=totals.index, columns=categories, fill_value=0)
    )
    breakdown.columns = [str(c) for c in breakdown.columns]
    breakdown["total"] = totals

    points = _representative_points(boundaries)
    result = points.merge(breakdown, left_on="geoid", right_index=True, how="inner")
    value_columns: List[str] = [str(c) for c in categories] + ["total"]
    result[value_columns] = result[value_columns].astype(int)
    return result.sort_values("geoid").reset_index(drop=True)


def aggregate_monthly_series(
    crashes: pd.DataFrame,
    boundaries: gpd.GeoDataFrame,
) -> pd.DataFrame:
    """Long-format crash counts per region and month, all 12 months present."""
    if "month" not in crashes.columns:
        raise ValueError("Crash frame has no 'month' column; derive calendar columns first")
    boundaries = _require_boundaries(boundaries)
    crashes = crashes.reset_index(drop=True)

    region = assign_regions(crashes, boundaries)
    counts = (
        pd.DataFrame({"geoid": region, "month": crashes["month"].astype(int)})
        .groupby(["geoid", "month"])
        .size()
    )
    active = sorted(counts.index.get_level_values("geoid").unique())
    grid = pd.MultiIndex.from_product([active, range(1, 13)], names=["geoid", "month"])
    series = counts.reindex(grid, fill_value=0).rename("crash_count").reset_index()

    points = _representative_points(boundaries)
    series = series.merge(points, on="geoid", how="left")
    series["month_label"] = [MONTH_LABELS[m - 1] for m in series["month"]]
    series["crash_count"] = series["crash_count"].astype(int)
    return series[["geoid", "label", "lat", "lon", "month", "month_label", "crash_count"]]


def load_population_table(path: str | Path) -> pd.DataFrame:
    """Read a ``geoid``/``population`` table used for per-capita rates."""
    table_path = Path(path)
    if not table_path.exists():
        raise FileNotFoundError(f"Population table not found: {table_path}")
    population = pd.read_csv(table_path, dtype={"geoid": str})
    missing = [col for col in ("geoid", "population") if col not in population.columns]
    if missing:
        raise ValueError(f"Population table {table_path} is missing column(s): {', '.join(missing)}")
    population["population"] = pd.to_numeric(population["population"], errors="coerce")
    return population[["geoid", "population"]]


def summarize_cells(cells: pd.DataFrame, value: str = "crash_count", top: int = 5) -> Dict[str, object]:
    """Headline numbers for a choropleth: total and the top regions by ``value``."""
    if value not in cells.columns:
        raise ValueError(f"Unknown value column: {value}")
    ranked = cells.dropna(subset=[value]).sort_values(value, ascending=False)
    label_col = "label" if "label" in cells.columns else "geoid"
    return {
        "total_crashes": int(cells["crash_count"].sum()) if "crash_count" in cells.columns else None,
        "regions": int(len(cells)),
        "regions_with_crashes": int((cells.get("crash_count", pd.Series(dtype=int)) > 0).sum()),
        "top": [
            (str(row[label_col]), float(row[value]))
            for _, row in ranked.head(top).iterrows()
        ],
        "median": float(np.nanmedian(cells[value].to_numpy(dtype=float))) if len(cells) else None,
    }
