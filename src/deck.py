"""
The talk: slide order and the build pipeline behind every visual
"""
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import geopandas as gpd
import pandas as pd

from analytics.aggregation import (
    aggregate_choropleth,
    aggregate_minicharts,
    aggregate_monthly_series,
    load_population_table,
    summarize_cells,
)
from config import (
    BOUNDARY_YEAR,
    CRASH_TABLE_PATH,
    DECK_TITLE,
    FOCUS_YEAR,
    OUTPUT_DIR,
    POPULATION_TABLE_PATH,
    SLIDES_DIR,
)
from crashes.dataset import CrashDataset
from crashes.schema import SEASONS
from geo.boundaries import BOUNDARY_LEVELS, TERRITORY_FIPS, load_boundaries
from visualization.charts import create_statistics_charts
from visualization.map_view import (
    create_choropleth_map,
    create_heatmap,
    create_minichart_map,
    create_points_map,
    create_time_animation_map,
)
from visualization.slides import Slide, load_slides, render_deck

# (slide text file under slides/, visual key or None for text-only slides)
DECK: List[Tuple[str, Optional[str]]] = [
    ("title", None),
    ("data", None),
    ("points", "points"),
    ("clusters", "clusters"),
    ("heatmap", "heatmap"),
    ("season_heatmap", "season_heatmap"),
    ("states", "state_choropleth"),
    ("state_rates", "state_rate"),
    ("counties", "county_choropleth"),
    ("districts", "district_choropleth"),
    ("minicharts", "season_minicharts"),
    ("animation", "monthly_animation"),
    ("monthly", "monthly_bar"),
    ("states_ranked", "state_bar"),
    ("thanks", None),
]
# The generated summary slide follows this one
SUMMARY_AFTER = "data"
DEFAULT_OUTPUT_PATH = OUTPUT_DIR / "index.html"


def load_deck_boundaries(
    levels: Iterable[str] = BOUNDARY_LEVELS,
    *,
    year: int = BOUNDARY_YEAR,
    cache_dir: Optional[Path] = None,
) -> Dict[str, gpd.GeoDataFrame]:
    """Boundary sets for the deck keyed by level, territories left out."""
    return {
        level: load_boundaries(level, year=year, cache_dir=cache_dir, exclude_states=TERRITORY_FIPS)
        for level in levels
    }


def build_visuals(
    dataset: CrashDataset,
    boundaries: Dict[str, gpd.GeoDataFrame],
    *,
    year: int = FOCUS_YEAR,
    population: Optional[pd.DataFrame] = None,
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Build every visual the deck can show for one year.

    Args:
        dataset: Crash snapshot.
        boundaries: Boundary sets keyed by level; ``state`` is required,
            ``county`` and ``cd`` are optional.
        year: Year shown on the map slides.
        population: Optional state ``geoid``/``population`` table for rates.

    Returns:
        Tuple of the visuals keyed by name and warnings collected while building.
    """
    if "state" not in boundaries:
        raise ValueError("State boundaries are required to build the deck")

    filters = {"year": year}
    crashes = dataset.get_crashes_dataframe(filters)
    if crashes.empty:
        raise ValueError(f"No crashes recorded in {year}")

    visuals: Dict[str, Any] = {}
    warnings: List[str] = []

    def _keep(name: str, built: Tuple[Any, List[str]]) -> None:
        visual, visual_warnings = built
        visuals[name] = visual
        warnings.extend(f"{name}: {message}" for message in visual_warnings)

    states = boundaries["state"]
    _keep("points", create_points_map(crashes, color_by="season", outline=states))
    _keep("clusters", create_points_map(crashes, color_by=None, cluster=True))
    weight = "fatalities" if "fatalities" in crashes.columns else None
    _keep("heatmap", create_heatmap(crashes, weight=weight))
    _keep("season_heatmap", create_heatmap(crashes, split_by="season"))

    state_cells = aggregate_choropleth(crashes, states, population=population)
    _keep(
        "state_choropleth",
        create_choropleth_map(state_cells, legend_name=f"Fatal crashes, {year}"),
    )
    if population is not None:
        _keep(
            "state_rate",
            create_choropleth_map(
                state_cells,
                value="crash_rate",
                legend_name=f"Fatal crashes per 100,000 residents, {year}",
                value_format="{:,.1f}",
            ),
        )

    for level, name, legend in (
        ("county", "county_choropleth", "Fatal crashes by county"),
        ("cd", "district_choropleth", "Fatal crashes by congressional district"),
    ):
        if level not in boundaries:
            warnings.append(f"{name}: no {level} boundaries loaded; slide skipped.")
            continue
        cells = aggregate_choropleth(crashes, boundaries[level])
        _keep(name, create_choropleth_map(cells, legend_name=f"{legend}, {year}"))

    season_points = aggregate_minicharts(crashes, states, category="season")
    _keep("season_minicharts", create_minichart_map(season_points, SEASONS, chart="pie"))

    visuals["monthly_animation"] = create_time_animation_map(
        aggregate_monthly_series(crashes, states)
    )

    charts = create_statistics_charts(dataset, filters)
    visuals.update(charts)
    return visuals, warnings


def build_summary_slide(
    dataset: CrashDataset,
    states: gpd.GeoDataFrame,
    *,
    year: int = FOCUS_YEAR,
) -> Slide:
    """Text slide with the headline numbers for ``year``."""
    filters = {"year": year}
    summary = dataset.get_summary(filters)
    cells = aggregate_choropleth(dataset.get_crashes_dataframe(filters), states)
    ranking = summarize_cells(cells, top=3)

    lines = [f"- **{summary['total_crashes']:,}** fatal crashes"]
    if summary["total_fatalities"] is not None:
        lines.append(f"- **{summary['total_fatalities']:,}** people killed")
    if summary["summer_share"] is not None:
        lines.append(f"- **{summary['summer_share']:.0%}** between May and October")
    top = ", ".join(f"{label} ({int(count):,})" for label, count in ranking["top"] if count > 0)
    if top:
        lines.append(f"- Most crashes: {top}")

    return Slide(
        title=f"{year} at a glance",
        body="\n".join(lines),
        notes=f"{ranking['regions_with_crashes']} of {ranking['regions']} states recorded a fatal crash.",
    )


def deck_slides(
    slides: Sequence[Slide],
    visuals: Dict[str, Any],
) -> Tuple[List[Slide], List[str]]:
    """Drop slides whose optional visual was not built."""
    kept: List[Slide] = []
    skipped: List[str] = []
    for slide in slides:
        if slide.visual is not None and slide.visual not in visuals:
            skipped.append(f"Slide {slide.title!r} skipped: visual {slide.visual!r} not available.")
            continue
        kept.append(slide)
    return kept, skipped


def with_summary_slide(
    slides: Sequence[Slide],
    visuals: Dict[str, Any],
    summary: Slide,
) -> List[Slide]:
    """Insert ``summary`` after the ``SUMMARY_AFTER`` slide of a filtered deck."""
    names = [name for name, visual in DECK if visual is None or visual in visuals]
    position = names.index(SUMMARY_AFTER) + 1 if SUMMARY_AFTER in names else 1
    return list(slides[:position]) + [summary] + list(slides[position:])


def build_deck(
    output_path: Optional[Path] = None,
    *,
    crash_path: Optional[Path] = None,
    year: int = FOCUS_YEAR,
    boundaries: Optional[Dict[str, gpd.GeoDataFrame]] = None,
    population: Optional[pd.DataFrame] = None,
    slides_dir: Optional[Path] = None,
    title: str = DECK_TITLE,
) -> Tuple[Path, List[str]]:
    """
    Load, aggregate and render the whole talk into one HTML file.

    Boundaries are downloaded (or read from the cache) when not supplied; the
    population table is used when it exists at ``POPULATION_TABLE_PATH``.

    Returns:
        Tuple of the written path and the build warnings.
    """
    destination = Path(output_path or DEFAULT_OUTPUT_PATH)
    dataset = CrashDataset(path=crash_path or CRASH_TABLE_PATH)
    if boundaries is None:
        boundaries = load_deck_boundaries()
    if population is None and POPULATION_TABLE_PATH.exists():
        population = load_population_table(POPULATION_TABLE_PATH)

    warnings: List[str] = []
    if dataset.dropped_rows:
        warnings.append(f"{dataset.dropped_rows:,} crash rows without a usable date or position were dropped.")

    visuals, visual_warnings = build_visuals(dataset, boundaries, year=year, population=population)
    warnings.extend(visual_warnings)

    slides = load_slides(DECK, slides_dir or SLIDES_DIR)
    slides, skipped = deck_slides(slides, visuals)
    warnings.extend(skipped)

    summary = build_summary_slide(dataset, boundaries["state"], year=year)
    slides = with_summary_slide(slides, visuals, summary)

    render_deck(slides, visuals, title=title, output_path=destination)
    return destination, warnings
