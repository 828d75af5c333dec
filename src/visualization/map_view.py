"""
Interactive map visualizations for the fatal crash slides
"""
import html
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

import folium
import geopandas as gpd
import numpy as np
import pandas as pd
from branca.element import MacroElement, Template
from folium.plugins import Fullscreen, HeatMap, MarkerCluster, MiniMap
import plotly.express as px
import plotly.graph_objects as go

from config import (
    CHOROPLETH_PALETTE,
    DEFAULT_MAP_CENTER,
    DEFAULT_MAP_ZOOM,
    HEAT_BLUR,
    HEAT_GRADIENT,
    HEAT_RADIUS,
    MAP_TILES,
    MAX_MAP_POINTS,
    POINT_RADIUS,
    SAMPLE_SEED,
    SEASON_COLORS,
)
from crashes.schema import MONTH_LABELS, SEASONS

CATEGORY_COLORS = [
    "#e41a1c",
    "#377eb8",
    "#4daf4a",
    "#984ea3",
    "#ff7f00",
    "#a65628",
    "#f781bf",
    "#999999",
]
OUTLINE_STYLE = {"color": "#636363", "weight": 0.6, "fillOpacity": 0.0}
MIN_CHOROPLETH_BINS = 3


def _create_base_map(
    *,
    center: Optional[Sequence[float]] = None,
    zoom: Optional[int] = None,
    controls: bool = True,
) -> folium.Map:
    """Create a Folium base map with shared tiles and mini-map controls."""
    base_map = folium.Map(
        location=list(center) if center is not None else DEFAULT_MAP_CENTER,
        zoom_start=zoom if zoom is not None else DEFAULT_MAP_ZOOM,
        tiles=MAP_TILES,
        control_scale=True,
    )
    if controls:
        MiniMap(toggle_display=True).add_to(base_map)
        Fullscreen(position='topleft').add_to(base_map)
    return base_map


def _ordered_categories(values: pd.Series) -> List[str]:
    """Seasons in their natural order, anything else sorted."""
    present = [str(v) for v in values.dropna().unique()]
    seasons = [s for s in SEASONS if s in present]
    others = sorted(v for v in present if v not in SEASONS)
    return seasons + others


def _category_colors(
    categories: Sequence[str],
    colors: Optional[Dict[str, str]] = None,
) -> Dict[str, str]:
    """Assign a color to every category, preferring configured ones."""
    palette = dict(SEASON_COLORS)
    palette.update(colors or {})
    assigned: Dict[str, str] = {}
    for idx, category in enumerate(categories):
        assigned[category] = palette.get(category, CATEGORY_COLORS[idx % len(CATEGORY_COLORS)])
    return assigned


def _build_category_legend(title: str, colors: Dict[str, str]) -> MacroElement:
    """Create a legend element describing a categorical color coding."""
    legend_rows = []
    for label, color in colors.items():
        legend_rows.append(
            f"""
            <div style="display:flex;align-items:center;gap:8px;margin-bottom:6px;">
                <div style="width:14px;height:14px;border-radius:50%;background:{color};
                            border:1px solid #ffffff;"></div>
                <span style="font-size:12px;color:#222222;">{html.escape(str(label))}</span>
            </div>
            """
        )

    template = Template(
        f"""
        {{% macro html(this, kwargs) %}}
        <div style="
            position: fixed;
            bottom: 28px;
            left: 28px;
            z-index: 9999;
            background: rgba(255, 255, 255, 0.92);
            padding: 12px 16px;
            border-radius: 8px;
            box-shadow: 0 2px 8px rgba(0, 0, 0, 0.2);
            font-family: 'Arial', sans-serif;
        ">
            <div style="font-weight: 600; margin-bottom: 8px; font-size: 13px;">
                {html.escape(title)}
            </div>
            {''.join(legend_rows)}
        </div>
        {{% endmacro %}}
        """
    )
    macro = MacroElement()
    macro._template = template
    return macro


def _geojson_style(style: Dict[str, Any]):
    """Return a function compatible with Folium GeoJson style_function."""

    def fn(_: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "color": style.get("color", "#2c7fb8"),
            "weight": style.get("weight", 2),
            "fillOpacity": style.get("fillOpacity", 0.2),
            "fillColor": style.get("fillColor", style.get("color", "#2c7fb8")),
        }

    return fn


def _add_outline(map_obj: folium.Map, outline: Optional[gpd.GeoDataFrame]) -> None:
    """Draw boundary outlines underneath the data layers."""
    if outline is None or outline.empty:
        return
    columns = [c for c in ("geoid", "label") if c in outline.columns]
    folium.GeoJson(
        outline[columns + ["geometry"]].to_json(),
        name="Boundaries",
        style_function=_geojson_style(OUTLINE_STYLE),
        control=False,
    ).add_to(map_obj)


def _valid_points(crashes: pd.DataFrame) -> pd.DataFrame:
    """Rows with numeric coordinates."""
    df = crashes.copy()
    df["lat"] = pd.to_numeric(df.get("lat"), errors="coerce")
    df["lon"] = pd.to_numeric(df.get("lon"), errors="coerce")
    return df.dropna(subset=["lat", "lon"])


def _sample_points(
    df: pd.DataFrame,
    max_points: Optional[int],
) -> Tuple[pd.DataFrame, Optional[str]]:
    """Seeded sample when there are more points than the map should carry."""
    if not max_points or len(df) <= max_points:
        return df, None
    sampled = df.sample(int(max_points), random_state=SAMPLE_SEED).sort_index()
    message = f"Showing a sample of {len(sampled):,} of {len(df):,} crashes."
    return sampled, message


def _point_tooltip(row: Dict[str, Any]) -> str:
    parts = []
    crash_date = row.get("crash_date")
    if crash_date is not None and not pd.isna(crash_date):
        parts.append(pd.Timestamp(crash_date).strftime("%Y-%m-%d"))
    state_name = row.get("state_name")
    if state_name:
        parts.append(str(state_name))
    fatalities = row.get("fatalities")
    if fatalities is not None and not pd.isna(fatalities):
        noun = "fatality" if int(fatalities) == 1 else "fatalities"
        parts.append(f"{int(fatalities)} {noun}")
    return " · ".join(parts) or "Fatal crash"


def create_points_map(
    crashes: pd.DataFrame,
    *,
    color_by: Optional[str] = "season",
    cluster: bool = False,
    radius: float = POINT_RADIUS,
    max_points: Optional[int] = MAX_MAP_POINTS,
    colors: Optional[Dict[str, str]] = None,
    outline: Optional[gpd.GeoDataFrame] = None,
) -> Tuple[folium.Map, List[str]]:
    """
    Plot every crash as a small circle, one toggleable layer per category.

    Args:
        crashes: Crash records with ``lat``/``lon``.
        color_by: Column used for layers and colors; ``None`` draws one layer.
        cluster: Group markers with Leaflet.markercluster.
        radius: Circle radius in pixels.
        max_points: Sample size cap (seeded); ``None`` disables sampling.
        outline: Optional boundary polygons drawn as outlines.

    Returns:
        Tuple[folium.Map, List[str]]: map object and warnings encountered while building it.
    """
    warnings: List[str] = []
    m = _create_base_map()
    _add_outline(m, outline)

    points = _valid_points(crashes)
    if points.empty:
        warnings.append("No crash locations to display.")
        folium.LayerControl(collapsed=False).add_to(m)
        return m, warnings

    points, sample_message = _sample_points(points, max_points)
    if sample_message:
        warnings.append(sample_message)

    if color_by and color_by in points.columns:
        categories = _ordered_categories(points[color_by])
        keys = points[color_by].astype(str)
    else:
        if color_by:
            warnings.append(f"Column {color_by!r} not found; drawing a single layer.")
        categories = ["crashes"]
        keys = pd.Series("crashes", index=points.index)
    palette = _category_colors(categories, colors)

    for category in categories:
        subset = points[keys == category]
        if subset.empty:
            continue
        layer_name = f"{category} ({len(subset):,})"
        if cluster:
            target = MarkerCluster(name=layer_name, show=True)
        else:
            target = folium.FeatureGroup(name=layer_name, show=True)
        color = palette[category]
        for row in subset.to_dict("records"):
            folium.CircleMarker(
                location=[row["lat"], row["lon"]],
                radius=radius,
                color=color,
                weight=0.5,
                fill=True,
                fill_color=color,
                fill_opacity=0.7,
                tooltip=_point_tooltip(row),
            ).add_to(target)
        target.add_to(m)

    if len(categories) > 1:
        m.get_root().add_child(_build_category_legend(str(color_by).title(), palette))

    folium.LayerControl(collapsed=False).add_to(m)
    return m, warnings


def create_heatmap(
    crashes: pd.DataFrame,
    *,
    weight: Optional[str] = None,
    split_by: Optional[str] = None,
    radius: int = HEAT_RADIUS,
    blur: int = HEAT_BLUR,
    gradient: Optional[Dict[float, str]] = None,
    min_opacity: float = 0.3,
    max_zoom: int = 10,
) -> Tuple[folium.Map, List[str]]:
    """
    Kernel-density heatmap of crash locations.

    ``weight`` names a numeric column (e.g. ``fatalities``) used as point
    intensity. ``split_by`` draws one toggleable heat layer per category, the
    first one visible.
    """
    warnings: List[str] = []
    m = _create_base_map()

    points = _valid_points(crashes)
    if points.empty:
        warnings.append("No crash locations to display.")
        folium.LayerControl(collapsed=False).add_to(m)
        return m, warnings

    if weight:
        if weight in points.columns:
            points["_weight"] = pd.to_numeric(points[weight], errors="coerce").fillna(1.0).astype(float)
        else:
            warnings.append(f"Weight column {weight!r} not found; using equal weights.")
            points["_weight"] = 1.0
    else:
        points["_weight"] = 1.0

    heat_options = dict(
        radius=radius,
        blur=blur,
        min_opacity=min_opacity,
        max_zoom=max_zoom,
        gradient=gradient or HEAT_GRADIENT,
    )

    if split_by and split_by in points.columns:
        for idx, category in enumerate(_ordered_categories(points[split_by])):
            subset = points[points[split_by].astype(str) == category]
            layer = folium.FeatureGroup(name=f"{category} ({len(subset):,})", show=idx == 0)
            HeatMap(subset[["lat", "lon", "_weight"]].values.tolist(), **heat_options).add_to(layer)
            layer.add_to(m)
    else:
        if split_by:
            warnings.append(f"Column {split_by!r} not found; drawing a single heat layer.")
        HeatMap(
            points[["lat", "lon", "_weight"]].values.tolist(),
            control=False,
            **heat_options,
        ).add_to(m)

    folium.LayerControl(collapsed=False).add_to(m)
    return m, warnings


def choropleth_bins(
    values: pd.Series,
    bins: Optional[Sequence[float]] = None,
    *,
    count: int = 6,
) -> List[float]:
    """
    Threshold edges that cover every value.

    Explicit ``bins`` are sorted and extended so the lowest edge is at or below
    the minimum and the highest edge above the maximum. Without ``bins``,
    ``count`` equal-width classes span the data. At least
    ``MIN_CHOROPLETH_BINS`` classes are always returned.
    """
    finite = pd.to_numeric(values, errors="coerce").replace([np.inf, -np.inf], np.nan).dropna()
    vmin = float(finite.min()) if not finite.empty else 0.0
    vmax = float(finite.max()) if not finite.empty else 1.0
    if vmax <= vmin:
        vmax = vmin + 1.0
    upper = float(np.nextafter(vmax, np.inf))

    if bins:
        edges = sorted({float(b) for b in bins})
        if edges[0] > vmin:
            edges.insert(0, vmin)
        if edges[-1] <= vmax:
            edges.append(upper)
    else:
        edges = [float(e) for e in np.linspace(vmin, vmax, max(int(count), MIN_CHOROPLETH_BINS) + 1)]
        edges[-1] = upper

    if len(edges) - 1 < MIN_CHOROPLETH_BINS:
        edges = [float(e) for e in np.linspace(edges[0], edges[-1], MIN_CHOROPLETH_BINS + 1)]
    return edges


def _format_value(value: Any, value_format: str) -> str:
    if value is None or pd.isna(value):
        return "—"
    return value_format.format(value)


def create_choropleth_map(
    cells: gpd.GeoDataFrame,
    *,
    value: str = "crash_count",
    bins: Optional[Sequence[float]] = None,
    palette: str = CHOROPLETH_PALETTE,
    legend_name: Optional[str] = None,
    value_format: str = "{:,.0f}",
    center: Optional[Sequence[float]] = None,
    zoom: Optional[int] = None,
) -> Tuple[folium.Map, List[str]]:
    """
    Shade boundary polygons by an aggregate column.

    Args:
        cells: Output of ``aggregate_choropleth`` (``geoid``, ``label``, ``geometry``
            and the ``value`` column).
        bins: Class thresholds; normalized with :func:`choropleth_bins`.
        palette: ColorBrewer scheme name.
        value_format: Format string used in hover tooltips.
    """
    missing = [col for col in ("geoid", "geometry", value) if col not in cells.columns]
    if missing:
        raise ValueError(f"Choropleth cells are missing column(s): {', '.join(missing)}")

    warnings: List[str] = []
    m = _create_base_map(center=center, zoom=zoom)
    if cells.empty:
        warnings.append("No regions to display.")
        return m, warnings

    geo = cells.copy()
    if "label" not in geo.columns:
        geo["label"] = geo["geoid"]
    geo["display_value"] = [_format_value(v, value_format) for v in geo[value]]
    geo_json = geo[["geoid", "label", "display_value", "geometry"]].to_json()

    numeric = pd.to_numeric(geo[value], errors="coerce")
    if numeric.dropna().empty:
        warnings.append(f"Column {value!r} has no values; regions are drawn without shading.")
        _add_outline(m, geo)
        return m, warnings

    thresholds = choropleth_bins(numeric, bins)
    folium.Choropleth(
        geo_data=geo_json,
        data=pd.DataFrame({"geoid": geo["geoid"], value: numeric}),
        columns=["geoid", value],
        key_on="feature.properties.geoid",
        bins=thresholds,
        fill_color=palette,
        fill_opacity=0.75,
        nan_fill_color="#f0f0f0",
        line_color="#ffffff",
        line_weight=0.5,
        line_opacity=0.6,
        legend_name=legend_name or value.replace("_", " ").title(),
        highlight=True,
        name=legend_name or value,
    ).add_to(m)

    # Hover tooltip
    folium.GeoJson(
        geo_json,
        style_function=lambda _: {"fillOpacity": 0, "color": "transparent", "weight": 0},
        tooltip=folium.GeoJsonTooltip(
            fields=["label", "display_value"],
            aliases=["Region:", f"{legend_name or value.replace('_', ' ').title()}:"],
            sticky=True,
        ),
        control=False,
    ).add_to(m)

    folium.LayerControl(collapsed=False).add_to(m)
    return m, warnings


def _pie_svg(values: Sequence[float], colors: Sequence[str], size: int) -> str:
    """Inline SVG pie chart."""
    r = size / 2.0
    total = float(sum(values))
    parts = [f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" viewBox="0 0 {size} {size}">']
    if total <= 0:
        parts.append(f'<circle cx="{r}" cy="{r}" r="{r - 1}" fill="none" stroke="#999999"/>')
    elif sum(1 for v in values if v > 0) == 1:
        color = next(c for v, c in zip(values, colors) if v > 0)
        parts.append(f'<circle cx="{r}" cy="{r}" r="{r}" fill="{color}" stroke="#ffffff" stroke-width="1"/>')
    else:
        angle = -math.pi / 2
        for v, color in zip(values, colors):
            if v <= 0:
                continue
            sweep = 2 * math.pi * float(v) / total
            x1, y1 = r + r * math.cos(angle), r + r * math.sin(angle)
            angle += sweep
            x2, y2 = r + r * math.cos(angle), r + r * math.sin(angle)
            large_arc = 1 if sweep > math.pi else 0
            parts.append(
                f'<path d="M{r:.2f},{r:.2f} L{x1:.2f},{y1:.2f} '
                f'A{r:.2f},{r:.2f} 0 {large_arc} 1 {x2:.2f},{y2:.2f} Z" '
                f'fill="{color}" stroke="#ffffff" stroke-width="1"/>'
            )
    parts.append("</svg>")
    return "".join(parts)


def _bar_svg(values: Sequence[float], colors: Sequence[str], size: int) -> str:
    """Inline SVG bar chart, bars scaled to the largest value."""
    peak = max([float(v) for v in values] + [0.0])
    width = size / max(len(values), 1)
    parts = [f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" viewBox="0 0 {size} {size}">']
    for idx, (v, color) in enumerate(zip(values, colors)):
        height = (float(v) / peak * size) if peak > 0 else 0.0
        parts.append(
            f'<rect x="{idx * width + 1:.2f}" y="{size - height:.2f}" '
            f'width="{max(width - 2, 1):.2f}" height="{height:.2f}" '
            f'fill="{color}" stroke="#ffffff" stroke-width="0.5"/>'
        )
    parts.append("</svg>")
    return "".join(parts)


def create_minichart_map(
    points: pd.DataFrame,
    categories: Sequence[str],
    *,
    chart: str = "pie",
    colors: Optional[Dict[str, str]] = None,
    min_size: int = 18,
    max_size: int = 56,
    legend_title: str = "Season",
) -> Tuple[folium.Map, List[str]]:
    """
    Small pie or bar charts drawn at region points.

    ``points`` is the output of ``aggregate_minicharts``; chart area grows
    with the square root of ``total``.
    """
    if chart not in ("pie", "bar"):
        raise ValueError(f"Unsupported mini-chart type: {chart}")
    categories = [str(c) for c in categories]
    missing = [col for col in ["lat", "lon", "total"] + categories if col not in points.columns]
    if missing:
        raise ValueError(f"Mini-chart points are missing column(s): {', '.join(missing)}")

    warnings: List[str] = []
    m = _create_base_map()
    if points.empty:
        warnings.append("No regions with crashes to chart.")
        return m, warnings

    palette = _category_colors(categories, colors)
    category_colors = [palette[c] for c in categories]
    max_total = float(points["total"].max())
    max_root = math.sqrt(max_total) if max_total > 0 else 1.0
    render_svg = _pie_svg if chart == "pie" else _bar_svg

    layer = folium.FeatureGroup(name="Mini-charts", show=True)
    for row in points.to_dict("records"):
        size = int(round(min_size + (max_size - min_size) * math.sqrt(max(row["total"], 0)) / max_root))
        values = [float(row[c]) for c in categories]
        label = html.escape(str(row.get("label", row.get("geoid", ""))))

        popup_rows = "".join(
            f"<tr><td><b>{html.escape(c)}</b></td><td>{int(row[c]):,}</td></tr>" for c in categories
        )
        popup_html = f"""
            <div style="width:200px;">
                <h4 style="margin:0 0 6px 0;font-size:15px;">{label}</h4>
                <table style="width:100%;font-size:13px;">
                    {popup_rows}
                    <tr><td><b>Total</b></td><td>{int(row['total']):,}</td></tr>
                </table>
            </div>
        """
        folium.Marker(
            location=[row["lat"], row["lon"]],
            icon=folium.DivIcon(
                html=render_svg(values, category_colors, size),
                icon_size=(size, size),
                icon_anchor=(size // 2, size // 2),
            ),
            tooltip=f"{label}: {int(row['total']):,}",
            popup=folium.Popup(popup_html, max_width=260),
        ).add_to(layer)
    layer.add_to(m)

    m.get_root().add_child(_build_category_legend(legend_title, palette))
    folium.LayerControl(collapsed=False).add_to(m)
    return m, warnings


def create_time_animation_map(series_df: pd.DataFrame) -> go.Figure:
    """
    Animated map where bubble size and color encode crash count by month and region.
    """
    df_anim = series_df.copy()
    required_columns = {'label', 'lat', 'lon', 'month', 'crash_count'}
    if not required_columns.issubset(df_anim.columns):
        fig = go.Figure()
        fig.update_layout(title="Monthly series is missing region or month columns", height=600)
        return fig

    df_anim = df_anim.dropna(subset=['lat', 'lon'])
    if df_anim.empty:
        fig = go.Figure()
        fig.update_layout(title="No located regions to animate", height=600)
        return fig

    df_anim['month'] = df_anim['month'].astype(int)
    df_anim['month_label'] = df_anim['month'].map(lambda m: MONTH_LABELS[m - 1])
    map_df = df_anim.sort_values(['month', 'label'])
    max_count = max(int(map_df['crash_count'].max()), 1)

    fig = px.scatter_map(
        map_df,
        lat='lat',
        lon='lon',
        size='crash_count',
        size_max=40,
        color='crash_count',
        color_continuous_scale='YlOrRd',
        range_color=(0, max_count),
        hover_name='label',
        hover_data={'crash_count': True, 'lat': False, 'lon': False, 'month_label': False},
        animation_frame='month_label',
        category_orders={'month_label': MONTH_LABELS},
        zoom=DEFAULT_MAP_ZOOM - 1,
        center={'lat': DEFAULT_MAP_CENTER[0], 'lon': DEFAULT_MAP_CENTER[1]},
        map_style='carto-positron',
        height=600,
        title='Fatal crashes by month (bubble = crashes)',
    )

    fig.update_layout(hovermode='closest', coloraxis_colorbar=dict(title='Crashes'))

    if fig.layout.updatemenus and fig.layout.updatemenus[0].buttons:
        button_args = fig.layout.updatemenus[0].buttons[0].args
        if len(button_args) > 1 and 'frame' in button_args[1] and 'transition' in button_args[1]:
            button_args[1]['frame']['duration'] = 700
            button_args[1]['transition']['duration'] = 300

    return fig
