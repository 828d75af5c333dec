import folium
import numpy as np
import pandas as pd
import plotly.graph_objects as go
import pytest

from analytics.aggregation import aggregate_choropleth, aggregate_minicharts, aggregate_monthly_series
from crashes.derive import add_time_columns
from visualization.map_view import (
    _bar_svg,
    _pie_svg,
    _sample_points,
    choropleth_bins,
    create_choropleth_map,
    create_heatmap,
    create_minichart_map,
    create_points_map,
    create_time_animation_map,
)


def _html(map_obj: folium.Map) -> str:
    return map_obj.get_root().render()


@pytest.fixture
def crashes(sample_crashes):
    return add_time_columns(sample_crashes)


def test_points_map_draws_every_crash(crashes):
    m, warnings = create_points_map(crashes)
    assert isinstance(m, folium.Map)
    assert warnings == []
    html = _html(m)
    assert html.count("L.circleMarker(") == 5
    assert "summer (3)" in html
    assert "winter (2)" in html


def test_points_map_samples_large_inputs(crashes):
    m, warnings = create_points_map(crashes, max_points=2)
    assert _html(m).count("L.circleMarker(") == 2
    assert warnings == ["Showing a sample of 2 of 5 crashes."]


def test_sampling_is_reproducible(crashes):
    first, _ = _sample_points(crashes, 3)
    second, _ = _sample_points(crashes, 3)
    assert first.index.tolist() == second.index.tolist()


def test_points_map_clusters(crashes):
    m, _ = create_points_map(crashes, color_by=None, cluster=True)
    assert "L.markerClusterGroup(" in _html(m)


def test_points_map_with_outline(crashes, square_boundaries):
    m, warnings = create_points_map(crashes, outline=square_boundaries)
    assert warnings == []
    assert "Alpha" in _html(m)


def test_points_map_unknown_color_column(crashes):
    _, warnings = create_points_map(crashes, color_by="weather")
    assert any("weather" in message for message in warnings)


def test_points_map_without_points(crashes):
    _, warnings = create_points_map(crashes.iloc[0:0])
    assert warnings == ["No crash locations to display."]


def test_heatmap(crashes):
    m, warnings = create_heatmap(crashes, weight="fatalities")
    assert warnings == []
    assert _html(m).count("L.heatLayer(") == 1


def test_heatmap_split_by_season(crashes):
    m, warnings = create_heatmap(crashes, split_by="season")
    assert warnings == []
    assert _html(m).count("L.heatLayer(") == 2


def test_heatmap_missing_weight_column(crashes):
    _, warnings = create_heatmap(crashes, weight="injuries")
    assert any("injuries" in message for message in warnings)


@pytest.mark.parametrize(
    "values, bins",
    [
        ([0, 10], None),
        ([0, 10], [5]),
        ([2, 40], [0, 5, 10]),
        ([3, 3], None),
        ([1, 7, np.nan], [0, 100]),
    ],
)
def test_choropleth_bins_cover_the_data(values, bins):
    edges = choropleth_bins(pd.Series(values), bins)
    finite = [v for v in values if not np.isnan(v)]
    assert edges == sorted(edges)
    assert len(edges) >= 4
    assert edges[0] <= min(finite)
    assert edges[-1] > max(finite)


def test_choropleth_map(sample_crashes, square_boundaries):
    cells = aggregate_choropleth(sample_crashes, square_boundaries)
    m, warnings = create_choropleth_map(cells, legend_name="Fatal crashes")
    assert warnings == []
    html = _html(m)
    assert "Fatal crashes" in html
    assert "Beta" in html


def test_choropleth_map_without_values(sample_crashes, square_boundaries):
    cells = aggregate_choropleth(sample_crashes, square_boundaries)
    cells["crash_rate"] = np.nan
    _, warnings = create_choropleth_map(cells, value="crash_rate")
    assert any("crash_rate" in message for message in warnings)


def test_choropleth_map_requires_value_column(square_boundaries):
    with pytest.raises(ValueError, match="crash_count"):
        create_choropleth_map(square_boundaries)


def test_pie_svg():
    assert _pie_svg([1, 3], ["#f00", "#00f"], 20).count("<path") == 2
    assert "<circle" in _pie_svg([0, 3], ["#f00", "#00f"], 20)
    assert "<path" not in _pie_svg([0, 0], ["#f00", "#00f"], 20)


def test_bar_svg():
    svg = _bar_svg([2, 4], ["#f00", "#00f"], 20)
    assert svg.count("<rect") == 2
    assert 'height="20.00"' in svg


def test_minichart_map(crashes, square_boundaries):
    points = aggregate_minicharts(crashes, square_boundaries)
    m, warnings = create_minichart_map(points, ["summer", "winter"])
    assert warnings == []
    assert isinstance(m, folium.Map)
    _, bar_warnings = create_minichart_map(points, ["summer", "winter"], chart="bar")
    assert bar_warnings == []


def test_minichart_map_validates_input(crashes, square_boundaries):
    points = aggregate_minicharts(crashes, square_boundaries)
    with pytest.raises(ValueError, match="donut"):
        create_minichart_map(points, ["summer", "winter"], chart="donut")
    with pytest.raises(ValueError, match="spring"):
        create_minichart_map(points, ["spring"])


def test_time_animation_has_a_frame_per_month(crashes, square_boundaries):
    series = aggregate_monthly_series(crashes, square_boundaries)
    fig = create_time_animation_map(series)
    assert isinstance(fig, go.Figure)
    assert [frame.name for frame in fig.frames] == [
        "Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
    ]


def test_time_animation_with_missing_columns():
    fig = create_time_animation_map(pd.DataFrame({"month": [1]}))
    assert len(fig.frames) == 0
    assert "missing" in fig.layout.title.text
