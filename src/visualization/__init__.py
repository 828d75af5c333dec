"""Visualization module for interactive maps, charts and the slide deck"""

from .map_view import (
    create_choropleth_map,
    create_heatmap,
    create_minichart_map,
    create_points_map,
    create_time_animation_map,
)
from .charts import create_statistics_charts
from .slides import Slide, load_slides, parse_slide_markdown, render_deck, render_visual_document

__all__ = [
    "Slide",
    "create_choropleth_map",
    "create_heatmap",
    "create_minichart_map",
    "create_points_map",
    "create_statistics_charts",
    "create_time_animation_map",
    "load_slides",
    "parse_slide_markdown",
    "render_deck",
    "render_visual_document",
]
