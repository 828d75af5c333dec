"""Geospatial helpers for administrative boundary polygons."""

from .boundaries import load_boundaries, normalize_boundaries, simplify_boundaries  # noqa: F401

__all__ = ["load_boundaries", "normalize_boundaries", "simplify_boundaries"]
