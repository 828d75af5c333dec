"""Analytics module for crash-to-region aggregation"""

from .aggregation import (
    aggregate_choropleth,
    aggregate_minicharts,
    aggregate_monthly_series,
    assign_regions,
    load_population_table,
)

__all__ = [
    "aggregate_choropleth",
    "aggregate_minicharts",
    "aggregate_monthly_series",
    "assign_regions",
    "load_population_table",
]
