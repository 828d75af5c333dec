"""Crash record loading, derivation and query helpers"""

from .dataset import CrashDataset
from .derive import add_time_columns, assign_season, filter_season, filter_year, season_for_month
from .loader import load_crash_table

__all__ = [
    "CrashDataset",
    "add_time_columns",
    "assign_season",
    "filter_season",
    "filter_year",
    "load_crash_table",
    "season_for_month",
]
