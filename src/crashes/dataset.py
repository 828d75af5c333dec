"""
Read-only access to the crash snapshot used by every slide
"""
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from config import CRASH_TABLE_PATH
from .derive import add_time_columns, assign_season
from .loader import load_crash_table
from .schema import MONTH_LABELS, SEASON_SUMMER, SEASONS


class CrashDataset:
    """Holds one crash snapshot and answers the queries the slides need"""

    def __init__(
        self,
        crashes: Optional[pd.DataFrame] = None,
        *,
        path: str | Path = CRASH_TABLE_PATH,
    ):
        """Wrap ``crashes`` or load the table stored at ``path``."""
        if crashes is None:
            crashes = load_crash_table(path)
        dropped = crashes.attrs.get("dropped_rows", 0)
        self._crashes = add_time_columns(crashes).reset_index(drop=True)
        self.dropped_rows = int(dropped)

    def __len__(self) -> int:
        return len(self._crashes)

    @property
    def columns(self) -> List[str]:
        return list(self._crashes.columns)

    def _apply_filters(
        self,
        df: pd.DataFrame,
        filters: Optional[Dict[str, Any]] = None,
    ) -> pd.DataFrame:
        """Apply common filter clauses to a crash frame."""
        if not filters:
            return df

        year = filters.get("year")
        if year is not None:
            df = df[df["year"] == int(year)]

        years = filters.get("years")
        if years:
            df = df[df["year"].isin([int(y) for y in years])]

        months = filters.get("months")
        if months:
            df = df[df["month"].isin([int(m) for m in months])]

        season = filters.get("season")
        if season:
            key = str(season).strip().lower()
            if key not in SEASONS:
                raise ValueError(f"Unknown season {season!r}; expected one of {SEASONS}")
            df = df[df["season"] == key]

        states = filters.get("states")
        if states:
            if "state_name" not in df.columns:
                raise ValueError("State filter requested but the crash table has no state_name column")
            df = df[df["state_name"].isin(states)]

        return df

    def get_crashes_dataframe(
        self,
        filters: Optional[Dict[str, Any]] = None,
        *,
        columns: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> pd.DataFrame:
        """Get crashes as a new DataFrame with optional filters and limits."""
        df = self._apply_filters(self._crashes, filters)
        if columns:
            unknown = [col for col in columns if col not in df.columns]
            if unknown:
                raise ValueError(f"Invalid column requested: {', '.join(unknown)}")
            df = df[list(columns)]
        if limit is not None and int(limit) > 0:
            df = df.head(int(limit))
        return df.reset_index(drop=True).copy()

    def get_summary(
        self,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Compute headline numbers for the current filter selection."""
        df = self._apply_filters(self._crashes, filters)
        total = len(df)
        fatalities = None
        if "fatalities" in df.columns:
            fatalities = int(df["fatalities"].fillna(0).sum())
        covered_states = 0
        if "state_name" in df.columns:
            covered_states = int(df.loc[df["state_name"] != "", "state_name"].nunique())
        summer_share = (
            float((df["season"] == SEASON_SUMMER).sum()) / total if total else None
        )
        return {
            "total_crashes": total,
            "total_fatalities": fatalities,
            "covered_states": covered_states,
            "period_start": df["crash_date"].min() if total else None,
            "period_end": df["crash_date"].max() if total else None,
            "summer_share": summer_share,
        }

    def get_monthly_counts(
        self,
        filters: Optional[Dict[str, Any]] = None,
    ) -> pd.DataFrame:
        """Crash counts for every calendar month, zero-filled."""
        df = self._apply_filters(self._crashes, filters)
        counts = df.groupby("month").size().reindex(range(1, 13), fill_value=0)
        monthly = counts.rename("crash_count").rename_axis("month").reset_index()
        monthly["month_label"] = [MONTH_LABELS[m - 1] for m in monthly["month"]]
        monthly["season"] = assign_season(monthly["month"])
        return monthly[["month", "month_label", "season", "crash_count"]]

    def get_yearly_counts(
        self,
        filters: Optional[Dict[str, Any]] = None,
    ) -> pd.DataFrame:
        """Crash counts per year, ascending."""
        df = self._apply_filters(self._crashes, filters)
        return (
            df.groupby("year")
            .size()
            .rename("crash_count")
            .rename_axis("year")
            .reset_index()
            .sort_values("year")
            .reset_index(drop=True)
        )

    def get_counts_by_field(
        self,
        column_name: str,
        filters: Optional[Dict[str, Any]] = None,
        *,
        limit: Optional[int] = None,
    ) -> pd.DataFrame:
        """Aggregate crash counts based on a categorical column."""
        if column_name not in self._crashes.columns:
            raise ValueError(f"Invalid column requested for aggregation: {column_name}")
        df = self._apply_filters(self._crashes, filters)
        counts = (
            df[df[column_name].notna()]
            .groupby(column_name)
            .size()
            .rename("crash_count")
            .reset_index()
            .sort_values(["crash_count", column_name], ascending=[False, True])
            .reset_index(drop=True)
        )
        if limit:
            counts = counts.head(int(limit))
        return counts

    def get_distinct_values(self, column_name: str) -> List[Any]:
        """Get distinct non-null values for a column, sorted."""
        if column_name not in self._crashes.columns:
            raise ValueError(f"Invalid column requested: {column_name}")
        return sorted(self._crashes[column_name].dropna().unique().tolist())
