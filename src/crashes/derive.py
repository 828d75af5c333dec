"""Calendar columns and simple filters for crash tables."""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd

from .schema import DERIVED_COLUMNS, SEASON_SUMMER, SEASON_WINTER, SEASONS, SUMMER_MONTHS


def season_for_month(month: Any) -> str:
    """Return ``"summer"`` for May through October and ``"winter"`` otherwise."""

    if isinstance(month, bool):
        raise ValueError(f"Invalid month: {month!r}")
    try:
        month_value = int(month)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid month: {month!r}") from exc
    if month_value != month or not 1 <= month_value <= 12:
        raise ValueError(f"Invalid month: {month!r}")
    return SEASON_SUMMER if month_value in SUMMER_MONTHS else SEASON_WINTER


def assign_season(months: pd.Series) -> pd.Series:
    """Vectorized :func:`season_for_month` over a Series of months."""

    numeric = pd.to_numeric(months, errors="coerce")
    invalid = numeric.isna() | ~numeric.isin(range(1, 13))
    if invalid.any():
        bad_values = sorted({str(v) for v in months[invalid].tolist()})
        raise ValueError(f"Invalid month value(s): {', '.join(bad_values)}")

    in_summer = numeric.between(SUMMER_MONTHS.start, SUMMER_MONTHS.stop - 1)
    return pd.Series(
        np.where(in_summer, SEASON_SUMMER, SEASON_WINTER),
        index=months.index,
        name="season",
    )


def add_time_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy with ``year``, ``month`` and ``season`` derived from ``crash_date``."""

    if "crash_date" not in df.columns:
        raise ValueError("Cannot derive calendar columns without a crash_date column")

    # Source year/month columns are replaced, never trusted
    result = df.drop(columns=DERIVED_COLUMNS, errors="ignore")
    dates = pd.to_datetime(result["crash_date"], errors="coerce")
    if dates.isna().any():
        raise ValueError(
            f"crash_date has {int(dates.isna().sum())} missing or unparseable value(s)"
        )
    result["crash_date"] = dates
    result["year"] = dates.dt.year.astype(int)
    result["month"] = dates.dt.month.astype(int)
    result["season"] = assign_season(result["month"])
    return result


def filter_year(df: pd.DataFrame, year: int) -> pd.DataFrame:
    """Rows whose ``year`` equals ``year``."""

    if "year" not in df.columns:
        df = add_time_columns(df)
    return df[df["year"] == int(year)].reset_index(drop=True)


def filter_season(df: pd.DataFrame, season: str) -> pd.DataFrame:
    """Rows belonging to one season."""

    key = str(season).strip().lower()
    if key not in SEASONS:
        raise ValueError(f"Unknown season {season!r}; expected one of {SEASONS}")
    if "season" not in df.columns:
        df = add_time_columns(df)
    return df[df["season"] == key].reset_index(drop=True)
