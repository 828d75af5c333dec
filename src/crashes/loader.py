"""
Loader for the serialized fatal crash table produced by the upstream ETL step
"""
from pathlib import Path
from typing import Dict, List

import numpy as np
import pandas as pd

from config import CRASH_TABLE_PATH
from .schema import (
    COLUMN_ALIASES,
    FARS_UNKNOWN_LAT,
    LAT_RANGE,
    LON_RANGE,
    OPTIONAL_COLUMNS,
    REQUIRED_COLUMNS,
)


def _read_table(path: Path) -> pd.DataFrame:
    """Read a table based on its file extension."""
    suffix = path.suffix.lower()
    if suffix == ".parquet":
        return pd.read_parquet(path)
    if suffix == ".feather":
        return pd.read_feather(path)
    if suffix in (".pkl", ".pickle"):
        return pd.read_pickle(path)
    if suffix == ".csv":
        return pd.read_csv(path, low_memory=False)
    raise ValueError(f"Unsupported crash table format: {suffix or '(none)'} ({path})")


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Rename source columns to canonical names without clobbering existing ones."""
    renames: Dict[str, str] = {}
    taken = set(df.columns)
    for column in df.columns:
        target = COLUMN_ALIASES.get(column)
        if target is None or target in taken or target in renames.values():
            continue
        renames[column] = target
    return df.rename(columns=renames)


def _assemble_crash_date(df: pd.DataFrame) -> pd.Series:
    """Build crash dates from year/month/day parts."""
    parts = pd.DataFrame(
        {
            "year": pd.to_numeric(df["year"], errors="coerce"),
            "month": pd.to_numeric(df["month"], errors="coerce"),
            "day": pd.to_numeric(df["day"], errors="coerce"),
        }
    )
    return pd.to_datetime(parts, errors="coerce")


def validate_schema(df: pd.DataFrame) -> None:
    """Raise when the canonical columns cannot be found."""
    missing: List[str] = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(
            "Crash table is missing required column(s): "
            + ", ".join(missing)
            + f"; available columns: {', '.join(map(str, df.columns))}"
        )


def prepare_crash_dataframe(raw: pd.DataFrame) -> pd.DataFrame:
    """Standardize a raw crash table into the canonical layout."""
    df = normalize_columns(raw.copy())

    if "crash_date" not in df.columns and {"year", "month", "day"}.issubset(df.columns):
        df["crash_date"] = _assemble_crash_date(df)
    if "crash_id" not in df.columns:
        df["crash_id"] = np.arange(1, len(df) + 1)

    validate_schema(df)

    df["crash_date"] = pd.to_datetime(df["crash_date"], errors="coerce")
    df["lat"] = pd.to_numeric(df["lat"], errors="coerce")
    df["lon"] = pd.to_numeric(df["lon"], errors="coerce")

    valid = (
        df["crash_date"].notna()
        & df["lat"].between(*LAT_RANGE)
        & df["lon"].between(*LON_RANGE)
        & ~df["lat"].round(4).isin(FARS_UNKNOWN_LAT)
    )
    dropped = int((~valid).sum())
    df = df[valid].reset_index(drop=True)

    if "state_name" in df.columns:
        df["state_name"] = df["state_name"].fillna("").astype(str).str.strip()
    for col in ("state_fips", "county_fips", "fatalities", "hour"):
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce").round().astype("Int64")

    ordered = REQUIRED_COLUMNS + [col for col in OPTIONAL_COLUMNS if col in df.columns]
    extras = [col for col in df.columns if col not in ordered]
    df = df[ordered + extras]
    df.attrs["dropped_rows"] = dropped
    return df


def load_crash_table(path: str | Path | None = None) -> pd.DataFrame:
    """
    Load the serialized crash table.

    Args:
        path: Table location; defaults to ``CRASH_TABLE_PATH``. Parquet,
            Feather, pickle and CSV files are supported.

    Returns:
        DataFrame in the canonical layout. Rows without a usable date or
        position are dropped; their count is kept in ``attrs["dropped_rows"]``.
    """
    table_path = Path(path) if path is not None else CRASH_TABLE_PATH
    if not table_path.exists():
        raise FileNotFoundError(f"Crash table not found: {table_path}")
    return prepare_crash_dataframe(_read_table(table_path))
