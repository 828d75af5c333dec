import pandas as pd
import pytest

from crashes.derive import filter_year
from crashes.loader import load_crash_table, normalize_columns


def test_load_csv_table(crash_csv):
    crashes = load_crash_table(crash_csv)
    assert len(crashes) == 5
    assert list(crashes.columns[:4]) == ["crash_id", "crash_date", "lat", "lon"]
    assert pd.api.types.is_datetime64_any_dtype(crashes["crash_date"])
    assert crashes.attrs["dropped_rows"] == 0
    assert isinstance(crashes.index, pd.RangeIndex)


def test_five_row_table_filtered_to_2019(crash_csv):
    assert len(filter_year(load_crash_table(crash_csv), 2019)) == 3


def test_fars_columns_are_renamed_and_sentinels_dropped(tmp_path):
    raw = pd.DataFrame(
        {
            "ST_CASE": [10001, 10002, 10003],
            "YEAR": [2019, 2019, 2019],
            "MONTH": [1, 7, 9],
            "DAY": [5, 14, 30],
            "LATITUDE": [33.5, 77.7777, 40.1],
            "LONGITUD": [-86.8, 777.7777, -82.9],
            "STATENAME": ["Alabama", "Alabama", "Ohio"],
            "FATALS": [1, 2, 1],
        }
    )
    path = tmp_path / "fars.parquet"
    raw.to_parquet(path)

    crashes = load_crash_table(path)
    assert crashes["crash_id"].tolist() == [10001, 10003]
    assert crashes["crash_date"].dt.strftime("%Y-%m-%d").tolist() == ["2019-01-05", "2019-09-30"]
    assert crashes["state_name"].tolist() == ["Alabama", "Ohio"]
    assert crashes["fatalities"].tolist() == [1, 1]
    assert crashes.attrs["dropped_rows"] == 1


def test_normalize_columns_keeps_existing_canonical_names():
    df = pd.DataFrame({"lat": [1.0], "latitude": [2.0]})
    assert list(normalize_columns(df).columns) == ["lat", "latitude"]


def test_missing_file_names_the_path(tmp_path):
    missing = tmp_path / "nope.parquet"
    with pytest.raises(FileNotFoundError, match="nope.parquet"):
        load_crash_table(missing)


def test_unsupported_suffix(tmp_path):
    path = tmp_path / "crashes.xlsx"
    path.write_bytes(b"")
    with pytest.raises(ValueError, match=".xlsx"):
        load_crash_table(path)


def test_schema_mismatch_lists_missing_columns(tmp_path):
    path = tmp_path / "crashes.csv"
    pd.DataFrame({"crash_date": ["2019-01-01"], "speed": [55]}).to_csv(path, index=False)
    with pytest.raises(ValueError, match="lat, lon"):
        load_crash_table(path)
