import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import box

from crashes.dataset import CrashDataset


@pytest.fixture
def sample_crashes() -> pd.DataFrame:
    """Five crashes in two neighbouring squares, years 2015/2019/2019/2018/2019."""
    return pd.DataFrame(
        {
            "crash_id": [1, 2, 3, 4, 5],
            "crash_date": pd.to_datetime(
                ["2015-03-10", "2019-06-15", "2019-12-01", "2018-07-04", "2019-08-20"]
            ),
            "lat": [32.0, 33.0, 31.0, 34.0, 32.0],
            "lon": [-88.0, -82.0, -86.0, -84.0, -83.0],
            "state_name": ["Alpha", "Beta", "Alpha", "Beta", "Beta"],
            "fatalities": [1, 2, 1, 1, 3],
            "hour": [8, 17, 23, 2, 17],
        }
    )


@pytest.fixture
def square_boundaries() -> gpd.GeoDataFrame:
    """Two squares sharing the meridian -85."""
    return gpd.GeoDataFrame(
        {
            "geoid": ["01", "02"],
            "state_fips": ["01", "02"],
            "name": ["Alpha", "Beta"],
            "label": ["Alpha", "Beta"],
            "level": ["state", "state"],
        },
        geometry=[box(-90, 30, -85, 35), box(-85, 30, -80, 35)],
        crs="EPSG:4326",
    )


@pytest.fixture
def dataset(sample_crashes) -> CrashDataset:
    return CrashDataset(sample_crashes)


@pytest.fixture
def crash_csv(tmp_path, sample_crashes):
    path = tmp_path / "crashes.csv"
    sample_crashes.to_csv(path, index=False)
    return path
