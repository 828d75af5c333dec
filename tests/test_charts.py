import pandas as pd

from visualization.charts import create_statistics_charts
from crashes.dataset import CrashDataset


def test_statistics_charts(dataset):
    charts = create_statistics_charts(dataset, {"year": 2019})
    assert set(charts) == {"monthly_bar", "year_line", "season_pie", "hour_line", "state_bar"}


def test_year_line_ignores_the_year_filter(dataset):
    charts = create_statistics_charts(dataset, {"year": 2019})
    assert list(charts["year_line"].data[0].x) == [2015, 2018, 2019]


def test_optional_columns_are_skipped(sample_crashes):
    dataset = CrashDataset(sample_crashes.drop(columns=["hour", "state_name"]))
    charts = create_statistics_charts(dataset)
    assert "hour_line" not in charts
    assert "state_bar" not in charts
    assert "monthly_bar" in charts


def test_empty_selection_has_no_monthly_chart(dataset):
    charts = create_statistics_charts(dataset, {"year": 2000})
    assert "monthly_bar" not in charts
    assert "season_pie" not in charts


def test_state_bar_keeps_fifteen_named_states_when_blanks_lead():
    states = [f"S{index:02d}" for index in range(16)] + [""] * 5
    crashes = pd.DataFrame(
        {
            "crash_id": range(len(states)),
            "crash_date": pd.Timestamp("2019-07-01"),
            "lat": 32.0,
            "lon": -88.0,
            "state_name": states,
        }
    )
    charts = create_statistics_charts(CrashDataset(crashes), {"year": 2019})
    bars = list(charts["state_bar"].data[0].x)
    assert len(bars) == 15
    assert "" not in bars
    assert bars[0] == "S00" and bars[-1] == "S14"
