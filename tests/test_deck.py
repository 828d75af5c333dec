import pandas as pd
import pytest

import deck
from config import SLIDES_DIR
from crashes.dataset import CrashDataset
from deck import DECK, build_deck, build_summary_slide, build_visuals, deck_slides, with_summary_slide
from visualization.slides import Slide


@pytest.fixture
def boundary_sets(square_boundaries):
    return {"state": square_boundaries, "county": square_boundaries, "cd": square_boundaries}


def test_every_deck_slide_has_text():
    for name, _ in DECK:
        assert (SLIDES_DIR / f"{name}.md").exists(), name


def test_build_visuals(dataset, square_boundaries):
    visuals, warnings = build_visuals(dataset, {"state": square_boundaries}, year=2019)
    for name in (
        "points",
        "clusters",
        "heatmap",
        "season_heatmap",
        "state_choropleth",
        "season_minicharts",
        "monthly_animation",
        "monthly_bar",
        "state_bar",
    ):
        assert name in visuals
    assert "state_rate" not in visuals
    assert any("county" in message for message in warnings)
    assert any("cd" in message for message in warnings)


def test_build_visuals_with_population(dataset, boundary_sets):
    population = pd.DataFrame({"geoid": ["01", "02"], "population": [1_000_000, 2_000_000]})
    visuals, warnings = build_visuals(dataset, boundary_sets, year=2019, population=population)
    assert {"state_rate", "county_choropleth", "district_choropleth"} <= set(visuals)
    assert warnings == []


def test_build_visuals_errors(dataset, square_boundaries):
    with pytest.raises(ValueError, match="2000"):
        build_visuals(dataset, {"state": square_boundaries}, year=2000)
    with pytest.raises(ValueError, match="State boundaries"):
        build_visuals(dataset, {}, year=2019)


def test_summary_slide(dataset, square_boundaries):
    slide = build_summary_slide(dataset, square_boundaries, year=2019)
    assert slide.title == "2019 at a glance"
    assert "**3** fatal crashes" in slide.body
    assert "**6** people killed" in slide.body
    assert "**67%**" in slide.body
    assert "Beta (2)" in slide.body
    assert slide.visual is None


def test_summary_slide_leaves_out_states_without_crashes(sample_crashes, square_boundaries):
    beta_only = CrashDataset(sample_crashes[sample_crashes["lon"] > -85])
    slide = build_summary_slide(beta_only, square_boundaries, year=2019)
    assert "- Most crashes: Beta (2)" in slide.body
    assert "Alpha" not in slide.body
    assert slide.notes.startswith("1 of 2 states")


def test_deck_slides_drops_missing_visuals():
    slides = [Slide(title="Text"), Slide(title="Rates", visual="state_rate"), Slide(title="Map", visual="points")]
    kept, skipped = deck_slides(slides, {"points": object()})
    assert [s.title for s in kept] == ["Text", "Map"]
    assert len(skipped) == 1 and "state_rate" in skipped[0]


def test_summary_slide_follows_the_data_slide():
    slides = [Slide(title=name, visual=visual) for name, visual in DECK]
    summary = Slide(title="Summary")

    kept, _ = deck_slides(slides, {})
    titles = [s.title for s in with_summary_slide(kept, {}, summary)]
    assert titles == ["title", "data", "Summary", "thanks"]

    visuals = {"points": object(), "monthly_bar": object()}
    kept, _ = deck_slides(slides, visuals)
    titles = [s.title for s in with_summary_slide(kept, visuals, summary)]
    assert titles == ["title", "data", "Summary", "points", "monthly", "thanks"]


def test_build_deck(tmp_path, monkeypatch, crash_csv, boundary_sets):
    monkeypatch.setattr(deck, "POPULATION_TABLE_PATH", tmp_path / "no_population.csv")
    output = tmp_path / "deck" / "index.html"

    path, warnings = build_deck(output, crash_path=crash_csv, year=2019, boundaries=boundary_sets)

    assert path == output
    html = output.read_text(encoding="utf-8")
    assert "Reveal.initialize" in html
    assert "2019 at a glance" in html
    assert html.index("# The data") < html.index("2019 at a glance") < html.index("Every crash is a dot")
    assert any("state_rate" in message for message in warnings)


def test_build_deck_missing_table(tmp_path, boundary_sets):
    with pytest.raises(FileNotFoundError):
        build_deck(tmp_path / "index.html", crash_path=tmp_path / "none.csv", boundaries=boundary_sets)


def test_build_deck_reports_rows_dropped_for_bad_dates(tmp_path, monkeypatch, crash_csv, boundary_sets):
    monkeypatch.setattr(deck, "POPULATION_TABLE_PATH", tmp_path / "no_population.csv")
    with crash_csv.open("a", encoding="utf-8") as handle:
        handle.write("6,not a date,32.5,-87.0,Alpha,1,9\n")

    _, warnings = build_deck(tmp_path / "index.html", crash_path=crash_csv, year=2019, boundaries=boundary_sets)

    assert "1 crash rows without a usable date or position were dropped." in warnings
