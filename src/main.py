"""
Streamlit preview of the fatal crash map slides
"""
import streamlit as st
from pathlib import Path
import sys

import folium
import plotly.graph_objects as go
from streamlit_folium import st_folium

# Add src to path
sys.path.insert(0, str(Path(__file__).parent))

from config import CRASH_TABLE_PATH, DECK_TITLE, FOCUS_YEAR, POPULATION_TABLE_PATH, SLIDES_DIR
from crashes.dataset import CrashDataset
from analytics.aggregation import load_population_table
from deck import DECK, build_summary_slide, build_visuals, deck_slides, load_deck_boundaries, with_summary_slide
from visualization.charts import create_statistics_charts
from visualization.slides import load_slides


# Page configuration
st.set_page_config(
    page_title=DECK_TITLE,
    page_icon="🗺️",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource(show_spinner=False)
def get_dataset(path: str) -> CrashDataset:
    return CrashDataset(path=path)


@st.cache_resource(show_spinner=False)
def get_boundaries():
    return load_deck_boundaries()


@st.cache_resource(show_spinner=False)
def get_visuals(path: str, year: int):
    """Visuals are built once per crash table and year."""
    population = None
    if POPULATION_TABLE_PATH.exists():
        population = load_population_table(POPULATION_TABLE_PATH)
    return build_visuals(get_dataset(path), get_boundaries(), year=year, population=population)


def _show_visual(visual) -> None:
    if isinstance(visual, folium.Map):
        st_folium(visual, width=None, height=650, returned_objects=[])
    elif isinstance(visual, go.Figure):
        st.plotly_chart(visual, use_container_width=True)
    else:
        st.error(f"Cannot preview visual of type {type(visual).__name__}")


def page_slides(dataset: CrashDataset, year: int):
    """Page 1: Slide-by-slide preview"""
    with st.spinner("Building maps..."):
        visuals, messages = get_visuals(str(CRASH_TABLE_PATH), year)

    slides, skipped = deck_slides(load_slides(DECK, SLIDES_DIR), visuals)
    summary = build_summary_slide(dataset, get_boundaries()["state"], year=year)
    slides = with_summary_slide(slides, visuals, summary)

    titles = [f"{idx + 1}. {slide.title}" for idx, slide in enumerate(slides)]
    selected = st.sidebar.radio("Slide", titles)
    slide = slides[titles.index(selected)]

    st.title(slide.title)
    if slide.visual is not None:
        _show_visual(visuals[slide.visual])
    if slide.body:
        st.markdown(slide.body)
    if slide.notes:
        with st.expander("Speaker notes"):
            st.markdown(slide.notes)

    for message in dict.fromkeys(messages + skipped):
        st.warning(message)


def page_overview(dataset: CrashDataset, year: int):
    """Page 2: Headline numbers and charts"""
    st.title(f"📊 Fatal crashes in {year}")
    filters = {'year': year}
    summary = dataset.get_summary(filters)

    total_crashes = summary.get("total_crashes", 0)
    if total_crashes == 0:
        st.warning("No crashes recorded for this year")
        return

    metric_cols = st.columns(4)
    metric_cols[0].metric("Crashes", f"{total_crashes:,}")
    fatalities = summary.get("total_fatalities")
    metric_cols[1].metric("Fatalities", f"{fatalities:,}" if fatalities is not None else "—")
    summer_share = summary.get("summer_share")
    metric_cols[2].metric("Summer share", f"{summer_share:.0%}" if summer_share is not None else "—")
    metric_cols[3].metric("States", f"{summary.get('covered_states', 0)}")

    period_start = summary.get("period_start")
    period_end = summary.get("period_end")
    if period_start is not None and period_end is not None:
        st.caption(f"Period: {period_start:%Y-%m-%d} – {period_end:%Y-%m-%d}")

    charts = create_statistics_charts(dataset, filters)
    chart_order = ["monthly_bar", "season_pie", "hour_line", "year_line", "state_bar"]
    available_charts = [key for key in chart_order if key in charts]
    for i in range(0, len(available_charts), 2):
        cols = st.columns(2)
        for col, key in zip(cols, available_charts[i:i+2]):
            with col:
                st.plotly_chart(charts[key], use_container_width=True)


def main():
    """Main application"""

    st.sidebar.title(f"🗺️ {DECK_TITLE}")

    try:
        dataset = get_dataset(str(CRASH_TABLE_PATH))
    except (FileNotFoundError, ValueError) as e:
        st.error(f"Could not load the crash table: {e}")
        st.stop()

    years = dataset.get_distinct_values("year")
    default_index = years.index(FOCUS_YEAR) if FOCUS_YEAR in years else len(years) - 1
    year = st.sidebar.selectbox("Year", years, index=max(default_index, 0))

    page = st.sidebar.radio("View", ["🎞️ Slides", "📊 Overview"])
    st.sidebar.divider()

    try:
        if page == "🎞️ Slides":
            page_slides(dataset, int(year))
        else:
            page_overview(dataset, int(year))
    except (RuntimeError, ValueError) as e:
        st.error(f"Could not build the slides: {e}")

    st.sidebar.caption(f"Data: {Path(CRASH_TABLE_PATH).name}")


if __name__ == "__main__":
    main()
