"""
Statistical charts for fatal crash data
"""
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
from typing import Dict, Optional

from config import SEASON_COLORS
from crashes.dataset import CrashDataset
from crashes.schema import MONTH_LABELS, SEASONS


def create_statistics_charts(
    dataset: CrashDataset,
    filters: Optional[Dict[str, object]] = None,
) -> Dict[str, go.Figure]:
    """
    Create the summary charts shown next to the maps.

    Args:
        dataset: Crash snapshot.
        filters: Optional filter dictionary shared with the map slides.

    Returns:
        Dictionary mapping chart keys to Plotly Figure objects. Charts whose
        source column is absent or empty are left out.
    """
    charts: Dict[str, go.Figure] = {}

    # 1. Crashes by Month (Bar Chart, colored by season)
    monthly_df = dataset.get_monthly_counts(filters)
    if monthly_df['crash_count'].sum() > 0:
        fig_monthly = px.bar(
            monthly_df,
            x='month_label',
            y='crash_count',
            color='season',
            color_discrete_map=SEASON_COLORS,
            category_orders={'month_label': MONTH_LABELS, 'season': SEASONS},
            title='Fatal crashes by month',
            labels={'month_label': 'Month', 'crash_count': 'Crashes', 'season': 'Season'},
        )
        fig_monthly.update_layout(height=400)
        charts['monthly_bar'] = fig_monthly

    # 2. Crashes per Year (Line Chart); the year filter would leave one point
    year_filters = {k: v for k, v in (filters or {}).items() if k not in ('year', 'years')}
    yearly_df = dataset.get_yearly_counts(year_filters)
    if not yearly_df.empty:
        fig_year = px.line(
            yearly_df,
            x='year',
            y='crash_count',
            title='Fatal crashes per year',
            labels={'year': 'Year', 'crash_count': 'Crashes'},
            markers=True,
        )
        fig_year.update_xaxes(dtick=1)
        fig_year.update_layout(height=400)
        charts['year_line'] = fig_year

    # 3. Season Split (Pie Chart)
    season_df = dataset.get_counts_by_field('season', filters=filters)
    if not season_df.empty:
        fig_season = px.pie(
            season_df,
            values='crash_count',
            names='season',
            title='Summer (May–Oct) vs. winter',
            color='season',
            color_discrete_map=SEASON_COLORS,
        )
        fig_season.update_traces(textposition='inside', textinfo='percent+label')
        fig_season.update_layout(height=400)
        charts['season_pie'] = fig_season

    # 4. Crashes by Hour of Day (Line Chart)
    if 'hour' in dataset.columns:
        hour_df = dataset.get_crashes_dataframe(filters, columns=['hour'])
        hours = pd.to_numeric(hour_df['hour'], errors='coerce').dropna()
        hours = hours[(hours >= 0) & (hours <= 23)].astype(int)
        if not hours.empty:
            hour_counts = (
                hours.value_counts()
                .reindex(range(24), fill_value=0)
                .rename_axis('hour')
                .rename('crash_count')
                .reset_index()
            )
            fig_hour = px.line(
                hour_counts,
                x='hour',
                y='crash_count',
                title='Fatal crashes by hour of day',
                labels={'hour': 'Hour', 'crash_count': 'Crashes'},
                markers=True,
            )
            fig_hour.update_layout(height=400)
            charts['hour_line'] = fig_hour

    # 5. Top States (Bar Chart)
    if 'state_name' in dataset.columns:
        state_df = dataset.get_counts_by_field('state_name', filters=filters)
        state_chart = state_df.loc[lambda df_: df_['state_name'].astype(str).str.strip() != ""].head(15)
        if not state_chart.empty:
            fig_state = px.bar(
                state_chart,
                x='state_name',
                y='crash_count',
                title='Fatal crashes by state (top 15)',
                labels={'state_name': 'State', 'crash_count': 'Crashes'},
                color='crash_count',
                color_continuous_scale='Reds',
            )
            fig_state.update_layout(xaxis_tickangle=-45, height=400)
            charts['state_bar'] = fig_state

    return charts
