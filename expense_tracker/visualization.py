"""Plotly visualisation helpers for the expense tracker.

Each function accepts a value returned by :mod:`expense_tracker.analytics`
and produces an interactive Plotly figure that Streamlit can render via
``st.plotly_chart``. Empty input yields an empty figure titled
"No data to display".
"""

from __future__ import annotations

from typing import List, Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .analytics import CategoryBreakdown, MonthlyTrend
from .categories import category_colors


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def _breakdown_frame(breakdown: Sequence[CategoryBreakdown]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                'Category': item.category.name,
                'Total': item.total,
                'Percentage': item.percentage,
                'Count': item.count,
            }
            for item in breakdown
        ],
        columns=['Category', 'Total', 'Percentage', 'Count'],
    )


def create_category_pie_chart(
    breakdown: Sequence[CategoryBreakdown], title: str | None = None
) -> go.Figure:
    """Pie chart of spending share per category, in registry colors.

    Parameters
    ----------
    breakdown : sequence of CategoryBreakdown
        Output of :func:`analytics.calculate_category_breakdown`.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Pie chart.
    """
    if not breakdown:
        return _empty_figure()
    df = _breakdown_frame(breakdown)
    fig = px.pie(
        df,
        names='Category',
        values='Total',
        color='Category',
        color_discrete_map=category_colors(),
    )
    fig.update_traces(textposition='inside', textinfo='percent+label')
    fig.update_layout(title=title or "Spending by category")
    return fig


def create_category_bar_chart(
    breakdown: Sequence[CategoryBreakdown], title: str | None = None
) -> go.Figure:
    """Horizontal bar chart of category totals, highest first."""
    if not breakdown:
        return _empty_figure()
    df = _breakdown_frame(breakdown)
    fig = px.bar(
        df,
        x='Total',
        y='Category',
        orientation='h',
        color='Category',
        color_discrete_map=category_colors(),
        hover_data={'Percentage': ':.1f', 'Count': True},
    )
    fig.update_layout(
        title=title or "Category totals",
        xaxis_title="Total spent",
        yaxis_title="Category",
        yaxis={'categoryorder': 'total ascending'},
        showlegend=False,
    )
    return fig


def create_monthly_totals_chart(monthly: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Bar chart of spending per month.

    Parameters
    ----------
    monthly : pandas.DataFrame
        Output of :func:`analytics.calculate_monthly_totals` with
        ``Month`` and ``Total`` columns.
    """
    if monthly.empty:
        return _empty_figure()
    fig = px.bar(monthly, x='Month', y='Total')
    fig.update_layout(
        title=title or "Monthly spending",
        xaxis_title="Month",
        yaxis_title="Total spent",
    )
    return fig


def create_daily_spending_chart(daily: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Line chart of daily and cumulative spending for the current month."""
    if daily.empty:
        return _empty_figure()
    df = daily.copy()
    df['Cumulative'] = df['Total'].cumsum()
    fig = go.Figure()
    fig.add_trace(go.Bar(x=df['Date'], y=df['Total'], name="Daily"))
    fig.add_trace(go.Scatter(x=df['Date'], y=df['Cumulative'], name="Cumulative", mode='lines+markers'))
    fig.update_layout(
        title=title or "This month's spending",
        xaxis_title="Date",
        yaxis_title="Amount",
    )
    return fig


def create_trend_indicator(trend: MonthlyTrend, title: str | None = None) -> go.Figure:
    """Indicator comparing this month's total with last month's."""
    fig = go.Figure(go.Indicator(
        mode='number+delta',
        value=trend.current_month_total,
        number={'prefix': '$', 'valueformat': ',.2f'},
        delta={
            'reference': trend.previous_month_total,
            'valueformat': ',.2f',
            'increasing': {'color': '#ef4444'},
            'decreasing': {'color': '#10b981'},
        },
    ))
    fig.update_layout(title=title or "This month vs last month")
    return fig


__all__: List[str] = [
    'create_category_pie_chart',
    'create_category_bar_chart',
    'create_monthly_totals_chart',
    'create_daily_spending_chart',
    'create_trend_indicator',
]
