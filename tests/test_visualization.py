import pandas as pd

from expense_tracker import analytics, visualization as viz
from expense_tracker.analytics import MonthlyTrend

from conftest import TODAY


def test_empty_inputs_yield_placeholder_figures():
    assert viz.create_category_pie_chart([]).layout.title.text == "No data to display"
    assert viz.create_category_bar_chart([]).layout.title.text == "No data to display"
    empty = pd.DataFrame(columns=['Month', 'Total'])
    assert viz.create_monthly_totals_chart(empty).layout.title.text == "No data to display"


def test_pie_chart_uses_registry_colors(sample_expenses):
    breakdown = analytics.calculate_category_breakdown(sample_expenses)
    fig = viz.create_category_pie_chart(breakdown)
    assert len(fig.data) == 1
    assert set(fig.data[0].labels) == {item.category.name for item in breakdown}


def test_bar_chart_has_one_trace_per_category(sample_expenses):
    breakdown = analytics.calculate_category_breakdown(sample_expenses)
    fig = viz.create_category_bar_chart(breakdown)
    assert len(fig.data) == len(breakdown)


def test_monthly_and_daily_charts(sample_expenses):
    monthly = analytics.calculate_monthly_totals(sample_expenses, months=3, today=TODAY)
    fig = viz.create_monthly_totals_chart(monthly)
    assert list(fig.data[0].x) == ['2024-01', '2024-02', '2024-03']

    daily = analytics.calculate_daily_totals(sample_expenses, today=TODAY)
    fig = viz.create_daily_spending_chart(daily)
    assert [trace.name for trace in fig.data] == ['Daily', 'Cumulative']
    assert fig.data[1].y[-1] == 150.0


def test_trend_indicator():
    trend = MonthlyTrend(current_month_total=150.0, previous_month_total=25.0, change_percentage=500.0, trend='up')
    fig = viz.create_trend_indicator(trend)
    assert fig.data[0].value == 150.0
    assert fig.data[0].delta.reference == 25.0
