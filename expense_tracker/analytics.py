"""Expense analytics and summary calculations.

Every function in this module is pure: it takes the full expense
collection (plus an optional parameter set) and returns a derived value
without mutating its input. All aggregates degrade to zero or an empty
result for an empty collection.

Functions that depend on the current calendar month accept an optional
``today`` argument. When omitted the host's local date is used.
"""

from __future__ import annotations

import calendar
import math
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .categories import EXPENSE_CATEGORIES, Category, CategoryId, parse_category_id
from .config import PAGINATION
from .models import DateLike, Expense, parse_date

FRAME_COLUMNS = ['id', 'Date', 'Description', 'Category', 'Category Name', 'Amount']
SORT_FIELDS = ('date', 'amount', 'description', 'category')


@dataclass(frozen=True)
class SpendingSummary:
    current_month_total: float
    all_time_total: float
    expense_count: int
    average_amount: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CategoryBreakdown:
    category: Category
    total: float
    percentage: float
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'category': self.category.to_dict(),
            'total': self.total,
            'percentage': self.percentage,
            'count': self.count,
        }


@dataclass(frozen=True)
class MonthlyTrend:
    current_month_total: float
    previous_month_total: float
    change_percentage: float
    trend: str  # 'up' | 'down' | 'same'

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ExpenseFilters:
    """Optional, independently combinable filter criteria."""
    query: Optional[str] = None
    category_id: Optional[Union[str, CategoryId]] = None
    start_date: Optional[DateLike] = None
    end_date: Optional[DateLike] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None


def _total(expenses: Sequence[Expense]) -> float:
    return sum((expense.amount for expense in expenses), 0.0)


def _month_bounds(year: int, month: int) -> Tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def current_month_bounds(today: Optional[date] = None) -> Tuple[date, date]:
    """First and last calendar day of the month containing ``today``."""
    today = today or date.today()
    return _month_bounds(today.year, today.month)


def previous_month_bounds(today: Optional[date] = None) -> Tuple[date, date]:
    """First and last calendar day of the month before the one containing ``today``."""
    today = today or date.today()
    last_of_previous = today.replace(day=1) - timedelta(days=1)
    return _month_bounds(last_of_previous.year, last_of_previous.month)


def get_expenses_by_date_range(
    expenses: Sequence[Expense],
    start_date: DateLike,
    end_date: DateLike,
) -> List[Expense]:
    """Return expenses dated within ``[start_date, end_date]`` (both inclusive)."""
    start = parse_date(start_date)
    end = parse_date(end_date)
    return [expense for expense in expenses if start <= expense.date <= end]


def get_expenses_by_category(
    expenses: Sequence[Expense],
    category_id: Union[str, CategoryId],
) -> List[Expense]:
    wanted = parse_category_id(category_id)
    return [expense for expense in expenses if expense.category.id == wanted]


def get_current_month_expenses(
    expenses: Sequence[Expense], today: Optional[date] = None
) -> List[Expense]:
    start, end = current_month_bounds(today)
    return get_expenses_by_date_range(expenses, start, end)


def get_previous_month_expenses(
    expenses: Sequence[Expense], today: Optional[date] = None
) -> List[Expense]:
    start, end = previous_month_bounds(today)
    return get_expenses_by_date_range(expenses, start, end)


def calculate_spending_summary(
    expenses: Sequence[Expense], today: Optional[date] = None
) -> SpendingSummary:
    """Current-month total, all-time total, count and average amount."""
    current_month_total = _total(get_current_month_expenses(expenses, today))
    all_time_total = _total(expenses)
    expense_count = len(expenses)
    average_amount = all_time_total / expense_count if expense_count > 0 else 0.0

    return SpendingSummary(
        current_month_total=current_month_total,
        all_time_total=all_time_total,
        expense_count=expense_count,
        average_amount=average_amount,
    )


def expenses_to_frame(expenses: Sequence[Expense]) -> pd.DataFrame:
    """Tabular view of the expense collection, one row per expense."""
    if not expenses:
        frame = pd.DataFrame(columns=FRAME_COLUMNS)
        frame['Amount'] = frame['Amount'].astype(float)
        frame['Date'] = pd.to_datetime(frame['Date'])
        return frame
    frame = pd.DataFrame([
        {
            'id': expense.id,
            'Date': expense.date,
            'Description': expense.description,
            'Category': expense.category.id.value,
            'Category Name': expense.category.name,
            'Amount': float(expense.amount),
        }
        for expense in expenses
    ], columns=FRAME_COLUMNS)
    frame['Date'] = pd.to_datetime(frame['Date'])
    return frame


def calculate_category_breakdown(expenses: Sequence[Expense]) -> List[CategoryBreakdown]:
    """Per-category totals, share of all-time spending and counts.

    Categories without spending are left out. The result is ordered by
    total, highest first; equal totals keep registry order.
    """
    all_time_total = _total(expenses)
    frame = expenses_to_frame(expenses)
    registry_ids = [category.id.value for category in EXPENSE_CATEGORIES]

    grouped = (
        frame.groupby('Category')['Amount']
        .agg(['sum', 'count'])
        .reindex(registry_ids, fill_value=0)
    )
    grouped['percentage'] = np.where(
        all_time_total > 0, grouped['sum'] / (all_time_total or 1.0) * 100, 0.0
    )
    grouped = grouped[grouped['sum'] > 0].sort_values('sum', ascending=False, kind='stable')

    by_id = {category.id.value: category for category in EXPENSE_CATEGORIES}
    return [
        CategoryBreakdown(
            category=by_id[category_id],
            total=float(row['sum']),
            percentage=float(row['percentage']),
            count=int(row['count']),
        )
        for category_id, row in grouped.iterrows()
    ]


def calculate_monthly_trend(
    expenses: Sequence[Expense], today: Optional[date] = None
) -> MonthlyTrend:
    """Compare current and previous calendar month totals.

    A previous month with no spending reports a 100% increase whenever
    the current month has spending.
    """
    current_month_total = _total(get_current_month_expenses(expenses, today))
    previous_month_total = _total(get_previous_month_expenses(expenses, today))

    change_percentage = 0.0
    trend = 'same'

    if previous_month_total > 0:
        change_percentage = (current_month_total - previous_month_total) / previous_month_total * 100
        if change_percentage > 0:
            trend = 'up'
        elif change_percentage < 0:
            trend = 'down'
    elif current_month_total > 0:
        change_percentage = 100.0
        trend = 'up'

    return MonthlyTrend(
        current_month_total=current_month_total,
        previous_month_total=previous_month_total,
        change_percentage=abs(change_percentage),
        trend=trend,
    )


def get_top_spending_categories(
    expenses: Sequence[Expense], limit: int = 5
) -> List[CategoryBreakdown]:
    return calculate_category_breakdown(expenses)[:limit]


def get_current_month_daily_average(
    expenses: Sequence[Expense], today: Optional[date] = None
) -> float:
    """Current-month spending divided by the days elapsed so far."""
    today = today or date.today()
    current_month_total = _total(get_current_month_expenses(expenses, today))
    return current_month_total / today.day if today.day > 0 else 0.0


def get_projected_month_total(
    expenses: Sequence[Expense], today: Optional[date] = None
) -> float:
    """Daily average extrapolated over the whole current month."""
    today = today or date.today()
    days_in_month = calendar.monthrange(today.year, today.month)[1]
    return get_current_month_daily_average(expenses, today) * days_in_month


def calculate_monthly_totals(
    expenses: Sequence[Expense], months: int = 6, today: Optional[date] = None
) -> pd.DataFrame:
    """Spending per calendar month for the ``months`` months ending with the current one."""
    today = today or date.today()
    current = pd.Period(year=today.year, month=today.month, freq='M')
    periods = pd.period_range(end=current, periods=months, freq='M')
    frame = expenses_to_frame(expenses)
    frame['Period'] = frame['Date'].dt.to_period('M')

    monthly = (
        frame.groupby('Period')['Amount']
        .agg(['sum', 'count'])
        .reindex(periods, fill_value=0)
    )
    result = pd.DataFrame({
        'Month': [str(period) for period in monthly.index],
        'Total': monthly['sum'].astype(float).values,
        'Count': monthly['count'].astype(int).values,
    })
    return result


def calculate_daily_totals(
    expenses: Sequence[Expense], today: Optional[date] = None
) -> pd.DataFrame:
    """Spending per day from the first of the current month through ``today``."""
    today = today or date.today()
    start, _ = current_month_bounds(today)
    days = pd.date_range(start=start, end=today, freq='D')
    frame = expenses_to_frame(get_expenses_by_date_range(expenses, start, today))

    daily = frame.groupby('Date')['Amount'].sum().reindex(days, fill_value=0.0)
    return pd.DataFrame({'Date': daily.index, 'Total': daily.astype(float).values})


def search_expenses(expenses: Sequence[Expense], query: Optional[str]) -> List[Expense]:
    """Case-insensitive match against description or category name.

    A blank query returns the collection unfiltered.
    """
    if not query or not query.strip():
        return list(expenses)

    term = query.lower().strip()
    return [
        expense for expense in expenses
        if term in expense.description.lower() or term in expense.category.name.lower()
    ]


def filter_expenses(
    expenses: Sequence[Expense],
    filters: Union[ExpenseFilters, Mapping[str, Any], None] = None,
) -> List[Expense]:
    """Apply every supplied criterion in turn (AND semantics).

    The date criterion applies only when both ``start_date`` and
    ``end_date`` are given.
    """
    if filters is None:
        filters = ExpenseFilters()
    elif isinstance(filters, Mapping):
        filters = ExpenseFilters(**filters)

    filtered = list(expenses)

    if filters.query:
        filtered = search_expenses(filtered, filters.query)

    if filters.category_id:
        filtered = get_expenses_by_category(filtered, filters.category_id)

    if filters.start_date and filters.end_date:
        filtered = get_expenses_by_date_range(filtered, filters.start_date, filters.end_date)

    if filters.min_amount is not None:
        filtered = [expense for expense in filtered if expense.amount >= filters.min_amount]

    if filters.max_amount is not None:
        filtered = [expense for expense in filtered if expense.amount <= filters.max_amount]

    return filtered


def sort_expenses(
    expenses: Sequence[Expense], field: str = 'date', direction: str = 'desc'
) -> List[Expense]:
    """Order expenses by date, amount, description or category name."""
    if field not in SORT_FIELDS:
        raise ValueError(f"Unsupported sort field '{field}'")
    if direction not in ('asc', 'desc'):
        raise ValueError(f"Unsupported sort direction '{direction}'")

    keys = {
        'date': lambda expense: expense.date,
        'amount': lambda expense: expense.amount,
        'description': lambda expense: expense.description.lower(),
        'category': lambda expense: expense.category.name.lower(),
    }
    return sorted(expenses, key=keys[field], reverse=direction == 'desc')


def paginate_expenses(
    expenses: Sequence[Expense], page: int = 1, page_size: Optional[int] = None
) -> Tuple[List[Expense], int]:
    """Slice one page out of ``expenses``.

    ``page`` is 1-based and clamped to the available pages; ``page_size``
    defaults to and is capped by the ``PAGINATION`` settings. Returns the
    page and the total number of pages (at least 1).
    """
    size = page_size or PAGINATION['default_page_size']
    size = max(1, min(size, PAGINATION['max_page_size']))
    total_pages = max(1, math.ceil(len(expenses) / size))
    page = min(max(1, page), total_pages)
    start = (page - 1) * size
    return list(expenses[start:start + size]), total_pages
