from datetime import date, datetime

import pytest

from expense_tracker.categories import get_category
from expense_tracker.models import Expense

TODAY = date(2024, 3, 15)


def make_expense(expense_id, amount, description, category, when, created_at=None):
    created = created_at or datetime(2024, 1, 1, 12, 0)
    return Expense(
        id=expense_id,
        amount=amount,
        description=description,
        category=get_category(category),
        date=when if isinstance(when, date) else date.fromisoformat(when),
        created_at=created,
        updated_at=created,
    )


@pytest.fixture
def sample_expenses():
    return [
        make_expense('1', 100.0, 'Groceries', 'food', '2024-03-02'),
        make_expense('2', 50.0, 'Morning coffee', 'food', '2024-03-10'),
        make_expense('3', 25.0, 'Bus ticket', 'transportation', '2024-02-20'),
        make_expense('4', 150.0, 'Concert', 'entertainment', '2024-02-05'),
        make_expense('5', 200.0, 'Electricity', 'bills', '2023-12-28'),
    ]
