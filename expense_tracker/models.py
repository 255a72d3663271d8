"""Core data models for the expense tracker."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Union

import pandas as pd

from .categories import Category, CategoryId, get_category, parse_category_id
from .config import VALIDATION_RULES

DateLike = Union[str, date, datetime, pd.Timestamp]


class ExpenseValidationError(ValueError):
    """Raised when expense input violates a model invariant."""


def parse_date(value: DateLike) -> date:
    """Coerce ``value`` to a calendar date.

    ISO date-time strings are accepted and reduced to their date part.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        parsed = pd.to_datetime(value)
    except (ValueError, TypeError) as exc:
        raise ExpenseValidationError(f"Invalid date: {value!r}") from exc
    if parsed is None or pd.isna(parsed):
        raise ExpenseValidationError(f"Invalid date: {value!r}")
    return parsed.date()


def parse_timestamp(value: Optional[DateLike]) -> datetime:
    if value is None or value == '':
        return datetime.now()
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        parsed = pd.to_datetime(value)
    except (ValueError, TypeError) as exc:
        raise ExpenseValidationError(f"Invalid timestamp: {value!r}") from exc
    if pd.isna(parsed):
        raise ExpenseValidationError(f"Invalid timestamp: {value!r}")
    return parsed.to_pydatetime()


@dataclass
class Expense:
    """A single recorded spending event."""
    id: str
    amount: float
    description: str
    category: Category
    date: date
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if self.amount is None or not math.isfinite(self.amount) or not self.amount > 0:
            raise ExpenseValidationError("Amount must be greater than zero")
        if not self.description or not self.description.strip():
            raise ExpenseValidationError("Description is required")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON shape used by the API and local storage."""
        return {
            'id': self.id,
            'amount': self.amount,
            'description': self.description,
            'category': self.category.to_dict(),
            'date': self.date.isoformat(),
            'createdAt': self.created_at.isoformat(),
            'updatedAt': self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Expense":
        raw_category = data.get('category')
        if isinstance(raw_category, dict):
            raw_category = raw_category.get('id')
        try:
            category = get_category(raw_category)
        except ValueError as exc:
            raise ExpenseValidationError(str(exc)) from exc
        try:
            amount = float(data.get('amount'))
        except (TypeError, ValueError) as exc:
            raise ExpenseValidationError(f"Invalid amount: {data.get('amount')!r}") from exc
        if not math.isfinite(amount):
            raise ExpenseValidationError(f"Invalid amount: {data.get('amount')!r}")
        return cls(
            id=str(data['id']),
            amount=amount,
            description=str(data.get('description') or ''),
            category=category,
            date=parse_date(data.get('date')),
            created_at=parse_timestamp(data.get('createdAt')),
            updated_at=parse_timestamp(data.get('updatedAt')),
        )


@dataclass(frozen=True)
class ExpenseFormData:
    """Validated user input for creating or editing an expense."""
    amount: float
    description: str
    category: CategoryId
    date: date

    @classmethod
    def create(
        cls,
        amount: Union[str, float, int, None],
        description: Optional[str],
        category: Union[str, CategoryId, None],
        date_value: Optional[DateLike],
        today: Optional[date] = None,
    ) -> "ExpenseFormData":
        """Coerce raw form values and apply the validation rules.

        Raises:
            ExpenseValidationError: With a message suitable for display.
        """
        amount_rules = VALIDATION_RULES['amount']
        description_rules = VALIDATION_RULES['description']

        if amount is None or (isinstance(amount, str) and not amount.strip()):
            raise ExpenseValidationError("Amount is required")
        try:
            parsed_amount = round(float(amount), 2)
        except (TypeError, ValueError):
            raise ExpenseValidationError("Amount must be a number") from None
        if not math.isfinite(parsed_amount):
            raise ExpenseValidationError("Amount must be a number")
        if parsed_amount < amount_rules['min']:
            raise ExpenseValidationError(f"Amount must be at least {amount_rules['min']:.2f}")
        if parsed_amount > amount_rules['max']:
            raise ExpenseValidationError(f"Amount cannot exceed {amount_rules['max']:,.2f}")

        text = (description or '').strip()
        if len(text) < description_rules['min_length']:
            raise ExpenseValidationError("Description is required")
        if len(text) > description_rules['max_length']:
            raise ExpenseValidationError(
                f"Description must be {description_rules['max_length']} characters or fewer"
            )

        if category is None or (isinstance(category, str) and not category.strip()):
            raise ExpenseValidationError("Category is required")
        try:
            category_id = parse_category_id(category)
        except ValueError as exc:
            raise ExpenseValidationError(str(exc)) from None

        if date_value is None or date_value == '':
            raise ExpenseValidationError("Date is required")
        parsed_date = parse_date(date_value)
        if not VALIDATION_RULES['date']['allow_future'] and parsed_date > (today or date.today()):
            raise ExpenseValidationError("Date cannot be in the future")

        return cls(
            amount=parsed_amount,
            description=text,
            category=category_id,
            date=parsed_date,
        )

    @classmethod
    def from_expense(cls, expense: Expense) -> "ExpenseFormData":
        return cls(
            amount=expense.amount,
            description=expense.description,
            category=expense.category.id,
            date=expense.date,
        )
