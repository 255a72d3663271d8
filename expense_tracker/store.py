"""Session state container for the expense collection.

:class:`ExpenseStore` keeps the client-side view of the expenses held by
the remote API and exposes the CRUD operations used by the UI. Each
mutation runs in two phases: the change is applied to the cache straight
away and recorded as ``pending``, then the remote call either confirms it
or rolls it back. Confirmed changes invalidate the cache so the next
refetch reconciles it with the server.

The store is created per session and passed to whoever needs it; there
is no module-level instance.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from . import analytics
from .categories import EXPENSE_CATEGORIES, Category, CategoryId
from .models import DateLike, Expense, ExpenseFormData, ExpenseValidationError

logger = logging.getLogger(__name__)

Listener = Callable[["ExpenseStore"], None]


class ExpenseStoreError(Exception):
    """Raised when a store operation fails; the cause is chained."""


class MutationKind(str, Enum):
    ADD = 'add'
    UPDATE = 'update'
    DELETE = 'delete'


class MutationStatus(str, Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    ROLLED_BACK = 'rolled_back'


@dataclass
class Mutation:
    """One optimistic change and its outcome."""
    kind: MutationKind
    expense_id: str
    previous: Optional[Expense] = None
    optimistic: Optional[Expense] = None
    position: Optional[int] = None
    status: MutationStatus = MutationStatus.PENDING
    error: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)


class ExpenseStore:
    """Cached expense collection synchronised with a REST resource.

    Args:
        resource: Object exposing ``get_all``, ``save_new``, ``update`` and
            ``delete`` for the expenses entity (see :class:`~expense_tracker.api.EntityApi`).
        categories: Registry used to resolve category ids.
        clock: Source of creation/modification timestamps.
        id_factory: Source of identifiers for new expenses.
        refetch_on_invalidate: Refetch from the server after each confirmed mutation.
    """

    def __init__(
        self,
        resource: Any,
        categories: Sequence[Category] = EXPENSE_CATEGORIES,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        refetch_on_invalidate: bool = True,
    ):
        self.resource = resource
        self._categories: Dict[CategoryId, Category] = {c.id: c for c in categories}
        self._clock = clock
        self._id_factory = id_factory
        self.refetch_on_invalidate = refetch_on_invalidate

        self._expenses: List[Expense] = []
        self._error: Optional[str] = None
        self._is_loading = False
        self._is_fetching = False
        self._is_stale = True
        self._mutations: List[Mutation] = []
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------
    @property
    def expenses(self) -> List[Expense]:
        return list(self._expenses)

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def is_loading(self) -> bool:
        return self._is_loading or self._is_fetching

    @property
    def is_fetching(self) -> bool:
        return self._is_fetching

    @property
    def is_stale(self) -> bool:
        return self._is_stale

    @property
    def mutations(self) -> List[Mutation]:
        return list(self._mutations)

    @property
    def pending_mutations(self) -> List[Mutation]:
        return [m for m in self._mutations if m.status is MutationStatus.PENDING]

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _set_error(self, message: Optional[str]) -> None:
        self._error = message
        self._notify()

    def clear_error(self) -> None:
        self._set_error(None)

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------
    def fetch_expenses(self) -> List[Expense]:
        """Load the collection from the server, replacing the cache."""
        self._is_fetching = True
        self._notify()
        try:
            payload = self.resource.get_all()
            records = payload.get('data', []) if isinstance(payload, dict) else payload
            self._expenses = [Expense.from_dict(record) for record in records or []]
            self._is_stale = False
            self._error = None
            logger.debug("Fetched %s expenses", len(self._expenses))
        except Exception as exc:
            logger.error("Failed to load expenses: %s", exc)
            self._error = "Failed to load expenses"
            raise ExpenseStoreError("Failed to load expenses") from exc
        finally:
            self._is_fetching = False
            self._notify()
        return self.expenses

    refetch_expenses = fetch_expenses

    def invalidate(self) -> None:
        """Mark the cache stale and, if configured, refetch it."""
        self._is_stale = True
        if self.refetch_on_invalidate:
            try:
                self.fetch_expenses()
            except ExpenseStoreError:
                # The confirmed mutation stands; the error is surfaced through ``error``.
                logger.warning("Refetch after mutation failed; cache kept as is")
        else:
            self._notify()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def _resolve_category(self, category_id: Union[str, CategoryId]) -> Category:
        try:
            return self._categories[CategoryId(category_id)]
        except (KeyError, ValueError):
            raise ExpenseValidationError("Invalid category selected") from None

    def _index_of(self, expense_id: str) -> Optional[int]:
        for index, expense in enumerate(self._expenses):
            if expense.id == expense_id:
                return index
        return None

    def _begin(self, mutation: Mutation) -> Mutation:
        self._mutations.append(mutation)
        self._is_loading = True
        self._error = None
        logger.debug("Mutation %s on %s pending", mutation.kind.value, mutation.expense_id)
        self._notify()
        return mutation

    def _confirm(self, mutation: Mutation) -> None:
        mutation.status = MutationStatus.CONFIRMED
        self._is_loading = False
        logger.info("Mutation %s on %s confirmed", mutation.kind.value, mutation.expense_id)
        self.invalidate()

    def _roll_back(self, mutation: Mutation, exc: Exception, message: str) -> None:
        if mutation.kind is MutationKind.ADD:
            index = self._index_of(mutation.expense_id)
            if index is not None:
                del self._expenses[index]
        elif mutation.kind is MutationKind.UPDATE and mutation.previous is not None:
            index = self._index_of(mutation.expense_id)
            if index is not None:
                self._expenses[index] = mutation.previous
        elif mutation.kind is MutationKind.DELETE and mutation.previous is not None:
            position = mutation.position if mutation.position is not None else len(self._expenses)
            self._expenses.insert(position, mutation.previous)

        mutation.status = MutationStatus.ROLLED_BACK
        mutation.error = str(exc) or message
        self._is_loading = False
        logger.error("Mutation %s on %s rolled back: %s", mutation.kind.value, mutation.expense_id, exc)
        self._set_error(mutation.error)

    def _server_copy(self, result: Any, fallback: Expense) -> Expense:
        if isinstance(result, dict) and result.get('id'):
            try:
                return Expense.from_dict(result)
            except (ExpenseValidationError, KeyError) as exc:
                logger.warning("Ignoring malformed server copy of %s: %s", fallback.id, exc)
        return fallback

    def add_expense(self, form: ExpenseFormData) -> Expense:
        """Create an expense from validated form input."""
        try:
            category = self._resolve_category(form.category)
        except ExpenseValidationError as exc:
            self._set_error(str(exc))
            raise

        now = self._clock()
        expense = Expense(
            id=self._id_factory(),
            amount=form.amount,
            description=form.description,
            category=category,
            date=form.date,
            created_at=now,
            updated_at=now,
        )
        mutation = self._begin(Mutation(MutationKind.ADD, expense.id, optimistic=expense))
        self._expenses.append(expense)
        self._notify()

        try:
            result = self.resource.save_new(expense.to_dict())
        except Exception as exc:
            self._roll_back(mutation, exc, "Failed to add expense")
            raise ExpenseStoreError(mutation.error) from exc

        created = self._server_copy(result, expense)
        index = self._index_of(expense.id)
        if index is not None:
            self._expenses[index] = created
        self._confirm(mutation)
        return created

    def update_expense(self, expense_id: str, form: ExpenseFormData) -> Expense:
        """Replace an expense's editable fields, keeping its creation time."""
        try:
            category = self._resolve_category(form.category)
        except ExpenseValidationError as exc:
            self._set_error(str(exc))
            raise

        index = self._index_of(expense_id)
        previous = self._expenses[index] if index is not None else None
        updated = Expense(
            id=expense_id,
            amount=form.amount,
            description=form.description,
            category=category,
            date=form.date,
            created_at=previous.created_at if previous else self._clock(),
            updated_at=self._clock(),
        )
        mutation = self._begin(
            Mutation(MutationKind.UPDATE, expense_id, previous=previous, optimistic=updated)
        )
        if index is not None:
            self._expenses[index] = updated
            self._notify()

        try:
            result = self.resource.update(updated.to_dict())
        except Exception as exc:
            self._roll_back(mutation, exc, "Failed to update expense")
            raise ExpenseStoreError(mutation.error) from exc

        confirmed = self._server_copy(result, updated)
        index = self._index_of(expense_id)
        if index is not None:
            self._expenses[index] = confirmed
        self._confirm(mutation)
        return confirmed

    def delete_expense(self, expense_id: str) -> str:
        index = self._index_of(expense_id)
        previous = self._expenses.pop(index) if index is not None else None
        mutation = self._begin(Mutation(MutationKind.DELETE, expense_id, previous=previous, position=index))

        try:
            self.resource.delete(expense_id)
        except Exception as exc:
            self._roll_back(mutation, exc, "Failed to delete expense")
            raise ExpenseStoreError(mutation.error) from exc

        self._confirm(mutation)
        return expense_id

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------
    def get_expense_by_id(self, expense_id: str) -> Optional[Expense]:
        index = self._index_of(expense_id)
        return self._expenses[index] if index is not None else None

    def get_expenses_by_category(self, category_id: Union[str, CategoryId]) -> List[Expense]:
        return analytics.get_expenses_by_category(self._expenses, category_id)

    def get_expenses_by_date_range(self, start_date: DateLike, end_date: DateLike) -> List[Expense]:
        return analytics.get_expenses_by_date_range(self._expenses, start_date, end_date)

    def get_total_amount(self) -> float:
        return analytics.calculate_spending_summary(self._expenses).all_time_total

    def get_average_amount(self) -> float:
        return analytics.calculate_spending_summary(self._expenses).average_amount

    def get_current_month_expenses(self, today: Optional[date] = None) -> List[Expense]:
        return analytics.get_current_month_expenses(self._expenses, today)

    def get_current_month_total(self, today: Optional[date] = None) -> float:
        return analytics.calculate_spending_summary(self._expenses, today).current_month_total
