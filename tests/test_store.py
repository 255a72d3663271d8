from datetime import date, datetime
from itertools import count

import pytest

from expense_tracker.models import ExpenseFormData, ExpenseValidationError
from expense_tracker.store import ExpenseStore, ExpenseStoreError, MutationKind, MutationStatus

from conftest import make_expense

NOW = datetime(2024, 3, 15, 9, 0)


class FakeResource:
    """In-memory stand-in for the expenses endpoint."""

    def __init__(self, records=None):
        self.records = {r['id']: r for r in (records or [])}
        self.fail_on = set()
        self.calls = []

    def _maybe_fail(self, name):
        self.calls.append(name)
        if name in self.fail_on:
            raise RuntimeError(f"{name} failed")

    def get_all(self, params=None):
        self._maybe_fail('get_all')
        return {'data': list(self.records.values()), 'total': len(self.records)}

    def save_new(self, data):
        self._maybe_fail('save_new')
        self.records[data['id']] = dict(data)
        return dict(data)

    def update(self, data):
        self._maybe_fail('update')
        self.records[data['id']] = dict(data)
        return dict(data)

    def delete(self, item_id):
        self._maybe_fail('delete')
        self.records.pop(item_id, None)


@pytest.fixture
def resource(sample_expenses):
    return FakeResource([e.to_dict() for e in sample_expenses])


@pytest.fixture
def store(resource):
    ids = count(100)
    store = ExpenseStore(resource, clock=lambda: NOW, id_factory=lambda: str(next(ids)))
    store.fetch_expenses()
    return store


def _form(amount=12.0, description='Lunch', category='food', when=date(2024, 3, 14)):
    return ExpenseFormData(amount=amount, description=description, category=category, date=when)


def test_fetch_populates_cache(store, sample_expenses):
    assert [e.id for e in store.expenses] == [e.id for e in sample_expenses]
    assert not store.is_loading
    assert not store.is_stale
    assert store.error is None


def test_fetch_accepts_plain_list():
    resource = FakeResource()
    resource.get_all = lambda params=None: [make_expense('1', 5.0, 'Tea', 'food', '2024-03-01').to_dict()]
    store = ExpenseStore(resource)
    assert [e.id for e in store.fetch_expenses()] == ['1']


def test_fetch_failure_sets_error(resource):
    resource.fail_on.add('get_all')
    store = ExpenseStore(resource)
    with pytest.raises(ExpenseStoreError):
        store.fetch_expenses()
    assert store.error == 'Failed to load expenses'
    assert not store.is_fetching


def test_add_expense_confirms_and_refetches(store, resource):
    created = store.add_expense(_form())
    assert created.id == '100'
    assert created.created_at == NOW
    assert '100' in resource.records
    assert store.get_expense_by_id('100') is not None
    assert store.mutations[-1].kind is MutationKind.ADD
    assert store.mutations[-1].status is MutationStatus.CONFIRMED
    assert resource.calls[-1] == 'get_all'
    assert store.pending_mutations == []


def test_add_expense_is_visible_while_pending(store, resource):
    seen = []

    def save_new(data):
        seen.append([e.id for e in store.expenses])
        seen.append([m.status for m in store.pending_mutations])
        return dict(data)

    resource.save_new = save_new
    store.add_expense(_form())
    assert '100' in seen[0]
    assert seen[1] == [MutationStatus.PENDING]


def test_add_expense_failure_rolls_back(store, resource):
    before = [e.id for e in store.expenses]
    resource.fail_on.add('save_new')
    with pytest.raises(ExpenseStoreError, match='save_new failed'):
        store.add_expense(_form())
    assert [e.id for e in store.expenses] == before
    assert store.mutations[-1].status is MutationStatus.ROLLED_BACK
    assert store.error == 'save_new failed'


def test_add_expense_rejects_unknown_category(store):
    with pytest.raises(ExpenseValidationError):
        store.add_expense(_form(category='pets'))
    assert store.error == 'Invalid category selected'


def test_update_expense_keeps_creation_time(store, sample_expenses):
    original = store.get_expense_by_id('1')
    updated = store.update_expense('1', _form(amount=80.0, description='Groceries again'))
    assert updated.amount == 80.0
    assert updated.created_at == original.created_at
    assert updated.updated_at == NOW
    assert store.get_expense_by_id('1').description == 'Groceries again'


def test_update_expense_failure_restores_previous(store, resource):
    original = store.get_expense_by_id('1')
    resource.fail_on.add('update')
    with pytest.raises(ExpenseStoreError):
        store.update_expense('1', _form(amount=1.0))
    assert store.get_expense_by_id('1') == original


def test_delete_expense(store, resource):
    assert store.delete_expense('2') == '2'
    assert store.get_expense_by_id('2') is None
    assert '2' not in resource.records


def test_delete_failure_restores_original_position(store, resource):
    before = [e.id for e in store.expenses]
    resource.fail_on.add('delete')
    with pytest.raises(ExpenseStoreError):
        store.delete_expense('3')
    assert [e.id for e in store.expenses] == before
    assert store.error == 'delete failed'


def test_refetch_failure_after_confirmed_mutation_keeps_change(store, resource):
    resource.fail_on.add('get_all')
    store.delete_expense('2')
    assert store.mutations[-1].status is MutationStatus.CONFIRMED
    assert store.get_expense_by_id('2') is None
    assert store.error == 'Failed to load expenses'
    assert store.is_stale


def test_invalidate_without_refetch_marks_stale(resource):
    store = ExpenseStore(resource, refetch_on_invalidate=False)
    store.fetch_expenses()
    store.invalidate()
    assert store.is_stale
    assert resource.calls == ['get_all']


def test_listeners_are_notified(store):
    events = []

    def listener(s):
        events.append(s.is_loading)

    store.subscribe(listener)
    store.delete_expense('1')
    assert True in events
    assert events[-1] is False

    store.unsubscribe(listener)
    events.clear()
    store.clear_error()
    assert events == []


def test_derived_getters(store):
    today = date(2024, 3, 15)
    assert store.get_total_amount() == pytest.approx(525.0)
    assert store.get_average_amount() == pytest.approx(105.0)
    assert [e.id for e in store.get_expenses_by_category('food')] == ['1', '2']
    assert len(store.get_expenses_by_date_range('2024-02-01', '2024-02-29')) == 2
    assert {e.id for e in store.get_current_month_expenses(today)} == {'1', '2'}
    assert store.get_current_month_total(today) == pytest.approx(150.0)


def test_expenses_property_is_a_copy(store):
    snapshot = store.expenses
    snapshot.clear()
    assert store.expenses
