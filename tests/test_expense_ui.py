import types
from unittest.mock import MagicMock

from expense_tracker import expense_ui
from expense_tracker.storage import LocalStorageService
from expense_tracker.store import ExpenseStore


class _Resource:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = 0

    def get_all(self, params=None):
        self.calls += 1
        if self.fail:
            raise RuntimeError('offline')
        return {'data': []}


def _fake_api(resource):
    return lambda: types.SimpleNamespace(expenses=resource)


def test_get_store_creates_and_caches_store(monkeypatch):
    resource = _Resource()
    monkeypatch.setattr(expense_ui, 'create_api', _fake_api(resource))
    state = {}
    store = expense_ui.get_store(state)
    assert isinstance(store, ExpenseStore)
    assert state[expense_ui.STORE_STATE_KEY] is store
    assert expense_ui.get_store(state) is store
    assert resource.calls == 1


def test_get_store_keeps_store_when_initial_load_fails(monkeypatch):
    monkeypatch.setattr(expense_ui, 'create_api', _fake_api(_Resource(fail=True)))
    state = {}
    store = expense_ui.get_store(state)
    assert store.error == 'Failed to load expenses'
    assert state[expense_ui.STORE_STATE_KEY] is store


def test_get_storage_uses_configured_backend(monkeypatch, tmp_path):
    monkeypatch.setattr(expense_ui, 'get_storage_service', lambda: LocalStorageService(tmp_path))
    state = {}
    storage = expense_ui.get_storage(state)
    assert isinstance(storage, LocalStorageService)
    assert expense_ui.get_storage(state) is storage


def test_get_store_defaults_to_session_state(monkeypatch):
    monkeypatch.setattr(expense_ui, 'create_api', _fake_api(_Resource()))
    session_state = {}
    monkeypatch.setattr(expense_ui, 'st', types.SimpleNamespace(session_state=session_state))
    store = expense_ui.get_store()
    assert session_state[expense_ui.STORE_STATE_KEY] is store


def test_rerun_prefers_streamlit_rerun(monkeypatch):
    calls = []
    monkeypatch.setattr(expense_ui, 'st', types.SimpleNamespace(rerun=lambda: calls.append('rerun')))
    expense_ui._rerun()
    assert calls == ['rerun']


def test_rerun_falls_back_to_experimental(monkeypatch):
    calls = []
    monkeypatch.setattr(
        expense_ui, 'st', types.SimpleNamespace(experimental_rerun=lambda: calls.append('experimental'))
    )
    expense_ui._rerun()
    assert calls == ['experimental']


def _recording_st():
    fake = MagicMock()
    fake.columns.side_effect = lambda spec: [MagicMock() for _ in range(spec if isinstance(spec, int) else len(spec))]
    fake.tabs.side_effect = lambda labels: [MagicMock() for _ in labels]
    return fake


def _loaded_store(sample_expenses):
    records = [e.to_dict() for e in sample_expenses]
    store = ExpenseStore(types.SimpleNamespace(get_all=lambda params=None: {'data': records}))
    store.fetch_expenses()
    return store


def test_category_breakdown_renders_pie_and_bar_charts(monkeypatch, sample_expenses):
    monkeypatch.setattr(expense_ui, 'st', _recording_st())
    built = []
    monkeypatch.setattr(expense_ui.viz, 'create_category_pie_chart', lambda b: built.append('pie'))
    monkeypatch.setattr(expense_ui.viz, 'create_category_bar_chart', lambda b: built.append('bar'))
    expense_ui.ExpenseTrackerUI(_loaded_store(sample_expenses)).render_category_breakdown()
    assert built == ['pie', 'bar']


def test_monthly_trend_renders_indicator(monkeypatch, sample_expenses):
    monkeypatch.setattr(expense_ui, 'st', _recording_st())
    trends = []
    monkeypatch.setattr(expense_ui.viz, 'create_trend_indicator', lambda trend: trends.append(trend))
    expense_ui.ExpenseTrackerUI(_loaded_store(sample_expenses)).render_monthly_trend()
    assert len(trends) == 1
    assert trends[0].previous_month_total >= 0


def test_expense_list_shows_one_page(monkeypatch, sample_expenses):
    fake = _recording_st()
    fake.session_state = {}
    fake.text_input.return_value = ''
    fake.date_input.return_value = ()
    fake.number_input.side_effect = lambda label, **kwargs: 1 if label == 'Page' else 0.0
    fake.radio.return_value = 'desc'
    fake.button.return_value = False
    fake.selectbox.side_effect = lambda label, options, **kwargs: {
        'Category': '', 'Sort by': 'date', 'Per page': 10,
    }[label]
    monkeypatch.setattr(expense_ui, 'st', fake)
    pages = []
    original = expense_ui.analytics.paginate_expenses

    def recording_paginate(expenses, page, page_size):
        result = original(expenses, page, page_size)
        pages.append((page, page_size, [e.id for e in result[0]]))
        return result

    monkeypatch.setattr(expense_ui.analytics, 'paginate_expenses', recording_paginate)
    expense_ui.ExpenseTrackerUI(_loaded_store(sample_expenses)).render_expense_list()
    assert pages == [(1, 10, ['2', '1', '3', '4', '5'])]
    fake.dataframe.assert_called_once()
