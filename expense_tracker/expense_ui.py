"""Streamlit UI components for the expense tracker.

Components read from the session's :class:`ExpenseStore` and render
through :mod:`analytics`, :mod:`formatting` and :mod:`visualization`.
Store failures are shown with ``st.error``; the blocking fetch error
offers a manual retry button.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any, MutableMapping, Optional

import pandas as pd
import streamlit as st
from streamlit.errors import StreamlitAPIException

from . import analytics, config
from . import visualization as viz
from .api import create_api
from .categories import EXPENSE_CATEGORIES, category_options
from .formatting import escape_dollar_for_markdown, format_currency, format_date, format_percentage
from .models import Expense, ExpenseFormData, ExpenseValidationError
from .storage import StorageError, StorageService, get_storage_service
from .store import ExpenseStore, ExpenseStoreError

logger = logging.getLogger(__name__)

STORE_STATE_KEY = 'expense_store'
STORAGE_STATE_KEY = 'expense_storage'
EDITING_STATE_KEY = 'editing_expense_id'
TREND_ARROWS = {'up': '⬆️', 'down': '⬇️', 'same': '➡️'}


def get_store(state: Optional[MutableMapping[str, Any]] = None) -> ExpenseStore:
    """Return the session's store, creating and loading it on first use."""
    state = st.session_state if state is None else state
    store = state.get(STORE_STATE_KEY)
    if store is None:
        store = ExpenseStore(create_api().expenses)
        state[STORE_STATE_KEY] = store
        try:
            store.fetch_expenses()
        except ExpenseStoreError:
            logger.warning("Initial expense load failed")
    return store


def get_storage(state: Optional[MutableMapping[str, Any]] = None) -> StorageService:
    state = st.session_state if state is None else state
    storage = state.get(STORAGE_STATE_KEY)
    if storage is None:
        storage = get_storage_service()
        state[STORAGE_STATE_KEY] = storage
    return storage


def _rerun() -> None:
    rerun = getattr(st, 'rerun', None)
    if callable(rerun):
        rerun()
        return
    experimental = getattr(st, 'experimental_rerun', None)
    if callable(experimental):
        experimental()


class ExpenseTrackerUI:
    """UI components for recording and analysing expenses."""

    def __init__(self, store: ExpenseStore, *, configure_page: bool = False):
        self.store = store
        if configure_page:
            self.setup_page_config()

    def setup_page_config(self, page_title: str = config.APP_NAME, page_icon: str = "💰") -> None:
        try:
            st.set_page_config(
                page_title=page_title,
                page_icon=page_icon,
                layout="wide",
                initial_sidebar_state="expanded",
            )
        except StreamlitAPIException:
            logger.debug("Page config already set for this run")

    def render_header(self) -> None:
        col1, col2 = st.columns([3, 1])
        with col1:
            st.title(f"💰 {config.APP_NAME}")
            st.caption(f"Version {config.APP_VERSION}")
            st.markdown("Record expenses, categorize them and keep an eye on your spending.")
        with col2:
            st.metric(label="Current Month", value=date.today().strftime("%B %Y"))

    def render_error_state(self) -> bool:
        """Show the store's last error. Returns True when rendering should stop."""
        if not self.store.error:
            return False
        st.error(self.store.error)
        col1, col2 = st.columns([1, 5])
        with col1:
            if st.button("🔄 Retry", key="retry_fetch"):
                try:
                    self.store.refetch_expenses()
                except ExpenseStoreError:
                    logger.warning("Retry failed: %s", self.store.error)
                _rerun()
        with col2:
            if st.button("Dismiss", key="dismiss_error"):
                self.store.clear_error()
                _rerun()
        return not self.store.expenses

    def render_spending_summary(self) -> None:
        st.subheader("📊 Spending Summary")
        summary = analytics.calculate_spending_summary(self.store.expenses)

        col1, col2, col3, col4 = st.columns(4)
        with col1:
            st.metric("This Month", format_currency(summary.current_month_total))
        with col2:
            st.metric("All Time", format_currency(summary.all_time_total))
        with col3:
            st.metric("Expenses", f"{summary.expense_count}")
        with col4:
            st.metric("Average Expense", format_currency(summary.average_amount))

    def render_monthly_trend(self) -> None:
        st.subheader("📈 Monthly Trend")
        expenses = self.store.expenses
        trend = analytics.calculate_monthly_trend(expenses)
        daily_average = analytics.get_current_month_daily_average(expenses)
        projected = analytics.get_projected_month_total(expenses)

        col1, col2, col3 = st.columns(3)
        with col1:
            st.metric(
                "This Month",
                format_currency(trend.current_month_total),
                delta=f"{TREND_ARROWS[trend.trend]} {format_percentage(trend.change_percentage)}",
                delta_color="off",
            )
        with col2:
            st.metric("Last Month", format_currency(trend.previous_month_total))
        with col3:
            st.metric(
                "Daily Average",
                format_currency(daily_average),
                help=f"Projected monthly: {format_currency(projected)}",
            )

        if config.FEATURE_FLAGS['charts']:
            st.plotly_chart(viz.create_trend_indicator(trend), use_container_width=True)
            st.plotly_chart(
                viz.create_monthly_totals_chart(analytics.calculate_monthly_totals(expenses)),
                use_container_width=True,
            )
            st.plotly_chart(
                viz.create_daily_spending_chart(analytics.calculate_daily_totals(expenses)),
                use_container_width=True,
            )

    def render_category_breakdown(self, limit: int = 5) -> None:
        st.subheader("💳 Spending by Category")
        expenses = self.store.expenses
        breakdown = analytics.calculate_category_breakdown(expenses)
        if not breakdown:
            st.info("No expenses yet. Add one to see your category breakdown.")
            return

        col1, col2 = st.columns([2, 1])
        with col1:
            if config.FEATURE_FLAGS['charts']:
                pie_tab, bar_tab = st.tabs(["Share", "Totals"])
                with pie_tab:
                    st.plotly_chart(viz.create_category_pie_chart(breakdown), use_container_width=True)
                with bar_tab:
                    st.plotly_chart(viz.create_category_bar_chart(breakdown), use_container_width=True)
        with col2:
            st.markdown("**Top Spending Categories**")
            for item in analytics.get_top_spending_categories(expenses, limit):
                label = escape_dollar_for_markdown(format_currency(item.total))
                st.markdown(
                    f"• **{item.category.name}**: {label} "
                    f"({format_percentage(item.percentage)}, {item.count} expenses)"
                )

    def render_insights(self) -> None:
        expenses = self.store.expenses
        if not expenses:
            return
        summary = analytics.calculate_spending_summary(expenses)
        top = analytics.get_top_spending_categories(expenses, 1)
        st.subheader("💡 Insights")
        lines = [
            f"You've spent {format_currency(summary.current_month_total)} this {date.today():%B}",
            f"Your average expense is {format_currency(summary.average_amount)}",
            f"Total lifetime spending: {format_currency(summary.all_time_total)}",
        ]
        if top:
            lines.append(f"Top category: {top[0].category.name} ({format_percentage(top[0].percentage)})")
        for line in lines:
            st.markdown(f"• {escape_dollar_for_markdown(line)}")

    def render_expense_form(self, expense: Optional[Expense] = None) -> Optional[Expense]:
        """Add form, or edit form when ``expense`` is given."""
        is_edit = expense is not None
        options = [option_id for option_id, _ in category_options()]
        names = dict(category_options())

        st.subheader("✏️ Edit Expense" if is_edit else "➕ Add New Expense")
        form_key = f"edit_expense_{expense.id}" if is_edit else "add_expense_form"
        with st.form(form_key, clear_on_submit=not is_edit):
            col1, col2 = st.columns(2)
            with col1:
                amount = st.number_input(
                    "Amount",
                    min_value=0.0,
                    step=0.01,
                    value=float(expense.amount) if is_edit else 0.0,
                    format="%.2f",
                )
                description = st.text_input(
                    "Description",
                    value=expense.description if is_edit else "",
                    placeholder="What was this expense for?",
                )
            with col2:
                category = st.selectbox(
                    "Category",
                    options=options,
                    index=options.index(expense.category.id.value) if is_edit else 0,
                    format_func=lambda option_id: names[option_id],
                )
                expense_date = st.date_input("Date", value=expense.date if is_edit else date.today())

            submitted = st.form_submit_button("Update Expense" if is_edit else "Add Expense")

        if not submitted:
            return None

        try:
            form = ExpenseFormData.create(amount, description, category, expense_date)
            if is_edit:
                saved = self.store.update_expense(expense.id, form)
            else:
                saved = self.store.add_expense(form)
        except ExpenseValidationError as exc:
            st.error(str(exc))
            return None
        except ExpenseStoreError as exc:
            st.error(f"Could not save expense: {exc}")
            return None

        st.success("Expense updated" if is_edit else "Expense added")
        return saved

    def render_expense_list(self) -> None:
        st.subheader("🧾 Expenses")
        expenses = self.store.expenses
        names = dict(category_options())

        col1, col2, col3, col4 = st.columns([3, 2, 2, 1])
        with col1:
            query = st.text_input("Search", placeholder="Search description or category")
        with col2:
            category = st.selectbox(
                "Category",
                options=[''] + list(names),
                format_func=lambda option_id: names.get(option_id, 'All categories'),
            )
        with col3:
            sort_field = st.selectbox("Sort by", options=list(analytics.SORT_FIELDS))
        with col4:
            direction = st.radio("Order", options=['desc', 'asc'], horizontal=False)

        with st.expander("More filters"):
            fcol1, fcol2 = st.columns(2)
            with fcol1:
                date_range = st.date_input("Date range", value=())
            with fcol2:
                min_amount = st.number_input("Min amount", min_value=0.0, value=0.0, step=1.0)
                max_amount = st.number_input("Max amount", min_value=0.0, value=0.0, step=1.0)

        start_date, end_date = (date_range[0], date_range[1]) if len(date_range) == 2 else (None, None)
        filters = analytics.ExpenseFilters(
            query=query or None,
            category_id=category or None,
            start_date=start_date,
            end_date=end_date,
            min_amount=min_amount or None,
            max_amount=max_amount or None,
        )
        visible = analytics.sort_expenses(analytics.filter_expenses(expenses, filters), sort_field, direction)

        count = len(visible)
        st.caption("1 expense found" if count == 1 else f"{count} expenses found")
        if not visible:
            st.info("Try adjusting your search or filters" if expenses else "No expenses yet")
            return

        options = config.PAGINATION['page_size_options']
        pcol1, pcol2 = st.columns(2)
        with pcol1:
            page_size = st.selectbox(
                "Per page",
                options=options,
                index=options.index(config.PAGINATION['default_page_size']),
            )
        with pcol2:
            total_pages = max(1, math.ceil(count / page_size))
            page = st.number_input("Page", min_value=1, max_value=total_pages, value=1, step=1)
        visible, _ = analytics.paginate_expenses(visible, int(page), page_size)

        table = pd.DataFrame([
            {
                'Date': format_date(expense.date),
                'Description': expense.description,
                'Category': expense.category.name,
                'Amount': format_currency(expense.amount),
            }
            for expense in visible
        ])
        st.dataframe(table, use_container_width=True, hide_index=True)

        for expense in visible:
            col_a, col_b, col_c = st.columns([6, 1, 1])
            with col_a:
                st.markdown(
                    f"**{expense.description}** · {expense.category.name} · "
                    f"{format_date(expense.date)} · {escape_dollar_for_markdown(format_currency(expense.amount))}"
                )
            with col_b:
                if st.button("✏️", key=f"edit_{expense.id}", help="Edit expense"):
                    st.session_state[EDITING_STATE_KEY] = expense.id
            with col_c:
                if st.button("🗑️", key=f"delete_{expense.id}", help="Delete expense"):
                    try:
                        self.store.delete_expense(expense.id)
                    except ExpenseStoreError as exc:
                        st.error(f"Could not delete expense: {exc}")
                    else:
                        _rerun()

        editing_id = st.session_state.get(EDITING_STATE_KEY)
        editing = self.store.get_expense_by_id(editing_id) if editing_id else None
        if editing is not None:
            if self.render_expense_form(editing) is not None:
                st.session_state[EDITING_STATE_KEY] = None
                _rerun()

    def render_data_management(self, storage: StorageService) -> None:
        """Export/import panel backed by client-side storage."""
        st.subheader("💾 Backup & Restore")
        if not config.FEATURE_FLAGS['export_import']:
            st.info("Export and import are disabled.")
            return

        col1, col2 = st.columns(2)
        with col1:
            st.markdown("**Save current expenses locally**")
            if st.button("Save snapshot"):
                try:
                    storage.save_expenses(self.store.expenses)
                    storage.save_categories(list(EXPENSE_CATEGORIES))
                    st.success(f"Saved {len(self.store.expenses)} expenses")
                except StorageError as exc:
                    st.error(str(exc))
            try:
                exported = storage.export_data()
            except StorageError as exc:
                st.error(str(exc))
            else:
                st.download_button(
                    "⬇️ Download export",
                    data=exported,
                    file_name=f"expenses_export_{date.today():%Y%m%d}.json",
                    mime="application/json",
                )

        with col2:
            st.markdown("**Restore from an export file**")
            uploaded = st.file_uploader("Export file", type=["json"])
            if uploaded is not None and st.button("Import"):
                try:
                    storage.import_data(uploaded.getvalue().decode('utf-8'))
                    st.success("Import complete")
                except (StorageError, UnicodeDecodeError) as exc:
                    st.error(str(exc))
            if st.button("Clear local data"):
                try:
                    storage.clear_all()
                    st.success("Local data cleared")
                except StorageError as exc:
                    st.error(str(exc))

        stored = storage.get_expenses()
        if stored:
            st.caption(f"{len(stored)} expenses in local storage")
            summary = analytics.calculate_spending_summary(stored)
            st.caption(f"Stored total: {format_currency(summary.all_time_total)}")
