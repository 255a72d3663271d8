"""Main entry point for the Streamlit multi-page app.

Renders the analytics dashboard. Pages in the pages/ directory appear
in the sidebar automatically.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from expense_tracker.config import LOGGING_CONFIG, ensure_data_directories  # noqa: E402
from expense_tracker.expense_ui import ExpenseTrackerUI, get_store  # noqa: E402

logging.basicConfig(**LOGGING_CONFIG)
ensure_data_directories()


def main() -> None:
    """Render the dashboard page."""
    store = get_store()
    ui = ExpenseTrackerUI(store, configure_page=True)
    ui.render_header()

    if ui.render_error_state():
        return

    ui.render_spending_summary()
    ui.render_monthly_trend()
    ui.render_category_breakdown()
    ui.render_insights()


if __name__ == "__main__":
    main()
