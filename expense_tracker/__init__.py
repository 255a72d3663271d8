"""Top-level package for the expense tracker.

The primary modules are:

* ``categories`` - the fixed category registry
* ``models`` - expense records and validated form input
* ``analytics`` - pure summary, breakdown, trend and filter functions
* ``api`` - generic REST client for the expenses service
* ``storage`` - JSON-file and SQLite persistence with export/import
* ``store`` - the per-session expense cache with two-phase mutations
* ``visualization`` - Plotly figures for the dashboard

To run the dashboard from the command line you can execute:

```bash
python run_dashboard.py
```
"""

from . import analytics  # noqa: F401  # re-exported for convenience
from . import categories  # noqa: F401  # re-exported for convenience
from . import models  # noqa: F401  # re-exported for convenience

__version__ = "0.1.0"

__all__ = ["analytics", "categories", "models"]
