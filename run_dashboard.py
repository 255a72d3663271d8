#!/usr/bin/env python3
"""Direct launcher for the Expenses Management dashboard.

This script launches Streamlit with the expense_tracker directory as the app root,
enabling automatic page discovery from the pages/ subdirectory.
"""

import os
import subprocess
import sys
from pathlib import Path

project_root = Path(__file__).parent.resolve()
app_dir = project_root / "expense_tracker"

if __name__ == "__main__":
    # Streamlit discovers pages/ relative to the working directory
    os.chdir(app_dir)
    sys.path.insert(0, str(project_root))
    result = subprocess.run([
        sys.executable, "-m", "streamlit", "run",
        "Home.py"
    ])
    raise SystemExit(result.returncode)
