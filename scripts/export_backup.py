#!/usr/bin/env python3
"""Write an export envelope of locally stored expenses to the exports directory."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

project_root = Path(__file__).resolve().parents[1]
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from expense_tracker import config  # noqa: E402
from expense_tracker.storage import StorageError, get_storage_service  # noqa: E402

logger = logging.getLogger(__name__)


def export_backup(backend: Optional[str] = None, output_dir: Optional[Path] = None) -> Path:
    """Export the configured storage backend and return the written file."""
    storage = get_storage_service(backend)
    payload = storage.export_data()

    target_dir = Path(output_dir or config.EXPORTS_DIR)
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / f"expenses_export_{datetime.now():%Y%m%d_%H%M%S}.json"
    target.write_text(payload, encoding="utf-8")
    logger.info("Wrote export to %s", target)
    return target


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--backend", choices=["local", "sqlite"], default=None,
                        help="storage backend (defaults to EXPENSES_STORAGE_BACKEND)")
    parser.add_argument("--output-dir", type=Path, default=None,
                        help="directory for the export file")
    args = parser.parse_args(argv)

    logging.basicConfig(**config.LOGGING_CONFIG)
    config.ensure_data_directories()
    try:
        target = export_backup(args.backend, args.output_dir)
    except (StorageError, OSError) as exc:
        print(f"Export failed: {exc}")
        return 1

    print(f"Export written to {target}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
