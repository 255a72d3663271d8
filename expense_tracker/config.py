"""Configuration management for the expense tracker.

This module centralizes all configuration values including paths,
API settings, defaults, and environment variable overrides.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict

# Base project root - assumes this file is in expense_tracker/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

APP_NAME = "Expenses Management System"
APP_VERSION = "0.1.0"

# REST API
API_BASE_URL = os.getenv("EXPENSES_API_URL", "https://test-2-enc8.onrender.com")
API_TIMEOUT = float(os.getenv("EXPENSES_API_TIMEOUT", "10.0"))
DEFAULT_HEADERS: Dict[str, str] = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}
API_ENDPOINTS = {
    "expenses": "expenses",
    "categories": "categories",
}

# Data directories
DATA_DIR = Path(os.getenv("EXPENSES_DATA_DIR", _PROJECT_ROOT / "data"))
LOCAL_STORAGE_DIR = DATA_DIR / "local_storage"
EXPORTS_DIR = DATA_DIR / "exports"

# Embedded database
DB_PATH = Path(
    os.getenv("EXPENSES_DB_PATH", DATA_DIR / "expenses.db")
).resolve()

# Either 'local' (JSON files) or 'sqlite'
STORAGE_BACKEND = os.getenv("EXPENSES_STORAGE_BACKEND", "local")

STORAGE_KEYS = {
    "expenses": "expenses",
    "categories": "categories",
    "settings": "settings",
    "user_preferences": "userPreferences",
}

EXPORT_VERSION = "1.0.0"

CURRENCY = {
    "code": "USD",
    "symbol": "$",
    "locale": "en-US",
}

VALIDATION_RULES: Dict[str, Dict[str, Any]] = {
    "amount": {"min": 0.01, "max": 999999.99},
    "description": {"min_length": 1, "max_length": 200},
    "date": {"allow_future": False},
}

PAGINATION = {
    "default_page_size": 20,
    "max_page_size": 100,
    "page_size_options": [10, 20, 50, 100],
}

DATE_FORMATS = {
    "display": "%b %d, %Y",
    "input": "%Y-%m-%d",
    "api": "%Y-%m-%d",
}

FEATURE_FLAGS = {
    "analytics": True,
    "export_import": True,
    "charts": True,
}

LOGGING_CONFIG: Dict[str, Any] = {
    "level": getattr(logging, os.getenv("EXPENSES_LOG_LEVEL", "INFO").upper(), logging.INFO),
    "format": "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
}


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, LOCAL_STORAGE_DIR, EXPORTS_DIR]:
        directory.mkdir(parents=True, exist_ok=True)
