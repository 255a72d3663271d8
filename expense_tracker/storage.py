"""Client-side persistence for expenses, categories and preferences.

Two interchangeable backends implement :class:`StorageService`:

* :class:`LocalStorageService` keeps one JSON document per storage key
  in a directory.
* :class:`SqliteStorageService` keeps the same collections in an
  embedded SQLite database, better suited to larger histories.

Writes replace the whole collection. Reads never raise: a missing or
corrupt entry degrades to an empty default and is logged.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from . import config
from .categories import Category
from .models import Expense, ExpenseValidationError

logger = logging.getLogger(__name__)

STORAGE_QUOTA_BYTES = 5 * 1024 * 1024


class StorageError(Exception):
    """Raised when a storage write, export or import fails."""


def build_export_envelope(expenses: List[Expense], categories: List[Category]) -> str:
    """Serialize collections into the versioned export document."""
    payload = {
        'expenses': [expense.to_dict() for expense in expenses],
        'categories': [category.to_dict() for category in categories],
        'exportDate': datetime.now().isoformat(),
        'version': config.EXPORT_VERSION,
    }
    return json.dumps(payload, indent=2)


def _parse_expenses(records: Any) -> List[Expense]:
    if not isinstance(records, list):
        raise ValueError("expenses must be a list")
    if not all(isinstance(record, dict) for record in records):
        raise ValueError("expense records must be objects")
    return [Expense.from_dict(record) for record in records]


def _parse_categories(records: Any) -> List[Category]:
    if not isinstance(records, list):
        raise ValueError("categories must be a list")
    if not all(isinstance(record, dict) for record in records):
        raise ValueError("category records must be objects")
    return [Category.from_dict(record) for record in records]


class StorageService(ABC):
    """Common interface of the persistence backends."""

    @abstractmethod
    def get_expenses(self) -> List[Expense]:
        ...

    @abstractmethod
    def save_expenses(self, expenses: List[Expense]) -> None:
        ...

    @abstractmethod
    def get_categories(self) -> List[Category]:
        ...

    @abstractmethod
    def save_categories(self, categories: List[Category]) -> None:
        ...

    @abstractmethod
    def get_settings(self) -> Dict[str, Any]:
        ...

    @abstractmethod
    def save_settings(self, settings: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def get_user_preferences(self) -> Dict[str, Any]:
        ...

    @abstractmethod
    def save_user_preferences(self, preferences: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def clear_all(self) -> None:
        ...

    def export_data(self) -> str:
        """Export expenses and categories as a JSON envelope."""
        try:
            return build_export_envelope(self.get_expenses(), self.get_categories())
        except (TypeError, ValueError) as exc:
            raise StorageError("Failed to export data") from exc

    def import_data(self, data: str) -> None:
        """Import an export envelope, replacing only the collections it contains."""
        try:
            document = json.loads(data)
            if not isinstance(document, dict):
                raise ValueError("export envelope must be an object")
            expenses = _parse_expenses(document['expenses']) if document.get('expenses') is not None else None
            categories = _parse_categories(document['categories']) if document.get('categories') is not None else None
        except (TypeError, ValueError, KeyError) as exc:
            logger.warning("Rejected import: %s", exc)
            raise StorageError("Failed to import data: Invalid format") from exc

        if expenses is not None:
            self.save_expenses(expenses)
        if categories is not None:
            self.save_categories(categories)
        logger.info(
            "Imported %s expenses and %s categories",
            len(expenses) if expenses is not None else 0,
            len(categories) if categories is not None else 0,
        )


class LocalStorageService(StorageService):
    """One ``<key>.json`` document per storage key."""

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory or config.LOCAL_STORAGE_DIR)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _read(self, key: str) -> Any:
        target = self._path(key)
        if not target.exists():
            return None
        try:
            with target.open('r', encoding='utf-8') as handle:
                return json.load(handle)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Could not read %s: %s", target, exc)
            return None

    def _write(self, key: str, value: Any) -> None:
        target = self._path(key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open('w', encoding='utf-8') as handle:
                json.dump(value, handle, indent=2)
        except (OSError, TypeError) as exc:
            raise StorageError(f"Failed to save {key}") from exc

    def get_expenses(self) -> List[Expense]:
        data = self._read(config.STORAGE_KEYS['expenses'])
        if data is None:
            return []
        try:
            return _parse_expenses(data)
        except (ExpenseValidationError, ValueError, KeyError) as exc:
            logger.warning("Discarding unreadable expenses: %s", exc)
            return []

    def save_expenses(self, expenses: List[Expense]) -> None:
        self._write(config.STORAGE_KEYS['expenses'], [expense.to_dict() for expense in expenses])

    def get_categories(self) -> List[Category]:
        data = self._read(config.STORAGE_KEYS['categories'])
        if data is None:
            return []
        try:
            return _parse_categories(data)
        except ValueError as exc:
            logger.warning("Discarding unreadable categories: %s", exc)
            return []

    def save_categories(self, categories: List[Category]) -> None:
        self._write(config.STORAGE_KEYS['categories'], [category.to_dict() for category in categories])

    def _get_mapping(self, key: str) -> Dict[str, Any]:
        data = self._read(key)
        return data if isinstance(data, dict) else {}

    def get_settings(self) -> Dict[str, Any]:
        return self._get_mapping(config.STORAGE_KEYS['settings'])

    def save_settings(self, settings: Dict[str, Any]) -> None:
        self._write(config.STORAGE_KEYS['settings'], settings)

    def get_user_preferences(self) -> Dict[str, Any]:
        return self._get_mapping(config.STORAGE_KEYS['user_preferences'])

    def save_user_preferences(self, preferences: Dict[str, Any]) -> None:
        self._write(config.STORAGE_KEYS['user_preferences'], preferences)

    def clear_all(self) -> None:
        try:
            for key in config.STORAGE_KEYS.values():
                self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError("Failed to clear local storage") from exc

    def is_available(self) -> bool:
        """Check that the storage directory accepts writes."""
        probe = self.directory / '__storage_test__'
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            probe.write_text('test', encoding='utf-8')
            probe.unlink()
            return True
        except OSError:
            return False

    def get_storage_info(self) -> Dict[str, float]:
        """Bytes used by the stored keys against a nominal 5 MB quota."""
        used = 0
        for key in config.STORAGE_KEYS.values():
            target = self._path(key)
            if target.exists():
                used += target.stat().st_size
        available = STORAGE_QUOTA_BYTES
        return {
            'used': used,
            'available': available,
            'percentage': used / available * 100,
        }


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS expenses (
    id TEXT PRIMARY KEY,
    amount REAL NOT NULL,
    description TEXT NOT NULL,
    category_id TEXT NOT NULL,
    date TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS ix_expenses_date ON expenses (date);
CREATE INDEX IF NOT EXISTS ix_expenses_category ON expenses (category_id);

CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    color TEXT,
    icon TEXT,
    description TEXT
);

CREATE TABLE IF NOT EXISTS key_value (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class SqliteStorageService(StorageService):
    """Expenses and categories in an embedded SQLite database."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path or config.DB_PATH)
        self._initialized = False

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            if not self._initialized:
                conn.executescript(SCHEMA_SQL)
                self._initialized = True
            yield conn
        finally:
            conn.close()

    def get_expenses(self) -> List[Expense]:
        try:
            with self.connect() as conn:
                rows = conn.execute(
                    "SELECT id, amount, description, category_id, date, created_at, updated_at "
                    "FROM expenses ORDER BY date, created_at"
                ).fetchall()
        except sqlite3.Error as exc:
            logger.warning("Could not read expenses from %s: %s", self.db_path, exc)
            return []

        expenses = []
        for row in rows:
            try:
                expenses.append(Expense.from_dict({
                    'id': row['id'],
                    'amount': row['amount'],
                    'description': row['description'],
                    'category': row['category_id'],
                    'date': row['date'],
                    'createdAt': row['created_at'],
                    'updatedAt': row['updated_at'],
                }))
            except ExpenseValidationError as exc:
                logger.warning("Skipping unreadable expense %s: %s", row['id'], exc)
        return expenses

    def save_expenses(self, expenses: List[Expense]) -> None:
        rows = [
            (
                expense.id,
                expense.amount,
                expense.description,
                expense.category.id.value,
                expense.date.isoformat(),
                expense.created_at.isoformat(),
                expense.updated_at.isoformat(),
            )
            for expense in expenses
        ]
        try:
            with self.connect() as conn:
                with conn:
                    conn.execute("DELETE FROM expenses")
                    conn.executemany(
                        "INSERT INTO expenses (id, amount, description, category_id, date, created_at, updated_at) "
                        "VALUES (?, ?, ?, ?, ?, ?, ?)",
                        rows,
                    )
        except sqlite3.Error as exc:
            raise StorageError("Failed to save expenses") from exc

    def get_categories(self) -> List[Category]:
        try:
            with self.connect() as conn:
                rows = conn.execute(
                    "SELECT id, name, color, icon, description FROM categories ORDER BY rowid"
                ).fetchall()
            return [Category.from_dict(dict(row)) for row in rows]
        except (sqlite3.Error, ValueError) as exc:
            logger.warning("Could not read categories from %s: %s", self.db_path, exc)
            return []

    def save_categories(self, categories: List[Category]) -> None:
        rows = [
            (category.id.value, category.name, category.color, category.icon, category.description)
            for category in categories
        ]
        try:
            with self.connect() as conn:
                with conn:
                    conn.execute("DELETE FROM categories")
                    conn.executemany(
                        "INSERT INTO categories (id, name, color, icon, description) VALUES (?, ?, ?, ?, ?)",
                        rows,
                    )
        except sqlite3.Error as exc:
            raise StorageError("Failed to save categories") from exc

    def _get_mapping(self, key: str) -> Dict[str, Any]:
        try:
            with self.connect() as conn:
                row = conn.execute("SELECT value FROM key_value WHERE key = ?", (key,)).fetchone()
            data = json.loads(row['value']) if row else {}
        except (sqlite3.Error, json.JSONDecodeError) as exc:
            logger.warning("Could not read %s from %s: %s", key, self.db_path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _save_mapping(self, key: str, value: Dict[str, Any]) -> None:
        try:
            payload = json.dumps(value)
            with self.connect() as conn:
                with conn:
                    conn.execute(
                        "INSERT OR REPLACE INTO key_value (key, value) VALUES (?, ?)",
                        (key, payload),
                    )
        except (sqlite3.Error, TypeError) as exc:
            raise StorageError(f"Failed to save {key}") from exc

    def get_settings(self) -> Dict[str, Any]:
        return self._get_mapping(config.STORAGE_KEYS['settings'])

    def save_settings(self, settings: Dict[str, Any]) -> None:
        self._save_mapping(config.STORAGE_KEYS['settings'], settings)

    def get_user_preferences(self) -> Dict[str, Any]:
        return self._get_mapping(config.STORAGE_KEYS['user_preferences'])

    def save_user_preferences(self, preferences: Dict[str, Any]) -> None:
        self._save_mapping(config.STORAGE_KEYS['user_preferences'], preferences)

    def clear_all(self) -> None:
        try:
            with self.connect() as conn:
                with conn:
                    conn.execute("DELETE FROM expenses")
                    conn.execute("DELETE FROM categories")
                    conn.execute("DELETE FROM key_value")
        except sqlite3.Error as exc:
            raise StorageError("Failed to clear database") from exc


def get_storage_service(backend: Optional[str] = None) -> StorageService:
    """Return the storage backend named by ``backend`` or ``STORAGE_BACKEND``."""
    backend = (backend or config.STORAGE_BACKEND).lower()
    if backend == 'sqlite':
        return SqliteStorageService()
    if backend == 'local':
        return LocalStorageService()
    raise ValueError(f"Unknown storage backend '{backend}'")
