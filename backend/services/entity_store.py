"""
Entity Store - Single-column updates for admin entities (users, extensions, models)
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any

from errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT UNIQUE NOT NULL,
    role TEXT DEFAULT 'developer' CHECK(role IN ('admin', 'developer', 'viewer')),
    status TEXT DEFAULT 'active' CHECK(status IN ('active', 'inactive')),
    updatedAt TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS extensions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT UNIQUE NOT NULL,
    status TEXT DEFAULT 'inactive' CHECK(status IN ('active', 'inactive')),
    updatedAt TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS models (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT UNIQUE NOT NULL,
    provider TEXT NOT NULL,
    isActive BOOLEAN DEFAULT 1,
    isDefault BOOLEAN DEFAULT 0,
    updatedAt TEXT DEFAULT CURRENT_TIMESTAMP
);
"""

# Only these columns may be written through update_entity_field
UPDATABLE_FIELDS: dict[str, frozenset[str]] = {
    "users": frozenset({"role", "status"}),
    "extensions": frozenset({"status"}),
    "models": frozenset({"isActive", "isDefault"}),
}


class EntityStore:
    """SQLite-backed persistence collaborator"""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self):
        """Create tables if missing"""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()

    def insert(self, table: str, values: dict[str, Any]) -> int:
        """Insert a row and return its id"""
        if table not in UPDATABLE_FIELDS:
            raise ValidationError(f"Unknown table: {table}")
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        conn = self._connect()
        try:
            with conn:
                cursor = conn.execute(
                    f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                    tuple(values.values()),
                )
            return cursor.lastrowid
        finally:
            conn.close()

    def get(self, table: str, entity_id: int) -> dict[str, Any]:
        if table not in UPDATABLE_FIELDS:
            raise ValidationError(f"Unknown table: {table}")
        conn = self._connect()
        try:
            row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (entity_id,)).fetchone()
        finally:
            conn.close()
        if row is None:
            raise NotFoundError(f"{table} entry not found: {entity_id}")
        return dict(row)

    def update_entity_field(self, table: str, entity_id: int, field: str, value: Any) -> bool:
        """Set one column of one row

        Returns False when the database itself fails. Unknown tables or
        fields and constraint violations raise ValidationError, a missing
        row raises NotFoundError.
        """
        allowed = UPDATABLE_FIELDS.get(table)
        if allowed is None:
            raise ValidationError(f"Unknown table: {table}")
        if field not in allowed:
            raise ValidationError(f"Field {field} of {table} cannot be updated")

        conn = self._connect()
        try:
            with conn:
                cursor = conn.execute(
                    f"UPDATE {table} SET {field} = ?, updatedAt = CURRENT_TIMESTAMP WHERE id = ?",
                    (value, entity_id),
                )
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Invalid value for {table}.{field}: {e}") from e
        except sqlite3.Error:
            logger.exception("Failed to update %s.%s for id %s", table, field, entity_id)
            return False
        finally:
            conn.close()

        if cursor.rowcount == 0:
            raise NotFoundError(f"{table} entry not found: {entity_id}")
        logger.info("Updated %s.%s for id %s", table, field, entity_id)
        return True

    def set_default_model(self, model_id: int) -> bool:
        """Make one model the default, clearing the flag on all others"""
        conn = self._connect()
        try:
            with conn:
                exists = conn.execute("SELECT 1 FROM models WHERE id = ?", (model_id,)).fetchone()
                if exists is None:
                    raise NotFoundError(f"models entry not found: {model_id}")
                conn.execute("UPDATE models SET isDefault = 0 WHERE isDefault = 1")
                conn.execute(
                    "UPDATE models SET isDefault = 1, updatedAt = CURRENT_TIMESTAMP WHERE id = ?",
                    (model_id,),
                )
        except sqlite3.Error:
            logger.exception("Failed to set default model %s", model_id)
            return False
        finally:
            conn.close()
        return True

    def get_default_model(self) -> str | None:
        """Name of the active model flagged as default, if any"""
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT name FROM models WHERE isDefault = 1 AND isActive = 1 ORDER BY id LIMIT 1"
            ).fetchone()
        except sqlite3.Error:
            logger.exception("Failed to read default model")
            return None
        finally:
            conn.close()
        return row["name"] if row is not None else None
