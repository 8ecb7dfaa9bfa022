"""
State Store — the single source of truth for captured records.

Records are held in memory, per kind, and every write is mirrored to the
local SQLite file so data survives restarts ("data stored locally").
"""

import json
import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

from lib import db as db_module
from lib import safe_sql, schema
from lib.records import (
    FARM_CHILD_KINDS,
    KINDS,
    RecordError,
    derive_outcome,
    get_kind,
    validate_input,
)

logger = logging.getLogger(__name__)

SNAPSHOT_FORMAT = "amu-monitor-snapshot"

# FK order: treatments reference prescriptions, everything references farms
_INSERT_ORDER = ("farms", "prescriptions", "treatments", "lab-results")
_DELETE_ORDER = tuple(reversed(_INSERT_ORDER))


class StateStore:
    """
    Central state store. In-memory lists for reads, SQLite mirror for persistence.
    Every component connects through here.
    """

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = Path(db_path) if db_path else db_module.get_db_path()
        self._lock = threading.RLock()
        self._cache: dict[str, list[dict[str, Any]]] = {}

        logger.info("StateStore initializing with DB: %s", self.db_path)
        db_module.run_startup_migrations(self.db_path)
        self._load_all()
        logger.info(
            "StateStore ready: %s",
            ", ".join(f"{slug}={len(rows)}" for slug, rows in self._cache.items()),
        )

    def _get_conn(self):
        return db_module.get_connection(self.db_path)

    def _load_all(self) -> None:
        with self._get_conn() as conn:
            for slug, kind in KINDS.items():
                sql = safe_sql.select(kind.table, order_by="created_at DESC, rowid DESC")
                self._cache[slug] = [dict(row) for row in conn.execute(sql).fetchall()]

    def reload(self) -> None:
        """Re-read every kind from the local DB."""
        with self._lock:
            self._load_all()

    # ==================== CRUD Operations ====================

    def add(self, slug: str, record: dict[str, Any]) -> str:
        """Insert a record. Returns its ID."""
        kind = get_kind(slug)
        if not record.get("id"):
            raise ValueError("Record must have an id")
        columns = _table_columns(kind.table)
        row = {col: record.get(col) for col in columns if col in record}

        with self._lock:
            try:
                with self._get_conn() as conn:
                    conn.execute(
                        safe_sql.insert_or_replace(kind.table, list(row)), list(row.values())
                    )
            except sqlite3.IntegrityError as e:
                raise ValueError(f"Cannot save {slug} record: {e}") from e
            rows = [r for r in self._cache[slug] if r["id"] != row["id"]]
            self._cache[slug] = [row, *rows]

        logger.info("Saved %s record %s", slug, row["id"])
        return row["id"]

    def get(self, slug: str, record_id: str) -> dict[str, Any] | None:
        """Get a single record by ID."""
        get_kind(slug)
        with self._lock:
            for row in self._cache[slug]:
                if row["id"] == record_id:
                    return dict(row)
        return None

    def list(self, slug: str, farm_id: str | None = None) -> list[dict[str, Any]]:
        """List records of a kind, newest first. Optionally for one farm."""
        get_kind(slug)
        with self._lock:
            rows = self._cache[slug]
            if farm_id is not None:
                rows = [r for r in rows if r.get("farm_id") == farm_id]
            return [dict(r) for r in rows]

    def count(self, slug: str) -> int:
        get_kind(slug)
        with self._lock:
            return len(self._cache[slug])

    def delete(self, slug: str, record_id: str) -> bool:
        """
        Delete a record. Deleting a farm also deletes its treatments,
        prescriptions and lab results. Returns False if not found.
        """
        kind = get_kind(slug)
        with self._lock:
            if self.get(slug, record_id) is None:
                return False
            with self._get_conn() as conn:
                if slug == "farms":
                    # treatments reference prescriptions, so they go first
                    for child in FARM_CHILD_KINDS:
                        conn.execute(
                            safe_sql.delete(KINDS[child].table, where="farm_id = ?"), [record_id]
                        )
                elif slug == "prescriptions":
                    conn.execute(
                        "UPDATE treatments SET prescription_id = NULL WHERE prescription_id = ?",
                        [record_id],
                    )
                conn.execute(safe_sql.delete(kind.table), [record_id])

            self._cache[slug] = [r for r in self._cache[slug] if r["id"] != record_id]
            if slug == "farms":
                for child in FARM_CHILD_KINDS:
                    self._cache[child] = [
                        r for r in self._cache[child] if r.get("farm_id") != record_id
                    ]
            elif slug == "prescriptions":
                for r in self._cache["treatments"]:
                    if r.get("prescription_id") == record_id:
                        r["prescription_id"] = None

        logger.info("Deleted %s record %s", slug, record_id)
        return True

    def clear(self) -> None:
        """Wipe all local data."""
        with self._lock:
            with self._get_conn() as conn:
                for slug in _DELETE_ORDER:
                    conn.execute(safe_sql.delete_all(KINDS[slug].table))
            for slug in KINDS:
                self._cache[slug] = []
        logger.warning("All local data cleared")

    # ==================== Snapshot (export / import) ====================

    def export_snapshot(self) -> dict[str, Any]:
        """JSON-compatible dump of every kind."""
        with self._lock:
            snapshot: dict[str, Any] = {
                "format": SNAPSHOT_FORMAT,
                "schema_version": schema.SCHEMA_VERSION,
                "exported_at": datetime.now().replace(microsecond=0).isoformat(),
            }
            for slug in KINDS:
                snapshot[slug] = [dict(r) for r in self._cache[slug]]
        return snapshot

    def import_snapshot(self, data: dict[str, Any], replace: bool = True) -> dict[str, int]:
        """
        Load a snapshot produced by export_snapshot.

        With replace=True existing data is wiped first; otherwise records are
        merged by ID. Returns counts imported per kind.
        """
        if not isinstance(data, dict) or data.get("format") != SNAPSHOT_FORMAT:
            raise ValueError("Not an AMU Monitor snapshot")

        # Validate everything before touching the DB so a bad snapshot leaves data intact
        sections = {slug: _snapshot_rows(slug, data.get(slug)) for slug in _INSERT_ORDER}

        counts: dict[str, int] = {}
        with self._lock:
            try:
                with self._get_conn() as conn:
                    if replace:
                        for slug in _DELETE_ORDER:
                            conn.execute(safe_sql.delete_all(KINDS[slug].table))
                    for slug in _INSERT_ORDER:
                        table = KINDS[slug].table
                        for row in sections[slug]:
                            conn.execute(
                                safe_sql.insert_or_replace(table, list(row)), list(row.values())
                            )
                        counts[slug] = len(sections[slug])
            except sqlite3.IntegrityError as e:
                raise ValueError(f"Snapshot is inconsistent: {e}") from e
            self._load_all()

        logger.info("Imported snapshot: %s", counts)
        return counts


def _snapshot_rows(slug: str, items: Any) -> list[dict[str, Any]]:
    """
    Check one snapshot section against the record input models.

    Returns storable rows that keep each item's own id and created_at.
    Raises ValueError naming the kind and id of the first bad entry.
    """
    items = items or []
    if not isinstance(items, list):
        raise ValueError(f"Snapshot section {slug!r} must be a list")

    columns = _table_columns(KINDS[slug].table)
    rows = []
    for item in items:
        if not isinstance(item, dict) or not item.get("id"):
            raise ValueError(f"Snapshot {slug} entry without id")
        try:
            model = validate_input(slug, item)
        except RecordError as e:
            raise ValueError(f"Snapshot {slug} record {item['id']}: {e}") from e

        record = {**item, **model.model_dump(mode="json")}
        if slug == "treatments" and record.get("withdrawal_days") is None:
            raise ValueError(f"Snapshot {slug} record {item['id']}: withdrawal_days is required")
        if slug == "lab-results":
            record["outcome"] = derive_outcome(record)
        rows.append({col: _scalar(record.get(col)) for col in columns if col in record})
    return rows


def _table_columns(table: str) -> list[str]:
    for name, table_def in schema.TABLES.items():
        if name == table:
            return [col for col, _ in table_def["columns"]]
    raise ValueError(f"Unknown table: {table!r}")


def _scalar(value: Any) -> Any:
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


# Singleton accessor
_store: StateStore | None = None
_store_lock = threading.Lock()


def get_store(db_path: str | Path | None = None) -> StateStore:
    """Get the shared state store."""
    global _store  # noqa: PLW0603
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = StateStore(db_path)
    return _store


def reset_store() -> None:
    """Drop the shared store (tests, or after changing AMU_MONITOR_HOME)."""
    global _store  # noqa: PLW0603
    with _store_lock:
        _store = None
