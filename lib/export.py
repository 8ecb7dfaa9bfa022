"""
Data export — portable copies of the local records.

Supports:
- JSON snapshot of every kind (re-importable via StateStore.import_snapshot)
- CSV of a single kind
- JSONL of a single kind
"""

import csv
import io
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any

from lib import schema
from lib.capture import list_records
from lib.records import get_kind
from lib.state_store import StateStore

logger = logging.getLogger(__name__)


class ExportFormat(Enum):
    """Supported export formats."""

    JSON = "json"
    CSV = "csv"
    JSONL = "jsonl"


def parse_format(value: str) -> ExportFormat:
    try:
        return ExportFormat[value.strip().upper()]
    except KeyError as e:
        raise ValueError("Invalid format. Supported: json, csv, jsonl") from e


def _columns(slug: str, rows: list[dict[str, Any]]) -> list[str]:
    table = get_kind(slug).table
    columns = [col for col, _ in schema.TABLES[table]["columns"]]
    # derived treatment fields follow the stored ones
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    return columns


def export_kind(store: StateStore, slug: str, fmt: ExportFormat) -> str:
    """Render one kind as CSV or JSONL text."""
    rows = list_records(store, slug)
    if fmt is ExportFormat.CSV:
        buf = io.StringIO()
        writer = csv.DictWriter(buf, fieldnames=_columns(slug, rows), extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)
        return buf.getvalue()
    if fmt is ExportFormat.JSONL:
        return "".join(json.dumps(row, sort_keys=True, default=str) + "\n" for row in rows)
    return json.dumps(rows, indent=2, default=str)


def write_snapshot(store: StateStore, path: str | Path) -> Path:
    """Write a full JSON snapshot to *path*. Returns the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    snapshot = store.export_snapshot()
    path.write_text(json.dumps(snapshot, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    logger.info("Wrote snapshot to %s", path)
    return path


def read_snapshot(store: StateStore, path: str | Path, replace: bool = True) -> dict[str, int]:
    """Load a JSON snapshot file into the store."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e
    return store.import_snapshot(data, replace=replace)
