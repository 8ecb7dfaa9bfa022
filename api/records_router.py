"""
Records API Router — JSON endpoints behind the forms and dashboard.

Provides endpoints for:
- Creating, listing, reading and deleting records of each kind
- Dashboard statistics
- The withdrawal calculator
- The antimicrobial catalogue
- Export / import of all local data and wiping it
"""

import logging
import sqlite3
from datetime import date
from typing import Any

from fastapi import APIRouter, Body, HTTPException, Query
from fastapi.responses import PlainTextResponse

from api.deps import get_app_store
from api.response_models import (
    DashboardResponse,
    DetailResponse,
    ListResponse,
    MutationResponse,
    WithdrawalResponse,
)
from lib.capture import capture_record, get_record, list_records
from lib.catalogue import get_catalogue
from lib.dashboard import build_dashboard
from lib.export import ExportFormat, export_kind, parse_format
from lib.records import KINDS, RecordError
from lib.withdrawal import compute_withdrawal, parse_date

logger = logging.getLogger(__name__)

records_router = APIRouter(prefix="/api", tags=["Records"])


def _check_kind(kind: str) -> None:
    if kind not in KINDS:
        raise HTTPException(status_code=404, detail=f"Unknown record kind: {kind}")


def _parse_today(today: str | None) -> date | None:
    if today is None:
        return None
    try:
        return parse_date(today)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


# ==== Dashboard / calculator / catalogue ====
# Registered before /{kind} so the fixed paths win.


@records_router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(today: str | None = Query(None, description="Reference date, YYYY-MM-DD")):
    """Aggregate statistics for the dashboard."""
    return build_dashboard(get_app_store(), today=_parse_today(today))


@records_router.get("/withdrawal", response_model=WithdrawalResponse)
def calculate_withdrawal(
    end_date: str = Query(..., description="Treatment end date, YYYY-MM-DD"),
    withdrawal_days: int = Query(..., description="Withdrawal period in days"),
    today: str | None = Query(None, description="Reference date, YYYY-MM-DD"),
):
    """Clearance date and days remaining for a treatment end date."""
    try:
        return compute_withdrawal(end_date, withdrawal_days, _parse_today(today)).to_dict()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@records_router.get("/catalogue", response_model=ListResponse)
def list_catalogue():
    """Antimicrobial reference list."""
    drugs = [d.to_dict() for d in get_catalogue().all()]
    return {"items": drugs, "total": len(drugs)}


# ==== Export / import / wipe ====


@records_router.get("/export")
def export_data(
    format: str = Query("json", description="Export format: json, csv, jsonl"),
    kind: str | None = Query(None, description="Record kind; required for csv/jsonl"),
):
    """
    Export local data.

    json without kind returns a full snapshot that /api/import accepts.
    """
    try:
        fmt = parse_format(format)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    store = get_app_store()
    if kind is None:
        if fmt is not ExportFormat.JSON:
            raise HTTPException(status_code=400, detail="kind is required for csv and jsonl")
        return store.export_snapshot()

    _check_kind(kind)
    media_type = {
        ExportFormat.CSV: "text/csv",
        ExportFormat.JSONL: "application/x-ndjson",
        ExportFormat.JSON: "application/json",
    }[fmt]
    filename = f"{kind}.{fmt.value}"
    return PlainTextResponse(
        export_kind(store, kind, fmt),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@records_router.post("/import", response_model=MutationResponse)
def import_data(
    snapshot: dict[str, Any] = Body(..., description="Snapshot from /api/export"),
    replace: bool = Query(True, description="Wipe existing data first"),
):
    """Load a snapshot produced by /api/export."""
    try:
        counts = get_app_store().import_snapshot(snapshot, replace=replace)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except sqlite3.Error as e:
        logger.error(f"Error importing snapshot: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e
    return {"success": True, "imported": counts}


@records_router.delete("/data", response_model=MutationResponse)
def wipe_data():
    """Delete all local data."""
    get_app_store().clear()
    return {"success": True}


# ==== Per-kind CRUD ====


@records_router.get("/{kind}", response_model=ListResponse)
def list_kind(
    kind: str,
    farm_id: str | None = Query(None, description="Only records for this farm"),
    today: str | None = Query(None, description="Reference date for withdrawal status"),
):
    """List records of a kind, newest first."""
    _check_kind(kind)
    items = list_records(get_app_store(), kind, farm_id=farm_id, today=_parse_today(today))
    return {"items": items, "total": len(items)}


@records_router.post("/{kind}", response_model=DetailResponse, status_code=201)
def create_kind(kind: str, payload: dict[str, Any] = Body(...)):
    """Validate and save a record."""
    _check_kind(kind)
    try:
        return capture_record(get_app_store(), kind, payload)
    except RecordError as e:
        raise HTTPException(status_code=400, detail=e.errors) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except sqlite3.Error as e:
        logger.error(f"Error saving {kind} record: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@records_router.get("/{kind}/{record_id}", response_model=DetailResponse)
def get_kind_record(kind: str, record_id: str, today: str | None = Query(None)):
    _check_kind(kind)
    record = get_record(get_app_store(), kind, record_id, today=_parse_today(today))
    if record is None:
        raise HTTPException(status_code=404, detail="Record not found")
    return record


@records_router.delete("/{kind}/{record_id}", response_model=MutationResponse)
def delete_kind_record(kind: str, record_id: str):
    """Delete a record. Deleting a farm removes its dependent records."""
    _check_kind(kind)
    if not get_app_store().delete(kind, record_id):
        raise HTTPException(status_code=404, detail="Record not found")
    return {"success": True, "id": record_id}
