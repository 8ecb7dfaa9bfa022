"""High-level capture functions used by the forms, the JSON API and the CLI.

Validation lives in lib.records; storage in lib.state_store. This module
adds the cross-record checks (farm exists, prescription belongs to the
farm) and the read-side withdrawal enrichment.
"""

import logging
from datetime import date
from typing import Any

from lib.catalogue import Catalogue, get_catalogue
from lib.records import RecordError, build_record, enrich_treatment, get_kind
from lib.state_store import StateStore

logger = logging.getLogger(__name__)


def capture_record(
    store: StateStore,
    slug: str,
    payload: dict[str, Any],
    catalogue: Catalogue | None = None,
) -> dict[str, Any]:
    """
    Validate, check references and save a record.

    Returns the saved record (treatments enriched with withdrawal status).
    Raises RecordError (a ValueError) on invalid input.
    """
    catalogue = catalogue or get_catalogue()
    record = build_record(slug, payload, catalogue)

    if slug != "farms":
        _check_references(store, slug, record)

    store.add(slug, record)
    if slug == "treatments":
        if catalogue.is_banned(record["antimicrobial"]):
            logger.warning(
                "Banned antimicrobial %s logged for farm %s",
                record["antimicrobial"],
                record["farm_id"],
            )
        return enrich_treatment(record, catalogue)
    return record


def _check_references(store: StateStore, slug: str, record: dict[str, Any]) -> None:
    if store.get("farms", record["farm_id"]) is None:
        raise RecordError([{"field": "farm_id", "message": "farm not found"}])

    prescription_id = record.get("prescription_id")
    if slug == "treatments" and prescription_id:
        rx = store.get("prescriptions", prescription_id)
        if rx is None:
            raise RecordError([{"field": "prescription_id", "message": "prescription not found"}])
        if rx["farm_id"] != record["farm_id"]:
            raise RecordError(
                [{"field": "prescription_id", "message": "prescription is for a different farm"}]
            )


def list_records(
    store: StateStore,
    slug: str,
    farm_id: str | None = None,
    today: date | None = None,
    catalogue: Catalogue | None = None,
) -> list[dict[str, Any]]:
    """List records newest first; treatments carry withdrawal status."""
    rows = store.list(slug, farm_id=farm_id)
    if slug == "treatments":
        catalogue = catalogue or get_catalogue()
        return [enrich_treatment(r, catalogue, today) for r in rows]
    return rows


def get_record(
    store: StateStore,
    slug: str,
    record_id: str,
    today: date | None = None,
) -> dict[str, Any] | None:
    row = store.get(slug, record_id)
    if row is not None and slug == "treatments":
        return enrich_treatment(row, today=today)
    return row


def farm_names(store: StateStore) -> dict[str, str]:
    """Farm ID to name mapping for tables and drop-downs."""
    return {f["id"]: f["name"] for f in store.list("farms")}


def kind_label(slug: str) -> str:
    return get_kind(slug).label
