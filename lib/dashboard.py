"""
Dashboard aggregation — counts, withdrawal status and chart series.

Everything here is a pure function of the store contents and a reference
date, so the same numbers back the HTML dashboard, /api/dashboard and the
CLI `stats` command.
"""

import logging
from collections import Counter
from datetime import date
from typing import Any

from lib import config
from lib.catalogue import Catalogue, get_catalogue
from lib.records import KINDS, enrich_treatment
from lib.state_store import StateStore
from lib.withdrawal import parse_date

logger = logging.getLogger(__name__)


def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def shift_month(d: date, months: int) -> date:
    """First day of the month *months* away from d's month."""
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_change_pct(current: int, previous: int) -> float | None:
    """Percent change from previous to current; None when previous is zero."""
    if previous == 0:
        return None
    return round((current - previous) / previous * 100, 1)


def usage_by_antimicrobial(treatments: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """One bar per antimicrobial: number of treatment events, largest first."""
    counts = Counter(t["antimicrobial"] for t in treatments)
    return [
        {"label": name, "value": n}
        for name, n in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0].casefold()))
    ]


def usage_by_month(
    treatments: list[dict[str, Any]], today: date, months: int | None = None
) -> list[dict[str, Any]]:
    """Treatment events per YYYY-MM by start date, oldest first, zero-filled."""
    months = months or config.USAGE_MONTHS
    keys = [month_key(shift_month(today, -i)) for i in range(months - 1, -1, -1)]
    counts = Counter(month_key(parse_date(t["start_date"])) for t in treatments)
    return [{"label": k, "value": counts.get(k, 0)} for k in keys]


def build_dashboard(
    store: StateStore,
    today: date | None = None,
    catalogue: Catalogue | None = None,
) -> dict[str, Any]:
    """Aggregate statistics for the dashboard page."""
    today = today or date.today()
    catalogue = catalogue or get_catalogue()

    treatments = [enrich_treatment(t, catalogue, today) for t in store.list("treatments")]
    lab_results = store.list("lab-results")

    this_month = month_key(today)
    last_month = month_key(shift_month(today, -1))
    by_month = Counter(month_key(parse_date(t["start_date"])) for t in treatments)

    active = [t for t in treatments if not t["cleared"]]
    upcoming = sorted(active, key=lambda t: (t["clearance_date"], t["id"]))

    stats = {
        "as_of": today.isoformat(),
        "counts": {slug: store.count(slug) for slug in KINDS},
        "active_withdrawals": len(active),
        "flagged_treatments": sum(1 for t in treatments if t["flagged"]),
        "failed_lab_results": sum(1 for r in lab_results if r.get("outcome") == "fail"),
        "treatments_this_month": by_month.get(this_month, 0),
        "treatments_last_month": by_month.get(last_month, 0),
        "month_change_pct": month_change_pct(
            by_month.get(this_month, 0), by_month.get(last_month, 0)
        ),
        "usage_by_antimicrobial": usage_by_antimicrobial(treatments),
        "usage_by_month": usage_by_month(treatments, today),
        "upcoming_clearances": upcoming[: config.UPCOMING_CLEARANCE_LIMIT],
    }
    logger.debug(
        "Dashboard built: %d treatments, %d active withdrawals", len(treatments), len(active)
    )
    return stats
