"""
AMU Monitor API Server - local web UI and JSON API.
"""

import logging
from datetime import date

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from api.deps import get_app_store
from api.records_router import records_router
from api.response_models import HealthResponse
from engine import render_html
from lib import config
from lib import db as db_module
from lib.capture import capture_record, farm_names, list_records
from lib.catalogue import get_catalogue
from lib.dashboard import build_dashboard
from lib.observability import CorrelationIdMiddleware, HealthChecker, configure_logging
from lib.records import KINDS, RecordError
from lib.withdrawal import compute_withdrawal

logger = logging.getLogger(__name__)

# FastAPI app initialization
app = FastAPI(
    title="AMU Monitor API",
    description="Antimicrobial use records, withdrawal periods and residue results for farms",
    version="1.0.0",
)

# CORS middleware - configurable via CORS_ORIGINS env var
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)


# ==== Startup ====
@app.on_event("startup")
async def startup():
    """Configure logging, run DB migrations and warm the store."""
    configure_logging(config.LOG_LEVEL, config.LOG_JSON)
    logger.info("=== AMU Monitor Startup ===")
    store = get_app_store()
    info = db_module.get_db_info(store.db_path)
    logger.info(f"DB path: {info['resolved_db_path']}")
    logger.info(f"DB schema version (user_version): {info['user_version']}")
    logger.info(f"Catalogue: {len(get_catalogue().all())} antimicrobials")


# ==== Health ====
# Declared before the records router so /api/{kind} does not shadow it.


@app.get("/api/health", response_model=HealthResponse)
def health():
    """Database and disk checks. 503 when unhealthy."""
    report = HealthChecker(db_path=get_app_store().db_path).run_all()
    body = report.to_dict()
    if body["status"] == "unhealthy":
        return JSONResponse(content=body, status_code=503)
    return body


app.include_router(records_router)


# ==== HTML pages ====


def _kind_page(slug: str, values=None, errors=None, status_code: int = 200) -> HTMLResponse:
    store = get_app_store()
    html = render_html.render_kind_page(
        slug,
        KINDS[slug].label,
        list_records(store, slug),
        farms=farm_names(store),
        prescriptions=store.list("prescriptions"),
        drug_names=get_catalogue().names(),
        values=values,
        errors=errors,
    )
    return HTMLResponse(content=html, status_code=status_code)


def _require_kind(slug: str) -> None:
    if slug not in KINDS:
        raise HTTPException(status_code=404, detail=f"Unknown record kind: {slug}")


@app.get("/", response_class=HTMLResponse)
def dashboard_page():
    store = get_app_store()
    stats = build_dashboard(store)
    return render_html.render_dashboard_page(stats, farm_names(store))


@app.get("/withdrawal", response_class=HTMLResponse)
def withdrawal_page(end_date: str | None = None, withdrawal_days: str | None = None):
    """Calculator page. Computes when both fields are given."""
    values = {"end_date": end_date or "", "withdrawal_days": withdrawal_days or ""}
    if not end_date or not withdrawal_days:
        return render_html.render_withdrawal_page(values)
    try:
        days = int(withdrawal_days)
        result = compute_withdrawal(end_date, days, date.today())
    except ValueError as e:
        return HTMLResponse(
            content=render_html.render_withdrawal_page(values, error=str(e)),
            status_code=400,
        )
    return render_html.render_withdrawal_page(values, result=result.to_dict())


@app.get("/{slug}", response_class=HTMLResponse)
def kind_page(slug: str):
    _require_kind(slug)
    return _kind_page(slug)


@app.post("/{slug}")
async def submit_form(slug: str, request: Request):
    """Save a form post; re-render with errors on invalid input."""
    _require_kind(slug)
    form = await request.form()
    values = {k: v for k, v in form.items() if isinstance(v, str)}
    try:
        capture_record(get_app_store(), slug, values)
    except RecordError as e:
        return _kind_page(slug, values=values, errors=e.errors, status_code=400)
    except ValueError as e:
        return _kind_page(
            slug, values=values, errors=[{"field": "form", "message": str(e)}], status_code=400
        )
    return RedirectResponse(url=f"/{slug}", status_code=303)


@app.post("/{slug}/{record_id}/delete")
def delete_from_form(slug: str, record_id: str):
    _require_kind(slug)
    if not get_app_store().delete(slug, record_id):
        raise HTTPException(status_code=404, detail="Record not found")
    return RedirectResponse(url=f"/{slug}", status_code=303)


# ==== Main ====


def main(host: str | None = None, port: int | None = None):
    """Run the server."""
    uvicorn.run(app, host=host or config.HOST, port=port or config.PORT)


if __name__ == "__main__":
    main()
