"""
Centralized configuration for AMU Monitor.

All values that vary by deployment belong here.
Override via environment variables where marked.
"""

import os
from pathlib import Path

from lib import paths

# ============================================================
# Server
# ============================================================

HOST: str = os.environ.get("AMU_MONITOR_HOST", "127.0.0.1")
"""Bind address for the local UI server."""

PORT: int = int(os.environ.get("AMU_MONITOR_PORT", "8420"))
"""Port for the local UI server."""

CORS_ORIGINS: list[str] = [
    o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()
]
"""Allowed CORS origins. '*' in dev; comma-separated list otherwise."""

# ============================================================
# Logging
# ============================================================

LOG_LEVEL: str = os.environ.get("AMU_MONITOR_LOG_LEVEL", "INFO")
"""Root log level."""

LOG_JSON: bool | None = (
    None
    if os.environ.get("AMU_MONITOR_LOG_JSON") is None
    else os.environ["AMU_MONITOR_LOG_JSON"].lower() in ("1", "true", "yes")
)
"""Force JSON logs on/off. Unset = auto-detect from TTY."""

# ============================================================
# Domain
# ============================================================

REGION_LABEL: str = os.environ.get("AMU_MONITOR_REGION", "India — Aquaculture module")
"""Subtitle shown next to the app title."""


def catalogue_path() -> Path:
    """Antimicrobial catalogue YAML. Override with AMU_MONITOR_CATALOGUE."""
    override = os.environ.get("AMU_MONITOR_CATALOGUE")
    if override:
        return Path(override).expanduser()
    return paths.project_root() / "config" / "antimicrobials.yaml"


UPCOMING_CLEARANCE_LIMIT: int = 5
"""How many upcoming clearances the dashboard lists."""

USAGE_MONTHS: int = 6
"""Months covered by the monthly usage chart, current month included."""
