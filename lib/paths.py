from __future__ import annotations

import os
from pathlib import Path

APP_ENV_HOME = "AMU_MONITOR_HOME"
APP_ENV_DB = "AMU_MONITOR_DB"


def project_root() -> Path:
    """
    Repository/project root directory.
    Contains lib/, api/, cli/, engine/, config/.
    """
    return Path(__file__).parent.parent.resolve()


def app_home() -> Path:
    """
    User-writable home for AMU Monitor.
    Override with AMU_MONITOR_HOME.
    """
    if os.environ.get(APP_ENV_HOME):
        return Path(os.environ[APP_ENV_HOME]).expanduser().resolve()
    return (Path.home() / ".amu_monitor").resolve()


def data_dir() -> Path:
    d = app_home() / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


def db_path() -> Path:
    """
    Canonical local-storage DB path.

    Resolution order:
    1. AMU_MONITOR_DB env var (explicit override)
    2. ~/.amu_monitor/data/amu_monitor.db (default)
    """
    if os.environ.get(APP_ENV_DB):
        return Path(os.environ[APP_ENV_DB]).expanduser().resolve()
    return data_dir() / "amu_monitor.db"

