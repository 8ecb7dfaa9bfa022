"""
Test configuration — repo root on sys.path and an isolated app home per test.

Every test gets its own AMU_MONITOR_HOME under tmp_path, so the SQLite
mirror never touches ~/.amu_monitor. Shared singletons (store, catalogue)
are dropped before and after each test.
"""

import sys
from pathlib import Path

import pytest

# Add repo root to sys.path so tests can import lib.*, api.*, cli.*, engine.*
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from lib.catalogue import reset_catalogue  # noqa: E402
from lib.state_store import StateStore, reset_store  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the app home at a temp dir and reset singletons."""
    monkeypatch.setenv("AMU_MONITOR_HOME", str(tmp_path))
    monkeypatch.delenv("AMU_MONITOR_DB", raising=False)
    monkeypatch.delenv("AMU_MONITOR_CATALOGUE", raising=False)
    reset_store()
    reset_catalogue()
    yield tmp_path
    reset_store()
    reset_catalogue()


@pytest.fixture
def store(tmp_path):
    """Fresh StateStore on a temp DB."""
    return StateStore(db_path=tmp_path / "data" / "test.db")


