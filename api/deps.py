"""
Shared accessors for API handlers.
"""

from lib.state_store import StateStore, get_store


def get_app_store() -> StateStore:
    """The process-wide store. Resolved per call so tests can swap it."""
    return get_store()
