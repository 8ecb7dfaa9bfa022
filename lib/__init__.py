# AMU Monitor - Core Library
"""
Exports for cli/main.py and other consumers.
"""

from .capture import capture_record, get_record, list_records
from .dashboard import build_dashboard
from .state_store import get_store
from .withdrawal import compute_withdrawal

__all__ = [
    "get_store",
    "capture_record",
    "get_record",
    "list_records",
    "build_dashboard",
    "compute_withdrawal",
]
