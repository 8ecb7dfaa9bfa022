"""
Observability module: structured logging, request IDs, health checks.

Usage:
    from lib.observability import configure_logging, HealthChecker

    configure_logging("INFO")
    logger = logging.getLogger(__name__)

    report = HealthChecker(db_path=store.db_path).run_all()
"""

from .context import RequestContext, get_request_id, set_request_id
from .health import HealthChecker, HealthStatus
from .logging import HumanFormatter, JSONFormatter, configure_logging
from .middleware import CorrelationIdMiddleware

__all__ = [
    # Logging
    "configure_logging",
    "JSONFormatter",
    "HumanFormatter",
    # Context
    "RequestContext",
    "get_request_id",
    "set_request_id",
    "CorrelationIdMiddleware",
    # Health
    "HealthChecker",
    "HealthStatus",
]
