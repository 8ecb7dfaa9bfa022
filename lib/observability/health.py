"""
Health check system with component-level checks.
"""

import logging
import shutil
import sqlite3
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from lib import db as db_module
from lib import paths, schema

logger = logging.getLogger(__name__)


class HealthStatus(Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class HealthCheckResult:
    name: str
    status: HealthStatus
    message: str
    latency_ms: float = 0.0
    details: dict = field(default_factory=dict)


@dataclass
class HealthReport:
    status: HealthStatus
    checks: list[HealthCheckResult]
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "timestamp": self.timestamp,
            "checks": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "message": c.message,
                    "latency_ms": round(c.latency_ms, 2),
                    **c.details,
                }
                for c in self.checks
            ],
        }


class HealthChecker:
    """
    Health check orchestrator.

    Usage:
        checker = HealthChecker(db_path=store.db_path)
        checker.add_check("extra", my_check)
        report = checker.run_all()
    """

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = Path(db_path) if db_path else db_module.get_db_path()
        self._checks: dict[str, Callable[[], HealthCheckResult]] = {}
        self.add_check("db", self._check_db)
        self.add_check("disk_space", self._check_disk_space)

    def add_check(self, name: str, check_fn: Callable[[], HealthCheckResult]) -> None:
        """Register a health check function."""
        self._checks[name] = check_fn

    def run_all(self) -> HealthReport:
        """Run all health checks. Worst status wins."""
        results = []
        overall_status = HealthStatus.HEALTHY

        for name, check_fn in self._checks.items():
            start = time.monotonic()
            try:
                result = check_fn()
            except Exception as e:
                logger.error(f"Health check '{name}' failed with exception", exc_info=e)
                result = HealthCheckResult(
                    name=name,
                    status=HealthStatus.UNHEALTHY,
                    message=f"Check failed: {e}",
                )

            result.latency_ms = (time.monotonic() - start) * 1000
            results.append(result)

            if result.status == HealthStatus.UNHEALTHY:
                overall_status = HealthStatus.UNHEALTHY
            elif (
                result.status == HealthStatus.DEGRADED and overall_status != HealthStatus.UNHEALTHY
            ):
                overall_status = HealthStatus.DEGRADED

        return HealthReport(
            status=overall_status,
            checks=results,
            timestamp=datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
        )

    def _check_db(self) -> HealthCheckResult:
        """Database reachable and schema at the expected version."""
        try:
            with db_module.get_connection(self.db_path) as conn:
                version = db_module.get_schema_version(conn)
        except sqlite3.Error as e:
            logger.error("Database health check failed", exc_info=e)
            return HealthCheckResult(
                name="db",
                status=HealthStatus.UNHEALTHY,
                message=f"Database error: {e}",
            )

        details = {"path": str(self.db_path), "schema_version": version}
        if version != schema.SCHEMA_VERSION:
            return HealthCheckResult(
                name="db",
                status=HealthStatus.DEGRADED,
                message=f"Schema version mismatch: {version} != {schema.SCHEMA_VERSION}",
                details=details,
            )
        return HealthCheckResult(
            name="db",
            status=HealthStatus.HEALTHY,
            message="Database connection OK",
            details=details,
        )

    def _check_disk_space(self) -> HealthCheckResult:
        """Disk usage of the app home."""
        total, used, free = shutil.disk_usage(str(paths.app_home()))
        percent_used = (used / total) * 100 if total > 0 else 0
        details = {"free_bytes": free, "percent_used": round(percent_used, 2)}

        if percent_used > 95:
            status = HealthStatus.UNHEALTHY
        elif percent_used > 90:
            status = HealthStatus.DEGRADED
        else:
            status = HealthStatus.HEALTHY
        if status != HealthStatus.HEALTHY:
            logger.warning(f"Disk space {status.value}: {percent_used:.1f}% used")

        return HealthCheckResult(
            name="disk_space",
            status=status,
            message=f"Disk space {percent_used:.1f}% used",
            details=details,
        )
