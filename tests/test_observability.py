"""
Tests for lib/observability — log formatters, request context, health checks.
"""

import json
import logging

import pytest

from lib import db as db_module
from lib.observability import (
    HealthChecker,
    HealthStatus,
    HumanFormatter,
    JSONFormatter,
    RequestContext,
    configure_logging,
    get_request_id,
)
from lib.observability.health import HealthCheckResult


def _record(msg="Saved farms record farm-1", **extra):
    record = logging.LogRecord("lib.state_store", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRequestContext:
    def test_scoped(self):
        assert get_request_id() is None
        with RequestContext("req-test") as ctx:
            assert ctx.request_id == "req-test"
            assert get_request_id() == "req-test"
        assert get_request_id() is None

    def test_generates_id(self):
        with RequestContext() as ctx:
            assert ctx.request_id.startswith("req-")


class TestFormatters:
    def test_json_formatter(self):
        line = JSONFormatter().format(_record(farm_id="farm-1"))
        data = json.loads(line)
        assert data["level"] == "INFO"
        assert data["logger"] == "lib.state_store"
        assert data["message"] == "Saved farms record farm-1"
        assert data["farm_id"] == "farm-1"
        assert data["timestamp"].endswith("Z")
        assert "request_id" not in data

    def test_json_formatter_includes_request_id(self):
        with RequestContext("req-abc"):
            data = json.loads(JSONFormatter().format(_record()))
        assert data["request_id"] == "req-abc"

    def test_human_formatter(self):
        with RequestContext("req-0123456789abcdef"):
            line = HumanFormatter().format(_record())
        assert "[INFO] lib.state_store: [req-01234567] Saved farms record farm-1" in line


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json(self):
        configure_logging("DEBUG", json_format=True)
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_human(self):
        configure_logging("warning", json_format=False)
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, HumanFormatter)

    def test_unknown_level(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging("LOUD", json_format=False)


class TestHealthChecker:
    def test_fresh_db_healthy(self, store):
        report = HealthChecker(db_path=store.db_path).run_all()
        db_check = next(c for c in report.checks if c.name == "db")
        assert db_check.status == HealthStatus.HEALTHY
        assert report.to_dict()["checks"][0]["schema_version"] >= 1

    def test_version_mismatch_degraded(self, store):
        with db_module.get_connection(store.db_path) as conn:
            conn.execute("PRAGMA user_version = 1")
        checker = HealthChecker(db_path=store.db_path)
        checker.add_check(
            "disk_space", lambda: HealthCheckResult("disk_space", HealthStatus.HEALTHY, "ok")
        )
        report = checker.run_all()
        assert report.status == HealthStatus.DEGRADED

    def test_failing_check_is_unhealthy(self, store):
        def boom():
            raise RuntimeError("boom")

        checker = HealthChecker(db_path=store.db_path)
        checker.add_check("boom", boom)
        report = checker.run_all()
        assert report.status == HealthStatus.UNHEALTHY
        failed = next(c for c in report.checks if c.name == "boom")
        assert "boom" in failed.message
