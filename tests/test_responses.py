"""Tests for the monitoring endpoint payloads."""

import json
from unittest.mock import patch

import pytest

from conftest import FakeBackend
from signmon.api.responses import (
    alerts_response,
    diagnostics_response,
    error_trigger_response,
    errors_response,
    health_response,
    metrics_response,
    performance_response,
    status_response,
    to_jsonable,
)
from signmon.config import AppConfig, SignmonConfig
from signmon.core.service import Monitor
from signmon.exceptions import BackendError


class ValidationError(Exception):
    pass


@pytest.fixture
def monitor(collector, backend, clock, tmp_path):
    return Monitor(SignmonConfig(project_path=tmp_path), backend=backend,
                   clock=clock, collector=collector)


class TestHealthResponse:
    @pytest.mark.asyncio
    async def test_healthy_is_200(self, monitor):
        response = await health_response(monitor)
        assert response.status_code == 200
        assert response.body["success"] is True
        assert response.body["health"]["overall"] == "healthy"
        json.dumps(response.body)

    @pytest.mark.asyncio
    async def test_critical_is_503(self, collector, clock, tmp_path):
        backend = FakeBackend(database=BackendError("refused"))
        monitor = Monitor(SignmonConfig(project_path=tmp_path), backend=backend,
                          clock=clock, collector=collector)
        response = await health_response(monitor)
        assert response.status_code == 503
        assert response.body["success"] is True
        assert response.body["health"]["components"]["database"]["status"] == "critical"

    @pytest.mark.asyncio
    async def test_evaluator_failure_is_error_503(self, monitor):
        with patch.object(monitor, "health_check", side_effect=RuntimeError("boom")):
            response = await health_response(monitor)
        assert response.status_code == 503
        assert response.body["success"] is False
        assert response.body["health"]["overall"] == "error"
        assert monitor.store.error_log("RuntimeError")[0].context.tag == "health_check_middleware"


class TestMetricsResponse:
    def test_default_range(self, monitor):
        monitor.record_request("/screens/1", "GET", 200, 30.0)
        response = metrics_response(monitor)
        assert response.status_code == 200
        metrics = response.body["metrics"]
        assert metrics["time_range"] == "1h"
        assert metrics["requests"]["total"] == 1
        assert metrics["requests"]["endpoints"]["GET:/screens/:id"]["average_latency_ms"] == 30.0
        assert metrics["history"] is None
        json.dumps(response.body)

    def test_history(self, monitor):
        response = metrics_response(monitor, "24h", history=True)
        assert len(response.body["metrics"]["history"]) == 24

    def test_failure_code(self, monitor):
        with patch.object(monitor, "metrics", side_effect=RuntimeError("boom")):
            response = metrics_response(monitor)
        assert response.status_code == 500
        assert response.body == {"success": False, "error": "Failed to fetch metrics",
                                 "code": "METRICS_ERROR"}


class TestStatusResponse:
    def test_ok(self, monitor):
        response = status_response(monitor)
        assert response.status_code == 200
        assert response.body["status"]["environment"] == "development"
        json.dumps(response.body)

    def test_failure_code(self, monitor):
        with patch.object(monitor, "status", side_effect=RuntimeError("boom")):
            response = status_response(monitor)
        assert response.status_code == 500
        assert response.body["code"] == "STATUS_ERROR"


class TestPerformanceResponse:
    def test_analysis(self, monitor):
        for _ in range(4):
            monitor.record_request("/a", "GET", 500, 10.0)
        response = performance_response(monitor, "15m")
        performance = response.body["performance"]
        assert performance["time_range"] == "15m"
        assert performance["analysis"]["status"] == "poor"
        json.dumps(response.body)

    def test_failure_code(self, monitor):
        with patch.object(monitor.store, "query_requests", side_effect=RuntimeError("boom")):
            response = performance_response(monitor)
        assert response.body["code"] == "PERFORMANCE_ERROR"


class TestErrorsResponse:
    def test_filters_and_limit(self, monitor, clock):
        for i in range(3):
            monitor.record_error(ValidationError(f"v{i}"))
            clock.advance(1)
        monitor.record_error(RuntimeError("r"))
        response = errors_response(monitor, severity="low", limit="2")
        body = response.body
        assert body["filters"] == {"time_range": "1h", "severity": "low", "limit": 2}
        assert [e["message"] for e in body["errors"]["recent"]] == ["v2", "v1"]
        assert body["errors"]["total"] == 4

    def test_bad_limit_defaults(self, monitor):
        response = errors_response(monitor, limit="lots")
        assert response.body["filters"]["limit"] == 50
        assert response.body["filters"]["severity"] == "all"

    def test_failure_code(self, monitor):
        with patch.object(monitor.store, "query_errors", side_effect=RuntimeError("boom")):
            response = errors_response(monitor)
        assert response.body["code"] == "ERROR_METRICS_ERROR"


class TestAlertsResponse:
    @pytest.mark.asyncio
    async def test_summary(self, monitor):
        response = await alerts_response(monitor)
        alerts = response.body["alerts"]
        assert alerts["total"] == 1
        assert alerts["info"] == 1
        assert alerts["items"][0]["component"] == "system"

    @pytest.mark.asyncio
    async def test_severity_filter(self, monitor):
        response = await alerts_response(monitor, severity="critical")
        assert response.body["alerts"]["total"] == 0

    @pytest.mark.asyncio
    async def test_failure_code(self, monitor):
        with patch.object(monitor, "alerts", side_effect=RuntimeError("boom")):
            response = await alerts_response(monitor)
        assert response.status_code == 500
        assert response.body["code"] == "ALERTS_ERROR"


class TestDiagnosticsResponse:
    @pytest.mark.asyncio
    async def test_ok(self, monitor, collector):
        await collector.collect()
        response = await diagnostics_response(monitor)
        diagnostics = response.body["diagnostics"]
        assert diagnostics["system"]["network"]["hostname"] == "signage-1"
        assert diagnostics["monitoring"]["system_snapshots"] == 1
        assert diagnostics["health"]["overall"] == "healthy"
        json.dumps(response.body)

    @pytest.mark.asyncio
    async def test_failure_code(self, monitor):
        with patch.object(monitor, "stats", side_effect=RuntimeError("boom")):
            response = await diagnostics_response(monitor)
        assert response.body["code"] == "DIAGNOSTICS_ERROR"


class TestErrorTriggerResponse:
    def test_records_synthetic_error(self, monitor):
        response = error_trigger_response(monitor, kind="DatabaseError", message="fake outage",
                                          user_id="admin-1")
        assert response.status_code == 200
        record = monitor.store.error_log("DatabaseError")[0]
        assert record.severity.value == "high"
        assert record.context.tag == "test_error"
        assert record.context.user_triggered is True
        assert record.context.user_id == "admin-1"

    def test_forbidden_in_production(self, collector, backend, clock, tmp_path):
        config = SignmonConfig(project_path=tmp_path, app=AppConfig(environment="production"))
        monitor = Monitor(config, backend=backend, clock=clock, collector=collector)
        response = error_trigger_response(monitor)
        assert response.status_code == 403
        assert response.body["code"] == "FORBIDDEN"
        assert monitor.stats()["errors"] == 0


class TestToJsonable:
    def test_request_record_has_success(self, monitor):
        record = monitor.record_request("/a", "GET", 503, 1.0)
        data = to_jsonable(record)
        assert data["success"] is False
        assert data["status_code"] == 503
