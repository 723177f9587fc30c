"""JSON payloads for the monitoring read endpoints.

Routing is left to the host application: each function here returns an
``EndpointResponse`` whose body is plain JSON-serializable data.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from signmon.core.alerts import summarize_alerts
from signmon.core.query import analyze_performance, cutoff
from signmon.core.service import Monitor
from signmon.exceptions import ApiError
from signmon.models import (
    ErrorContext,
    HealthReport,
    HealthStatus,
    RequestRecord,
    TimeRange,
)

DEFAULT_ERROR_LIMIT = 50


@dataclass(frozen=True, slots=True)
class EndpointResponse:
    status_code: int
    body: dict[str, Any]


def to_jsonable(value: Any) -> Any:
    """Recursively convert models, enums and datetimes to JSON-ready values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        data = {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
        if isinstance(value, RequestRecord):
            data["success"] = value.success
        return data
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    return value


def _failure(monitor: Monitor, exc: Exception, tag: str, message: str, code: str) -> EndpointResponse:
    monitor.record_error(exc, ErrorContext(tag=tag))
    return EndpointResponse(500, {"success": False, "error": message, "code": code})


def _parse_limit(limit: int | str | None) -> int:
    try:
        value = int(limit) if limit is not None else DEFAULT_ERROR_LIMIT
    except (TypeError, ValueError):
        return DEFAULT_ERROR_LIMIT
    return value if value > 0 else DEFAULT_ERROR_LIMIT


async def _safe_health(monitor: Monitor) -> HealthReport:
    """Health report that degrades to overall=error instead of raising."""
    try:
        return await monitor.health_check()
    except Exception as exc:
        monitor.record_error(exc, ErrorContext(tag="health_check_middleware"))
        return HealthReport(
            timestamp=monitor.clock.now(),
            overall=HealthStatus.ERROR,
            components={},
        )


async def health_response(monitor: Monitor) -> EndpointResponse:
    """200 for healthy/warning, 503 when overall is critical or error."""
    report = await _safe_health(monitor)
    status_code = 503 if report.is_unavailable else 200
    return EndpointResponse(status_code, {
        "success": report.overall is not HealthStatus.ERROR,
        "health": to_jsonable(report),
    })


def metrics_response(
    monitor: Monitor,
    time_range: str | None = None,
    history: bool = False,
) -> EndpointResponse:
    try:
        report = monitor.metrics(TimeRange.parse(time_range), history=history)
    except Exception as exc:
        return _failure(monitor, exc, "metrics_middleware",
                        "Failed to fetch metrics", "METRICS_ERROR")
    return EndpointResponse(200, {"success": True, "metrics": to_jsonable(report)})


def status_response(monitor: Monitor) -> EndpointResponse:
    try:
        status = monitor.status()
    except Exception as exc:
        return _failure(monitor, exc, "system_status_middleware",
                        "Failed to fetch system status", "STATUS_ERROR")
    return EndpointResponse(200, {"success": True, "status": to_jsonable(status)})


def performance_response(monitor: Monitor, time_range: str | None = None) -> EndpointResponse:
    try:
        rng = TimeRange.parse(time_range)
        since = cutoff(rng, monitor.clock.now())
        requests = monitor.store.query_requests(since)
        errors = monitor.store.query_errors(since)
        performance = {
            "time_range": rng,
            "requests": requests,
            "errors": errors,
            "system": monitor.collector.latest_snapshot(),
            "analysis": analyze_performance(requests, errors),
        }
    except Exception as exc:
        return _failure(monitor, exc, "performance_endpoint",
                        "Failed to fetch performance metrics", "PERFORMANCE_ERROR")
    return EndpointResponse(200, {"success": True, "performance": to_jsonable(performance)})


def errors_response(
    monitor: Monitor,
    time_range: str | None = None,
    severity: str | None = None,
    limit: int | str | None = None,
) -> EndpointResponse:
    try:
        rng = TimeRange.parse(time_range)
        max_items = _parse_limit(limit)
        summary = monitor.store.query_errors(cutoff(rng, monitor.clock.now()))
        recent = [e for e in summary.recent if not severity or e.severity == severity]
        summary = dataclasses.replace(summary, recent=tuple(recent[:max_items]))
    except Exception as exc:
        return _failure(monitor, exc, "errors_endpoint",
                        "Failed to fetch error metrics", "ERROR_METRICS_ERROR")
    return EndpointResponse(200, {
        "success": True,
        "errors": to_jsonable(summary),
        "filters": {"time_range": rng.value, "severity": severity or "all", "limit": max_items},
    })


async def alerts_response(monitor: Monitor, severity: str | None = None) -> EndpointResponse:
    try:
        report = await _safe_health(monitor)
        alerts = await monitor.alerts(severity=severity, report=report)
    except Exception as exc:
        return _failure(monitor, exc, "alerts_endpoint",
                        "Failed to fetch alerts", "ALERTS_ERROR")
    return EndpointResponse(200, {"success": True, "alerts": to_jsonable(summarize_alerts(alerts))})


async def diagnostics_response(monitor: Monitor) -> EndpointResponse:
    try:
        collector = monitor.collector
        diagnostics = {
            "timestamp": monitor.clock.now(),
            "environment": monitor.config.app.environment,
            "version": monitor.config.app.version,
            "runtime": collector.process_info(),
            "memory": collector.memory(),
            "system": collector.latest_snapshot(),
            "monitoring": monitor.stats(),
            "health": await _safe_health(monitor),
        }
    except Exception as exc:
        return _failure(monitor, exc, "diagnostics_endpoint",
                        "Failed to generate diagnostics", "DIAGNOSTICS_ERROR")
    return EndpointResponse(200, {"success": True, "diagnostics": to_jsonable(diagnostics)})


def error_trigger_response(
    monitor: Monitor,
    kind: str = "TestError",
    message: str = "This is a test error",
    user_id: str | None = None,
) -> EndpointResponse:
    """Record a synthetic error. Refused with 403 in production."""
    if monitor.config.app.is_production:
        return EndpointResponse(403, {
            "success": False,
            "error": "Test endpoints not available in production",
            "code": "FORBIDDEN",
        })

    record = monitor.record_error(
        ApiError(message, status_code=500, code=kind),
        ErrorContext(tag="test_error", user_triggered=True, user_id=user_id),
    )
    timestamp = record.timestamp if record else monitor.clock.now()
    return EndpointResponse(200, {
        "success": True,
        "message": "Test error recorded",
        "error": {"type": kind, "message": message, "timestamp": timestamp.isoformat()},
    })
