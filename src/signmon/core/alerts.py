"""Merge health alerts with threshold alerts and order them for operators."""

from __future__ import annotations

from collections.abc import Iterable

from signmon.config import HealthConfig
from signmon.models import Alert, AlertSeverity, HealthReport, RequestSummary


def sort_alerts(alerts: Iterable[Alert]) -> list[Alert]:
    """Critical first, then warning, then info; ties keep their input order."""
    return sorted(alerts, key=lambda a: -AlertSeverity(a.severity).rank)


def filter_alerts(alerts: Iterable[Alert], severity: AlertSeverity | str | None) -> list[Alert]:
    if not severity:
        return list(alerts)
    return [a for a in alerts if a.severity == severity]


def threshold_alerts(
    uptime_seconds: float,
    requests: RequestSummary | None = None,
    config: HealthConfig | None = None,
) -> list[Alert]:
    """Alerts not covered by any health check."""
    config = config or HealthConfig()
    alerts: list[Alert] = []

    if uptime_seconds < config.restart_window_seconds:
        alerts.append(Alert(
            component="system",
            severity=AlertSeverity.INFO,
            message=f"System recently restarted (uptime: {uptime_seconds:.0f}s)",
        ))

    if requests is not None and requests.total:
        if requests.error_rate > config.error_rate:
            alerts.append(Alert(
                component="requests",
                severity=AlertSeverity.WARNING,
                message=f"High error rate: {requests.error_rate * 100:.1f}%",
            ))
        if requests.average_latency_ms >= config.response_time_threshold_ms:
            alerts.append(Alert(
                component="requests",
                severity=AlertSeverity.WARNING,
                message=f"Slow average response time: {requests.average_latency_ms:.0f}ms",
            ))

    return alerts


def build_alerts(
    report: HealthReport,
    uptime_seconds: float,
    requests: RequestSummary | None = None,
    config: HealthConfig | None = None,
) -> list[Alert]:
    """Health alerts followed by threshold alerts, sorted by severity."""
    merged = list(report.alerts) + threshold_alerts(uptime_seconds, requests, config)
    return sort_alerts(merged)


def summarize_alerts(alerts: list[Alert]) -> dict[str, object]:
    return {
        "total": len(alerts),
        "critical": sum(1 for a in alerts if a.severity is AlertSeverity.CRITICAL),
        "warning": sum(1 for a in alerts if a.severity is AlertSeverity.WARNING),
        "info": sum(1 for a in alerts if a.severity is AlertSeverity.INFO),
        "items": alerts,
    }
