"""Markdown formatters for LLM-friendly output."""

from __future__ import annotations

from typing import Any

from signmon.models import (
    Alert,
    ErrorSummary,
    HealthReport,
    MetricsReport,
    SystemSnapshot,
)

_STATUS_ICON = {
    "healthy": "OK",
    "warning": "WARN",
    "critical": "CRIT",
    "error": "ERR",
}


def format_health(report: HealthReport) -> str:
    """Format a health report as a component table plus alerts."""
    lines = [
        f"## Health: {report.overall.value.upper()}",
        f"**Time:** {report.timestamp.isoformat()}  ",
        "",
        "| Component | Status | Message | Response |",
        "|-----------|--------|---------|----------|",
    ]
    for name, result in report.components.items():
        rt = f"{result.response_time_ms:.0f} ms" if result.response_time_ms is not None else "—"
        icon = _STATUS_ICON.get(result.status.value, result.status.value)
        lines.append(f"| {name} | {icon} | {result.message} | {rt} |")

    if report.alerts:
        lines.extend(["", format_alerts(list(report.alerts))])
    return "\n".join(lines)


def format_alerts(alerts: list[Alert]) -> str:
    if not alerts:
        return "No active alerts."
    lines = [f"### Alerts ({len(alerts)})", ""]
    for a in alerts:
        lines.append(f"- **{a.severity.value}** [{a.component}] {a.message}")
    return "\n".join(lines)


def format_snapshot(snap: SystemSnapshot | None) -> str:
    """Format a system snapshot as markdown."""
    if snap is None:
        return "*No system snapshot collected yet*"

    m, c, d, n, p = snap.memory, snap.cpu, snap.disk, snap.network, snap.process
    disk_usage = f"{d.usage_percent}%" if d.usage_percent is not None else "—"
    return "\n".join([
        f"## System: {n.hostname}",
        f"**Time:** {snap.timestamp.isoformat()}  ",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| PID | {p.pid} |",
        f"| Uptime | {p.uptime_seconds:.0f}s |",
        f"| Runtime | {p.runtime_version} ({p.platform}/{p.arch}) |",
        f"| Process memory | {m.process.rss / (1024 * 1024):.1f} MB ({m.process.usage_percent}%) |",
        f"| Host memory | {m.host.usage_percent}% used |",
        f"| CPU | {c.usage_percent}% ({c.cores} cores) |",
        f"| Load | {c.load_1m:.2f} / {c.load_5m:.2f} / {c.load_15m:.2f} |",
        f"| Disk | {'available' if d.available else 'unavailable'} {disk_usage} |",
        f"| Interfaces | {len(n.interfaces)} |",
    ])


def format_errors(summary: ErrorSummary, title: str = "Recent Errors") -> str:
    if summary.total == 0:
        return "No errors recorded in this window."

    sev = ", ".join(f"{k}: {v}" for k, v in summary.by_severity.items() if v)
    lines = [
        f"## {title} ({summary.total})",
        f"**By severity:** {sev}  ",
        "",
        "| Time | Kind | Severity | Message |",
        "|------|------|----------|---------|",
    ]
    for e in summary.recent:
        msg = e.message[:80] + "..." if len(e.message) > 80 else e.message
        lines.append(f"| {e.timestamp.isoformat()} | {e.kind} | {e.severity.value} | {msg} |")
    return "\n".join(lines)


def format_metrics(report: MetricsReport) -> str:
    """Format windowed request metrics with the per-endpoint breakdown."""
    r = report.requests
    lines = [
        f"## Metrics ({report.time_range.value})",
        f"**Since:** {report.since.isoformat()}  ",
        f"**Uptime:** {report.uptime_seconds:.0f}s  ",
        "",
        f"Requests: {r.total} ({r.successful} ok, {r.failed} failed)  ",
        f"Average latency: {r.average_latency_ms} ms  ",
        f"Error rate: {r.error_rate * 100:.1f}%",
    ]

    if r.endpoints:
        lines.extend([
            "",
            "| Endpoint | Total | Failed | Avg ms | Error rate |",
            "|----------|-------|--------|--------|------------|",
        ])
        for key, ep in sorted(r.endpoints.items()):
            lines.append(
                f"| {key} | {ep.total} | {ep.failed} | {ep.average_latency_ms} | {ep.error_rate * 100:.1f}% |"
            )

    if report.history:
        lines.extend(["", "| Bucket start | Requests | Failed | Errors |", "|---|---|---|---|"])
        for b in report.history:
            lines.append(f"| {b.start.isoformat()} | {b.requests} | {b.failed} | {b.errors} |")

    lines.extend(["", format_errors(report.errors)])
    return "\n".join(lines)


def format_status(status: dict[str, Any]) -> str:
    lines = ["## Status", "", "| Key | Value |", "|-----|-------|"]
    for key, value in status.items():
        if isinstance(value, dict):
            continue
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        elif hasattr(value, "isoformat"):
            value = value.isoformat()
        lines.append(f"| {key} | {value} |")
    return "\n".join(lines)
