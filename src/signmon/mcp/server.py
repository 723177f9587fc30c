"""FastMCP server factory exposing the monitoring read endpoints as tools."""

from __future__ import annotations

import dataclasses

from signmon.config import SignmonConfig
from signmon.core.service import Monitor
from signmon.mcp.formatters import (
    format_alerts,
    format_errors,
    format_health,
    format_metrics,
    format_snapshot,
    format_status,
)
from signmon.models import TimeRange


def create_server(config: SignmonConfig | None = None, monitor: Monitor | None = None):
    """Create and return a configured FastMCP server instance.

    Args:
        config: Optional pre-loaded config. If None, loads from cwd.
        monitor: Optional monitor to report on. If None, one is built from config
            and its periodic sampler is started on the first tool call.
    """
    from mcp.server.fastmcp import FastMCP

    mcp = FastMCP("signmon", instructions="Health and metrics for the signage API")
    _config = config or SignmonConfig.load()
    _monitor = monitor or Monitor(_config)

    async def _ready() -> Monitor:
        if not _monitor.running:
            await _monitor.start()
            await _monitor.collector.collect()
        return _monitor

    @mcp.tool()
    async def signmon_health() -> str:
        """Run all health checks (database, storage, memory, disk, cpu, network)."""
        m = await _ready()
        return format_health(await m.health_check())

    @mcp.tool()
    async def signmon_metrics(time_range: str = "1h", history: bool = False) -> str:
        """Request and error aggregates for a time window.

        Args:
            time_range: One of 15m, 1h, 6h, 24h, 7d (default 1h)
            history: Include per-bucket counts for a time-series view
        """
        m = await _ready()
        report = m.metrics(TimeRange.parse(time_range), history=history)
        return format_metrics(report) + "\n\n" + format_snapshot(report.system)

    @mcp.tool()
    async def signmon_alerts(severity: str | None = None) -> str:
        """Active alerts, critical first.

        Args:
            severity: Only return alerts of this severity: critical, warning, info
        """
        m = await _ready()
        return format_alerts(await m.alerts(severity=severity))

    @mcp.tool()
    async def signmon_errors(time_range: str = "1h", severity: str | None = None) -> str:
        """Recorded errors in a time window.

        Args:
            time_range: One of 15m, 1h, 6h, 24h, 7d (default 1h)
            severity: Filter by severity: low, medium, high, critical
        """
        m = await _ready()
        summary = m.query.errors(TimeRange.parse(time_range))
        if severity:
            summary = dataclasses.replace(
                summary, recent=tuple(e for e in summary.recent if e.severity == severity)
            )
        return format_errors(summary)

    @mcp.tool()
    async def signmon_status() -> str:
        """Uptime, environment, version and monitoring counters."""
        m = await _ready()
        return format_status(m.status())

    @mcp.tool()
    async def signmon_diagnostics() -> str:
        """Everything at once: status, latest snapshot and full health report."""
        m = await _ready()
        return "\n\n---\n\n".join([
            format_status(m.status()),
            format_snapshot(m.collector.latest_snapshot()),
            format_health(await m.health_check()),
        ])

    return mcp


def main() -> None:
    """Entry point for signmon-mcp (stdio transport)."""
    server = create_server()
    server.run()


if __name__ == "__main__":
    main()
