"""Typer CLI for signmon health and system inspection."""

from __future__ import annotations

import asyncio
import json
from typing import Annotated, Optional

import typer
from rich.console import Console

from signmon.config import SignmonConfig
from signmon.core.service import Monitor
from signmon.logging_setup import setup_logging
from signmon.models import AlertSeverity, HealthStatus

app = typer.Typer(
    name="signmon",
    help="Health checks and resource monitoring for the signage API.",
    no_args_is_help=True,
)
console = Console(stderr=True)

_STATUS_STYLE = {
    HealthStatus.HEALTHY: "green",
    HealthStatus.WARNING: "yellow",
    HealthStatus.CRITICAL: "red",
    HealthStatus.ERROR: "red",
}

_SEVERITY_STYLE = {
    AlertSeverity.CRITICAL: "red",
    AlertSeverity.WARNING: "yellow",
    AlertSeverity.INFO: "cyan",
}


def _config() -> SignmonConfig:
    return SignmonConfig.load()


def _monitor(config: SignmonConfig) -> Monitor:
    return Monitor(config)


def _run(coro):
    return asyncio.run(coro)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    import logging

    setup_logging(logging.DEBUG if verbose else _config().app.log_level)


@app.command()
def health(
    as_json: Annotated[bool, typer.Option("--json", help="Print the raw report as JSON")] = False,
) -> None:
    """Run every health check. Exits 1 when the system is critical."""
    from signmon.api.responses import to_jsonable

    config = _config()

    async def _check():
        monitor = _monitor(config)
        try:
            return await monitor.health_check()
        finally:
            await monitor.stop()

    report = _run(_check())

    if as_json:
        typer.echo(json.dumps(to_jsonable(report), indent=2))
    else:
        from rich.table import Table

        style = _STATUS_STYLE[report.overall]
        console.print(f"\n[bold]Overall:[/bold] [{style}]{report.overall.value}[/{style}]")

        table = Table(title="Health Checks")
        table.add_column("Component", style="bold")
        table.add_column("Status")
        table.add_column("Message")
        table.add_column("Response", justify="right")
        for name, result in report.components.items():
            s = _STATUS_STYLE[result.status]
            rt = f"{result.response_time_ms:.0f} ms" if result.response_time_ms is not None else "—"
            table.add_row(name, f"[{s}]{result.status.value}[/{s}]", result.message, rt)
        console.print(table)

        for alert in report.alerts:
            s = _SEVERITY_STYLE[alert.severity]
            console.print(f"  [{s}]{alert.severity.value}[/{s}] [{alert.component}] {alert.message}")

    if report.is_unavailable:
        raise typer.Exit(1)


@app.command()
def snapshot() -> None:
    """Sample memory, CPU, disk, network and process info once."""
    config = _config()

    async def _sample():
        monitor = _monitor(config)
        try:
            return await monitor.collector.collect()
        finally:
            await monitor.stop()

    snap = _run(_sample())
    m, c, d, n, p = snap.memory, snap.cpu, snap.disk, snap.network, snap.process

    console.print(f"\n[bold]{n.hostname}[/bold] — {snap.timestamp.isoformat()}")
    console.print(f"  PID: {p.pid}  Uptime: {p.uptime_seconds:.0f}s  Runtime: {p.runtime_version}")
    console.print(
        f"  Memory: {m.process.rss / (1024 * 1024):.1f}MB ({m.process.usage_percent}%)"
        f"  Host: {m.host.usage_percent}%"
    )
    console.print(
        f"  CPU: {c.usage_percent}%  Load: {c.load_1m:.2f} {c.load_5m:.2f} {c.load_15m:.2f}"
        f"  Cores: {c.cores}"
    )
    if d.available:
        console.print(f"  Disk: {d.path} ({d.usage_percent}% used)")
    else:
        console.print(f"  [red]Disk unavailable:[/red] {d.error}")
    for iface in n.interfaces:
        console.print(f"  {iface.name}: {iface.address}")


@app.command()
def status() -> None:
    """Show uptime, environment and version."""
    from signmon.api.responses import status_response

    config = _config()

    async def _status():
        monitor = _monitor(config)
        try:
            return status_response(monitor)
        finally:
            await monitor.stop()

    response = _run(_status())
    typer.echo(json.dumps(response.body, indent=2))


@app.command()
def alerts(
    severity: Annotated[
        Optional[str], typer.Option("--severity", "-s", help="critical, warning or info")
    ] = None,
) -> None:
    """List active alerts, critical first."""
    config = _config()

    async def _alerts():
        monitor = _monitor(config)
        try:
            return await monitor.alerts(severity=severity)
        finally:
            await monitor.stop()

    items = _run(_alerts())
    if not items:
        console.print("[dim]No active alerts.[/dim]")
        return

    for alert in items:
        s = _SEVERITY_STYLE[alert.severity]
        console.print(f"[{s}]{alert.severity.value.upper()}[/{s}] [{alert.component}] {alert.message}")


@app.command()
def diagnostics() -> None:
    """Print the full diagnostics payload as JSON."""
    from signmon.api.responses import diagnostics_response

    config = _config()

    async def _diagnose():
        monitor = _monitor(config)
        try:
            await monitor.collector.collect()
            return await diagnostics_response(monitor)
        finally:
            await monitor.stop()

    response = _run(_diagnose())
    typer.echo(json.dumps(response.body, indent=2))
    if response.status_code != 200:
        raise typer.Exit(1)


@app.command("config")
def show_config() -> None:
    """Show the effective configuration (API key masked)."""
    from signmon.api.responses import to_jsonable

    data = to_jsonable(_config())
    data["project_path"] = str(data["project_path"])
    if data["backend"]["api_key"]:
        data["backend"]["api_key"] = "***"
    typer.echo(json.dumps(data, indent=2))


def main() -> None:
    """Entry point for the signmon CLI."""
    app()


if __name__ == "__main__":
    main()
