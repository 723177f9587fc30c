"""Health evaluation: fixed named checks aggregated into one overall status."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable

from signmon.config import HealthConfig
from signmon.core.backend import Backend
from signmon.core.clock import Clock, SystemClock
from signmon.core.collector import SystemCollector
from signmon.models import (
    Alert,
    AlertSeverity,
    HealthCheckResult,
    HealthReport,
    HealthStatus,
)

logger = logging.getLogger("signmon.health")

CheckFn = Callable[[], Awaitable[HealthCheckResult]]


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 2)


def classify_memory(
    process_percent: float,
    host_percent: float,
    config: HealthConfig,
) -> tuple[HealthStatus, str]:
    """Process usage drives the verdict; a full host only ever warns."""
    if process_percent >= config.memory_critical_percent:
        return HealthStatus.CRITICAL, f"High process memory usage: {process_percent:.1f}%"
    if process_percent >= config.memory_warning_percent:
        return HealthStatus.WARNING, f"Elevated process memory usage: {process_percent:.1f}%"
    if host_percent >= config.memory_critical_percent:
        return HealthStatus.WARNING, f"High host memory usage: {host_percent:.1f}%"
    return HealthStatus.HEALTHY, "Memory usage normal"


def classify_cpu(
    usage_percent: float,
    load_1m: float,
    cores: int,
    config: HealthConfig,
) -> tuple[HealthStatus, str]:
    if load_1m >= cores * config.load_factor:
        return HealthStatus.WARNING, f"High load average: {load_1m:.2f}"
    if usage_percent >= config.cpu_usage_percent:
        return HealthStatus.WARNING, f"High CPU usage: {usage_percent:.1f}%"
    return HealthStatus.HEALTHY, "CPU usage normal"


def aggregate(
    results: Iterable[HealthCheckResult],
) -> tuple[HealthStatus, tuple[Alert, ...]]:
    """Fold check results, in order, into the overall status and its alerts.

    Overall is the most severe status seen (error > critical > warning >
    healthy). Every error/critical check raises a critical alert; a warning
    only raises an alert while overall is still healthy.
    """
    overall = HealthStatus.HEALTHY
    alerts: list[Alert] = []

    for result in results:
        name = result.component
        if result.status in (HealthStatus.ERROR, HealthStatus.CRITICAL):
            alerts.append(Alert(
                component=name,
                severity=AlertSeverity.CRITICAL,
                message=result.message or f"{name} health check failed",
            ))
            if result.status.rank > overall.rank:
                overall = result.status
        elif result.status is HealthStatus.WARNING and overall is HealthStatus.HEALTHY:
            alerts.append(Alert(
                component=name,
                severity=AlertSeverity.WARNING,
                message=result.message or f"{name} health check warning",
            ))
            overall = HealthStatus.WARNING

    return overall, tuple(alerts)


class HealthEvaluator:
    """Runs every check concurrently, each bounded by ``check_timeout_seconds``.

    A check that raises or times out becomes its own failed result; the
    evaluation as a whole always completes.
    """

    def __init__(
        self,
        collector: SystemCollector,
        backend: Backend,
        config: HealthConfig | None = None,
        media_bucket: str = "media",
        clock: Clock | None = None,
    ) -> None:
        self._collector = collector
        self._backend = backend
        self._config = config or HealthConfig()
        self._media_bucket = media_bucket
        self._clock = clock or SystemClock()
        self._checks: dict[str, CheckFn] = {
            "database": self.check_database,
            "storage": self.check_storage,
            "memory": self.check_memory,
            "disk": self.check_disk,
            "cpu": self.check_cpu,
            "network": self.check_network,
        }

    @property
    def check_names(self) -> list[str]:
        return list(self._checks)

    async def evaluate(self) -> HealthReport:
        results = await asyncio.gather(
            *(self._run_check(name, fn) for name, fn in self._checks.items())
        )
        overall, alerts = aggregate(results)
        if overall is not HealthStatus.HEALTHY:
            logger.info("Health %s: %s", overall.value, "; ".join(a.message for a in alerts))
        return HealthReport(
            timestamp=self._clock.now(),
            overall=overall,
            components={r.component: r for r in results},
            alerts=alerts,
        )

    async def _run_check(self, name: str, check: CheckFn) -> HealthCheckResult:
        started = time.monotonic()
        timeout = self._config.check_timeout_seconds
        try:
            return await asyncio.wait_for(check(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Health check %s timed out after %.1fs", name, timeout)
            return HealthCheckResult(
                component=name,
                status=HealthStatus.CRITICAL,
                message=f"Health check timed out after {timeout:g}s",
                response_time_ms=_elapsed_ms(started),
            )
        except Exception as exc:
            logger.warning("Health check %s failed: %s", name, exc)
            return HealthCheckResult(
                component=name,
                status=HealthStatus.ERROR,
                message=f"Health check failed: {exc}",
                response_time_ms=_elapsed_ms(started),
                details={"error": True},
            )

    # -- Checks ------------------------------------------------------------

    async def check_database(self) -> HealthCheckResult:
        started = time.monotonic()
        try:
            response = await self._backend.probe_database()
        except Exception as exc:
            return HealthCheckResult(
                component="database",
                status=HealthStatus.CRITICAL,
                message=f"Database connection failed: {exc}",
                response_time_ms=_elapsed_ms(started),
                details={"connected": False},
            )
        elapsed = _elapsed_ms(started)

        if not response.ok:
            return HealthCheckResult(
                component="database",
                status=HealthStatus.ERROR,
                message=f"Database error: {response.error}",
                response_time_ms=elapsed,
                details={"connected": False},
            )
        if elapsed >= self._config.response_time_threshold_ms:
            return HealthCheckResult(
                component="database",
                status=HealthStatus.WARNING,
                message=f"Slow response: {elapsed:.0f}ms",
                response_time_ms=elapsed,
                details={"connected": True},
            )
        return HealthCheckResult(
            component="database",
            status=HealthStatus.HEALTHY,
            message="Database responsive",
            response_time_ms=elapsed,
            details={"connected": True},
        )

    async def check_storage(self) -> HealthCheckResult:
        started = time.monotonic()
        try:
            response = await self._backend.list_buckets()
        except Exception as exc:
            return HealthCheckResult(
                component="storage",
                status=HealthStatus.CRITICAL,
                message=f"Storage connection failed: {exc}",
                response_time_ms=_elapsed_ms(started),
            )
        elapsed = _elapsed_ms(started)

        if not response.ok:
            return HealthCheckResult(
                component="storage",
                status=HealthStatus.ERROR,
                message=f"Storage error: {response.error}",
                response_time_ms=elapsed,
            )

        buckets = list(response.data or [])
        found = self._media_bucket in buckets
        return HealthCheckResult(
            component="storage",
            status=HealthStatus.HEALTHY if found else HealthStatus.WARNING,
            message="Storage accessible" if found else f"Bucket '{self._media_bucket}' not found",
            response_time_ms=elapsed,
            details={"bucket_count": len(buckets), "media_bucket_exists": found},
        )

    async def check_memory(self) -> HealthCheckResult:
        memory = self._collector.memory()
        status, message = classify_memory(
            memory.process.usage_percent, memory.host.usage_percent, self._config
        )
        return HealthCheckResult(
            component="memory",
            status=status,
            message=message,
            details={
                "process_usage_percent": memory.process.usage_percent,
                "host_usage_percent": memory.host.usage_percent,
                "process_rss": memory.process.rss,
                "host_total": memory.host.total,
            },
        )

    async def check_disk(self) -> HealthCheckResult:
        disk = self._collector.disk()
        if not disk.available:
            return HealthCheckResult(
                component="disk",
                status=HealthStatus.ERROR,
                message=f"Disk check failed: {disk.error}",
            )
        return HealthCheckResult(
            component="disk",
            status=HealthStatus.HEALTHY,
            message="Disk accessible",
            details={"path": disk.path, "usage_percent": disk.usage_percent},
        )

    async def check_cpu(self) -> HealthCheckResult:
        cpu = await self._collector.cpu()
        status, message = classify_cpu(cpu.usage_percent, cpu.load_1m, cpu.cores, self._config)
        return HealthCheckResult(
            component="cpu",
            status=status,
            message=message,
            details={
                "usage_percent": cpu.usage_percent,
                "load_1m": cpu.load_1m,
                "load_5m": cpu.load_5m,
                "load_15m": cpu.load_15m,
                "cores": cpu.cores,
            },
        )

    async def check_network(self) -> HealthCheckResult:
        try:
            network = self._collector.network()
        except Exception as exc:
            return HealthCheckResult(
                component="network",
                status=HealthStatus.ERROR,
                message=f"Network enumeration failed: {exc}",
            )
        return HealthCheckResult(
            component="network",
            status=HealthStatus.HEALTHY,
            message="Network interfaces available",
            details={"hostname": network.hostname, "interfaces": len(network.interfaces)},
        )
