"""The monitor component: owns the stores, sampler, health checks and timers."""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any, TypeVar

from signmon.config import SignmonConfig
from signmon.core.alerts import build_alerts, filter_alerts
from signmon.core.backend import Backend, create_backend
from signmon.core.clock import Clock, SystemClock
from signmon.core.collector import SystemCollector
from signmon.core.health import HealthEvaluator
from signmon.core.query import MetricsQueryService
from signmon.core.scheduler import PeriodicTask, Scheduler
from signmon.core.store import MetricStore
from signmon.models import (
    Alert,
    AlertSeverity,
    ErrorContext,
    ErrorRecord,
    HealthReport,
    MetricsReport,
    RequestRecord,
    TimeRange,
)

logger = logging.getLogger("signmon.service")

SAMPLER_TAG = "system_metrics_collection"
PRUNER_TAG = "metrics_cleanup"
SLOW_CALL_MS = 1000.0

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


class Monitor:
    """Explicitly constructed monitoring component.

    Hand one instance to the HTTP layer. ``start()`` arms the periodic sampler
    and pruner, ``stop()`` cancels them; nothing runs at import time.
    """

    def __init__(
        self,
        config: SignmonConfig | None = None,
        backend: Backend | None = None,
        clock: Clock | None = None,
        collector: SystemCollector | None = None,
    ) -> None:
        self.config = config or SignmonConfig()
        self.clock = clock or SystemClock()
        self.started_at = self.clock.now()

        self.store = MetricStore(self.config.retention, self.clock)
        self.collector = collector or SystemCollector(
            cpu_sample_interval=self.config.sampler.cpu_sample_interval,
            snapshot_log_size=self.config.retention.snapshot_log_size,
            memory_limit_mb=self.config.health.process_memory_limit_mb,
            clock=self.clock,
        )
        self.backend = backend if backend is not None else create_backend(self.config.backend)
        self.health = HealthEvaluator(
            self.collector,
            self.backend,
            self.config.health,
            media_bucket=self.config.backend.media_bucket,
            clock=self.clock,
        )
        self.query = MetricsQueryService(
            self.store, self.collector, clock=self.clock, started_at=self.started_at
        )

        self.scheduler = Scheduler(self.clock, on_error=self._task_failed)
        self.scheduler.add(
            "sampler", self.config.sampler.interval_seconds,
            self.collector.collect, context_tag=SAMPLER_TAG,
        )
        self.scheduler.add(
            "pruner", self.config.retention.prune_interval_seconds,
            self.prune, context_tag=PRUNER_TAG,
        )

    # -- Lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        await self.scheduler.start()
        logger.info(
            "Monitor started (sample every %gs, prune every %gs)",
            self.config.sampler.interval_seconds,
            self.config.retention.prune_interval_seconds,
        )

    async def stop(self) -> None:
        await self.scheduler.stop()
        aclose = getattr(self.backend, "aclose", None)
        if aclose is not None:
            await aclose()
        logger.info("Monitor stopped")

    async def __aenter__(self) -> Monitor:
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.stop()

    @property
    def running(self) -> bool:
        return self.scheduler.running

    # -- Recording (never raises) -------------------------------------------

    def record_request(
        self,
        endpoint: str,
        method: str,
        status_code: int,
        latency_ms: float,
        user_id: str | None = None,
    ) -> RequestRecord | None:
        try:
            return self.store.record_request(endpoint, method, status_code, latency_ms, user_id)
        except Exception:
            logger.exception("Failed to record request %s %s", method, endpoint)
            return None

    def record_error(
        self,
        error: BaseException,
        context: ErrorContext | None = None,
    ) -> ErrorRecord | None:
        try:
            return self.store.record_error(error, context)
        except Exception:
            logger.exception("Failed to record error %r", error)
            return None

    def _task_failed(self, task: PeriodicTask, exc: Exception) -> None:
        self.record_error(exc, ErrorContext(tag=task.context_tag))

    def prune(self) -> int:
        horizon = self.clock.now() - timedelta(minutes=self.config.retention.retention_minutes)
        removed = self.store.prune(horizon)
        logger.debug("Cleaned old metrics (%d removed)", removed)
        return removed

    def monitor_async(self, name: str) -> Callable[[F], F]:
        """Decorator: record failures of an async function and log slow calls."""

        def decorator(fn: F) -> F:
            @functools.wraps(fn)
            async def wrapper(*args: Any, **kwargs: Any) -> Any:
                started = time.monotonic()
                try:
                    result = await fn(*args, **kwargs)
                except Exception as exc:
                    self.record_error(exc, ErrorContext(
                        tag="async_monitoring",
                        function=name,
                        duration_ms=round((time.monotonic() - started) * 1000, 2),
                    ))
                    raise
                duration = (time.monotonic() - started) * 1000
                if duration > SLOW_CALL_MS:
                    logger.info("%s completed in %.0fms", name, duration)
                return result

            return wrapper  # type: ignore[return-value]

        return decorator

    # -- Reads ---------------------------------------------------------------

    def uptime_seconds(self) -> float:
        return self.query.uptime_seconds()

    async def health_check(self) -> HealthReport:
        return await self.health.evaluate()

    def metrics(
        self,
        time_range: TimeRange | str = TimeRange.HOUR_1,
        history: bool = False,
    ) -> MetricsReport:
        return self.query.current_metrics(time_range, history=history)

    async def alerts(
        self,
        severity: AlertSeverity | str | None = None,
        report: HealthReport | None = None,
    ) -> list[Alert]:
        """Health alerts merged with threshold alerts, severity-sorted."""
        if report is None:
            report = await self.health_check()
        merged = build_alerts(
            report,
            self.uptime_seconds(),
            requests=self.query.requests(TimeRange.HOUR_1),
            config=self.config.health,
        )
        return filter_alerts(merged, severity)

    def stats(self) -> dict[str, Any]:
        store_stats = self.store.stats()
        return {
            "requests": store_stats["request_endpoints"],
            "request_records": store_stats["request_records"],
            "errors": store_stats["error_kinds"],
            "error_records": store_stats["error_records"],
            "system_snapshots": self.collector.snapshot_count,
            "uptime_seconds": round(self.uptime_seconds(), 2),
            "health_checks": self.health.check_names,
            "tasks": {
                t.name: {"runs": t.runs, "failures": t.failures, "interval_seconds": t.interval_seconds}
                for t in self.scheduler.tasks
            },
        }

    def status(self) -> dict[str, Any]:
        return {
            **self.stats(),
            "timestamp": self.clock.now(),
            "environment": self.config.app.environment,
            "version": self.config.app.version,
        }
