"""Windowed metrics: relative ranges, bucketed history, performance analysis."""

from __future__ import annotations

import logging
from datetime import datetime

from signmon.core.clock import Clock, SystemClock
from signmon.core.collector import SystemCollector
from signmon.core.store import MetricStore
from signmon.models import (
    ErrorSummary,
    HistoryBucket,
    MetricsReport,
    PerformanceAnalysis,
    PerformanceRating,
    RequestSummary,
    TimeRange,
)

logger = logging.getLogger("signmon.query")

# Performance analysis thresholds
ERROR_RATE_POOR = 0.10
ERROR_RATE_FAIR = 0.05
LATENCY_POOR_MS = 2000.0
LATENCY_FAIR_MS = 1000.0


def cutoff(time_range: TimeRange | str, now: datetime) -> datetime:
    """Absolute start of a relative range ending at ``now``."""
    return now - TimeRange.parse(time_range).span


def build_history(
    store: MetricStore,
    time_range: TimeRange,
    now: datetime,
) -> tuple[HistoryBucket, ...]:
    """Split the range into equal buckets and count events in each.

    Buckets are half-open ``[start, end)`` so a boundary event lands in the
    later bucket; events stamped at or after ``now`` fall in the last one, so
    the bucket totals always match the un-bucketed aggregate.
    """
    count = time_range.buckets
    start = now - time_range.span
    width = time_range.span / count

    requests = [0] * count
    failed = [0] * count
    errors = [0] * count

    def _index(ts: datetime) -> int:
        return min((ts - start) // width, count - 1)

    for record in store.requests_since(start):
        i = _index(record.timestamp)
        requests[i] += 1
        if not record.success:
            failed[i] += 1

    for record in store.errors_since(start):
        errors[_index(record.timestamp)] += 1

    return tuple(
        HistoryBucket(
            start=start + width * i,
            end=start + width * (i + 1),
            requests=requests[i],
            failed=failed[i],
            errors=errors[i],
        )
        for i in range(count)
    )


def analyze_performance(
    requests: RequestSummary,
    errors: ErrorSummary,
) -> PerformanceAnalysis:
    """Rate a window as good/fair/poor from error rate, latency and critical errors."""
    status = PerformanceRating.GOOD
    issues: list[str] = []
    recommendations: list[str] = []

    if requests.error_rate > ERROR_RATE_POOR:
        status = PerformanceRating.POOR
        issues.append(f"High error rate: {requests.error_rate * 100:.1f}%")
        recommendations.append("Investigate error causes and implement fixes")
    elif requests.error_rate > ERROR_RATE_FAIR:
        status = PerformanceRating.FAIR
        issues.append(f"Elevated error rate: {requests.error_rate * 100:.1f}%")

    if requests.average_latency_ms > LATENCY_POOR_MS:
        status = PerformanceRating.POOR
        issues.append(f"Slow response time: {requests.average_latency_ms:.0f}ms")
        recommendations.append("Optimize database queries and API endpoints")
    elif requests.average_latency_ms > LATENCY_FAIR_MS:
        if status is PerformanceRating.GOOD:
            status = PerformanceRating.FAIR
        issues.append(f"Elevated response time: {requests.average_latency_ms:.0f}ms")

    critical = errors.by_severity.get("critical", 0)
    if critical > 0:
        status = PerformanceRating.POOR
        issues.append(f"{critical} critical errors")
        recommendations.append("Address critical errors immediately")

    return PerformanceAnalysis(
        status=status,
        issues=tuple(issues),
        recommendations=tuple(recommendations),
    )


class MetricsQueryService:
    """Read side over the metric stores and the latest system snapshot."""

    def __init__(
        self,
        store: MetricStore,
        collector: SystemCollector,
        clock: Clock | None = None,
        started_at: datetime | None = None,
    ) -> None:
        self._store = store
        self._collector = collector
        self._clock = clock or SystemClock()
        self._started_at = started_at or self._clock.now()

    @property
    def started_at(self) -> datetime:
        return self._started_at

    def uptime_seconds(self) -> float:
        return (self._clock.now() - self._started_at).total_seconds()

    def requests(self, time_range: TimeRange | str = TimeRange.HOUR_1) -> RequestSummary:
        return self._store.query_requests(cutoff(time_range, self._clock.now()))

    def errors(self, time_range: TimeRange | str = TimeRange.HOUR_1) -> ErrorSummary:
        return self._store.query_errors(cutoff(time_range, self._clock.now()))

    def current_metrics(
        self,
        time_range: TimeRange | str = TimeRange.HOUR_1,
        history: bool = False,
    ) -> MetricsReport:
        rng = TimeRange.parse(time_range)
        now = self._clock.now()
        since = cutoff(rng, now)
        return MetricsReport(
            time_range=rng,
            since=since,
            requests=self._store.query_requests(since),
            errors=self._store.query_errors(since),
            system=self._collector.latest_snapshot(),
            uptime_seconds=self.uptime_seconds(),
            history=build_history(self._store, rng, now) if history else None,
            generated_at=now,
        )

    def history(self, time_range: TimeRange | str = TimeRange.HOUR_1) -> tuple[HistoryBucket, ...]:
        return build_history(self._store, TimeRange.parse(time_range), self._clock.now())
