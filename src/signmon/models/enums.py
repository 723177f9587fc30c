"""Enumerations for signmon monitoring models."""

from __future__ import annotations

from datetime import timedelta
from enum import Enum


class HealthStatus(str, Enum):
    """Result of a single health check, ordered by severity."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _HEALTH_RANK[self]


_HEALTH_RANK = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.WARNING: 1,
    HealthStatus.CRITICAL: 2,
    HealthStatus.ERROR: 3,
}


class AlertSeverity(str, Enum):
    """Severity of an operator-facing alert."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _ALERT_RANK[self]


_ALERT_RANK = {
    AlertSeverity.INFO: 1,
    AlertSeverity.WARNING: 2,
    AlertSeverity.CRITICAL: 3,
}


class ErrorSeverity(str, Enum):
    """Severity tag attached to a recorded error."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class PerformanceRating(str, Enum):
    """Qualitative verdict of a performance analysis."""

    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class TimeRange(str, Enum):
    """Relative query windows accepted by the metrics endpoints."""

    MINUTES_15 = "15m"
    HOUR_1 = "1h"
    HOURS_6 = "6h"
    HOURS_24 = "24h"
    DAYS_7 = "7d"

    @classmethod
    def parse(cls, value: str | None) -> TimeRange:
        """Parse a range string; anything unrecognised falls back to one hour."""
        try:
            return cls(value)
        except ValueError:
            return cls.HOUR_1

    @property
    def span(self) -> timedelta:
        return _RANGE_SPANS[self]

    @property
    def buckets(self) -> int:
        return _RANGE_BUCKETS[self]


_RANGE_SPANS = {
    TimeRange.MINUTES_15: timedelta(minutes=15),
    TimeRange.HOUR_1: timedelta(hours=1),
    TimeRange.HOURS_6: timedelta(hours=6),
    TimeRange.HOURS_24: timedelta(hours=24),
    TimeRange.DAYS_7: timedelta(days=7),
}

_RANGE_BUCKETS = {
    TimeRange.MINUTES_15: 15,
    TimeRange.HOUR_1: 6,
    TimeRange.HOURS_6: 6,
    TimeRange.HOURS_24: 24,
    TimeRange.DAYS_7: 7,
}
