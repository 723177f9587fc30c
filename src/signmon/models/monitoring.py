"""Frozen dataclass models for request, error, and system observations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from signmon.models.enums import (
    AlertSeverity,
    ErrorSeverity,
    HealthStatus,
    PerformanceRating,
    TimeRange,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# -- Metric store records -----------------------------------------------------


@dataclass(frozen=True, slots=True)
class RequestRecord:
    """One completed HTTP request."""

    timestamp: datetime
    status_code: int
    latency_ms: float
    user_id: str | None = None

    @property
    def success(self) -> bool:
        return 200 <= self.status_code < 400


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Where an error happened. Every field is optional."""

    tag: str | None = None  # fixed tag for non-request sources, e.g. "system_metrics_collection"
    endpoint: str | None = None
    method: str | None = None
    status_code: int | None = None
    latency_ms: float | None = None
    user_id: str | None = None
    user_agent: str | None = None
    ip: str | None = None
    body: Any = None
    query: dict[str, Any] | None = None
    params: dict[str, Any] | None = None
    function: str | None = None
    duration_ms: float | None = None
    user_triggered: bool = False


@dataclass(frozen=True, slots=True)
class ErrorRecord:
    """One recorded error, keyed in the store by its kind."""

    timestamp: datetime
    kind: str
    message: str
    stack: str
    severity: ErrorSeverity
    context: ErrorContext = field(default_factory=ErrorContext)


# -- System snapshots ---------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ProcessMemory:
    """Resident memory of this process against its memory budget."""

    rss: int
    vms: int
    budget: int
    usage_percent: float


@dataclass(frozen=True, slots=True)
class HostMemory:
    total: int
    free: int
    used: int
    usage_percent: float


@dataclass(frozen=True, slots=True)
class MemoryUsage:
    process: ProcessMemory
    host: HostMemory


@dataclass(frozen=True, slots=True)
class CpuUsage:
    """Host load plus this process's CPU share over the sample interval."""

    cores: int
    load_1m: float
    load_5m: float
    load_15m: float
    process_user: float  # seconds of user time during the sample
    process_system: float
    usage_percent: float


@dataclass(frozen=True, slots=True)
class DiskUsage:
    available: bool
    path: str
    usage_percent: float | None = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class NetworkInterface:
    name: str
    address: str
    netmask: str | None = None


@dataclass(frozen=True, slots=True)
class NetworkInfo:
    hostname: str
    interfaces: tuple[NetworkInterface, ...] = ()


@dataclass(frozen=True, slots=True)
class ProcessInfo:
    pid: int
    uptime_seconds: float
    runtime_version: str
    platform: str
    arch: str


@dataclass(frozen=True, slots=True)
class SystemSnapshot:
    """Point-in-time resource usage of the host and this process."""

    timestamp: datetime
    memory: MemoryUsage
    cpu: CpuUsage
    disk: DiskUsage
    network: NetworkInfo
    process: ProcessInfo


# -- Health and alerts --------------------------------------------------------


@dataclass(frozen=True, slots=True)
class HealthCheckResult:
    """Outcome of one named health check."""

    component: str
    status: HealthStatus
    message: str
    response_time_ms: float | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Alert:
    component: str
    severity: AlertSeverity
    message: str


@dataclass(frozen=True, slots=True)
class HealthReport:
    """Result of one full health evaluation pass."""

    timestamp: datetime
    overall: HealthStatus
    components: dict[str, HealthCheckResult]
    alerts: tuple[Alert, ...] = ()

    @property
    def is_unavailable(self) -> bool:
        return self.overall in (HealthStatus.CRITICAL, HealthStatus.ERROR)


# -- Query results ------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EndpointSummary:
    total: int
    successful: int
    failed: int
    average_latency_ms: float
    error_rate: float


@dataclass(frozen=True, slots=True)
class RequestSummary:
    """Aggregate over all request logs inside a query window."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    average_latency_ms: float = 0.0
    error_rate: float = 0.0
    endpoints: dict[str, EndpointSummary] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RecentError:
    kind: str
    message: str
    timestamp: datetime
    severity: ErrorSeverity


@dataclass(frozen=True, slots=True)
class ErrorSummary:
    """Aggregate over all error logs inside a query window."""

    total: int = 0
    by_kind: dict[str, int] = field(default_factory=dict)
    by_severity: dict[str, int] = field(default_factory=dict)
    recent: tuple[RecentError, ...] = ()


@dataclass(frozen=True, slots=True)
class HistoryBucket:
    """Event counts in the half-open interval [start, end)."""

    start: datetime
    end: datetime
    requests: int = 0
    failed: int = 0
    errors: int = 0


@dataclass(frozen=True, slots=True)
class PerformanceAnalysis:
    status: PerformanceRating
    issues: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class MetricsReport:
    """Combined metrics for one relative time range."""

    time_range: TimeRange
    since: datetime
    requests: RequestSummary
    errors: ErrorSummary
    system: SystemSnapshot | None
    uptime_seconds: float
    history: tuple[HistoryBucket, ...] | None = None
    generated_at: datetime = field(default_factory=_now)
