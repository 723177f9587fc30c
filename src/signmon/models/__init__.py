"""signmon data models."""

from signmon.models.enums import (
    AlertSeverity,
    ErrorSeverity,
    HealthStatus,
    PerformanceRating,
    TimeRange,
)
from signmon.models.monitoring import (
    Alert,
    CpuUsage,
    DiskUsage,
    EndpointSummary,
    ErrorContext,
    ErrorRecord,
    ErrorSummary,
    HealthCheckResult,
    HealthReport,
    HistoryBucket,
    HostMemory,
    MemoryUsage,
    MetricsReport,
    NetworkInfo,
    NetworkInterface,
    PerformanceAnalysis,
    ProcessInfo,
    ProcessMemory,
    RecentError,
    RequestRecord,
    RequestSummary,
    SystemSnapshot,
)

__all__ = [
    "HealthStatus",
    "AlertSeverity",
    "ErrorSeverity",
    "PerformanceRating",
    "TimeRange",
    "RequestRecord",
    "ErrorContext",
    "ErrorRecord",
    "ProcessMemory",
    "HostMemory",
    "MemoryUsage",
    "CpuUsage",
    "DiskUsage",
    "NetworkInterface",
    "NetworkInfo",
    "ProcessInfo",
    "SystemSnapshot",
    "HealthCheckResult",
    "Alert",
    "HealthReport",
    "EndpointSummary",
    "RequestSummary",
    "RecentError",
    "ErrorSummary",
    "HistoryBucket",
    "PerformanceAnalysis",
    "MetricsReport",
]
