"""In-memory metric stores: bounded request logs per endpoint, error logs per kind."""

from __future__ import annotations

import logging
import traceback
from datetime import datetime

from signmon.config import RetentionConfig
from signmon.core.clock import Clock, SystemClock
from signmon.core.endpoints import endpoint_key
from signmon.core.ring import BoundedLog
from signmon.models import (
    EndpointSummary,
    ErrorContext,
    ErrorRecord,
    ErrorSeverity,
    ErrorSummary,
    RecentError,
    RequestRecord,
    RequestSummary,
)

logger = logging.getLogger("signmon.store")
error_logger = logging.getLogger("signmon.errors")

UNKNOWN_ERROR_KIND = "UnknownError"
RECENT_ERROR_LIMIT = 20

SEVERITY_BY_KIND: dict[str, ErrorSeverity] = {
    "ValidationError": ErrorSeverity.LOW,
    "AuthenticationError": ErrorSeverity.MEDIUM,
    "DatabaseError": ErrorSeverity.HIGH,
    "SystemError": ErrorSeverity.CRITICAL,
}

_LOG_LEVEL_BY_SEVERITY = {
    ErrorSeverity.LOW: logging.WARNING,
    ErrorSeverity.MEDIUM: logging.ERROR,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


def severity_for(kind: str) -> ErrorSeverity:
    """Fixed kind -> severity mapping; unknown kinds are medium."""
    return SEVERITY_BY_KIND.get(kind, ErrorSeverity.MEDIUM)


def error_kind(error: BaseException) -> str:
    """An explicit ``kind`` attribute wins over the exception class name."""
    kind = getattr(error, "kind", None)
    if isinstance(kind, str) and kind:
        return kind
    return type(error).__name__ or UNKNOWN_ERROR_KIND


def _format_stack(error: BaseException) -> str:
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))


def _summarize(records: list[RequestRecord]) -> EndpointSummary:
    total = len(records)
    successful = sum(1 for r in records if r.success)
    failed = total - successful
    latency = sum(r.latency_ms for r in records)
    return EndpointSummary(
        total=total,
        successful=successful,
        failed=failed,
        average_latency_ms=round(latency / total, 2),
        error_rate=failed / total,
    )


class MetricStore:
    """Process-local request and error logs.

    Every mutation and read is synchronous and never awaits, so callers on one
    event loop cannot interleave mid-operation.
    """

    def __init__(
        self,
        config: RetentionConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._config = config or RetentionConfig()
        self._clock = clock or SystemClock()
        self._requests: dict[str, BoundedLog[RequestRecord]] = {}
        self._errors: dict[str, BoundedLog[ErrorRecord]] = {}

    # -- Writes ------------------------------------------------------------

    def record_request(
        self,
        endpoint: str,
        method: str,
        status_code: int,
        latency_ms: float,
        user_id: str | None = None,
    ) -> RequestRecord:
        """Append a request under ``METHOD:pattern``. Values are stored as given."""
        key = endpoint_key(method, endpoint)
        log = self._requests.get(key)
        if log is None:
            log = self._requests[key] = BoundedLog(self._config.request_log_size)
        record = RequestRecord(
            timestamp=self._clock.now(),
            status_code=status_code,
            latency_ms=latency_ms,
            user_id=user_id,
        )
        log.append(record)
        return record

    def record_error(
        self,
        error: BaseException,
        context: ErrorContext | None = None,
    ) -> ErrorRecord:
        """Append an error under its kind and emit it to the operator log."""
        kind = error_kind(error)
        severity = severity_for(kind)
        context = context or ErrorContext()
        record = ErrorRecord(
            timestamp=self._clock.now(),
            kind=kind,
            message=str(error),
            stack=_format_stack(error),
            severity=severity,
            context=context,
        )
        log = self._errors.get(kind)
        if log is None:
            log = self._errors[kind] = BoundedLog(self._config.error_log_size)
        log.append(record)

        error_logger.log(
            _LOG_LEVEL_BY_SEVERITY[severity],
            "Error recorded: %s: %s (severity=%s, endpoint=%s, tag=%s)",
            kind, record.message, severity.value,
            context.endpoint or "-", context.tag or "-",
        )
        return record

    # -- Reads -------------------------------------------------------------

    def request_log(self, key: str) -> list[RequestRecord]:
        log = self._requests.get(key)
        return list(log) if log else []

    def error_log(self, kind: str) -> list[ErrorRecord]:
        log = self._errors.get(kind)
        return list(log) if log else []

    def requests_since(self, since: datetime) -> list[RequestRecord]:
        records: list[RequestRecord] = []
        for log in self._requests.values():
            records.extend(log.since(since))
        return records

    def errors_since(self, since: datetime) -> list[ErrorRecord]:
        records: list[ErrorRecord] = []
        for log in self._errors.values():
            records.extend(log.since(since))
        return records

    def query_requests(self, since: datetime) -> RequestSummary:
        """Aggregate requests with ``timestamp >= since``; zeros when none match."""
        endpoints: dict[str, EndpointSummary] = {}
        total = successful = failed = 0
        latency = 0.0

        for key, log in self._requests.items():
            recent = log.since(since)
            if not recent:
                continue
            summary = _summarize(recent)
            endpoints[key] = summary
            total += summary.total
            successful += summary.successful
            failed += summary.failed
            latency += sum(r.latency_ms for r in recent)

        if total == 0:
            return RequestSummary()

        return RequestSummary(
            total=total,
            successful=successful,
            failed=failed,
            average_latency_ms=round(latency / total, 2),
            error_rate=failed / total,
            endpoints=endpoints,
        )

    def query_errors(self, since: datetime) -> ErrorSummary:
        """Aggregate errors with ``timestamp >= since``, newest 20 in ``recent``."""
        by_kind: dict[str, int] = {}
        by_severity = {s.value: 0 for s in ErrorSeverity}
        matched: list[ErrorRecord] = []

        for kind, log in self._errors.items():
            recent = log.since(since)
            if not recent:
                continue
            by_kind[kind] = len(recent)
            for record in recent:
                by_severity[record.severity.value] += 1
            matched.extend(recent)

        matched.sort(key=lambda r: r.timestamp, reverse=True)
        recent_errors = tuple(
            RecentError(
                kind=r.kind,
                message=r.message,
                timestamp=r.timestamp,
                severity=r.severity,
            )
            for r in matched[:RECENT_ERROR_LIMIT]
        )
        return ErrorSummary(
            total=len(matched),
            by_kind=by_kind,
            by_severity=by_severity,
            recent=recent_errors,
        )

    # -- Maintenance -------------------------------------------------------

    def prune(self, horizon: datetime) -> int:
        """Remove every record older than ``horizon``; drop logs left empty."""
        removed = 0
        for logs in (self._requests, self._errors):
            for key in list(logs):
                removed += logs[key].prune_before(horizon)
                if not logs[key]:
                    del logs[key]
        logger.debug("Pruned %d records older than %s", removed, horizon.isoformat())
        return removed

    def stats(self) -> dict[str, int]:
        return {
            "request_endpoints": len(self._requests),
            "request_records": sum(len(log) for log in self._requests.values()),
            "error_kinds": len(self._errors),
            "error_records": sum(len(log) for log in self._errors.values()),
        }
