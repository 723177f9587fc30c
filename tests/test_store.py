"""Tests for the in-memory metric store."""

import logging
from datetime import timedelta

import pytest

from signmon.config import RetentionConfig
from signmon.core.store import MetricStore, error_kind, severity_for
from signmon.exceptions import ApiError
from signmon.models import ErrorContext, ErrorSeverity, RequestSummary


class DatabaseError(Exception):
    pass


class ValidationError(Exception):
    pass


@pytest.fixture
def store(clock):
    return MetricStore(RetentionConfig(), clock)


class TestSeverity:
    @pytest.mark.parametrize("kind,severity", [
        ("ValidationError", ErrorSeverity.LOW),
        ("AuthenticationError", ErrorSeverity.MEDIUM),
        ("DatabaseError", ErrorSeverity.HIGH),
        ("SystemError", ErrorSeverity.CRITICAL),
        ("KeyError", ErrorSeverity.MEDIUM),
        ("", ErrorSeverity.MEDIUM),
    ])
    def test_mapping(self, kind, severity):
        assert severity_for(kind) is severity

    def test_kind_from_class_name(self):
        assert error_kind(DatabaseError("x")) == "DatabaseError"

    def test_kind_attribute_wins(self):
        assert error_kind(ApiError("nope", 404, code="NotFound")) == "NotFound"


class TestRecordRequest:
    def test_keyed_by_method_and_pattern(self, store):
        store.record_request("/screens/1", "GET", 200, 10.0)
        store.record_request("/screens/2", "get", 200, 20.0)
        assert len(store.request_log("GET:/screens/:id")) == 2

    def test_values_stored_as_given(self, store, clock):
        record = store.record_request("/media/5", "POST", 201, 12.5, user_id="u1")
        assert record.timestamp == clock.now()
        assert record.status_code == 201
        assert record.latency_ms == 12.5
        assert record.user_id == "u1"
        assert record.success

    def test_cap_keeps_newest(self, store, clock):
        for i in range(1001):
            store.record_request("/media/1", "GET", 200, float(i))
            clock.advance(0.001)
        log = store.request_log("GET:/media/:id")
        assert len(log) == 1000
        assert log[0].latency_ms == 1.0
        assert log[-1].latency_ms == 1000.0

    def test_custom_cap(self, clock):
        store = MetricStore(RetentionConfig(request_log_size=3), clock)
        for _ in range(5):
            store.record_request("/x", "GET", 200, 1.0)
        assert len(store.request_log("GET:/x")) == 3


class TestRecordError:
    def test_database_error_is_high(self, store, clock):
        record = store.record_error(DatabaseError("connection refused"),
                                    ErrorContext(endpoint="/api/screens"))
        assert record.kind == "DatabaseError"
        assert record.severity is ErrorSeverity.HIGH
        assert record.message == "connection refused"
        assert record.context.endpoint == "/api/screens"
        assert "DatabaseError" in record.stack

        summary = store.query_errors(clock.now() - timedelta(hours=1))
        assert summary.total == 1
        assert summary.by_kind == {"DatabaseError": 1}
        assert summary.by_severity["high"] == 1
        assert summary.recent[0].kind == "DatabaseError"
        assert summary.recent[0].severity is ErrorSeverity.HIGH

    def test_cap_keeps_newest(self, store):
        for i in range(501):
            store.record_error(ValidationError(f"bad {i}"))
        log = store.error_log("ValidationError")
        assert len(log) == 500
        assert log[0].message == "bad 1"
        assert log[-1].message == "bad 500"

    def test_default_context(self, store):
        record = store.record_error(RuntimeError("boom"))
        assert record.context == ErrorContext()

    def test_log_level_follows_severity(self, store, caplog):
        with caplog.at_level(logging.DEBUG, logger="signmon.errors"):
            store.record_error(ValidationError("v"))
            store.record_error(DatabaseError("d"))
            store.record_error(SystemError("s"))
        levels = [r.levelno for r in caplog.records if r.name == "signmon.errors"]
        assert levels == [logging.WARNING, logging.ERROR, logging.CRITICAL]


class TestQueryRequests:
    def test_empty_store_is_all_zero(self, store, clock):
        assert store.query_requests(clock.now() - timedelta(hours=1)) == RequestSummary()

    def test_three_successful_requests(self, store, clock):
        for latency in (100.0, 200.0, 300.0):
            store.record_request("/screens/3fa85f64-5717-4562-b3fc-2c963f66afa6", "GET", 200, latency)
        s = store.query_requests(clock.now() - timedelta(hours=1))
        assert (s.total, s.successful, s.failed) == (3, 3, 0)
        assert s.average_latency_ms == 200.0
        assert s.error_rate == 0.0
        assert list(s.endpoints) == ["GET:/screens/:id"]

    def test_mixed_requests(self, store, clock):
        store.record_request("/screens", "GET", 200, 100.0)
        store.record_request("/screens", "GET", 500, 300.0)
        store.record_request("/media/9", "POST", 201, 200.0)
        s = store.query_requests(clock.now() - timedelta(hours=1))
        assert s.total == 3
        assert s.successful == 2
        assert s.failed == 1
        assert s.average_latency_ms == 200.0
        assert s.error_rate == pytest.approx(1 / 3)
        assert s.endpoints["GET:/screens"].total == 2
        assert s.endpoints["GET:/screens"].error_rate == 0.5
        assert s.endpoints["POST:/media/:id"].average_latency_ms == 200.0

    def test_cutoff_is_inclusive(self, store, clock):
        store.record_request("/a", "GET", 200, 1.0)
        since = clock.now()
        clock.advance(10)
        store.record_request("/a", "GET", 200, 1.0)
        assert store.query_requests(since).total == 2
        assert store.query_requests(since + timedelta(seconds=1)).total == 1

    def test_old_only_is_all_zero(self, store, clock):
        store.record_request("/a", "GET", 200, 1.0)
        clock.advance(7200)
        s = store.query_requests(clock.now() - timedelta(hours=1))
        assert s.total == 0
        assert s.average_latency_ms == 0.0
        assert s.endpoints == {}


class TestQueryErrors:
    def test_empty_has_all_severity_keys(self, store, clock):
        s = store.query_errors(clock.now() - timedelta(hours=1))
        assert s.total == 0
        assert s.by_severity == {"low": 0, "medium": 0, "high": 0, "critical": 0}
        assert s.recent == ()

    def test_recent_newest_first_and_capped(self, store, clock):
        for i in range(25):
            store.record_error(RuntimeError(f"e{i}"))
            clock.advance(1)
        s = store.query_errors(clock.now() - timedelta(hours=1))
        assert s.total == 25
        assert len(s.recent) == 20
        assert s.recent[0].message == "e24"
        assert s.recent[-1].message == "e5"

    def test_recent_merges_kinds(self, store, clock):
        store.record_error(ValidationError("first"))
        clock.advance(1)
        store.record_error(DatabaseError("second"))
        s = store.query_errors(clock.now() - timedelta(hours=1))
        assert [e.kind for e in s.recent] == ["DatabaseError", "ValidationError"]


class TestPrune:
    def test_prune_drops_old_and_empty_keys(self, store, clock):
        store.record_request("/old", "GET", 200, 1.0)
        store.record_error(RuntimeError("old"))
        clock.advance(3600)
        store.record_request("/new", "GET", 200, 1.0)

        removed = store.prune(clock.now() - timedelta(minutes=30))
        assert removed == 2
        assert store.request_log("GET:/old") == []
        assert store.stats() == {
            "request_endpoints": 1,
            "request_records": 1,
            "error_kinds": 0,
            "error_records": 0,
        }
