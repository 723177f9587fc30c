"""Shared fakes for signmon tests: manual clock, scripted backend, canned collector."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import pytest

import signmon.logging_setup as ls
from signmon.core.backend import BackendResponse
from signmon.core.clock import ManualClock
from signmon.models import (
    CpuUsage,
    DiskUsage,
    HostMemory,
    MemoryUsage,
    NetworkInfo,
    NetworkInterface,
    ProcessInfo,
    ProcessMemory,
    SystemSnapshot,
)


def make_memory(process_percent: float = 10.0, host_percent: float = 40.0) -> MemoryUsage:
    return MemoryUsage(
        process=ProcessMemory(rss=100, vms=200, budget=1000, usage_percent=process_percent),
        host=HostMemory(total=1000, free=600, used=400, usage_percent=host_percent),
    )


def make_cpu(usage: float = 5.0, load_1m: float = 0.1, cores: int = 4) -> CpuUsage:
    return CpuUsage(
        cores=cores,
        load_1m=load_1m,
        load_5m=0.1,
        load_15m=0.1,
        process_user=0.01,
        process_system=0.0,
        usage_percent=usage,
    )


def make_snapshot(timestamp: datetime, process_percent: float = 10.0) -> SystemSnapshot:
    return SystemSnapshot(
        timestamp=timestamp,
        memory=make_memory(process_percent),
        cpu=make_cpu(),
        disk=DiskUsage(available=True, path="/srv/app", usage_percent=30.0),
        network=NetworkInfo(
            hostname="signage-1",
            interfaces=(NetworkInterface(name="eth0", address="10.0.0.5", netmask="255.255.255.0"),),
        ),
        process=ProcessInfo(
            pid=4242, uptime_seconds=12.0, runtime_version="CPython 3.12.0",
            platform="linux", arch="x86_64",
        ),
    )


class FakeBackend:
    """Backend whose answers (or failures) are set per test."""

    def __init__(
        self,
        database: BackendResponse | Exception | None = None,
        buckets: BackendResponse | Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.database = database or BackendResponse(data=[{"count": 1}])
        self.buckets = buckets or BackendResponse(data=["media", "avatars"])
        self.delay = delay
        self.closed = False

    async def _answer(self, value):
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(value, Exception):
            raise value
        return value

    async def probe_database(self) -> BackendResponse:
        return await self._answer(self.database)

    async def list_buckets(self) -> BackendResponse:
        return await self._answer(self.buckets)

    async def aclose(self) -> None:
        self.closed = True


class FakeCollector:
    """Collector returning canned readings; ``collect`` stamps with the given clock."""

    def __init__(self, clock: ManualClock, memory=None, cpu=None, disk=None) -> None:
        self.clock = clock
        self.memory_usage = memory or make_memory()
        self.cpu_usage = cpu or make_cpu()
        self.disk_usage = disk or DiskUsage(available=True, path="/srv/app", usage_percent=30.0)
        self.network_error: Exception | None = None
        self.collect_error: Exception | None = None
        self._snapshots: list[SystemSnapshot] = []

    @property
    def snapshot_count(self) -> int:
        return len(self._snapshots)

    def memory(self) -> MemoryUsage:
        return self.memory_usage

    async def cpu(self) -> CpuUsage:
        return self.cpu_usage

    def disk(self) -> DiskUsage:
        return self.disk_usage

    def network(self) -> NetworkInfo:
        if self.network_error:
            raise self.network_error
        return NetworkInfo(hostname="signage-1")

    def process_info(self) -> ProcessInfo:
        return make_snapshot(self.clock.now()).process

    async def collect(self) -> SystemSnapshot:
        if self.collect_error:
            raise self.collect_error
        snap = make_snapshot(self.clock.now())
        self._snapshots.append(snap)
        return snap

    def latest_snapshot(self) -> SystemSnapshot | None:
        return self._snapshots[-1] if self._snapshots else None


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def collector(clock) -> FakeCollector:
    return FakeCollector(clock)


@pytest.fixture(autouse=True)
def _reset_signmon_logging():
    """Undo setup_logging() so caplog sees signmon records in every test."""
    yield
    logger = logging.getLogger("signmon")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    ls._CONFIGURED = False
