"""System resource sampling via psutil."""

from __future__ import annotations

import asyncio
import logging
import os
import platform
import socket
import sys
import time

import psutil

from signmon.core.clock import Clock, SystemClock
from signmon.core.ring import BoundedLog
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

logger = logging.getLogger("signmon.collector")

_MB = 1024 * 1024


def _percent(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole > 0 else 0.0


class SystemCollector:
    """Samples host and process resource usage and keeps the newest snapshots."""

    def __init__(
        self,
        cpu_sample_interval: float = 0.1,
        snapshot_log_size: int = 100,
        memory_limit_mb: int = 0,
        clock: Clock | None = None,
    ) -> None:
        self._cpu_interval = cpu_sample_interval
        self._memory_limit = memory_limit_mb * _MB
        self._clock = clock or SystemClock()
        self._snapshots: BoundedLog[SystemSnapshot] = BoundedLog(snapshot_log_size)
        self._process = psutil.Process(os.getpid())

    @property
    def snapshot_count(self) -> int:
        return len(self._snapshots)

    def memory(self) -> MemoryUsage:
        mem = self._process.memory_info()
        vm = psutil.virtual_memory()
        budget = self._memory_limit or vm.total
        used = vm.total - vm.available
        return MemoryUsage(
            process=ProcessMemory(
                rss=mem.rss,
                vms=mem.vms,
                budget=budget,
                usage_percent=_percent(mem.rss, budget),
            ),
            host=HostMemory(
                total=vm.total,
                free=vm.available,
                used=used,
                usage_percent=_percent(used, vm.total),
            ),
        )

    async def cpu(self) -> CpuUsage:
        """Process CPU share over ``cpu_sample_interval``, plus host load averages."""
        cores = psutil.cpu_count() or 1
        load_1m, load_5m, load_15m = psutil.getloadavg()

        before = self._process.cpu_times()
        started = time.monotonic()
        await asyncio.sleep(self._cpu_interval)
        after = self._process.cpu_times()
        elapsed = time.monotonic() - started

        user = max(0.0, after.user - before.user)
        system = max(0.0, after.system - before.system)
        usage = min((user + system) / elapsed * 100, 100.0) if elapsed > 0 else 0.0

        return CpuUsage(
            cores=cores,
            load_1m=load_1m,
            load_5m=load_5m,
            load_15m=load_15m,
            process_user=round(user, 4),
            process_system=round(system, 4),
            usage_percent=round(usage, 2),
        )

    def disk(self) -> DiskUsage:
        """Best effort: a failed stat marks the disk unavailable instead of raising."""
        try:
            path = os.getcwd()
            os.stat(path)
        except OSError as exc:
            logger.warning("Disk check failed: %s", exc)
            return DiskUsage(available=False, path="", error=str(exc))

        try:
            usage_percent = psutil.disk_usage(path).percent
        except OSError:
            usage_percent = None
        return DiskUsage(available=True, path=path, usage_percent=usage_percent)

    def network(self) -> NetworkInfo:
        interfaces = []
        for name, addrs in psutil.net_if_addrs().items():
            for addr in addrs:
                if addr.family != socket.AF_INET or addr.address.startswith("127."):
                    continue
                interfaces.append(
                    NetworkInterface(name=name, address=addr.address, netmask=addr.netmask)
                )
                break
        return NetworkInfo(hostname=socket.gethostname(), interfaces=tuple(interfaces))

    def process_info(self) -> ProcessInfo:
        return ProcessInfo(
            pid=self._process.pid,
            uptime_seconds=round(time.time() - self._process.create_time(), 2),
            runtime_version=f"{platform.python_implementation()} {platform.python_version()}",
            platform=sys.platform,
            arch=platform.machine(),
        )

    async def sample(self) -> SystemSnapshot:
        """Build one snapshot without storing it."""
        return SystemSnapshot(
            timestamp=self._clock.now(),
            memory=self.memory(),
            cpu=await self.cpu(),
            disk=self.disk(),
            network=self.network(),
            process=self.process_info(),
        )

    async def collect(self) -> SystemSnapshot:
        """Sample and store; the oldest snapshot is evicted past the cap."""
        snap = await self.sample()
        self._snapshots.append(snap)
        logger.debug(
            "Snapshot: mem=%.1f%% cpu=%.1f%%",
            snap.memory.process.usage_percent, snap.cpu.usage_percent,
        )
        return snap

    def latest_snapshot(self) -> SystemSnapshot | None:
        """Newest snapshot, or None before the first sample completes."""
        latest: SystemSnapshot | None = None
        for snap in self._snapshots:
            # >= so the later insert wins a timestamp tie
            if latest is None or snap.timestamp >= latest.timestamp:
                latest = snap
        return latest

    def snapshots(self) -> list[SystemSnapshot]:
        return list(self._snapshots)
