"""Periodic task scheduling driven by an injectable clock.

Tasks are due-time based rather than sleep based: ``run_pending()`` runs every
task whose due time has passed on the clock, so tests can advance a
``ManualClock`` and call it directly. ``start()`` only adds a background loop
that polls ``run_pending()``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from signmon.core.clock import Clock, SystemClock

logger = logging.getLogger("signmon.scheduler")

TaskCallback = Callable[[], Awaitable[object] | object]


@dataclass(slots=True)
class PeriodicTask:
    """A callback re-armed every ``interval_seconds``."""

    name: str
    interval_seconds: float
    callback: TaskCallback
    context_tag: str
    next_run: datetime | None = None
    runs: int = 0
    failures: int = 0
    last_error: str | None = field(default=None, repr=False)

    def due(self, now: datetime) -> bool:
        return self.next_run is not None and now >= self.next_run

    def rearm(self, now: datetime) -> None:
        self.next_run = now + timedelta(seconds=self.interval_seconds)


ErrorHook = Callable[[PeriodicTask, Exception], None]


class Scheduler:
    """Owns a set of periodic tasks and runs them when due."""

    def __init__(
        self,
        clock: Clock | None = None,
        on_error: ErrorHook | None = None,
        poll_interval: float = 1.0,
    ) -> None:
        self._clock = clock or SystemClock()
        self._on_error = on_error
        self._poll_interval = poll_interval
        self._tasks: dict[str, PeriodicTask] = {}
        self._loop_task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def tasks(self) -> list[PeriodicTask]:
        return list(self._tasks.values())

    def add(
        self,
        name: str,
        interval_seconds: float,
        callback: TaskCallback,
        context_tag: str | None = None,
    ) -> PeriodicTask:
        """Register a task. Its first run is one interval after arming."""
        task = PeriodicTask(
            name=name,
            interval_seconds=interval_seconds,
            callback=callback,
            context_tag=context_tag or name,
        )
        self._tasks[name] = task
        if self._running:
            task.rearm(self._clock.now())
        return task

    def arm(self) -> None:
        """Schedule every task one interval from now, without a background loop."""
        now = self._clock.now()
        for task in self._tasks.values():
            task.rearm(now)

    async def run_pending(self) -> int:
        """Run every due task once. Returns how many ran."""
        ran = 0
        for task in list(self._tasks.values()):
            now = self._clock.now()
            if not task.due(now):
                continue
            await self._run(task)
            task.rearm(now)
            ran += 1
        return ran

    async def _run(self, task: PeriodicTask) -> None:
        task.runs += 1
        try:
            result = task.callback()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            task.failures += 1
            task.last_error = str(exc)
            logger.warning("Periodic task %s failed: %s", task.name, exc)
            if self._on_error is not None:
                try:
                    self._on_error(task, exc)
                except Exception:
                    logger.exception("Error hook failed for task %s", task.name)

    async def start(self) -> None:
        """Arm all tasks and start the background polling loop."""
        if self._running:
            return
        self._running = True
        self.arm()
        self._loop_task = asyncio.create_task(self._poll())

    async def stop(self) -> None:
        """Cancel the background loop. Tasks stay registered but disarmed."""
        self._running = False
        for task in self._tasks.values():
            task.next_run = None
        if self._loop_task:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

    async def _poll(self) -> None:
        while self._running:
            await self.run_pending()
            await asyncio.sleep(self._poll_interval)
