"""Timer scheduling for debounced cell operations.

Everything runs on one logical thread. The Scheduler interface mirrors
tkinter's after()/after_cancel() so callbacks stay on the event loop that
owns the caches, and adds spawn() to run remote I/O as cooperative tasks.

Usage:
    scheduler = AsyncioScheduler()
    save_op = DeferredOperation(scheduler, "save")

    # Each call cancels the previous pending callback
    save_op.schedule(300, lambda: scheduler.spawn(persist(value)))
    save_op.schedule(300, lambda: scheduler.spawn(persist(newer_value)))
    # ... only the second fires, 300 ms after it was scheduled
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine
from typing import Any

from ..debug_trace import get_logger

logger = get_logger(__name__)


class Scheduler(ABC):
    """Single-threaded timer and task scheduler."""

    @abstractmethod
    def after(self, delay_ms: int, callback: Callable[[], None]) -> Any:
        """Run callback after delay_ms. Returns a handle for after_cancel()."""

    @abstractmethod
    def after_cancel(self, handle: Any) -> None:
        """Cancel a pending callback. Unknown or fired handles are ignored."""

    @abstractmethod
    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Future:
        """Run a coroutine as a task on the scheduler's loop."""


class AsyncioScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop.

    If no loop is given, the running loop is used at call time, so the
    scheduler can be created before the loop starts.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        # Strong references so tasks aren't garbage collected mid-flight
        self._tasks: set[asyncio.Future] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    def after(self, delay_ms: int, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(delay_ms, 0) / 1000, callback)

    def after_cancel(self, handle: Any) -> None:
        if handle is not None:
            handle.cancel()

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Future:
        task = self.loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Scheduled task failed", exc_info=error)


class DeferredOperation:
    """Single-slot pending operation, replaced atomically on each request.

    At most one callback is pending at a time. Scheduling again cancels the
    pending callback first, so only the most recent request fires.
    """

    def __init__(self, scheduler: Scheduler, name: str = "") -> None:
        self._scheduler = scheduler
        self._name = name
        self._handle: Any = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_pending(self) -> bool:
        return self._handle is not None

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> None:
        """Cancel any pending callback and schedule this one instead."""
        self.cancel()

        def fire() -> None:
            self._handle = None
            callback()

        self._handle = self._scheduler.after(delay_ms, fire)

    def cancel(self) -> None:
        """Cancel the pending callback, if any."""
        if self._handle is None:
            return
        try:
            self._scheduler.after_cancel(self._handle)
        finally:
            self._handle = None

    def __repr__(self) -> str:
        state = "pending" if self.is_pending else "idle"
        return f"DeferredOperation({self._name!r}, {state})"
