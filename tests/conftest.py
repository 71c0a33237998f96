"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest
import pytest_asyncio

from gridcache.data.cell_cache import CellCache
from gridcache.data.field_cache import FieldCache
from gridcache.data.field_notifier import FieldChangeNotifier
from gridcache.data.memory_source import InMemoryRemoteSource
from gridcache.data.scheduler import Scheduler
from gridcache.errors import GridCacheError
from gridcache.models.constants import FieldType
from gridcache.models.field import Field
from gridcache.models.row import Cell, CellIdentifier, Row
from gridcache.services.controller_builder import CellControllerBuilder

VIEW_ID = "grid"


class ManualScheduler(Scheduler):
    """Scheduler with a manual clock.

    Timers fire only when advance() moves the clock past their due time.
    Spawned coroutines run as tasks on the test's event loop.
    """

    def __init__(self) -> None:
        self.now_ms = 0
        self._timers: dict[int, tuple[int, int, Callable[[], None]]] = {}
        self._next_handle = 0
        self.tasks: list[asyncio.Future] = []

    @property
    def pending_timers(self) -> int:
        return len(self._timers)

    def after(self, delay_ms: int, callback: Callable[[], None]) -> int:
        self._next_handle += 1
        self._timers[self._next_handle] = (self.now_ms + delay_ms, self._next_handle, callback)
        return self._next_handle

    def after_cancel(self, handle: int) -> None:
        self._timers.pop(handle, None)

    def spawn(self, coro) -> asyncio.Future:
        task = asyncio.get_running_loop().create_task(coro)
        self.tasks.append(task)
        return task

    def advance(self, ms: int) -> None:
        """Move the clock forward, firing due timers in due order."""
        target = self.now_ms + ms
        while True:
            due = [(due_ms, seq) for due_ms, seq, _ in self._timers.values() if due_ms <= target]
            if not due:
                break
            due_ms, seq = min(due)
            _, _, callback = self._timers.pop(seq)
            self.now_ms = due_ms
            callback()
        self.now_ms = target

    async def drain(self) -> None:
        """Wait until every spawned task has finished."""
        while True:
            pending = [task for task in self.tasks if not task.done()]
            if not pending:
                break
            await asyncio.gather(*pending, return_exceptions=True)
        await asyncio.sleep(0)

    async def settle(self, step_ms: int = 1000, max_rounds: int = 10) -> None:
        """Advance and drain until no timers or tasks are left."""
        for _ in range(max_rounds):
            self.advance(step_ms)
            await self.drain()
            if not self._timers:
                return


class RecordingRemoteSource(InMemoryRemoteSource):
    """In-memory source that records calls and can fail or stall on demand."""

    def __init__(self) -> None:
        super().__init__()
        self.persist_calls: list[tuple[str, str, str]] = []
        self.fetch_cell_calls: list[tuple[str, str]] = []
        self.fetch_row_calls: list[str] = []
        self.fail_with: GridCacheError | None = None
        # When set, cell fetches wait on it (simulates an in-flight request)
        self.cell_gate: asyncio.Event | None = None

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def fetch_cell_raw(self, row_id: str, field_id: str) -> str | None:
        self.fetch_cell_calls.append((row_id, field_id))
        if self.cell_gate is not None:
            await self.cell_gate.wait()
        self._maybe_fail()
        return await super().fetch_cell_raw(row_id, field_id)

    async def persist_cell(self, row_id: str, field_id: str, value: str) -> None:
        self.persist_calls.append((row_id, field_id, value))
        self._maybe_fail()
        await super().persist_cell(row_id, field_id, value)

    async def fetch_row(self, view_id: str, row_id: str) -> Row:
        self.fetch_row_calls.append(row_id)
        self._maybe_fail()
        return await super().fetch_row(view_id, row_id)


def make_fields() -> list[Field]:
    return [
        Field("name", "Name", FieldType.RICH_TEXT),
        Field("price", "Price", FieldType.NUMBER, {"format": "number"}),
        Field("due", "Due", FieldType.DATE_TIME, {"date_format": "%Y-%m-%d"}),
        Field(
            "status",
            "Status",
            FieldType.SINGLE_SELECT,
            {"options": [{"id": "o1", "name": "Todo"}, {"id": "o2", "name": "Done"}]},
        ),
        Field("done", "Done", FieldType.CHECKBOX),
        Field("link", "Link", FieldType.URL),
    ]


def make_row(row_id: str, **contents: str) -> Row:
    return Row(
        id=row_id,
        cells={field_id: Cell(field_id=field_id, content=content) for field_id, content in contents.items()},
    )


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def fields() -> list[Field]:
    return make_fields()


@pytest.fixture
def source(fields) -> RecordingRemoteSource:
    """Source with one view holding rows A, B, C."""
    src = RecordingRemoteSource()
    src.add_view(
        VIEW_ID,
        fields=fields,
        rows=[
            make_row("A", name="Alpha", price="12", status="o1"),
            make_row("B", name="Beta", price="7.5", due="1700000000"),
            make_row("C", name="Gamma", done="Yes", link="example.com"),
        ],
    )
    return src


@pytest.fixture
def field_cache(source, fields) -> FieldCache:
    cache = FieldCache(VIEW_ID, source)
    cache.set_fields(fields)
    cache.start()
    return cache


@pytest.fixture
def cell_cache() -> CellCache:
    return CellCache(VIEW_ID)


@pytest.fixture
def field_notifier(field_cache) -> FieldChangeNotifier:
    return FieldChangeNotifier(field_cache)


@pytest.fixture
def build_controller(source, scheduler, field_cache, cell_cache, field_notifier):
    """Factory: build a controller for (row_id, field_id)."""

    def build(row_id: str, field_id: str):
        field = field_cache.field(field_id)
        cell_id = CellIdentifier(view_id=VIEW_ID, row_id=row_id, field=field)
        return CellControllerBuilder(
            cell_id=cell_id,
            cell_cache=cell_cache,
            field_cache=field_cache,
            field_notifier=field_notifier,
            remote=source,
            scheduler=scheduler,
        ).build()

    return build


@pytest_asyncio.fixture
async def session(source, scheduler):
    """An opened GridSession over the shared source."""
    from gridcache.data.grid_session import GridSession

    s = GridSession(VIEW_ID, source, scheduler=scheduler)
    await s.open()
    yield s
    if not s._disposed:
        s.dispose()
