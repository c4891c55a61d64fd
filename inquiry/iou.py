from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from inquiry.errors import InquiryError

if TYPE_CHECKING:
    from inquiry.record import InquiryRecord


class IOU:
    """Placeholder for a chain result that has not settled yet.

    Holds a zero-argument coroutine function producing the settled record. The
    first settle() schedules it as a single task; later calls await that same
    task, so checks never run twice for one chain. Only work cancelled by the
    shutdown of another event loop is started again.
    """

    __slots__ = ("_thunk", "_task")

    def __init__(self, thunk: Callable[[], Awaitable[InquiryRecord]] | None = None) -> None:
        self._thunk = thunk
        self._task: asyncio.Future[Any] | None = None

    @classmethod
    def empty(cls) -> IOU:
        return cls()

    @classmethod
    def of(cls, thunk: Callable[[], Awaitable[InquiryRecord]]) -> IOU:
        return cls(thunk)

    def is_empty(self) -> bool:
        return self._thunk is None

    def task(self) -> asyncio.Future[Any]:
        if self._thunk is None:
            raise ValueError("empty IOU has nothing to settle")
        loop = asyncio.get_running_loop()
        task = self._task
        if task is not None and task.get_loop() is not loop:
            task = self._task = self._carry_over(task, loop)
        if task is None:
            task = self._task = asyncio.ensure_future(self._thunk())
        return task

    @staticmethod
    def _carry_over(task: asyncio.Future[Any], loop: asyncio.AbstractEventLoop) -> asyncio.Future[Any] | None:
        # A task from another event loop cannot be awaited here. A settled one is
        # copied onto this loop; one cancelled by its loop's shutdown runs again.
        if task.done() and not task.cancelled():
            carried = loop.create_future()
            if task.exception() is not None:
                carried.set_exception(task.exception())
            else:
                carried.set_result(task.result())
            return carried
        if task.cancelled() or task.get_loop().is_closed():
            return None
        raise InquiryError("chain is still settling in another event loop")

    async def settle(self) -> InquiryRecord:
        return await self.task()

    def inspect(self) -> str:
        if self._thunk is None:
            return "IOU()"
        if self._task is not None and self._task.done():
            return "IOU(settled)"
        return "IOU(pending)"

    def __repr__(self) -> str:
        return self.inspect()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IOU):
            return NotImplemented
        return self._thunk is other._thunk

    __hash__ = None  # type: ignore[assignment]
