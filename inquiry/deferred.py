"""Asynchronous inquiry chain.

InquiryP has the chain surface of Inquiry, but every step is deferred behind
an IOU and only runs once the previous step has settled. Results therefore
land in declaration order whatever each check's latency:

    chain = (
        InquiryP.subject(user)
        .inquire(slow_lookup)      # settles after 2s
        .inquire(fast_lookup)      # settles after 10ms
    )
    passes = await chain.suffice(lambda p: p.join())   # [slow, fast]

Nothing runs until the chain is awaited, settled with await_(), or handed to
a terminal (conclude, faulted, cleared, fork, fold, suffice, zip).
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable, Generator, Iterable

from inquiry.errors import InquiryTimeout, Rejection
from inquiry.iou import IOU
from inquiry.outcome import Fail, Pass
from inquiry.questionset import Questionset
from inquiry.record import (
    InquiryRecord,
    Informant,
    Orchestrator,
    ResolvedCheck,
    accumulate,
    adopt,
    classify,
    curried_checks,
    initial_record,
    resolve_check,
    swapped,
    zipped,
)


logger = logging.getLogger(__name__)

Step = Callable[[InquiryRecord], Awaitable[InquiryRecord]]


async def _flatten(value: Any) -> Any:
    # Nested InquiryP chains are awaitable too; awaiting one yields the settled chain.
    while inspect.isawaitable(value):
        if isinstance(value, InquiryP):
            return await value
        value = await value
    return value


async def _settled(record: InquiryRecord) -> InquiryRecord:
    if record.iou.is_empty():
        return record
    return await record.iou.settle()


async def _run(record: InquiryRecord, check: ResolvedCheck) -> InquiryRecord:
    try:
        result = check.fn(record.subject)
        if inspect.isawaitable(result):
            logger.debug("suspending on %s check %s", check.kind, check.name or getattr(check.fn, "__name__", "?"))
            result = await _flatten(result)
    except Rejection as rejection:
        result = rejection.outcome
    return accumulate(record, classify(result), name=check.name)


class InquiryP(Orchestrator):
    __slots__ = ()

    @classmethod
    def subject(cls, value: Any) -> InquiryP:
        return cls(initial_record(value))

    @classmethod
    def of(cls, value: InquiryRecord | Orchestrator) -> InquiryP:
        if isinstance(value, cls):
            return value
        if isinstance(value, Orchestrator):
            value = value.join()
        if not isinstance(value, InquiryRecord):
            raise TypeError("InquiryP.of() takes an InquiryRecord; use InquiryP.subject() for plain values")
        return cls(value)

    def _then(self, step: Step) -> InquiryP:
        source = self._record

        async def run() -> InquiryRecord:
            return await step(await _settled(source))

        return type(self)(replace(source, iou=IOU.of(run)))

    async def _settle(self) -> InquiryRecord:
        return await _settled(self._record)

    async def _settled_chain(self) -> InquiryP:
        record = await self._settle()
        if record is self._record:
            return self
        return type(self)(record)

    def __await__(self) -> Generator[Any, None, InquiryP]:
        return self._settled_chain().__await__()

    async def await_(self, timeout_ms: float) -> InquiryP:
        """Settle the chain, or raise InquiryTimeout after timeout_ms.

        The in-flight check is not cancelled; awaiting the chain again picks up
        the same pending work.
        """
        if self._record.iou.is_empty():
            return self
        task = self._record.iou.task()
        try:
            record = await asyncio.wait_for(asyncio.shield(task), timeout_ms / 1000)
        except asyncio.TimeoutError:
            logger.warning("inquiry did not settle within %sms", timeout_ms)
            raise InquiryTimeout(timeout_ms) from None
        return type(self)(record)

    async def then(self, fn: Callable[[InquiryP], Any]) -> Any:
        return await _flatten(fn(await self))

    # monad surface

    def map(self, f: Callable[[InquiryRecord], Any]) -> InquiryP:
        async def step(record: InquiryRecord) -> InquiryRecord:
            return adopt(await _flatten(f(record)), hook="map")

        return self._then(step)

    def chain(self, f: Callable[[InquiryRecord], Any]) -> InquiryP:
        async def step(record: InquiryRecord) -> InquiryRecord:
            return adopt(await _flatten(f(record)), hook="chain")

        return self._then(step)

    # chain operations

    def inquire(self, check: Any) -> InquiryP:
        async def step(record: InquiryRecord) -> InquiryRecord:
            return await _run(record, resolve_check(check, record.questionset))

        return self._then(step)

    def inquire_map(self, check: Any, items: Iterable[Any]) -> InquiryP:
        items = list(items)

        async def step(record: InquiryRecord) -> InquiryRecord:
            for resolved in curried_checks(check, record.questionset, items):
                record = await _run(record, resolved)
            return record

        return self._then(step)

    def inquire_all(self) -> InquiryP:
        async def step(record: InquiryRecord) -> InquiryRecord:
            for entry in record.questionset:
                record = await _run(record, ResolvedCheck(kind="named", fn=entry.fn, name=entry.label))
            return record

        return self._then(step)

    def using(self, questionset: Questionset) -> InquiryP:
        if not isinstance(questionset, Questionset):
            raise TypeError("using() takes a Questionset")

        async def step(record: InquiryRecord) -> InquiryRecord:
            return replace(record, questionset=questionset)

        return self._then(step)

    def informant(self, fn: Informant) -> InquiryP:
        async def step(record: InquiryRecord) -> InquiryRecord:
            return replace(record, informant=fn)

        return self._then(step)

    def breakpoint(self, fn: Callable[[InquiryRecord], Any]) -> InquiryP:
        async def step(record: InquiryRecord) -> InquiryRecord:
            if record.fail.is_empty():
                return record
            return adopt(await _flatten(fn(record)), hook="breakpoint")

        return self._then(step)

    def milestone(self, fn: Callable[[InquiryRecord], Any]) -> InquiryP:
        async def step(record: InquiryRecord) -> InquiryRecord:
            if record.pass_.is_empty():
                return record
            return adopt(await _flatten(fn(record)), hook="milestone")

        return self._then(step)

    def swap(self) -> InquiryP:
        async def step(record: InquiryRecord) -> InquiryRecord:
            return swapped(record)

        return self._then(step)

    # terminals

    async def zip(self, fn: Callable[[list[Any]], Any]) -> Any:
        return await _flatten(fn(zipped(await self._settle())))

    async def fork(self, on_fail: Callable[[Fail], Any], on_pass: Callable[[Pass], Any]) -> Any:
        r = await self._settle()
        if not r.fail.is_empty():
            return await _flatten(on_fail(r.fail))
        return await _flatten(on_pass(r.pass_))

    async def fold(self, on_pass: Callable[[Pass], Any], on_fail: Callable[[Fail], Any]) -> Any:
        return await self.fork(on_fail, on_pass)

    async def conclude(self, on_fail: Callable[[Fail], Any], on_pass: Callable[[Pass], Any]) -> Any:
        return await self.fork(on_fail, on_pass)

    async def suffice(self, on_pass: Callable[[Pass], Any]) -> Any:
        r = await self._settle()
        return await _flatten(on_pass(r.pass_))

    async def faulted(self, on_fail: Callable[[Fail], Any]) -> Any:
        settled = await self
        if settled._record.fail.is_empty():
            return settled
        return await _flatten(on_fail(settled._record.fail))

    async def cleared(self, on_pass: Callable[[Pass], Any]) -> Any:
        settled = await self
        if not settled._record.fail.is_empty():
            return settled
        return await _flatten(on_pass(settled._record.pass_))
