"""Synchronous inquiry chain.

    Inquiry.subject({"age": 14, "name": "Ron"}) \\
        .inquire(old_enough) \\
        .inquire(name_spelled_right) \\
        .fork(on_fail, on_pass)

Every step runs, even after a failure; only the terminal combinators look at
whether anything failed.
"""

from __future__ import annotations

import inspect
from dataclasses import replace
from typing import Any, Callable, Iterable

from inquiry.outcome import Fail, Pass
from inquiry.questionset import Questionset
from inquiry.record import (
    InquiryRecord,
    Informant,
    Orchestrator,
    ResolvedCheck,
    accumulate,
    adopt,
    call_check,
    classify,
    curried_checks,
    initial_record,
    resolve_check,
    swapped,
    zipped,
)


def _run(record: InquiryRecord, check: ResolvedCheck) -> InquiryRecord:
    result = call_check(check.fn, record.subject)
    if inspect.isawaitable(result):
        if inspect.iscoroutine(result):
            result.close()
        raise TypeError("check returned an awaitable; use InquiryP for asynchronous checks")
    return accumulate(record, classify(result), name=check.name)


class Inquiry(Orchestrator):
    __slots__ = ()

    @classmethod
    def subject(cls, value: Any) -> Inquiry:
        return cls(initial_record(value))

    @classmethod
    def of(cls, value: InquiryRecord | Orchestrator) -> Inquiry:
        if isinstance(value, cls):
            return value
        if isinstance(value, Orchestrator):
            value = value.join()
        if not isinstance(value, InquiryRecord):
            raise TypeError("Inquiry.of() takes an InquiryRecord; use Inquiry.subject() for plain values")
        return cls(value)

    # monad surface

    def map(self, f: Callable[[InquiryRecord], InquiryRecord]) -> Inquiry:
        return type(self).of(f(self._record))

    def chain(self, f: Callable[[InquiryRecord], Any]) -> Any:
        return f(self._record)

    # chain operations

    def inquire(self, check: Any) -> Inquiry:
        r = self._record
        return type(self)(_run(r, resolve_check(check, r.questionset)))

    def inquire_map(self, check: Any, items: Iterable[Any]) -> Inquiry:
        record = self._record
        for step in curried_checks(check, record.questionset, items):
            record = _run(record, step)
        return type(self)(record)

    def inquire_all(self) -> Inquiry:
        record = self._record
        for entry in record.questionset:
            record = _run(record, ResolvedCheck(kind="named", fn=entry.fn, name=entry.label))
        return type(self)(record)

    def using(self, questionset: Questionset) -> Inquiry:
        if not isinstance(questionset, Questionset):
            raise TypeError("using() takes a Questionset")
        return type(self)(replace(self._record, questionset=questionset))

    def informant(self, fn: Informant) -> Inquiry:
        return type(self)(replace(self._record, informant=fn))

    def breakpoint(self, fn: Callable[[InquiryRecord], InquiryRecord]) -> Inquiry:
        if self._record.fail.is_empty():
            return self
        return type(self)(adopt(fn(self._record), hook="breakpoint"))

    def milestone(self, fn: Callable[[InquiryRecord], InquiryRecord]) -> Inquiry:
        if self._record.pass_.is_empty():
            return self
        return type(self)(adopt(fn(self._record), hook="milestone"))

    def swap(self) -> Inquiry:
        return type(self)(swapped(self._record))

    # terminals

    def zip(self, fn: Callable[[list[Any]], Any]) -> Any:
        return fn(zipped(self._record))

    def fork(self, on_fail: Callable[[Fail], Any], on_pass: Callable[[Pass], Any]) -> Any:
        r = self._record
        if not r.fail.is_empty():
            return on_fail(r.fail)
        return on_pass(r.pass_)

    def fold(self, on_pass: Callable[[Pass], Any], on_fail: Callable[[Fail], Any]) -> Any:
        return self.fork(on_fail, on_pass)

    def conclude(self, on_fail: Callable[[Fail], Any], on_pass: Callable[[Pass], Any]) -> Any:
        return self.fork(on_fail, on_pass)

    def suffice(self, on_pass: Callable[[Pass], Any]) -> Any:
        return on_pass(self._record.pass_)

    def faulted(self, on_fail: Callable[[Fail], Any]) -> Any:
        if self._record.fail.is_empty():
            return self
        return on_fail(self._record.fail)

    def cleared(self, on_pass: Callable[[Pass], Any]) -> Any:
        if not self._record.fail.is_empty():
            return self
        return on_pass(self._record.pass_)
