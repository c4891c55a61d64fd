"""The record threaded through a chain, and the rules both orchestrators share.

Every chain step is resolved, then classified, then accumulated:

  resolve_check()  inline callable | name or pattern | Question  -> ResolvedCheck
  classify()       Outcome | settled orchestrator | other value  -> Outcome | InquiryRecord
  accumulate()     Fail -> fail, Pass -> pass_, nested record -> both (plus receipt)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Literal

from inquiry.errors import Rejection
from inquiry.iou import IOU
from inquiry.outcome import Fail, Outcome, Pass
from inquiry.questionset import Check, Question, Questionset
from inquiry.receipt import Entry, Receipt


logger = logging.getLogger(__name__)

Informant = Callable[[Entry], Any]


@dataclass(frozen=True)
class InquiryRecord:
    subject: Any = None
    fail: Fail = field(default_factory=Fail)
    pass_: Pass = field(default_factory=Pass)
    iou: IOU = field(default_factory=IOU.empty)
    informant: Informant | None = None
    questionset: Questionset = field(default_factory=Questionset)
    receipt: Receipt = field(default_factory=Receipt)


class Orchestrator:
    """Common shell of Inquiry and InquiryP: owns one InquiryRecord."""

    __slots__ = ("_record",)

    def __init__(self, record: InquiryRecord) -> None:
        if not isinstance(record, InquiryRecord):
            raise TypeError(f"{type(self).__name__} wraps an InquiryRecord, got {type(record).__name__}")
        self._record = record

    def join(self) -> InquiryRecord:
        return self._record

    def inspect(self) -> str:
        r = self._record
        text = f"{type(self).__name__}({r.fail.inspect()} {r.pass_.inspect()}"
        if not r.iou.is_empty():
            text += f" {r.iou.inspect()}"
        return text + ")"

    def __repr__(self) -> str:
        return self.inspect()


def initial_record(value: Any) -> InquiryRecord:
    """Fresh record for subject(value); an orchestrator's own subject is reused."""
    if isinstance(value, Orchestrator):
        value = value.join().subject
    return InquiryRecord(subject=value)


@dataclass(frozen=True)
class ResolvedCheck:
    kind: Literal["inline", "named", "question"]
    fn: Check
    name: str | None = None


def resolve_check(check: Any, questionset: Questionset) -> ResolvedCheck:
    if isinstance(check, Question):
        return ResolvedCheck(kind="question", fn=check.fn, name=check.name)
    if isinstance(check, Questionset):
        raise TypeError("inquire() takes a Question, a name or a callable; attach a Questionset with using()")
    if isinstance(check, str):
        return ResolvedCheck(kind="named", fn=questionset.find(check), name=check)
    if isinstance(check, re.Pattern):
        entry = questionset.lookup(check)
        return ResolvedCheck(kind="named", fn=entry.fn, name=entry.label)
    if callable(check):
        return ResolvedCheck(kind="inline", fn=check)
    raise TypeError(f"cannot inquire with {type(check).__name__}")


def curried_checks(check: Any, questionset: Questionset, items: Any) -> list[ResolvedCheck]:
    """One resolved check per item, built by applying the curried check to it."""
    base = resolve_check(check, questionset)
    out: list[ResolvedCheck] = []
    for i, item in enumerate(items):
        fn = base.fn(item)
        if not callable(fn):
            raise TypeError(f"inquire_map check must return a callable for item[{i}]")
        out.append(replace(base, fn=fn))
    return out


def call_check(fn: Check, subject: Any) -> Any:
    try:
        return fn(subject)
    except Rejection as rejection:
        return rejection.outcome


def classify(result: Any) -> Outcome | InquiryRecord:
    if isinstance(result, Outcome):
        return result
    if isinstance(result, Orchestrator):
        nested = result.join()
        if not nested.iou.is_empty():
            raise TypeError("nested chain has not settled; await it before merging")
        return nested
    return Pass(result)


def accumulate(record: InquiryRecord, result: Outcome | InquiryRecord, *, name: str | None = None) -> InquiryRecord:
    if isinstance(result, InquiryRecord):
        out = replace(
            record,
            fail=record.fail.concat(result.fail),
            pass_=record.pass_.concat(result.pass_),
            receipt=record.receipt.concat(result.receipt),
        )
        verdict: Outcome = Fail(result.fail.join()) if not result.fail.is_empty() else Pass(result.pass_.join())
    elif result.is_fail:
        out = replace(record, fail=record.fail.concat(result))
        verdict = result
    else:
        out = replace(record, pass_=record.pass_.concat(result))
        verdict = result

    if name is None:
        return out

    out = replace(out, receipt=out.receipt.append(name, verdict))
    logger.debug("question %r answered %s", name, verdict.inspect())
    if out.informant is not None:
        out.informant((name, verdict))
    return out


def adopt(returned: Any, *, hook: str) -> InquiryRecord:
    if isinstance(returned, Orchestrator):
        returned = returned.join()
    if not isinstance(returned, InquiryRecord):
        raise TypeError(f"{hook} handler must return an InquiryRecord, got {type(returned).__name__}")
    if not returned.iou.is_empty():
        raise TypeError(f"{hook} handler returned a chain that has not settled; await it first")
    return returned


def swapped(record: InquiryRecord) -> InquiryRecord:
    return replace(record, fail=Fail(record.pass_.join()), pass_=Pass(record.fail.join()))


def zipped(record: InquiryRecord) -> list[Any]:
    return record.fail.join() + record.pass_.join()
