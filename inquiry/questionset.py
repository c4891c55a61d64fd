"""Named check registry.

A Questionset is an ordered list of (matcher, check) entries. A matcher is
either an exact name or a compiled pattern that must match the whole name.
Lookup returns the first accepting entry; duplicates are kept.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Union

from inquiry.errors import UnknownQuestion


Matcher = Union[str, re.Pattern]
Check = Callable[..., Any]


@dataclass(frozen=True)
class QuestionEntry:
    matcher: Matcher
    fn: Check

    @property
    def label(self) -> str:
        if isinstance(self.matcher, str):
            return self.matcher
        return self.matcher.pattern

    def accepts(self, name: Matcher) -> bool:
        if isinstance(name, re.Pattern):
            if isinstance(self.matcher, str):
                return name.fullmatch(self.matcher) is not None
            return name == self.matcher
        if isinstance(self.matcher, str):
            return self.matcher == name
        return self.matcher.fullmatch(name) is not None


def _entry_from_pair(i: int, pair: Any) -> QuestionEntry:
    if isinstance(pair, QuestionEntry):
        return pair
    if not isinstance(pair, (list, tuple)) or len(pair) != 2:
        raise TypeError(f"question[{i}] must be a (matcher, check) pair")
    matcher, fn = pair
    if not isinstance(matcher, (str, re.Pattern)):
        raise TypeError(f"question[{i}] matcher must be a str or compiled pattern")
    if not callable(fn):
        raise TypeError(f"question[{i}] check must be callable")
    return QuestionEntry(matcher=matcher, fn=fn)


class Questionset:
    __slots__ = ("_entries",)

    def __init__(self, entries: Iterable[Any] = ()) -> None:
        self._entries: tuple[QuestionEntry, ...] = tuple(
            _entry_from_pair(i, pair) for i, pair in enumerate(entries)
        )

    @classmethod
    def of(cls, pairs: Iterable[Any]) -> Questionset:
        return cls(pairs)

    @property
    def entries(self) -> tuple[QuestionEntry, ...]:
        return self._entries

    def lookup(self, name: Matcher) -> QuestionEntry:
        for entry in self._entries:
            if entry.accepts(name):
                return entry
        raise UnknownQuestion(name.pattern if isinstance(name, re.Pattern) else name)

    def find(self, name: Matcher) -> Check:
        return self.lookup(name).fn

    def concat(self, other: Questionset) -> Questionset:
        if not isinstance(other, Questionset):
            raise TypeError("can only concat another Questionset")
        return Questionset(self._entries + other._entries)

    def join(self) -> list[tuple[Matcher, Check]]:
        return [(e.matcher, e.fn) for e in self._entries]

    def inspect(self) -> str:
        return f"{type(self).__name__}({', '.join(e.label for e in self._entries)})"

    def __repr__(self) -> str:
        return self.inspect()

    def __iter__(self) -> Iterator[QuestionEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Questionset):
            return NotImplemented
        return self._entries == other._entries

    __hash__ = None  # type: ignore[assignment]


class Question(Questionset):
    """A single named check, usable wherever a Questionset is accepted."""

    __slots__ = ()

    def __init__(self, entries: Iterable[Any] = ()) -> None:
        super().__init__(entries)
        if len(self._entries) != 1:
            raise TypeError("a Question holds exactly one (name, check) entry")

    @classmethod
    def of(cls, pair: Any) -> Question:
        return cls([pair])

    @property
    def entry(self) -> QuestionEntry:
        return self._entries[0]

    @property
    def name(self) -> str:
        return self._entries[0].label

    @property
    def fn(self) -> Check:
        return self._entries[0].fn
