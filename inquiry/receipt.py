from __future__ import annotations

from typing import Iterable, Iterator

from inquiry.outcome import Outcome


Entry = tuple[str, Outcome]


class Receipt:
    """Append-only, ordered log of (name, outcome) pairs for named checks."""

    __slots__ = ("_entries",)

    def __init__(self, entries: Iterable[Entry] = ()) -> None:
        out: list[Entry] = []
        for i, entry in enumerate(entries):
            if not isinstance(entry, (list, tuple)) or len(entry) != 2:
                raise TypeError(f"receipt[{i}] must be a (name, outcome) pair")
            name, outcome = entry
            if not isinstance(name, str):
                raise TypeError(f"receipt[{i}] name must be a str")
            if not isinstance(outcome, Outcome):
                raise TypeError(f"receipt[{i}] outcome must be Pass or Fail")
            out.append((name, outcome))
        self._entries: tuple[Entry, ...] = tuple(out)

    @classmethod
    def of(cls, entries: Iterable[Entry] = ()) -> Receipt:
        return cls(entries)

    def append(self, name: str, outcome: Outcome) -> Receipt:
        return Receipt(self._entries + ((name, outcome),))

    def concat(self, other: Receipt) -> Receipt:
        return Receipt(self._entries + other._entries)

    def join(self) -> list[Entry]:
        return list(self._entries)

    def names(self) -> list[str]:
        return [name for name, _ in self._entries]

    def failed(self) -> list[Entry]:
        return [e for e in self._entries if e[1].is_fail]

    def inspect(self) -> str:
        return "Receipt(" + ", ".join(f"{n}: {o.inspect()}" for n, o in self._entries) + ")"

    def __repr__(self) -> str:
        return self.inspect()

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Receipt):
            return NotImplemented
        return self._entries == other._entries

    __hash__ = None  # type: ignore[assignment]
