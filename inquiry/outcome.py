"""Pass/Fail outcome algebra.

An outcome is an immutable, tagged sequence of accumulated values. Scalars are
promoted to single-element sequences; lists and tuples are taken as-is.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable


def _promote(value: Any) -> tuple[Any, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


def _render(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ",".join(_render(v) for v in value)
    return str(value)


class Outcome(ABC):
    """Base of Pass and Fail; only the two tagged subclasses are instantiable."""

    tag = "Outcome"
    is_pass = False
    is_fail = False

    __slots__ = ("_values",)

    def __init__(self, *value: Any) -> None:
        if len(value) > 1:
            raise TypeError(f"{type(self).__name__}() takes at most one value")
        self._values: tuple[Any, ...] = _promote(value[0]) if value else ()

    @classmethod
    def of(cls, value: Any = ()) -> Outcome:
        return cls(value)

    @classmethod
    def _wrap(cls, values: Iterable[Any]) -> Outcome:
        out = cls.__new__(cls)
        out._values = tuple(values)
        return out

    @property
    def values(self) -> tuple[Any, ...]:
        return self._values

    def map(self, f: Callable[[list[Any]], Any]) -> Outcome:
        return type(self)(f(list(self._values)))

    def chain(self, f: Callable[[list[Any]], Any]) -> Any:
        return f(list(self._values))

    @abstractmethod
    def fold(self, on_pass: Callable[[list[Any]], Any], on_fail: Callable[[list[Any]], Any]) -> Any: ...

    def fork(self, on_fail: Callable[[list[Any]], Any], on_pass: Callable[[list[Any]], Any]) -> Any:
        return self.fold(on_pass, on_fail)

    def join(self) -> list[Any]:
        return list(self._values)

    def concat(self, other: Outcome) -> Outcome:
        if type(other) is not type(self):
            raise TypeError(f"cannot concat {other.tag} onto {self.tag}")
        return type(self)._wrap(self._values + other._values)

    @abstractmethod
    def ap(self, other: Outcome) -> Outcome: ...

    def head(self) -> Any:
        return self._values[0] if self._values else None

    def tail(self) -> Any:
        return self._values[-1] if self._values else None

    def is_empty(self) -> bool:
        return not self._values

    def inspect(self) -> str:
        return f"{self.tag}({_render(self._values)})"

    def __repr__(self) -> str:
        return self.inspect()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Outcome):
            return NotImplemented
        return type(self) is type(other) and self._values == other._values

    __hash__ = None  # type: ignore[assignment]


class Pass(Outcome):
    tag = "Pass"
    is_pass = True

    __slots__ = ()

    def fold(self, on_pass, on_fail):
        return on_pass(list(self._values))

    def ap(self, other: Outcome) -> Outcome:
        if other.is_pass:
            return other.concat(self)
        return self


class Fail(Outcome):
    tag = "Fail"
    is_fail = True

    __slots__ = ()

    def fold(self, on_pass, on_fail):
        return on_fail(list(self._values))

    def ap(self, other: Outcome) -> Outcome:
        if other.is_pass:
            return self
        return other.concat(self)
