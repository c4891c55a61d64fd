from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from inquiry.outcome import Outcome


class InquiryError(Exception):
    """Base class for errors raised by inquiry chains.

    Recorded failures are never raised; they are Fail outcomes.
    """

    pass


class UnknownQuestion(InquiryError, LookupError):
    """Raised when a named lookup has no matching entry in the Questionset."""

    def __init__(self, name: object) -> None:
        super().__init__(f"no question matches {name!r}")
        self.name = name


class InquiryTimeout(InquiryError, TimeoutError):
    """Raised by InquiryP.await_() when the chain does not settle in time."""

    def __init__(self, timeout_ms: float) -> None:
        super().__init__(f"inquiry did not settle within {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class Rejection(InquiryError):
    """Raise from a check to reject with an outcome.

    A rejected outcome is accumulated exactly as if the check had returned it.
    """

    def __init__(self, outcome: Outcome) -> None:
        from inquiry.outcome import Outcome

        if not isinstance(outcome, Outcome):
            raise TypeError("Rejection requires a Pass or Fail outcome")
        super().__init__(outcome.inspect())
        self.outcome = outcome
