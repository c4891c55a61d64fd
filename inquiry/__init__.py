"""Pass/Fail inquiry chains.

Run an ordered sequence of checks against one subject, collect every Pass and
Fail in declaration order, then branch once on whether anything failed.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from inquiry.deferred import InquiryP
from inquiry.errors import InquiryError, InquiryTimeout, Rejection, UnknownQuestion
from inquiry.iou import IOU
from inquiry.outcome import Fail, Outcome, Pass
from inquiry.questionset import Question, QuestionEntry, Questionset
from inquiry.receipt import Receipt
from inquiry.record import InquiryRecord
from inquiry.sync import Inquiry

__all__ = [
    "IOU",
    "Fail",
    "Inquiry",
    "InquiryError",
    "InquiryP",
    "InquiryRecord",
    "InquiryTimeout",
    "Outcome",
    "Pass",
    "Question",
    "QuestionEntry",
    "Questionset",
    "Receipt",
    "Rejection",
    "UnknownQuestion",
]


def __getattr__(name: str):
    if name == "__version__":
        try:
            return version("inquiry-chain")
        except PackageNotFoundError:
            return "0.0.0"
    raise AttributeError(name)
