"""Exception hierarchy for the stream sink.

Fatal errors abort a flush immediately. Everything else raised by a
submitter is treated as a transient transport failure and retried.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stream_sink.buffer.models import Record


class StreamSinkError(Exception):
    """Base class for all stream sink errors."""


class FatalSinkError(StreamSinkError):
    """Raised for unrecoverable conditions that must never be retried.

    When raised during a flush, ``undelivered`` holds the records of the
    aborted batch that were not accepted, followed by those of every batch
    that was not attempted.
    """

    def __init__(self, *args: object) -> None:
        super().__init__(*args)
        self.undelivered: list[Record] = []


class StreamNotWritableError(FatalSinkError):
    """Raised when the destination stream is missing or not writable."""

    def __init__(self, stream_name: str, reason: str) -> None:
        super().__init__(f"Stream '{stream_name}' is not writable: {reason}")
        self.stream_name = stream_name
        self.reason = reason


class SubmitContractError(FatalSinkError):
    """Raised when a submitter returns outcomes misaligned with its input."""


class ConfigurationError(FatalSinkError, ValueError):
    """Raised when sink thresholds or backoff bounds are invalid."""


class UndeliveredRecordsError(StreamSinkError):
    """Base for errors that leave records of the current batch undelivered."""

    def __init__(self, message: str, undelivered: Sequence[Record] = ()) -> None:
        super().__init__(message)
        self.undelivered: list[Record] = list(undelivered)
        self.attempt_count: int = 0


class RetryExhaustedError(UndeliveredRecordsError):
    """Raised when an explicit attempt ceiling is reached."""


class FlushCancelledError(UndeliveredRecordsError):
    """Raised when a flush is cancelled between attempts."""


__all__ = [
    "ConfigurationError",
    "FatalSinkError",
    "FlushCancelledError",
    "RetryExhaustedError",
    "StreamNotWritableError",
    "StreamSinkError",
    "SubmitContractError",
    "UndeliveredRecordsError",
]
