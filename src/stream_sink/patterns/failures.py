"""Per-record submit outcomes and failure aggregation."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from stream_sink.buffer.models import Record


@dataclass(frozen=True, slots=True)
class SendOutcome:
    """Result of submitting one record.

    Attributes:
        error_code: Error classifier reported by the destination, None on success.
        error_message: Human-readable failure detail, None on success.
    """

    error_code: str | None = None
    error_message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error_code is None and self.error_message is None

    @classmethod
    def success(cls) -> SendOutcome:
        return cls()

    @classmethod
    def failure(cls, error_code: str, error_message: str) -> SendOutcome:
        return cls(error_code=error_code, error_message=error_message)


@dataclass(frozen=True, slots=True)
class ErrorSummary:
    """Failures sharing one error code.

    Attributes:
        count: Number of records that failed with the code.
        sample_message: The most recently seen message for the code.
    """

    count: int
    sample_message: str


def partition(
    pairs: Iterable[tuple[Record, SendOutcome]],
) -> tuple[list[Record], list[tuple[Record, SendOutcome]]]:
    """Split submit results into succeeded records and failed pairs.

    Both outputs keep the input order.

    Args:
        pairs: Records zipped with their outcomes.

    Returns:
        A ``(succeeded, failed)`` tuple where ``failed`` still carries each
        record's outcome for diagnostics.
    """
    succeeded: list[Record] = []
    failed: list[tuple[Record, SendOutcome]] = []
    for record, outcome in pairs:
        if outcome.succeeded:
            succeeded.append(record)
        else:
            failed.append((record, outcome))
    return succeeded, failed


def summarize(failed_outcomes: Iterable[SendOutcome]) -> dict[str, ErrorSummary]:
    """Count failures per error code, keeping the latest message as the sample."""
    summary: dict[str, ErrorSummary] = {}
    for outcome in failed_outcomes:
        code = outcome.error_code or "Unknown"
        message = outcome.error_message or ""
        previous = summary.get(code)
        count = previous.count + 1 if previous is not None else 1
        summary[code] = ErrorSummary(count=count, sample_message=message)
    return summary


def log_summary(summary: Mapping[str, ErrorSummary], logger: logging.Logger) -> None:
    """Emit one error line per error code."""
    for code, entry in summary.items():
        logger.error(
            "%d records failed with error code %s. Example error message: %s",
            entry.count,
            code,
            entry.sample_message,
        )


def describe(summary: Mapping[str, ErrorSummary]) -> str:
    """One-line description of a failure summary, used for failure events."""
    total = sum(entry.count for entry in summary.values())
    parts = ", ".join(f"{code}x{entry.count}" for code, entry in summary.items())
    return f"Failed to send {total} events: {parts}"


def byte_size(records: Sequence[Record]) -> int:
    """Total payload bytes of ``records``."""
    return sum(r.size for r in records)


__all__ = [
    "ErrorSummary",
    "SendOutcome",
    "byte_size",
    "describe",
    "log_summary",
    "partition",
    "summarize",
]
