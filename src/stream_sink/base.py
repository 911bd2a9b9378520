"""Protocols for the collaborators a sink is wired with.

The destination client, the destination precondition check and the failure
tracker are injected, so any object with the right shape can be used.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from stream_sink.buffer.models import Record
    from stream_sink.patterns.failures import SendOutcome


@runtime_checkable
class Submitter(Protocol):
    """Protocol for the remote put-batch call.

    Implementations must accept at least ``record_limit`` records and
    ``byte_limit`` bytes per call and bound each call with a timeout.

    Example:
        >>> from stream_sink.base import Submitter
        >>> from stream_sink.sink.memory import InMemorySubmitter
        >>> isinstance(InMemorySubmitter(), Submitter)
        True
    """

    def submit(self, records: Sequence[Record]) -> Sequence[SendOutcome]:
        """Send records in one call.

        Args:
            records: Records to write, in order.

        Returns:
            One outcome per record, aligned positionally with ``records``.

        Raises:
            FatalSinkError: For conditions that retrying cannot fix.
            Exception: Any other error is treated as a transient transport
                failure of the whole call.
        """
        ...


@runtime_checkable
class StreamValidator(Protocol):
    """Protocol for the one-time destination precondition check."""

    def validate(self) -> None:
        """Raise StreamNotWritableError unless the stream accepts writes."""
        ...


@runtime_checkable
class FailureTracker(Protocol):
    """Protocol for best-effort failure notifications."""

    def notify_failure(
        self,
        category: str,
        description: str,
        stream_name: str,
        attempt: int,
        byte_size: int,
    ) -> None:
        """Report a failed write attempt.

        Args:
            category: Coarse failure category, e.g. "PUT Failure".
            description: Aggregated error summary or exception text.
            stream_name: Destination stream.
            attempt: 1-based attempt number that failed.
            byte_size: Bytes still waiting to be delivered.
        """
        ...


__all__ = ["FailureTracker", "StreamValidator", "Submitter"]
