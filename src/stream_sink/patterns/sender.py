"""Retrying sender that delivers sealed batches until fully accepted."""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from stream_sink.base import FailureTracker, Submitter
from stream_sink.buffer.models import Batch, Record
from stream_sink.errors import (
    FatalSinkError,
    FlushCancelledError,
    RetryExhaustedError,
    SubmitContractError,
    UndeliveredRecordsError,
)
from stream_sink.observability.tracker import NullFailureTracker
from stream_sink.patterns.backoff import BackoffPolicy
from stream_sink.patterns.failures import byte_size, describe, log_summary, partition, summarize

logger = logging.getLogger(__name__)

FAILURE_CATEGORY = "PUT Failure"


def _is_fatal_error(exc: BaseException) -> bool:
    """Check if a submit error must abort the flush instead of being retried.

    Args:
        exc: The exception raised by the submitter.

    Returns:
        bool: True for FatalSinkError and its subclasses.
    """
    return isinstance(exc, FatalSinkError)


@dataclass(frozen=True, slots=True)
class SenderMetrics:
    """Counters accumulated by a RetryingSender.

    Attributes:
        batches_sent: Batches fully accepted by the destination.
        records_sent: Records accepted by the destination.
        attempts: Submit calls made.
        failed_records: Records left unsent after an attempt, whether rejected
            individually or part of a call that raised.
        transport_errors: Submit calls that raised a non-fatal error.
        total_backoff_ms: Time spent waiting between attempts.
    """

    batches_sent: int
    records_sent: int
    attempts: int
    failed_records: int
    transport_errors: int
    total_backoff_ms: float


class RetryingSender:
    """
    Sends batches one at a time, resubmitting failures until all are accepted.

    For each batch the sender submits the unsent records. Records the
    destination accepted are done for good; only the rejected ones are
    resubmitted, in their original relative order. If the submit call itself
    raises, nothing is presumed delivered and the whole in-flight set is
    resubmitted. Between attempts the calling thread blocks for a jittered
    backoff that restarts at the minimum for every batch.

    By default a batch is retried forever. Pass ``max_attempts`` to bound the
    loop, or ``cancel_event`` to stop it between attempts.

    Args:
        submitter: Remote put-batch collaborator.
        stream_name: Destination stream, used in logs and failure events.
        backoff: Backoff policy. Defaults to ``BackoffPolicy()``.
        tracker: Failure tracker. Defaults to a no-op tracker.
        max_attempts: Attempt ceiling per batch. None retries forever.
        is_fatal: Callable deciding which submit errors abort the flush.
        sleep: Blocking sleep taking seconds. Defaults to ``time.sleep``.
        cancel_event: Event that aborts the loop when set.

    Example:
        ```python
        sender = RetryingSender(KinesisSubmitter("events"), "events")
        sender.send_all(buffer.drain_sealed())
        ```
    """

    def __init__(
        self,
        submitter: Submitter,
        stream_name: str,
        backoff: BackoffPolicy | None = None,
        tracker: FailureTracker | None = None,
        *,
        max_attempts: int | None = None,
        is_fatal: Callable[[BaseException], bool] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: threading.Event | None = None,
    ) -> None:
        if max_attempts is not None and max_attempts < 1:
            raise ValueError("max_attempts must be >= 1 or None")

        self._submitter = submitter
        self._stream_name = stream_name
        self._backoff = backoff or BackoffPolicy()
        self._tracker = tracker or NullFailureTracker()
        self._max_attempts = max_attempts
        self._is_fatal = is_fatal or _is_fatal_error
        self._sleep = sleep
        self._cancel_event = cancel_event

        self._batches_sent = 0
        self._records_sent = 0
        self._attempts = 0
        self._failed_records = 0
        self._transport_errors = 0
        self._total_backoff_ms = 0.0

    @property
    def stream_name(self) -> str:
        return self._stream_name

    @property
    def max_attempts(self) -> int | None:
        """Attempt ceiling per batch, None when unbounded."""
        return self._max_attempts

    def send_all(self, batches: Iterable[Batch]) -> None:
        """Send batches strictly in order, each to completion before the next.

        Empty batches are skipped.

        Args:
            batches: Sealed batches, oldest first.

        Raises:
            FatalSinkError: On an unrecoverable submit error. Its
                ``undelivered`` list holds the unaccepted records of the
                aborted batch and of every later batch.
            RetryExhaustedError: If ``max_attempts`` was reached. Its
                ``undelivered`` list also holds the records of every batch
                that was not attempted.
            FlushCancelledError: If ``cancel_event`` was set, with
                ``undelivered`` filled the same way.
        """
        pending = list(batches)
        for index, batch in enumerate(pending):
            try:
                self.send_batch(batch)
            except (UndeliveredRecordsError, FatalSinkError) as exc:
                for later in pending[index + 1 :]:
                    exc.undelivered.extend(later.records)
                raise
            except Exception:
                skipped = sum(len(later) for later in pending[index + 1 :])
                if skipped:
                    logger.error(
                        "Dropping %d records of %d unsent batches to stream %s",
                        skipped,
                        len(pending) - index - 1,
                        self._stream_name,
                    )
                raise

    def send_batch(self, batch: Batch) -> int:
        """Send one batch, looping until every record has been accepted.

        Args:
            batch: The batch to send.

        Returns:
            int: Number of submit attempts used (0 for an empty batch).
        """
        if batch.is_empty:
            return 0

        self._log_event(
            logging.INFO,
            "batch_write_started",
            records=len(batch),
            bytes=batch.byte_size,
        )

        unsent: list[Record] = list(batch.records)
        delay_ms: float = self._backoff.initial_delay_ms
        attempt = 0

        while True:
            attempt += 1
            self._raise_if_cancelled(unsent, attempt - 1)
            self._attempts += 1

            try:
                outcomes = list(self._submitter.submit(unsent))
            except Exception as exc:
                if self._is_fatal(exc):
                    self._abort(exc, unsent)
                    raise
                self._transport_errors += 1
                logger.error(
                    "Writing %d records to stream %s failed: %s",
                    len(unsent),
                    self._stream_name,
                    exc,
                    exc_info=exc,
                )
                description = str(exc) or type(exc).__name__
            else:
                if len(outcomes) != len(unsent):
                    error = SubmitContractError(
                        f"Submitter returned {len(outcomes)} outcomes for {len(unsent)} records"
                    )
                    self._abort(error, unsent)
                    raise error

                succeeded, failed_pairs = partition(zip(unsent, outcomes))
                self._records_sent += len(succeeded)
                logger.info(
                    "Successfully wrote %d out of %d records to stream %s",
                    len(succeeded),
                    len(unsent),
                    self._stream_name,
                )

                if not failed_pairs:
                    self._batches_sent += 1
                    return attempt

                summary = summarize(outcome for _, outcome in failed_pairs)
                log_summary(summary, logger)
                description = describe(summary)
                unsent = [record for record, _ in failed_pairs]

            self._failed_records += len(unsent)
            self._notify(description, attempt, byte_size(unsent))

            if self._max_attempts is not None and attempt >= self._max_attempts:
                error = RetryExhaustedError(
                    f"{len(unsent)} records still undelivered to stream "
                    f"{self._stream_name} after {attempt} attempts",
                    unsent,
                )
                error.attempt_count = attempt
                raise error

            delay_ms = self._backoff.next_delay(delay_ms)
            self._log_event(
                logging.ERROR,
                "batch_write_retry_scheduled",
                attempt=attempt,
                unsent_records=len(unsent),
                delay_ms=round(delay_ms, 3),
            )
            self._wait(delay_ms, unsent, attempt)

    def get_metrics(self) -> SenderMetrics:
        """Get the counters accumulated so far.

        Returns:
            SenderMetrics: Current metrics.
        """
        return SenderMetrics(
            batches_sent=self._batches_sent,
            records_sent=self._records_sent,
            attempts=self._attempts,
            failed_records=self._failed_records,
            transport_errors=self._transport_errors,
            total_backoff_ms=self._total_backoff_ms,
        )

    def _abort(self, exc: BaseException, unsent: Sequence[Record]) -> None:
        logger.error(
            "Aborting write to stream %s with %d records undelivered: %s",
            self._stream_name,
            len(unsent),
            exc,
        )
        if isinstance(exc, FatalSinkError):
            exc.undelivered = list(unsent)

    def _notify(self, description: str, attempt: int, unsent_bytes: int) -> None:
        try:
            self._tracker.notify_failure(
                FAILURE_CATEGORY,
                description,
                self._stream_name,
                attempt,
                unsent_bytes,
            )
        except Exception:
            logger.exception("Failure tracker raised while reporting attempt %d", attempt)

    def _wait(self, delay_ms: float, unsent: Sequence[Record], attempt: int) -> None:
        """Block for the backoff, returning early only on cancellation."""
        self._total_backoff_ms += delay_ms
        seconds = delay_ms / 1000.0
        if self._cancel_event is None:
            self._sleep(seconds)
            return
        if self._cancel_event.wait(seconds):
            self._raise_if_cancelled(unsent, attempt)

    def _raise_if_cancelled(self, unsent: Sequence[Record], attempts_made: int) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            error = FlushCancelledError(
                f"Flush to stream {self._stream_name} cancelled with "
                f"{len(unsent)} records undelivered",
                unsent,
            )
            error.attempt_count = attempts_made
            raise error

    def _log_event(self, level: int, event: str, **fields: Any) -> None:
        """Log a lifecycle event as structured JSON."""
        log_entry = {
            "event": event,
            "stream": self._stream_name,
            "timestamp": datetime.now(UTC).isoformat(),
            **fields,
        }
        logger.log(level, json.dumps(log_entry))


__all__ = [
    "FAILURE_CATEGORY",
    "RetryingSender",
    "SenderMetrics",
]
