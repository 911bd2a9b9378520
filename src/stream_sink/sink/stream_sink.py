"""Buffered, retrying sink that writes records to a partitioned stream."""

from __future__ import annotations

import logging
import random
import threading
import time
from collections.abc import Callable, Iterable
from typing import Any, Self

from stream_sink.base import FailureTracker, StreamValidator, Submitter
from stream_sink.buffer.batch_buffer import BatchBuffer
from stream_sink.buffer.models import BufferMetrics, Record
from stream_sink.config import SinkConfig
from stream_sink.patterns.backoff import BackoffPolicy
from stream_sink.patterns.sender import RetryingSender, SenderMetrics
from stream_sink.sink.kinesis import KinesisSubmitter, check_buffer_limits

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.time() * 1000.0


class StreamSink:
    """Sink that batches events and delivers them with retry on flush.

    Events are packed into batches by byte size and record count as they are
    stored. ``store_events`` tells the caller when a flush is due (the time
    limit elapsed with records waiting, or batches already sealed), and
    ``flush`` blocks until every stored record has been accepted by the
    destination.

    The destination is validated once during construction; a stream that is
    missing or not writable raises StreamNotWritableError and the sink is
    never usable.

    A sink is meant to be owned by a single thread. Callers driving it from
    several workers must serialize access themselves.

    Args:
        submitter: Remote put-batch collaborator.
        config: Thresholds, backoff bounds and stream name.
        validator: Precondition check. Defaults to the submitter when it
            implements ``validate``.
        tracker: Failure tracker. Defaults to a no-op tracker.
        rng: Random source for backoff jitter.
        clock: Returns the current time in milliseconds.
        sleep: Blocking sleep taking seconds.
        cancel_event: Event that aborts an in-progress flush between attempts.

    Example:
        ```python
        config = SinkConfig("enriched", BufferConfig(byte_limit=4_500_000, record_limit=500, time_limit_ms=5000))
        with StreamSink(KinesisSubmitter("enriched"), config) as sink:
            if sink.store_events([(b'{"id": 1}', "user-1")]):
                sink.flush()
        ```
    """

    def __init__(
        self,
        submitter: Submitter,
        config: SinkConfig,
        *,
        validator: StreamValidator | None = None,
        tracker: FailureTracker | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = _now_ms,
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: threading.Event | None = None,
    ) -> None:
        if validator is None and isinstance(submitter, StreamValidator):
            validator = submitter
        if validator is not None:
            validator.validate()

        self._config = config
        self._clock = clock
        self._buffer = BatchBuffer(config.buffer)
        self._sender = RetryingSender(
            submitter,
            config.stream_name,
            BackoffPolicy(config.backoff, rng=rng),
            tracker,
            max_attempts=config.max_attempts,
            sleep=sleep,
            cancel_event=cancel_event,
        )

    @classmethod
    def for_kinesis(
        cls,
        config: SinkConfig,
        *,
        region_name: str | None = None,
        endpoint_url: str | None = None,
        client: Any = None,
        tracker: FailureTracker | None = None,
    ) -> StreamSink:
        """Build a sink writing to the Kinesis stream named in ``config``.

        Raises:
            ConfigurationError: If the buffer thresholds allow batches larger
                than one PutRecords call accepts.
            StreamNotWritableError: If the stream is missing or not writable.
        """
        check_buffer_limits(config.buffer)
        submitter = KinesisSubmitter(
            config.stream_name,
            client=client,
            region_name=region_name,
            endpoint_url=endpoint_url,
        )
        return cls(submitter, config, tracker=tracker)

    @property
    def config(self) -> SinkConfig:
        return self._config

    @property
    def buffer(self) -> BatchBuffer:
        return self._buffer

    @property
    def sender(self) -> RetryingSender:
        return self._sender

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Flush remaining records unless the block raised."""
        if exc_type is None:
            self.close()

    def store_events(self, events: Iterable[tuple[bytes | str, str]]) -> bool:
        """Buffer events and report whether a flush is due.

        Args:
            events: ``(payload, partition_key)`` pairs in arrival order. Text
                payloads are UTF-8 encoded.

        Returns:
            bool: True when the caller should call ``flush`` now.
        """
        for payload, partition_key in events:
            self._buffer.add(Record.from_event(payload, partition_key))
        return self._buffer.should_flush_now(self._clock())

    def flush(self) -> None:
        """Send every stored record, blocking until all are accepted.

        Raises:
            FatalSinkError: On an unrecoverable submit error.
            UndeliveredRecordsError: If the attempt ceiling was reached or the
                flush was cancelled.

            Both carry the records that were not delivered in ``undelivered``,
            in their original order, so they can be stored again.
        """
        batches = self._buffer.drain_sealed()
        non_empty = [b for b in batches if not b.is_empty]
        if not non_empty:
            return
        logger.info(
            "Flushing %d batches (%d records) to stream %s",
            len(non_empty),
            sum(len(b) for b in non_empty),
            self._config.stream_name,
        )
        self._sender.send_all(non_empty)

    def close(self) -> None:
        """Flush anything still buffered."""
        self.flush()

    def buffer_metrics(self) -> BufferMetrics:
        return self._buffer.metrics()

    def sender_metrics(self) -> SenderMetrics:
        return self._sender.get_metrics()


__all__ = ["StreamSink"]
