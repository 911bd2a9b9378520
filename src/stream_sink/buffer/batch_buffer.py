"""Threshold-driven record buffer that packs records into sealed batches."""

from __future__ import annotations

import logging
from collections import deque

from stream_sink.buffer.models import Batch, BufferMetrics, Record
from stream_sink.config import BufferConfig

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 200


class BatchBuffer:
    """Accumulates records and seals them into batches on three thresholds.

    A batch is sealed when:

    - the next record would bring its byte total to ``byte_limit`` or more
      (the batch is sealed *before* that record is added, so the record
      starts a fresh batch);
    - it reaches ``record_limit`` records (sealed right after the add);
    - a flush drains it.

    Time is handled by ``should_flush_now``, which tells the caller when a
    time-triggered flush is due. Records of ``max_record_bytes`` or more are
    dropped on arrival and never stored.

    The buffer is not synchronized. One execution context must own it.

    Args:
        config: Sealing thresholds.

    Example:
        ```python
        buffer = BatchBuffer(BufferConfig(byte_limit=1000, record_limit=3, time_limit_ms=5000))
        buffer.add(Record(b"payload", "key"))
        batches = buffer.drain_sealed()
        ```
    """

    def __init__(self, config: BufferConfig) -> None:
        self._config = config
        self._current: list[Record] = []
        self._sealed: deque[Batch] = deque()
        self._byte_count = 0
        self._record_count = 0
        self._next_flush_deadline_ms = 0.0
        self._dropped_records = 0

    @property
    def config(self) -> BufferConfig:
        return self._config

    @property
    def byte_count(self) -> int:
        """Bytes in the current (unsealed) batch."""
        return self._byte_count

    @property
    def record_count(self) -> int:
        """Records in the current (unsealed) batch."""
        return self._record_count

    @property
    def sealed_count(self) -> int:
        """Sealed batches awaiting a flush."""
        return len(self._sealed)

    @property
    def dropped_records(self) -> int:
        """Oversized records dropped since the buffer was created."""
        return self._dropped_records

    def add(self, record: Record) -> None:
        """Add a record, sealing the current batch when a threshold trips.

        Args:
            record: Record to buffer. Oversized records are logged and dropped.
        """
        size = record.size
        if size >= self._config.max_record_bytes:
            self._dropped_records += 1
            preview = record.payload[:_PREVIEW_CHARS].decode("utf-8", errors="replace")
            logger.error(
                "Dropping record with size %d bytes (limit %d): [%s]",
                size,
                self._config.max_record_bytes,
                preview,
            )
            return

        if self._byte_count + size >= self._config.byte_limit:
            self.seal()

        self._current.append(record)
        self._byte_count += size
        self._record_count += 1

        if self._record_count == self._config.record_limit:
            self.seal()

    def seal(self) -> None:
        """Finish the current batch and queue it behind earlier sealed batches."""
        self._sealed.append(Batch(tuple(self._current)))
        self._current = []
        self._byte_count = 0
        self._record_count = 0

    def has_pending_work(self) -> bool:
        """Whether anything is buffered, sealed or not."""
        return bool(self._current) or bool(self._sealed)

    def drain_sealed(self) -> list[Batch]:
        """Seal the current batch and hand over every sealed batch, oldest first.

        The buffer is empty afterwards.

        Returns:
            Sealed batches in the order they were sealed. May contain empty
            batches, which senders skip.
        """
        self.seal()
        batches = list(self._sealed)
        self.clear()
        return batches

    def clear(self) -> None:
        """Discard all buffered state."""
        self._sealed.clear()
        self._current = []
        self._byte_count = 0
        self._record_count = 0

    def should_flush_now(self, now_ms: float) -> bool:
        """Check whether the caller should flush, advancing the time deadline.

        When the current batch holds records and ``now_ms`` is past the
        deadline, the deadline moves to ``now_ms + time_limit_ms`` and True is
        returned. Otherwise True is returned only if sealed batches are
        already waiting.

        Args:
            now_ms: Current wall-clock time in milliseconds.

        Returns:
            bool: True if a flush is due.
        """
        if self._current and now_ms > self._next_flush_deadline_ms:
            self._next_flush_deadline_ms = now_ms + self._config.time_limit_ms
            return True
        return bool(self._sealed)

    def metrics(self) -> BufferMetrics:
        """Snapshot of the buffer counters."""
        return BufferMetrics(
            byte_count=self._byte_count,
            record_count=self._record_count,
            sealed_batches=len(self._sealed),
            dropped_records=self._dropped_records,
        )
