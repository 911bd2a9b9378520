"""Domain models for buffered records and batches.

This module defines the immutable data structures that flow from the buffer
to the sender.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Record:
    """A single payload bound for the destination stream.

    Attributes:
        payload: Raw bytes written to the stream.
        partition_key: Key that decides which shard receives the record.
    """

    payload: bytes
    partition_key: str

    @property
    def size(self) -> int:
        """Size of the record in bytes (the payload length)."""
        return len(self.payload)

    @classmethod
    def from_event(cls, payload: bytes | str, partition_key: str) -> Record:
        """Build a Record from an event, UTF-8 encoding text payloads."""
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        return cls(payload=payload, partition_key=partition_key)


@dataclass(frozen=True, slots=True)
class Batch:
    """An ordered, sealed group of records sent in one submit call.

    Records keep the order in which they were added to the buffer.
    """

    records: tuple[Record, ...] = ()

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    @property
    def is_empty(self) -> bool:
        return not self.records

    @property
    def byte_size(self) -> int:
        """Total payload bytes of the batch."""
        return sum(r.size for r in self.records)


@dataclass(frozen=True, slots=True)
class BufferMetrics:
    """Point-in-time view of a BatchBuffer.

    Attributes:
        byte_count: Bytes in the current batch.
        record_count: Records in the current batch.
        sealed_batches: Sealed batches waiting for a flush.
        dropped_records: Oversized records rejected since creation.
    """

    byte_count: int
    record_count: int
    sealed_batches: int
    dropped_records: int


__all__ = ["Batch", "BufferMetrics", "Record"]
