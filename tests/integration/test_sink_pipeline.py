"""End-to-end tests of buffering and delivery under randomized load."""

from __future__ import annotations

import random

import pytest

from stream_sink import (
    BackoffConfig,
    BatchBuffer,
    BufferConfig,
    InMemorySubmitter,
    Record,
    SinkConfig,
    StreamSink,
)


def _random_records(rng: random.Random, count: int, max_size: int) -> list[Record]:
    return [
        Record(f"{i}:".encode() + b"x" * rng.randrange(0, max_size), f"key-{rng.randrange(8)}")
        for i in range(count)
    ]


@pytest.mark.parametrize("seed", range(20))
class TestBufferProperties:
    """Invariants that hold for any sequence of added records."""

    def test_sealed_batches_respect_thresholds_and_order(self, seed):
        rng = random.Random(seed)
        config = BufferConfig(
            byte_limit=rng.randrange(200, 2_000),
            record_limit=rng.randrange(1, 12),
            time_limit_ms=1_000,
            max_record_bytes=rng.randrange(100, 1_500),
        )
        buffer = BatchBuffer(config)
        records = _random_records(rng, 300, 1_600)

        for record in records:
            buffer.add(record)
            assert 0 <= buffer.record_count <= config.record_limit
        batches = buffer.drain_sealed()

        kept = [r for r in records if r.size < config.max_record_bytes]
        assert [r for b in batches for r in b] == kept
        assert buffer.dropped_records == len(records) - len(kept)
        assert not buffer.has_pending_work()

        for batch in batches:
            assert len(batch) <= config.record_limit
            assert all(r.size < config.max_record_bytes for r in batch)
            # Every record after the first fit under the byte limit when it was added.
            running = 0
            for index, record in enumerate(batch):
                if index > 0:
                    assert running + record.size < config.byte_limit
                running += record.size


@pytest.mark.parametrize("seed", range(10))
def test_flaky_destination_receives_everything_once(seed):
    rng = random.Random(seed)
    submitter = InMemorySubmitter(failure_rate=0.4, rng=random.Random(seed + 100))
    config = SinkConfig(
        stream_name="enriched",
        buffer=BufferConfig(byte_limit=600, record_limit=7, time_limit_ms=0, max_record_bytes=400),
        backoff=BackoffConfig(min_backoff_ms=1, max_backoff_ms=5),
    )
    sleeps: list[float] = []
    sink = StreamSink(submitter, config, rng=rng, sleep=sleeps.append)
    records = _random_records(rng, 250, 300)

    for start in range(0, len(records), 13):
        chunk = records[start : start + 13]
        if sink.store_events((r.payload, r.partition_key) for r in chunk):
            sink.flush()
    sink.flush()

    assert sorted(submitter.accepted, key=records.index) == records
    assert len(submitter.accepted) == len(records)
    assert all(0.001 <= s <= 0.005 for s in sleeps)

    metrics = sink.sender_metrics()
    assert metrics.records_sent == len(records)
    assert metrics.attempts == len(submitter.calls)


def test_each_retry_keeps_relative_order():
    """Retried subsets keep the order the records had in the sealed batch."""
    submitter = InMemorySubmitter(failure_rate=0.5, rng=random.Random(9))
    config = SinkConfig(
        "enriched",
        BufferConfig(byte_limit=100_000, record_limit=50, time_limit_ms=0),
        BackoffConfig(0, 0),
    )
    sink = StreamSink(submitter, config, sleep=lambda _: None)
    payloads = [f"event-{i:03d}".encode() for i in range(50)]

    sink.store_events((p, "k") for p in payloads)
    sink.flush()

    for call in submitter.calls:
        sent = [r.payload for r in call]
        assert sent == sorted(sent)
    assert len(submitter.calls) > 1
