"""Tests for failure partitioning and aggregation."""

from __future__ import annotations

import logging

from stream_sink.patterns.failures import (
    ErrorSummary,
    SendOutcome,
    byte_size,
    describe,
    log_summary,
    partition,
    summarize,
)


class TestSendOutcome:
    def test_success(self):
        assert SendOutcome.success().succeeded

    def test_failure(self):
        outcome = SendOutcome.failure("InternalFailure", "boom")
        assert not outcome.succeeded
        assert outcome.error_code == "InternalFailure"


class TestPartition:
    """Tests for the order-preserving split."""

    def test_partition_preserves_order(self, make_record):
        records = [make_record(i) for i in range(6)]
        outcomes = [
            SendOutcome.success(),
            SendOutcome.failure("A", "a1"),
            SendOutcome.success(),
            SendOutcome.failure("B", "b1"),
            SendOutcome.failure("A", "a2"),
            SendOutcome.success(),
        ]

        succeeded, failed = partition(zip(records, outcomes))

        assert succeeded == [records[0], records[2], records[5]]
        assert [r for r, _ in failed] == [records[1], records[3], records[4]]
        assert [o.error_code for _, o in failed] == ["A", "B", "A"]

    def test_partition_empty(self):
        assert partition([]) == ([], [])


class TestSummarize:
    """Tests for per-code counting."""

    def test_counts_and_keeps_latest_message(self):
        summary = summarize(
            [
                SendOutcome.failure("Throttled", "first"),
                SendOutcome.failure("Internal", "only"),
                SendOutcome.failure("Throttled", "second"),
                SendOutcome.failure("Throttled", "third"),
            ]
        )

        assert summary == {
            "Throttled": ErrorSummary(count=3, sample_message="third"),
            "Internal": ErrorSummary(count=1, sample_message="only"),
        }

    def test_summarize_empty(self):
        assert summarize([]) == {}

    def test_describe(self):
        summary = {
            "Throttled": ErrorSummary(3, "x"),
            "Internal": ErrorSummary(1, "y"),
        }
        assert describe(summary) == "Failed to send 4 events: Throttledx3, Internalx1"

    def test_log_summary_emits_one_line_per_code(self, caplog):
        logger = logging.getLogger("test.failures")
        summary = {"Throttled": ErrorSummary(2, "Rate exceeded")}

        with caplog.at_level(logging.ERROR, logger="test.failures"):
            log_summary(summary, logger)

        assert caplog.messages == [
            "2 records failed with error code Throttled. Example error message: Rate exceeded"
        ]


def test_byte_size(make_record):
    assert byte_size([make_record(1, 10), make_record(2, 32)]) == 42
