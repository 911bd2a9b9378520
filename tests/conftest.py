"""Pytest configuration and fixtures for stream-sink tests."""

from __future__ import annotations

import pytest

from stream_sink.buffer.models import Record
from stream_sink.config import BackoffConfig, BufferConfig


class RecordingSleep:
    """Stand-in for time.sleep that records requested durations."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture()
def buffer_config() -> BufferConfig:
    """Thresholds from the reference scenario: 1000 bytes, 3 records, 5 s."""
    return BufferConfig(byte_limit=1000, record_limit=3, time_limit_ms=5000)


@pytest.fixture()
def backoff_config() -> BackoffConfig:
    return BackoffConfig(min_backoff_ms=100, max_backoff_ms=1000)


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def make_record():
    """Build records of a given size with a recognisable payload."""

    def _make(index: int, size: int = 10, key: str = "key") -> Record:
        prefix = f"r{index}:".encode()
        return Record(prefix + b"x" * max(0, size - len(prefix)), f"{key}-{index}")

    return _make
