"""Configuration for the stream sink.

All sizes are in bytes and all durations in milliseconds. Each config class
can be built from environment variables via ``from_env``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from stream_sink.errors import ConfigurationError

# Destination hard limit on a single record's payload.
DEFAULT_MAX_RECORD_BYTES = 1_000_000


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True, slots=True)
class BufferConfig:
    """Thresholds that decide when the current batch is sealed.

    Attributes:
        byte_limit: Byte size a batch may not reach before the next record
            starts a new batch.
        record_limit: Maximum number of records per batch.
        time_limit_ms: Minimum interval between time-triggered flushes.
        max_record_bytes: Records this size or larger are dropped.
    """

    byte_limit: int
    record_limit: int
    time_limit_ms: int
    max_record_bytes: int = DEFAULT_MAX_RECORD_BYTES

    def __post_init__(self) -> None:
        if self.byte_limit <= 0:
            raise ConfigurationError("byte_limit must be > 0")
        if self.record_limit <= 0:
            raise ConfigurationError("record_limit must be > 0")
        if self.time_limit_ms < 0:
            raise ConfigurationError("time_limit_ms must be >= 0")
        if self.max_record_bytes <= 0:
            raise ConfigurationError("max_record_bytes must be > 0")

    @classmethod
    def from_env(cls, prefix: str = "STREAM_SINK") -> BufferConfig:
        """Build a BufferConfig from ``{prefix}_*`` environment variables."""
        return cls(
            byte_limit=_env_int(f"{prefix}_BYTE_LIMIT", 4_500_000),
            record_limit=_env_int(f"{prefix}_RECORD_LIMIT", 500),
            time_limit_ms=_env_int(f"{prefix}_TIME_LIMIT_MS", 5_000),
            max_record_bytes=_env_int(f"{prefix}_MAX_RECORD_BYTES", DEFAULT_MAX_RECORD_BYTES),
        )


@dataclass(frozen=True, slots=True)
class BackoffConfig:
    """Bounds for the retry backoff.

    Attributes:
        min_backoff_ms: First delay and lower bound of every jittered delay.
            Zero is only allowed together with a zero ceiling.
        max_backoff_ms: Ceiling applied to every delay.
    """

    min_backoff_ms: int = 100
    max_backoff_ms: int = 10_000

    def __post_init__(self) -> None:
        if self.min_backoff_ms < 0:
            raise ConfigurationError("min_backoff_ms must be >= 0")
        if self.max_backoff_ms < self.min_backoff_ms:
            raise ConfigurationError("max_backoff_ms must be >= min_backoff_ms")
        if self.min_backoff_ms == 0 and self.max_backoff_ms > 0:
            # A zero floor keeps every jittered delay at zero.
            raise ConfigurationError("min_backoff_ms must be > 0 when max_backoff_ms > 0")

    @classmethod
    def from_env(cls, prefix: str = "STREAM_SINK") -> BackoffConfig:
        """Build a BackoffConfig from ``{prefix}_*`` environment variables."""
        return cls(
            min_backoff_ms=_env_int(f"{prefix}_MIN_BACKOFF_MS", 100),
            max_backoff_ms=_env_int(f"{prefix}_MAX_BACKOFF_MS", 10_000),
        )


@dataclass(frozen=True, slots=True)
class SinkConfig:
    """Complete configuration of one sink instance.

    Attributes:
        stream_name: Destination stream, used in logs and failure events.
        buffer: Batch sealing thresholds.
        backoff: Retry backoff bounds.
        max_attempts: Attempt ceiling per batch. None retries forever.
    """

    stream_name: str
    buffer: BufferConfig
    backoff: BackoffConfig = field(default_factory=BackoffConfig)
    max_attempts: int | None = None

    def __post_init__(self) -> None:
        if not self.stream_name:
            raise ConfigurationError("stream_name must not be empty")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ConfigurationError("max_attempts must be >= 1 or None")

    @classmethod
    def from_env(cls, prefix: str = "STREAM_SINK") -> SinkConfig:
        """Build a SinkConfig from ``{prefix}_*`` environment variables.

        ``{prefix}_MAX_ATTEMPTS`` unset or ``0`` means retry forever.
        """
        max_attempts = _env_int(f"{prefix}_MAX_ATTEMPTS", 0)
        return cls(
            stream_name=os.getenv(f"{prefix}_STREAM_NAME", ""),
            buffer=BufferConfig.from_env(prefix),
            backoff=BackoffConfig.from_env(prefix),
            max_attempts=max_attempts or None,
        )


__all__ = [
    "DEFAULT_MAX_RECORD_BYTES",
    "BackoffConfig",
    "BufferConfig",
    "SinkConfig",
]
