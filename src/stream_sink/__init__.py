"""Stream Sink.

Buffered, retrying writer that packs pipeline records into bounded batches
and delivers them to a partitioned append-only stream.
"""

from stream_sink.base import FailureTracker, StreamValidator, Submitter
from stream_sink.buffer import Batch, BatchBuffer, Record
from stream_sink.config import BackoffConfig, BufferConfig, SinkConfig
from stream_sink.errors import (
    ConfigurationError,
    FatalSinkError,
    FlushCancelledError,
    RetryExhaustedError,
    StreamNotWritableError,
    StreamSinkError,
)
from stream_sink.patterns import BackoffPolicy, RetryingSender, SendOutcome
from stream_sink.sink import InMemorySubmitter, KinesisSubmitter, StreamSink

__version__ = "0.1.0"

__all__ = [
    "BackoffConfig",
    "BackoffPolicy",
    "Batch",
    "BatchBuffer",
    "BufferConfig",
    "ConfigurationError",
    "FailureTracker",
    "FatalSinkError",
    "FlushCancelledError",
    "InMemorySubmitter",
    "KinesisSubmitter",
    "Record",
    "RetryExhaustedError",
    "RetryingSender",
    "SendOutcome",
    "SinkConfig",
    "StreamNotWritableError",
    "StreamSink",
    "StreamSinkError",
    "StreamValidator",
    "Submitter",
]
