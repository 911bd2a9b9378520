"""Sink facade and submitter implementations."""

from stream_sink.sink.kinesis import KinesisSubmitter
from stream_sink.sink.memory import InMemorySubmitter
from stream_sink.sink.stream_sink import StreamSink

__all__ = [
    "InMemorySubmitter",
    "KinesisSubmitter",
    "StreamSink",
]
