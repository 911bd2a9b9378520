"""Failure reporting module."""

from stream_sink.observability.tracker import HttpFailureTracker, NullFailureTracker

__all__ = [
    "HttpFailureTracker",
    "NullFailureTracker",
]
