"""Delivery patterns module."""

from stream_sink.patterns.backoff import BackoffPolicy
from stream_sink.patterns.failures import (
    ErrorSummary,
    SendOutcome,
    describe,
    log_summary,
    partition,
    summarize,
)
from stream_sink.patterns.sender import (
    FAILURE_CATEGORY,
    RetryingSender,
    SenderMetrics,
)

__all__ = [
    # Backoff
    "BackoffPolicy",
    # Failures
    "ErrorSummary",
    "SendOutcome",
    "describe",
    "log_summary",
    "partition",
    "summarize",
    # Sender
    "FAILURE_CATEGORY",
    "RetryingSender",
    "SenderMetrics",
]
