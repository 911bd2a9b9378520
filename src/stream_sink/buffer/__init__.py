"""Record buffering and batch sealing."""

from stream_sink.buffer.batch_buffer import BatchBuffer
from stream_sink.buffer.models import Batch, BufferMetrics, Record

__all__ = [
    "Batch",
    "BatchBuffer",
    "BufferMetrics",
    "Record",
]
