"""In-memory submitter with scripted failures.

Useful for tests, local development and benchmarks: every call is recorded
and failures can be scripted per call or drawn at random.
"""

from __future__ import annotations

import random
from collections import deque
from collections.abc import Iterable, Sequence

from stream_sink.base import StreamValidator, Submitter
from stream_sink.buffer.models import Record
from stream_sink.errors import StreamNotWritableError
from stream_sink.patterns.failures import SendOutcome

# A scripted step: positions to reject, an exception to raise, or None for success.
ScriptStep = Iterable[int] | BaseException | None


class InMemorySubmitter(Submitter, StreamValidator):
    """Submitter that stores accepted records in memory.

    Args:
        script: Per-call behaviour, consumed one step per submit call. Once
            exhausted, calls fall back to ``failure_rate``.
        failure_rate: Probability that any single record is rejected.
        error_code: Error code attached to rejected records.
        stream_name: Name reported by ``validate``.
        writable: Whether ``validate`` passes.
        rng: Random source for ``failure_rate``.

    Example:
        >>> submitter = InMemorySubmitter(script=[{1}])
        >>> outcomes = submitter.submit([Record(b"a", "k"), Record(b"b", "k")])
        >>> [o.succeeded for o in outcomes]
        [True, False]
    """

    def __init__(
        self,
        script: Iterable[ScriptStep] = (),
        *,
        failure_rate: float = 0.0,
        error_code: str = "ProvisionedThroughputExceededException",
        stream_name: str = "memory",
        writable: bool = True,
        rng: random.Random | None = None,
    ) -> None:
        if not 0.0 <= failure_rate < 1.0:
            raise ValueError("failure_rate must be in [0, 1)")
        self._script: deque[ScriptStep] = deque(script)
        self._failure_rate = failure_rate
        self._error_code = error_code
        self._stream_name = stream_name
        self._writable = writable
        self._rng = rng or random.Random()
        self.calls: list[list[Record]] = []
        self.accepted: list[Record] = []

    def validate(self) -> None:
        if not self._writable:
            raise StreamNotWritableError(self._stream_name, "stream is not writable")

    def submit(self, records: Sequence[Record]) -> list[SendOutcome]:
        self.calls.append(list(records))
        step = self._script.popleft() if self._script else None

        if isinstance(step, BaseException):
            raise step

        rejected = set(step) if step is not None else self._draw_rejections(len(records))
        outcomes: list[SendOutcome] = []
        for index, record in enumerate(records):
            if index in rejected:
                outcomes.append(
                    SendOutcome.failure(self._error_code, f"Rate exceeded for record {index}")
                )
            else:
                self.accepted.append(record)
                outcomes.append(SendOutcome.success())
        return outcomes

    def _draw_rejections(self, count: int) -> set[int]:
        if self._failure_rate == 0.0:
            return set()
        return {i for i in range(count) if self._rng.random() < self._failure_rate}


__all__ = ["InMemorySubmitter", "ScriptStep"]
