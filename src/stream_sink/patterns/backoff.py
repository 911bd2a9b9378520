"""Jittered multiplicative backoff for batch resubmission."""

from __future__ import annotations

import random

from stream_sink.config import BackoffConfig


class BackoffPolicy:
    """
    Backoff policy with roughly 3x growth and full jitter.

    Each delay is drawn uniformly between ``min_backoff_ms`` and three times
    the previous delay, then capped at ``max_backoff_ms``.

    Formula:
        delay = min(max_backoff, min_backoff + U[0, 1) × (3 × last_delay − min_backoff))

    The policy holds no per-loop state; the caller threads ``last_delay_ms``
    through its own retry loop so that each batch starts over at
    ``initial_delay_ms``. There is no attempt limit here.

    Args:
        config: Backoff bounds.
        rng: Random source. Defaults to a private ``random.Random``.

    Example:
        ```python
        policy = BackoffPolicy(BackoffConfig(min_backoff_ms=100, max_backoff_ms=1000))
        delay = policy.initial_delay_ms
        delay = policy.next_delay(delay)  # somewhere in [100, 300]
        ```
    """

    def __init__(self, config: BackoffConfig | None = None, rng: random.Random | None = None) -> None:
        self._config = config or BackoffConfig()
        self._rng = rng or random.Random()

    @property
    def min_backoff_ms(self) -> int:
        """Lower bound of every delay in milliseconds."""
        return self._config.min_backoff_ms

    @property
    def max_backoff_ms(self) -> int:
        """Ceiling of every delay in milliseconds."""
        return self._config.max_backoff_ms

    @property
    def initial_delay_ms(self) -> int:
        """Delay a fresh retry loop starts from."""
        return self._config.min_backoff_ms

    def next_delay(self, last_delay_ms: float) -> float:
        """Calculate the next delay from the previous one.

        Args:
            last_delay_ms: The delay used before the previous attempt.

        Returns:
            float: Next delay in milliseconds, within
            ``[min_backoff_ms, max_backoff_ms]``.
        """
        min_ms = self._config.min_backoff_ms
        offset = self._rng.random() * (last_delay_ms * 3 - min_ms)
        return float(min(min_ms + offset, self._config.max_backoff_ms))


__all__ = ["BackoffPolicy"]
