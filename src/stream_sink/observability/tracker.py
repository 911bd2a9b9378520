"""Failure trackers that report failed write attempts."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import requests

from stream_sink.base import FailureTracker

logger = logging.getLogger(__name__)


class NullFailureTracker(FailureTracker):
    """Tracker that discards every notification."""

    def notify_failure(
        self,
        category: str,
        description: str,
        stream_name: str,
        attempt: int,
        byte_size: int,
    ) -> None:
        return None


class HttpFailureTracker(FailureTracker):
    """Posts failure events as JSON to an HTTP collector.

    Delivery is fire-and-forget: request errors are logged and dropped so
    that a broken collector never interferes with the write loop.

    Attributes:
        collector_url: Endpoint receiving the events.
        app_id: Application identifier attached to every event.
        timeout: Request timeout in seconds (default: 5.0).

    Example:
        >>> tracker = HttpFailureTracker("https://collector.example.com/failures")
        >>> tracker.notify_failure("PUT Failure", "timeout", "events", 1, 512)
    """

    def __init__(
        self,
        collector_url: str,
        app_id: str = "stream-sink",
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the HttpFailureTracker.

        Args:
            collector_url: Endpoint receiving the events.
            app_id: Application identifier attached to every event.
            timeout: Request timeout in seconds (default: 5.0).
            session: Session to reuse. A new one is created if omitted.
        """
        self._collector_url = collector_url
        self._app_id = app_id
        self._timeout = timeout
        self._session = session or requests.Session()
        self._sent = 0
        self._dropped = 0

    @property
    def collector_url(self) -> str:
        return self._collector_url

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def sent(self) -> int:
        """Events accepted by the collector."""
        return self._sent

    @property
    def dropped(self) -> int:
        """Events lost to request errors."""
        return self._dropped

    def build_event(
        self,
        category: str,
        description: str,
        stream_name: str,
        attempt: int,
        byte_size: int,
    ) -> dict[str, Any]:
        """Build the JSON body of a failure event."""
        return {
            "app_id": self._app_id,
            "category": category,
            "description": description,
            "stream": stream_name,
            "attempt": attempt,
            "byte_size": byte_size,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    def notify_failure(
        self,
        category: str,
        description: str,
        stream_name: str,
        attempt: int,
        byte_size: int,
    ) -> None:
        """Post one failure event, logging instead of raising on errors."""
        event = self.build_event(category, description, stream_name, attempt, byte_size)
        try:
            response = self._session.post(self._collector_url, json=event, timeout=self._timeout)
            response.raise_for_status()
        except requests.Timeout:
            self._dropped += 1
            logger.warning("Failure event to %s timed out", self._collector_url)
        except requests.RequestException as e:
            self._dropped += 1
            logger.warning("Failure event to %s failed: %s", self._collector_url, e)
        else:
            self._sent += 1

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()


__all__ = ["HttpFailureTracker", "NullFailureTracker"]
