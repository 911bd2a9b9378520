"""Amazon Kinesis Data Streams submitter using boto3."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from stream_sink.base import StreamValidator, Submitter
from stream_sink.buffer.models import Record
from stream_sink.config import BufferConfig
from stream_sink.errors import ConfigurationError, StreamNotWritableError
from stream_sink.patterns.failures import SendOutcome

logger = logging.getLogger(__name__)

# PutRecords limits
MAX_RECORDS_PER_CALL = 500
MAX_BYTES_PER_CALL = 5 * 1024 * 1024

SUBMIT_TIMEOUT_SECONDS = 10.0

WRITABLE_STATUSES = frozenset({"ACTIVE", "UPDATING"})

# Error codes that mean the stream itself is unusable; retrying cannot help.
_FATAL_ERROR_CODES = frozenset(
    {"ResourceNotFoundException", "ValidationException", "AccessDeniedException"}
)


def check_buffer_limits(config: BufferConfig) -> None:
    """Reject thresholds that would seal batches PutRecords cannot take.

    Raises:
        ConfigurationError: If ``record_limit`` or ``byte_limit`` exceeds the
            per-call limits.
    """
    if config.record_limit > MAX_RECORDS_PER_CALL:
        raise ConfigurationError(
            f"record_limit {config.record_limit} exceeds the PutRecords limit "
            f"of {MAX_RECORDS_PER_CALL} records"
        )
    if config.byte_limit > MAX_BYTES_PER_CALL:
        raise ConfigurationError(
            f"byte_limit {config.byte_limit} exceeds the PutRecords limit "
            f"of {MAX_BYTES_PER_CALL} bytes"
        )


def _client_config(timeout: float) -> Config:
    # The sender owns retries, so botocore makes exactly one attempt per call.
    return Config(
        connect_timeout=timeout,
        read_timeout=timeout,
        retries={"total_max_attempts": 1, "mode": "standard"},
    )


class KinesisSubmitter(Submitter, StreamValidator):
    """Writes batches with one ``PutRecords`` call each.

    Per-record rejections (throttling, internal shard failures) come back as
    failed outcomes. Timeouts and connection errors raise and are retried by
    the sender as whole-call failures. A missing or forbidden stream raises
    StreamNotWritableError, which aborts the flush.

    Attributes:
        stream_name: Destination stream.
        timeout: Connect and read timeout per call in seconds (default: 10.0).

    Example:
        >>> submitter = KinesisSubmitter("enriched-events", region_name="eu-west-1")
        >>> submitter.validate()
        >>> outcomes = submitter.submit([Record(b"{}", "user-1")])
    """

    def __init__(
        self,
        stream_name: str,
        client: Any = None,
        region_name: str | None = None,
        endpoint_url: str | None = None,
        timeout: float = SUBMIT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the KinesisSubmitter.

        Args:
            stream_name: Destination stream.
            client: Preconfigured boto3 Kinesis client. Built lazily if omitted.
            region_name: AWS region for the lazily built client.
            endpoint_url: Endpoint override, e.g. for LocalStack.
            timeout: Connect and read timeout per call in seconds.
        """
        self._stream_name = stream_name
        self._client = client
        self._region_name = region_name
        self._endpoint_url = endpoint_url
        self._timeout = timeout

    @property
    def stream_name(self) -> str:
        return self._stream_name

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def client(self) -> Any:
        """Lazily initialize the Kinesis client."""
        if self._client is None:
            self._client = boto3.client(
                "kinesis",
                region_name=self._region_name,
                endpoint_url=self._endpoint_url,
                config=_client_config(self._timeout),
            )
        return self._client

    def validate(self) -> None:
        """Check that the stream exists and is ACTIVE or UPDATING.

        Raises:
            StreamNotWritableError: If the stream is missing, inaccessible or
                in any other status.
        """
        try:
            response = self.client.describe_stream_summary(StreamName=self._stream_name)
        except ClientError as e:
            raise StreamNotWritableError(self._stream_name, _error_text(e)) from e
        except BotoCoreError as e:
            raise StreamNotWritableError(self._stream_name, str(e)) from e

        status = response["StreamDescriptionSummary"]["StreamStatus"]
        if status not in WRITABLE_STATUSES:
            raise StreamNotWritableError(self._stream_name, f"stream status is {status}")
        logger.info("Kinesis stream %s is %s", self._stream_name, status)

    def submit(self, records: Sequence[Record]) -> list[SendOutcome]:
        """Send records in a single PutRecords call.

        Args:
            records: Records to write, in order.

        Returns:
            One outcome per record, aligned with ``records``.

        Raises:
            StreamNotWritableError: If the stream is missing or access is denied.
            botocore.exceptions.ClientError: For other service errors.
            botocore.exceptions.BotoCoreError: For timeouts and connection errors.
        """
        entries = [{"Data": r.payload, "PartitionKey": r.partition_key} for r in records]
        try:
            response = self.client.put_records(StreamName=self._stream_name, Records=entries)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _FATAL_ERROR_CODES:
                raise StreamNotWritableError(self._stream_name, _error_text(e)) from e
            raise

        return [_to_outcome(entry) for entry in response["Records"]]


def _to_outcome(entry: dict[str, Any]) -> SendOutcome:
    error_code = entry.get("ErrorCode")
    if error_code is None:
        return SendOutcome.success()
    return SendOutcome.failure(error_code, entry.get("ErrorMessage") or "")


def _error_text(error: ClientError) -> str:
    details = error.response.get("Error", {})
    code = details.get("Code", "Unknown")
    message = details.get("Message", str(error))
    return f"{code}: {message}"


__all__ = [
    "MAX_BYTES_PER_CALL",
    "MAX_RECORDS_PER_CALL",
    "SUBMIT_TIMEOUT_SECONDS",
    "KinesisSubmitter",
    "check_buffer_limits",
]
