"""Tests for the boto3-backed KinesisSubmitter."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, NoCredentialsError, ReadTimeoutError

from stream_sink.base import StreamValidator, Submitter
from stream_sink.buffer.models import Record
from stream_sink.config import BufferConfig
from stream_sink.errors import ConfigurationError, StreamNotWritableError
from stream_sink.sink.kinesis import (
    MAX_BYTES_PER_CALL,
    MAX_RECORDS_PER_CALL,
    KinesisSubmitter,
    check_buffer_limits,
)


def _client_error(code: str, operation: str = "PutRecords") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} happened"}}, operation)


@pytest.fixture()
def mock_client() -> MagicMock:
    return MagicMock()


class TestKinesisSubmitterProtocol:
    def test_implements_protocols(self, mock_client):
        submitter = KinesisSubmitter("events", client=mock_client)
        assert isinstance(submitter, Submitter)
        assert isinstance(submitter, StreamValidator)

    def test_default_timeout(self):
        assert KinesisSubmitter("events").timeout == 10.0

    def test_lazy_client_uses_timeouts_and_single_attempt(self):
        with patch("stream_sink.sink.kinesis.boto3") as mock_boto3:
            submitter = KinesisSubmitter("events", region_name="eu-west-1")
            mock_boto3.client.assert_not_called()

            client = submitter.client

        assert client is mock_boto3.client.return_value
        _, kwargs = mock_boto3.client.call_args
        assert mock_boto3.client.call_args.args == ("kinesis",)
        assert kwargs["region_name"] == "eu-west-1"
        config = kwargs["config"]
        assert config.read_timeout == 10.0
        assert config.connect_timeout == 10.0
        assert config.retries["total_max_attempts"] == 1


class TestKinesisSubmitterValidate:
    """Tests for the stream precondition check."""

    @pytest.mark.parametrize("status", ["ACTIVE", "UPDATING"])
    def test_writable_statuses(self, mock_client, status):
        mock_client.describe_stream_summary.return_value = {
            "StreamDescriptionSummary": {"StreamStatus": status}
        }
        KinesisSubmitter("events", client=mock_client).validate()
        mock_client.describe_stream_summary.assert_called_once_with(StreamName="events")

    @pytest.mark.parametrize("status", ["CREATING", "DELETING"])
    def test_unwritable_statuses(self, mock_client, status):
        mock_client.describe_stream_summary.return_value = {
            "StreamDescriptionSummary": {"StreamStatus": status}
        }
        with pytest.raises(StreamNotWritableError, match=status):
            KinesisSubmitter("events", client=mock_client).validate()

    def test_missing_stream(self, mock_client):
        mock_client.describe_stream_summary.side_effect = _client_error(
            "ResourceNotFoundException", "DescribeStreamSummary"
        )
        with pytest.raises(StreamNotWritableError, match="ResourceNotFoundException"):
            KinesisSubmitter("events", client=mock_client).validate()

    @pytest.mark.parametrize(
        "error",
        [
            NoCredentialsError(),
            EndpointConnectionError(endpoint_url="https://kinesis.eu-west-1.amazonaws.com"),
        ],
    )
    def test_botocore_errors_mean_not_writable(self, mock_client, error):
        mock_client.describe_stream_summary.side_effect = error

        with pytest.raises(StreamNotWritableError, match="events") as exc_info:
            KinesisSubmitter("events", client=mock_client).validate()

        assert exc_info.value.__cause__ is error


class TestCheckBufferLimits:
    """Tests for the PutRecords per-call limit check."""

    def test_accepts_limits_at_the_boundary(self):
        check_buffer_limits(
            BufferConfig(
                byte_limit=MAX_BYTES_PER_CALL,
                record_limit=MAX_RECORDS_PER_CALL,
                time_limit_ms=5000,
            )
        )

    def test_rejects_too_many_records(self):
        config = BufferConfig(byte_limit=4_500_000, record_limit=1000, time_limit_ms=5000)
        with pytest.raises(ConfigurationError, match="record_limit"):
            check_buffer_limits(config)

    def test_rejects_too_many_bytes(self):
        config = BufferConfig(
            byte_limit=MAX_BYTES_PER_CALL + 1, record_limit=500, time_limit_ms=5000
        )
        with pytest.raises(ConfigurationError, match="byte_limit"):
            check_buffer_limits(config)


class TestKinesisSubmitterSubmit:
    """Tests for PutRecords mapping."""

    def test_maps_records_and_outcomes(self, mock_client):
        mock_client.put_records.return_value = {
            "FailedRecordCount": 1,
            "Records": [
                {"SequenceNumber": "1", "ShardId": "shardId-000"},
                {
                    "ErrorCode": "ProvisionedThroughputExceededException",
                    "ErrorMessage": "Rate exceeded for shard shardId-000",
                },
            ],
        }
        records = [Record(b"one", "k1"), Record(b"two", "k2")]

        outcomes = KinesisSubmitter("events", client=mock_client).submit(records)

        mock_client.put_records.assert_called_once_with(
            StreamName="events",
            Records=[
                {"Data": b"one", "PartitionKey": "k1"},
                {"Data": b"two", "PartitionKey": "k2"},
            ],
        )
        assert outcomes[0].succeeded
        assert outcomes[1].error_code == "ProvisionedThroughputExceededException"
        assert outcomes[1].error_message == "Rate exceeded for shard shardId-000"

    @pytest.mark.parametrize("code", ["ResourceNotFoundException", "AccessDeniedException"])
    def test_unusable_stream_is_fatal(self, mock_client, code):
        mock_client.put_records.side_effect = _client_error(code)
        with pytest.raises(StreamNotWritableError):
            KinesisSubmitter("events", client=mock_client).submit([Record(b"a", "k")])

    def test_throttling_error_is_transient(self, mock_client):
        error = _client_error("ProvisionedThroughputExceededException")
        mock_client.put_records.side_effect = error
        with pytest.raises(ClientError) as exc_info:
            KinesisSubmitter("events", client=mock_client).submit([Record(b"a", "k")])
        assert exc_info.value is error

    def test_timeout_propagates(self, mock_client):
        mock_client.put_records.side_effect = ReadTimeoutError(endpoint_url="https://kinesis")
        with pytest.raises(ReadTimeoutError):
            KinesisSubmitter("events", client=mock_client).submit([Record(b"a", "k")])
