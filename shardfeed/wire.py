"""Encoding of the stream service operations, their results and errors as JSON documents."""

import base64
import binascii
from typing import Any

from .constants import (
    EXPIRED_CURSOR_ERROR,
    INTERNAL_FAILURE_ERROR,
    THROUGHPUT_EXCEEDED_ERROR,
    TARGET_PREFIX,
)
from .errors import ExpiredCursor, StreamError, ThroughputExceeded, TransportError
from .record import Record
from .service import FetchResult, PartitionPage
from .split import Partition

ERROR_TYPES: dict[str, type[StreamError]] = {
    EXPIRED_CURSOR_ERROR: ExpiredCursor,
    THROUGHPUT_EXCEEDED_ERROR: ThroughputExceeded,
}


def target(operation: str) -> str:
    """Return the value of the target header selecting the given operation."""
    return f"{TARGET_PREFIX}.{operation}"


def operation_from_target(value: str | None) -> str | None:
    """Return the operation a target header value selects, or None if it has the wrong prefix."""
    if not value:
        return None
    prefix, _, operation = value.partition(".")
    if prefix != TARGET_PREFIX or not operation:
        return None
    return operation


def encode_record(record: Record) -> dict[str, Any]:
    """Encode a record, with its payload in base64."""
    data: dict[str, Any] = {
        "SequenceNumber": record.sequence_number,
        "Data": base64.b64encode(record.payload).decode("ascii"),
    }
    if record.partition_key is not None:
        data["PartitionKey"] = record.partition_key
    if record.arrival_timestamp is not None:
        data["ApproximateArrivalTimestamp"] = record.arrival_timestamp
    return data


def decode_record(data: dict[str, Any]) -> Record:
    """
    Decode a record.

    :raises ValueError: if the record is missing fields or its payload is not valid base64.
    """
    try:
        return Record(
            sequence_number=data["SequenceNumber"],
            payload=base64.b64decode(data.get("Data", ""), validate=True),
            partition_key=data.get("PartitionKey"),
            arrival_timestamp=data.get("ApproximateArrivalTimestamp"),
        )
    except (KeyError, TypeError, binascii.Error) as error:
        msg = "error while parsing record"
        raise ValueError(msg) from error


def encode_partition_page(page: PartitionPage) -> dict[str, Any]:
    data: dict[str, Any] = {"Shards": [{"ShardId": p.partition_id} for p in page.partitions]}
    if page.next_token is not None:
        data["NextToken"] = page.next_token
    return data


def decode_partition_page(data: dict[str, Any]) -> PartitionPage:
    """
    Decode one page of a partition listing.

    :raises ValueError: if a partition entry is missing its id.
    """
    try:
        partitions = [Partition(shard["ShardId"]) for shard in data.get("Shards") or []]
    except (KeyError, TypeError) as error:
        msg = "error while parsing partition listing"
        raise ValueError(msg) from error
    return PartitionPage(partitions=partitions, next_token=data.get("NextToken"))


def encode_fetch_result(result: FetchResult) -> dict[str, Any]:
    data: dict[str, Any] = {
        "Records": [encode_record(record) for record in result.records],
        "NextShardIterator": result.next_token,
    }
    if result.millis_behind_latest is not None:
        data["MillisBehindLatest"] = result.millis_behind_latest
    return data


def decode_fetch_result(data: dict[str, Any]) -> FetchResult:
    """
    Decode the result of a fetch.

    :raises ValueError: if a record cannot be decoded.
    """
    return FetchResult(
        records=[decode_record(record) for record in data.get("Records") or []],
        next_token=data.get("NextShardIterator"),
        millis_behind_latest=data.get("MillisBehindLatest"),
    )


def encode_error(error_type: str, message: str) -> dict[str, str]:
    return {"__type": error_type, "message": message}


def error_type_of(error: StreamError) -> str:
    """Return the wire error type for the given error."""
    for error_type, error_class in ERROR_TYPES.items():
        if isinstance(error, error_class):
            return error_type
    return INTERNAL_FAILURE_ERROR


def decode_error(
    data: Any,
    status_code: int,
    stream_name: str | None = None,
    partition_id: str | None = None,
) -> StreamError:
    """
    Turn an error document returned by the service into the matching StreamError.

    Error types may be qualified with a namespace, as in `com.example#ExpiredIteratorException`.
    """
    error_type = ""
    message = f"service responded with status {status_code}"
    if isinstance(data, dict):
        error_type = str(data.get("__type", "")).rpartition("#")[2]
        message = data.get("message") or data.get("Message") or message
    error_class = ERROR_TYPES.get(error_type, TransportError)
    if error_type and error_class is TransportError:
        message = f"{error_type}: {message}"
    return error_class(message, stream_name=stream_name, partition_id=partition_id)
