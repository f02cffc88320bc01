"""Module containing constants which are relevant for both Client and Server."""

TARGET_HEADER = "X-Amz-Target"
"""TARGET_HEADER names the HTTP header selecting the service operation."""

TARGET_PREFIX = "Kinesis_20131202"
"""TARGET_PREFIX is the API version prefix of every operation name."""

CONTENT_TYPE = "application/x-amz-json-1.1"

LIST_PARTITIONS_OPERATION = "ListShards"
GET_CURSOR_OPERATION = "GetShardIterator"
FETCH_RECORDS_OPERATION = "GetRecords"

EXPIRED_CURSOR_ERROR = "ExpiredIteratorException"
THROUGHPUT_EXCEEDED_ERROR = "ProvisionedThroughputExceededException"
RESOURCE_NOT_FOUND_ERROR = "ResourceNotFoundException"
INVALID_ARGUMENT_ERROR = "InvalidArgumentException"
UNKNOWN_OPERATION_ERROR = "UnknownOperationException"
SERIALIZATION_ERROR = "SerializationException"
INTERNAL_FAILURE_ERROR = "InternalFailure"

DEFAULT_EMPTY_FETCH_BACKOFF = 0.2
"""
DEFAULT_EMPTY_FETCH_BACKOFF is the number of seconds a reader waits after a fetch returned no
records, to avoid being rate-limited while the partition is idle.
"""

DEFAULT_MAX_CURSOR_RENEWALS = 3
"""DEFAULT_MAX_CURSOR_RENEWALS bounds the consecutive renewals of an expired cursor."""
