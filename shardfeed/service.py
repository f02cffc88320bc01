"""Module to define the StreamService interface."""

import enum
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from .record import Record
from .split import Partition

# pylint: disable=R0903


class CursorMode(enum.Enum):
    """How a new cursor token is positioned within a partition."""

    TRIM_HORIZON = "TRIM_HORIZON"
    AFTER_SEQUENCE_NUMBER = "AFTER_SEQUENCE_NUMBER"
    AT_TIMESTAMP = "AT_TIMESTAMP"


@dataclass
class PartitionPage:
    """One page of a partition listing."""

    partitions: Sequence[Partition]
    next_token: str | None = None


@dataclass
class FetchResult:
    """The records returned by one fetch call together with the token for the next one."""

    records: Sequence[Record] = field(default_factory=list)
    next_token: str | None = None
    millis_behind_latest: int | None = None


class StreamService(Protocol):
    """
    StreamService is an interface describing the operations of a partitioned, append-only
    log service which the discovery and reader components consume.
    """

    async def list_partitions(self, stream_name: str, next_token: str | None) -> PartitionPage:
        """
        List one page of the partitions of a stream.

        :param stream_name: the stream to list
        :param next_token: the continuation token returned with the previous page, if any
        """
        ...

    async def get_cursor(
        self,
        stream_name: str,
        partition_id: str,
        mode: CursorMode,
        sequence_number: str | None = None,
        timestamp: int | None = None,
    ) -> str | None:
        """
        Obtain a cursor token for a partition.

        :param stream_name: the stream the partition belongs to
        :param partition_id: the partition to position the cursor in
        :param mode: how to position the cursor
        :param sequence_number: the anchor for `CursorMode.AFTER_SEQUENCE_NUMBER`
        :param timestamp: the anchor for `CursorMode.AT_TIMESTAMP`, in seconds since the epoch
        :return: the cursor token, or None if the partition is closed
        """
        ...

    async def fetch_records(self, cursor_token: str, limit: int | None = None) -> FetchResult:
        """
        Fetch the records following the given cursor token, consuming the token.

        :param cursor_token: the token positioning the fetch
        :param limit: an optional maximum number of records to return
        :raises ExpiredCursor: if the token has expired.
        :raises ThroughputExceeded: if the service rate-limited the request.
        """
        ...
