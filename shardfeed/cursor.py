"""This module defines PartitionCursor, which acquires and renews cursor tokens."""

import logging

from .errors import ConfigurationError
from .position import Earliest, Position, SequenceNumber, Timestamp
from .service import CursorMode, StreamService

logger = logging.getLogger(__name__)


class PartitionCursor:
    """
    Acquires the single-use cursor tokens a reader fetches with.

    Tokens expire after a few minutes on the service side; `renew` obtains a fresh one
    anchored strictly after the last consumed sequence number so that nothing is skipped
    and nothing before it is read again.
    """

    def __init__(self, service: StreamService, stream_name: str) -> None:
        self.service = service
        self.stream_name = stream_name

    async def acquire(self, partition_id: str, start_position: Position) -> str | None:
        """
        Obtain a token positioned at the given start position.

        :param partition_id: the partition to read
        :param start_position: `Earliest`, `SequenceNumber` or `Timestamp`
        :return: the token, or None if the partition is closed
        :raises ConfigurationError: for any other start position, before calling the service.
        """
        if isinstance(start_position, Earliest):
            return await self.service.get_cursor(
                self.stream_name, partition_id, CursorMode.TRIM_HORIZON
            )
        if isinstance(start_position, SequenceNumber):
            return await self.service.get_cursor(
                self.stream_name,
                partition_id,
                CursorMode.AFTER_SEQUENCE_NUMBER,
                sequence_number=start_position.seq,
            )
        if isinstance(start_position, Timestamp):
            return await self.service.get_cursor(
                self.stream_name,
                partition_id,
                CursorMode.AT_TIMESTAMP,
                timestamp=start_position.ts,
            )
        raise ConfigurationError(
            "start position must be Earliest, SequenceNumber or Timestamp, "
            f"got {start_position!r}",
            stream_name=self.stream_name,
            partition_id=partition_id,
        )

    async def renew(self, partition_id: str, after_sequence_number: str) -> str | None:
        """Obtain a token positioned strictly after the given sequence number."""
        logger.info(
            "Renewing cursor",
            extra={
                "stream_name": self.stream_name,
                "partition_id": partition_id,
                "sequence_number": after_sequence_number,
            },
        )
        return await self.service.get_cursor(
            self.stream_name,
            partition_id,
            CursorMode.AFTER_SEQUENCE_NUMBER,
            sequence_number=after_sequence_number,
        )
