"""Module to discover the partitions of a stream."""

import logging

from .errors import DiscoveryError
from .service import StreamService
from .split import Partition, Split

logger = logging.getLogger(__name__)


class PartitionDiscovery:
    """Lists every partition of a stream as a split with open bounds."""

    def __init__(self, service: StreamService, stream_name: str) -> None:
        self.service = service
        self.stream_name = stream_name

    async def list_splits(self) -> list[Split]:
        """
        Page through the partition listing until the service returns no continuation token.

        The bounds of the returned splits are left unset; the caller fills them in.

        :raises DiscoveryError: if any page reports no partitions.
        """
        partitions: dict[str, Partition] = {}
        next_token: str | None = None
        pages = 0
        while True:
            page = await self.service.list_partitions(self.stream_name, next_token)
            pages += 1
            if not page.partitions:
                raise DiscoveryError("no partitions in stream", stream_name=self.stream_name)
            for partition in page.partitions:
                partitions.setdefault(partition.partition_id, partition)
            if not page.next_token:
                break
            next_token = page.next_token

        logger.info(
            "Discovered partitions",
            extra={"stream_name": self.stream_name, "partitions": len(partitions), "pages": pages},
        )
        return [Split(partition_id=partition_id) for partition_id in partitions]
