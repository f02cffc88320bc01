"""Module to read several partitions concurrently as one sequence of batches."""

import asyncio
import contextlib
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import TracebackType
from typing import Any

from .checkpoint import CheckpointState
from .config import ReaderOptions
from .errors import ConfigurationError, ReaderStateError, ThroughputExceeded
from .position import NO_POSITION, Position
from .reader import CursorListener, SinglePartitionReader
from .record import Message
from .service import StreamService
from .split import Split

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _PartitionDone:
    partition_id: str


@dataclass(frozen=True)
class _PartitionFailed:
    partition_id: str
    error: Exception


class MultiPartitionReader:
    """
    Runs one fetch task per partition and merges their batches.

    Each partition's batches arrive in order; batches of different partitions interleave
    in whatever order they were fetched. A cursor token table, shared by the partition
    tasks, records the token every partition will fetch with next.
    """

    def __init__(
        self,
        readers: Sequence[SinglePartitionReader],
        options: ReaderOptions | None = None,
    ) -> None:
        """
        Initialize the reader over already opened partition readers.

        :raises ConfigurationError: if no readers are given or a partition appears twice.
        """
        if not readers:
            raise ConfigurationError("at least one partition is required")
        self._readers = {reader.partition_id: reader for reader in readers}
        if len(self._readers) != len(readers):
            raise ConfigurationError("partitions must not be assigned twice")
        self.options = options or readers[0].options

        self._cursor_tokens: dict[str, str | None] = {}
        self._cursor_tokens_lock = asyncio.Lock()
        self._delivered: dict[str, CheckpointState] = {}
        # listeners set by the caller are still notified after the table is updated
        self._listeners: dict[str, CursorListener | None] = {}
        for reader in readers:
            self._listeners[reader.partition_id] = reader.cursor_listener
            reader.cursor_listener = self._record_cursor
            self._cursor_tokens[reader.partition_id] = reader.cursor_token
            self._delivered[reader.partition_id] = reader.snapshot()

        self._queue: asyncio.Queue[list[Message] | _PartitionDone | _PartitionFailed] = (
            asyncio.Queue(maxsize=self.options.queue_size)
        )
        self._tasks: list[asyncio.Task[None]] = []
        self._running = 0
        self._stopping = asyncio.Event()
        self._closed = False

    @classmethod
    async def create(
        cls,
        service: StreamService,
        stream_name: str,
        splits: Sequence[Split],
        options: ReaderOptions | None = None,
    ) -> "MultiPartitionReader":
        """Open one reader per split and combine them."""
        if not splits:
            raise ConfigurationError("at least one split is required", stream_name=stream_name)
        readers = await asyncio.gather(
            *(
                SinglePartitionReader.from_split(service, stream_name, split, options)
                for split in splits
            )
        )
        return cls(readers, options)

    @classmethod
    async def from_checkpoints(
        cls,
        service: StreamService,
        states: Sequence[CheckpointState | dict[str, Any]],
        end_positions: Mapping[str, Position] | None = None,
        options: ReaderOptions | None = None,
    ) -> "MultiPartitionReader":
        """
        Restore one reader per checkpoint and combine them.

        :param end_positions: the end bound of each resumed partition, by partition id
        :raises MalformedCheckpoint: if any of the states is invalid.
        """
        if not states:
            raise ConfigurationError("at least one checkpoint is required")
        end_positions = end_positions or {}
        parsed = [
            state if isinstance(state, CheckpointState) else CheckpointState.from_dict(state)
            for state in states
        ]
        readers = await asyncio.gather(
            *(
                SinglePartitionReader.from_checkpoint(
                    service,
                    state,
                    end_positions.get(state.partition_id, NO_POSITION),
                    options,
                )
                for state in parsed
            )
        )
        return cls(readers, options)

    @property
    def partition_ids(self) -> list[str]:
        return list(self._readers)

    def start(self) -> None:
        """Start one fetch task per partition."""
        if self._closed:
            raise ReaderStateError("reader is closed")
        if self._tasks:
            raise ReaderStateError("reader is already started")
        self._tasks = [
            asyncio.create_task(self._run_partition(reader), name=f"partition-{partition_id}")
            for partition_id, reader in self._readers.items()
        ]
        self._running = len(self._tasks)

    async def next_batch(self) -> list[Message] | None:
        """
        Return the next batch fetched by any partition, starting the tasks if needed.

        :return: the batch, or None once every partition has stopped
        :raises StreamError: the fatal error of a partition, which has stopped reading.
        """
        if not self._tasks and not self._closed:
            self.start()
        while self._running:
            item = await self._queue.get()
            if isinstance(item, _PartitionDone):
                self._running -= 1
                continue
            if isinstance(item, _PartitionFailed):
                self._running -= 1
                raise item.error
            last = item[-1]
            self._delivered[last.partition_id] = CheckpointState(
                self._readers[last.partition_id].stream_name,
                last.partition_id,
                last.sequence_number,
            )
            return item
        return None

    def snapshot(self) -> list[CheckpointState]:
        """
        Return one checkpoint per partition.

        Checkpoints cover the batches returned by `next_batch` only, not those still buffered.
        """
        return list(self._delivered.values())

    async def cursor_tokens(self) -> dict[str, str | None]:
        """Return a copy of the cursor token table."""
        async with self._cursor_tokens_lock:
            return dict(self._cursor_tokens)

    def stop(self) -> None:
        """Ask every partition to stop; `next_batch` returns None once they all have."""
        self._stopping.set()
        for reader in self._readers.values():
            reader.stop()

    async def close(self) -> None:
        """
        Stop every partition task and wait for them to exit.

        Tasks still blocked in a fetch after `shutdown_timeout` seconds are cancelled.
        Buffered batches which were not returned yet are discarded.
        """
        if self._closed:
            return
        self._closed = True
        self.stop()

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.options.shutdown_timeout
        pending = set(self._tasks)
        while pending and loop.time() < deadline:
            # producers blocked on a full queue only exit once there is room
            self._drain_queue()
            _, pending = await asyncio.wait(pending, timeout=min(0.05, deadline - loop.time()))
        for task in pending:
            logger.warning("Cancelling partition task", extra={"task": task.get_name()})
            task.cancel()
        if pending:
            await asyncio.wait(pending)
        self._drain_queue()
        self._running = 0

    async def __aenter__(self) -> "MultiPartitionReader":
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.close()

    def __aiter__(self) -> "MultiPartitionReader":
        return self

    async def __anext__(self) -> list[Message]:
        batch = await self.next_batch()
        if batch is None:
            raise StopAsyncIteration
        return batch

    async def _run_partition(self, reader: SinglePartitionReader) -> None:
        """Fetch batches of one partition into the queue until it stops or fails."""
        delay = self.options.throughput_backoff
        try:
            while True:
                try:
                    batch = await reader.next_batch()
                except ThroughputExceeded:
                    logger.warning(
                        "Throughput exceeded, backing off",
                        extra={"partition_id": reader.partition_id, "seconds": delay},
                    )
                    with contextlib.suppress(asyncio.TimeoutError):
                        await asyncio.wait_for(self._stopping.wait(), delay)
                    delay = min(delay * 2, self.options.max_throughput_backoff)
                    continue
                if batch is None:
                    break
                delay = self.options.throughput_backoff
                await self._queue.put(batch)
        except Exception as error:  # pylint: disable=broad-except
            logger.exception(
                "Partition reader failed",
                extra={"stream_name": reader.stream_name, "partition_id": reader.partition_id},
            )
            await self._queue.put(_PartitionFailed(reader.partition_id, error))
            return
        await self._queue.put(_PartitionDone(reader.partition_id))

    async def _record_cursor(self, partition_id: str, token: str | None) -> None:
        async with self._cursor_tokens_lock:
            self._cursor_tokens[partition_id] = token
        listener = self._listeners[partition_id]
        if listener is not None:
            await listener(partition_id, token)

    def _drain_queue(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()
