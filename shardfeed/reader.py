"""Module containing the fetch loop of a single partition."""

import asyncio
import contextlib
import enum
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .checkpoint import CheckpointState
from .config import ReaderOptions
from .cursor import PartitionCursor
from .errors import (
    ExpiredCursor,
    MalformedCheckpoint,
    ReaderStateError,
    StreamError,
    ThroughputExceeded,
)
from .position import EARLIEST, NO_POSITION, Position, SequenceNumber, sequence_before
from .record import Message
from .service import FetchResult, StreamService
from .split import Split

logger = logging.getLogger(__name__)

CursorListener = Callable[[str, str | None], Awaitable[None]]


class ReaderState(enum.Enum):
    """The states of a SinglePartitionReader. STOPPED and FAILED are terminal."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    FETCHING = "fetching"
    BACKOFF = "backoff"
    STOPPED = "stopped"
    FAILED = "failed"


class SinglePartitionReader:
    """
    Reads the records of one partition in order, as batches of messages.

    The reader holds a single-use cursor token which it replaces after every fetch, renews
    transparently when it expires, and backs off when the partition has no new records.
    Reading stops at the split's `SequenceNumber` end position, when the partition is closed
    or when `stop` is called. `snapshot` captures the last emitted sequence number, from
    which a new reader can be restored after a restart.
    """

    def __init__(
        self,
        service: StreamService,
        stream_name: str,
        split: Split,
        options: ReaderOptions | None = None,
        cursor_listener: CursorListener | None = None,
    ) -> None:
        """
        Initialize an unopened reader; call `open` or `restore` before reading.

        :param service: the stream service to read from
        :param stream_name: the stream the partition belongs to
        :param split: the partition to read and the bounds to read within
        :param options: reader tuning, defaults apply when omitted
        :param cursor_listener: awaited with the partition id and the new cursor token
            after every successful fetch
        """
        self.service = service
        self.stream_name = stream_name
        self.split = split
        self.options = options or ReaderOptions()
        self.cursor_listener = cursor_listener
        self._cursor = PartitionCursor(service, stream_name)
        self._state = ReaderState.UNINITIALIZED
        self._token: str | None = None
        self._latest_sequence_number = ""
        self._resume_position: Position = split.start_position
        self._stopping = asyncio.Event()

    @classmethod
    async def from_split(
        cls,
        service: StreamService,
        stream_name: str,
        split: Split,
        options: ReaderOptions | None = None,
        cursor_listener: CursorListener | None = None,
    ) -> "SinglePartitionReader":
        """Create a reader positioned at the split's start position."""
        reader = cls(service, stream_name, split, options, cursor_listener)
        await reader.open()
        return reader

    @classmethod
    async def from_checkpoint(
        cls,
        service: StreamService,
        state: CheckpointState | dict[str, Any],
        end_position: Position = NO_POSITION,
        options: ReaderOptions | None = None,
        cursor_listener: CursorListener | None = None,
    ) -> "SinglePartitionReader":
        """
        Create a reader resuming strictly after the checkpointed sequence number.

        :param state: a checkpoint, or its wire representation
        :param end_position: the end bound of the split being resumed
        :raises MalformedCheckpoint: if the state is invalid.
        """
        if not isinstance(state, CheckpointState):
            state = CheckpointState.from_dict(state)
        start_position = (
            SequenceNumber(state.sequence_number) if state.sequence_number else EARLIEST
        )
        split = Split(state.partition_id, start_position, end_position)
        reader = cls(service, state.stream_name, split, options, cursor_listener)
        await reader.restore(state)
        return reader

    @property
    def partition_id(self) -> str:
        return self.split.partition_id

    @property
    def state(self) -> ReaderState:
        return self._state

    @property
    def cursor_token(self) -> str | None:
        """Return the token the next fetch will use."""
        return self._token

    @property
    def latest_sequence_number(self) -> str:
        """Return the sequence number of the last emitted record, or "" if there is none."""
        return self._latest_sequence_number

    async def open(self) -> None:
        """
        Acquire the first cursor token from the split's start position.

        :raises ConfigurationError: if the start position is not supported.
        """
        self._ensure_uninitialized("open")
        start_position = self.split.start_position
        if isinstance(start_position, SequenceNumber):
            self._latest_sequence_number = start_position.seq
        try:
            token = await self._cursor.acquire(self.partition_id, start_position)
        except Exception:
            self._state = ReaderState.FAILED
            raise
        logger.info(
            "Opened partition reader",
            extra={
                "stream_name": self.stream_name,
                "partition_id": self.partition_id,
                "start_position": start_position,
            },
        )
        self._ready(token)

    async def restore(self, state: CheckpointState) -> None:
        """
        Resume strictly after the sequence number of the given checkpoint.

        Only valid before the reader was opened. A checkpoint taken before anything was
        consumed resumes from the trim horizon.

        :raises MalformedCheckpoint: if the checkpoint belongs to another stream or partition.
        """
        self._ensure_uninitialized("restore")
        if (state.stream_name, state.partition_id) != (self.stream_name, self.partition_id):
            raise MalformedCheckpoint(
                f"checkpoint for stream {state.stream_name} partition {state.partition_id} "
                "does not match the reader",
                stream_name=self.stream_name,
                partition_id=self.partition_id,
            )
        self._latest_sequence_number = state.sequence_number
        if not state.sequence_number:
            self._resume_position = EARLIEST
        try:
            token = await self._renew()
        except Exception:
            self._state = ReaderState.FAILED
            raise
        logger.info(
            "Restored partition reader",
            extra={
                "stream_name": self.stream_name,
                "partition_id": self.partition_id,
                "sequence_number": state.sequence_number,
            },
        )
        self._ready(token)

    def snapshot(self) -> CheckpointState:
        """Return a checkpoint of the last emitted record's position."""
        return CheckpointState(
            stream_name=self.stream_name,
            partition_id=self.partition_id,
            sequence_number=self._latest_sequence_number,
        )

    def stop(self) -> None:
        """
        Ask the reader to stop.

        The request is honoured before the next fetch and wakes up a pending backoff wait;
        a fetch already in flight completes and its batch is still delivered.
        """
        self._stopping.set()
        if self._state in (ReaderState.UNINITIALIZED, ReaderState.READY):
            self._stop("stop requested")

    async def next_batch(self) -> list[Message] | None:
        """
        Fetch until a non-empty batch of messages can be returned.

        :return: the batch, or None once the reader is stopped
        :raises ThroughputExceeded: if the service rate-limited a fetch; the reader stays
            usable and the caller should retry after backing off.
        :raises StreamError: for any fatal failure, after which the reader is failed.
        :raises ReaderStateError: if the reader is not opened, has failed or is busy.
        """
        if self._state is ReaderState.FAILED:
            raise ReaderStateError("reader has failed", self.stream_name, self.partition_id)
        if self._state not in (ReaderState.READY, ReaderState.STOPPED):
            raise ReaderStateError(
                f"cannot fetch while {self._state.value}", self.stream_name, self.partition_id
            )

        while self._state is ReaderState.READY:
            if self._stopping.is_set():
                self._stop("stop requested")
                break
            result = await self._fetch()
            messages = self._consume(result)
            if self.cursor_listener is not None:
                await self.cursor_listener(self.partition_id, self._token)
            if messages:
                return messages
            if self._state is ReaderState.READY:
                await self._backoff()
        return None

    def __aiter__(self) -> "SinglePartitionReader":
        return self

    async def __anext__(self) -> list[Message]:
        batch = await self.next_batch()
        if batch is None:
            raise StopAsyncIteration
        return batch

    async def _fetch(self) -> FetchResult:
        """Issue one fetch, renewing an expired cursor a bounded number of times."""
        renewals = 0
        while True:
            token = self._token
            if token is None:
                raise ReaderStateError("reader has no cursor", self.stream_name, self.partition_id)
            self._state = ReaderState.FETCHING
            try:
                return await self.service.fetch_records(token, self.options.fetch_limit)
            except ExpiredCursor as error:
                if renewals >= self.options.max_cursor_renewals:
                    self._fail(error)
                    raise
                renewals += 1
                logger.warning(
                    "Cursor expired",
                    extra={
                        "stream_name": self.stream_name,
                        "partition_id": self.partition_id,
                        "renewal": renewals,
                    },
                )
            except ThroughputExceeded as error:
                self._add_context(error)
                self._state = ReaderState.READY
                raise
            except Exception as error:
                self._fail(error)
                raise

            try:
                renewed = await self._renew()
            except ThroughputExceeded as error:
                # the expired token is kept, so the next fetch renews again
                self._add_context(error)
                self._state = ReaderState.READY
                raise
            except Exception as error:
                self._fail(error)
                raise
            if renewed is None:
                return FetchResult(records=[], next_token=None)
            self._token = renewed

    async def _renew(self) -> str | None:
        if self._latest_sequence_number:
            return await self._cursor.renew(self.partition_id, self._latest_sequence_number)
        return await self._cursor.acquire(self.partition_id, self._resume_position)

    def _consume(self, result: FetchResult) -> list[Message]:
        """Turn the fetched records into messages, honouring the end position."""
        messages: list[Message] = []
        end_reached = False
        for record in result.records:
            if self._reached_end(record.sequence_number):
                end_reached = True
                break
            if self._latest_sequence_number and not sequence_before(
                self._latest_sequence_number, record.sequence_number
            ):
                logger.warning(
                    "Skipping out of order record",
                    extra={
                        "stream_name": self.stream_name,
                        "partition_id": self.partition_id,
                        "sequence_number": record.sequence_number,
                        "latest_sequence_number": self._latest_sequence_number,
                    },
                )
                continue
            messages.append(Message.from_record(self.partition_id, record))
            self._latest_sequence_number = record.sequence_number

        logger.debug(
            "Fetched records",
            extra={
                "stream_name": self.stream_name,
                "partition_id": self.partition_id,
                "records": len(result.records),
                "emitted": len(messages),
                "millis_behind_latest": result.millis_behind_latest,
            },
        )
        if end_reached:
            self._stop("end position reached")
        elif result.next_token is None:
            self._stop("partition closed")
        else:
            self._token = result.next_token
            self._state = ReaderState.READY
        return messages

    def _reached_end(self, sequence_number: str) -> bool:
        end_position = self.split.end_position
        if not isinstance(end_position, SequenceNumber):
            return False
        return not sequence_before(sequence_number, end_position.seq)

    async def _backoff(self) -> None:
        self._state = ReaderState.BACKOFF
        logger.debug(
            "No new records, backing off",
            extra={
                "partition_id": self.partition_id,
                "seconds": self.options.empty_fetch_backoff,
            },
        )
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._stopping.wait(), self.options.empty_fetch_backoff)
        if self._state is ReaderState.BACKOFF:
            self._state = ReaderState.READY

    def _ready(self, token: str | None) -> None:
        if token is None:
            self._stop("partition closed")
            return
        self._token = token
        self._state = ReaderState.READY
        if self._stopping.is_set():
            self._stop("stop requested")

    def _stop(self, reason: str) -> None:
        self._state = ReaderState.STOPPED
        self._token = None
        logger.info(
            "Partition reader stopped",
            extra={
                "stream_name": self.stream_name,
                "partition_id": self.partition_id,
                "reason": reason,
                "sequence_number": self._latest_sequence_number,
            },
        )

    def _fail(self, error: Exception) -> None:
        self._state = ReaderState.FAILED
        if isinstance(error, StreamError):
            self._add_context(error)

    def _add_context(self, error: StreamError) -> None:
        if error.stream_name is None:
            error.stream_name = self.stream_name
        if error.partition_id is None:
            error.partition_id = self.partition_id

    def _ensure_uninitialized(self, operation: str) -> None:
        if self._state is not ReaderState.UNINITIALIZED:
            raise ReaderStateError(
                f"cannot {operation} a reader which is {self._state.value}",
                self.stream_name,
                self.partition_id,
            )
