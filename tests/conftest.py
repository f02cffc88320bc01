import asyncio
import itertools
from collections.abc import Sequence

import pytest

from shardfeed import (
    CursorMode,
    ExpiredCursor,
    FetchResult,
    Partition,
    PartitionPage,
    Record,
    sequence_before,
)


class FakeStreamService:
    """In-memory StreamService holding a list of records per partition."""

    def __init__(self, records_per_fetch: int = 2) -> None:
        self.records: dict[str, list[Record]] = {}
        self.closed: set[str] = set()
        self.records_per_fetch = records_per_fetch
        self.pages: list[PartitionPage] | None = None
        self.expired: set[str] = set()
        self.fetch_errors: list[Exception] = []
        self.list_calls: list[str | None] = []
        self.cursor_calls: list[tuple[str, CursorMode, str | None, int | None]] = []
        self.fetch_calls: list[tuple[str, float]] = []
        self._positions: dict[str, tuple[str, int]] = {}
        self._counter = itertools.count()

    def add_partition(self, partition_id: str, sequence_numbers: Sequence[str] = ()) -> None:
        self.records[partition_id] = [
            Record(seq, f"{partition_id}:{seq}".encode(), partition_key="key")
            for seq in sequence_numbers
        ]

    def append(self, partition_id: str, *sequence_numbers: str) -> None:
        for seq in sequence_numbers:
            self.records[partition_id].append(Record(seq, f"{partition_id}:{seq}".encode()))

    def fetched_tokens(self) -> list[str]:
        return [token for token, _ in self.fetch_calls]

    async def list_partitions(self, stream_name: str, next_token: str | None) -> PartitionPage:
        self.list_calls.append(next_token)
        if self.pages is not None:
            index = int(next_token) if next_token else 0
            return self.pages[index]
        return PartitionPage([Partition(partition_id) for partition_id in self.records])

    async def get_cursor(
        self,
        stream_name: str,
        partition_id: str,
        mode: CursorMode,
        sequence_number: str | None = None,
        timestamp: int | None = None,
    ) -> str | None:
        self.cursor_calls.append((partition_id, mode, sequence_number, timestamp))
        records = self.records[partition_id]
        if mode is CursorMode.TRIM_HORIZON:
            index = 0
        elif mode is CursorMode.AFTER_SEQUENCE_NUMBER:
            assert sequence_number is not None
            index = next(
                (
                    i
                    for i, record in enumerate(records)
                    if sequence_before(sequence_number, record.sequence_number)
                ),
                len(records),
            )
        else:
            assert timestamp is not None
            index = next(
                (
                    i
                    for i, record in enumerate(records)
                    if (record.arrival_timestamp or 0) >= timestamp
                ),
                len(records),
            )
        return self._token(partition_id, index)

    async def fetch_records(self, cursor_token: str, limit: int | None = None) -> FetchResult:
        self.fetch_calls.append((cursor_token, asyncio.get_running_loop().time()))
        if self.fetch_errors:
            raise self.fetch_errors.pop(0)
        if cursor_token in self.expired:
            raise ExpiredCursor("iterator expired")
        partition_id, index = self._positions[cursor_token]
        records = self.records[partition_id]
        batch = records[index : index + (limit or self.records_per_fetch)]
        index += len(batch)
        if partition_id in self.closed and index >= len(records):
            return FetchResult(batch, None, 0)
        return FetchResult(batch, self._token(partition_id, index), 0)

    def _token(self, partition_id: str, index: int) -> str:
        token = f"{partition_id}-tok-{next(self._counter)}"
        self._positions[token] = (partition_id, index)
        return token


@pytest.fixture
def service() -> FakeStreamService:
    return FakeStreamService()
