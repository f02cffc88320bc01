"""Module to define the record and message dataclasses."""

from dataclasses import dataclass


@dataclass
class Record:
    """A record as returned by the stream service."""

    sequence_number: str
    payload: bytes
    partition_key: str | None = None
    arrival_timestamp: float | None = None


@dataclass
class Message:
    """A record emitted by a reader, tagged with the partition it was read from."""

    partition_id: str
    sequence_number: str
    payload: bytes
    partition_key: str | None = None
    arrival_timestamp: float | None = None

    @classmethod
    def from_record(cls, partition_id: str, record: Record) -> "Message":
        """Tag the given record with its partition id."""
        return cls(
            partition_id=partition_id,
            sequence_number=record.sequence_number,
            payload=record.payload,
            partition_key=record.partition_key,
            arrival_timestamp=record.arrival_timestamp,
        )
