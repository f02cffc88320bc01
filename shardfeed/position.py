"""This module defines the positions a reader can start from or stop at within a partition."""

from dataclasses import dataclass


@dataclass(frozen=True)
class NoPosition:
    """No position: an unbounded start or end."""


@dataclass(frozen=True)
class Earliest:
    """The oldest record still retained in the partition (the trim horizon)."""


@dataclass(frozen=True)
class Latest:
    """The tip of the partition, just after the most recent record."""


@dataclass(frozen=True)
class SequenceNumber:
    """
    A position identified by a sequence number issued by the stream service.

    :param seq: The opaque, totally-ordered sequence number
    """

    seq: str


@dataclass(frozen=True)
class Timestamp:
    """
    A position identified by the arrival time of records.

    :param ts: Seconds since the epoch
    """

    ts: int


Position = NoPosition | Earliest | Latest | SequenceNumber | Timestamp

NO_POSITION = NoPosition()
"""NO_POSITION is the default bound of a freshly discovered split."""

EARLIEST = Earliest()
"""EARLIEST starts at the trim horizon of the partition."""

LATEST = Latest()
"""LATEST starts after the most recent record of the partition."""


def sequence_before(seq: str, other: str) -> bool:
    """
    Return whether sequence number `seq` orders strictly before `other`.

    The service issues decimal sequence numbers of varying length, which are compared
    numerically; anything else falls back to plain string ordering.
    """
    if _is_decimal(seq) and _is_decimal(other):
        return int(seq) < int(other)
    return seq < other


def _is_decimal(value: str) -> bool:
    return value.isascii() and value.isdigit()
