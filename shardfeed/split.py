"""Module to define the partition and split dataclasses."""

from dataclasses import dataclass, replace

from .position import NO_POSITION, Position


@dataclass(frozen=True)
class Partition:
    """One ordered sub-log (shard) of a stream."""

    partition_id: str


@dataclass(frozen=True)
class Split:
    """
    A unit of work assignable to a single reader: one partition plus the bounds to read within.

    :param partition_id: The partition to read
    :param start_position: Where to start reading
    :param end_position: Where to stop reading; only a `SequenceNumber` bound is enforced
    """

    partition_id: str
    start_position: Position = NO_POSITION
    end_position: Position = NO_POSITION

    def with_bounds(
        self, start_position: Position, end_position: Position = NO_POSITION
    ) -> "Split":
        """Return a copy of this split with the given bounds filled in."""
        return replace(self, start_position=start_position, end_position=end_position)
