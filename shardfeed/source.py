"""Module to define the interfaces of a partitioned stream source."""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from .record import Message
from .split import Split

# pylint: disable=R0903


@runtime_checkable
class SplitEnumerator(Protocol):
    """
    SplitEnumerator is an interface describing the discovery of the splits of a source,
    which a scheduler then assigns to readers.
    """

    async def list_splits(self) -> Sequence[Split]:
        """Return one split per partition of the source."""
        ...


@runtime_checkable
class SplitReader(Protocol):
    """
    SplitReader is an interface describing a reader of one or more assigned splits.
    Readers additionally expose a `snapshot` method returning the checkpoint state from
    which a replacement reader can resume.
    """

    async def next_batch(self) -> Sequence[Message] | None:
        """
        Return the next batch of messages, or None when reading has finished.
        """
        ...

    def stop(self) -> None:
        """Ask the reader to stop reading."""
        ...
