"""
This module defines the error taxonomy raised while discovering and reading partitions.

Every error derives from `StreamError`, which carries the stream name and partition id it
relates to so that callers have enough context to log the failure and decide what to do.
Only `ExpiredCursor` is ever handled inside the readers; everything else is surfaced.
"""


class StreamError(Exception):
    """
    StreamError has three attributes, `message`, `stream_name` and `partition_id`, which are
    set during initialization. Either of the latter two may be None when the error is not
    tied to a particular stream or partition.
    """

    def __init__(
        self,
        message: str,
        stream_name: str | None = None,
        partition_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stream_name = stream_name
        self.partition_id = partition_id

    def __str__(self) -> str:
        context = []
        if self.stream_name:
            context.append(f"stream {self.stream_name}")
        if self.partition_id:
            context.append(f"partition {self.partition_id}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class DiscoveryError(StreamError):
    """Partition listing returned no partitions."""


class ConfigurationError(StreamError):
    """An unsupported or invalid setting was requested; raised before any I/O happens."""


class ExpiredCursor(StreamError):
    """The cursor token outlived its service-side lifetime and must be renewed."""


class ThroughputExceeded(StreamError):
    """The service rate-limited the request; the caller must back off and retry."""


class TransportError(StreamError):
    """The service or the connection to it failed."""


class MalformedCheckpoint(StreamError):
    """A checkpoint handed in for restoring a reader is invalid or corrupt."""


class ReaderStateError(StreamError):
    """An operation was attempted on a reader in a state that does not allow it."""
