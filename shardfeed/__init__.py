"""ShardFeed module."""

from .api_handler import StreamFastApiHandler
from .checkpoint import CheckpointState
from .client import Client
from .config import ReaderOptions, stream_name_from_env
from .cursor import PartitionCursor
from .discovery import PartitionDiscovery
from .errors import (
    ConfigurationError,
    DiscoveryError,
    ExpiredCursor,
    MalformedCheckpoint,
    ReaderStateError,
    StreamError,
    ThroughputExceeded,
    TransportError,
)
from .multi_reader import MultiPartitionReader
from .position import (
    EARLIEST,
    LATEST,
    NO_POSITION,
    Earliest,
    Latest,
    NoPosition,
    Position,
    SequenceNumber,
    Timestamp,
    sequence_before,
)
from .reader import ReaderState, SinglePartitionReader
from .record import Message, Record
from .service import CursorMode, FetchResult, PartitionPage, StreamService
from .source import SplitEnumerator, SplitReader
from .split import Partition, Split

__all__ = [
    "EARLIEST",
    "LATEST",
    "NO_POSITION",
    "CheckpointState",
    "Client",
    "ConfigurationError",
    "CursorMode",
    "DiscoveryError",
    "Earliest",
    "ExpiredCursor",
    "FetchResult",
    "Latest",
    "MalformedCheckpoint",
    "Message",
    "MultiPartitionReader",
    "NoPosition",
    "Partition",
    "PartitionCursor",
    "PartitionDiscovery",
    "PartitionPage",
    "Position",
    "ReaderOptions",
    "ReaderState",
    "ReaderStateError",
    "Record",
    "SequenceNumber",
    "SinglePartitionReader",
    "Split",
    "SplitEnumerator",
    "SplitReader",
    "StreamError",
    "StreamFastApiHandler",
    "StreamService",
    "ThroughputExceeded",
    "Timestamp",
    "TransportError",
    "sequence_before",
    "stream_name_from_env",
]
