"""This module defines the CheckpointState value object used to resume a partition reader."""

import json
from dataclasses import asdict, dataclass
from typing import Any

from .errors import MalformedCheckpoint

CHECKPOINT_KEYS = ("stream_name", "partition_id", "sequence_number")


@dataclass(frozen=True)
class CheckpointState:
    """
    The position of the last record a partition reader successfully emitted.

    :param stream_name: The stream the partition belongs to
    :param partition_id: The partition ID
    :param sequence_number: The sequence number of the last emitted record, or an empty
        string when nothing has been consumed yet
    """

    stream_name: str
    partition_id: str
    sequence_number: str

    def to_dict(self) -> dict[str, str]:
        """Return the wire representation of the checkpoint."""
        return asdict(self)

    def to_json(self) -> str:
        """Return the checkpoint serialized as a JSON object."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any) -> "CheckpointState":
        """
        Build a checkpoint from its wire representation.

        :param data: a mapping holding the `stream_name`, `partition_id` and
            `sequence_number` keys
        :raises MalformedCheckpoint: if the data does not describe a valid checkpoint.
        """
        if not isinstance(data, dict):
            raise MalformedCheckpoint(f"checkpoint must be an object, got {type(data).__name__}")
        missing = [key for key in CHECKPOINT_KEYS if key not in data]
        if missing:
            raise MalformedCheckpoint(f"checkpoint is missing {', '.join(missing)}")
        for key in CHECKPOINT_KEYS:
            if not isinstance(data[key], str):
                raise MalformedCheckpoint(f"checkpoint field {key} must be a string")
        if not data["stream_name"] or not data["partition_id"]:
            raise MalformedCheckpoint(
                "checkpoint must name a stream and a partition",
                stream_name=data["stream_name"] or None,
                partition_id=data["partition_id"] or None,
            )
        return cls(
            stream_name=data["stream_name"],
            partition_id=data["partition_id"],
            sequence_number=data["sequence_number"],
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> "CheckpointState":
        """
        Build a checkpoint from its JSON serialization.

        :raises MalformedCheckpoint: if the input is not valid JSON or not a valid checkpoint.
        """
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as err:
            msg = "checkpoint is not valid JSON"
            raise MalformedCheckpoint(msg) from err
        return cls.from_dict(data)
