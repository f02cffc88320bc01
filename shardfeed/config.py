"""Reader configuration, optionally loaded from SHARDFEED_* environment variables."""

import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from .constants import DEFAULT_EMPTY_FETCH_BACKOFF, DEFAULT_MAX_CURSOR_RENEWALS
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "SHARDFEED_"
STREAM_NAME_ENV = f"{ENV_PREFIX}STREAM_NAME"


@dataclass(frozen=True)
class ReaderOptions:
    """
    Tuning knobs of the partition readers.

    :param empty_fetch_backoff: seconds to wait after a fetch returned no records
    :param max_cursor_renewals: consecutive renewals of an expired cursor before giving up
    :param fetch_limit: optional maximum number of records requested per fetch
    :param queue_size: number of batches the multi-partition reader buffers
    :param throughput_backoff: initial seconds to wait after the service rate-limited a fetch
    :param max_throughput_backoff: upper bound for the rate-limit backoff
    :param shutdown_timeout: seconds to wait for partition tasks to exit before cancelling them
    """

    empty_fetch_backoff: float = DEFAULT_EMPTY_FETCH_BACKOFF
    max_cursor_renewals: int = DEFAULT_MAX_CURSOR_RENEWALS
    fetch_limit: int | None = None
    queue_size: int = 16
    throughput_backoff: float = 1.0
    max_throughput_backoff: float = 30.0
    shutdown_timeout: float = 5.0

    def __post_init__(self) -> None:
        if self.empty_fetch_backoff < 0:
            raise ConfigurationError("empty_fetch_backoff must not be negative")
        if self.max_cursor_renewals < 0:
            raise ConfigurationError("max_cursor_renewals must not be negative")
        if self.fetch_limit is not None and self.fetch_limit <= 0:
            raise ConfigurationError("fetch_limit must be positive")
        if self.queue_size <= 0:
            raise ConfigurationError("queue_size must be positive")
        if self.throughput_backoff <= 0 or self.max_throughput_backoff < self.throughput_backoff:
            raise ConfigurationError(
                "throughput_backoff must be positive and not exceed max_throughput_backoff"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ReaderOptions":
        """
        Build options from SHARDFEED_* environment variables, defaulting what is unset.

        Backoffs and timeouts are given in milliseconds, e.g. SHARDFEED_EMPTY_FETCH_BACKOFF_MS.

        :raises ConfigurationError: if a variable is set to an invalid value.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {}
        for field_name, env_name, parse in (
            ("empty_fetch_backoff", "EMPTY_FETCH_BACKOFF_MS", _parse_millis),
            ("max_cursor_renewals", "MAX_CURSOR_RENEWALS", int),
            ("fetch_limit", "FETCH_LIMIT", int),
            ("queue_size", "QUEUE_SIZE", int),
            ("throughput_backoff", "THROUGHPUT_BACKOFF_MS", _parse_millis),
            ("max_throughput_backoff", "MAX_THROUGHPUT_BACKOFF_MS", _parse_millis),
            ("shutdown_timeout", "SHUTDOWN_TIMEOUT_MS", _parse_millis),
        ):
            raw = env.get(f"{ENV_PREFIX}{env_name}")
            if raw:
                kwargs[field_name] = _parse(f"{ENV_PREFIX}{env_name}", raw, parse)
        options = cls(**kwargs)
        logger.debug("Loaded reader options", extra={"options": options})
        return options


def stream_name_from_env(environ: Mapping[str, str] | None = None) -> str:
    """
    Return the stream name configured in SHARDFEED_STREAM_NAME.

    :raises ConfigurationError: if the variable is unset or empty.
    """
    env = os.environ if environ is None else environ
    stream_name = env.get(STREAM_NAME_ENV, "").strip()
    if not stream_name:
        raise ConfigurationError(f"{STREAM_NAME_ENV} is not set")
    return stream_name


def _parse_millis(raw: str) -> float:
    return int(raw) / 1000


def _parse(env_name: str, raw: str, parse: Callable[[str], Any]) -> Any:
    try:
        return parse(raw)
    except ValueError as err:
        msg = f"invalid value {raw!r} for {env_name}"
        raise ConfigurationError(msg) from err
