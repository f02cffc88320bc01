"""Module containing the HTTP client implementing StreamService."""

import json
import logging
from typing import Any

import httpx

from . import wire
from .constants import (
    CONTENT_TYPE,
    FETCH_RECORDS_OPERATION,
    GET_CURSOR_OPERATION,
    LIST_PARTITIONS_OPERATION,
    TARGET_HEADER,
)
from .errors import ConfigurationError, TransportError
from .service import CursorMode, FetchResult, PartitionPage

logger = logging.getLogger(__name__)


class Client:
    """Client-side code to call the operations of a stream service over HTTP."""

    def __init__(self, url: str, http_client: httpx.AsyncClient) -> None:
        """
        Initializes a new instance of the Client class.

        :param url: The endpoint URL of the stream service.
        :param http_client: A httpx AsyncClient under which to make the HTTP requests.
            This allows one time setup of authentication, request signing etc. on the
            session, and increases performance when fetching frequently due to
            connection pooling.
        """
        self.url = url
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Return the http_client being used by this client."""
        return self._http_client

    async def list_partitions(self, stream_name: str, next_token: str | None) -> PartitionPage:
        """
        List one page of the partitions of a stream.

        The stream name is only sent for the first page; continuation pages are identified
        by their token alone.

        :param stream_name: the stream to list
        :param next_token: the continuation token returned with the previous page, if any
        :raises TransportError: if the service cannot be reached or returns an error.
        """
        payload: dict[str, Any] = (
            {"NextToken": next_token} if next_token else {"StreamName": stream_name}
        )
        data = await self._call(LIST_PARTITIONS_OPERATION, payload, stream_name=stream_name)
        try:
            return wire.decode_partition_page(data)
        except ValueError as error:
            raise TransportError(str(error), stream_name=stream_name) from error

    async def get_cursor(
        self,
        stream_name: str,
        partition_id: str,
        mode: CursorMode,
        sequence_number: str | None = None,
        timestamp: int | None = None,
    ) -> str | None:
        """
        Obtain a cursor token for a partition.

        :raises ConfigurationError: if the anchor required by the mode is missing.
        :raises TransportError: if the service cannot be reached or returns an error.
        """
        payload: dict[str, Any] = {
            "StreamName": stream_name,
            "ShardId": partition_id,
            "ShardIteratorType": mode.value,
        }
        if mode is CursorMode.AFTER_SEQUENCE_NUMBER:
            if not sequence_number:
                raise ConfigurationError(
                    "a sequence number is required to position a cursor after it",
                    stream_name=stream_name,
                    partition_id=partition_id,
                )
            payload["StartingSequenceNumber"] = sequence_number
        elif mode is CursorMode.AT_TIMESTAMP:
            if timestamp is None:
                raise ConfigurationError(
                    "a timestamp is required to position a cursor at it",
                    stream_name=stream_name,
                    partition_id=partition_id,
                )
            payload["Timestamp"] = timestamp

        data = await self._call(
            GET_CURSOR_OPERATION, payload, stream_name=stream_name, partition_id=partition_id
        )
        return data.get("ShardIterator")

    async def fetch_records(self, cursor_token: str, limit: int | None = None) -> FetchResult:
        """
        Fetch the records following the given cursor token.

        :raises ExpiredCursor: if the token has expired.
        :raises ThroughputExceeded: if the service rate-limited the request.
        :raises TransportError: for any other failure.
        """
        payload: dict[str, Any] = {"ShardIterator": cursor_token}
        if limit:
            payload["Limit"] = limit
        data = await self._call(FETCH_RECORDS_OPERATION, payload)
        try:
            return wire.decode_fetch_result(data)
        except ValueError as error:
            raise TransportError(str(error)) from error

    async def _call(
        self,
        operation: str,
        payload: dict[str, Any],
        stream_name: str | None = None,
        partition_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Issue one operation and return the decoded response document.

        :raises StreamError: the error the service reported, mapped by its type.
        :raises TransportError: if the request fails or the response is not a JSON object.
        """
        headers = {TARGET_HEADER: wire.target(operation), "Content-Type": CONTENT_TYPE}
        try:
            res = await self._http_client.post(
                self.url, content=json.dumps(payload), headers=headers
            )
        except httpx.HTTPError as error:
            msg = f"{operation} request failed: {error}"
            raise TransportError(msg, stream_name, partition_id) from error

        try:
            data = res.json() if res.content else {}
        except ValueError as error:
            if res.is_success:
                msg = f"{operation} response is not valid JSON"
                raise TransportError(msg, stream_name, partition_id) from error
            data = None

        if not res.is_success:
            logger.debug(
                "Stream service returned an error",
                extra={"operation": operation, "status_code": res.status_code},
            )
            raise wire.decode_error(data, res.status_code, stream_name, partition_id)
        if not isinstance(data, dict):
            msg = f"{operation} response is not a JSON object"
            raise TransportError(msg, stream_name, partition_id)
        return data
