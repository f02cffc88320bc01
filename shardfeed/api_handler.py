"""Api handlers definition."""

import logging
from collections.abc import Awaitable, Callable
from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from . import wire
from .constants import (
    CONTENT_TYPE,
    FETCH_RECORDS_OPERATION,
    GET_CURSOR_OPERATION,
    INTERNAL_FAILURE_ERROR,
    INVALID_ARGUMENT_ERROR,
    LIST_PARTITIONS_OPERATION,
    SERIALIZATION_ERROR,
    TARGET_HEADER,
    UNKNOWN_OPERATION_ERROR,
)
from .errors import ConfigurationError, StreamError
from .service import CursorMode, StreamService

logger = logging.getLogger(__name__)


class BadRequest(Exception):
    """A request the handler rejects before it reaches the backend."""

    def __init__(self, error_type: str, message: str) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.message = message


class StreamFastApiHandler:
    """Handler serving the stream service operations from any StreamService using fastapi."""

    def __init__(self, service: StreamService) -> None:
        """Initialize the StreamFastApiHandler with the backend StreamService."""
        self.service = service
        self._operations: dict[str, Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]] = {
            LIST_PARTITIONS_OPERATION: self.list_partitions,
            GET_CURSOR_OPERATION: self.get_cursor,
            FETCH_RECORDS_OPERATION: self.fetch_records,
        }

    async def validate(self, request: Request) -> tuple[str, dict[str, Any]]:
        """Validate the target header and the JSON body.
        Return the operation name and the request document.
        """
        operation = wire.operation_from_target(request.headers.get(TARGET_HEADER))
        if operation not in self._operations:
            raise BadRequest(UNKNOWN_OPERATION_ERROR, "Unknown operation")
        try:
            body = await request.json()
        except ValueError as err:
            raise BadRequest(SERIALIZATION_ERROR, "Request body is not valid JSON") from err
        if not isinstance(body, dict):
            raise BadRequest(SERIALIZATION_ERROR, "Request body must be a JSON object")
        return operation, body

    async def handle(self, request: Request) -> JSONResponse:
        """Handle the request after validation.
        Return final response to the client.
        """
        try:
            operation, body = await self.validate(request)
            data = await self._operations[operation](body)
        except BadRequest as err:
            return self._error_response(HTTPStatus.BAD_REQUEST, err.error_type, err.message)
        except ConfigurationError as err:
            return self._error_response(HTTPStatus.BAD_REQUEST, INVALID_ARGUMENT_ERROR, str(err))
        except StreamError as err:
            error_type = wire.error_type_of(err)
            if error_type == INTERNAL_FAILURE_ERROR:
                logger.exception("Stream service backend failed")
                return self._error_response(
                    HTTPStatus.INTERNAL_SERVER_ERROR, error_type, err.message
                )
            return self._error_response(HTTPStatus.BAD_REQUEST, error_type, err.message)
        return JSONResponse(data, media_type=CONTENT_TYPE)

    async def list_partitions(self, body: dict[str, Any]) -> dict[str, Any]:
        next_token = _optional(body, "NextToken", str)
        stream_name = _optional(body, "StreamName", str)
        if not next_token and not stream_name:
            raise BadRequest(INVALID_ARGUMENT_ERROR, "Either StreamName or NextToken is required")
        page = await self.service.list_partitions(stream_name or "", next_token)
        return wire.encode_partition_page(page)

    async def get_cursor(self, body: dict[str, Any]) -> dict[str, Any]:
        try:
            mode = CursorMode(_required(body, "ShardIteratorType", str))
        except ValueError as err:
            raise BadRequest(INVALID_ARGUMENT_ERROR, "Invalid ShardIteratorType") from err
        sequence_number = _optional(body, "StartingSequenceNumber", str)
        timestamp = _optional(body, "Timestamp", int)
        if mode is CursorMode.AFTER_SEQUENCE_NUMBER and not sequence_number:
            raise BadRequest(INVALID_ARGUMENT_ERROR, "Parameter StartingSequenceNumber is required")
        if mode is CursorMode.AT_TIMESTAMP and timestamp is None:
            raise BadRequest(INVALID_ARGUMENT_ERROR, "Parameter Timestamp is required")
        token = await self.service.get_cursor(
            _required(body, "StreamName", str),
            _required(body, "ShardId", str),
            mode,
            sequence_number=sequence_number,
            timestamp=timestamp,
        )
        return {"ShardIterator": token}

    async def fetch_records(self, body: dict[str, Any]) -> dict[str, Any]:
        result = await self.service.fetch_records(
            _required(body, "ShardIterator", str), _optional(body, "Limit", int)
        )
        return wire.encode_fetch_result(result)

    def _error_response(self, status: HTTPStatus, error_type: str, message: str) -> JSONResponse:
        return JSONResponse(
            wire.encode_error(error_type, message), status_code=status, media_type=CONTENT_TYPE
        )


def _required(body: dict[str, Any], name: str, kind: type) -> Any:
    value = _optional(body, name, kind)
    if value is None:
        raise BadRequest(INVALID_ARGUMENT_ERROR, f"Parameter {name} is required")
    return value


def _optional(body: dict[str, Any], name: str, kind: type) -> Any:
    value = body.get(name)
    if value is not None and (not isinstance(value, kind) or isinstance(value, bool)):
        raise BadRequest(INVALID_ARGUMENT_ERROR, f"Invalid parameter {name}")
    return value
