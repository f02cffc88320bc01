import base64
import json

import httpx
import pytest
import pytest_asyncio

from shardfeed import (
    Client,
    ConfigurationError,
    CursorMode,
    ExpiredCursor,
    Partition,
    Record,
    ThroughputExceeded,
    TransportError,
)

URL = "https://stream.example.com/"


@pytest_asyncio.fixture
async def client():
    async with httpx.AsyncClient() as httpx_client:
        yield Client(URL, httpx_client)


def sent(route) -> tuple[str, dict]:
    request = route.calls.last.request
    return request.headers["X-Amz-Target"], json.loads(request.content)


async def test_list_partitions_first_page(client, respx_mock) -> None:
    """Test that the first page is requested by stream name and parsed."""
    # arrange
    route = respx_mock.post(URL).mock(
        return_value=httpx.Response(
            200,
            json={"Shards": [{"ShardId": "shard-0"}, {"ShardId": "shard-1"}], "NextToken": "t1"},
        )
    )

    # act
    page = await client.list_partitions("orders", None)

    # assert
    assert page.partitions == [Partition("shard-0"), Partition("shard-1")]
    assert page.next_token == "t1"
    assert sent(route) == ("Kinesis_20131202.ListShards", {"StreamName": "orders"})
    assert route.calls.last.request.headers["Content-Type"] == "application/x-amz-json-1.1"


async def test_list_partitions_continuation_page(client, respx_mock) -> None:
    route = respx_mock.post(URL).mock(return_value=httpx.Response(200, json={"Shards": []}))

    page = await client.list_partitions("orders", "t1")

    assert page.partitions == []
    assert page.next_token is None
    assert sent(route)[1] == {"NextToken": "t1"}


@pytest.mark.parametrize(
    ("mode", "kwargs", "expected"),
    [
        (CursorMode.TRIM_HORIZON, {}, {}),
        (
            CursorMode.AFTER_SEQUENCE_NUMBER,
            {"sequence_number": "100"},
            {"StartingSequenceNumber": "100"},
        ),
        (CursorMode.AT_TIMESTAMP, {"timestamp": 1700000000}, {"Timestamp": 1700000000}),
    ],
)
async def test_get_cursor(client, respx_mock, mode, kwargs, expected) -> None:
    # arrange
    route = respx_mock.post(URL).mock(
        return_value=httpx.Response(200, json={"ShardIterator": "tok-A"})
    )

    # act
    token = await client.get_cursor("orders", "shard-0", mode, **kwargs)

    # assert
    assert token == "tok-A"
    assert sent(route) == (
        "Kinesis_20131202.GetShardIterator",
        {"StreamName": "orders", "ShardId": "shard-0", "ShardIteratorType": mode.value}
        | expected,
    )


@pytest.mark.parametrize("mode", [CursorMode.AFTER_SEQUENCE_NUMBER, CursorMode.AT_TIMESTAMP])
async def test_get_cursor_without_anchor_fails_before_sending(client, respx_mock, mode) -> None:
    with pytest.raises(ConfigurationError):
        await client.get_cursor("orders", "shard-0", mode)

    assert not respx_mock.calls


async def test_fetch_records(client, respx_mock) -> None:
    """Test that records are decoded, payloads included."""
    # arrange
    route = respx_mock.post(URL).mock(
        return_value=httpx.Response(
            200,
            json={
                "Records": [
                    {
                        "SequenceNumber": "100",
                        "Data": base64.b64encode(b"hello").decode(),
                        "PartitionKey": "k1",
                        "ApproximateArrivalTimestamp": 1700000000.5,
                    },
                    {"SequenceNumber": "101", "Data": ""},
                ],
                "NextShardIterator": "tok-B",
                "MillisBehindLatest": 0,
            },
        )
    )

    # act
    result = await client.fetch_records("tok-A", limit=50)

    # assert
    assert result.records == [
        Record("100", b"hello", "k1", 1700000000.5),
        Record("101", b""),
    ]
    assert result.next_token == "tok-B"
    assert result.millis_behind_latest == 0
    assert sent(route) == ("Kinesis_20131202.GetRecords", {"ShardIterator": "tok-A", "Limit": 50})


async def test_fetch_records_of_closed_partition(client, respx_mock) -> None:
    respx_mock.post(URL).mock(
        return_value=httpx.Response(200, json={"Records": [], "NextShardIterator": None})
    )

    result = await client.fetch_records("tok-A")

    assert result.records == []
    assert result.next_token is None


@pytest.mark.parametrize(
    ("error_type", "error_class"),
    [
        ("ExpiredIteratorException", ExpiredCursor),
        ("com.amazonaws.kinesis#ExpiredIteratorException", ExpiredCursor),
        ("ProvisionedThroughputExceededException", ThroughputExceeded),
        ("ResourceNotFoundException", TransportError),
        ("InternalFailure", TransportError),
    ],
)
async def test_service_errors_are_mapped(client, respx_mock, error_type, error_class) -> None:
    respx_mock.post(URL).mock(
        return_value=httpx.Response(400, json={"__type": error_type, "message": "nope"})
    )

    with pytest.raises(error_class, match="nope"):
        await client.fetch_records("tok-A")


async def test_error_without_body_is_a_transport_error(client, respx_mock) -> None:
    respx_mock.post(URL).mock(return_value=httpx.Response(503, content=b"Service Unavailable"))

    with pytest.raises(TransportError, match="status 503") as excinfo:
        await client.list_partitions("orders", None)

    assert excinfo.value.stream_name == "orders"


async def test_connection_failure_is_a_transport_error(client, respx_mock) -> None:
    respx_mock.post(URL).mock(side_effect=httpx.ConnectError("connection refused"))

    with pytest.raises(TransportError, match="GetShardIterator request failed") as excinfo:
        await client.get_cursor("orders", "shard-0", CursorMode.TRIM_HORIZON)

    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    assert excinfo.value.partition_id == "shard-0"


@pytest.mark.parametrize(
    "content",
    [
        b"not json",
        b"[]",
        json.dumps({"Records": [{"SequenceNumber": "1", "Data": "%%%"}]}).encode(),
        json.dumps({"Records": [{"Data": ""}]}).encode(),
    ],
)
async def test_undecodable_response_is_a_transport_error(client, respx_mock, content) -> None:
    respx_mock.post(URL).mock(return_value=httpx.Response(200, content=content))

    with pytest.raises(TransportError):
        await client.fetch_records("tok-A")
