import pytest

from shardfeed import (
    EARLIEST,
    NO_POSITION,
    DiscoveryError,
    Partition,
    PartitionDiscovery,
    PartitionPage,
    SequenceNumber,
    Split,
    SplitEnumerator,
)


@pytest.mark.parametrize("page_count", [1, 2, 5])
async def test_list_splits_collects_every_page(service, page_count) -> None:
    """Test that list_splits follows continuation tokens until the last page."""
    # arrange
    service.pages = [
        PartitionPage(
            [Partition(f"shard-{page}-{i}") for i in range(3)],
            str(page + 1) if page + 1 < page_count else None,
        )
        for page in range(page_count)
    ]
    discovery = PartitionDiscovery(service, "orders")

    # act
    splits = await discovery.list_splits()

    # assert
    assert splits == [
        Split(f"shard-{page}-{i}", NO_POSITION, NO_POSITION)
        for page in range(page_count)
        for i in range(3)
    ]
    assert service.list_calls == [None] + [str(page) for page in range(1, page_count)]


async def test_list_splits_returns_each_partition_once(service) -> None:
    service.pages = [
        PartitionPage([Partition("shard-0"), Partition("shard-1")], "1"),
        PartitionPage([Partition("shard-1"), Partition("shard-2")], None),
    ]

    splits = await PartitionDiscovery(service, "orders").list_splits()

    assert [split.partition_id for split in splits] == ["shard-0", "shard-1", "shard-2"]


@pytest.mark.parametrize(
    "pages",
    [
        [PartitionPage([], None)],
        [PartitionPage([Partition("shard-0")], "1"), PartitionPage([], None)],
    ],
)
async def test_page_without_partitions_fails_discovery(service, pages) -> None:
    service.pages = pages

    with pytest.raises(DiscoveryError) as excinfo:
        await PartitionDiscovery(service, "orders").list_splits()

    assert str(excinfo.value) == "no partitions in stream (stream orders)"


async def test_discovery_is_a_split_enumerator(service) -> None:
    assert isinstance(PartitionDiscovery(service, "orders"), SplitEnumerator)


def test_split_bounds_are_filled_in_by_copy() -> None:
    split = Split("shard-0")

    bounded = split.with_bounds(EARLIEST, SequenceNumber("10"))

    assert bounded == Split("shard-0", EARLIEST, SequenceNumber("10"))
    assert split.start_position is NO_POSITION
