import pytest

from shardfeed import ConfigurationError, ReaderOptions, stream_name_from_env


def test_options_default_when_environment_is_empty() -> None:
    assert ReaderOptions.from_env({}) == ReaderOptions()


def test_options_from_environment() -> None:
    options = ReaderOptions.from_env(
        {
            "SHARDFEED_EMPTY_FETCH_BACKOFF_MS": "500",
            "SHARDFEED_MAX_CURSOR_RENEWALS": "5",
            "SHARDFEED_FETCH_LIMIT": "1000",
            "SHARDFEED_SHUTDOWN_TIMEOUT_MS": "2500",
        }
    )

    assert options.empty_fetch_backoff == 0.5
    assert options.max_cursor_renewals == 5
    assert options.fetch_limit == 1000
    assert options.shutdown_timeout == 2.5


@pytest.mark.parametrize(
    "environ",
    [
        {"SHARDFEED_FETCH_LIMIT": "lots"},
        {"SHARDFEED_FETCH_LIMIT": "0"},
        {"SHARDFEED_MAX_CURSOR_RENEWALS": "-1"},
        {"SHARDFEED_THROUGHPUT_BACKOFF_MS": "60000"},
    ],
)
def test_invalid_options_from_environment(environ) -> None:
    with pytest.raises(ConfigurationError):
        ReaderOptions.from_env(environ)


def test_stream_name_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("SHARDFEED_STREAM_NAME", "orders")

    assert stream_name_from_env() == "orders"


def test_missing_stream_name() -> None:
    with pytest.raises(ConfigurationError, match="SHARDFEED_STREAM_NAME is not set"):
        stream_name_from_env({"SHARDFEED_STREAM_NAME": "  "})
