import datetime
import json
from http.client import RemoteDisconnected
from pathlib import Path
from unittest.mock import patch

import pytest

from quandlfeed.config.settings import Settings
from quandlfeed.exceptions import ProviderError, ProviderParsingError
from quandlfeed.providers.quandl import (
    QuandlProvider,
    TransportFailurePolicy,
    build_market_data_params,
)
from quandlfeed.providers.transport import ResponseStatus, TransportResponse, UrllibTransport
from quandlfeed.schemas.data_source import DataSource
from quandlfeed.schemas.dataset import PagingOptions
from quandlfeed.schemas.market_data import (
    DateRange,
    MarketDataRequest,
    RowLimit,
    SortOrder,
    StockPrice,
    Timeframe,
    Transformation,
)

CATALOG_HTML = (Path(__file__).parent / "fixtures" / "data_sources.html").read_text(encoding="utf-8")


class FakeTransport:
    def __init__(self, response: TransportResponse) -> None:
        self.response = response
        self.calls: list[tuple[str, dict | None]] = []

    def execute(self, url: str, params: dict | None = None) -> TransportResponse:
        self.calls.append((url, params))
        return self.response


def completed(body) -> TransportResponse:
    if not isinstance(body, str):
        body = json.dumps(body)
    return TransportResponse(status=ResponseStatus.COMPLETED, status_code=200, body=body)


def transport_error(message: str = "Unable to connect to the remote server") -> TransportResponse:
    return TransportResponse(
        status=ResponseStatus.ERROR,
        error_message=message,
        error=ConnectionRefusedError(message),
    )


def build_settings(**overrides) -> Settings:
    values = {
        "base_query_url": "https://quandl.test/api/v1/datasets/",
        "search_url": "https://quandl.test/api/v1/",
        "data_sources_url": "https://quandl.test/resources/data-sources",
        "auth_token": "token-123",
    }
    values.update(overrides)
    return Settings(**values)


def build_provider(response: TransportResponse, **overrides) -> tuple[QuandlProvider, FakeTransport]:
    transport = FakeTransport(response)
    return QuandlProvider(build_settings(**overrides), transport=transport), transport


def build_request(**overrides) -> MarketDataRequest:
    values = {
        "data_source": "WIKI",
        "ticker": "AAPL",
        "selection": DateRange(start=datetime.date(2014, 1, 1), end=datetime.date(2014, 1, 31)),
    }
    values.update(overrides)
    return MarketDataRequest(**values)


WIKI_PAYLOAD = {
    "source_code": "WIKI",
    "code": "AAPL",
    "column_names": ["Date", "Open", "High", "Low", "Close", "Volume"],
    "data": [
        ["2014-01-03", 552.86, 553.7, 540.43, 540.98, 98116900.0],
        ["2014-01-02", 555.68, 557.03, 552.021, 553.13, 58671200.0],
    ],
}


# Known data sources


def test_known_data_sources_return_seed_catalog() -> None:
    catalog = [DataSource(name="Foo", count=1, description="Bar", code="FOO")]
    provider, transport = build_provider(completed(""), data_sources=catalog)

    result = provider.get_financial_data_sources()

    assert result.succeeded is True
    assert result.payload == catalog
    assert transport.calls == []


def test_known_data_sources_empty_catalog() -> None:
    provider, _ = build_provider(completed(""), data_sources=[])

    result = provider.get_financial_data_sources()

    assert result.succeeded is False
    assert result.message == "No data found"
    assert result.payload is None


# Live catalog


def test_live_data_sources_scrapes_catalog_page() -> None:
    provider, transport = build_provider(completed(CATALOG_HTML))

    result = provider.get_all_financial_data_sources()

    assert result.succeeded is True
    assert [source.code for source in result.payload] == ["WIKI", "FRED"]
    assert result.payload[0].count == 3194
    assert transport.calls == [("https://quandl.test/resources/data-sources", None)]


def test_live_data_sources_missing_anchor() -> None:
    provider, _ = build_provider(completed("<html><body><p>Moved</p></body></html>"))

    result = provider.get_all_financial_data_sources()

    assert result.succeeded is False
    assert result.message == "Can't load data sources list from web site"


def test_live_data_sources_without_rows() -> None:
    html = '<h2 id="Financial-Data">x</h2>\n<table><thead><tr><th>Name</th></tr></thead></table>'
    provider, _ = build_provider(completed(html))

    result = provider.get_all_financial_data_sources()

    assert result.succeeded is False
    assert result.message == "No data found"


def test_live_data_sources_malformed_row_raises_parsing_fault() -> None:
    html = '<h2 id="Financial-Data">x</h2>\n<table><tbody><tr>\n<td>Foo</td>\n<td>many</td>\n<td>d</td>\n<td>-</td>\n<td>FOO</td>\n</tr></tbody></table>'
    provider, _ = build_provider(completed(html))

    with pytest.raises(ProviderParsingError):
        provider.get_all_financial_data_sources()


def test_live_data_sources_transport_error_raises() -> None:
    provider, _ = build_provider(transport_error("Name or service not known"))

    with pytest.raises(ProviderError) as excinfo:
        provider.get_all_financial_data_sources()

    assert excinfo.value.message == "Name or service not known"


# Market data


def test_market_data_maps_rows_in_order() -> None:
    provider, transport = build_provider(completed(WIKI_PAYLOAD))

    result = provider.get_market_data(build_request())

    assert result.succeeded is True
    assert [point.date for point in result.payload] == [
        datetime.date(2014, 1, 3),
        datetime.date(2014, 1, 2),
    ]
    assert all(isinstance(point, StockPrice) for point in result.payload)
    assert result.payload[0].close == 540.98
    url, _ = transport.calls[0]
    assert url == "https://quandl.test/api/v1/datasets/WIKI/AAPL.json"


def test_market_data_params_for_date_range() -> None:
    request = build_request(
        sort_order=SortOrder.ASCENDING,
        exclude_headers=False,
        timeframe=Timeframe.WEEKLY,
        transformation=Transformation.RDIFF,
    )

    params = build_market_data_params(request, "token-123")

    assert params == {
        "sort_order": "asc",
        "exclude_headers": "false",
        "trim_start": "2014-01-01",
        "trim_end": "2014-01-31",
        "collapse": "weekly",
        "transformation": "rdiff",
        "auth_token": "token-123",
    }


def test_market_data_params_row_limit_excludes_date_range() -> None:
    request = build_request(selection=RowLimit(rows=5), specific_column=4)

    params = build_market_data_params(request, None)

    assert params["rows"] == 5
    assert params["column"] == 4
    assert "trim_start" not in params
    assert "trim_end" not in params
    assert "auth_token" not in params


def test_market_data_request_accepts_tagged_selection() -> None:
    request = MarketDataRequest.model_validate(
        {"data_source": "WIKI", "ticker": "AAPL", "selection": {"kind": "rows", "rows": 10}}
    )

    assert request.selection == RowLimit(rows=10)


@pytest.mark.parametrize(
    "payload",
    [
        {"column_names": ["Date", "Value"], "data": []},
        {"column_names": [], "data": [["2014-01-01", 1.0]]},
        {"error": "Requested entity does not exist."},
    ],
)
def test_market_data_empty_payload(payload) -> None:
    provider, _ = build_provider(completed(payload))

    result = provider.get_market_data(build_request(data_source="FRED", ticker="GDP"))

    assert result.succeeded is False
    assert result.message == "No market data found for current ticker"


def test_market_data_rows_without_values() -> None:
    payload = {"column_names": ["Date", "Value"], "data": [["2014-01-01", None], ["2013-12-01", None]]}
    provider, _ = build_provider(completed(payload))

    result = provider.get_market_data(build_request(data_source="FRED", ticker="GDP"))

    assert result.succeeded is False
    assert result.message == "No data found"


def test_market_data_transport_error_raises() -> None:
    message = "The operation has timed out"
    provider, _ = build_provider(transport_error(message))

    with pytest.raises(ProviderError) as excinfo:
        provider.get_market_data(build_request())

    assert excinfo.value.message == message
    assert isinstance(excinfo.value.cause, ConnectionRefusedError)


def test_market_data_unsupported_source_raises() -> None:
    provider, _ = build_provider(completed(WIKI_PAYLOAD))

    with pytest.raises(ProviderError) as excinfo:
        provider.get_market_data(build_request(data_source="UNKNOWN"))

    assert excinfo.value.message == "This datasource is not supported"
    assert not isinstance(excinfo.value, ProviderParsingError)


def test_market_data_malformed_json_raises_parsing_fault() -> None:
    provider, _ = build_provider(completed("<html>Service unavailable</html>"))

    with pytest.raises(ProviderParsingError) as excinfo:
        provider.get_market_data(build_request())

    assert excinfo.value.message == "Parsing failed"


def test_market_data_bad_row_raises_parsing_fault() -> None:
    payload = {"column_names": ["Date", "Value"], "data": [["yesterday", 1.0]]}
    provider, _ = build_provider(completed(payload))

    with pytest.raises(ProviderParsingError):
        provider.get_market_data(build_request(data_source="FRED", ticker="GDP"))


def test_market_data_is_idempotent() -> None:
    provider, _ = build_provider(completed(WIKI_PAYLOAD))

    first = provider.get_market_data(build_request())
    second = provider.get_market_data(build_request())

    assert first == second
    assert first.model_dump_json() == second.model_dump_json()


# Tickers


SEARCH_PAYLOAD = {
    "total_count": 812,
    "current_page": 1,
    "per_page": 2,
    "docs": [
        {"source_code": "WIKI", "code": "AAPL", "name": "Apple Inc."},
        {"source_code": "GOOG", "code": "NASDAQ_AAPL", "name": "Apple Inc. (AAPL)"},
    ],
}


def test_tickers_search_counts_returned_tickers() -> None:
    provider, transport = build_provider(completed(SEARCH_PAYLOAD))

    result = provider.get_tickers("apple", True, PagingOptions(per_page=2, page_number=1))

    assert result.succeeded is True
    assert result.payload.total_count == 2
    url, params = transport.calls[0]
    assert url == "https://quandl.test/api/v1/datasets.json"
    assert params == {"query": "apple", "per_page": 2, "page": 1, "auth_token": "token-123"}


def test_tickers_source_listing_keeps_provider_total() -> None:
    provider, transport = build_provider(completed(SEARCH_PAYLOAD))

    result = provider.get_tickers("WIKI", False, PagingOptions(per_page=2, page_number=3))

    assert result.payload.total_count == 812
    _, params = transport.calls[0]
    assert params["query"] == "*"
    assert params["source_code"] == "WIKI"
    assert params["page"] == 3


def test_tickers_transport_error_returns_failure() -> None:
    message = "The operation has timed out"
    provider, _ = build_provider(transport_error(message))

    result = provider.get_tickers("apple", True, PagingOptions())

    assert result.succeeded is False
    assert result.message == message


def test_tickers_malformed_json_raises_parsing_fault() -> None:
    provider, _ = build_provider(completed("not json"))

    with pytest.raises(ProviderParsingError):
        provider.get_tickers("apple", True, PagingOptions())


def test_transport_failure_policies() -> None:
    policies = QuandlProvider.transport_failure_policies

    assert policies["get_market_data"] is TransportFailurePolicy.RAISE
    assert policies["get_all_financial_data_sources"] is TransportFailurePolicy.RAISE
    assert policies["get_tickers"] is TransportFailurePolicy.REPORT


def test_faults_are_logged_once(caplog) -> None:
    provider, _ = build_provider(completed(WIKI_PAYLOAD))

    with caplog.at_level("ERROR", logger="quandlfeed.providers.quandl"):
        with pytest.raises(ProviderError):
            provider.get_market_data(build_request(data_source="UNKNOWN"))

    assert len(caplog.records) == 1
    assert "UNKNOWN" in caplog.records[0].getMessage()


def test_tickers_dropped_connection_returns_failure() -> None:
    settings = build_settings()
    provider = QuandlProvider(settings, transport=UrllibTransport(timeout=1))
    error = RemoteDisconnected("Remote end closed connection without response")

    with patch("quandlfeed.providers.transport.urlopen", side_effect=error):
        result = provider.get_tickers("apple", True, PagingOptions())

    assert result.succeeded is False
    assert result.message == "Remote end closed connection without response"


def test_market_data_dropped_connection_raises() -> None:
    provider = QuandlProvider(build_settings(), transport=UrllibTransport(timeout=1))
    error = RemoteDisconnected("Remote end closed connection without response")

    with patch("quandlfeed.providers.transport.urlopen", side_effect=error):
        with pytest.raises(ProviderError) as excinfo:
            provider.get_market_data(build_request())

    assert excinfo.value.message == "Remote end closed connection without response"
    assert excinfo.value.cause is error


def test_market_data_single_column_maps_by_name() -> None:
    payload = {"column_names": ["Date", "Close"], "data": [["2014-01-02", 553.13]]}
    provider, transport = build_provider(completed(payload))

    result = provider.get_market_data(build_request(selection=RowLimit(rows=1), specific_column=4))

    assert result.payload == [StockPrice(date=datetime.date(2014, 1, 2), close=553.13)]
    _, params = transport.calls[0]
    assert params["column"] == 4


def test_live_data_sources_is_idempotent() -> None:
    provider, _ = build_provider(completed(CATALOG_HTML))

    first = provider.get_all_financial_data_sources()
    second = provider.get_all_financial_data_sources()

    assert first == second
    assert first.model_dump_json() == second.model_dump_json()


def test_live_data_sources_failure_is_idempotent() -> None:
    provider, _ = build_provider(completed("<html><body></body></html>"))

    first = provider.get_all_financial_data_sources()
    second = provider.get_all_financial_data_sources()

    assert first == second
    assert first.message == "Can't load data sources list from web site"


@pytest.mark.parametrize("is_search", [True, False])
def test_tickers_are_idempotent(is_search) -> None:
    provider, transport = build_provider(completed(SEARCH_PAYLOAD))

    first = provider.get_tickers("WIKI", is_search, PagingOptions(per_page=2, page_number=1))
    second = provider.get_tickers("WIKI", is_search, PagingOptions(per_page=2, page_number=1))

    assert first == second
    assert first.model_dump_json() == second.model_dump_json()
    assert transport.calls[0] == transport.calls[1]


def test_tickers_transport_failure_is_idempotent() -> None:
    provider, _ = build_provider(transport_error("The operation has timed out"))

    first = provider.get_tickers("apple", True, PagingOptions())
    second = provider.get_tickers("apple", True, PagingOptions())

    assert first == second
