from __future__ import annotations

import logging
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from quandlfeed.config.settings import Settings
from quandlfeed.exceptions import (
    ParsingError,
    ProviderError,
    ProviderParsingError,
    UnsupportedDataSourceError,
)
from quandlfeed.mapping.mapper import QuandlMapper
from quandlfeed.parsing.catalog import parse_data_sources
from quandlfeed.providers.transport import Transport, TransportResponse, UrllibTransport
from quandlfeed.schemas.data_source import DataSource
from quandlfeed.schemas.dataset import DataSet, PagingOptions, SearchResponse
from quandlfeed.schemas.market_data import (
    MarketDataPayload,
    MarketDataPoint,
    MarketDataRequest,
    RowLimit,
)
from quandlfeed.schemas.result import OperationResult

logger = logging.getLogger(__name__)

NO_DATA_FOUND = "No data found"
NO_MARKET_DATA_FOUND = "No market data found for current ticker"
CATALOG_PAGE_CHANGED = "Can't load data sources list from web site"
UNSUPPORTED_DATA_SOURCE = "This datasource is not supported"

_SEARCH_PATH = "datasets.json"

ModelT = TypeVar("ModelT", bound=BaseModel)


class TransportFailurePolicy(str, Enum):
    RAISE = "raise"
    REPORT = "report"


def _flag(value: bool) -> str:
    return "true" if value else "false"


def build_market_data_params(request: MarketDataRequest, auth_token: str | None) -> dict[str, Any]:
    params: dict[str, Any] = {
        "sort_order": request.sort_order.value,
        "exclude_headers": _flag(request.exclude_headers),
    }
    if isinstance(request.selection, RowLimit):
        params["rows"] = request.selection.rows
    else:
        params["trim_start"] = request.selection.start.isoformat()
        params["trim_end"] = request.selection.end.isoformat()
    if request.specific_column is not None:
        params["column"] = request.specific_column
    params["collapse"] = request.timeframe.value.lower()
    params["transformation"] = request.transformation.value.lower()
    if auth_token:
        params["auth_token"] = auth_token
    return params


def build_ticker_params(
    query: str, is_search: bool, paging: PagingOptions, auth_token: str | None
) -> dict[str, Any]:
    if is_search:
        params: dict[str, Any] = {"query": query}
    else:
        params = {"query": "*", "source_code": query}
    params["per_page"] = paging.per_page
    params["page"] = paging.page_number
    if auth_token:
        params["auth_token"] = auth_token
    return params


def decode_json(model: type[ModelT], body: str) -> ModelT:
    try:
        return model.model_validate_json(body)
    except ValidationError as exc:
        raise ParsingError() from exc


class QuandlProvider:
    """Quandl client. Stateless; every call issues at most one request."""

    transport_failure_policies: dict[str, TransportFailurePolicy] = {
        "get_all_financial_data_sources": TransportFailurePolicy.RAISE,
        "get_market_data": TransportFailurePolicy.RAISE,
        "get_tickers": TransportFailurePolicy.REPORT,
    }

    def __init__(
        self,
        settings: Settings,
        mapper: QuandlMapper | None = None,
        transport: Transport | None = None,
    ) -> None:
        self.settings = settings
        self.mapper = mapper or QuandlMapper()
        self.transport = transport or UrllibTransport(timeout=settings.request_timeout_seconds)

    def _on_transport_failure(self, operation: str, response: TransportResponse) -> OperationResult:
        message = response.error_message or "Request failed"
        logger.error("%s: transport error: %s", operation, message, exc_info=response.error)
        if self.transport_failure_policies[operation] is TransportFailurePolicy.RAISE:
            raise ProviderError(message, response.error)
        return OperationResult.failure(message)

    def get_financial_data_sources(self) -> OperationResult[list[DataSource]]:
        data_sources = list(self.settings.data_sources)
        if data_sources:
            return OperationResult.success(data_sources)
        return OperationResult.failure(NO_DATA_FOUND)

    def get_all_financial_data_sources(self) -> OperationResult[list[DataSource]]:
        try:
            response = self.transport.execute(self.settings.data_sources_url)
            if not response.completed:
                return self._on_transport_failure("get_all_financial_data_sources", response)

            data_sources = parse_data_sources(response.body, self.settings.data_sources_anchor)
            if data_sources is None:
                return OperationResult.failure(CATALOG_PAGE_CHANGED)
            if not data_sources:
                return OperationResult.failure(NO_DATA_FOUND)
            return OperationResult.success(data_sources)
        except ProviderError:
            raise
        except ParsingError as exc:
            logger.exception("Failed to parse data sources page")
            raise ProviderParsingError(str(exc), exc) from exc
        except Exception as exc:
            logger.exception("Failed to load data sources page")
            raise ProviderError(cause=exc) from exc

    def get_market_data(self, request: MarketDataRequest) -> OperationResult[list[MarketDataPoint]]:
        base_url = self.settings.base_query_url.rstrip("/")
        url = f"{base_url}/{request.data_source}/{request.ticker}.json"
        params = build_market_data_params(request, self.settings.auth_token)
        try:
            response = self.transport.execute(url, params)
            if not response.completed:
                return self._on_transport_failure("get_market_data", response)

            payload = decode_json(MarketDataPayload, response.body)
            if not payload.data or not payload.column_names:
                return OperationResult.failure(NO_MARKET_DATA_FOUND)

            points: list[MarketDataPoint] = []
            for row in payload.data:
                point = self.mapper.to_market_data(request.data_source, row, payload.column_names)
                if point is not None:
                    points.append(point)
            if not points:
                return OperationResult.failure(NO_DATA_FOUND)
            return OperationResult.success(points)
        except ProviderError:
            raise
        except UnsupportedDataSourceError as exc:
            logger.exception("Unsupported data source %s", request.data_source)
            raise ProviderError(UNSUPPORTED_DATA_SOURCE, exc) from exc
        except ParsingError as exc:
            logger.exception("Failed to parse market data for %s/%s", request.data_source, request.ticker)
            raise ProviderParsingError(str(exc), exc) from exc
        except Exception as exc:
            logger.exception("Failed to load market data for %s/%s", request.data_source, request.ticker)
            raise ProviderError(cause=exc) from exc

    def get_tickers(self, query: str, is_search: bool, paging: PagingOptions) -> OperationResult[DataSet]:
        url = f"{self.settings.search_url.rstrip('/')}/{_SEARCH_PATH}"
        params = build_ticker_params(query, is_search, paging, self.settings.auth_token)
        try:
            response = self.transport.execute(url, params)
            if not response.completed:
                return self._on_transport_failure("get_tickers", response)

            search_response = decode_json(SearchResponse, response.body)
            data_set = self.mapper.to_data_set(search_response)
            if is_search:
                data_set = data_set.model_copy(update={"total_count": len(data_set.tickers)})
            return OperationResult.success(data_set)
        except ProviderError:
            raise
        except ParsingError as exc:
            logger.exception("Failed to parse ticker search response for %r", query)
            raise ProviderParsingError(str(exc), exc) from exc
        except Exception as exc:
            logger.exception("Failed to load tickers for %r", query)
            raise ProviderError(cause=exc) from exc
