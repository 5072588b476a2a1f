import datetime
from typing import TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query, status

from quandlfeed.config.settings import settings
from quandlfeed.exceptions import ProviderError
from quandlfeed.providers.quandl import QuandlProvider
from quandlfeed.schemas.data_source import DataSource
from quandlfeed.schemas.dataset import DataSet, PagingOptions
from quandlfeed.schemas.market_data import (
    DateRange,
    MarketDataPoint,
    MarketDataRequest,
    RowLimit,
    SortOrder,
    Timeframe,
    Transformation,
)
from quandlfeed.schemas.result import OperationResult

router = APIRouter()

T = TypeVar("T")


def get_provider() -> QuandlProvider:
    return QuandlProvider(settings)


def _unwrap(result: OperationResult[T]) -> T:
    if not result.succeeded:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": result.message},
        )
    return result.payload


def _raise_provider_error(exc: ProviderError) -> None:
    raise HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"message": exc.message},
    ) from exc


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/data-sources", response_model=list[DataSource])
def data_sources_endpoint(provider: QuandlProvider = Depends(get_provider)) -> list[DataSource]:
    return _unwrap(provider.get_financial_data_sources())


@router.get("/data-sources/live", response_model=list[DataSource])
def live_data_sources_endpoint(
    provider: QuandlProvider = Depends(get_provider),
) -> list[DataSource]:
    try:
        result = provider.get_all_financial_data_sources()
    except ProviderError as exc:
        _raise_provider_error(exc)
    return _unwrap(result)


@router.get("/market-data/{data_source}/{ticker}", response_model=list[MarketDataPoint])
def market_data_endpoint(
    data_source: str,
    ticker: str,
    rows: int | None = Query(default=None, ge=1),
    start: datetime.date | None = None,
    end: datetime.date | None = None,
    sort_order: SortOrder = SortOrder.DESCENDING,
    exclude_headers: bool = True,
    column: int | None = None,
    timeframe: Timeframe = Timeframe.NONE,
    transformation: Transformation = Transformation.NONE,
    provider: QuandlProvider = Depends(get_provider),
) -> list[MarketDataPoint]:
    # A row limit wins over a date range when both are given.
    if rows is not None:
        selection = RowLimit(rows=rows)
    elif start is not None and end is not None:
        selection = DateRange(start=start, end=end)
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Either rows or both start and end are required."},
        )

    request = MarketDataRequest(
        data_source=data_source.upper(),
        ticker=ticker.upper(),
        selection=selection,
        sort_order=sort_order,
        exclude_headers=exclude_headers,
        specific_column=column,
        timeframe=timeframe,
        transformation=transformation,
    )
    try:
        result = provider.get_market_data(request)
    except ProviderError as exc:
        _raise_provider_error(exc)
    return _unwrap(result)


@router.get("/tickers", response_model=DataSet)
def tickers_endpoint(
    query: str,
    search: bool = True,
    per_page: int = 20,
    page: int = 1,
    provider: QuandlProvider = Depends(get_provider),
) -> DataSet:
    paging = PagingOptions(per_page=per_page, page_number=page)
    try:
        result = provider.get_tickers(query, search, paging)
    except ProviderError as exc:
        _raise_provider_error(exc)
    return _unwrap(result)
