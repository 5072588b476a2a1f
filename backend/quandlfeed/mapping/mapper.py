from __future__ import annotations

import datetime
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from quandlfeed.exceptions import ParsingError, UnsupportedDataSourceError
from quandlfeed.schemas.dataset import DataSet, SearchResponse, Ticker
from quandlfeed.schemas.market_data import (
    CurrencyRate,
    FuturesPrice,
    MarketDataPoint,
    SingleValue,
    StockPrice,
)


class RowReader:
    """Reads cells of one ``data`` row.

    With ``column_names`` a cell is found by its column name, so a narrowed
    response (``column=N``) still lands in the right field. Without them the
    source's full column layout is assumed.
    """

    def __init__(self, row: Sequence[Any], column_names: Sequence[str] | None = None) -> None:
        self.row = row
        self._positions: dict[str, int] | None = None
        if column_names:
            self._positions = {
                name.strip().casefold(): index for index, name in enumerate(column_names)
            }

    def _index(self, position: int, names: tuple[str, ...]) -> int | None:
        if self._positions is None:
            return position
        for name in names:
            index = self._positions.get(name.casefold())
            if index is not None:
                return index
        return None

    def date(self) -> datetime.date:
        if not self.row:
            raise ParsingError("Market data row is empty")
        try:
            return datetime.date.fromisoformat(str(self.row[0]))
        except ValueError as exc:
            raise ParsingError(f"Invalid date value {self.row[0]!r}") from exc

    def number(self, position: int, *names: str) -> float | None:
        index = self._index(position, names)
        if index is None or index >= len(self.row):
            return None
        value = self.row[index]
        if value is None or value == "":
            return None
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise ParsingError(f"Invalid numeric value {value!r} in column {index}") from exc


RowMapper = Callable[[RowReader], MarketDataPoint]

_MARKET_DATA_MAPPERS: dict[str, RowMapper] = {}


def register_market_data_mapper(*codes: str) -> Callable[[RowMapper], RowMapper]:
    """Register a row mapper for one or more data source codes."""

    def decorator(func: RowMapper) -> RowMapper:
        for code in codes:
            _MARKET_DATA_MAPPERS[code.upper()] = func
        return func

    return decorator


def supported_data_sources() -> list[str]:
    return sorted(_MARKET_DATA_MAPPERS)


@register_market_data_mapper("WIKI")
def _wiki_row(row: RowReader) -> StockPrice:
    # Date, Open, High, Low, Close, Volume, Ex-Dividend, Split Ratio, Adj. Open,
    # Adj. High, Adj. Low, Adj. Close, Adj. Volume
    return StockPrice(
        date=row.date(),
        open=row.number(1, "Open"),
        high=row.number(2, "High"),
        low=row.number(3, "Low"),
        close=row.number(4, "Close"),
        volume=row.number(5, "Volume"),
        adjusted_close=row.number(11, "Adj. Close"),
    )


@register_market_data_mapper("YAHOO")
def _yahoo_row(row: RowReader) -> StockPrice:
    return StockPrice(
        date=row.date(),
        open=row.number(1, "Open"),
        high=row.number(2, "High"),
        low=row.number(3, "Low"),
        close=row.number(4, "Close"),
        volume=row.number(5, "Volume"),
        adjusted_close=row.number(6, "Adjusted Close", "Adj. Close"),
    )


@register_market_data_mapper("GOOG")
def _goog_row(row: RowReader) -> StockPrice:
    return StockPrice(
        date=row.date(),
        open=row.number(1, "Open"),
        high=row.number(2, "High"),
        low=row.number(3, "Low"),
        close=row.number(4, "Close"),
        volume=row.number(5, "Volume"),
    )


@register_market_data_mapper("CHRIS")
def _chris_row(row: RowReader) -> FuturesPrice:
    return FuturesPrice(
        date=row.date(),
        open=row.number(1, "Open"),
        high=row.number(2, "High"),
        low=row.number(3, "Low"),
        last=row.number(4, "Last"),
        change=row.number(5, "Change"),
        settle=row.number(6, "Settle"),
        volume=row.number(7, "Volume"),
        open_interest=row.number(8, "Previous Day Open Interest", "Prev. Day Open Interest", "Open Interest"),
    )


@register_market_data_mapper("CURRFX")
def _currfx_row(row: RowReader) -> CurrencyRate:
    return CurrencyRate(
        date=row.date(),
        rate=row.number(1, "Rate"),
        high_estimate=row.number(2, "High (est)"),
        low_estimate=row.number(3, "Low (est)"),
    )


@register_market_data_mapper("FRED")
def _fred_row(row: RowReader) -> SingleValue:
    return SingleValue(date=row.date(), value=row.number(1, "Value"))


def _has_observation(point: MarketDataPoint) -> bool:
    values = point.model_dump(exclude={"kind", "date"})
    return any(value is not None for value in values.values())


class QuandlMapper:
    """Converts raw Quandl payloads into domain entities. Performs no I/O."""

    def __init__(self, registry: Mapping[str, RowMapper] | None = None) -> None:
        self._registry = _MARKET_DATA_MAPPERS if registry is None else registry

    def to_market_data(
        self,
        data_source: str,
        row: Sequence[Any],
        column_names: Sequence[str] | None = None,
    ) -> MarketDataPoint | None:
        """Map one ``data`` row; ``None`` when the row holds no observation."""
        row_mapper = self._registry.get(data_source.upper())
        if row_mapper is None:
            raise UnsupportedDataSourceError(data_source)
        point = row_mapper(RowReader(row, column_names))
        if not _has_observation(point):
            return None
        return point

    def to_data_set(self, response: SearchResponse) -> DataSet:
        tickers = [
            Ticker(
                code=doc.code,
                source_code=doc.source_code,
                name=doc.name,
                description=doc.description,
                frequency=doc.frequency,
                from_date=doc.from_date,
                to_date=doc.to_date,
                column_names=doc.column_names,
            )
            for doc in response.docs
        ]
        return DataSet(
            tickers=tickers,
            total_count=response.total_count,
            current_page=response.current_page,
            per_page=response.per_page,
        )
