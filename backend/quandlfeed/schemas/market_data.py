from __future__ import annotations

import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class SortOrder(str, Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"


class Timeframe(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


class Transformation(str, Enum):
    NONE = "none"
    DIFF = "diff"
    RDIFF = "rdiff"
    CUMUL = "cumul"
    NORMALIZE = "normalize"


class RowLimit(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["rows"] = "rows"
    rows: int = Field(ge=1)


class DateRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["range"] = "range"
    start: datetime.date
    end: datetime.date


RowSelection = Annotated[Union[RowLimit, DateRange], Field(discriminator="kind")]


class MarketDataRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    data_source: str
    ticker: str
    selection: RowSelection
    sort_order: SortOrder = SortOrder.DESCENDING
    exclude_headers: bool = True
    specific_column: int | None = None
    timeframe: Timeframe = Timeframe.NONE
    transformation: Transformation = Transformation.NONE


class MarketDataPayload(BaseModel):
    """Body of ``{source}/{ticker}.json`` as far as the client reads it."""

    model_config = ConfigDict(extra="ignore")

    column_names: list[str] = Field(default_factory=list)
    data: list[list[Any]] = Field(default_factory=list)


class StockPrice(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["stock"] = "stock"
    date: datetime.date
    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float | None = None
    volume: float | None = None
    adjusted_close: float | None = None


class FuturesPrice(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["futures"] = "futures"
    date: datetime.date
    open: float | None = None
    high: float | None = None
    low: float | None = None
    last: float | None = None
    change: float | None = None
    settle: float | None = None
    volume: float | None = None
    open_interest: float | None = None


class CurrencyRate(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["currency"] = "currency"
    date: datetime.date
    rate: float | None = None
    high_estimate: float | None = None
    low_estimate: float | None = None


class SingleValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["value"] = "value"
    date: datetime.date
    value: float | None = None


MarketDataPoint = Annotated[
    Union[StockPrice, FuturesPrice, CurrencyRate, SingleValue],
    Field(discriminator="kind"),
]
