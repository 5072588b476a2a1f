from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PagingOptions(BaseModel):
    per_page: int = 20
    page_number: int = 1


class SearchDocument(BaseModel):
    """One entry of the ``docs`` array returned by ``datasets.json``."""

    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    source_code: str = ""
    code: str = ""
    name: str = ""
    description: str | None = None
    frequency: str | None = None
    from_date: str | None = None
    to_date: str | None = None
    column_names: list[str] = Field(default_factory=list)


class SearchResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total_count: int = 0
    current_page: int = 1
    per_page: int = 0
    docs: list[SearchDocument] = Field(default_factory=list)


class Ticker(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    source_code: str
    name: str
    description: str | None = None
    frequency: str | None = None
    from_date: str | None = None
    to_date: str | None = None
    column_names: list[str] = Field(default_factory=list)


class DataSet(BaseModel):
    tickers: list[Ticker] = Field(default_factory=list)
    total_count: int = 0
    current_page: int = 1
    per_page: int = 0
