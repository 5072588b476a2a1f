from __future__ import annotations

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from quandlfeed.schemas.data_source import DataSource


def _default_data_sources() -> List[DataSource]:
    return [
        DataSource(
            name="Wiki EOD Stock Prices",
            count=3194,
            description="End of day stock prices, dividends and splits for US companies.",
            code="WIKI",
        ),
        DataSource(
            name="Google Finance",
            count=22000,
            description="Daily stock prices from Google Finance.",
            code="GOOG",
        ),
        DataSource(
            name="Yahoo Finance",
            count=30000,
            description="Daily stock prices and adjusted closes from Yahoo Finance.",
            code="YAHOO",
        ),
        DataSource(
            name="Wiki Continuous Futures",
            count=600,
            description="Continuous contracts for futures traded on major exchanges.",
            code="CHRIS",
        ),
        DataSource(
            name="Currency Exchange Rates",
            count=9000,
            description="Daily exchange rates for currency pairs.",
            code="CURRFX",
        ),
        DataSource(
            name="Federal Reserve Economic Data",
            count=61000,
            description="US economic time series from the Federal Reserve Bank of St. Louis.",
            code="FRED",
        ),
    ]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="QUANDLFEED_",
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_query_url: str = "https://www.quandl.com/api/v1/datasets/"
    search_url: str = "https://www.quandl.com/api/v1/"
    data_sources_url: str = "https://www.quandl.com/resources/data-sources"
    data_sources_anchor: str = "Financial-Data"
    auth_token: str | None = None
    request_timeout_seconds: float = 30.0
    log_level: str = "INFO"

    data_sources: List[DataSource] = Field(default_factory=_default_data_sources)


settings = Settings()
