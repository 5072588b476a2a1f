from __future__ import annotations


class ParsingError(Exception):
    """A provider payload could not be converted into domain entities."""

    def __init__(self, message: str = "Parsing failed") -> None:
        super().__init__(message)


class UnsupportedDataSourceError(LookupError):
    """No market data mapper is registered for the data source code."""

    def __init__(self, data_source: str) -> None:
        super().__init__(f"Data source {data_source!r} is not supported")
        self.data_source = data_source


class ProviderError(Exception):
    """Unexpected fault raised by the provider client.

    Expected empty outcomes are reported through ``OperationResult`` instead.
    """

    def __init__(self, message: str | None = None, cause: BaseException | None = None) -> None:
        if message is None:
            message = str(cause) if cause is not None else "Provider call failed"
        super().__init__(message)
        self.message = message
        self.cause = cause


class ProviderParsingError(ProviderError):
    """The provider answered with a payload that could not be decoded or mapped."""
