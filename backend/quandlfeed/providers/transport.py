from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from http.client import HTTPException
from typing import Any, Protocol
from urllib.error import HTTPError
from urllib.parse import urlencode
from urllib.request import Request, urlopen


class ResponseStatus(str, Enum):
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class TransportResponse:
    status: ResponseStatus
    status_code: int | None = None
    body: str = ""
    error_message: str | None = None
    error: BaseException | None = None

    @property
    def completed(self) -> bool:
        return self.status is ResponseStatus.COMPLETED


class Transport(Protocol):
    def execute(self, url: str, params: dict[str, Any] | None = None) -> TransportResponse: ...


def build_url(url: str, params: dict[str, Any] | None = None) -> str:
    if not params:
        return url
    return f"{url}?{urlencode(params)}"


class UrllibTransport:
    """Blocking HTTP GET with one connection per call.

    Any answer from the server, HTTP error statuses included, is a completed
    response. Network failures are reported with ``ResponseStatus.ERROR``.
    """

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout

    def execute(self, url: str, params: dict[str, Any] | None = None) -> TransportResponse:
        request = Request(build_url(url, params), headers={"Accept": "application/json, text/html"})
        try:
            with urlopen(request, timeout=self.timeout) as response:
                body = response.read().decode("utf-8")
                return TransportResponse(
                    status=ResponseStatus.COMPLETED,
                    status_code=response.status,
                    body=body,
                )
        except HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")
            return TransportResponse(
                status=ResponseStatus.COMPLETED,
                status_code=exc.code,
                body=body,
            )
        except (OSError, HTTPException) as exc:
            # URLError, timeouts and dropped connections all land here.
            reason = getattr(exc, "reason", exc)
            return TransportResponse(
                status=ResponseStatus.ERROR,
                error_message=str(reason),
                error=exc,
            )
