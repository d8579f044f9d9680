"""
HTTP transport used by the datasource.

The datasource only depends on the :class:`Transport` protocol, so hosts can
plug in their own request machinery. :class:`HTTPXTransport` is the default,
built on ``httpx.AsyncClient`` with an optional ``tenacity`` retry policy. It
makes a single attempt unless configured otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import Any, Mapping, MutableMapping, Optional, Protocol

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..core.logging import get_logger
from .base import TransportError

DEFAULT_TIMEOUT = 15.0


@dataclass(slots=True)
class DatasourceRequest:
    """Outgoing request as assembled by the datasource."""

    method: str
    url: str
    params: Optional[Mapping[str, Any]] = None
    data: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)
    with_credentials: bool = False


@dataclass(slots=True)
class DatasourceResponse:
    """Status code and decoded JSON body of a backend response."""

    status: int
    data: Any = None


class Transport(Protocol):
    async def request(self, request: DatasourceRequest) -> DatasourceResponse:
        """Send ``request`` and return the decoded response, raising :class:`TransportError` on failure."""


@dataclass(slots=True)
class HTTPXTransport:
    """
    Default :class:`Transport` implementation.

    Parameters
    ----------
    timeout:
        Request timeout in seconds.
    max_attempts:
        Total attempts per request. Only network-level ``httpx`` errors are retried.
    cookies:
        Browser-style credentials, sent only with requests that ask for
        credential forwarding.
    transport:
        Optional ``httpx`` transport, e.g. ``httpx.MockTransport`` in tests.
    """

    timeout: float = DEFAULT_TIMEOUT
    max_attempts: int = 1
    cookies: MutableMapping[str, str] = field(default_factory=dict)
    transport: Optional[httpx.AsyncBaseTransport] = None
    logger: LoggerAdapter = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.logger = get_logger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    def _build_client(self, request: DatasourceRequest) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers=dict(request.headers),
            cookies=dict(self.cookies) if request.with_credentials else None,
            follow_redirects=True,
            transport=self.transport,
        )

    async def _send(self, request: DatasourceRequest) -> httpx.Response:
        async with self._build_client(request) as client:
            return await client.request(
                request.method,
                request.url,
                params=request.params,
                json=request.data,
            )

    async def request(self, request: DatasourceRequest) -> DatasourceResponse:
        self.logger.debug("HTTP request", extra={"method": request.method, "url": request.url, "params": request.params})

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(httpx.TransportError),
                wait=wait_exponential(multiplier=1, min=1, max=8),
                stop=stop_after_attempt(max(1, self.max_attempts)),
                reraise=True,
            ):
                with attempt:
                    response = await self._send(request)
        except (httpx.HTTPError, httpx.InvalidURL, httpx.CookieConflict) as exc:
            self.logger.error("HTTP error during request", extra={"method": request.method, "url": request.url, "error": str(exc)})
            raise TransportError(f"HTTP error while calling {request.method} {request.url}: {exc}") from exc

        self.logger.debug("HTTP response", extra={"status_code": response.status_code, "url": str(response.url)})
        if response.is_error:
            raise TransportError(
                f"HTTP {response.status_code} error for {request.method} {response.url}: {response.text}",
                status_code=response.status_code,
            )
        return DatasourceResponse(status=response.status_code, data=_decode_body(response))


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as exc:
        # Only 200 responses promise a JSON payload.
        if response.status_code != 200:
            return None
        raise TransportError(f"Failed to decode JSON from {response.url}: {exc}", status_code=response.status_code) from exc
