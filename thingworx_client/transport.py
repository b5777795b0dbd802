"""HTTP transport used by connections to reach the server."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)

JSON_HEADERS: dict[str, str] = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


@dataclass(frozen=True)
class RequestOptions:
    """Method, headers and body of an outgoing request."""
    method: str
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None

    def with_headers(self, **headers: str) -> RequestOptions:
        """Return a copy with the given headers added."""
        return replace(self, headers={**self.headers, **headers})


class Transport(Protocol):
    """
    Anything able to send a request and return an httpx-like response.

    The response must expose is_success, status_code, reason_phrase,
    text and json().
    """

    async def send(self, url: str, options: RequestOptions) -> Any:
        ...


class HttpxTransport:
    """
    Transport backed by httpx.AsyncClient.

    A client is opened per request and closed once the body has been read;
    nothing is pooled between requests.

    base_url resolves the relative URLs of a same-origin server ("").

    Usage:
        transport = HttpxTransport(timeout=10)

        # Route requests to an in-process handler (tests)
        transport = HttpxTransport(transport=httpx.MockTransport(handler))
    """

    def __init__(
        self,
        timeout: float = 30.0,
        verify: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
        base_url: str = "",
    ):
        self.timeout = timeout
        self.verify = verify
        self.base_url = base_url
        self._transport = transport

    async def send(self, url: str, options: RequestOptions) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            verify=self.verify,
            transport=self._transport,
            base_url=self.base_url,
        ) as client:
            response = await client.request(
                options.method,
                url,
                headers=options.headers,
                content=options.body,
            )
        logger.debug(f"{options.method} {url} -> {response.status_code}")
        return response

    def __repr__(self) -> str:
        return f"HttpxTransport(timeout={self.timeout}, verify={self.verify})"


_default_transport: HttpxTransport | None = None


def get_default_transport() -> HttpxTransport:
    """Get or create the transport shared by connections that don't pass one."""
    global _default_transport
    if _default_transport is None:
        _default_transport = HttpxTransport()
    return _default_transport
