"""Connections: a server paired with an authentication strategy."""

from __future__ import annotations

import logging
from typing import Any, Union

from .auth import AuthParamsLike, AuthStrategy, get_auth_strategy
from .errors import ConfigurationError
from .proxy import CollectionsProxy, MutableCollectionsProxy
from .registry import Registry
from .requests import PingRequest, Request
from .server import Server, get_server
from .transport import HttpxTransport, Transport, get_default_transport

logger = logging.getLogger(__name__)

ServerLike = Union[str, Server]


def resolve_server(server: ServerLike) -> Server:
    """Accept an origin string or a Server instance."""
    if isinstance(server, str):
        return get_server(server)
    if isinstance(server, Server):
        return server
    raise ConfigurationError(
        "Server parameter should be either a string or an instance of the Server class."
    )


class Connection:
    """
    A server plus the credentials used to reach it.

    Once created, use the collections proxy to read properties and call
    services:

        conn = Connection("twx.example.com:8080", {"appKey": "..."})
        value = await conn.collections.Things["Pump"].Temperature
    """

    def __init__(
        self,
        server: ServerLike,
        auth_params: AuthParamsLike = None,
        transport: Transport | None = None,
    ):
        self.server = resolve_server(server)
        self.modify_options: AuthStrategy = get_auth_strategy(auth_params)
        self.transport = transport if transport is not None else get_default_transport()
        self.collections = self._create_collections_proxy()

    def _create_collections_proxy(self) -> CollectionsProxy:
        return CollectionsProxy(self)

    async def send(self, request: Request) -> Any:
        """
        Send a request after adding this connection's credentials.

        Returns the raw transport response; status handling is left to the
        caller.
        """
        if self.server.origin == "" and isinstance(self.transport, HttpxTransport) and not self.transport.base_url:
            raise ConfigurationError(
                "A same-origin server (empty origin) needs a transport with a base_url, "
                "e.g. HttpxTransport(base_url=...) or TWX_BASE_URL."
            )
        options = self.modify_options(request.options)
        logger.debug(f"Sending {options.method} {request.url}")
        return await self.transport.send(request.url, options)

    async def ping(self) -> bool:
        """Return whether the server answers with a success status."""
        response = await PingRequest(self.server).send(self)
        return response.ok

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.server.origin!r}, {self.modify_options!r})"


_connections: Registry[Connection] = Registry("immutable connections")


class ImmutableConnection(Connection):
    """
    Connection whose credentials never change.

    Use get_connection() so equal (server, credentials, transport) triples
    share one connection and therefore one set of proxies.
    """

    @classmethod
    def get_connection(
        cls,
        server: ServerLike,
        auth_params: AuthParamsLike = None,
        transport: Transport | None = None,
    ) -> ImmutableConnection:
        server_instance = resolve_server(server)
        strategy = get_auth_strategy(auth_params)
        transport = transport if transport is not None else get_default_transport()
        key = (server_instance.origin, strategy.key, transport)

        def _create() -> ImmutableConnection:
            logger.debug(f"Creating connection to {server_instance.origin or '<same origin>'}")
            return cls(server_instance, auth_params, transport)

        return _connections.get_or_create(key, _create)


class MutableConnection(Connection):
    """Connection whose credentials can be replaced. Never shared through a cache."""

    def _create_collections_proxy(self) -> MutableCollectionsProxy:
        return MutableCollectionsProxy(self)

    def set_auth_params(self, auth_params: AuthParamsLike) -> None:
        """Replace the credentials used by every later request."""
        self.modify_options = get_auth_strategy(auth_params)
