"""Entry points returning collection proxies."""

from __future__ import annotations

from .auth import AuthParamsLike
from .config import ClientConfig
from .connection import ImmutableConnection, MutableConnection
from .proxy import CollectionsProxy, MutableCollectionsProxy
from .registry import Registry
from .transport import HttpxTransport, Transport


def collections(
    server_origin: str = "",
    auth_params: AuthParamsLike = None,
    *,
    transport: Transport | None = None,
) -> CollectionsProxy:
    """
    Get the collections of a server.

    The connection behind the proxies is shared with every other caller
    using the same server, credentials and transport.

    Usage:
        from thingworx_client import collections

        twx = collections("twx.example.com:8080", {"appKey": "..."})
        temperature = await twx.Things["Pump"].Temperature

    Args:
        server_origin: server origin, "host:port" gets an http:// scheme;
            empty means same origin
        auth_params: {"appKey": ...}, {"username": ..., "password": ...},
            or None to rely on credentials the transport already carries
        transport: custom transport (default: shared HttpxTransport)
    """
    return ImmutableConnection.get_connection(server_origin, auth_params, transport).collections


def connect(
    server_origin: str = "",
    auth_params: AuthParamsLike = None,
    *,
    transport: Transport | None = None,
) -> MutableCollectionsProxy:
    """
    Open a private connection whose credentials can be changed later.

    Usage:
        from thingworx_client import connect

        twx = connect("twx.example.com")
        twx.change_auth_params({"username": "admin", "password": "..."})
        await twx.Things["Pump"].Restart()
    """
    return MutableConnection(server_origin, auth_params, transport).collections


def from_config(config: ClientConfig | None = None) -> CollectionsProxy:
    """
    Get the collections of the server described by a ClientConfig.

    Loads ClientConfig.load() (config files + environment) when no config is given.
    """
    if config is None:
        config = ClientConfig.load()
    transport = _transport_for(config)
    return collections(config.server_url, config.auth_params(), transport=transport)


_config_transports: Registry[HttpxTransport] = Registry("config transports")


def _transport_for(config: ClientConfig) -> HttpxTransport:
    # Shared per settings so equal configs map to the same cached connection
    return _config_transports.get_or_create(
        (config.timeout, config.verify_ssl, config.base_url),
        lambda: HttpxTransport(
            timeout=config.timeout,
            verify=config.verify_ssl,
            base_url=config.base_url,
        ),
    )
