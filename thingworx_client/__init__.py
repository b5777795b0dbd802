"""Attribute-style async client for ThingWorx REST services.

Usage:
    from thingworx_client import collections

    twx = collections("twx.example.com:8080", {"appKey": "..."})

    temperature = await twx.Things["Pump"].Temperature
    await twx.Things["Pump"].SetPoint.set(21.5)
    rows = await twx.Things["Pump"].GetReadings({"max": 10}).rows()
"""

from .auth import AuthParams, get_auth_strategy
from .client import collections, connect, from_config
from .config import ClientConfig
from .connection import Connection, ImmutableConnection, MutableConnection
from .errors import (
    ConfigurationError,
    RemoteError,
    ShapeMismatchError,
    ThingworxError,
    UnknownCollectionError,
    UnrecognizedOperationError,
)
from .proxy import CollectionsProxy, MutableCollectionsProxy
from .responses import PropertyReadResult, ServiceResult
from .server import COLLECTION_KINDS, Server, get_server, normalize_origin
from .transport import HttpxTransport, RequestOptions

__all__ = [
    "AuthParams",
    "COLLECTION_KINDS",
    "ClientConfig",
    "CollectionsProxy",
    "ConfigurationError",
    "Connection",
    "HttpxTransport",
    "ImmutableConnection",
    "MutableCollectionsProxy",
    "MutableConnection",
    "PropertyReadResult",
    "RemoteError",
    "RequestOptions",
    "Server",
    "ServiceResult",
    "ShapeMismatchError",
    "ThingworxError",
    "UnknownCollectionError",
    "UnrecognizedOperationError",
    "collections",
    "connect",
    "from_config",
    "get_auth_strategy",
    "get_server",
    "normalize_origin",
]
