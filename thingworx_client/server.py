"""Server identity, origin normalization and the collection catalog."""

from __future__ import annotations

import logging
import re
import threading

from .errors import UnknownCollectionError
from .models import EntityCollection
from .registry import Registry

logger = logging.getLogger(__name__)

# Collection kinds the server exposes, in the casing used in request URLs
COLLECTION_KINDS: tuple[str, ...] = (
    "Dashboards",
    "DataShapes",
    "DataTags",
    "Groups",
    "Logs",
    "Mashups",
    "Menus",
    "ModelTags",
    "Networks",
    "Resources",
    "ThingShapes",
    "ThingTemplates",
    "Things",
    "Users",
)


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


# Accepted spellings -> canonical kind ("Things" and "things" both resolve)
_KIND_ALIASES: dict[str, str] = {
    **{kind: kind for kind in COLLECTION_KINDS},
    **{_snake_case(kind): kind for kind in COLLECTION_KINDS},
}


def canonical_kind(name: str) -> str:
    """
    Map a collection name or its snake_case alias to the catalog name.

    Raises:
        UnknownCollectionError: if the name is not in the catalog
    """
    try:
        return _KIND_ALIASES[name]
    except (KeyError, TypeError):
        raise UnknownCollectionError(str(name), list(COLLECTION_KINDS)) from None


def normalize_origin(origin: str) -> str:
    """
    Normalize a server origin.

    Adds an http:// scheme when none is given and strips a trailing slash.
    The empty string means "same origin" and is returned unchanged.

    >>> normalize_origin("host:1")
    'http://host:1'
    >>> normalize_origin("http://host/")
    'http://host'
    """
    if origin == "":
        return origin

    scheme, sep, rest = origin.partition("://")
    if not sep:
        scheme, rest = "http", origin
    return f"{scheme}://{rest.rstrip('/')}"


class Server:
    """
    A ThingWorx server, identified by its normalized origin.

    Collections are created on first access and kept for the lifetime of
    the server. Use get_server() rather than the constructor so that equal
    origins share one instance.
    """

    def __init__(self, origin: str):
        self.origin = origin
        self._collections: dict[str, EntityCollection] = {}
        self._lock = threading.Lock()

    def get_collection(self, kind: str) -> EntityCollection:
        """Return the collection for kind (catalog name or snake_case alias)."""
        name = canonical_kind(kind)
        collection = self._collections.get(name)
        if collection is None:
            with self._lock:
                collection = self._collections.setdefault(name, EntityCollection(name, self))
        return collection

    def __repr__(self) -> str:
        return f"Server({self.origin!r})"


_servers: Registry[Server] = Registry("servers")


def get_server(origin: str) -> Server:
    """Get or create the process-wide Server for an origin."""
    normalized = normalize_origin(origin)

    def _create() -> Server:
        logger.debug(f"Registering server {normalized or '<same origin>'}")
        return Server(normalized)

    return _servers.get_or_create(normalized, _create)
