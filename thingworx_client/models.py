"""Reference graph: collections, entities, properties and services.

Every level caches its children, so asking twice for the same name returns
the same object. Names are accepted speculatively; nothing is checked against
the server until a request is sent.
"""

from __future__ import annotations

import threading
from typing import Any, TYPE_CHECKING

from .requests import PropertyGetRequest, PropertySetRequest, ServiceExecutionRequest

if TYPE_CHECKING:
    from .connection import Connection
    from .responses import PropertyReadResult, ServiceResult, ThingworxResponse
    from .server import Server


class EntityCollection:
    """All entities of one kind on a server (e.g. Things)."""

    def __init__(self, name: str, server: Server):
        self.name = name
        self.server = server
        self._entities: dict[str, Entity] = {}
        self._lock = threading.Lock()

    def get_entity(self, name: str) -> Entity:
        entity = self._entities.get(name)
        if entity is None:
            with self._lock:
                entity = self._entities.setdefault(name, Entity(name, self))
        return entity

    def __repr__(self) -> str:
        return f"EntityCollection({self.name!r}, {self.server.origin!r})"


class Entity:
    """One named entity within a collection."""

    def __init__(self, name: str, collection: EntityCollection):
        self.name = name
        self.collection = collection
        self._properties: dict[str, Property] = {}
        self._services: dict[str, Service] = {}
        self._lock = threading.Lock()

    @property
    def server(self) -> Server:
        return self.collection.server

    def get_property(self, name: str) -> Property:
        prop = self._properties.get(name)
        if prop is None:
            with self._lock:
                prop = self._properties.setdefault(name, Property(name, self))
        return prop

    def get_service(self, name: str) -> Service:
        service = self._services.get(name)
        if service is None:
            with self._lock:
                service = self._services.setdefault(name, Service(name, self))
        return service

    def __str__(self) -> str:
        return f"{self.collection.name}[{self.name!r}]"

    def __repr__(self) -> str:
        return f"Entity({self})"


class Property:
    """A readable and writable attribute of an entity."""

    def __init__(self, name: str, entity: Entity):
        self.name = name
        self.entity = entity

    def get(self, connection: Connection) -> PropertyReadResult:
        """Read the property. The request goes out when the result is awaited."""
        return PropertyGetRequest(self).send(connection)

    async def set(self, value: Any, connection: Connection) -> ThingworxResponse:
        """Write the property and return the raw response wrapper."""
        return await PropertySetRequest(self, value).send(connection)

    def __str__(self) -> str:
        return f"{self.entity}.{self.name}"

    def __repr__(self) -> str:
        return f"Property({self})"


class Service:
    """An invokable operation of an entity."""

    def __init__(self, name: str, entity: Entity):
        self.name = name
        self.entity = entity

    def call(self, params: dict[str, Any] | None, connection: Connection) -> ServiceResult:
        """Invoke the service. The request goes out when the result is resolved."""
        return ServiceExecutionRequest(self, params).send(connection)

    def __str__(self) -> str:
        return f"{self.entity}.{self.name}"

    def __repr__(self) -> str:
        return f"Service({self})"
