"""Attribute-style access to collections, entities and their members.

    things = collections("twx.example.com", {"appKey": "..."}).Things

    value = await things["Pump"].Temperature          # property read
    await things["Pump"].Temperature.set(21.5)        # property write
    rows = await things["Pump"].GetLog({"max": 5}).rows()   # service call

Each level memoizes what it hands out, so things["Pump"] is the same object
every time. A member is neither a property nor a service until it is used:
awaiting it (or calling get()/set()) treats it as a property, calling it
treats it as a service.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Generator, Mapping, TYPE_CHECKING, TypeVar

from .errors import UnrecognizedOperationError
from .server import COLLECTION_KINDS

if TYPE_CHECKING:
    from .auth import AuthParamsLike
    from .connection import Connection, MutableConnection
    from .models import Entity, EntityCollection
    from .responses import PropertyReadResult, ServiceResult

T = TypeVar("T")


class _ReadOnlyProxy:
    """Proxies are frozen once built; attribute names belong to the server."""

    def _init(self, **attrs: Any) -> None:
        for name, value in attrs.items():
            object.__setattr__(self, name, value)
        object.__setattr__(self, "_children", {})
        object.__setattr__(self, "_lock", threading.Lock())

    def _memoized(self, key: Any, factory: Callable[[], T]) -> T:
        child = self._children.get(key)
        if child is None:
            with self._lock:
                child = self._children.get(key)
                if child is None:
                    child = factory()
                    self._children[key] = child
        return child

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    def __getitem__(self, name: str) -> Any:
        raise NotImplementedError

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only")


class CollectionsProxy(_ReadOnlyProxy):
    """Entry point of a connection: one attribute per collection kind."""

    def __init__(self, connection: Connection):
        self._init(_connection=connection)

    @property
    def connection(self) -> Connection:
        return self._connection

    async def ping(self) -> bool:
        """Return whether the server answers with a success status."""
        return await self._connection.ping()

    def __getitem__(self, kind: str) -> CollectionProxy:
        # Raises UnknownCollectionError for names outside the catalog
        collection = self._connection.server.get_collection(kind)
        return self._memoized(
            collection.name,
            lambda: CollectionProxy(collection, self._connection),
        )

    def __dir__(self) -> list[str]:
        return sorted({*super().__dir__(), *COLLECTION_KINDS})

    def __repr__(self) -> str:
        return f"<{type(self).__name__} of {self._connection!r}>"


class MutableCollectionsProxy(CollectionsProxy):
    """Collections of a connection whose credentials may be replaced."""

    _connection: MutableConnection

    def change_auth_params(self, auth_params: AuthParamsLike) -> None:
        """Use new credentials for every later request made through these proxies."""
        self._connection.set_auth_params(auth_params)


class CollectionProxy(_ReadOnlyProxy):
    """Entities of one collection, addressed by name."""

    def __init__(self, collection: EntityCollection, connection: Connection):
        self._init(_collection=collection, _connection=connection)

    def __getitem__(self, entity_name: str) -> EntityProxy:
        return self._memoized(
            entity_name,
            lambda: EntityProxy(self._collection.get_entity(entity_name), self._connection),
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._collection.name}>"


class EntityProxy(_ReadOnlyProxy):
    """Members (properties or services) of one entity, addressed by name."""

    def __init__(self, entity: Entity, connection: Connection):
        self._init(_entity=entity, _connection=connection)

    def __getitem__(self, member_name: str) -> MemberAccessor:
        return self._memoized(
            member_name,
            lambda: MemberAccessor(member_name, self._entity, self._connection),
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._entity}>"


class MemberAccessor:
    """
    A member whose kind is decided by how it is used.

    - await accessor / accessor.get(): read it as a property
    - await accessor.set(value): write it as a property
    - accessor(params) / accessor(**params): call it as a service

    Any other attribute raises UnrecognizedOperationError.
    """

    __slots__ = ("_name", "_entity", "_connection")

    def __init__(self, name: str, entity: Entity, connection: Connection):
        object.__setattr__(self, "_name", name)
        object.__setattr__(self, "_entity", entity)
        object.__setattr__(self, "_connection", connection)

    def get(self) -> PropertyReadResult:
        """Read as a property. Await the result, or use value()/rows()/json()."""
        return self._entity.get_property(self._name).get(self._connection)

    def __await__(self) -> Generator[Any, None, Any]:
        return self.get().__await__()

    async def set(self, value: Any) -> None:
        """
        Write as a property.

        Raises:
            RemoteError: with the response body if the server rejects the write
        """
        response = await self._entity.get_property(self._name).set(value, self._connection)
        if not response.ok:
            raise response.build_error()

    def __call__(self, params: Mapping[str, Any] | None = None, /, **kwargs: Any) -> ServiceResult:
        """Call as a service with a parameter bag and/or keyword parameters."""
        if params is not None and not isinstance(params, Mapping):
            raise UnrecognizedOperationError(
                f"call with {type(params).__name__} argument", f"{self._entity}.{self._name}"
            )
        if params is None and not kwargs:
            bag = None
        else:
            bag = {**(params or {}), **kwargs}
        return self._entity.get_service(self._name).call(bag, self._connection)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        raise UnrecognizedOperationError(name, f"{self._entity}.{self._name}")

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("MemberAccessor is read-only")

    def __repr__(self) -> str:
        return f"<MemberAccessor {self._entity}.{self._name}>"
