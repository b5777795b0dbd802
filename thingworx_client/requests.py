"""Requests sent to the server's REST API."""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, TYPE_CHECKING
from urllib.parse import quote

from .responses import PropertyReadResult, PropertySetResponse, ServiceResult, ThingworxResponse
from .transport import JSON_HEADERS, RequestOptions

if TYPE_CHECKING:
    from .connection import Connection
    from .models import Entity, Property, Service
    from .server import Server

API_ROOT = "Thingworx"


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_body(payload: Any) -> str:
    return json.dumps(payload, default=_json_default)


def entity_url(entity: Entity) -> str:
    """<origin>/Thingworx/<Kind>/<entity>"""
    collection = entity.collection
    return f"{collection.server.origin}/{API_ROOT}/{collection.name}/{quote(entity.name, safe='')}"


def member_url(entity: Entity, section: str, member: str) -> str:
    return f"{entity_url(entity)}/{section}/{quote(member, safe='')}"


class Request:
    """
    A request missing authentication.

    The connection that sends it decorates the options with credentials.
    """

    def __init__(self, url: str, options: RequestOptions, server: Server):
        self.url = url
        self.options = options
        self.server = server

    def describe(self) -> str:
        return f"{self.options.method} {self.url}"

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.describe()!r})"


class PropertyGetRequest(Request):
    def __init__(self, prop: Property):
        super().__init__(
            member_url(prop.entity, "Properties", prop.name),
            RequestOptions("GET", dict(JSON_HEADERS)),
            prop.entity.server,
        )
        self.property = prop

    def send(self, connection: Connection) -> PropertyReadResult:
        return PropertyReadResult(self, connection)

    def describe(self) -> str:
        return str(self.property)


class PropertySetRequest(Request):
    def __init__(self, prop: Property, value: Any):
        super().__init__(
            member_url(prop.entity, "Properties", prop.name),
            RequestOptions("PUT", dict(JSON_HEADERS), encode_body({prop.name: value})),
            prop.entity.server,
        )
        self.property = prop
        self.value = value

    async def send(self, connection: Connection) -> PropertySetResponse:
        response = await connection.send(self)
        return PropertySetResponse(response, self)

    def describe(self) -> str:
        return f"{self.property} = {json.dumps(self.value, indent=2, default=_json_default)}"


class ServiceExecutionRequest(Request):
    def __init__(self, service: Service, params: dict[str, Any] | None = None):
        super().__init__(
            member_url(service.entity, "Services", service.name),
            RequestOptions("POST", dict(JSON_HEADERS), encode_body(params or {})),
            service.entity.server,
        )
        self.service = service
        self.params = params

    def send(self, connection: Connection) -> ServiceResult:
        return ServiceResult(self, connection)

    def describe(self) -> str:
        params = "" if self.params is None else json.dumps(self.params, indent=2, default=_json_default)
        return f"{self.service}({params})"


class PingRequest(Request):
    """Checks that the server answers and accepts the connection's credentials."""

    def __init__(self, server: Server):
        super().__init__(
            f"{server.origin}/{API_ROOT}/Composer",
            RequestOptions("GET"),
            server,
        )

    async def send(self, connection: Connection) -> ThingworxResponse:
        response = await connection.send(self)
        return ThingworxResponse(response, self)

    def describe(self) -> str:
        return f"ping {self.server.origin or '<same origin>'}"
