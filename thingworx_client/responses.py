"""Response wrappers and deferred results.

A deferred result is returned as soon as an operation is requested. The
request is sent the first time the result is resolved, either by awaiting it
directly or through one of its accessors, and that single exchange is reused
by every later accessor.

Usage:
    temperature = await things["Pump"].Temperature            # single value
    rows = await things["Pump"].GetReadings({"n": 10}).rows()  # table rows
    await things["Pump"].Restart()                             # completion only
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Generator, TYPE_CHECKING

from .errors import RemoteError, ShapeMismatchError
from .infotable import base_type, is_info_table, parse_info_table, parse_value, prettify, single_value

if TYPE_CHECKING:
    from .connection import Connection
    from .requests import Request

logger = logging.getLogger(__name__)


class ThingworxResponse:
    """A transport response together with the request that produced it."""

    def __init__(self, response: Any, request: Request):
        self.response = response
        self.request = request
        self.ok: bool = response.is_success
        self.server_url: str = request.server.origin

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def reason(self) -> str:
        return self.response.reason_phrase

    def text(self) -> str:
        return self.response.text

    def json(self) -> Any:
        return self.response.json()

    def __str__(self) -> str:
        return f"{self.status_code} {self.reason}"


class PropertySetResponse(ThingworxResponse):
    def build_error(self) -> RemoteError:
        body = self.text()
        return RemoteError(
            f"Error setting {self.request.describe()}.\nFrom {self.server_url}\n{body}",
            operation=self.request.describe(),
            server_url=self.server_url,
            status_code=self.status_code,
            body=body,
        )


class JsonResult:
    """
    Base class of deferred results with a JSON body.

    Subclasses define resolve(), the value obtained by awaiting the result
    itself.
    """

    error_verb = "requesting"

    def __init__(self, request: Request, connection: Connection):
        self.request = request
        self.connection = connection
        self._pending: asyncio.Future | None = None

    async def response(self) -> ThingworxResponse:
        """The wrapped response; sends the request on first use."""
        if self._pending is None:
            self._pending = asyncio.ensure_future(self.connection.send(self.request))
        return ThingworxResponse(await self._pending, self.request)

    async def _checked_response(self) -> ThingworxResponse:
        response = await self.response()
        if not response.ok:
            error = self.build_error(response)
            logger.warning(
                f"{self.request.describe()} failed on {response.server_url or '<same origin>'}: {response}"
            )
            raise error
        return response

    def build_error(self, response: ThingworxResponse) -> RemoteError:
        body = response.text()
        return RemoteError(
            f"Error {self.error_verb} {self.request.describe()}\nFrom {response.server_url}\n{body}",
            operation=self.request.describe(),
            server_url=response.server_url,
            status_code=response.status_code,
            body=body,
        )

    async def text(self) -> str:
        """Raw response body."""
        return (await self._checked_response()).text()

    async def json(self) -> Any:
        """Parsed response body, without any conversion."""
        return (await self._checked_response()).json()

    async def _json_body(self, problem: str) -> Any:
        # A success without a JSON body (e.g. a void service) is a shape problem
        try:
            return await self.json()
        except ValueError:
            raise self._shape_error(problem, await self.text()) from None

    async def info_table(self, unwrap: bool = False) -> dict[str, Any]:
        """
        The response as a converted info table.

        Args:
            unwrap: replace nested info tables with their rows

        Raises:
            ShapeMismatchError: if the body is not an info table
        """
        body = await self._json_body("did not return an infotable")
        if not is_info_table(body):
            raise self._shape_error("did not return an infotable", body)
        return parse_info_table(body, unwrap=unwrap)

    async def value(self) -> Any:
        """
        The only value of a one-row, one-field info table, converted by base type.

        Raises:
            ShapeMismatchError: for any other shape
        """
        body = await self._json_body("did not return a single-value result")
        if not is_info_table(body):
            raise self._shape_error("did not return a single-value result", body)
        try:
            field_name, raw = single_value(body)
        except ValueError:
            raise self._shape_error("did not return a single-value result", body) from None
        return parse_value(raw, base_type(body, field_name))

    async def resolve(self) -> Any:
        raise NotImplementedError

    def __await__(self) -> Generator[Any, None, Any]:
        return self.resolve().__await__()

    def _shape_error(self, problem: str, payload: Any) -> ShapeMismatchError:
        operation = self.request.describe()
        return ShapeMismatchError(
            f"The request {operation} {problem}. It returned:\n{prettify(payload)}.",
            operation=operation,
            payload=payload,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.request.describe()}>"


class PropertyReadResult(JsonResult):
    """Result of reading a property. Awaiting it yields the property value."""

    error_verb = "reading"

    async def rows(self, unwrap: bool = False) -> list[dict[str, Any]]:
        """
        Rows of an INFOTABLE-typed property.

        Raises:
            ShapeMismatchError: if the property value is not an info table
        """
        body = await self._json_body("did not return a single-value result")
        if not is_info_table(body):
            raise self._shape_error("did not return a single-value result", body)
        try:
            _, raw = single_value(body)
        except ValueError:
            raise self._shape_error("did not return a single-value result", body) from None
        if not is_info_table(raw):
            raise self._shape_error("did not return an infotable", raw)
        return parse_info_table(raw, unwrap=unwrap)["rows"]

    async def resolve(self) -> Any:
        return await self.value()


class ServiceResult(JsonResult):
    """
    Result of a service call.

    Awaiting it only waits for completion and yields None; use info_table(),
    rows() or value() to read what the service returned.
    """

    error_verb = "calling"

    async def rows(self, unwrap: bool = False) -> list[dict[str, Any]]:
        return (await self.info_table(unwrap=unwrap))["rows"]

    async def resolve(self) -> None:
        await self._checked_response()
        return None
