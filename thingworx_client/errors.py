"""Exceptions raised by the thingworx client."""

from __future__ import annotations

from typing import Any


class ThingworxError(Exception):
    """Base exception for thingworx client errors."""
    pass


class ConfigurationError(ThingworxError):
    """Invalid client setup, raised before any request is sent."""
    pass


class UnknownCollectionError(ConfigurationError):
    """Collection name is not part of the supported catalog."""

    def __init__(self, name: str, known: list[str] | None = None):
        message = f"Unknown entity collection {name!r}"
        if known:
            message += f". Expected one of: {', '.join(known)}"
        super().__init__(message)
        self.name = name


class UnrecognizedOperationError(ConfigurationError):
    """A member accessor was used in a way that is neither a read, write nor call."""

    def __init__(self, operation: str, target: str):
        super().__init__(f"Unrecognized operation {operation!r} on {target}")
        self.operation = operation
        self.target = target


class ShapeMismatchError(ThingworxError):
    """The response payload does not have the shape the accessor expects."""

    def __init__(self, message: str, operation: str, payload: Any = None):
        super().__init__(message)
        self.operation = operation
        self.payload = payload


class RemoteError(ThingworxError):
    """The server answered with a non-success status."""

    def __init__(
        self,
        message: str,
        operation: str,
        server_url: str,
        status_code: int | None = None,
        body: str | None = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.server_url = server_url
        self.status_code = status_code
        self.body = body
