"""Shared pytest fixtures for thingworx_client tests."""

from __future__ import annotations

import itertools
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from thingworx_client.connection import Connection
from tests.fixtures.mock_server import MockThingworxServer

_origins = itertools.count()


@pytest.fixture
def unique_origin():
    """An origin no other test has used, so process-wide caches start empty for it."""
    def _factory() -> str:
        return f"http://twx-{next(_origins)}.test"
    return _factory


@pytest.fixture
def mock_server(unique_origin) -> MockThingworxServer:
    """Mock server on a fresh origin."""
    return MockThingworxServer(origin=unique_origin())


@pytest.fixture
def connection(mock_server) -> Connection:
    """Connection routed to the mock server, without credentials."""
    return Connection(mock_server.origin, transport=mock_server.transport())


@pytest.fixture
def things(connection):
    """Things collection proxy of the mock connection."""
    return connection.collections.Things


@pytest.fixture
def recording_transport():
    """Transport that never touches the network and records calls."""
    def _factory(status_code: int = 200, json_data: Any = None, text: str = ""):
        response = MagicMock()
        response.is_success = 200 <= status_code < 300
        response.status_code = status_code
        response.reason_phrase = "OK" if response.is_success else "Error"
        response.text = text
        response.json.return_value = json_data
        transport = MagicMock()
        transport.send = AsyncMock(return_value=response)
        return transport
    return _factory
