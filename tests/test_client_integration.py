"""
Integration tests using MockThingworxServer.

Tests the full flow: proxy -> request -> connection -> transport -> result
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from thingworx_client import collections, connect
from thingworx_client.connection import Connection, ImmutableConnection, MutableConnection
from thingworx_client.errors import ConfigurationError, RemoteError, ShapeMismatchError
from thingworx_client.server import get_server
from thingworx_client.transport import HttpxTransport
from tests.fixtures.mock_server import info_table


class TestPropertyRead:
    """Reading properties by awaiting the member."""

    @pytest.mark.asyncio
    async def test_await_resolves_single_value(self, mock_server, things):
        mock_server.add_property_body(
            "Things", "Pump", "x",
            {"dataShape": {"fieldDefinitions": {"x": {"baseType": "NUMBER"}}}, "rows": [{"x": 5}]},
        )
        assert await things["Pump"].x == 5

    @pytest.mark.asyncio
    async def test_get_then_value(self, mock_server, things):
        mock_server.add_property("Things", "Pump", "Name", "main pump")
        assert await things["Pump"].Name.get().value() == "main pump"

    @pytest.mark.asyncio
    async def test_datetime_property_converted(self, mock_server, things):
        mock_server.add_property("Things", "Pump", "LastSeen", "2020-01-01T00:00:00Z", "DATETIME")
        assert await things["Pump"].LastSeen == datetime(2020, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_two_rows_raise_shape_mismatch(self, mock_server, things):
        mock_server.add_property_body(
            "Things", "Pump", "x", info_table({"x": "NUMBER"}, [{"x": 1}, {"x": 2}])
        )
        with pytest.raises(ShapeMismatchError, match="single-value"):
            await things["Pump"].x

    @pytest.mark.asyncio
    async def test_two_fields_raise_shape_mismatch(self, mock_server, things):
        mock_server.add_property_body(
            "Things", "Pump", "x", info_table({"x": "NUMBER", "y": "NUMBER"}, [{"x": 1, "y": 2}])
        )
        with pytest.raises(ShapeMismatchError) as excinfo:
            await things["Pump"].x.get().value()
        assert excinfo.value.operation == "Things['Pump'].x"
        assert excinfo.value.payload["rows"] == [{"x": 1, "y": 2}]

    @pytest.mark.asyncio
    async def test_infotable_property_rows(self, mock_server, things):
        readings = info_table(
            {"t": "DATETIME", "v": "NUMBER"},
            [{"t": "2020-01-01T00:00:00Z", "v": 1.5}, {"t": 1577836800000, "v": 2.5}],
        )
        mock_server.add_property("Things", "Pump", "Readings", readings, "INFOTABLE")

        rows = await things["Pump"].Readings.get().rows()

        assert [row["v"] for row in rows] == [1.5, 2.5]
        assert rows[0]["t"] == datetime(2020, 1, 1, tzinfo=timezone.utc)
        assert rows[1]["t"] == rows[0]["t"]

    @pytest.mark.asyncio
    async def test_rows_of_scalar_property_raise(self, mock_server, things):
        mock_server.add_property("Things", "Pump", "Name", "main pump")
        with pytest.raises(ShapeMismatchError, match="infotable"):
            await things["Pump"].Name.get().rows()

    @pytest.mark.asyncio
    async def test_raw_json(self, mock_server, things):
        mock_server.add_property("Things", "Pump", "LastSeen", "2020-01-01T00:00:00Z", "DATETIME")
        body = await things["Pump"].LastSeen.get().json()
        assert body["rows"] == [{"LastSeen": "2020-01-01T00:00:00Z"}]

    @pytest.mark.asyncio
    async def test_read_failure_raises_on_resolution(self, mock_server, things):
        mock_server.add_failure("Things", "Pump", "Secret", 403, "Not permitted")
        result = things["Pump"].Secret.get()

        with pytest.raises(RemoteError) as excinfo:
            await result

        error = excinfo.value
        assert "Not permitted" in str(error)
        assert mock_server.origin in str(error)
        assert "Things['Pump'].Secret" in str(error)
        assert error.status_code == 403
        assert error.body == "Not permitted"

    @pytest.mark.asyncio
    async def test_read_request_shape(self, mock_server, things):
        mock_server.add_property("Things", "Pump", "Name", "main pump")
        await things["Pump"].Name

        method, url, headers, body = mock_server.call_log[0]
        assert method == "GET"
        assert url == f"{mock_server.origin}/Thingworx/Things/Pump/Properties/Name"
        assert headers["accept"] == "application/json"
        assert body is None

    @pytest.mark.asyncio
    async def test_entity_names_are_encoded(self, mock_server, things):
        mock_server.add_property("Things", "Pump Station/1", "Name", "station")
        assert await things["Pump Station/1"].Name == "station"
        assert "Pump%20Station%2F1" in mock_server.call_log[0][1]


class TestSingleExchange:
    """A result sends its request once, however many accessors are used."""

    @pytest.mark.asyncio
    async def test_accessors_share_one_request(self, mock_server, things):
        mock_server.add_property("Things", "Pump", "Name", "main pump")
        result = things["Pump"].Name.get()

        assert await result == "main pump"
        assert await result.value() == "main pump"
        assert (await result.json())["rows"] == [{"Name": "main pump"}]

        assert len(mock_server.call_log) == 1

    @pytest.mark.asyncio
    async def test_each_access_is_a_new_request(self, mock_server, things):
        mock_server.add_property("Things", "Pump", "Name", "main pump")
        await things["Pump"].Name
        await things["Pump"].Name
        assert len(mock_server.call_log) == 2


class TestPropertyWrite:
    """Writing properties with set()."""

    @pytest.mark.asyncio
    async def test_successful_write_resolves_to_none(self, mock_server, things):
        assert await things["Pump"].SetPoint.set(21.5) is None

        method, url, _, body = mock_server.call_log[0]
        assert method == "PUT"
        assert url.endswith("/Thingworx/Things/Pump/Properties/SetPoint")
        assert body == {"SetPoint": 21.5}

    @pytest.mark.asyncio
    async def test_write_then_read(self, mock_server, things):
        await things["Pump"].Mode.set("eco")
        assert await things["Pump"].Mode == "eco"

    @pytest.mark.asyncio
    async def test_failed_write_raises_with_body(self, mock_server, things):
        mock_server.add_failure("Things", "Pump", "SetPoint", 500, "Value out of range")

        with pytest.raises(RemoteError) as excinfo:
            await things["Pump"].SetPoint.set(999)

        assert "Value out of range" in str(excinfo.value)
        assert "Error setting Things['Pump'].SetPoint = 999" in str(excinfo.value)
        assert excinfo.value.status_code == 500

    @pytest.mark.asyncio
    async def test_datetime_value_serialized(self, mock_server, things):
        await things["Pump"].ServicedAt.set(datetime(2020, 1, 1, tzinfo=timezone.utc))
        assert mock_server.call_log[0][3] == {"ServicedAt": "2020-01-01T00:00:00+00:00"}


class TestServiceCall:
    """Calling services by calling the member."""

    @pytest.mark.asyncio
    async def test_await_resolves_to_none(self, mock_server, things):
        mock_server.add_service("Things", "Pump", "Restart", lambda params: "")
        assert await things["Pump"].Restart() is None

    @pytest.mark.asyncio
    async def test_params_sent_as_json_body(self, mock_server, things):
        received = []

        def handler(params):
            received.append(params)
            return ""

        mock_server.add_service("Things", "Pump", "Start", handler)
        await things["Pump"].Start({"speed": 3})

        assert received == [{"speed": 3}]
        method, url, headers, _ = mock_server.call_log[0]
        assert method == "POST"
        assert url.endswith("/Thingworx/Things/Pump/Services/Start")
        assert headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_info_table_converts_datetime(self, mock_server, things):
        mock_server.add_service(
            "Things", "Pump", "GetLog",
            lambda params: {
                "dataShape": {"fieldDefinitions": {"t": {"baseType": "DATETIME"}}},
                "rows": [{"t": "2020-01-01T00:00:00Z"}],
            },
        )

        table = await things["Pump"].GetLog().info_table()

        assert table["rows"][0]["t"] == datetime(2020, 1, 1, tzinfo=timezone.utc)
        assert isinstance(table["rows"][0]["t"], datetime)

    @pytest.mark.asyncio
    async def test_rows_with_nested_tables(self, mock_server, things):
        inner = info_table({"n": "NUMBER"}, [{"n": 1}, {"n": 2}])
        mock_server.add_service(
            "Things", "Pump", "GetTree",
            lambda params: info_table({"name": "STRING", "children": "INFOTABLE"}, [{"name": "a", "children": inner}]),
        )
        result = things["Pump"].GetTree()

        nested = await result.rows()
        flat = await result.rows(unwrap=True)

        assert nested[0]["children"]["rows"] == [{"n": 1}, {"n": 2}]
        assert flat == [{"name": "a", "children": [{"n": 1}, {"n": 2}]}]

    @pytest.mark.asyncio
    async def test_scalar_result_is_not_a_table(self, mock_server, things):
        mock_server.add_service("Things", "Pump", "Count", lambda params: 42)
        with pytest.raises(ShapeMismatchError, match="infotable"):
            await things["Pump"].Count().info_table()

    @pytest.mark.asyncio
    async def test_empty_body_is_not_a_table(self, mock_server, things):
        mock_server.add_service("Things", "Pump", "Restart", lambda params: "")
        result = things["Pump"].Restart()

        assert await result is None
        with pytest.raises(ShapeMismatchError, match="infotable") as excinfo:
            await result.info_table()
        assert excinfo.value.operation == "Things['Pump'].Restart()"
        assert excinfo.value.payload == ""

    @pytest.mark.asyncio
    async def test_empty_body_has_no_single_value(self, mock_server, things):
        mock_server.add_service("Things", "Pump", "Restart", lambda params: "")
        with pytest.raises(ShapeMismatchError, match="single-value"):
            await things["Pump"].Restart().value()

    @pytest.mark.asyncio
    async def test_single_value_result(self, mock_server, things):
        mock_server.add_service(
            "Things", "Pump", "GetCount",
            lambda params: info_table({"result": "INTEGER"}, [{"result": 7}]),
        )
        assert await things["Pump"].GetCount().value() == 7

    @pytest.mark.asyncio
    async def test_failed_call_raises_when_awaited(self, mock_server, things):
        mock_server.add_failure("Things", "Pump", "Explode", 500, "Service threw an exception")
        result = things["Pump"].Explode({"force": True})

        with pytest.raises(RemoteError) as excinfo:
            await result

        message = str(excinfo.value)
        assert message.startswith("Error calling Things['Pump'].Explode(")
        assert "Service threw an exception" in message
        assert json.dumps(True) in message

    @pytest.mark.asyncio
    async def test_unknown_service_is_remote_error(self, mock_server, things):
        with pytest.raises(RemoteError, match="not found"):
            await things["Pump"].Missing()

    @pytest.mark.asyncio
    async def test_other_collections(self, mock_server, connection):
        mock_server.add_service(
            "Users", "alice", "GetGroups",
            lambda params: info_table({"name": "STRING"}, [{"name": "Admins"}]),
        )
        rows = await connection.collections.Users["alice"].GetGroups().rows()
        assert rows == [{"name": "Admins"}]


class TestAuthentication:
    """Credentials added by the connection."""

    @pytest.mark.asyncio
    async def test_app_key_header_sent(self, mock_server):
        mock_server.required_app_key = "secret"
        mock_server.add_property("Things", "Pump", "Name", "main pump")
        conn = Connection(mock_server.origin, {"appKey": "secret"}, mock_server.transport())

        assert await conn.collections.Things["Pump"].Name == "main pump"
        assert mock_server.call_log[0][2]["appkey"] == "secret"

    @pytest.mark.asyncio
    async def test_missing_app_key_rejected(self, mock_server, things):
        mock_server.required_app_key = "secret"
        with pytest.raises(RemoteError, match="Not authorized"):
            await things["Pump"].Name

    @pytest.mark.asyncio
    async def test_basic_auth_header_sent(self, mock_server):
        mock_server.add_service("Things", "Pump", "Restart", lambda params: "")
        conn = Connection(mock_server.origin, {"username": "admin", "password": "pw"}, mock_server.transport())

        await conn.collections.Things["Pump"].Restart()

        assert mock_server.call_log[0][2]["authorization"].startswith("Basic ")

    @pytest.mark.asyncio
    async def test_change_auth_params_applies_to_later_requests(self, mock_server):
        mock_server.required_app_key = "second"
        mock_server.add_property("Things", "Pump", "Name", "main pump")
        twx = connect(mock_server.origin, {"appKey": "first"}, transport=mock_server.transport())
        pump = twx.Things["Pump"]

        with pytest.raises(RemoteError):
            await pump.Name
        twx.change_auth_params({"appKey": "second"})

        assert await pump.Name == "main pump"

    def test_bad_auth_combination_fails_before_io(self, mock_server):
        with pytest.raises(ConfigurationError):
            Connection(mock_server.origin, {"appKey": "k", "username": "u", "password": "p"})
        assert mock_server.call_log == []


class TestPing:
    @pytest.mark.asyncio
    async def test_ping_ok(self, mock_server, connection):
        assert await connection.collections.ping() is True
        assert mock_server.call_log[0][1] == f"{mock_server.origin}/Thingworx/Composer"

    @pytest.mark.asyncio
    async def test_ping_unauthorized(self, mock_server, connection):
        mock_server.required_app_key = "secret"
        assert await connection.ping() is False


class TestConnections:
    """Connection construction and caching."""

    def test_server_string_or_instance(self, unique_origin):
        origin = unique_origin()
        server = get_server(origin)
        assert Connection(origin).server is server
        assert Connection(server).server is server

    def test_invalid_server_argument(self):
        with pytest.raises(ConfigurationError, match="Server parameter"):
            Connection(42)

    def test_immutable_connections_cached(self, unique_origin):
        origin = unique_origin()
        first = ImmutableConnection.get_connection(origin, {"appKey": "k"})
        assert ImmutableConnection.get_connection(origin, {"appKey": "k"}) is first
        assert ImmutableConnection.get_connection(origin + "/", {"app_key": "k"}) is first

    def test_immutable_connections_differ_by_auth(self, unique_origin):
        origin = unique_origin()
        first = ImmutableConnection.get_connection(origin, {"appKey": "k"})
        assert ImmutableConnection.get_connection(origin, {"appKey": "k2"}) is not first
        assert ImmutableConnection.get_connection(origin) is not first

    def test_collections_entry_point_is_stable(self, unique_origin):
        origin = unique_origin()
        first = collections(origin, {"appKey": "k"})
        second = collections(origin, {"appKey": "k"})
        assert first is second
        assert first.Things["Pump"] is second.Things["Pump"]

    def test_connect_creates_private_connection(self, unique_origin):
        origin = unique_origin()
        first = connect(origin)
        second = connect(origin)
        assert first is not second
        assert isinstance(first.connection, MutableConnection)

    @pytest.mark.asyncio
    async def test_transport_errors_propagate(self, unique_origin):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        conn = Connection(unique_origin(), transport=HttpxTransport(transport=httpx.MockTransport(handler)))

        with pytest.raises(httpx.ConnectError):
            await conn.collections.Things["Pump"].Name


class TestSameOrigin:
    """Connections to the empty (same) origin."""

    @pytest.mark.asyncio
    async def test_missing_base_url_is_configuration_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        conn = Connection("", transport=HttpxTransport(transport=httpx.MockTransport(handler)))

        with pytest.raises(ConfigurationError, match="base_url"):
            await conn.collections.Things["Pump"].Name

    @pytest.mark.asyncio
    async def test_default_entry_point_fails_before_io(self):
        with pytest.raises(ConfigurationError, match="base_url"):
            await collections().Things["Pump"].Restart()

    @pytest.mark.asyncio
    async def test_base_url_resolves_relative_urls(self, mock_server):
        mock_server.add_property("Things", "Pump", "Name", "main pump")
        transport = HttpxTransport(transport=mock_server.get_transport(), base_url=mock_server.origin)
        conn = Connection("", transport=transport)

        assert await conn.collections.Things["Pump"].Name == "main pump"
        assert mock_server.call_log[0][1] == f"{mock_server.origin}/Thingworx/Things/Pump/Properties/Name"
