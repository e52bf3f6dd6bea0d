"""Tests for the notification listener."""

from unittest.mock import MagicMock, patch
from xml.sax.saxutils import escape

import pytest
from aiohttp import test_utils

from renderer_sync.upnp.listener import LAST_CHANGE_EVENT, NotificationListener

SID = "uuid:RINCON_000E58A0123401400_sub0000000123"

VOLUME_LAST_CHANGE = (
    '<Event xmlns="urn:schemas-upnp-org:metadata-1-0/RCS/">'
    '<InstanceID val="0"><Volume channel="Master" val="37"/></InstanceID></Event>'
)


def property_set(**properties: str) -> str:
    body = "".join(
        f"<e:property><{name}>{escape(value)}</{name}></e:property>"
        for name, value in properties.items()
    )
    return f'<e:propertyset xmlns:e="urn:schemas-upnp-org:event-1-0">{body}</e:propertyset>'


class TestEndpoint:
    """Tests for callback URLs."""

    def test_advertise_host(self) -> None:
        listener = NotificationListener(port=3501, advertise_host="192.168.1.10")
        assert listener.endpoint() == "http://192.168.1.10:3501/"

    def test_bound_host(self) -> None:
        listener = NotificationListener(host="10.0.0.5", port=3500)
        assert listener.endpoint() == "http://10.0.0.5:3500/"

    def test_wildcard_uses_local_ip(self) -> None:
        listener = NotificationListener()
        with patch.object(listener, "_get_local_ip", return_value="192.168.1.77"):
            assert listener.endpoint() == "http://192.168.1.77:3500/"


class TestCallbacks:
    """Tests for callback registration."""

    def test_emit_in_order(self) -> None:
        listener = NotificationListener()
        calls = []
        listener.on(LAST_CHANGE_EVENT, lambda target, payload: calls.append(("a", target)))
        listener.on(LAST_CHANGE_EVENT, lambda target, payload: calls.append(("b", target)))

        listener.emit(LAST_CHANGE_EVENT, "RINCON_A", {})

        assert calls == [("a", "RINCON_A"), ("b", "RINCON_A")]

    def test_off(self) -> None:
        listener = NotificationListener()
        callback = MagicMock()
        listener.on(LAST_CHANGE_EVENT, callback)
        listener.off(LAST_CHANGE_EVENT, callback)
        listener.off(LAST_CHANGE_EVENT, callback)

        listener.emit(LAST_CHANGE_EVENT, "RINCON_A", {})

        callback.assert_not_called()

    def test_callback_error_does_not_stop_others(self) -> None:
        listener = NotificationListener()
        failing = MagicMock(side_effect=RuntimeError("boom"))
        working = MagicMock()
        listener.on(LAST_CHANGE_EVENT, failing)
        listener.on(LAST_CHANGE_EVENT, working)

        listener.emit(LAST_CHANGE_EVENT, "RINCON_A", {"x": 1})

        working.assert_called_once_with("RINCON_A", {"x": 1})


class TestNotifyHandler:
    """Tests for NOTIFY requests."""

    @pytest.mark.asyncio
    async def test_last_change_delivered(self) -> None:
        listener = NotificationListener()
        callback = MagicMock()
        listener.on(LAST_CHANGE_EVENT, callback)

        async with test_utils.TestClient(test_utils.TestServer(listener.build_app())) as client:
            response = await client.request(
                "NOTIFY",
                "/",
                data=property_set(LastChange=VOLUME_LAST_CHANGE),
                headers={"SID": SID, "NT": "upnp:event", "SEQ": "0"},
            )

        assert response.status == 200
        callback.assert_called_once_with(
            "RINCON_000E58A0123401400",
            {"volume": [{"channel": "Master", "val": "37"}]},
        )

    @pytest.mark.asyncio
    async def test_any_path(self) -> None:
        listener = NotificationListener()
        callback = MagicMock()
        listener.on(LAST_CHANGE_EVENT, callback)

        async with test_utils.TestClient(test_utils.TestServer(listener.build_app())) as client:
            response = await client.request(
                "NOTIFY",
                "/events/avtransport",
                data=property_set(LastChange=VOLUME_LAST_CHANGE),
                headers={"SID": SID},
            )

        assert response.status == 200
        callback.assert_called_once()

    @pytest.mark.asyncio
    async def test_other_properties_ignored(self) -> None:
        listener = NotificationListener()
        callback = MagicMock()
        listener.on(LAST_CHANGE_EVENT, callback)

        async with test_utils.TestClient(test_utils.TestServer(listener.build_app())) as client:
            response = await client.request(
                "NOTIFY", "/", data=property_set(GroupVolume="25"), headers={"SID": SID}
            )

        assert response.status == 200
        callback.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_sid(self) -> None:
        listener = NotificationListener()
        callback = MagicMock()
        listener.on(LAST_CHANGE_EVENT, callback)

        async with test_utils.TestClient(test_utils.TestServer(listener.build_app())) as client:
            response = await client.request(
                "NOTIFY", "/", data=property_set(LastChange=VOLUME_LAST_CHANGE)
            )

        assert response.status == 400
        callback.assert_not_called()
