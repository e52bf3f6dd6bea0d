"""Tests for SOAP action invocation."""

import asyncio
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from renderer_sync.player.play_mode import PlayMode
from renderer_sync.upnp.soap import (
    UPNP_AV_TRANSPORT,
    UPNP_RENDERING_CONTROL,
    ActionType,
    SoapClient,
    SoapError,
    build_soap_envelope,
    parse_xml_value,
)

CONTROL_URL = "http://192.168.1.50:1400/MediaRenderer/RenderingControl/Control"

UPNP_ERROR = (
    '<s:Envelope xmlns:s="http://schemas.xmlsoap.org/soap/envelope/"><s:Body>'
    "<s:Fault><faultcode>s:Client</faultcode><faultstring>UPnPError</faultstring>"
    '<detail><UPnPError xmlns="urn:schemas-upnp-org:control-1-0">'
    "<errorCode>402</errorCode><errorDescription>Invalid Args</errorDescription>"
    "</UPnPError></detail></s:Fault></s:Body></s:Envelope>"
)


def _mock_session(status: int = 200, text: str = "<ok/>", error: Optional[Exception] = None):
    """Create a mock aiohttp.ClientSession whose post is a context manager."""
    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.text = AsyncMock(return_value=text)
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=False)
    if error is not None:
        mock_response.__aenter__.side_effect = error

    mock_session = MagicMock()
    mock_session.post = MagicMock(return_value=mock_response)
    return mock_session


class TestSoapAction:
    """Tests for argument templates."""

    def test_fixed_arguments(self) -> None:
        assert ActionType.PLAY.build_arguments() == {"InstanceID": "0", "Speed": "1"}
        assert ActionType.PAUSE.build_arguments() == {"InstanceID": "0"}

    def test_services(self) -> None:
        assert ActionType.PLAY.service == UPNP_AV_TRANSPORT
        assert ActionType.VOLUME.service == UPNP_RENDERING_CONTROL
        assert ActionType.MUTE.service == UPNP_RENDERING_CONTROL

    def test_templated_arguments(self) -> None:
        assert ActionType.VOLUME.build_arguments({"volume": 25}) == {
            "InstanceID": "0",
            "Channel": "Master",
            "DesiredVolume": "25",
        }
        assert ActionType.REMOVE_TRACK_FROM_QUEUE.build_arguments({"track": 3}) == {
            "InstanceID": "0",
            "ObjectID": "Q:0/3",
            "UpdateID": "0",
        }

    def test_play_mode_sent_by_name(self) -> None:
        arguments = ActionType.SET_PLAY_MODE.build_arguments(
            {"play_mode": PlayMode.SHUFFLE_NOREPEAT}
        )
        assert arguments["NewPlayMode"] == "SHUFFLE_NOREPEAT"

    def test_bool_param(self) -> None:
        assert ActionType.MUTE.build_arguments({"mute": True})["DesiredMute"] == "1"

    def test_missing_param(self) -> None:
        with pytest.raises(ValueError, match="SetVolume"):
            ActionType.VOLUME.build_arguments({})


class TestEnvelope:
    """Tests for envelope construction."""

    def test_envelope(self) -> None:
        envelope = build_soap_envelope(
            UPNP_RENDERING_CONTROL, "SetVolume", {"InstanceID": "0", "DesiredVolume": "25"}
        )

        assert envelope.startswith('<?xml version="1.0"?><s:Envelope')
        assert f'<u:SetVolume xmlns:u="{UPNP_RENDERING_CONTROL}">' in envelope
        assert "<InstanceID>0</InstanceID><DesiredVolume>25</DesiredVolume>" in envelope
        assert "\n" not in envelope

    def test_escapes_values(self) -> None:
        envelope = build_soap_envelope(UPNP_AV_TRANSPORT, "Seek", {"Target": "a<b&c"})
        assert "<Target>a&lt;b&amp;c</Target>" in envelope

    def test_parse_xml_value(self) -> None:
        assert parse_xml_value(UPNP_ERROR, "errorCode") == "402"
        assert parse_xml_value(UPNP_ERROR, "missing") is None
        assert parse_xml_value("not xml", "errorCode") is None


class TestSoapClient:
    """Tests for SoapClient.invoke."""

    @pytest.mark.asyncio
    async def test_invoke(self) -> None:
        session = _mock_session(text="<response/>")
        client = SoapClient(session)

        result = await client.invoke(CONTROL_URL, ActionType.VOLUME, {"volume": 25})

        assert result == "<response/>"
        session.post.assert_called_once()
        call = session.post.call_args
        assert call.args == (CONTROL_URL,)
        assert call.kwargs["headers"]["SOAPAction"] == f'"{UPNP_RENDERING_CONTROL}#SetVolume"'
        assert call.kwargs["headers"]["Content-Type"] == 'text/xml; charset="utf-8"'
        assert "<DesiredVolume>25</DesiredVolume>" in call.kwargs["data"]

    @pytest.mark.asyncio
    async def test_upnp_error(self) -> None:
        """Test non-200 responses raise with the UPnP error details."""
        client = SoapClient(_mock_session(status=500, text=UPNP_ERROR))

        with pytest.raises(SoapError) as exc_info:
            await client.invoke(CONTROL_URL, ActionType.PLAY)

        assert exc_info.value.status == 500
        assert exc_info.value.error_code == "402"
        assert exc_info.value.error_description == "Invalid Args"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error", [aiohttp.ClientConnectionError("refused"), asyncio.TimeoutError()]
    )
    async def test_transport_error(self, error: Exception) -> None:
        client = SoapClient(_mock_session(error=error))

        with pytest.raises(SoapError) as exc_info:
            await client.invoke(CONTROL_URL, ActionType.PAUSE)

        assert exc_info.value.status is None
        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_missing_param_not_sent(self) -> None:
        session = _mock_session()
        client = SoapClient(session)

        with pytest.raises(ValueError):
            await client.invoke(CONTROL_URL, ActionType.SEEK, {"unit": "REL_TIME"})

        session.post.assert_not_called()
