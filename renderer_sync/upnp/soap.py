"""
UPnP SOAP action invoker.

Sends one-way control actions to a renderer. The action vocabulary is
fixed; each action knows its service type and argument template.
"""

import asyncio
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Mapping, Optional

import aiohttp
from aiohttp import ClientTimeout

logger = logging.getLogger(__name__)

# SOAP constants
SOAP_ENVELOPE_NS = "http://schemas.xmlsoap.org/soap/envelope/"
SOAP_ENCODING = "http://schemas.xmlsoap.org/soap/encoding/"
UPNP_AV_TRANSPORT = "urn:schemas-upnp-org:service:AVTransport:1"
UPNP_RENDERING_CONTROL = "urn:schemas-upnp-org:service:RenderingControl:1"

REQUEST_TIMEOUT_SECONDS = 10.0


class SoapError(Exception):
    """SOAP action failed."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        error_code: Optional[str] = None,
        error_description: Optional[str] = None,
    ):
        super().__init__(message)
        self.status = status
        self.error_code = error_code
        self.error_description = error_description


@dataclass(frozen=True)
class SoapAction:
    """
    A control action and its argument template.

    Template values are formatted with the invocation params, so
    "{volume}" takes params["volume"].
    """

    name: str
    service: str
    arguments: Mapping[str, str] = field(default_factory=dict)

    def build_arguments(self, params: Optional[Mapping[str, Any]] = None) -> Dict[str, str]:
        """
        Fill the argument template.

        Enum params are sent by name (SetPlayMode takes "SHUFFLE", not 3).

        Raises:
            ValueError: If a template param is missing
        """
        values = {key: _format_param(value) for key, value in (params or {}).items()}
        try:
            return {arg: template.format(**values) for arg, template in self.arguments.items()}
        except KeyError as e:
            raise ValueError(f"{self.name} requires parameter {e}") from None


def _format_param(value: Any) -> str:
    if isinstance(value, IntEnum):
        return value.name
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


class ActionType:
    """Renderer action vocabulary."""

    PLAY = SoapAction("Play", UPNP_AV_TRANSPORT, {"InstanceID": "0", "Speed": "1"})
    PAUSE = SoapAction("Pause", UPNP_AV_TRANSPORT, {"InstanceID": "0"})
    NEXT = SoapAction("Next", UPNP_AV_TRANSPORT, {"InstanceID": "0"})
    PREVIOUS = SoapAction("Previous", UPNP_AV_TRANSPORT, {"InstanceID": "0"})
    MUTE = SoapAction(
        "SetMute",
        UPNP_RENDERING_CONTROL,
        {"InstanceID": "0", "Channel": "Master", "DesiredMute": "{mute}"},
    )
    VOLUME = SoapAction(
        "SetVolume",
        UPNP_RENDERING_CONTROL,
        {"InstanceID": "0", "Channel": "Master", "DesiredVolume": "{volume}"},
    )
    SEEK = SoapAction(
        "Seek",
        UPNP_AV_TRANSPORT,
        {"InstanceID": "0", "Unit": "{unit}", "Target": "{value}"},
    )
    REMOVE_ALL_TRACKS_FROM_QUEUE = SoapAction(
        "RemoveAllTracksFromQueue", UPNP_AV_TRANSPORT, {"InstanceID": "0"}
    )
    REMOVE_TRACK_FROM_QUEUE = SoapAction(
        "RemoveTrackFromQueue",
        UPNP_AV_TRANSPORT,
        {"InstanceID": "0", "ObjectID": "Q:0/{track}", "UpdateID": "0"},
    )
    SET_PLAY_MODE = SoapAction(
        "SetPlayMode",
        UPNP_AV_TRANSPORT,
        {"InstanceID": "0", "NewPlayMode": "{play_mode}"},
    )


def build_soap_envelope(service: str, action: str, args: Mapping[str, str]) -> str:
    """Build SOAP envelope XML (single-line, as Sonos expects)."""

    def escape(s: str) -> str:
        return (
            s.replace("&", "&amp;")
            .replace("<", "&lt;")
            .replace(">", "&gt;")
            .replace('"', "&quot;")
            .replace("'", "&apos;")
        )

    args_xml = "".join(f"<{k}>{escape(v)}</{k}>" for k, v in args.items())

    return (
        '<?xml version="1.0"?>'
        f'<s:Envelope xmlns:s="{SOAP_ENVELOPE_NS}" '
        f's:encodingStyle="{SOAP_ENCODING}">'
        "<s:Body>"
        f'<u:{action} xmlns:u="{service}">'
        f"{args_xml}"
        f"</u:{action}>"
        "</s:Body>"
        "</s:Envelope>"
    )


def parse_xml_value(xml_text: str, tag_name: str) -> Optional[str]:
    """Extract value from XML response by tag name."""
    try:
        root = ET.fromstring(xml_text)
        for elem in root.iter():
            if elem.tag.split("}")[-1] == tag_name:
                return elem.text
    except ET.ParseError:
        pass
    return None


class SoapClient:
    """
    Sends SOAP actions over a shared aiohttp session.

    Failures are raised as SoapError; nothing is retried.
    """

    def __init__(self, session: aiohttp.ClientSession, timeout: float = REQUEST_TIMEOUT_SECONDS):
        self._session = session
        self._timeout = ClientTimeout(total=timeout)

    async def invoke(
        self,
        url: str,
        action: SoapAction,
        params: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """
        Invoke an action on a control endpoint.

        Args:
            url: Service control URL
            action: Action from ActionType
            params: Values for the action's argument template

        Returns:
            Response body

        Raises:
            SoapError: On HTTP or transport failure
            ValueError: If a required param is missing
        """
        envelope = build_soap_envelope(action.service, action.name, action.build_arguments(params))
        headers = {
            "Content-Type": 'text/xml; charset="utf-8"',
            "SOAPAction": f'"{action.service}#{action.name}"',
        }

        logger.debug(f"SOAP {action.name} -> {url}")
        try:
            async with self._session.post(
                url, data=envelope, headers=headers, timeout=self._timeout
            ) as response:
                text = await response.text()
                if response.status == 200:
                    return text

                error_code = parse_xml_value(text, "errorCode")
                error_desc = parse_xml_value(text, "errorDescription")
                logger.warning(
                    f"SOAP {action.name} failed ({response.status}): "
                    f"code={error_code}, description={error_desc}"
                )
                raise SoapError(
                    f"SOAP {action.name} failed with HTTP {response.status}",
                    status=response.status,
                    error_code=error_code,
                    error_description=error_desc,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"SOAP {action.name} error: {e}")
            raise SoapError(f"SOAP {action.name} error: {e}") from e
