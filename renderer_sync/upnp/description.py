"""
Renderer identity from its UPnP device description.
"""

import asyncio
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from urllib.parse import urlparse

import aiohttp
from aiohttp import ClientTimeout

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 10.0


class DescriptionError(Exception):
    """Device description could not be fetched or parsed."""

    pass


@dataclass
class DeviceDescriptor:
    """Identity and address of one renderer."""

    zonename: str
    uuid: str
    location: str  # Device description URL

    @property
    def base_url(self) -> str:
        """Scheme and host of location; every control URL is relative to it."""
        uri = urlparse(self.location)
        return f"{uri.scheme}://{uri.netloc}"

    def __str__(self) -> str:
        return f"{self.zonename} ({self.uuid}) @ {self.base_url}"


def parse_device_description(xml_text: str, location: str) -> DeviceDescriptor:
    """
    Parse a device description document.

    The room name falls back to the friendly name for non-Sonos renderers.

    Raises:
        DescriptionError: If the document is malformed or has no UDN
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise DescriptionError(f"Failed to parse device description: {e}") from e

    udn = ""
    room_name = ""
    friendly_name = ""
    # First occurrence wins: the root device is listed before embedded devices
    for elem in root.iter():
        tag = elem.tag.split("}")[-1]
        text = (elem.text or "").strip()
        if tag == "UDN" and not udn:
            udn = text
        elif tag == "roomName" and not room_name:
            room_name = text
        elif tag == "friendlyName" and not friendly_name:
            friendly_name = text

    if not udn:
        raise DescriptionError(f"No UDN in device description at {location}")
    if udn.lower().startswith("uuid:"):
        udn = udn[5:]

    return DeviceDescriptor(zonename=room_name or friendly_name, uuid=udn, location=location)


async def fetch_device_descriptor(
    session: aiohttp.ClientSession, location: str
) -> DeviceDescriptor:
    """
    Fetch and parse the device description at location.

    Raises:
        DescriptionError: On HTTP, transport or parse failure
    """
    try:
        async with session.get(
            location, timeout=ClientTimeout(total=REQUEST_TIMEOUT_SECONDS)
        ) as response:
            if response.status != 200:
                raise DescriptionError(
                    f"Device description at {location} returned HTTP {response.status}"
                )
            xml_text = await response.text()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise DescriptionError(f"Could not fetch device description at {location}: {e}") from e

    descriptor = parse_device_description(xml_text, location)
    logger.debug(f"Described device: {descriptor}")
    return descriptor
