"""
LastChange event decoding.

Renderers report state changes as a GENA property set whose LastChange
property holds an escaped XML document:

    <Event xmlns="urn:schemas-upnp-org:metadata-1-0/AVT/">
      <InstanceID val="0">
        <TransportState val="PLAYING"/>
        <CurrentTrackMetaData val="&lt;DIDL-Lite ...&gt;"/>
        ...
      </InstanceID>
    </Event>

It is decoded into a plain document keyed by lower-cased tag names, with
namespace prefixes kept for vendor tags ("r:nexttrackmetadata"). Per-channel
variables (Volume, Mute, ...) become lists of entries. DIDL-Lite values are
decoded to {"item": {...}} next to the raw "val".
"""

import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

LAST_CHANGE_PROPERTY = "LastChange"

# Namespace URI -> prefix used in decoded keys. Default namespaces get none.
NAMESPACE_PREFIXES = {
    "urn:schemas-rinconnetworks-com:metadata-1-0/": "r",
    "http://purl.org/dc/elements/1.1/": "dc",
    "urn:schemas-upnp-org:metadata-1-0/upnp/": "upnp",
}


def _key(tag: str) -> str:
    """Map an ElementTree tag like {ns}LocalName to prefix:localname."""
    if tag.startswith("{"):
        namespace, _, local = tag[1:].partition("}")
        prefix = NAMESPACE_PREFIXES.get(namespace)
        if prefix:
            return f"{prefix}:{local.lower()}"
        return local.lower()
    return tag.lower()


def _is_didl(value: Any) -> bool:
    return isinstance(value, str) and value.lstrip().startswith("<DIDL-Lite")


def parse_didl(xml_text: str) -> Dict[str, Any]:
    """
    Decode DIDL-Lite metadata.

    Returns:
        {"item": {...}} for the first item (or container), {} if there is none
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        logger.debug(f"Unparsable DIDL-Lite metadata: {e}")
        return {}

    element = None
    for child in root:
        if _key(child.tag) in ("item", "container"):
            element = child
            break
    if element is None:
        return {}

    item: Dict[str, Any] = {}
    for child in element:
        key = _key(child.tag)
        if key in item:
            continue
        if key == "res":
            item[key] = {"text": child.text or "", "attrs": dict(child.attrib)}
        else:
            item[key] = child.text or ""
    return {"item": item}


def parse_last_change(xml_text: str) -> Dict[str, Any]:
    """
    Decode a LastChange document.

    Returns:
        Decoded state variables of the first InstanceID, {} if malformed
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        logger.debug(f"Unparsable LastChange document: {e}")
        return {}

    instance = None
    for child in root:
        if _key(child.tag) == "instanceid":
            instance = child
            break
    if instance is None:
        return {}

    document: Dict[str, Any] = {}
    for child in instance:
        key = _key(child.tag)
        entry: Dict[str, Any] = {name.lower(): value for name, value in child.attrib.items()}
        if _is_didl(entry.get("val")):
            entry.update(parse_didl(entry["val"]))

        if "channel" in entry:
            document.setdefault(key, []).append(entry)
        else:
            document.setdefault(key, entry)
    return document


def parse_property_set(xml_text: str) -> Dict[str, str]:
    """
    Decode a GENA NOTIFY body.

    Returns:
        Property name -> text value
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        logger.debug(f"Unparsable property set: {e}")
        return {}

    properties: Dict[str, str] = {}
    for prop in root:
        for variable in prop:
            name = variable.tag.split("}")[-1]
            properties[name] = variable.text or ""
    return properties


def target_id_from_sid(sid: Optional[str]) -> Optional[str]:
    """
    Extract the device identity from a subscription id.

    "uuid:RINCON_000E58A0123401400_sub0000000123" -> "RINCON_000E58A0123401400"
    """
    if not sid:
        return None
    value = sid.strip()
    if value.lower().startswith("uuid:"):
        value = value[5:]
    device_id, sep, _ = value.rpartition("_sub")
    return device_id if sep else value
