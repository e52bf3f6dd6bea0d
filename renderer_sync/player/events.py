"""
Notification payload classification.

A LastChange payload arrives as a loosely structured document. classify()
decides which of the handled shapes it has, so the player can dispatch on
the event type instead of probing the document.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

MASTER_CHANNEL = "Master"
NEXT_TRACK_METADATA_KEY = "r:nexttrackmetadata"


def _val(entry: Any) -> Any:
    """Value attribute of a state variable entry."""
    if isinstance(entry, Mapping):
        return entry.get("val")
    return None


def _item(entry: Any) -> Any:
    if isinstance(entry, Mapping):
        return entry.get("item")
    return None


@dataclass
class TransportStateEvent:
    """AVTransport change: transport state, queue position, tracks, play mode."""

    transport_state: Any = None
    current_track: Any = None
    current_track_item: Any = None
    next_track_item: Any = None
    crossfade_mode: Any = None
    play_mode: Any = None


@dataclass
class VolumeEvent:
    """RenderingControl volume change, one entry per channel."""

    channels: list[Mapping[str, Any]] = field(default_factory=list)

    def master(self) -> Optional[Any]:
        """Value of the Master channel, if present."""
        for entry in self.channels:
            if entry.get("channel") == MASTER_CHANNEL:
                return entry.get("val")
        return None


@dataclass
class UnknownEvent:
    """Any payload shape that is not handled."""

    payload: Any = None


NotificationEvent = Union[TransportStateEvent, VolumeEvent, UnknownEvent]


def classify(payload: Any) -> NotificationEvent:
    """
    Classify a decoded LastChange payload.

    Args:
        payload: Document produced by parse_last_change

    Returns:
        TransportStateEvent, VolumeEvent or UnknownEvent
    """
    if not isinstance(payload, Mapping):
        return UnknownEvent(payload)

    if payload.get("transportstate"):
        current_metadata = payload.get("currenttrackmetadata")
        next_metadata = None
        if isinstance(current_metadata, Mapping):
            next_metadata = current_metadata.get(NEXT_TRACK_METADATA_KEY)
        if next_metadata is None:
            next_metadata = payload.get(NEXT_TRACK_METADATA_KEY)

        return TransportStateEvent(
            transport_state=_val(payload.get("transportstate")),
            current_track=_val(payload.get("currenttrack")),
            current_track_item=_item(current_metadata),
            next_track_item=_item(next_metadata),
            crossfade_mode=_val(payload.get("currentcrossfademode")),
            play_mode=_val(payload.get("currentplaymode")),
        )

    volume = payload.get("volume")
    if volume:
        entries = volume if isinstance(volume, list) else [volume]
        return VolumeEvent([entry for entry in entries if isinstance(entry, Mapping)])

    return UnknownEvent(payload)
