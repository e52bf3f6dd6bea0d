"""
Player module.

Mirrors renderer state from pushed notifications and issues commands.
"""

from .events import NotificationEvent, TransportStateEvent, UnknownEvent, VolumeEvent, classify
from .metadata import parse_track_metadata
from .play_mode import PlayMode, decode, decode_name, encode
from .player import Player
from .state import CurrentTrack, PlayerState, PlayModeState, Track
from .timecode import format_time, parse_int, parse_time

__all__ = [
    "Player",
    # State
    "CurrentTrack",
    "PlayerState",
    "PlayModeState",
    "Track",
    # Events
    "NotificationEvent",
    "TransportStateEvent",
    "UnknownEvent",
    "VolumeEvent",
    "classify",
    # Codecs
    "PlayMode",
    "decode",
    "decode_name",
    "encode",
    "format_time",
    "parse_int",
    "parse_time",
    "parse_track_metadata",
]
