"""
Player state records.

The state mirror of a renderer. Every record is built from dataclass
defaults, so a new player always starts from a complete, empty state and
no two players share nested records.
"""

from dataclasses import asdict, dataclass, field
from typing import Any

DEFAULT_TRANSPORT_STATE = "STOPPED"


@dataclass
class Track:
    """Track as reported in the next-track slot."""

    artist: str = ""
    title: str = ""
    album: str = ""
    album_art_uri: str = ""
    duration: int = 0  # seconds
    uri: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class CurrentTrack(Track):
    """Track as reported in the current-track slot."""

    radio_show_metadata: str = ""


@dataclass
class PlayModeState:
    """Repeat, shuffle and crossfade flags."""

    repeat: bool = False
    shuffle: bool = False
    crossfade: bool = False


@dataclass
class PlayerState:
    """
    Last known playback state of a renderer.

    Mutated only by the owning Player's notification handler, except for
    the optimistic volume update in Player.set_volume.

    rel_time, state_time and mute are kept for consumers that expect the
    full state shape; no handled event updates them.
    """

    current_track: CurrentTrack = field(default_factory=CurrentTrack)
    next_track: Track = field(default_factory=Track)
    play_mode: PlayModeState = field(default_factory=PlayModeState)
    rel_time: int = 0  # seconds
    state_time: int = 0  # timestamp rel_time was sampled at
    volume: int = 0
    mute: bool = False
    track_no: int = 0  # 1-based queue position
    current_state: str = DEFAULT_TRANSPORT_STATE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)
