"""
Track metadata decoding.

Turns a decoded DIDL-Lite item (see renderer_sync.upnp.lastchange.parse_didl)
into a Track record. Decoding never fails: anything missing comes out as an
empty string or zero duration.
"""

from typing import Any, Literal, Mapping, Union, overload

from .state import CurrentTrack, Track
from .timecode import parse_time


def _text(item: Mapping[str, Any], key: str) -> str:
    value = item.get(key)
    return value if isinstance(value, str) else ""


@overload
def parse_track_metadata(item: Any, next_track: Literal[False] = ...) -> CurrentTrack: ...


@overload
def parse_track_metadata(item: Any, next_track: Literal[True]) -> Track: ...


def parse_track_metadata(
    item: Any, next_track: bool = False
) -> Union[CurrentTrack, Track]:
    """
    Decode a track from a metadata item.

    Args:
        item: Decoded item document ({"res": {"text", "attrs"}, "dc:title", ...})
        next_track: Decode into the next-track template (no radio show field)

    Returns:
        Fully populated Track (next_track=True) or CurrentTrack
    """
    track: Union[CurrentTrack, Track] = Track() if next_track else CurrentTrack()
    if not isinstance(item, Mapping):
        return track

    res = item.get("res")
    if isinstance(res, Mapping):
        uri = res.get("text")
        track.uri = uri if isinstance(uri, str) else ""
        attrs = res.get("attrs")
        if isinstance(attrs, Mapping):
            track.duration = parse_time(attrs.get("duration"))

    track.artist = _text(item, "dc:creator")
    track.title = _text(item, "dc:title")
    track.album = _text(item, "upnp:album")
    track.album_art_uri = _text(item, "upnp:albumarturi")

    if isinstance(track, CurrentTrack):
        track.radio_show_metadata = _text(item, "r:radioshowmd")

    return track
