"""Tests for track metadata decoding."""

from typing import Any

import pytest

from renderer_sync.player.metadata import parse_track_metadata
from renderer_sync.player.state import CurrentTrack, Track


@pytest.fixture
def item() -> dict[str, Any]:
    """Decoded DIDL-Lite item with resource, creator and title."""
    return {
        "res": {
            "text": "x-file-cifs://a/b.mp3",
            "attrs": {"duration": "0:04:20", "protocolInfo": "x-file-cifs:*:audio/mpeg:*"},
        },
        "dc:creator": "Artist",
        "dc:title": "Song",
    }


class TestCurrentTrack:
    """Tests for decoding the current-track slot."""

    def test_decode(self, item: dict[str, Any]) -> None:
        """Test all fields are populated, missing ones empty."""
        track = parse_track_metadata(item)

        assert isinstance(track, CurrentTrack)
        assert track.uri == "x-file-cifs://a/b.mp3"
        assert track.duration == 260
        assert track.artist == "Artist"
        assert track.title == "Song"
        assert track.album == ""
        assert track.album_art_uri == ""
        assert track.radio_show_metadata == ""

    def test_optional_fields(self, item: dict[str, Any]) -> None:
        """Test album, art and radio show fields."""
        item["upnp:album"] = "Album"
        item["upnp:albumarturi"] = "/getaa?s=1&u=x-file-cifs://a/b.mp3"
        item["r:radioshowmd"] = "Morning Show,p123"

        track = parse_track_metadata(item)

        assert track.album == "Album"
        assert track.album_art_uri == "/getaa?s=1&u=x-file-cifs://a/b.mp3"
        assert track.radio_show_metadata == "Morning Show,p123"


class TestNextTrack:
    """Tests for decoding the next-track slot."""

    def test_decode(self, item: dict[str, Any]) -> None:
        """Test next-track template has no radio show field."""
        track = parse_track_metadata(item, next_track=True)

        assert type(track) is Track
        assert not hasattr(track, "radio_show_metadata")
        assert track.to_dict() == {
            "artist": "Artist",
            "title": "Song",
            "album": "",
            "album_art_uri": "",
            "duration": 260,
            "uri": "x-file-cifs://a/b.mp3",
        }


class TestMalformedMetadata:
    """Tests for decoding incomplete items."""

    @pytest.mark.parametrize("bad_item", [None, "", "text", 42, []])
    def test_non_mapping_item(self, bad_item: Any) -> None:
        """Test anything but a mapping yields the empty template."""
        assert parse_track_metadata(bad_item) == CurrentTrack()
        assert parse_track_metadata(bad_item, next_track=True) == Track()

    def test_missing_resource(self) -> None:
        """Test items without res have no uri or duration."""
        track = parse_track_metadata({"dc:title": "Radio"})
        assert track.title == "Radio"
        assert track.uri == ""
        assert track.duration == 0

    def test_bad_duration(self, item: dict[str, Any]) -> None:
        """Test unreadable duration fails closed."""
        item["res"]["attrs"]["duration"] = "NOT_IMPLEMENTED"
        assert parse_track_metadata(item).duration == 0

    def test_missing_duration(self, item: dict[str, Any]) -> None:
        del item["res"]["attrs"]["duration"]
        assert parse_track_metadata(item).duration == 0

    def test_non_text_fields_ignored(self, item: dict[str, Any]) -> None:
        """Test structured values in text fields are treated as missing."""
        item["dc:creator"] = {"nested": "value"}
        assert parse_track_metadata(item).artist == ""
