"""
Renderer player.

Local mirror of one renderer. State is never polled: the renderer pushes
LastChange events through the NotificationListener and the player applies
them to its PlayerState. Commands are one-way SOAP actions; only volume is
updated locally before the renderer confirms it.
"""

import logging
import re
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional, Protocol, Union

from renderer_sync.upnp.listener import LAST_CHANGE_EVENT
from renderer_sync.upnp.soap import ActionType, SoapAction

from .events import TransportStateEvent, VolumeEvent, classify
from .metadata import parse_track_metadata
from .play_mode import decode_name, encode
from .state import PlayerState
from .timecode import format_time, parse_int

if TYPE_CHECKING:
    from renderer_sync.upnp.description import DeviceDescriptor
    from renderer_sync.upnp.listener import NotificationListener

logger = logging.getLogger(__name__)

AV_TRANSPORT_CONTROL = "/MediaRenderer/AVTransport/Control"
RENDERING_CONTROL_CONTROL = "/MediaRenderer/RenderingControl/Control"

SUBSCRIBE_ENDPOINTS = (
    "/MediaRenderer/AVTransport/Event",
    "/MediaRenderer/RenderingControl/Event",
    "/MediaRenderer/GroupRenderingControl/Event",
)

SEEK_REL_TIME = "REL_TIME"
SEEK_TRACK_NR = "TRACK_NR"

_VOLUME_PATTERN = re.compile(r"^[+-]?\d+$")


class Invoker(Protocol):
    """Remote action capability (SoapClient)."""

    async def invoke(
        self, url: str, action: SoapAction, params: Optional[Mapping[str, Any]] = None
    ) -> Any: ...


class Subscription(Protocol):
    """Event subscription capability (Subscriber)."""

    async def start(self) -> None: ...

    async def dispose(self) -> None: ...


# (event_url, callback_url) -> subscription
SubscriberFactory = Callable[[str, str], Subscription]
ChangeCallback = Callable[["Player"], None]


class Player:
    """
    Proxy and state mirror for one renderer.

    Usage:
        player = Player(descriptor, listener, SoapClient(session),
                        functools.partial(Subscriber, session))
        await player.start()
        await player.set_volume("+5")
        print(player.state.volume)
        await player.dispose()
    """

    def __init__(
        self,
        descriptor: "DeviceDescriptor",
        listener: "NotificationListener",
        invoker: Invoker,
        subscriber_factory: SubscriberFactory,
        on_change: Optional[ChangeCallback] = None,
    ):
        """
        Initialize player.

        Args:
            descriptor: Renderer identity and description location
            listener: Shared notification listener
            invoker: Remote action capability
            subscriber_factory: Creates one subscription per event endpoint
            on_change: Called after a handled event was applied
        """
        self.room_name = descriptor.zonename
        self.uuid = descriptor.uuid
        self.base_url = descriptor.base_url
        self.state = PlayerState()

        self._listener = listener
        self._invoker = invoker
        self._on_change = on_change
        # Volumes this player requested itself, oldest first
        self._own_volume_events: list[int] = []

        callback_url = listener.endpoint()
        self._subscriptions = [
            subscriber_factory(self.base_url + path, callback_url) for path in SUBSCRIBE_ENDPOINTS
        ]

        listener.on(LAST_CHANGE_EVENT, self.handle_notification)

    def __repr__(self) -> str:
        return f"Player({self.room_name!r}, uuid={self.uuid!r})"

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start all event subscriptions."""
        for subscription in self._subscriptions:
            await subscription.start()
        logger.info(f"Subscribed to events of {self.room_name}")

    async def dispose(self) -> None:
        """Release subscriptions and stop receiving notifications."""
        self._listener.off(LAST_CHANGE_EVENT, self.handle_notification)
        for subscription in self._subscriptions:
            await subscription.dispose()
        logger.debug(f"Disposed {self.room_name}")

    # =========================================================================
    # Notifications
    # =========================================================================

    def handle_notification(self, target_id: str, payload: Any) -> None:
        """
        Apply a LastChange payload to the state mirror.

        Notifications for other renderers and unhandled payload shapes are
        ignored. Each field is applied on its own, so a malformed field only
        resets that field to its default.
        """
        if target_id != self.uuid:
            return

        event = classify(payload)
        if isinstance(event, TransportStateEvent):
            self._apply_transport_state(event)
        elif isinstance(event, VolumeEvent):
            if not self._apply_volume(event):
                return
        else:
            logger.debug(f"{self.room_name}: ignoring unhandled notification")
            return

        if self._on_change:
            try:
                self._on_change(self)
            except Exception as e:
                logger.error(f"Error in change callback: {e}", exc_info=True)

    def _apply_transport_state(self, event: TransportStateEvent) -> None:
        state = self.state
        if isinstance(event.transport_state, str):
            state.current_state = event.transport_state
        state.track_no = parse_int(event.current_track)
        state.current_track = parse_track_metadata(event.current_track_item)
        state.next_track = parse_track_metadata(event.next_track_item, next_track=True)
        state.play_mode.crossfade = event.crossfade_mode == "1"
        state.play_mode.repeat, state.play_mode.shuffle = decode_name(event.play_mode)

        logger.debug(
            f"{self.room_name}: {state.current_state}, track {state.track_no} "
            f"({state.current_track.artist} - {state.current_track.title})"
        )

    def _apply_volume(self, event: VolumeEvent) -> bool:
        master = event.master()
        if master is None:
            return False
        self.state.volume = parse_int(master)
        logger.debug(f"{self.room_name}: volume {self.state.volume}")
        return True

    # =========================================================================
    # Self-echo ledger
    # =========================================================================

    @property
    def own_volume_events(self) -> tuple[int, ...]:
        """Volumes requested by this player that have not been drained."""
        return tuple(self._own_volume_events)

    def drain_own_volume_events(self) -> list[int]:
        """Return and clear the requested volumes, oldest first."""
        events, self._own_volume_events = self._own_volume_events, []
        return events

    # =========================================================================
    # Commands
    # =========================================================================

    async def play(self) -> Any:
        """Start or resume playback."""
        return await self._invoke(AV_TRANSPORT_CONTROL, ActionType.PLAY)

    async def pause(self) -> Any:
        """Pause playback."""
        return await self._invoke(AV_TRANSPORT_CONTROL, ActionType.PAUSE)

    async def next_track(self) -> Any:
        """Skip to the next track."""
        return await self._invoke(AV_TRANSPORT_CONTROL, ActionType.NEXT)

    async def previous_track(self) -> Any:
        """Go to the previous track."""
        return await self._invoke(AV_TRANSPORT_CONTROL, ActionType.PREVIOUS)

    async def mute(self) -> Any:
        return await self._invoke(RENDERING_CONTROL_CONTROL, ActionType.MUTE, {"mute": 1})

    async def unmute(self) -> Any:
        return await self._invoke(RENDERING_CONTROL_CONTROL, ActionType.MUTE, {"mute": 0})

    def set_volume(self, level: Union[int, str]) -> Awaitable[Any]:
        """
        Set volume, optimistically updating the state mirror.

        The state and ledger are updated when called; the returned awaitable
        sends the SetVolume action.

        Args:
            level: Absolute volume, or a string prefixed with + or - for a
                change relative to the current volume ("+5", "-10")

        Raises:
            ValueError: If level is not an integer or signed integer string
        """
        volume = self._resolve_volume(level)
        self.state.volume = volume

        # Stash this update so the echoed event can be recognized
        self._own_volume_events.append(volume)

        return self._invoke(RENDERING_CONTROL_CONTROL, ActionType.VOLUME, {"volume": volume})

    async def time_seek(self, seconds: int) -> Any:
        """Seek within the current track."""
        return await self._invoke(
            AV_TRANSPORT_CONTROL,
            ActionType.SEEK,
            {"unit": SEEK_REL_TIME, "value": format_time(seconds)},
        )

    async def track_seek(self, track_no: int) -> Any:
        """Jump to a queue position (1-based)."""
        return await self._invoke(
            AV_TRANSPORT_CONTROL, ActionType.SEEK, {"unit": SEEK_TRACK_NR, "value": track_no}
        )

    async def clear_queue(self) -> Any:
        return await self._invoke(AV_TRANSPORT_CONTROL, ActionType.REMOVE_ALL_TRACKS_FROM_QUEUE)

    async def remove_track_from_queue(self, index: Optional[int] = 0) -> Any:
        return await self._invoke(
            AV_TRANSPORT_CONTROL, ActionType.REMOVE_TRACK_FROM_QUEUE, {"track": index or 0}
        )

    async def repeat(self, enabled: bool) -> Any:
        """Toggle repeat, keeping the last known shuffle setting."""
        mode = encode(repeat=bool(enabled), shuffle=self.state.play_mode.shuffle)
        return await self._invoke(AV_TRANSPORT_CONTROL, ActionType.SET_PLAY_MODE, {"play_mode": mode})

    async def shuffle(self, enabled: bool) -> Any:
        """Toggle shuffle, keeping the last known repeat setting."""
        mode = encode(repeat=self.state.play_mode.repeat, shuffle=bool(enabled))
        return await self._invoke(AV_TRANSPORT_CONTROL, ActionType.SET_PLAY_MODE, {"play_mode": mode})

    def _resolve_volume(self, level: Union[int, str]) -> int:
        """Absolute volume for a set_volume argument, never below 0."""
        if isinstance(level, bool):
            raise ValueError(f"Invalid volume: {level!r}")
        if isinstance(level, int):
            volume = level
        elif isinstance(level, str) and _VOLUME_PATTERN.match(level.strip()):
            text = level.strip()
            volume = int(text)
            if text[0] in "+-":
                volume += self.state.volume
        else:
            raise ValueError(f"Invalid volume: {level!r}")
        return max(volume, 0)

    async def _invoke(
        self, path: str, action: SoapAction, params: Optional[Mapping[str, Any]] = None
    ) -> Any:
        return await self._invoker.invoke(f"{self.base_url}{path}", action, params)
