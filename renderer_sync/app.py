"""
RendererSync application.

Wires a notification listener, SOAP client and subscriptions to a Player and
logs the mirrored state as the renderer reports changes.
"""

import asyncio
import functools
import logging
import signal
from typing import Optional

import aiohttp

from renderer_sync.config import Config
from renderer_sync.player import Player, PlayerState
from renderer_sync.upnp import (
    DeviceDescriptor,
    NotificationListener,
    SoapClient,
    Subscriber,
    fetch_device_descriptor,
)

logger = logging.getLogger(__name__)


class RendererSync:
    """
    Main RendererSync application.

    Usage:
        config = load_config(...)
        app = RendererSync(config)
        await app.run()
    """

    def __init__(self, config: Config):
        """
        Initialize RendererSync.

        Args:
            config: Validated configuration
        """
        self._config = config
        self._is_running = False
        self._shutdown_event = asyncio.Event()

        # Components (initialized in start())
        self._session: Optional[aiohttp.ClientSession] = None
        self._listener: Optional[NotificationListener] = None
        self._player: Optional[Player] = None

        # Last logged snapshot, to log only what changed
        self._last_logged: Optional[dict] = None

    @property
    def player(self) -> Optional[Player]:
        """The mirrored player, once started."""
        return self._player

    @property
    def is_running(self) -> bool:
        """Check if the application is running."""
        return self._is_running

    async def start(self) -> None:
        """
        Start all components.

        Startup order:
        1. HTTP session
        2. Notification listener
        3. Device descriptor (from config or device description)
        4. Player and its subscriptions
        """
        logger.info("Starting RendererSync...")
        self._session = aiohttp.ClientSession()
        self._is_running = True

        listener_config = self._config.listener
        self._listener = NotificationListener(
            host=listener_config.host,
            port=listener_config.port,
            advertise_host=listener_config.advertise_host or None,
        )
        await self._listener.start()

        descriptor = await self._resolve_descriptor(self._session)
        logger.info(f"Mirroring {descriptor}")

        self._player = Player(
            descriptor,
            self._listener,
            SoapClient(self._session),
            functools.partial(
                Subscriber, self._session, timeout=self._config.subscription.timeout
            ),
            on_change=self._log_state,
        )
        await self._player.start()

    async def stop(self) -> None:
        """Stop all components in reverse startup order."""
        if not self._is_running:
            return

        logger.info("Stopping RendererSync...")
        self._is_running = False

        if self._player:
            try:
                await self._player.dispose()
            except Exception as e:
                logger.warning(f"Error disposing player: {e}")

        if self._listener:
            try:
                await self._listener.stop()
            except Exception as e:
                logger.warning(f"Error stopping listener: {e}")

        if self._session:
            await self._session.close()
            self._session = None

        logger.info("RendererSync stopped")

    async def run(self) -> None:
        """
        Run RendererSync until interrupted.

        Sets up signal handlers for graceful shutdown on SIGINT/SIGTERM.
        """
        loop = asyncio.get_running_loop()

        def handle_signal() -> None:
            logger.info("Shutdown signal received")
            self._shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, handle_signal)

        try:
            await self.start()
            await self._shutdown_event.wait()
        finally:
            await self.stop()

    async def _resolve_descriptor(self, session: aiohttp.ClientSession) -> DeviceDescriptor:
        """Use the configured identity, reading missing parts from the device."""
        device = self._config.device
        if device.uuid and device.room:
            return DeviceDescriptor(zonename=device.room, uuid=device.uuid, location=device.location)

        described = await fetch_device_descriptor(session, device.location)
        return DeviceDescriptor(
            zonename=device.room or described.zonename,
            uuid=device.uuid or described.uuid,
            location=device.location,
        )

    def _log_state(self, player: Player) -> None:
        """Log transport, track and volume changes."""
        snapshot = summarize_state(player.state)
        previous = self._last_logged or {}
        self._last_logged = snapshot

        if snapshot["track"] != previous.get("track") or snapshot["state"] != previous.get(
            "state"
        ):
            logger.info(f"{player.room_name}: {snapshot['state']} - {snapshot['track']}")
        if snapshot["volume"] != previous.get("volume"):
            logger.info(f"{player.room_name}: volume {snapshot['volume']}")
        if snapshot["play_mode"] != previous.get("play_mode"):
            logger.info(f"{player.room_name}: play mode {snapshot['play_mode']}")


def summarize_state(state: PlayerState) -> dict:
    """Condense a state into the fields worth logging."""
    track = state.current_track
    title = f"{track.artist} - {track.title}" if track.artist else track.title
    mode = state.play_mode
    flags = [
        name
        for name, enabled in (
            ("repeat", mode.repeat),
            ("shuffle", mode.shuffle),
            ("crossfade", mode.crossfade),
        )
        if enabled
    ]
    return {
        "state": state.current_state,
        "track": f"#{state.track_no} {title or track.uri or '(none)'}",
        "volume": state.volume,
        "play_mode": ", ".join(flags) or "normal",
    }
