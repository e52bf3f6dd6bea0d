"""
UPnP event notification listener.

HTTP server that receives GENA NOTIFY requests from renderers and hands the
decoded LastChange documents to registered callbacks as (target_id, payload).
One listener serves every player; each player filters by its own identity.
"""

import logging
import socket
from typing import Any, Callable, Dict, List, Optional

from aiohttp import web

from .lastchange import (
    LAST_CHANGE_PROPERTY,
    parse_last_change,
    parse_property_set,
    target_id_from_sid,
)

logger = logging.getLogger(__name__)

LAST_CHANGE_EVENT = "last-change"

NotificationCallback = Callable[[str, Dict[str, Any]], None]


class NotificationListener:
    """
    Callback server for UPnP event notifications.

    Usage:
        listener = NotificationListener(port=3500)
        listener.on("last-change", player.handle_notification)
        await listener.start()
        subscriber = Subscriber(session, event_url, listener.endpoint())
    """

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 3500,
        advertise_host: Optional[str] = None,
    ):
        """
        Initialize listener.

        Args:
            host: Host to bind to
            port: Port to listen on
            advertise_host: Host put into callback URLs (local IP if omitted)
        """
        self._host = host
        self._port = port
        self._advertise_host = advertise_host

        self._callbacks: Dict[str, List[NotificationCallback]] = {}
        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    @property
    def is_running(self) -> bool:
        """Check if the server is running."""
        return self._site is not None

    def endpoint(self) -> str:
        """Callback URL for event subscriptions."""
        host = self._advertise_host or self._host
        if host == "0.0.0.0":
            host = self._get_local_ip()
        return f"http://{host}:{self._port}/"

    def on(self, event: str, callback: NotificationCallback) -> None:
        """Register a callback for an event."""
        self._callbacks.setdefault(event, []).append(callback)

    def off(self, event: str, callback: NotificationCallback) -> None:
        """Remove a previously registered callback."""
        callbacks = self._callbacks.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def emit(self, event: str, target_id: str, payload: Dict[str, Any]) -> None:
        """Deliver an event to its callbacks, in registration order."""
        for callback in list(self._callbacks.get(event, [])):
            try:
                callback(target_id, payload)
            except Exception as e:
                logger.error(f"Error in {event} callback: {e}", exc_info=True)

    def build_app(self) -> web.Application:
        """Create the aiohttp application."""
        app = web.Application()
        app.router.add_route("NOTIFY", "/{tail:.*}", self._handle_notify)
        return app

    async def start(self) -> None:
        """Start the listener."""
        self._app = self.build_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()

        logger.info(f"Notification listener started on {self._host}:{self._port}")

    async def stop(self) -> None:
        """Stop the listener."""
        if self._site:
            await self._site.stop()
            self._site = None
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

        logger.info("Notification listener stopped")

    async def _handle_notify(self, request: web.Request) -> web.Response:
        """Handle a NOTIFY request from a renderer."""
        target_id = target_id_from_sid(request.headers.get("SID"))
        if not target_id:
            logger.debug(f"NOTIFY without SID from {request.remote}")
            return web.Response(status=400, text="Missing SID")

        body = await request.text()
        properties = parse_property_set(body)

        last_change = properties.get(LAST_CHANGE_PROPERTY)
        if last_change:
            payload = parse_last_change(last_change)
            logger.debug(f"LastChange for {target_id}: {sorted(payload)}")
            self.emit(LAST_CHANGE_EVENT, target_id, payload)
        else:
            logger.debug(f"Ignoring properties {sorted(properties)} for {target_id}")

        return web.Response(status=200)

    def _get_local_ip(self) -> str:
        """Get local IP address for callback URLs."""
        try:
            s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            s.connect(("8.8.8.8", 80))
            ip = s.getsockname()[0]
            s.close()
            return ip
        except OSError:
            return "127.0.0.1"
