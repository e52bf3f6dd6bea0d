"""
UPnP event subscription (GENA).

Keeps one event subscription alive: SUBSCRIBE, periodic renewal and
UNSUBSCRIBE on dispose. Notifications themselves arrive at the
NotificationListener the callback URL points to.
"""

import asyncio
import logging
import re
from typing import Optional

import aiohttp
from aiohttp import ClientTimeout

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 600
# Renew when this fraction of the granted timeout has passed
RENEWAL_FRACTION = 0.8
RETRY_DELAY_SECONDS = 5.0
REQUEST_TIMEOUT_SECONDS = 10.0

_TIMEOUT_HEADER = re.compile(r"Second-(\d+)", re.IGNORECASE)


class SubscriptionError(Exception):
    """Event subscription request failed."""

    pass


def parse_timeout_header(value: Optional[str], default: int) -> int:
    """Read "Second-N" from a TIMEOUT header. "infinite" and junk yield default."""
    if not value:
        return default
    match = _TIMEOUT_HEADER.search(value)
    if not match:
        return default
    return int(match.group(1))


class Subscriber:
    """
    Subscription to one UPnP event endpoint.

    Usage:
        subscriber = Subscriber(session, f"{base_url}/MediaRenderer/AVTransport/Event",
                                listener.endpoint())
        await subscriber.start()
        ...
        await subscriber.dispose()
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        event_url: str,
        callback_url: str,
        timeout: int = DEFAULT_TIMEOUT_SECONDS,
    ):
        """
        Initialize subscriber.

        Args:
            session: Shared HTTP session
            event_url: Event subscription URL of the service
            callback_url: URL the device should NOTIFY
            timeout: Requested subscription timeout in seconds
        """
        self.event_url = event_url
        self.callback_url = callback_url
        self._session = session
        self._requested_timeout = timeout
        self._request_timeout = ClientTimeout(total=REQUEST_TIMEOUT_SECONDS)

        self.sid: Optional[str] = None
        self.granted_timeout: int = timeout
        self._renew_task: Optional[asyncio.Task] = None
        self._disposed = False

    @property
    def is_subscribed(self) -> bool:
        """Check if a subscription is currently held."""
        return self.sid is not None

    async def start(self) -> None:
        """
        Subscribe and start the renewal loop.

        Raises:
            SubscriptionError: If the initial subscription fails
        """
        await self.subscribe()
        self._renew_task = asyncio.create_task(self._renew_loop())

    async def subscribe(self) -> str:
        """Send a fresh SUBSCRIBE. Returns the SID."""
        headers = {
            "CALLBACK": f"<{self.callback_url}>",
            "NT": "upnp:event",
            "TIMEOUT": f"Second-{self._requested_timeout}",
        }
        sid, timeout = await self._request("SUBSCRIBE", headers)
        if not sid:
            raise SubscriptionError(f"No SID in SUBSCRIBE response from {self.event_url}")

        self.sid = sid
        self.granted_timeout = timeout
        logger.debug(f"Subscribed to {self.event_url} (sid={sid}, timeout={timeout}s)")
        return sid

    async def renew(self) -> None:
        """Renew the current subscription."""
        if not self.sid:
            raise SubscriptionError("Cannot renew without a subscription")

        headers = {
            "SID": self.sid,
            "TIMEOUT": f"Second-{self._requested_timeout}",
        }
        _, timeout = await self._request("SUBSCRIBE", headers)
        self.granted_timeout = timeout
        logger.debug(f"Renewed {self.event_url} (sid={self.sid})")

    async def dispose(self) -> None:
        """Stop renewing and unsubscribe."""
        self._disposed = True

        if self._renew_task:
            self._renew_task.cancel()
            try:
                await self._renew_task
            except asyncio.CancelledError:
                pass
            self._renew_task = None

        if not self.sid:
            return

        sid, self.sid = self.sid, None
        try:
            await self._request("UNSUBSCRIBE", {"SID": sid})
            logger.debug(f"Unsubscribed from {self.event_url}")
        except SubscriptionError as e:
            logger.warning(f"Failed to unsubscribe from {self.event_url}: {e}")

    async def _renew_loop(self) -> None:
        """Renew before the subscription expires, resubscribing when renewal fails."""
        delay = self._renewal_delay()
        while not self._disposed:
            await asyncio.sleep(delay)
            try:
                await self.renew()
            except SubscriptionError as e:
                logger.warning(f"Renewal of {self.event_url} failed ({e}), resubscribing")
                self.sid = None
                try:
                    await self.subscribe()
                except SubscriptionError as e:
                    logger.error(f"Resubscribe to {self.event_url} failed: {e}")
                    delay = RETRY_DELAY_SECONDS
                    continue
            delay = self._renewal_delay()

    def _renewal_delay(self) -> float:
        """Seconds until the next renewal, never shorter than the retry delay."""
        return max(self.granted_timeout * RENEWAL_FRACTION, RETRY_DELAY_SECONDS)

    async def _request(self, method: str, headers: dict) -> tuple[Optional[str], int]:
        """Send a GENA request. Returns (SID header, granted timeout)."""
        try:
            async with self._session.request(
                method, self.event_url, headers=headers, timeout=self._request_timeout
            ) as response:
                if response.status != 200:
                    raise SubscriptionError(
                        f"{method} {self.event_url} failed with HTTP {response.status}"
                    )
                timeout = parse_timeout_header(
                    response.headers.get("TIMEOUT"), self._requested_timeout
                )
                return response.headers.get("SID"), timeout
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SubscriptionError(f"{method} {self.event_url} error: {e}") from e
