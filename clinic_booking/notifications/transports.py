"""
Outbound messaging transports.

Each transport takes a destination (a phone-style address) and an already
URL-encoded text payload. Transports raise NotificationError (or let the
underlying client error through) on failure; the dispatcher logs and drops it.
"""

import asyncio
import logging
import webbrowser
from typing import Callable, Optional, Protocol

import httpx

from clinic_booking.config import AppConfig, settings

logger = logging.getLogger(__name__)

WHATSAPP_LINK_BASE = "https://wa.me"


class NotificationError(Exception):
    """A transport could not hand the message off."""


class Transport(Protocol):
    async def deliver(self, destination: str, encoded_text: str) -> None: ...


def build_whatsapp_link(destination: str, encoded_text: str) -> str:
    """Click-to-chat link, e.g. https://wa.me/201010557102?text=..."""
    return f"{WHATSAPP_LINK_BASE}/{destination}?text={encoded_text}"


class WhatsAppLinkTransport:
    """Opens a WhatsApp click-to-chat link with the message pre-filled."""

    def __init__(self, opener: Callable[[str], bool] = webbrowser.open) -> None:
        self.opener = opener

    async def deliver(self, destination: str, encoded_text: str) -> None:
        url = build_whatsapp_link(destination, encoded_text)
        opened = await asyncio.to_thread(self.opener, url)
        if opened is False:
            raise NotificationError("No browser available to open the WhatsApp link")
        logger.info("Opened WhatsApp link for %s", destination)


class WebhookTransport:
    """POSTs the message to an HTTP relay as JSON."""

    def __init__(
        self,
        url: str,
        timeout: float = settings.notifications.timeout_sec,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client

    async def deliver(self, destination: str, encoded_text: str) -> None:
        payload = {"destination": destination, "text": encoded_text}
        if self._client is not None:
            response = await self._client.post(self.url, json=payload)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, json=payload)
        response.raise_for_status()
        logger.info("Webhook accepted notification for %s (%d)", destination, response.status_code)


class LogTransport:
    """Logs the link instead of sending anything."""

    def __init__(self) -> None:
        self.delivered: list[str] = []

    async def deliver(self, destination: str, encoded_text: str) -> None:
        url = build_whatsapp_link(destination, encoded_text)
        self.delivered.append(url)
        logger.info("Notification link: %s", url)


def create_transport(config: AppConfig = settings) -> Transport:
    """Build the transport named by NOTIFY_TRANSPORT."""
    name = config.notifications.transport
    if name == "whatsapp":
        return WhatsAppLinkTransport()
    if name == "webhook":
        return WebhookTransport(config.notifications.webhook_url, config.notifications.timeout_sec)
    return LogTransport()
