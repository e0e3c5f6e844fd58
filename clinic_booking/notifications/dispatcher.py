"""
Post-admission notification dispatch.

send() only queues the booking. A background worker renders the message,
URL-encodes it and hands it to the transport after a short delay. Transport
failures are logged and dropped: a notification never affects the booking it
describes, and nothing is retried.

Usage:
    async with NotificationDispatcher(LogTransport()) as dispatcher:
        dispatcher.send(booking)
        await dispatcher.drain()
"""

import asyncio
import logging
from typing import Optional
from urllib.parse import quote

from clinic_booking.config import settings
from clinic_booking.notifications.transports import Transport
from clinic_booking.schemas.booking_schema import Booking

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves as-is beyond quote()'s defaults
_URI_COMPONENT_SAFE = "!*'()"

MESSAGE_TEMPLATE = (
    "New clinic booking 📋\n"
    "\n"
    "👤 Patient name: {patient_name}\n"
    "📱 Phone: {phone}\n"
    "📅 Date: {date}\n"
    "⏰ Time: {time}\n"
    "🔢 Booking number: {id}\n"
    "\n"
    "Booking confirmed ✅"
)


def render_message(booking: Booking) -> str:
    return MESSAGE_TEMPLATE.format(
        patient_name=booking.patient_name,
        phone=booking.phone,
        date=booking.date.isoformat(),
        time=booking.time,
        id=booking.id,
    )


def encode_message(text: str) -> str:
    """URL-encode a message the way encodeURIComponent does."""
    return quote(text, safe=_URI_COMPONENT_SAFE)


class NotificationDispatcher:
    """Queues admitted bookings and delivers them on a background task."""

    def __init__(
        self,
        transport: Transport,
        destination: str = settings.notifications.destination,
        delay_sec: float = settings.notifications.delay_sec,
    ) -> None:
        self.transport = transport
        self.destination = destination
        self.delay_sec = delay_sec
        self._queue: asyncio.Queue[Booking] = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self.sent_count = 0
        self.failed_count = 0

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="notification-dispatcher")
        logger.debug("Notification worker started")

    def send(self, booking: Booking) -> None:
        """Queue a booking for notification. Never blocks, never raises."""
        self._queue.put_nowait(booking)
        logger.debug("Queued notification for booking %s", booking.id)

    async def drain(self) -> None:
        """Wait until every queued booking has been handled."""
        await self._queue.join()

    async def stop(self) -> None:
        """Deliver what is queued, then stop the worker."""
        if self.running:
            await self.drain()
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        logger.debug("Notification worker stopped")

    async def __aenter__(self) -> "NotificationDispatcher":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def _run(self) -> None:
        while True:
            booking = await self._queue.get()
            try:
                await self._deliver(booking)
                self.sent_count += 1
            except asyncio.CancelledError:
                raise
            except Exception:
                self.failed_count += 1
                logger.exception("Notification for booking %s failed; dropped", booking.id)
            finally:
                self._queue.task_done()

    async def _deliver(self, booking: Booking) -> None:
        if self.delay_sec:
            await asyncio.sleep(self.delay_sec)
        encoded = encode_message(render_message(booking))
        await self.transport.deliver(self.destination, encoded)
        logger.info("Notification sent for booking %s", booking.id)
