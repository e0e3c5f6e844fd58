"""
Durable booking collection, the single source of truth for admitted bookings.

The whole collection lives under one backend key as a JSON array. Every
mutation rewrites the full array.

Load policy: a missing key, a blob that is not valid JSON, a blob that does
not match the Booking schema, or a backend error on read all mean "no prior
bookings". The failure is logged and the store starts empty; load() never
raises.

Write policy: best-effort by default. If the backend write fails, the booking
stays in memory and the caller is told it was not persisted. With
strict=True the append is rolled back and PersistenceError is raised.

Usage:
    store = BookingStore(MemoryBackend())
    await store.load()
    booking, persisted = await store.admit(day, "09:00", build)
"""

import asyncio
from datetime import date, datetime
from typing import Callable, Optional

from pydantic import ValidationError

from clinic_booking.config import settings
from clinic_booking.logging_context import get_request_logger
from clinic_booking.schemas.booking_schema import Booking, BookingList
from clinic_booking.storage.backends import BlobBackend

logger = get_request_logger(__name__)


class BookingStoreError(Exception):
    """Base class for store errors."""


class SlotConflictError(BookingStoreError):
    """Raised when appending a booking whose (date, time) is already taken."""


class PersistenceError(BookingStoreError):
    """Raised in strict mode when the backend write fails."""


class BookingStore:
    """Owns the in-memory collection and mirrors it to a blob backend.

    Conflict check, append and persist run under one asyncio.Lock, so
    submissions are totally ordered. Readers use snapshot(), which returns
    the last committed tuple without taking the lock.
    """

    def __init__(
        self,
        backend: BlobBackend,
        key: str = settings.storage.bookings_key,
        strict: bool = settings.storage.strict_persistence,
    ) -> None:
        self.backend = backend
        self.key = key
        self.strict = strict
        self._bookings: tuple[Booking, ...] = ()
        self._last_id = 0
        self._lock = asyncio.Lock()

    # ── Read ─────────────────────────────────────────────────────────────

    async def load(self) -> list[Booking]:
        """Replace the in-memory collection with the persisted one."""
        async with self._lock:
            bookings = await self._read_persisted()
            self._bookings = tuple(bookings)
            self._last_id = max((b.id for b in bookings), default=0)
        logger.info("Loaded %d bookings from '%s'", len(bookings), self.key)
        return list(bookings)

    async def _read_persisted(self) -> list[Booking]:
        try:
            raw = await self.backend.get(self.key)
        except Exception:
            logger.warning("Could not read '%s'; starting with no bookings", self.key, exc_info=True)
            return []
        if raw is None:
            logger.info("No prior bookings under '%s'", self.key)
            return []
        try:
            return BookingList.validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "Stored bookings under '%s' are malformed (%d errors); starting empty",
                self.key, exc.error_count(),
            )
            return []

    def snapshot(self) -> tuple[Booking, ...]:
        """Last committed collection, in admission order."""
        return self._bookings

    def has_conflict(self, day: date, time: str) -> bool:
        return any(b.date == day and b.time == time for b in self._bookings)

    def taken_slots(self, day: date) -> set[str]:
        return {b.time for b in self._bookings if b.date == day}

    def next_id(self, now: datetime) -> int:
        """Epoch-millisecond id, bumped past the last issued id when needed."""
        candidate = int(now.timestamp() * 1000)
        self._last_id = max(candidate, self._last_id + 1)
        return self._last_id

    # ── Write ────────────────────────────────────────────────────────────

    async def append(self, booking: Booking) -> bool:
        """Append a booking and persist the full collection.

        Returns:
            True if the backend write succeeded, False if it failed
            (best-effort mode only).

        Raises:
            SlotConflictError: the (date, time) is already booked.
            BookingStoreError: the id is already in use.
            PersistenceError: strict mode and the write failed.
        """
        async with self._lock:
            if self.has_conflict(booking.date, booking.time):
                raise SlotConflictError(f"{booking.date.isoformat()} {booking.time} is already booked")
            if any(b.id == booking.id for b in self._bookings):
                raise BookingStoreError(f"Booking id {booking.id} already exists")
            self._last_id = max(self._last_id, booking.id)
            return await self._commit(booking)

    async def admit(
        self, day: date, time: str, build: Callable[[], Booking]
    ) -> tuple[Optional[Booking], bool]:
        """Atomically check for a conflict, build the booking and append it.

        ``build`` runs inside the critical section, so ids it draws from
        next_id() follow admission order.

        Returns:
            (booking, persisted), or (None, False) if the slot is taken.
        """
        async with self._lock:
            if self.has_conflict(day, time):
                return None, False
            booking = build()
            return booking, await self._commit(booking)

    async def _commit(self, booking: Booking) -> bool:
        previous = self._bookings
        self._bookings = previous + (booking,)
        try:
            payload = BookingList.dump_json(list(self._bookings), by_alias=True).decode()
            await self.backend.set(self.key, payload)
        except Exception as exc:
            if self.strict:
                self._bookings = previous
                logger.error("Persisting booking %s failed; rolled back", booking.id)
                raise PersistenceError(f"Could not persist booking {booking.id}") from exc
            logger.warning(
                "Persisting booking %s failed; kept in memory only", booking.id, exc_info=True
            )
            return False
        logger.debug("Persisted %d bookings under '%s'", len(self._bookings), self.key)
        return True
