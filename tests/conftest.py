"""Shared test fixtures and helpers."""

import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest

from clinic_booking.reservation.engine import ReservationEngine
from clinic_booking.scheduling.slot_clock import SlotClock
from clinic_booking.schemas.booking_schema import Booking, BookingRequest
from clinic_booking.storage.backends import MemoryBackend
from clinic_booking.storage.booking_store import BookingStore

FIXED_NOW = datetime(2026, 3, 15, 10, 0, tzinfo=timezone.utc)
TODAY = date(2026, 3, 15)
TOMORROW = TODAY + timedelta(days=1)
YESTERDAY = TODAY - timedelta(days=1)


class RecordingTransport:
    """Transport double that keeps every delivery."""

    def __init__(self) -> None:
        self.deliveries: list[tuple[str, str]] = []

    async def deliver(self, destination: str, encoded_text: str) -> None:
        self.deliveries.append((destination, encoded_text))


class FailingTransport:
    async def deliver(self, destination: str, encoded_text: str) -> None:
        raise ConnectionError("transport down")


class FailingWriteBackend(MemoryBackend):
    """Reads work, writes always fail."""

    async def set(self, key: str, value: str) -> None:
        raise ConnectionError("backend unavailable")


class FailingReadBackend(MemoryBackend):
    async def get(self, key: str) -> Optional[str]:
        raise ConnectionError("backend unavailable")


class SlowBackend(MemoryBackend):
    """Yields to the event loop on every call so submissions interleave."""

    async def get(self, key: str) -> Optional[str]:
        await asyncio.sleep(0.001)
        return await super().get(key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.sleep(0.001)
        await super().set(key, value)


@pytest.fixture
def clock():
    return SlotClock(opening_hour=9, closing_hour=20, slot_minutes=30,
                     tz="Africa/Cairo", now=lambda: FIXED_NOW)


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend):
    return BookingStore(backend, key="clinic_bookings", strict=False)


@pytest.fixture
def engine(store, clock):
    return ReservationEngine(store, clock, min_phone_length=11)


@pytest.fixture
def transport():
    return RecordingTransport()


def make_request(
    patient_name: str = "Ali",
    phone: str = "01012345678",
    day: Optional[date] = None,
    time: str = "09:00",
) -> BookingRequest:
    """Helper to create a valid BookingRequest for tomorrow."""
    return BookingRequest(
        patient_name=patient_name,
        phone=phone,
        date=(day or TOMORROW).isoformat(),
        time=time,
    )


def make_booking(
    booking_id: int = 1,
    patient_name: str = "Ali",
    phone: str = "01012345678",
    day: Optional[date] = None,
    time: str = "09:00",
) -> Booking:
    """Helper to create an admitted Booking with sensible defaults."""
    return Booking(
        id=booking_id,
        patient_name=patient_name,
        phone=phone,
        date=day or TOMORROW,
        time=time,
        created_at=FIXED_NOW,
    )
