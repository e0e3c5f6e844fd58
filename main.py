"""
Clinic booking command-line entry point.

Wires the configured storage backend and notification transport into a
ReservationEngine and runs one command against it.

Usage:
    python main.py slots --date 2026-10-20
    python main.py book --name "Ali" --phone 01012345678 --date 2026-10-20 --time 09:00
    python main.py list

Set STORAGE_BACKEND=file (or redis) to keep bookings between runs.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from clinic_booking.config import AppConfig, settings
from clinic_booking.notifications.dispatcher import NotificationDispatcher
from clinic_booking.notifications.transports import create_transport
from clinic_booking.reservation.engine import ReservationEngine
from clinic_booking.scheduling.slot_clock import SlotClock
from clinic_booking.schemas.booking_schema import BookingRequest
from clinic_booking.storage.backends import RedisBackend, create_backend
from clinic_booking.storage.booking_store import BookingStore
from clinic_booking.utils import parse_iso_date

logger = logging.getLogger(__name__)


def _build_parser(config: AppConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=f"{config.clinic.name} booking")
    sub = parser.add_subparsers(dest="command", required=True)

    slots = sub.add_parser("slots", help="Show the slot grid, marking taken slots")
    slots.add_argument("--date", help="YYYY-MM-DD (defaults to today)")

    book = sub.add_parser("book", help="Submit a booking request")
    book.add_argument("--name", default="")
    book.add_argument("--phone", default="")
    book.add_argument("--date", default="")
    book.add_argument("--time", default="")

    sub.add_parser("list", help="List all bookings")
    return parser


async def _run(args: argparse.Namespace, config: AppConfig) -> int:
    backend = create_backend(config)
    store = BookingStore(
        backend,
        key=config.storage.bookings_key,
        strict=config.storage.strict_persistence,
    )
    clock = SlotClock(
        opening_hour=config.clinic.opening_hour,
        closing_hour=config.clinic.closing_hour,
        slot_minutes=config.clinic.slot_minutes,
        tz=config.clinic.timezone,
    )
    logger.debug("Running command %r", args.command)
    await store.load()
    try:
        if args.command == "slots":
            return _show_slots(store, clock, args.date)
        if args.command == "list":
            return _list_bookings(store)
        return await _book(store, clock, args, config)
    finally:
        if isinstance(backend, RedisBackend):
            await backend.close()


def _show_slots(store: BookingStore, clock: SlotClock, raw_date: Optional[str]) -> int:
    day = parse_iso_date(raw_date) if raw_date else clock.minimum_bookable_date()
    if day is None:
        print(f"Invalid date: {raw_date}")
        return 1
    engine = ReservationEngine(store, clock)
    print(f"Slots for {day.isoformat()}:")
    for slot, taken in engine.availability(day).items():
        print(f"  {slot}  {'(booked)' if taken else ''}".rstrip())
    return 0


def _list_bookings(store: BookingStore) -> int:
    bookings = store.snapshot()
    if not bookings:
        print("No bookings.")
        return 0
    for b in bookings:
        print(f"  #{b.id}  {b.date.isoformat()} {b.time}  {b.patient_name}  {b.phone}")
    return 0


async def _book(
    store: BookingStore, clock: SlotClock, args: argparse.Namespace, config: AppConfig
) -> int:
    request = BookingRequest(
        patient_name=args.name, phone=args.phone, date=args.date, time=args.time
    )
    dispatcher = NotificationDispatcher(
        create_transport(config),
        destination=config.notifications.destination,
        delay_sec=config.notifications.delay_sec,
    )
    async with dispatcher:
        engine = ReservationEngine(
            store, clock, dispatcher, min_phone_length=config.clinic.min_phone_length
        )
        result = await engine.submit(request)
        print(result.message)
    if not result.success:
        return 1
    booking = result.booking
    print(f"  Booking number: {booking.id}")
    print(f"  {booking.patient_name}, {booking.date.isoformat()} at {booking.time}")
    return 0


def main(argv: Optional[list[str]] = None, config: AppConfig = settings) -> int:
    args = _build_parser(config).parse_args(argv)
    return asyncio.run(_run(args, config))


if __name__ == "__main__":
    sys.exit(main())
