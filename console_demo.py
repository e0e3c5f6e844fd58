"""
Offline console demo: runs booking sessions without any external services.

Uses the real slot clock, booking store and reservation engine against an
in-memory backend, with notifications written to the log instead of opening
WhatsApp. No network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario booking
    python console_demo.py --scenario rush
"""

import argparse
import asyncio
from datetime import timedelta
from typing import Optional

from clinic_booking.config import settings
from clinic_booking.notifications.dispatcher import NotificationDispatcher
from clinic_booking.notifications.transports import LogTransport
from clinic_booking.reservation.engine import ReservationEngine
from clinic_booking.scheduling.slot_clock import SlotClock
from clinic_booking.schemas.booking_schema import BookingRequest, SubmissionResult
from clinic_booking.storage.backends import MemoryBackend
from clinic_booking.storage.booking_store import BookingStore
from clinic_booking.utils import parse_iso_date

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


def _relative_date(clock: SlotClock, days: int) -> str:
    return (clock.minimum_bookable_date() + timedelta(days=days)).isoformat()


class ConsoleSession:
    """Drives the reservation engine from the terminal."""

    def __init__(self, clock: Optional[SlotClock] = None) -> None:
        self.clock = clock or SlotClock()
        self.backend = MemoryBackend()
        self.store = BookingStore(self.backend)
        self.transport = LogTransport()
        self.dispatcher = NotificationDispatcher(self.transport, delay_sec=0)
        self.engine = ReservationEngine(self.store, self.clock, self.dispatcher)

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def show_result(self, result: SubmissionResult) -> None:
        if result.success:
            colour = GREEN if result.persisted else YELLOW
            print(f"{colour}{BOLD}[Booked]{RESET} {colour}{result.message}{RESET}")
            booking = result.booking
            self.system_log(
                f"#{booking.id} {booking.patient_name} {booking.date.isoformat()} {booking.time}"
            )
        else:
            reason = result.rejection.value if result.rejection else "persistence_failure"
            print(f"{RED}{BOLD}[Rejected]{RESET} {RED}{result.message}{RESET}")
            self.system_log(f"Reason: {reason}")

    def scenario_requests(self, scenario: str) -> list[list[BookingRequest]]:
        """Pre-scripted request batches; each inner list is submitted concurrently."""
        tomorrow = _relative_date(self.clock, 1)
        yesterday = _relative_date(self.clock, -1)
        if scenario == "booking":
            return [
                [BookingRequest(patient_name="Ali", phone="01012345678", date=tomorrow, time="09:00")],
                [BookingRequest(patient_name="Mona", phone="01198765432", date=tomorrow, time="09:00")],
                [BookingRequest(patient_name="Omar", phone="123", date=tomorrow, time="10:00")],
                [BookingRequest(patient_name="Sara", phone="01234567890", date=yesterday, time="10:00")],
                [BookingRequest(patient_name="Hana", phone="01555555555", date=tomorrow, time="10:15")],
                [BookingRequest(patient_name="", phone="01012345678", date=tomorrow, time="11:00")],
            ]
        if scenario == "rush":
            return [[
                BookingRequest(patient_name=f"Patient {i}", phone=f"0101234567{i}",
                               date=tomorrow, time="12:00" if i < 3 else "12:30")
                for i in range(5)
            ]]
        return []

    async def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        batches = self.scenario_requests(scenario)
        if not batches:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  CLINIC BOOKING - Scenario: {scenario}{RESET}")
        print(f"{BOLD}  Clinic: {settings.clinic.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

        await self.store.load()
        async with self.dispatcher:
            for batch in batches:
                for request in batch:
                    print(f"\n{BLUE}[Request] {RESET}{request.model_dump(by_alias=True)}")
                results = await asyncio.gather(*(self.engine.submit(r) for r in batch))
                for result in results:
                    self.show_result(result)

        self._summary(f"Scenario '{scenario}' complete.")

    async def run(self) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  CLINIC BOOKING - Console Demo{RESET}")
        print(f"{BOLD}  Clinic: {settings.clinic.name}{RESET}")
        print(f"{BOLD}  Leave the name empty to exit{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

        await self.store.load()
        async with self.dispatcher:
            while True:
                name = input(f"\n{BLUE}Patient name: {RESET}").strip()
                if not name:
                    break
                phone = input(f"{BLUE}Phone: {RESET}").strip()
                date = input(f"{BLUE}Date (YYYY-MM-DD) [{_relative_date(self.clock, 0)}+]: {RESET}")
                self._print_free_slots(date.strip())
                time = input(f"{BLUE}Time (HH:MM): {RESET}").strip()
                result = await self.engine.submit(
                    BookingRequest(patient_name=name, phone=phone, date=date, time=time)
                )
                self.show_result(result)

        self._summary("Session ended.")

    def _print_free_slots(self, raw_date: str) -> None:
        day = parse_iso_date(raw_date)
        if day is None:
            return
        free = [slot for slot, taken in self.engine.availability(day).items() if not taken]
        self.system_log(f"Free slots: {', '.join(free) or 'none'}")

    def _summary(self, title: str) -> None:
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {title}{RESET}")
        print(f"{DIM}  Bookings stored: {len(self.engine.list_bookings())}{RESET}")
        print(f"{DIM}  Notifications sent: {self.dispatcher.sent_count}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=["booking", "rush"],
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        asyncio.run(session.run_scenario(args.scenario))
    else:
        asyncio.run(session.run())


if __name__ == "__main__":
    main()
