"""
Daily slot grid and the clinic's calendar clock.

The grid runs from the opening hour to the closing hour inclusive at a fixed
step. The closing hour contributes only its on-the-hour slot, so with the
default 09:00-20:00 window at 30 minutes the last slot is 20:00.
"""

from datetime import date, datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from clinic_booking.config import settings


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SlotClock:
    """Derives the slot grid and the earliest bookable date from wall-clock time."""

    def __init__(
        self,
        opening_hour: int = settings.clinic.opening_hour,
        closing_hour: int = settings.clinic.closing_hour,
        slot_minutes: int = settings.clinic.slot_minutes,
        tz: str = settings.clinic.timezone,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.opening_hour = opening_hour
        self.closing_hour = closing_hour
        self.slot_minutes = slot_minutes
        self.tz = ZoneInfo(tz)
        self._now = now or _utc_now
        self._slots = self._build_grid()

    def _build_grid(self) -> tuple[str, ...]:
        slots = []
        for hour in range(self.opening_hour, self.closing_hour + 1):
            for minute in range(0, 60, self.slot_minutes):
                if hour == self.closing_hour and minute > 0:
                    break
                slots.append(f"{hour:02d}:{minute:02d}")
        return tuple(slots)

    def generate_slots(self) -> list[str]:
        """Return the ordered daily slot grid as HH:MM strings."""
        return list(self._slots)

    def is_valid_slot(self, time: str) -> bool:
        return time in self._slots

    def now(self) -> datetime:
        """Current instant as an aware UTC datetime."""
        current = self._now()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current.astimezone(timezone.utc)

    def minimum_bookable_date(self) -> date:
        """Today in the clinic's local calendar."""
        return self.now().astimezone(self.tz).date()
