"""
Reservation engine: validates booking requests and admits them.

Validation runs in a fixed order and the first failure wins:
complete fields -> phone -> date -> slot -> availability. Only the last
step touches the store, and it runs inside the store's critical section.
Admitted bookings are queued for notification afterwards.
"""

from datetime import date
from typing import Optional, Union

from pydantic import ValidationError

from clinic_booking.config import settings
from clinic_booking.logging_context import get_request_logger, new_request_id, set_request_id
from clinic_booking.notifications.dispatcher import NotificationDispatcher
from clinic_booking.scheduling.slot_clock import SlotClock
from clinic_booking.schemas.booking_schema import (
    Booking,
    BookingRequest,
    RejectionReason,
    SubmissionResult,
)
from clinic_booking.storage.booking_store import BookingStore, PersistenceError
from clinic_booking.utils import normalize_phone, parse_iso_date

logger = get_request_logger(__name__)

PERSISTENCE_FAILED_MESSAGE = "The booking could not be saved. Please try again."


class ReservationEngine:
    """Admits or rejects booking requests against a BookingStore."""

    def __init__(
        self,
        store: BookingStore,
        clock: Optional[SlotClock] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        min_phone_length: int = settings.clinic.min_phone_length,
    ) -> None:
        self.store = store
        self.clock = clock or SlotClock()
        self.dispatcher = dispatcher
        self.min_phone_length = min_phone_length

    async def submit(self, request: Union[BookingRequest, dict]) -> SubmissionResult:
        """Validate a request and admit it if the slot is free."""
        set_request_id(new_request_id())
        if isinstance(request, dict):
            try:
                request = BookingRequest.model_validate(request)
            except ValidationError as exc:
                logger.info("Malformed request fields: %s", ", ".join(
                    str(err["loc"][0]) for err in exc.errors() if err["loc"]
                ))
                return self._reject(RejectionReason.INCOMPLETE_REQUEST)

        name = request.patient_name.strip()
        phone = request.phone.strip()
        raw_date = request.date.strip()
        time = request.time.strip()

        if not (name and phone and raw_date and time):
            return self._reject(RejectionReason.INCOMPLETE_REQUEST)

        # Stored and counted as digits only; a leading "+" is dropped
        phone = normalize_phone(phone).lstrip("+")
        if not phone.isdigit() or len(phone) < self.min_phone_length:
            return self._reject(RejectionReason.INVALID_PHONE)

        day = parse_iso_date(raw_date)
        if day is None:
            return self._reject(RejectionReason.INVALID_DATE)
        if day < self.clock.minimum_bookable_date():
            return self._reject(RejectionReason.PAST_DATE)

        if not self.clock.is_valid_slot(time):
            return self._reject(RejectionReason.INVALID_SLOT)

        def build() -> Booking:
            now = self.clock.now()
            return Booking(
                id=self.store.next_id(now),
                patient_name=name,
                phone=phone,
                date=day,
                time=time,
                created_at=now,
            )

        try:
            booking, persisted = await self.store.admit(day, time, build)
        except PersistenceError:
            logger.error("Booking for %s %s not saved in strict mode", day, time)
            return SubmissionResult(success=False, message=PERSISTENCE_FAILED_MESSAGE)

        if booking is None:
            return self._reject(RejectionReason.SLOT_TAKEN)

        if persisted:
            logger.info("Booking %s admitted for %s at %s", booking.id, day, time)
        else:
            logger.warning("Booking %s admitted for %s at %s but not persisted", booking.id, day, time)
        self._notify(booking)
        return SubmissionResult.admitted(booking, persisted)

    def list_bookings(self) -> tuple[Booking, ...]:
        """Current committed bookings, in admission order."""
        return self.store.snapshot()

    def availability(self, day: date) -> dict[str, bool]:
        """Map every slot of ``day`` to whether it is already taken."""
        taken = self.store.taken_slots(day)
        return {slot: slot in taken for slot in self.clock.generate_slots()}

    def _reject(self, reason: RejectionReason) -> SubmissionResult:
        logger.info("Request rejected: %s", reason.value)
        return SubmissionResult.rejected(reason)

    def _notify(self, booking: Booking) -> None:
        if self.dispatcher is None:
            return
        try:
            self.dispatcher.send(booking)
        except Exception:
            logger.exception("Could not queue notification for booking %s", booking.id)
