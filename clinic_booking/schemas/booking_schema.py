"""Booking data models, submission results and the rejection taxonomy."""

import datetime as dt
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class Booking(BaseModel):
    """An admitted reservation. Serialized with camelCase keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    patient_name: str = Field(alias="patientName")
    phone: str
    date: dt.date
    time: str
    created_at: dt.datetime = Field(alias="createdAt")


BookingList = TypeAdapter(list[Booking])


class BookingRequest(BaseModel):
    """Raw submission from the presentation layer. Validated by the engine, not here."""

    model_config = ConfigDict(populate_by_name=True)

    patient_name: str = Field(default="", alias="patientName")
    phone: str = ""
    date: str = ""
    time: str = ""

    @field_validator("patient_name", "phone", "date", "time", mode="before")
    @classmethod
    def _blank_missing(cls, value: Any) -> Any:
        # Form inputs arrive as null when left untouched
        if value is None:
            return ""
        if isinstance(value, dt.date):
            return value.isoformat()
        return value


class RejectionReason(str, Enum):
    """Client-input errors, returned to the caller for display."""

    INCOMPLETE_REQUEST = "incomplete_request"
    INVALID_PHONE = "invalid_phone"
    INVALID_DATE = "invalid_date"
    PAST_DATE = "past_date"
    INVALID_SLOT = "invalid_slot"
    SLOT_TAKEN = "slot_taken"

    @property
    def message(self) -> str:
        return _REJECTION_MESSAGES[self]


_REJECTION_MESSAGES: dict[RejectionReason, str] = {
    RejectionReason.INCOMPLETE_REQUEST: "Please fill in all the booking details.",
    RejectionReason.INVALID_PHONE: "The phone number is not valid.",
    RejectionReason.INVALID_DATE: "The date is not valid. Please use YYYY-MM-DD.",
    RejectionReason.PAST_DATE: "The selected date has already passed.",
    RejectionReason.INVALID_SLOT: "The selected time is not one of the clinic's slots.",
    RejectionReason.SLOT_TAKEN: (
        "This appointment is already booked. Please choose another time."
    ),
}

PERSISTENCE_WARNING = (
    "Booking confirmed, but it could not be saved permanently. "
    "Please keep your booking number."
)


class SubmissionResult(BaseModel):
    """Outcome of ReservationEngine.submit."""

    success: bool
    booking: Optional[Booking] = None
    rejection: Optional[RejectionReason] = None
    persisted: bool = False
    message: str = ""

    @classmethod
    def rejected(cls, reason: RejectionReason) -> "SubmissionResult":
        return cls(success=False, rejection=reason, message=reason.message)

    @classmethod
    def admitted(cls, booking: Booking, persisted: bool) -> "SubmissionResult":
        if persisted:
            message = f"Booking confirmed. Booking number: {booking.id}."
        else:
            message = PERSISTENCE_WARNING
        return cls(success=True, booking=booking, persisted=persisted, message=message)
