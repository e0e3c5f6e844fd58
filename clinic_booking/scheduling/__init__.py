from clinic_booking.scheduling.slot_clock import SlotClock

__all__ = ["SlotClock"]
