from clinic_booking.reservation.engine import ReservationEngine

__all__ = ["ReservationEngine"]
