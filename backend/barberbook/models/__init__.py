"""
Database models for the booking core.

- Booking: the booking record with pricing, payment and cancellation data
- BookingHistory: append-only audit trail, one row per mutation
"""

from .booking import Booking
from .booking_history import BookingHistory

__all__ = [
    "Booking",
    "BookingHistory",
]
