# backend/barberbook/schemas/__init__.py
"""
Pydantic schemas for the booking core.
"""

from .booking import (
    BookingCreate,
    BookingDetailsUpdate,
    BookingHistoryResponse,
    BookingResponse,
    ProviderStats,
    StatsPeriod,
)

__all__ = [
    "BookingCreate",
    "BookingDetailsUpdate",
    "BookingHistoryResponse",
    "BookingResponse",
    "ProviderStats",
    "StatsPeriod",
]
