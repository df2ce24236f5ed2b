# backend/barberbook/core/constants.py
"""
Static constants for the booking core.

Deployment knobs live in ``core.config.Settings``; values here are part of
the domain vocabulary and do not change between environments.
"""

import re

# Booking numbers: BK-YYYYMMDD-NNNN
BOOKING_NUMBER_PREFIX = "BK"
BOOKING_NUMBER_DATE_FORMAT = "%Y%m%d"
BOOKING_NUMBER_SEQUENCE_DIGITS = 4
BOOKING_NUMBER_MAX_SEQUENCE = 10**BOOKING_NUMBER_SEQUENCE_DIGITS - 1
BOOKING_NUMBER_PATTERN = re.compile(r"^BK-\d{8}-\d{4}$")

DEFAULT_CURRENCY = "USD"
DEFAULT_BOOKING_SOURCE = "web_app"
UNKNOWN_SERVICE_NAME = "Unknown Service"

# Listing page sizes
DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200

# Money is stored with two decimal places
MONEY_QUANTUM = "0.01"

# Slow operation threshold used by BaseService.measure_operation (seconds)
SLOW_OPERATION_THRESHOLD_SECONDS = 1.0

# Storage constraint names surfaced through IntegrityError diagnostics
CONSTRAINT_PROVIDER_ACTIVE_START = "uq_bookings_provider_active_start"
CONSTRAINT_BOOKING_NUMBER = "uq_bookings_booking_number"
CONSTRAINT_BOOKING_UUID = "uq_bookings_uuid"
