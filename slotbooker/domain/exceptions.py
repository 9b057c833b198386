"""
Domain-specific exception hierarchy for the slot booker application.
"""


class SlotBookerError(Exception):
    """Base class for all application-level errors."""


class StoreError(SlotBookerError):
    """Raised when booking data cannot be read from or written to the store."""


class InvalidBookingError(SlotBookerError):
    """Raised when a booking is missing the fields needed to schedule it."""


class ResourceUnavailableError(SlotBookerError):
    """Raised when a booking would overlap the resource's schedule or working hours."""
