"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .booking_service import BookingService, BookingStoreProtocol, ClockProtocol

__all__ = ["BookingService", "BookingStoreProtocol", "ClockProtocol"]
