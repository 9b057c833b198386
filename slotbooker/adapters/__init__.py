"""
Adapters layer - Booking store and clock implementations.
"""

from .clock import FixedClock, SystemClock
from .json_store import JsonBookingStore

__all__ = ["FixedClock", "JsonBookingStore", "SystemClock"]
