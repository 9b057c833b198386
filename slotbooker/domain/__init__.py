"""
Domain layer - Pure business logic without external dependencies.
"""

from .assignment import pick_least_loaded
from .availability import is_resource_available
from .models import (
    Booking,
    BookingStatus,
    Resource,
    Service,
    ServiceCatalog,
    TimeRange,
    WorkingHours,
    intervals_overlap,
)
from .slot_calculator import SlotCalculator

__all__ = [
    "Booking",
    "BookingStatus",
    "Resource",
    "Service",
    "ServiceCatalog",
    "SlotCalculator",
    "TimeRange",
    "WorkingHours",
    "intervals_overlap",
    "is_resource_available",
    "pick_least_loaded",
]
