"""
Domain layer - Pure business logic without external dependencies.
"""

from .models import (
    BookingCheck,
    BookingResult,
    DateRange,
    ProposedInterval,
    RejectionReason,
    Reservation,
    ReservationStatus,
    SessionPolicy,
    Slot,
    TimeRange,
)
from .overlap_validator import OverlapValidator
from .provider import ProviderKind, ProviderProfile, ProviderStatus
from .schedule import DateOverride, DaySchedule, WeeklySchedule, Window
from .slot_calculator import SlotCalculator

__all__ = [
    "BookingCheck",
    "BookingResult",
    "DateOverride",
    "DateRange",
    "DaySchedule",
    "OverlapValidator",
    "ProposedInterval",
    "ProviderKind",
    "ProviderProfile",
    "ProviderStatus",
    "RejectionReason",
    "Reservation",
    "ReservationStatus",
    "SessionPolicy",
    "Slot",
    "SlotCalculator",
    "TimeRange",
    "WeeklySchedule",
    "Window",
]
