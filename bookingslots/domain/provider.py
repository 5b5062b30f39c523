"""
Provider profile as consumed by the availability engine.
"""

from dataclasses import dataclass, field
from enum import Enum

from .models import SessionPolicy
from .schedule import WeeklySchedule


class ProviderKind(str, Enum):
    ASTROLOGER = "astrologer"
    PRIEST = "priest"


class ProviderStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class ProviderProfile:
    """
    A bookable provider. Both provider kinds share the same engine; only
    their configured schedule and policy differ.
    """
    id: str
    name: str
    schedule: WeeklySchedule
    policy: SessionPolicy = field(default_factory=SessionPolicy)
    kind: ProviderKind = ProviderKind.ASTROLOGER
    is_available: bool = True
    status: ProviderStatus = ProviderStatus.ACTIVE

    def is_bookable(self) -> bool:
        """Explicit availability flag combined with the lifecycle status."""
        return self.is_available and self.status == ProviderStatus.ACTIVE
