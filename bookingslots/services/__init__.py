"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability import (
    AvailabilityService,
    ProviderDirectoryProtocol,
    ReservationStoreProtocol,
)

__all__ = ["AvailabilityService", "ProviderDirectoryProtocol", "ReservationStoreProtocol"]
