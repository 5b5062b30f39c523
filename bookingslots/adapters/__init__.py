"""
Adapters layer - Reservation storage backends and provider lookup.
"""

from .http_store import HttpReservationStore
from .memory_store import InMemoryProviderDirectory, InMemoryReservationStore

__all__ = ["HttpReservationStore", "InMemoryProviderDirectory", "InMemoryReservationStore"]
