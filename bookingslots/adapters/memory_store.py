"""
In-memory reservation store and provider directory.

Used for demos (``--mock``) and tests, without requiring the booking API.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from pendulum import DateTime

from ..domain.exceptions import (
    ProviderNotFoundError,
    ReservationConflictError,
    ReservationStoreError,
)
from ..domain.models import Reservation, TimeRange
from ..domain.provider import ProviderProfile
from ..domain.schedule import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)

SAMPLE_DATA_FILE = Path(__file__).parent / "sample_reservations.json"


class InMemoryReservationStore:
    """
    Reservation store kept in a dict.

    Inserts enforce the exclusion constraint: no two active reservations of
    one provider may overlap.
    """

    def __init__(self, reservations: Iterable[Reservation] = ()):
        self._reservations: Dict[str, Reservation] = {}
        for reservation in reservations:
            self._reservations[reservation.id] = reservation

    @classmethod
    def from_json_file(
        cls,
        data_file: Optional[Path] = None,
        timezone: str = DEFAULT_TIMEZONE,
    ) -> "InMemoryReservationStore":
        """
        Load reservations from a JSON list of records.

        Args:
            data_file: Path to the JSON file, defaults to the bundled sample data
            timezone: IANA timezone for timestamps without an offset

        Raises:
            ReservationStoreError: If the file cannot be read or is not a JSON list
        """
        data_file = data_file or SAMPLE_DATA_FILE

        try:
            with open(data_file, "r", encoding="utf-8") as f:
                records = json.load(f)
        except (OSError, ValueError) as exc:
            raise ReservationStoreError(f"Could not load reservations from {data_file}: {exc}") from exc

        if not isinstance(records, list):
            raise ReservationStoreError(f"{data_file} must contain a JSON list of reservations")

        reservations: List[Reservation] = []
        for record in records:
            try:
                reservations.append(Reservation.from_dict(record, timezone))
            except (KeyError, TypeError, ValueError) as exc:
                # Skip invalid records
                logger.warning("Skipping invalid reservation record %r: %s", record, exc)

        return cls(reservations)

    async def fetch_active_reservations(
        self,
        provider_id: str,
        start: DateTime,
        end: DateTime,
        exclude_id: Optional[str] = None,
    ) -> List[Reservation]:
        window = TimeRange(start=start, end=end)
        matches = [
            reservation
            for reservation in self._reservations.values()
            if reservation.provider_id == provider_id
            and reservation.is_active
            and reservation.id != exclude_id
            and window.overlaps(reservation.time_range)
        ]
        return sorted(matches, key=lambda r: r.start)

    async def insert_reservation(self, reservation: Reservation) -> Reservation:
        if reservation.is_active:
            for existing in self._reservations.values():
                if (
                    existing.id != reservation.id
                    and existing.provider_id == reservation.provider_id
                    and existing.is_active
                    and existing.time_range.overlaps(reservation.time_range)
                ):
                    raise ReservationConflictError(
                        f"Reservation {reservation.id} overlaps {existing.id}"
                    )
        self._reservations[reservation.id] = reservation
        return reservation

    def get(self, reservation_id: str) -> Optional[Reservation]:
        return self._reservations.get(reservation_id)

    def __len__(self) -> int:
        return len(self._reservations)


class InMemoryProviderDirectory:
    """Provider profiles keyed by id (case-insensitive)."""

    def __init__(self, profiles: Iterable[ProviderProfile] = ()):
        self._profiles: Dict[str, ProviderProfile] = {}
        for profile in profiles:
            self._profiles[profile.id.lower()] = profile

    async def get_profile(self, provider_id: str) -> ProviderProfile:
        profile = self._profiles.get(provider_id.lower())
        if profile is None:
            raise ProviderNotFoundError(f"Unknown provider: '{provider_id}'")
        return profile

    def list_profiles(self) -> List[ProviderProfile]:
        return list(self._profiles.values())
