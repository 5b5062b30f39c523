"""
Application services for slot lookup and booking validation.

The service coordinates fetching provider profiles and reservations via
adapters and delegates the actual decisions to the domain-level
``SlotCalculator`` and ``OverlapValidator``. Both collaborators are plain
protocols so the in-memory adapters can stand in for the booking API in tests.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Dict, List, Optional, Protocol

import pendulum
from pendulum import DateTime

from ..domain.exceptions import InvalidInputError
from ..domain.models import (
    BookingCheck,
    BookingResult,
    DateRange,
    ProposedInterval,
    Reservation,
    ReservationStatus,
    Slot,
    TimeRange,
)
from ..domain.overlap_validator import OverlapValidator
from ..domain.provider import ProviderProfile
from ..domain.slot_calculator import SlotCalculator

logger = logging.getLogger(__name__)


class ReservationStoreProtocol(Protocol):
    """Protocol describing the reservation queries needed by the service."""

    async def fetch_active_reservations(
        self,
        provider_id: str,
        start: DateTime,
        end: DateTime,
        exclude_id: Optional[str] = None,
    ) -> List[Reservation]:
        """Return non-cancelled, non-rejected reservations overlapping ``[start, end)``."""

    async def insert_reservation(self, reservation: Reservation) -> Reservation:
        """Persist a reservation, replacing one with the same id."""


class ProviderDirectoryProtocol(Protocol):
    """Protocol describing the provider profile lookup."""

    async def get_profile(self, provider_id: str) -> ProviderProfile:
        """Return the profile or raise ProviderNotFoundError."""


class AvailabilityService:
    """
    Orchestrates reservation retrieval, slot generation and booking checks.

    ``book`` serializes check-and-insert per provider so two concurrent
    submissions for the same provider cannot both pass the overlap check.
    The lock is process-local; stores shared between processes must enforce
    the exclusion themselves.
    """

    def __init__(
        self,
        reservation_store: ReservationStoreProtocol,
        provider_directory: ProviderDirectoryProtocol,
    ) -> None:
        self._reservation_store = reservation_store
        self._provider_directory = provider_directory
        self._locks: Dict[str, asyncio.Lock] = {}

    async def available_slots(
        self,
        *,
        provider_id: str,
        date_range: DateRange,
        duration_minutes: Optional[int] = None,
        now: Optional[DateTime] = None,
    ) -> List[Slot]:
        """
        Fetch reservations once for the whole range and compute open slots.

        Raises:
            ProviderNotFoundError: If the provider does not exist
            InvalidInputError: If the duration is outside the provider's bounds
            ReservationStoreError: If reservations cannot be fetched
        """
        profile = await self._provider_directory.get_profile(provider_id)
        duration = profile.policy.resolve_duration(duration_minutes)
        now = now or pendulum.now(profile.schedule.timezone)

        if not profile.is_bookable():
            logger.debug("Provider %s is not bookable, no slots offered", provider_id)
            return []

        bounds = date_range.bounds(profile.schedule.timezone)
        reservations = await self._reservation_store.fetch_active_reservations(
            provider_id,
            bounds.start,
            bounds.end,
        )

        calculator = SlotCalculator(schedule=profile.schedule, policy=profile.policy)
        return calculator.generate_slots(
            date_range=date_range,
            reservations=reservations,
            now=now,
            duration_minutes=duration,
        )

    async def check_bookable(
        self,
        proposed: ProposedInterval,
        *,
        now: Optional[DateTime] = None,
    ) -> BookingCheck:
        """
        Validate an untrusted interval for direct booking submission.

        Reservations are only fetched when the cheaper checks pass.
        """
        profile = await self._provider_directory.get_profile(proposed.provider_id)
        now = now or pendulum.now(profile.schedule.timezone)
        validator = OverlapValidator(schedule=profile.schedule, policy=profile.policy)

        rejection = validator.check_preconditions(
            proposed,
            now,
            provider_bookable=profile.is_bookable(),
        )
        if rejection is not None:
            return rejection

        lookup = self._lookup_range(proposed, profile)
        reservations = await self._reservation_store.fetch_active_reservations(
            proposed.provider_id,
            lookup.start,
            lookup.end,
            exclude_id=proposed.exclude_reservation_id,
        )
        return validator.check_conflicts(proposed, reservations)

    async def book(
        self,
        proposed: ProposedInterval,
        *,
        reservation_id: Optional[str] = None,
        status: ReservationStatus = ReservationStatus.PENDING,
        now: Optional[DateTime] = None,
    ) -> BookingResult:
        """
        Re-check and persist a reservation while holding the provider's lock.

        When ``proposed`` excludes an existing reservation and no new id is
        given, that reservation is rewritten in place.

        Raises:
            InvalidInputError: If a new id is given together with an excluded reservation
        """
        excluded = proposed.exclude_reservation_id
        if reservation_id and excluded and reservation_id != excluded:
            raise InvalidInputError(
                f"Cannot store {reservation_id} while excluding {excluded}; "
                "a rescheduled reservation keeps its id"
            )

        async with self._lock_for(proposed.provider_id):
            check = await self.check_bookable(proposed, now=now)
            if not check.bookable:
                logger.info(
                    "Booking rejected for provider %s at %s: %s",
                    proposed.provider_id,
                    proposed.time_range,
                    check.reason.value,
                )
                return BookingResult(check=check)

            reservation = Reservation(
                id=reservation_id or proposed.exclude_reservation_id or uuid.uuid4().hex,
                provider_id=proposed.provider_id,
                start=proposed.start,
                end=proposed.end,
                status=status,
            )
            stored = await self._reservation_store.insert_reservation(reservation)
            logger.info(
                "Reservation %s stored for provider %s at %s",
                stored.id,
                stored.provider_id,
                stored.time_range,
            )
            return BookingResult(check=check, reservation=stored)

    def _lock_for(self, provider_id: str) -> asyncio.Lock:
        lock = self._locks.get(provider_id)
        if lock is None:
            lock = self._locks[provider_id] = asyncio.Lock()
        return lock

    @staticmethod
    def _lookup_range(proposed: ProposedInterval, profile: ProviderProfile) -> TimeRange:
        """Local day of the interval, widened if the interval runs past midnight."""
        day = profile.schedule.local_date(proposed.start)
        bounds = DateRange.single(day).bounds(profile.schedule.timezone)
        return TimeRange(
            start=min(bounds.start, proposed.start),
            end=max(bounds.end, proposed.end),
        )
