"""
Decides whether a proposed interval may be booked.

Pure predicate over the schedule, the session policy and reservations the
caller already fetched; nothing here touches storage.
"""

import logging
from typing import Iterable, List, Optional

from pendulum import DateTime

from .models import (
    BookingCheck,
    ProposedInterval,
    RejectionReason,
    Reservation,
    SessionPolicy,
    TimeRange,
)
from .schedule import WeeklySchedule

logger = logging.getLogger(__name__)


class OverlapValidator:
    """
    Checks a proposed interval against working hours and existing reservations.

    Check order:
    1. Interval starts in the past
    2. Provider is not bookable
    3. Interval is longer than the provider allows
    4. Interval is not contained in a working window of its date
    5. Interval overlaps an active reservation
    """

    def __init__(self, schedule: WeeklySchedule, policy: SessionPolicy):
        self.schedule = schedule
        self.policy = policy

    def is_bookable(
        self,
        proposed: ProposedInterval,
        reservations: Iterable[Reservation],
        now: DateTime,
        provider_bookable: bool = True,
    ) -> BookingCheck:
        """
        Run every check against an untrusted interval.

        Args:
            proposed: Interval submitted for booking
            reservations: Reservations of the provider around that date
            now: Reference instant for the past check
            provider_bookable: Availability flag and lifecycle status of the provider

        Returns:
            BookingCheck with the first failing reason, or an accepted check
        """
        rejection = self.check_preconditions(proposed, now, provider_bookable)
        if rejection is not None:
            return rejection
        return self.check_conflicts(proposed, reservations)

    def check_preconditions(
        self,
        proposed: ProposedInterval,
        now: DateTime,
        provider_bookable: bool = True,
    ) -> Optional[BookingCheck]:
        """
        Everything that can be decided without reservation data.

        Returns a rejection, or None when the reservation lookup is needed.
        """
        interval = proposed.time_range

        if interval.is_past(now):
            return BookingCheck.reject(RejectionReason.IN_THE_PAST)

        if not provider_bookable:
            return BookingCheck.reject(RejectionReason.PROVIDER_UNAVAILABLE)

        if interval.duration_minutes() > self.policy.max_duration:
            return BookingCheck.reject(RejectionReason.INVALID_DURATION)

        if not self.is_within_working_hours(interval):
            return BookingCheck.reject(RejectionReason.OUTSIDE_WORKING_HOURS)

        return None

    def check_conflicts(
        self,
        proposed: ProposedInterval,
        reservations: Iterable[Reservation],
    ) -> BookingCheck:
        conflicts = self.find_conflicts(
            proposed.time_range,
            reservations,
            exclude_reservation_id=proposed.exclude_reservation_id,
        )
        if conflicts:
            logger.debug(
                "Interval %s for provider %s conflicts with %s",
                proposed.time_range,
                proposed.provider_id,
                [r.id for r in conflicts],
            )
            return BookingCheck.reject(RejectionReason.ALREADY_BOOKED, conflicts)
        return BookingCheck.accept()

    def is_within_working_hours(self, interval: TimeRange) -> bool:
        """
        Containment in some window of the interval's start date.

        Slot grid alignment plays no role here.
        """
        return any(
            window.contains(interval)
            for window in self.schedule.window_ranges_for(interval.start)
        )

    @staticmethod
    def find_conflicts(
        interval: TimeRange,
        reservations: Iterable[Reservation],
        exclude_reservation_id: Optional[str] = None,
    ) -> List[Reservation]:
        """Active reservations overlapping ``interval``, skipping the excluded id."""
        return [
            reservation
            for reservation in reservations
            if reservation.is_active
            and reservation.id != exclude_reservation_id
            and interval.overlaps(reservation.time_range)
        ]
