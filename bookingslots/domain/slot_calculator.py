"""
Core business logic for generating bookable appointment slots.

Pure domain logic without any external dependencies (no API calls, no
database, no I/O). Reservations are handed in by the caller.
"""

import logging
from collections import defaultdict
from datetime import timedelta
from typing import Dict, Iterable, List, Optional

from pendulum import Date, DateTime

from .exceptions import InvalidInputError
from .models import DateRange, Reservation, SessionPolicy, Slot, TimeRange
from .overlap_validator import OverlapValidator
from .schedule import WeeklySchedule

logger = logging.getLogger(__name__)


class SlotCalculator:
    """
    Generates available slots from weekly working hours.

    Algorithm:
    1. Partition the reservations by calendar date (schedule timezone)
    2. For each date in the range, get its working windows
    3. Walk each window from its start in steps of duration + buffer
    4. Drop candidates that start in the past or overlap a reservation
    5. Return the remaining candidates in ascending order
    """

    def __init__(
        self,
        schedule: WeeklySchedule,
        policy: SessionPolicy,
        validator: Optional[OverlapValidator] = None,
    ):
        self.schedule = schedule
        self.policy = policy
        self.validator = validator or OverlapValidator(schedule, policy)

    def generate_slots(
        self,
        date_range: DateRange,
        reservations: Iterable[Reservation],
        now: DateTime,
        duration_minutes: Optional[int] = None,
    ) -> List[Slot]:
        """
        Generate every open slot in the date range.

        Args:
            date_range: Inclusive range of calendar dates
            reservations: Reservations of the provider covering the range
            now: Reference instant; slots starting before it are dropped
            duration_minutes: Slot length, defaults to the policy's session duration

        Returns:
            List of Slot objects ordered by start time, possibly empty

        Raises:
            InvalidInputError: If the duration is not positive
        """
        duration = self.policy.session_duration if duration_minutes is None else duration_minutes
        if duration <= 0:
            raise InvalidInputError(f"Slot duration must be positive, got {duration}")
        if date_range.end < date_range.start:
            raise InvalidInputError("Date range end must not be before its start")

        step = duration + self.policy.buffer_time
        reservations_by_date = self._partition_by_date(reservations)

        slots: List[Slot] = []
        for day in date_range.days():
            windows = self.schedule.window_ranges_for(day)
            if not windows:
                continue

            day_reservations = reservations_by_date.get(day, [])
            for window in windows:
                # Window already over
                if window.end <= now:
                    continue
                slots.extend(
                    self._slots_in_window(window, duration, step, day_reservations, now)
                )

        logger.debug(
            "Generated %d slot(s) of %d min between %s and %s",
            len(slots),
            duration,
            date_range.start,
            date_range.end,
        )
        return slots

    def _slots_in_window(
        self,
        window: TimeRange,
        duration: int,
        step: int,
        reservations: List[Reservation],
        now: DateTime,
    ) -> List[Slot]:
        """
        Walk one window and keep the free candidates.

        Example (duration 30, buffer 15):
        Window: 09:00 - 12:00
        Candidates: 09:00, 09:45, 10:30, 11:15
        """
        slots: List[Slot] = []
        cursor = window.start

        while cursor.add(minutes=duration) <= window.end:
            candidate = TimeRange(start=cursor, end=cursor.add(minutes=duration))

            is_open = not candidate.is_past(now) and not self.validator.find_conflicts(
                candidate, reservations
            )
            if is_open:
                slots.append(Slot(time_range=candidate))

            cursor = cursor.add(minutes=step)

        return slots

    def _partition_by_date(
        self,
        reservations: Iterable[Reservation],
    ) -> Dict[Date, List[Reservation]]:
        """
        Group active reservations under every local date they touch.

        A reservation running past midnight is listed on both dates.
        """
        by_date: Dict[Date, List[Reservation]] = defaultdict(list)

        for reservation in reservations:
            if not reservation.is_active:
                continue
            first = self.schedule.local_date(reservation.start)
            last = self.schedule.local_date(reservation.end - timedelta(microseconds=1))
            current = first
            while current <= last:
                by_date[current].append(reservation)
                current = current.add(days=1)

        return dict(by_date)
