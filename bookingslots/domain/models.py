"""
Domain models for intervals, reservations, session policy and slots.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple

import pendulum
from pendulum import Date, DateTime

from .exceptions import InvalidInputError


WEEKDAY_LABELS = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidInputError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range shares any instant with another."""
        return self.start < other.end and other.start < self.end

    def contains(self, other: "TimeRange") -> bool:
        """Check if another range lies completely inside this one."""
        return self.start <= other.start and other.end <= self.end

    def is_past(self, now: DateTime) -> bool:
        """A range is in the past as soon as its start lies before ``now``."""
        return self.start < now

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


def overlaps(a: TimeRange, b: TimeRange) -> bool:
    """Symmetric overlap test for two half-open ranges."""
    return a.overlaps(b)


def to_date(value: date) -> Date:
    """Normalise a ``datetime.date`` (or pendulum Date) to a pendulum Date."""
    return pendulum.date(value.year, value.month, value.day)


@dataclass(frozen=True)
class DateRange:
    """
    Inclusive range of calendar dates.

    A range whose start equals its end covers exactly one day.
    """
    start: Date
    end: Date

    def __post_init__(self):
        if isinstance(self.start, datetime) or isinstance(self.end, datetime):
            raise InvalidInputError("DateRange expects calendar dates, not datetimes")
        object.__setattr__(self, "start", to_date(self.start))
        object.__setattr__(self, "end", to_date(self.end))
        if self.end < self.start:
            raise InvalidInputError(
                f"Date range end {self.end} must not be before start {self.start}"
            )

    @classmethod
    def single(cls, day: date) -> "DateRange":
        return cls(start=day, end=day)

    @classmethod
    def lookahead(cls, first_day: date, days: int) -> "DateRange":
        """Range of ``days`` calendar days starting at ``first_day``."""
        if days <= 0:
            raise InvalidInputError(f"Lookahead must cover at least one day, got {days}")
        start = to_date(first_day)
        return cls(start=start, end=start.add(days=days - 1))

    def days(self) -> Iterator[Date]:
        """Yield every calendar date in ascending order."""
        current = self.start
        while current <= self.end:
            yield current
            current = current.add(days=1)

    def bounds(self, timezone: str) -> TimeRange:
        """Absolute span from the first midnight to the midnight after the last day."""
        start = pendulum.datetime(self.start.year, self.start.month, self.start.day, tz=timezone)
        after = self.end.add(days=1)
        end = pendulum.datetime(after.year, after.month, after.day, tz=timezone)
        return TimeRange(start=start, end=end)

    def __len__(self) -> int:
        return self.end.toordinal() - self.start.toordinal() + 1


@dataclass(frozen=True)
class SessionPolicy:
    """
    Session length and buffer settings of a provider.

    ``min_duration``/``max_duration`` bound durations callers may request,
    ``buffer_time`` is the idle gap inserted after every session.
    """
    session_duration: int = 30
    buffer_time: int = 15
    min_duration: int = 15
    max_duration: int = 120
    max_buffer: int = 60

    def __post_init__(self):
        if self.min_duration <= 0 or self.max_duration < self.min_duration:
            raise InvalidInputError(
                f"Invalid duration bounds {self.min_duration}-{self.max_duration}"
            )
        if not self.min_duration <= self.session_duration <= self.max_duration:
            raise InvalidInputError(
                f"Session duration must be between {self.min_duration} and "
                f"{self.max_duration} minutes, got {self.session_duration}"
            )
        if not 0 <= self.buffer_time <= self.max_buffer:
            raise InvalidInputError(
                f"Buffer time must be between 0 and {self.max_buffer} minutes, got {self.buffer_time}"
            )

    def resolve_duration(self, requested: Optional[int] = None) -> int:
        """
        Return the duration to generate slots for.

        Falls back to the provider's own session duration; a requested duration
        outside the provider's bounds is a caller error.
        """
        if requested is None:
            return self.session_duration
        if not self.min_duration <= requested <= self.max_duration:
            raise InvalidInputError(
                f"Duration must be between {self.min_duration} and {self.max_duration} minutes"
            )
        return requested


class ReservationStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    RESCHEDULED = "rescheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    CANCELLED = "cancelled"
    REJECTED = "rejected"

    @property
    def is_active(self) -> bool:
        return self not in INACTIVE_STATUSES


INACTIVE_STATUSES = frozenset({ReservationStatus.CANCELLED, ReservationStatus.REJECTED})
ACTIVE_STATUSES = frozenset(set(ReservationStatus) - INACTIVE_STATUSES)


@dataclass(frozen=True)
class Reservation:
    """A persisted booking of a provider."""
    id: str
    provider_id: str
    start: DateTime
    end: DateTime
    status: ReservationStatus = ReservationStatus.CONFIRMED

    def __post_init__(self):
        object.__setattr__(self, "status", ReservationStatus(self.status))
        TimeRange(start=self.start, end=self.end)

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    @classmethod
    def from_dict(cls, data: Dict[str, Any], timezone: str) -> "Reservation":
        """
        Build a reservation from a JSON record.

        Accepts the camelCase keys of the booking API as well as snake_case.

        Raises:
            KeyError: If a required key is missing
            TypeError: If the record is not a JSON object
            ValueError: If timestamps or status cannot be parsed
        """
        if not isinstance(data, dict):
            raise TypeError(f"Reservation record must be an object, got {type(data).__name__}")
        provider_id = data.get("providerId", data.get("provider_id"))
        if provider_id is None:
            raise KeyError("providerId")
        start_raw = data.get("start", data.get("startTime"))
        end_raw = data.get("end", data.get("endTime"))
        if start_raw is None or end_raw is None:
            raise KeyError("start/end")
        start = pendulum.parse(start_raw, tz=timezone)
        end = pendulum.parse(end_raw, tz=timezone)
        if not isinstance(start, DateTime) or not isinstance(end, DateTime):
            raise ValueError(f"Reservation {data.get('id')} needs full timestamps")
        return cls(
            id=str(data["id"]),
            provider_id=str(provider_id),
            start=start,
            end=end,
            status=ReservationStatus(data.get("status", ReservationStatus.CONFIRMED.value)),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "providerId": self.provider_id,
            "start": self.start.to_iso8601_string(),
            "end": self.end.to_iso8601_string(),
            "status": self.status.value,
        }


@dataclass(frozen=True)
class Slot:
    """
    Represents a bookable slot. Computed on request, never persisted.
    """
    time_range: TimeRange

    @property
    def start(self) -> DateTime:
        return self.time_range.start

    @property
    def end(self) -> DateTime:
        return self.time_range.end

    @property
    def duration(self) -> int:
        return self.time_range.duration_minutes()

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, DD.MM.YYYY | HH:MM - HH:MM (N min)
        """
        weekday = WEEKDAY_LABELS[self.start.weekday()]
        date_str = self.start.format("DD.MM.YYYY")
        time_str = f"{self.start.format('HH:mm')} - {self.end.format('HH:mm')}"
        return f"{weekday}, {date_str} | {time_str} ({self.duration} min)"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.to_iso8601_string(),
            "end": self.end.to_iso8601_string(),
            "duration": self.duration,
        }


@dataclass(frozen=True)
class ProposedInterval:
    """
    A time span somebody wants to book.

    ``exclude_reservation_id`` names an existing reservation being edited so
    that it does not conflict with itself.
    """
    provider_id: str
    start: DateTime
    end: DateTime
    exclude_reservation_id: Optional[str] = None

    def __post_init__(self):
        TimeRange(start=self.start, end=self.end)

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)


class RejectionReason(str, Enum):
    IN_THE_PAST = "in the past"
    PROVIDER_UNAVAILABLE = "provider unavailable"
    INVALID_DURATION = "invalid session duration"
    OUTSIDE_WORKING_HOURS = "outside working hours"
    ALREADY_BOOKED = "time slot already booked"


@dataclass(frozen=True)
class BookingCheck:
    """Outcome of a bookability check. A rejection is a value, not an error."""
    bookable: bool
    reason: Optional[RejectionReason] = None
    conflicts: Tuple[Reservation, ...] = field(default_factory=tuple)

    @classmethod
    def accept(cls) -> "BookingCheck":
        return cls(bookable=True)

    @classmethod
    def reject(cls, reason: RejectionReason, conflicts=()) -> "BookingCheck":
        return cls(bookable=False, reason=reason, conflicts=tuple(conflicts))

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"bookable": self.bookable}
        if self.reason is not None:
            result["reason"] = self.reason.value
        if self.conflicts:
            result["conflicts"] = [r.id for r in self.conflicts]
        return result


@dataclass(frozen=True)
class BookingResult:
    """Result of a serialized check-and-insert."""
    check: BookingCheck
    reservation: Optional[Reservation] = None

    @property
    def accepted(self) -> bool:
        return self.reservation is not None
