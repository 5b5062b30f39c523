"""
Recurring weekly working hours of a provider.

Windows are stored in minute-of-day resolution and only turned into absolute
timestamps on request, always in the schedule's own timezone.
"""

import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence, Tuple, Union
from zoneinfo import ZoneInfoNotFoundError

import pendulum
from pendulum import Date, DateTime
from pendulum.tz.exceptions import InvalidTimezone

from .exceptions import InvalidInputError, ScheduleError
from .models import TimeRange, to_date

MINUTES_PER_DAY = 24 * 60

WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

DEFAULT_TIMEZONE = "Asia/Kolkata"

_TIME_OF_DAY = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_time_of_day(value: str) -> int:
    """
    Convert a 24h ``HH:MM`` string to minutes after midnight.

    Raises:
        InvalidInputError: If the string is not a valid time of day
    """
    match = _TIME_OF_DAY.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise InvalidInputError(f"Invalid time of day {value!r}, expected HH:MM (24-hour)")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_time_of_day(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def weekday_index(day: Union[int, str]) -> int:
    """Accept 0-6 (Monday=0) or an English weekday name."""
    if isinstance(day, str):
        name = day.strip().lower()
        if name not in WEEKDAY_NAMES:
            raise InvalidInputError(f"Invalid day of week: {day!r}")
        return WEEKDAY_NAMES.index(name)
    if day not in range(7):
        raise InvalidInputError(f"Weekday must be between 0 and 6, got {day}")
    return day


@dataclass(frozen=True, order=True)
class Window:
    """
    A working window within one day, ``[start, end)`` in minutes after midnight.
    """
    start: int
    end: int

    def __post_init__(self):
        if not 0 <= self.start < MINUTES_PER_DAY or not 0 <= self.end < MINUTES_PER_DAY:
            raise ScheduleError(
                f"Window bounds must lie within the day, got {self.start}-{self.end}"
            )
        if self.start >= self.end:
            raise ScheduleError(
                f"Window start {format_time_of_day(self.start)} must be before "
                f"end {format_time_of_day(self.end)}"
            )

    @classmethod
    def parse(cls, start: str, end: str) -> "Window":
        return cls(start=parse_time_of_day(start), end=parse_time_of_day(end))

    def overlaps(self, other: "Window") -> bool:
        return self.start < other.end and other.start < self.end

    def duration_minutes(self) -> int:
        return self.end - self.start

    def __str__(self) -> str:
        return f"{format_time_of_day(self.start)}-{format_time_of_day(self.end)}"


def _normalize_windows(windows: Iterable[Window]) -> Tuple[Window, ...]:
    """Sort windows by start and reject overlaps within the same day."""
    ordered = tuple(sorted(windows))
    for previous, current in zip(ordered, ordered[1:]):
        if previous.overlaps(current):
            raise ScheduleError(f"Working windows {previous} and {current} overlap")
    return ordered


@dataclass(frozen=True)
class DaySchedule:
    """Availability flag and working windows of one weekday."""
    available: bool = False
    windows: Tuple[Window, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "windows", _normalize_windows(self.windows))

    def open_windows(self) -> Tuple[Window, ...]:
        return self.windows if self.available else ()


@dataclass(frozen=True)
class DateOverride:
    """
    Custom availability for one calendar date, replacing the weekday entry.
    """
    date: Date
    available: bool = True
    windows: Tuple[Window, ...] = ()
    reason: str = ""

    def __post_init__(self):
        object.__setattr__(self, "date", to_date(self.date))
        object.__setattr__(self, "windows", _normalize_windows(self.windows))

    def open_windows(self) -> Tuple[Window, ...]:
        return self.windows if self.available else ()


def _closed_week() -> Tuple[DaySchedule, ...]:
    return tuple(DaySchedule() for _ in WEEKDAY_NAMES)


@dataclass(frozen=True)
class WeeklySchedule:
    """
    Per-weekday working windows plus date overrides and an optional daily break.

    Schedules are immutable; the ``set_*`` operations return updated copies.
    """
    days: Tuple[DaySchedule, ...] = field(default_factory=_closed_week)
    timezone: str = DEFAULT_TIMEZONE
    overrides: Tuple[DateOverride, ...] = ()
    break_window: Optional[Window] = None

    def __post_init__(self):
        if len(self.days) != len(WEEKDAY_NAMES):
            raise ScheduleError(f"A weekly schedule needs 7 day entries, got {len(self.days)}")
        object.__setattr__(self, "days", tuple(self.days))
        try:
            pendulum.timezone(self.timezone)
        except (InvalidTimezone, ZoneInfoNotFoundError) as exc:
            raise ScheduleError(f"Unknown timezone: {self.timezone}") from exc
        seen = set()
        for override in self.overrides:
            if override.date in seen:
                raise ScheduleError(f"Duplicate override for {override.date}")
            seen.add(override.date)
        object.__setattr__(
            self, "overrides", tuple(sorted(self.overrides, key=lambda o: o.date))
        )

    @classmethod
    def from_days(
        cls,
        days: dict,
        timezone: str = DEFAULT_TIMEZONE,
    ) -> "WeeklySchedule":
        """
        Build a schedule from ``{weekday: [Window, ...]}``; missing days are closed.
        """
        entries = list(_closed_week())
        for day, windows in days.items():
            entries[weekday_index(day)] = DaySchedule(available=True, windows=tuple(windows))
        return cls(days=tuple(entries), timezone=timezone)

    def local_date(self, value: date) -> Date:
        """Calendar date of ``value`` as seen in the schedule's timezone."""
        if isinstance(value, datetime):
            return pendulum.instance(value).in_timezone(self.timezone).date()
        return to_date(value)

    def at(self, day: date, minute_of_day: int) -> DateTime:
        """Absolute timestamp for a minute of ``day`` in the schedule's timezone."""
        return pendulum.datetime(
            day.year,
            day.month,
            day.day,
            minute_of_day // 60,
            minute_of_day % 60,
            tz=self.timezone,
        )

    def override_for(self, value: date) -> Optional[DateOverride]:
        day = self.local_date(value)
        for override in self.overrides:
            if override.date == day:
                return override
        return None

    def windows_for(self, value: date) -> Tuple[Window, ...]:
        """
        Working windows for a date, or ``()`` when the provider is off that day.

        A datetime is first converted into the schedule's timezone; a date
        override wins over the weekday entry.
        """
        day = self.local_date(value)
        override = self.override_for(day)
        if override is not None:
            windows = override.open_windows()
        else:
            windows = self.days[day.weekday()].open_windows()
        if self.break_window is None:
            return windows
        return self._carve_break(windows)

    def window_ranges_for(self, value: date) -> List[TimeRange]:
        """The windows of :meth:`windows_for` as absolute ranges on that date."""
        day = self.local_date(value)
        return [
            TimeRange(start=self.at(day, window.start), end=self.at(day, window.end))
            for window in self.windows_for(day)
        ]

    def _carve_break(self, windows: Sequence[Window]) -> Tuple[Window, ...]:
        """
        Subtract the daily break from each window.

        Example:
        Windows: [09:00-18:00], break 13:00-14:00
        Result: [09:00-13:00, 14:00-18:00]
        """
        pause = self.break_window
        carved: List[Window] = []
        for window in windows:
            if not window.overlaps(pause):
                carved.append(window)
                continue
            if window.start < pause.start:
                carved.append(Window(start=window.start, end=pause.start))
            if pause.end < window.end:
                carved.append(Window(start=pause.end, end=window.end))
        return tuple(carved)

    def set_day(
        self,
        day: Union[int, str],
        windows: Iterable[Window],
        available: bool = True,
    ) -> "WeeklySchedule":
        """Replace one weekday; an unavailable day keeps no windows."""
        index = weekday_index(day)
        entries = list(self.days)
        entries[index] = DaySchedule(
            available=available,
            windows=tuple(windows) if available else (),
        )
        return replace(self, days=tuple(entries))

    def set_override(
        self,
        day: date,
        windows: Iterable[Window] = (),
        available: bool = True,
        reason: str = "",
    ) -> "WeeklySchedule":
        """Add or replace the custom availability of one calendar date."""
        override = DateOverride(
            date=self.local_date(day),
            available=available,
            windows=tuple(windows) if available else (),
            reason="" if available else reason,
        )
        remaining = tuple(o for o in self.overrides if o.date != override.date)
        return replace(self, overrides=remaining + (override,))

    def clear_override(self, day: date) -> "WeeklySchedule":
        target = self.local_date(day)
        return replace(self, overrides=tuple(o for o in self.overrides if o.date != target))

    def set_break(self, window: Optional[Window]) -> "WeeklySchedule":
        return replace(self, break_window=window)

    def prune_overrides(self, before: date) -> "WeeklySchedule":
        """Drop overrides for dates earlier than ``before``."""
        cutoff = self.local_date(before)
        return replace(self, overrides=tuple(o for o in self.overrides if o.date >= cutoff))
