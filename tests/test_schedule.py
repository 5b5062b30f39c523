"""
Tests for weekly schedules, windows and schedule updates.
"""

from zoneinfo import ZoneInfoNotFoundError

import pendulum
import pytest
from pendulum.tz.exceptions import InvalidTimezone

from bookingslots.domain.exceptions import InvalidInputError, ScheduleError
from bookingslots.domain.schedule import (
    DaySchedule,
    WeeklySchedule,
    Window,
    format_time_of_day,
    parse_time_of_day,
    weekday_index,
)

TZ = "Asia/Kolkata"
MONDAY = pendulum.date(2025, 3, 3)
TUESDAY = pendulum.date(2025, 3, 4)
SATURDAY = pendulum.date(2025, 3, 8)


def _weekday_schedule() -> WeeklySchedule:
    return WeeklySchedule.from_days(
        {
            day: [Window.parse("09:00", "12:00"), Window.parse("15:00", "18:00")]
            for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
        },
        timezone=TZ,
    )


class TestTimeOfDay:
    """Tests for HH:MM parsing."""

    def test_parse_valid(self):
        assert parse_time_of_day("00:00") == 0
        assert parse_time_of_day("09:30") == 570
        assert parse_time_of_day("23:59") == 1439

    @pytest.mark.parametrize("value", ["9:30", "24:00", "12:60", "noon", "", "09:30:00", None])
    def test_parse_invalid(self, value):
        with pytest.raises(InvalidInputError, match="Invalid time of day"):
            parse_time_of_day(value)

    def test_format(self):
        assert format_time_of_day(570) == "09:30"

    def test_weekday_index(self):
        assert weekday_index("Monday") == 0
        assert weekday_index("sunday") == 6
        assert weekday_index(3) == 3

        with pytest.raises(InvalidInputError):
            weekday_index("funday")
        with pytest.raises(InvalidInputError):
            weekday_index(7)


class TestWindow:
    """Tests for Window model."""

    def test_window_bounds(self):
        window = Window.parse("09:00", "12:00")

        assert window.start == 540
        assert window.end == 720
        assert window.duration_minutes() == 180
        assert str(window) == "09:00-12:00"

    def test_inverted_window_raises(self):
        with pytest.raises(ScheduleError, match="must be before"):
            Window.parse("12:00", "09:00")

    def test_out_of_day_window_raises(self):
        with pytest.raises(ScheduleError):
            Window(start=600, end=1440)

    def test_overlapping_windows_in_one_day_rejected(self):
        with pytest.raises(ScheduleError, match="overlap"):
            DaySchedule(
                available=True,
                windows=(Window.parse("09:00", "12:00"), Window.parse("11:00", "13:00")),
            )

    def test_adjacent_windows_allowed(self):
        day = DaySchedule(
            available=True,
            windows=(Window.parse("12:00", "13:00"), Window.parse("09:00", "12:00")),
        )

        # stored in ascending order
        assert [str(w) for w in day.windows] == ["09:00-12:00", "12:00-13:00"]


class TestWeeklySchedule:
    """Tests for WeeklySchedule lookups."""

    def test_windows_for_working_day(self):
        schedule = _weekday_schedule()

        windows = schedule.windows_for(MONDAY)

        assert [str(w) for w in windows] == ["09:00-12:00", "15:00-18:00"]

    def test_windows_for_closed_day(self):
        schedule = _weekday_schedule()

        assert schedule.windows_for(SATURDAY) == ()

    def test_unavailable_day_keeps_windows_hidden(self):
        schedule = _weekday_schedule()
        days = list(schedule.days)
        days[0] = DaySchedule(available=False, windows=(Window.parse("09:00", "12:00"),))
        schedule = WeeklySchedule(days=tuple(days), timezone=TZ)

        assert schedule.windows_for(MONDAY) == ()

    def test_weekday_is_taken_in_schedule_timezone(self):
        """Sunday 20:00 UTC is already Monday in India."""
        schedule = _weekday_schedule()
        sunday_evening_utc = pendulum.datetime(2025, 3, 2, 20, 0, tz="UTC")

        assert schedule.local_date(sunday_evening_utc) == MONDAY
        assert len(schedule.windows_for(sunday_evening_utc)) == 2

    def test_window_ranges_for(self):
        schedule = _weekday_schedule()

        ranges = schedule.window_ranges_for(MONDAY)

        assert ranges[0].start == pendulum.datetime(2025, 3, 3, 9, tz=TZ)
        assert ranges[0].end == pendulum.datetime(2025, 3, 3, 12, tz=TZ)
        assert ranges[1].start == pendulum.datetime(2025, 3, 3, 15, tz=TZ)

    def test_unknown_timezone_raises(self):
        with pytest.raises(ScheduleError, match="Unknown timezone"):
            WeeklySchedule(timezone="Mars/Olympus_Mons")

    def test_unknown_timezone_keeps_cause(self):
        with pytest.raises(ScheduleError) as excinfo:
            WeeklySchedule(timezone="Nowhere/Special")

        assert isinstance(excinfo.value.__cause__, (InvalidTimezone, ZoneInfoNotFoundError))

    def test_wrong_number_of_days_raises(self):
        with pytest.raises(ScheduleError):
            WeeklySchedule(days=(DaySchedule(),) * 6)

    def test_break_is_carved_out(self):
        schedule = WeeklySchedule.from_days(
            {"monday": [Window.parse("09:00", "18:00")]}, timezone=TZ
        ).set_break(Window.parse("13:00", "14:00"))

        assert [str(w) for w in schedule.windows_for(MONDAY)] == ["09:00-13:00", "14:00-18:00"]

    def test_break_swallowing_a_window(self):
        schedule = WeeklySchedule.from_days(
            {"monday": [Window.parse("09:00", "12:00"), Window.parse("13:00", "13:30")]},
            timezone=TZ,
        ).set_break(Window.parse("13:00", "14:00"))

        assert [str(w) for w in schedule.windows_for(MONDAY)] == ["09:00-12:00"]


class TestScheduleUpdates:
    """Tests for the explicit schedule update operations."""

    def test_set_day_returns_new_schedule(self):
        schedule = _weekday_schedule()

        updated = schedule.set_day("saturday", [Window.parse("10:00", "13:00")])

        assert schedule.windows_for(SATURDAY) == ()
        assert [str(w) for w in updated.windows_for(SATURDAY)] == ["10:00-13:00"]

    def test_set_day_unavailable_clears_windows(self):
        updated = _weekday_schedule().set_day(0, [Window.parse("09:00", "10:00")], available=False)

        assert updated.days[0].windows == ()
        assert updated.windows_for(MONDAY) == ()

    def test_override_wins_over_weekday(self):
        schedule = _weekday_schedule().set_override(MONDAY, [Window.parse("10:00", "11:00")])

        assert [str(w) for w in schedule.windows_for(MONDAY)] == ["10:00-11:00"]
        assert len(schedule.windows_for(TUESDAY)) == 2

    def test_unavailable_override_closes_day(self):
        schedule = _weekday_schedule().set_override(MONDAY, available=False, reason="Holi")

        assert schedule.windows_for(MONDAY) == ()
        assert schedule.override_for(MONDAY).reason == "Holi"

    def test_override_opens_closed_day(self):
        schedule = _weekday_schedule().set_override(SATURDAY, [Window.parse("09:00", "10:00")])

        assert len(schedule.windows_for(SATURDAY)) == 1

    def test_set_override_replaces_existing(self):
        schedule = (
            _weekday_schedule()
            .set_override(MONDAY, [Window.parse("10:00", "11:00")])
            .set_override(MONDAY, [Window.parse("16:00", "17:00")])
        )

        assert len(schedule.overrides) == 1
        assert [str(w) for w in schedule.windows_for(MONDAY)] == ["16:00-17:00"]

    def test_clear_override(self):
        schedule = _weekday_schedule().set_override(MONDAY, available=False).clear_override(MONDAY)

        assert len(schedule.windows_for(MONDAY)) == 2

    def test_prune_overrides(self):
        schedule = (
            _weekday_schedule()
            .set_override(MONDAY, available=False)
            .set_override(SATURDAY, [Window.parse("09:00", "10:00")])
        )

        pruned = schedule.prune_overrides(TUESDAY)

        assert [o.date for o in pruned.overrides] == [SATURDAY]

    def test_overlapping_override_windows_rejected(self):
        with pytest.raises(ScheduleError):
            _weekday_schedule().set_override(
                MONDAY, [Window.parse("09:00", "11:00"), Window.parse("10:00", "12:00")]
            )
