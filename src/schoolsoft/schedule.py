"""The lesson schedule as a 53-week calendar."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import date, datetime, timedelta

from loguru import logger
from pydantic import BaseModel, Field

from .models import Lesson, Occasion, ScheduleDay, ScheduleWeek
from .parsers import MAX_WEEK, parse_occasions

HALF_YEAR_ORDINAL = 365 // 2
WEEKS_FROM_FIRST_HALF = 26


def week_monday(year: int, week: int) -> date:
    """Monday of ISO week ``week`` of ``year``.

    Years with only 52 ISO weeks get the Monday after week 52 for week 53.
    """
    try:
        return date.fromisocalendar(year, week, 1)
    except ValueError:
        if week != MAX_WEEK:
            raise
        return date.fromisocalendar(year, MAX_WEEK - 1, 1) + timedelta(weeks=1)


class Schedule(BaseModel):
    """Every week of the school year as it is currently known.

    ``weeks[n - 1]`` holds week ``n``. A school year spans new year, so half of
    the weeks belong to one calendar year and the rest to the next; which half is
    decided by the date the schedule is built around.
    """

    weeks: list[ScheduleWeek] = Field(min_length=MAX_WEEK, max_length=MAX_WEEK)

    @classmethod
    def around(cls, day: date) -> Schedule:
        """Create an empty schedule for the school year ``day`` falls in.

        In the first half of the year we are at the end of a school year, so weeks
        27-53 are taken from the previous year. In the second half we are at the
        start of one, so weeks 1-26 are taken from the next year.
        """
        if day.timetuple().tm_yday < HALF_YEAR_ORDINAL:
            early_year, late_year = day.year, day.year - 1
        else:
            early_year, late_year = day.year + 1, day.year

        weeks = [
            ScheduleWeek.empty(
                week_monday(early_year if number <= WEEKS_FROM_FIRST_HALF else late_year, number)
            )
            for number in range(1, MAX_WEEK + 1)
        ]
        return cls(weeks=weeks)

    @classmethod
    def from_occasions(cls, occasions: Iterable[Occasion], today: date | None = None) -> Schedule:
        schedule = cls.around(today or datetime.now().date())
        for occasion in occasions:
            schedule.add_occasion(occasion)
        for day in schedule.iter_days():
            day.lessons.sort(key=lambda lesson: lesson.start)
        return schedule

    def add_occasion(self, occasion: Occasion) -> None:
        """Put the occasion's lesson on its weekday in each of its weeks.

        Week 53 is left empty when its year has no ISO week 53, since it then
        falls on the same dates as week 1.
        """
        lesson = occasion.to_lesson()
        for number in occasion.weeks:
            if number == MAX_WEEK and not self.has_week_53():
                continue
            self.week(number).get_day(occasion.week_day).lessons.append(lesson.model_copy())

    def has_week_53(self) -> bool:
        return self.week(MAX_WEEK).start != self.week(1).start

    def week(self, number: int) -> ScheduleWeek:
        if not 1 <= number <= MAX_WEEK:
            raise IndexError(f"Week {number} outside 1..{MAX_WEEK}")
        return self.weeks[number - 1]

    def day(self, on: date) -> ScheduleDay | None:
        """Return the schedule day for a date, or None if it is outside this school year."""
        week = self.week(on.isocalendar().week)
        candidate = week.get_day(on.weekday())
        return candidate if candidate.date == on else None

    def iter_days(self) -> Iterator[ScheduleDay]:
        for week in self.weeks:
            yield from week.days()

    def next_lesson(self, now: datetime) -> tuple[date, Lesson] | None:
        """Find the first lesson starting at or after ``now``."""
        upcoming = (
            (day.date, lesson)
            for day in sorted(self.iter_days(), key=lambda item: item.date)
            if day.date >= now.date()
            for lesson in day.lessons
            if datetime.combine(day.date, lesson.start) >= now
        )
        return next(upcoming, None)


def parse_schedule(payload: str | bytes, today: date | None = None) -> Schedule:
    """Parse a lessons response into a :class:`Schedule`."""
    occasions = parse_occasions(payload)
    logger.debug(f"Parsed {len(occasions)} lesson occasions")
    return Schedule.from_occasions(occasions, today=today)
