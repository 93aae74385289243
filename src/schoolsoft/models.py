"""Typed structures returned by the SchoolSoft client.

Field names are snake_case; ``model_dump(mode="json")`` gives the serialized form
(dates as ``YYYY-MM-DD``, datetimes as ISO 8601).
"""

from __future__ import annotations

import datetime as dt
import enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

APP_LOGIN_METHOD = 4


class UserType(enum.IntEnum):
    """Kind of account logged in to SchoolSoft."""

    STUDENT = 1
    PARENT = 2
    TEACHER = 3

    def __str__(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value: int | str | UserType) -> UserType:
        """Accept the numeric id or the lowercase name."""
        if isinstance(value, str) and not value.isdigit():
            try:
                return cls[value.upper()]
            except KeyError as exc:
                raise ValueError(f"Unknown user type: {value!r}") from exc
        return cls(int(value))


class Org(BaseModel):
    """An organisation (school unit) the user belongs to.

    The login response lists these; in practice it has been a single entry named
    after the school.
    """

    id: int
    name: str
    blogger: bool
    school_type: int
    leisure_school: int
    class_name: str = Field(description="Class the user attends, e.g. `F35b`")
    token_login: str = Field(description="Browser login url, not the token endpoint")


class LoginMethods(BaseModel):
    """Login methods enabled for each kind of user.

    The app API only works when method 4 is present.
    """

    student: list[int] = Field(default_factory=list)
    teacher: list[int] = Field(default_factory=list)
    parent: list[int] = Field(default_factory=list)

    def for_user_type(self, user_type: UserType) -> list[int]:
        return getattr(self, str(user_type))


class SchoolListing(BaseModel):
    """A school from the public school list."""

    login_methods: LoginMethods
    name: str
    url: str
    url_name: str

    def supports_app_login(self, user_type: UserType = UserType.STUDENT) -> bool:
        return APP_LOGIN_METHOD in self.login_methods.for_user_type(user_type)


class Lunch(BaseModel):
    """A single day's lunch."""

    date: dt.date
    food: str


class LunchMenu(BaseModel):
    """Lunch menu for one week."""

    week: int
    created_at: dt.datetime
    category: str
    monday: Lunch
    tuesday: Lunch
    wednesday: Lunch
    thursday: Lunch
    friday: Lunch

    def days(self) -> list[Lunch]:
        return [self.monday, self.tuesday, self.wednesday, self.thursday, self.friday]


class Lesson(BaseModel):
    start: dt.time
    end: dt.time
    name: str
    room: str


class ScheduleDay(BaseModel):
    date: dt.date
    lessons: list[Lesson] = Field(default_factory=list)


WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class ScheduleWeek(BaseModel):
    """Seven schedule days starting on a Monday."""

    start: dt.date
    monday: ScheduleDay
    tuesday: ScheduleDay
    wednesday: ScheduleDay
    thursday: ScheduleDay
    friday: ScheduleDay
    saturday: ScheduleDay
    sunday: ScheduleDay

    @classmethod
    def empty(cls, start: dt.date) -> ScheduleWeek:
        """Create a week with no lessons; ``start`` is moved back to its Monday."""
        monday = start - dt.timedelta(days=start.weekday())
        days = {
            name: ScheduleDay(date=monday + dt.timedelta(days=offset))
            for offset, name in enumerate(WEEKDAY_NAMES)
        }
        return cls(start=monday, **days)

    def get_day(self, weekday: int) -> ScheduleDay:
        """Return the day for ``weekday`` (0 = Monday, as ``date.weekday()``)."""
        return getattr(self, WEEKDAY_NAMES[weekday])

    def days(self) -> list[ScheduleDay]:
        return [self.get_day(i) for i in range(7)]


class Occasion(BaseModel):
    """A recurring lesson slot as described by the lessons endpoint."""

    model_config = ConfigDict(frozen=True)

    id: int
    uuid: UUID
    start_time: dt.time
    end_time: dt.time
    subject_name: str
    room_name: str
    week_day: int = Field(ge=0, le=6, description="0 = Monday")
    weeks: list[int] = Field(description="Sorted week numbers the occasion runs")

    def to_lesson(self) -> Lesson:
        return Lesson(
            start=self.start_time,
            end=self.end_time,
            name=self.subject_name,
            room=self.room_name,
        )


class WebSession(BaseModel):
    """A browser session obtained through the web login form."""

    school: str
    session_id: str = Field(repr=False, description="Value of the JSESSIONID cookie")
    start_page: str = Field(description="Url the login redirected to")
