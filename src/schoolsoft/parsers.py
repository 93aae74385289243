"""Translate SchoolSoft payloads into the typed models in :mod:`schoolsoft.models`."""

from __future__ import annotations

import uuid
from collections.abc import Callable
from typing import TypeVar

import lxml.html
from loguru import logger
from lxml import etree
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from .errors import (
    BadUrlError,
    LunchMenuParseError,
    NoLunchMenuError,
    ParseError,
    ScheduleParseError,
    SchoolListingError,
    TokenParseError,
    UserParseError,
)
from .http import parse_date, parse_datetime
from .models import (
    LoginMethods,
    Lunch,
    LunchMenu,
    Occasion,
    Org,
    SchoolListing,
    UserType,
)
from .token import Token

MAX_WEEK = 53

T = TypeVar("T")


class _StrictPayload(BaseModel):
    """camelCase payload whose shape is pinned; unknown keys are rejected."""

    model_config = ConfigDict(alias_generator=to_camel, extra="forbid")


class _LenientPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, extra="ignore")


class RawSchoolListing(_StrictPayload):
    student_login_methods: str
    parent_login_methods: str
    teacher_login_methods: str
    name: str
    url: str


class RawOrg(_StrictPayload):
    name: str
    blogger: bool
    school_type: int
    leisure_school: int
    class_name: str = Field(alias="class")
    org_id: int
    token_login: str


class RawUser(_StrictPayload):
    picture_url: str
    name: str
    is_of_age: bool
    app_key: str
    orgs: list[RawOrg]
    user_type: int = Field(alias="type")
    user_id: int


class RawToken(_LenientPayload):
    expiry_date: str
    token: str


class RawLunchMenu(_StrictPayload):
    week: int
    dates: list[str] = Field(min_length=5)
    monday: str
    tuesday: str
    wednesday: str
    thursday: str
    friday: str
    saturday: str
    sunday: str
    dish_category_name: str
    dish: int
    empty: bool
    id: int
    org_id: int
    cre_date: str
    cre_by_id: int
    cre_by_type: int
    upd_date: str
    upd_by_id: int
    upd_by_type: int


class RawOccasion(_LenientPayload):
    id: int
    guid: str
    day_id: int
    start_time: str
    end_time: str
    subject_name: str
    room_name: str
    weeks_string: str = ""
    excluding_weeks_string: str = ""
    including_weeks_string: str = ""


_SCHOOL_LIST: TypeAdapter[list[RawSchoolListing]] = TypeAdapter(list[RawSchoolListing])
_LUNCH_MENUS: TypeAdapter[list[RawLunchMenu]] = TypeAdapter(list[RawLunchMenu])
_OCCASIONS: TypeAdapter[list[RawOccasion]] = TypeAdapter(list[RawOccasion])


def _load(
    validate: Callable[[str | bytes], T], payload: str | bytes, error: type[ParseError], what: str
) -> T:
    try:
        return validate(payload)
    except ValidationError as exc:
        raise error(f"Error when parsing {what} json: {exc}") from exc


# School list -------------------------------------------------------------------------


def parse_login_methods(raw: str) -> list[int]:
    """Parse ``"0,1,4"`` into ``[0, 1, 4]``; empty entries are skipped."""
    methods: list[int] = []
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            method = int(item)
        except ValueError as exc:
            raise SchoolListingError(f"Invalid login method: {item!r}") from exc
        if not 0 <= method <= 255:
            raise SchoolListingError(f"Login method out of range: {method}")
        methods.append(method)
    return methods


def url_name_from_url(url: str) -> str:
    """Return the school slug, ``https://sms.schoolsoft.se/mock/`` -> ``mock``."""
    head, sep, tail = url.rstrip("/").rpartition("/")
    if not sep or not tail or head.endswith("/"):
        raise BadUrlError(f"The url is invalid: {url!r}")
    return tail


def _school_from_raw(raw: RawSchoolListing) -> SchoolListing:
    return SchoolListing(
        login_methods=LoginMethods(
            student=parse_login_methods(raw.student_login_methods),
            teacher=parse_login_methods(raw.teacher_login_methods),
            parent=parse_login_methods(raw.parent_login_methods),
        ),
        name=raw.name,
        url=raw.url,
        url_name=url_name_from_url(raw.url),
    )


def parse_school(payload: str | bytes) -> SchoolListing:
    raw = _load(RawSchoolListing.model_validate_json, payload, SchoolListingError, "school")
    return _school_from_raw(raw)


def parse_school_list(payload: str | bytes) -> list[SchoolListing]:
    raw_schools = _load(_SCHOOL_LIST.validate_json, payload, SchoolListingError, "school list")
    return [_school_from_raw(raw) for raw in raw_schools]


# User and token ----------------------------------------------------------------------


def parse_user(payload: str | bytes) -> RawUser:
    """Validate a login response. The user type must be 1, 2 or 3."""
    raw = _load(RawUser.model_validate_json, payload, UserParseError, "user")
    try:
        UserType(raw.user_type)
    except ValueError as exc:
        raise UserParseError(f"Invalid user type: {raw.user_type}") from exc
    return raw


def orgs_from_raw(raw: RawUser) -> list[Org]:
    return [
        Org(
            id=org.org_id,
            name=org.name,
            blogger=org.blogger,
            school_type=org.school_type,
            leisure_school=org.leisure_school,
            class_name=org.class_name,
            token_login=org.token_login,
        )
        for org in raw.orgs
    ]


def parse_token(payload: str | bytes) -> Token:
    raw = _load(RawToken.model_validate_json, payload, TokenParseError, "token")
    try:
        expires = parse_datetime(raw.expiry_date)
    except ValueError as exc:
        raise TokenParseError(str(exc)) from exc
    return Token(token=raw.token, expires=expires)


# Lunch -------------------------------------------------------------------------------


def parse_lunch_menu(payload: str | bytes) -> LunchMenu:
    """Parse the first menu of a lunch menu list."""
    raw_menus = _load(_LUNCH_MENUS.validate_json, payload, LunchMenuParseError, "lunch menu")
    if not raw_menus:
        raise NoLunchMenuError()
    raw = raw_menus[0]

    try:
        dates = [parse_date(value) for value in raw.dates]
    except ValueError as exc:
        raise LunchMenuParseError(f"Error when parsing date: {exc}") from exc
    try:
        created_at = parse_datetime(raw.cre_date)
    except ValueError as exc:
        raise LunchMenuParseError(f"Error when parsing date: {exc}") from exc

    return LunchMenu(
        week=raw.week,
        created_at=created_at,
        category=raw.dish_category_name,
        monday=Lunch(date=dates[0], food=raw.monday),
        tuesday=Lunch(date=dates[1], food=raw.tuesday),
        wednesday=Lunch(date=dates[2], food=raw.wednesday),
        thursday=Lunch(date=dates[3], food=raw.thursday),
        friday=Lunch(date=dates[4], food=raw.friday),
    )


# Schedule ----------------------------------------------------------------------------


def _clipped(first: int, last: int) -> range:
    return range(max(first, 1), min(last, MAX_WEEK) + 1)


def parse_week_range(raw: str) -> list[int]:
    """Expand ``"34-43, 45-51, 3"`` into week numbers.

    A range whose end is lower than its start runs over new year:
    ``"52-2"`` is weeks 52, 53, 1 and 2. Ranges are clipped to weeks
    1-53; an item reaching outside them is logged once.
    """
    weeks: list[int] = []
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        start, sep, end = item.partition("-")
        try:
            first = int(start)
            last = int(end) if sep else first
        except ValueError as exc:
            raise ScheduleParseError(f"Invalid week range: {item!r}") from exc

        if not (1 <= first <= MAX_WEEK and 1 <= last <= MAX_WEEK):
            logger.warning(f"Week range {item!r} reaches outside 1..{MAX_WEEK}; clipping")

        if last >= first:
            weeks.extend(_clipped(first, last))
        else:
            weeks.extend(_clipped(first, MAX_WEEK))
            weeks.extend(_clipped(1, last))
    return weeks


def occasion_weeks(weeks: str, excluding: str = "", including: str = "") -> list[int]:
    """Base weeks, minus excluded weeks, plus included weeks; sorted."""
    mask = [False] * (MAX_WEEK + 1)
    for value, state in (
        *((week, True) for week in parse_week_range(weeks)),
        *((week, False) for week in parse_week_range(excluding)),
        *((week, True) for week in parse_week_range(including)),
    ):
        mask[value] = state
    return [week for week, active in enumerate(mask) if active]


def occasion_from_raw(raw: RawOccasion) -> Occasion:
    if not 0 <= raw.day_id <= 6:
        raise ScheduleParseError(f"Error when parsing day_of_week: {raw.day_id}")
    try:
        guid = uuid.UUID(raw.guid)
    except ValueError as exc:
        raise ScheduleParseError(f"Error when parsing uuid: {raw.guid!r}") from exc
    try:
        start_time = parse_datetime(raw.start_time).time()
        end_time = parse_datetime(raw.end_time).time()
    except ValueError as exc:
        raise ScheduleParseError(f"Error when parsing time: {exc}") from exc

    return Occasion(
        id=raw.id,
        uuid=guid,
        start_time=start_time,
        end_time=end_time,
        subject_name=raw.subject_name,
        room_name=raw.room_name,
        week_day=raw.day_id,
        weeks=occasion_weeks(
            raw.weeks_string, raw.excluding_weeks_string, raw.including_weeks_string
        ),
    )


def parse_occasions(payload: str | bytes) -> list[Occasion]:
    raw_occasions = _load(_OCCASIONS.validate_json, payload, ScheduleParseError, "lessons")
    return [occasion_from_raw(raw) for raw in raw_occasions]


# Web login ---------------------------------------------------------------------------


def extract_login_error(page: str) -> str | None:
    """Return the visible error text of a rejected web login page, if any."""
    if not page.strip():
        return None
    try:
        root = lxml.html.fromstring(page)
    except (etree.ParserError, ValueError):
        return None

    for node in root.xpath('//*[contains(@class, "error") or contains(@class, "alert")]'):
        text = " ".join(node.text_content().split())
        if text:
            return text

    title = root.findtext(".//title")
    if title and title.strip():
        return " ".join(title.split())
    return None
