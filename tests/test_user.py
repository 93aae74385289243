"""Tests for token handling and the authenticated user calls."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta

import httpx
import pytest
from fixtures.api_responses import (
    LUNCH_MENUS,
    OCCASION,
    SCHOOL,
    SCHOOL_URL,
    TOKEN,
    USER,
    RoutingTransport,
    dumps,
    json_response,
)

from schoolsoft.errors import (
    NoLunchMenuError,
    NotLoggedInError,
    TokenError,
    UnauthorizedError,
)
from schoolsoft.models import UserType
from schoolsoft.token import Token, utc_now
from schoolsoft.user import User

TOKEN_PATH = f"/{SCHOOL}/rest/app/token"
LUNCH_PATH = f"/{SCHOOL}/api/lunchmenus/student/1"
LESSONS_PATH = f"/{SCHOOL}/api/lessons/student/1"


def _fresh_token(value: str = "fresh_token", valid_for: timedelta = timedelta(hours=3)) -> dict:
    expires = utc_now() + valid_for
    return {"expiryDate": expires.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3], "token": value}


def _user(transport: httpx.MockTransport, payload: dict | None = None) -> User:
    return User.from_json(
        dumps(payload or USER),
        SCHOOL_URL,
        httpx.AsyncClient(transport=transport),
        device_id="mock-device",
    )


def test_from_json_builds_user() -> None:
    """Given a login response, when `User.from_json()` is called, then the
    profile fields are set and the app key stays out of the repr."""
    user = _user(RoutingTransport({}))

    assert user.name == "Mock User"
    assert user.picture_url == "pictureFile.jsp?studentId=1337"
    assert not user.is_of_age
    assert user.user_type == UserType.STUDENT
    assert user.org.id == 1
    assert "123notreal" not in repr(user)


def test_org_without_orgs_raises() -> None:
    """Given a user without organisations, when `org` is read, then
    `NotLoggedInError` is raised."""
    user = _user(RoutingTransport({}), {**USER, "orgs": []})

    with pytest.raises(NotLoggedInError):
        _ = user.org


def test_get_token_sends_app_key_and_stores_token() -> None:
    """Given a token response, when `get_token()` is called, then the app key
    and device id are sent and the token is stored."""
    transport = RoutingTransport({("POST", TOKEN_PATH): json_response(TOKEN)})
    user = _user(transport)

    token = asyncio.run(user.get_token())

    assert token == "one_of_those_tokens"
    assert user.token is not None
    assert user.token.expires == datetime(2024, 2, 12, 17, 22, 23, 714000)
    (request,) = transport.calls_to(TOKEN_PATH)
    assert request.headers["appKey"] == "123notreal"
    assert request.headers["deviceid"] == "mock-device"


@pytest.mark.parametrize(
    "response",
    [httpx.Response(401), json_response({"token": "missing expiry"})],
)
def test_get_token_failure_raises_token_error(response: httpx.Response) -> None:
    """Given a rejected or malformed token response, when `get_token()` is
    called, then `TokenError` is raised with the cause chained."""
    transport = RoutingTransport({("POST", TOKEN_PATH): response})
    user = _user(transport)

    with pytest.raises(TokenError) as exc_info:
        asyncio.run(user.get_token())

    assert user.token is None
    assert exc_info.value.__cause__ is not None


def test_smart_token_reuses_safe_token() -> None:
    """Given a stored token with an hour left, when `smart_token()` is called,
    then it is returned without a request."""
    transport = RoutingTransport({("POST", TOKEN_PATH): json_response(_fresh_token())})
    user = _user(transport)
    user.token = Token(token="stored_token", expires=utc_now() + timedelta(hours=1))

    assert asyncio.run(user.smart_token()) == "stored_token"
    assert transport.calls_to(TOKEN_PATH) == []


@pytest.mark.parametrize(
    "stored",
    [
        None,
        Token(token="stale_token", expires=datetime(2024, 2, 12, 17, 22, 23)),
        Token(token="closing_token", expires=utc_now() + timedelta(seconds=30)),
    ],
)
def test_smart_token_refreshes_missing_or_unsafe_token(stored: Token | None) -> None:
    """Given no token, an expired one or one about to expire, when
    `smart_token()` is called, then a new token is fetched once."""
    transport = RoutingTransport({("POST", TOKEN_PATH): json_response(_fresh_token())})
    user = _user(transport)
    user.token = stored

    assert asyncio.run(user.smart_token()) == "fresh_token"
    assert len(transport.calls_to(TOKEN_PATH)) == 1
    assert user.token is not None and user.token.is_safe()


def test_concurrent_smart_token_calls_share_one_refresh() -> None:
    """Given five concurrent callers and no token, when `smart_token()` runs,
    then a single token request is made."""
    transport = RoutingTransport({("POST", TOKEN_PATH): json_response(_fresh_token())})
    user = _user(transport)

    async def scenario() -> list[str]:
        return await asyncio.gather(*(user.smart_token() for _ in range(5)))

    assert asyncio.run(scenario()) == ["fresh_token"] * 5
    assert len(transport.calls_to(TOKEN_PATH)) == 1


def test_get_lunch_sends_token_header() -> None:
    """Given two lunch calls, when `get_lunch()` is called, then both send the
    same token and only one token request is made."""
    transport = RoutingTransport(
        {
            ("POST", TOKEN_PATH): json_response(_fresh_token()),
            ("GET", LUNCH_PATH): json_response(LUNCH_MENUS),
        }
    )
    user = _user(transport)

    async def scenario() -> None:
        menu = await user.get_lunch()
        assert menu.week == 8
        assert menu.tuesday.date == date(2024, 2, 20)
        # the token is reused for the second call
        await user.get_lunch()

    asyncio.run(scenario())

    lunch_calls = transport.calls_to(LUNCH_PATH)
    assert len(lunch_calls) == 2
    assert all(request.headers["token"] == "fresh_token" for request in lunch_calls)
    assert len(transport.calls_to(TOKEN_PATH)) == 1


def test_get_lunch_without_menu() -> None:
    """Given an empty menu list, when `get_lunch()` is called, then
    `NoLunchMenuError` is raised."""
    transport = RoutingTransport(
        {
            ("POST", TOKEN_PATH): json_response(_fresh_token()),
            ("GET", LUNCH_PATH): json_response([]),
        }
    )
    user = _user(transport)

    with pytest.raises(NoLunchMenuError):
        asyncio.run(user.get_lunch())


def test_get_lunch_fails_when_token_cannot_be_fetched() -> None:
    """Given a failing token endpoint, when `get_lunch()` is called, then
    `TokenError` is raised before the menu is requested."""
    transport = RoutingTransport({("POST", TOKEN_PATH): httpx.Response(500)})
    user = _user(transport)

    with pytest.raises(TokenError):
        asyncio.run(user.get_lunch())
    assert transport.calls_to(LUNCH_PATH) == []


def test_get_schedule_builds_calendar() -> None:
    """Given a lessons response, when `get_schedule()` is called, then the
    calendar is built and the token header is sent."""
    transport = RoutingTransport(
        {
            ("POST", TOKEN_PATH): json_response(_fresh_token()),
            ("GET", LESSONS_PATH): json_response([OCCASION]),
        }
    )
    user = _user(transport)

    schedule = asyncio.run(user.get_schedule(today=date(2023, 9, 1)))

    assert schedule.week(34).monday.date == date(2023, 8, 21)
    assert schedule.week(34).monday.lessons[0].room == "IKSU"
    (request,) = transport.calls_to(LESSONS_PATH)
    assert request.headers["token"] == "fresh_token"


def test_get_schedule_unauthorized() -> None:
    """Given a 401 from the lessons endpoint, when `get_schedule()` is called,
    then `UnauthorizedError` is raised."""
    transport = RoutingTransport(
        {
            ("POST", TOKEN_PATH): json_response(_fresh_token()),
            ("GET", LESSONS_PATH): httpx.Response(401),
        }
    )
    user = _user(transport)

    with pytest.raises(UnauthorizedError):
        asyncio.run(user.get_schedule(today=date(2023, 9, 1)))


def test_resource_url_uses_user_type_name() -> None:
    """Given a parent account, when `get_lunch()` is called, then the url
    uses `parent` as the user type segment."""
    parent = {**USER, "type": 2}
    transport = RoutingTransport(
        {
            ("POST", TOKEN_PATH): json_response(_fresh_token()),
            ("GET", f"/{SCHOOL}/api/lunchmenus/parent/1"): json_response(LUNCH_MENUS),
        }
    )
    user = _user(transport, parent)

    menu = asyncio.run(user.get_lunch())

    assert menu.week == 8
