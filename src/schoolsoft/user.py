"""A logged in SchoolSoft user and the calls that need its token."""

from __future__ import annotations

import asyncio
from datetime import date

import httpx
from loguru import logger

from .errors import NotLoggedInError, ParseError, RequestError, TokenError
from .http import api_url, rest_url, send
from .models import LunchMenu, Org, UserType
from .parsers import orgs_from_raw, parse_lunch_menu, parse_token, parse_user
from .schedule import Schedule, parse_schedule
from .token import Token


class User:
    """A SchoolSoft account, created from the app login response.

    ``token`` is not set by logging in; it is fetched separately with the app key
    and kept fresh by :meth:`smart_token`.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        school_url: str,
        *,
        name: str,
        app_key: str,
        user_type: UserType,
        id: int,
        orgs: list[Org],
        picture_url: str = "",
        is_of_age: bool = False,
        device_id: str = "",
    ) -> None:
        self._client = client
        self._device_id = device_id
        self._token_lock = asyncio.Lock()
        self.school_url = school_url.rstrip("/")
        self.name = name
        self.picture_url = picture_url
        self.is_of_age = is_of_age
        self.app_key = app_key
        self.user_type = user_type
        self.id = id
        self.orgs = orgs
        self.token: Token | None = None

    def __repr__(self) -> str:
        return f"User(id={self.id}, name={self.name!r}, user_type={self.user_type!s})"

    @classmethod
    def from_json(
        cls,
        payload: str | bytes,
        school_url: str,
        client: httpx.AsyncClient,
        *,
        device_id: str = "",
    ) -> User:
        """Build a user from the JSON body returned by ``/rest/app/login``."""
        raw = parse_user(payload)
        return cls(
            client,
            school_url,
            name=raw.name,
            picture_url=raw.picture_url,
            is_of_age=raw.is_of_age,
            app_key=raw.app_key,
            user_type=UserType(raw.user_type),
            id=raw.user_id,
            orgs=orgs_from_raw(raw),
            device_id=device_id,
        )

    @property
    def org(self) -> Org:
        """The organisation used for API calls (the first one listed)."""
        if not self.orgs:
            raise NotLoggedInError(f"User {self.id} does not belong to any organisation")
        return self.orgs[0]

    async def get_token(self) -> str:
        """Request a new token with the app key and store it."""
        try:
            body = await send(
                self._client,
                "POST",
                rest_url(self.school_url, "token"),
                headers={"appKey": self.app_key, "deviceid": self._device_id},
            )
            token = parse_token(body)
        except (RequestError, ParseError) as exc:
            raise TokenError(f"Error when retrieving new token: {exc}") from exc

        self.token = token
        logger.info(f"Retrieved token for user {self.id}, expires {token.expires.isoformat()}")
        return token.token

    async def smart_token(self) -> str:
        """Return the stored token while it is safe to use, otherwise fetch a new one."""
        token = self.token
        if token is not None and token.is_safe():
            return token.token

        async with self._token_lock:
            token = self.token
            if token is not None and token.is_safe():
                return token.token
            logger.debug("Stored token missing or about to expire; refreshing")
            return await self.get_token()

    async def _get_resource(self, resource: str) -> str:
        url = api_url(self.school_url, resource, str(self.user_type), self.org.id)
        token = await self.smart_token()
        return await send(self._client, "GET", url, headers={"token": token})

    async def get_lunch(self) -> LunchMenu:
        """Return this week's lunch menu."""
        body = await self._get_resource("lunchmenus")
        menu = parse_lunch_menu(body)
        logger.info(f"Retrieved lunch menu for week {menu.week}")
        return menu

    async def get_schedule(self, today: date | None = None) -> Schedule:
        """Return the lesson schedule for the school year around ``today``."""
        body = await self._get_resource("lessons")
        schedule = parse_schedule(body, today=today)
        logger.info(f"Retrieved schedule for user {self.id}")
        return schedule
