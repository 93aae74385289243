"""Entry point for talking to SchoolSoft."""

from __future__ import annotations

from pathlib import Path
from types import TracebackType

import httpx
from loguru import logger

from .config import ClientSettings, Credentials
from .errors import InvalidCredentialsError, RequestError, TransportError
from .http import check_status, rest_url, send
from .models import SchoolListing, UserType, WebSession
from .parsers import extract_login_error, parse_school_list
from .user import User

APP_LOGIN_TYPE = 4
SESSION_COOKIE = "JSESSIONID"


class Client:
    """Api client for the api used by SchoolSoft's mobile app.

    ``http_client`` can be passed in to share a connection pool or to mock the
    transport; otherwise the client creates and owns one.
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or ClientSettings()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=self.settings.timeout)
        self.user: User | None = None

    @classmethod
    def from_file(cls, path: Path | str | None = None) -> Client:
        return cls(ClientSettings.from_file(path))

    @property
    def base_url(self) -> str:
        return str(self.settings.base_url)

    @property
    def device_id(self) -> str:
        return self.settings.device_id

    def school_url(self, school: str) -> str:
        return f"{self.settings.root}/{school.strip('/')}"

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def schools(self) -> list[SchoolListing]:
        """Return every school in SchoolSoft's public school list."""
        body = await send(self._client, "GET", rest_url(self.settings.root, "schoollist/prod"))
        schools = parse_school_list(body)
        logger.info(f"Retrieved {len(schools)} schools")
        return schools

    async def login(
        self,
        username: str,
        password: str,
        school: str,
        user_type: UserType = UserType.STUDENT,
    ) -> User:
        """Log in through the app API and remember the user on ``self.user``."""
        school_url = self.school_url(school)
        logger.debug(f"Logging in {user_type!s} to {school}")
        body = await send(
            self._client,
            "POST",
            rest_url(school_url, "login"),
            data={
                "identification": username,
                "verification": password,
                "logintype": str(APP_LOGIN_TYPE),
                "usertype": str(int(user_type)),
            },
        )
        user = User.from_json(body, school_url, self._client, device_id=self.device_id)
        self.user = user
        logger.info(f"Logged in as user {user.id} at {school}")
        return user

    async def login_with(self, credentials: Credentials) -> User:
        return await self.login(
            credentials.username,
            credentials.password,
            credentials.school,
            credentials.user_type,
        )

    async def web_login(
        self,
        username: str,
        password: str,
        school: str,
        user_type: UserType = UserType.STUDENT,
    ) -> WebSession:
        """Log in through the website's form and return the session cookie.

        A successful login answers 302 to the start page with a ``JSESSIONID``
        cookie; a failed one answers 200 with the login page again.
        """
        url = f"{self.school_url(school)}/jsp/Login.jsp"
        try:
            response = await self._client.post(
                url,
                data={
                    "action": "login",
                    "usertype": str(int(user_type)),
                    "ssusername": username,
                    "sspassword": password,
                },
                follow_redirects=False,
            )
        except httpx.TransportError as exc:
            raise TransportError(f"Error when sending request: {exc}") from exc

        logger.debug(f"POST {response.request.url.path} -> {response.status_code}")
        if response.status_code == httpx.codes.OK:
            message = extract_login_error(response.text)
            raise InvalidCredentialsError(message or "Invalid username or password")
        if not response.is_redirect:
            check_status(response)
            raise RequestError(f"Unexpected web login response: {response.status_code}")

        session_id = response.cookies.get(SESSION_COOKIE)
        if not session_id:
            raise RequestError("Web login redirect did not set a session cookie")

        location = response.headers.get("location", "")
        logger.info(f"Web session established at {school}")
        return WebSession(
            school=school,
            session_id=session_id,
            start_page=str(response.url.join(location)),
        )
