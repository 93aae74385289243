"""HTTP helpers shared by the client and user objects."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

import httpx
from loguru import logger

from .errors import (
    InternalServerError,
    ReadError,
    TransportError,
    UnauthorizedError,
    UnexpectedStatusError,
)

DATETIME_FORMATS = ("%Y-%m-%d %H:%M:%S.%f", "%Y-%m-%d %H:%M:%S")
DATE_FORMAT = "%Y-%m-%d"


def check_status(response: httpx.Response) -> None:
    """Raise the matching :class:`RequestError` for a non-2xx response."""
    if response.is_success:
        return

    code = response.status_code
    if code == httpx.codes.UNAUTHORIZED:
        raise UnauthorizedError()
    if code == httpx.codes.INTERNAL_SERVER_ERROR:
        raise InternalServerError()
    raise UnexpectedStatusError(code, response.text[:200])


async def send(client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> str:
    """Send a request, check its status and return the body text.

    The response is streamed so that a connection dropped while the body is
    arriving surfaces as :class:`ReadError` rather than :class:`TransportError`.
    """
    request = client.build_request(method, url, **kwargs)
    try:
        response = await client.send(request, stream=True)
    except httpx.TransportError as exc:
        raise TransportError(f"Error when sending request: {exc}") from exc

    try:
        logger.debug(f"{method} {request.url.path} -> {response.status_code}")
        try:
            await response.aread()
            text = response.text
        except (httpx.TransportError, httpx.StreamError, UnicodeDecodeError) as exc:
            raise ReadError(f"Error when reading the response: {exc}") from exc
        check_status(response)
        return text
    finally:
        await response.aclose()


def rest_url(root: str, path: str) -> str:
    """Url of an app endpoint, e.g. ``rest_url(school, "token")``."""
    return f"{root.rstrip('/')}/rest/app/{path}"


def api_url(school_url: str, resource: str, user_type: str, org_id: int) -> str:
    """Url of an authenticated resource, e.g. ``<school>/api/lessons/student/1``."""
    return f"{school_url.rstrip('/')}/api/{resource}/{user_type}/{org_id}"


def parse_date(raw: str) -> date:
    return datetime.strptime(raw, DATE_FORMAT).date()


def parse_datetime(raw: str) -> datetime:
    """Parse ``YYYY-MM-DD HH:MM:SS`` with an optional fraction of any precision.

    SchoolSoft writes a trailing fraction with one to three digits
    (``12:00:00.0``, ``21:37:15.15``); ``strptime`` handles up to six.
    """
    candidate = raw.strip()
    head, dot, fraction = candidate.partition(".")
    if dot and len(fraction) > 6:
        candidate = f"{head}.{fraction[:6]}"

    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(candidate, fmt)
        except ValueError:
            continue
    raise ValueError(f"Invalid SchoolSoft datetime: {raw!r}")
