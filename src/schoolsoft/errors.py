"""Exception hierarchy for SchoolSoft API interactions."""

from __future__ import annotations

from dataclasses import dataclass


class SchoolsoftError(Exception):
    """Base exception for every error raised by this package."""


class RequestError(SchoolsoftError):
    """A request to SchoolSoft could not be completed."""


class TransportError(RequestError):
    """The request never produced a response (connection, timeout, ...)."""


class ReadError(RequestError):
    """The response body could not be read."""


class UnauthorizedError(RequestError):
    """SchoolSoft answered 401."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class InvalidCredentialsError(UnauthorizedError):
    """The web login page was returned again instead of a redirect."""

    def __init__(self, message: str = "Invalid username or password") -> None:
        super().__init__(message)


class InternalServerError(RequestError):
    """SchoolSoft answered 500."""

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)


@dataclass(slots=True, eq=False)
class UnexpectedStatusError(RequestError):
    """SchoolSoft answered with a status code we do not handle."""

    status_code: int
    body: str = ""

    def __str__(self) -> str:
        return f"Response returned an unexpected status code: {self.status_code}"


class ParseError(SchoolsoftError, ValueError):
    """A SchoolSoft payload did not have the expected shape."""


class SchoolListingError(ParseError):
    """A school list entry could not be parsed."""


class BadUrlError(SchoolListingError):
    """A school url has no path segment to use as url name."""


class UserParseError(ParseError):
    """The login response could not be turned into a user."""


class TokenParseError(ParseError):
    """The token response could not be parsed."""


class LunchMenuParseError(ParseError):
    """The lunch menu response could not be parsed."""


class NoLunchMenuError(LunchMenuParseError):
    """The lunch menu response was an empty list."""

    def __init__(self, message: str = "No lunch menu available") -> None:
        super().__init__(message)


class ScheduleParseError(ParseError):
    """The lessons response could not be parsed."""


class TokenError(SchoolsoftError):
    """Retrieving a new token failed. The cause is chained."""


class NotLoggedInError(SchoolsoftError):
    """An authenticated call was made without a logged in user."""
