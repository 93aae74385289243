"""App token with expiry bookkeeping."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

SAFETY_MARGIN = timedelta(minutes=1)


def utc_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


@dataclass(slots=True)
class Token:
    """A SchoolSoft app token.

    Tokens are fetched from ``<school>/rest/app/token`` with the app key returned
    at login. The app key never changes, but a token is only valid for about three
    hours and must then be requested again.

    ``now`` returns the current time as a naive datetime; tests inject a fixed clock.
    """

    token: str = field(repr=False)
    expires: datetime
    now: Callable[[], datetime] = field(default=utc_now, repr=False, compare=False)

    def expires_in(self) -> timedelta:
        return self.expires - self.now()

    def is_expired(self) -> bool:
        return self.expires < self.now()

    def is_valid(self) -> bool:
        return not self.is_expired()

    def is_safe(self) -> bool:
        """True while more than a minute is left before expiry."""
        return self.expires_in() > SAFETY_MARGIN
