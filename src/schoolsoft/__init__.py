"""Async client for the API behind SchoolSoft's mobile app."""

from .client import Client
from .config import ClientSettings, Credentials
from .errors import SchoolsoftError
from .models import LunchMenu, SchoolListing, UserType
from .schedule import Schedule
from .token import Token
from .user import User

__all__ = [
    "Client",
    "ClientSettings",
    "Credentials",
    "LunchMenu",
    "Schedule",
    "SchoolListing",
    "SchoolsoftError",
    "Token",
    "User",
    "UserType",
]
