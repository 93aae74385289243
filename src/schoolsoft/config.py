"""Configuration primitives for the SchoolSoft client."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, cast

from omegaconf import OmegaConf
from pydantic import BaseModel, Field, HttpUrl

from .models import UserType

DEFAULT_BASE_URL = "https://sms.schoolsoft.se/"
DEFAULT_CONFIG_PATH = "conf/schoolsoft.yml"
CONFIG_PATH_ENV = "SCHOOLSOFT_CONFIG_PATH"


def _search_roots() -> tuple[Path, ...]:
    """Relative config paths are tried from the working directory, then the checkout."""
    return (Path.cwd(), Path(__file__).resolve().parents[2])


def _find_config(raw: Path | str, *, source: str) -> Path:
    wanted = Path(raw).expanduser()
    if wanted.is_absolute():
        tried = [wanted]
    else:
        tried = [root / wanted for root in _search_roots()]

    found = list(dict.fromkeys(path.resolve() for path in tried if path.is_file()))
    if not found:
        checked = "\n".join(str(path) for path in tried)
        raise FileNotFoundError(
            f"Config file not found for {source}: {wanted}\nChecked:\n{checked}"
        )
    if len(found) > 1:
        joined = ", ".join(str(path) for path in found)
        raise RuntimeError(
            f"Multiple config files found for {source}: {wanted}. Candidates: {joined}"
        )
    return found[0]


def _locate(path: Path | str | None) -> Path:
    """Pick the config file: ``$SCHOOLSOFT_CONFIG_PATH``, then ``path``, then the default."""
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return _find_config(env_path, source=CONFIG_PATH_ENV)
    if path is not None:
        return _find_config(path, source="path")
    return _find_config(DEFAULT_CONFIG_PATH, source="default")


def load_config(path: Path | str | None = None) -> dict[str, Any]:
    """Load the YAML config file and return it with upper-cased keys."""
    location = _locate(path)
    raw_config = OmegaConf.load(location)
    config = OmegaConf.to_container(raw_config, resolve=True)
    if not isinstance(config, dict):
        raise ValueError("Config file must contain a mapping of SCHOOLSOFT_* keys.")
    return {str(key).upper(): value for key, value in config.items()}


class ClientSettings(BaseModel):
    """Connection settings for :class:`schoolsoft.client.Client`."""

    base_url: HttpUrl = Field(
        default=cast(HttpUrl, DEFAULT_BASE_URL),
        description="Url put in front of every request. Can be pointed at a mock server.",
    )
    device_id: str = Field(
        default="",
        description="Sent as `deviceid` when requesting a token. An empty id works.",
    )
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")

    @property
    def root(self) -> str:
        return str(self.base_url).rstrip("/")

    @classmethod
    def from_file(cls, path: Path | str | None = None) -> ClientSettings:
        normalized = load_config(path)
        kwargs: dict[str, Any] = {}
        if normalized.get("SCHOOLSOFT_BASE_URL"):
            kwargs["base_url"] = str(normalized["SCHOOLSOFT_BASE_URL"])
        if normalized.get("SCHOOLSOFT_DEVICE_ID") is not None:
            kwargs["device_id"] = str(normalized["SCHOOLSOFT_DEVICE_ID"])
        if normalized.get("SCHOOLSOFT_TIMEOUT"):
            kwargs["timeout"] = float(normalized["SCHOOLSOFT_TIMEOUT"])
        return cls(**kwargs)


class Credentials(BaseModel):
    """Login details for a single SchoolSoft account."""

    username: str = Field(min_length=1)
    password: str = Field(min_length=1, repr=False)
    school: str = Field(min_length=1, description="Url name of the school, e.g. `carlwahren`")
    user_type: UserType = UserType.STUDENT

    @classmethod
    def from_file(cls, path: Path | str | None = None) -> Credentials:
        """Create credentials from a YAML file located under ``conf/`` by default."""
        normalized = load_config(path)
        required_keys = ["SCHOOLSOFT_USERNAME", "SCHOOLSOFT_PASSWORD", "SCHOOLSOFT_SCHOOL"]
        missing = [key for key in required_keys if not normalized.get(key)]
        if missing:
            raise ValueError(f"Missing SchoolSoft config keys: {', '.join(missing)}")

        user_type = normalized.get("SCHOOLSOFT_USER_TYPE")
        return cls(
            username=str(normalized["SCHOOLSOFT_USERNAME"]),
            password=str(normalized["SCHOOLSOFT_PASSWORD"]),
            school=str(normalized["SCHOOLSOFT_SCHOOL"]),
            user_type=UserType.parse(user_type) if user_type else UserType.STUDENT,
        )
