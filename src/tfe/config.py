# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Client configuration.

Defaults come from the environment (``TFE_ADDRESS``, ``TFE_HOSTNAME``,
``TFE_TOKEN``, or a ``.env`` file); values passed explicitly win over
them, except blank strings which fall back to the defaults.
"""

from collections.abc import Callable
from typing import Any
from urllib.parse import urljoin, urlsplit

import aiohttp
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from .messages import Response

DEFAULT_ADDRESS = "https://app.terraform.io"
DEFAULT_BASE_PATH = "/api/v2/"
USER_AGENT = "tfe-python"

__all__ = ("ClientConfig", "Settings", "settings")


class Settings(BaseSettings):
    """Connection defaults read from the environment or a dotenv file."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".secrets.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    TFE_ADDRESS: str | None = None
    TFE_HOSTNAME: str | None = None

    # secrets
    TFE_TOKEN: SecretStr | None = None


settings = Settings()


def _default_address() -> str:
    if settings.TFE_ADDRESS:
        return settings.TFE_ADDRESS
    if settings.TFE_HOSTNAME:
        return f"https://{settings.TFE_HOSTNAME}"
    return DEFAULT_ADDRESS


def _default_token() -> SecretStr:
    return settings.TFE_TOKEN or SecretStr("")


class ClientConfig(BaseModel):
    """
    Validated options for a Client.

    Blank values fall back to the environment settings and then to the
    public defaults. A token is required.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    address: str = Field(default_factory=_default_address, validate_default=True)
    base_path: str = DEFAULT_BASE_PATH
    token: SecretStr = Field(default_factory=_default_token, validate_default=True)
    headers: dict[str, str] = Field(default_factory=dict, validate_default=True)
    http_session: aiohttp.ClientSession | None = None
    retry_log_hook: Callable[[int, Response | None], Any] | None = None
    retry_server_errors: bool = False
    retry_wait_min: float = 0.1
    retry_wait_max: float = 0.4
    max_retries: int = 30
    timeout: float = 600

    @model_validator(mode="before")
    @classmethod
    def _drop_blank_values(cls, data: Any):
        # Only non-blank values are layered over the defaults
        if isinstance(data, dict):
            return {
                k: v
                for k, v in data.items()
                if not (k in ("address", "base_path", "token") and v in ("", None))
            }
        return data

    @field_validator("address")
    @classmethod
    def _validate_address(cls, v: str) -> str:
        parts = urlsplit(v)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"invalid address: {v!r}")
        return v

    @field_validator("base_path")
    @classmethod
    def _normalize_base_path(cls, v: str) -> str:
        return v if v.endswith("/") else v + "/"

    @field_validator("token")
    @classmethod
    def _require_token(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("missing API token")
        return v

    @field_validator("headers")
    @classmethod
    def _default_headers(cls, v: dict[str, str]) -> dict[str, str]:
        merged = {"User-Agent": USER_AGENT}
        for key, value in v.items():
            for existing in [k for k in merged if k.lower() == key.lower()]:
                merged.pop(existing)
            merged[key] = value
        return merged

    @property
    def base_url(self) -> str:
        """The address with the normalized base path, always ending in ``/``."""
        return urljoin(self.address, self.base_path)
