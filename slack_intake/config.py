"""Pydantic-based configuration helpers for the intake bot."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Iterable, List

from pydantic import BaseModel, Field, ValidationError, field_validator


class AppSettings(BaseModel):
    """Settings required to initialise the Slack bot and its integrations."""

    bot_token: str = Field(..., alias="SLACK_BOT_TOKEN")
    signing_secret: str = Field(..., alias="SLACK_SIGNING_SECRET")
    admin_channel_id: str = Field(..., alias="ADMIN_CHANNEL_ID")
    admin_user_ids: List[str] = Field(..., alias="ADMIN_USER_IDS")
    request_list_id: str | None = Field(None, alias="REQUEST_LIST_ID")
    trello_api_key: str | None = Field(None, alias="TRELLO_API_KEY")
    trello_api_token: str | None = Field(None, alias="TRELLO_API_TOKEN")
    trello_list_id: str | None = Field(None, alias="TRELLO_LIST_ID")
    port: int = Field(3000, alias="PORT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @field_validator("admin_user_ids", mode="before")
    @classmethod
    def _split_ids(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, list):
            return [item.strip() for item in value if item.strip()]
        return [item.strip() for item in value.split(",") if item.strip()]

    @field_validator("request_list_id", "trello_api_key", "trello_api_token", "trello_list_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = str(value).strip()
        return trimmed or None

    @field_validator("port")
    @classmethod
    def _ensure_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError("PORT must be between 1 and 65535")
        return value

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @property
    def trello_enabled(self) -> bool:
        return bool(self.trello_api_key and self.trello_api_token and self.trello_list_id)


def _format_missing(fields: Iterable[str]) -> str:
    """Return a human-friendly comma-separated list of missing env vars."""

    unique: List[str] = []
    for field in fields:
        if field not in unique:
            unique.append(field)
    return ", ".join(unique)


@lru_cache()
def get_settings() -> AppSettings:
    """Fetch and cache settings from environment variables."""

    try:
        return AppSettings.model_validate(os.environ)
    except ValidationError as exc:
        missing = [str(error["loc"][0]) for error in exc.errors()]
        message = (
            "Missing or invalid environment variables: "
            f"{_format_missing(missing)}"
        )
        raise RuntimeError(message) from exc
