"""Guards for identifiers and request payloads crossing component boundaries."""

from __future__ import annotations

import re
from typing import Any, Callable, Iterable, Mapping, TypeVar

import structlog

from slack_intake.errors import ValidationError

T = TypeVar("T")

USER_ID_PATTERN = re.compile(r"^[A-Z0-9]{9,11}$", re.IGNORECASE)
CHANNEL_ID_PATTERN = re.compile(r"^C[A-Z0-9]{8,10}$", re.IGNORECASE)
TIMESTAMP_PATTERN = re.compile(r"^\d+\.\d+$")

REQUEST_ID_MIN_LENGTH = 3
REQUEST_ID_MAX_LENGTH = 50
CHANNEL_NAME_MAX_LENGTH = 40
DEFAULT_CHANNEL_NAME = "project"

_REQUIRED_REQUEST_FIELDS = ("project_name", "requested_by")


def validate_user_id(user_id: Any, field: str = "user_id") -> str:
    if not user_id or not isinstance(user_id, str):
        raise ValidationError(f"{field} must be a non-empty string", field=field, value=user_id)
    if not USER_ID_PATTERN.match(user_id):
        raise ValidationError(f"{field} must be a valid Slack user ID", field=field, value=user_id)
    return user_id


def validate_channel_id(channel_id: Any, field: str = "channel_id") -> str:
    if not channel_id or not isinstance(channel_id, str):
        raise ValidationError(f"{field} must be a non-empty string", field=field, value=channel_id)
    if not CHANNEL_ID_PATTERN.match(channel_id):
        raise ValidationError(f"{field} must be a valid Slack channel ID", field=field, value=channel_id)
    return channel_id


def validate_timestamp(ts: Any, field: str = "ts") -> str:
    if not isinstance(ts, str) or not TIMESTAMP_PATTERN.match(ts):
        raise ValidationError(f"{field} must be a Slack message timestamp", field=field, value=ts)
    return ts


def validate_request_id(request_id: Any, field: str = "request_id") -> str:
    if not isinstance(request_id, str):
        raise ValidationError(f"{field} must be a string", field=field, value=request_id)
    if not REQUEST_ID_MIN_LENGTH <= len(request_id) <= REQUEST_ID_MAX_LENGTH:
        raise ValidationError(
            f"{field} must be between {REQUEST_ID_MIN_LENGTH} and {REQUEST_ID_MAX_LENGTH} characters",
            field=field,
            value=request_id,
        )
    return request_id


def validate_user_id_list(values: Any, field: str = "user_ids", *, allow_empty: bool = False) -> list[str]:
    if not isinstance(values, (list, tuple)):
        raise ValidationError(f"{field} must be a list", field=field, value=values)
    if not allow_empty and not values:
        raise ValidationError(f"{field} cannot be empty", field=field, value=values)
    for index, user_id in enumerate(values):
        validate_user_id(user_id, f"{field}[{index}]")
    return list(values)


def validate_request_data(data: Any) -> Mapping[str, Any]:
    """Check the minimum shape of a request payload before it is persisted."""

    if not isinstance(data, Mapping):
        raise ValidationError("Request data must be a mapping", field="request_data", value=data)

    for field in _REQUIRED_REQUEST_FIELDS:
        value = data.get(field)
        if not value or not isinstance(value, str):
            raise ValidationError(f"{field} is required and must be a non-empty string", field=field, value=value)

    validate_user_id(data["requested_by"], "requested_by")

    if data.get("team_members"):
        validate_user_id_list(data["team_members"], "team_members", allow_empty=True)

    return data


def safe_validate(validator: Callable[..., T], value: Any, *args: Any) -> T | None:
    """Run *validator* and return None instead of raising on bad input."""

    try:
        return validator(value, *args)
    except ValidationError as exc:
        structlog.get_logger().warning(
            "validation_failed",
            field=exc.field,
            value=repr(exc.value),
            message=exc.message,
        )
        return None


def sanitize_channel_name(project_name: Any) -> str:
    """Return a Slack-safe channel name fragment for *project_name*."""

    if not project_name or not isinstance(project_name, str):
        return DEFAULT_CHANNEL_NAME

    cleaned = re.sub(r"[^a-z0-9-]", "-", project_name.lower())
    cleaned = re.sub(r"-+", "-", cleaned).strip("-")
    cleaned = cleaned[:CHANNEL_NAME_MAX_LENGTH].strip("-")
    return cleaned or DEFAULT_CHANNEL_NAME


def unique_user_ids(*groups: Iterable[str] | None) -> list[str]:
    """Merge user id groups preserving first-seen order and dropping blanks."""

    merged: list[str] = []
    for group in groups:
        for user_id in group or ():
            if user_id and user_id not in merged:
                merged.append(user_id)
    return merged
