"""Utilities for handling Slack interaction payloads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from slack_intake.workflows.modals import decode_metadata


@dataclass(frozen=True)
class ActionContext:
    """Who acted on which request, and where the triggering message lives."""

    request_id: str
    user_id: str
    channel_id: str | None = None
    message_ts: str | None = None
    trigger_id: str | None = None


def _user_id(body: Mapping[str, Any]) -> str:
    user_id = (body.get("user") or {}).get("id")
    if not isinstance(user_id, str) or not user_id:
        raise ValueError("We could not identify the acting user.")
    return user_id


def parse_action_context(body: Mapping[str, Any]) -> ActionContext:
    """Parse a ``block_actions`` payload whose button value is a request id."""

    actions = body.get("actions") or []
    if not actions:
        raise ValueError("Unable to process this action payload.")
    request_id = (actions[0].get("value") or "").strip()
    if not request_id:
        raise ValueError("Invalid action payload.")

    container = body.get("container") or {}
    channel_id = (body.get("channel") or {}).get("id") or container.get("channel_id")
    message_ts = (body.get("message") or {}).get("ts") or container.get("message_ts")
    return ActionContext(
        request_id=request_id,
        user_id=_user_id(body),
        channel_id=channel_id,
        message_ts=message_ts,
        trigger_id=body.get("trigger_id"),
    )


def parse_view_context(body: Mapping[str, Any]) -> ActionContext:
    """Parse a ``view_submission`` payload whose metadata names the request."""

    metadata = decode_metadata(body.get("view"))
    request_id = metadata.get("request_id")
    if not isinstance(request_id, str) or not request_id:
        raise ValueError("Request metadata missing.")
    return ActionContext(
        request_id=request_id,
        user_id=_user_id(body),
        channel_id=metadata.get("channel_id"),
        message_ts=metadata.get("message_ts"),
        trigger_id=body.get("trigger_id"),
    )


def is_user_authorized(user_id: str, allowed_ids: Iterable[str]) -> bool:
    """Return True when the user is in the configured allow list."""

    normalized = {item.strip() for item in allowed_ids if item}
    return user_id in normalized
