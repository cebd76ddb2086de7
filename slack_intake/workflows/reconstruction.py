"""Last-resort recovery of a request from its rendered admin notification.

The process cache does not survive a restart, but the notification message
does. Records rebuilt here are tagged ``source="reconstructed"`` and carry
only what the message still shows.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, Mapping

import structlog
from pydantic import ValidationError

from slack_intake.store.models import IntakeRequest, kind_from_request_id

from .definitions import EVENT_TYPES
from .messages import PROJECT_LABEL, REQUEST_ID_LABEL, REQUESTED_BY_LABEL

UNTITLED_PROJECT = "Untitled request"

# Payload keys written by earlier releases of the bot.
_LEGACY_KEYS = {
    "requestId": "request_id",
    "projectName": "project_name",
    "requestedBy": "requested_by",
    "requestedAt": "requested_at",
    "targetScope": "target_scope",
    "additionalInfo": "additional_info",
    "fullReport": "full_report",
    "teamMembers": "team_members",
    "pentestType": "request_type",
    "pentestTypeText": "request_type_text",
    "threatModelingType": "request_type",
    "threatModelingTypeText": "request_type_text",
    "priority": "urgency",
    "priorityText": "urgency_text",
    "trelloCardUrl": "tracker_url",
    "jiraTicketUrl": "tracker_url",
}

_REQUEST_ID_PATTERN = re.compile(rf"\*{REQUEST_ID_LABEL}:\*\s*([A-Z]{{2}}-\d+)")
_REQUESTED_BY_PATTERN = re.compile(rf"\*{REQUESTED_BY_LABEL}:\*\s*<@([A-Z0-9]+)(?:\|[^>]*)?>")
_PROJECT_PATTERN = re.compile(rf"\*{PROJECT_LABEL}:\*\s*([^\n*]+)")


def _normalise_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    normalised: Dict[str, Any] = {}
    for key, value in payload.items():
        normalised[_LEGACY_KEYS.get(key, key)] = value
    # status values from the payload describe submission time, not now
    normalised.pop("status", None)
    normalised.pop("source", None)
    return normalised


def from_metadata(message: Mapping[str, Any]) -> Dict[str, Any] | None:
    metadata = message.get("metadata")
    if not isinstance(metadata, Mapping):
        return None
    payload = metadata.get("event_payload")
    if not isinstance(payload, Mapping):
        return None

    fields = _normalise_payload(payload)
    if not fields.get("request_id"):
        return None
    kind = EVENT_TYPES.get(str(metadata.get("event_type") or ""))
    if kind and not fields.get("kind"):
        fields["kind"] = kind
    return fields


def _message_texts(message: Mapping[str, Any]) -> Iterable[str]:
    if isinstance(message.get("text"), str):
        yield message["text"]
    for block in message.get("blocks") or []:
        if not isinstance(block, Mapping):
            continue
        text = block.get("text")
        if isinstance(text, Mapping) and isinstance(text.get("text"), str):
            yield text["text"]
        for field in block.get("fields") or []:
            if isinstance(field, Mapping) and isinstance(field.get("text"), str):
                yield field["text"]


def from_text(message: Mapping[str, Any]) -> Dict[str, Any] | None:
    """Pattern-match the labelled fields out of the message's display text."""

    text = "\n".join(_message_texts(message))
    request_match = _REQUEST_ID_PATTERN.search(text)
    requester_match = _REQUESTED_BY_PATTERN.search(text)
    if not request_match or not requester_match:
        return None

    project_match = _PROJECT_PATTERN.search(text)
    return {
        "request_id": request_match.group(1),
        "requested_by": requester_match.group(1),
        "project_name": project_match.group(1).strip() if project_match else UNTITLED_PROJECT,
    }


def reconstruct_request(
    message: Mapping[str, Any] | None,
    *,
    channel_id: str | None = None,
    message_ts: str | None = None,
) -> IntakeRequest | None:
    """Rebuild a pending request from *message*, or return None."""

    if not message:
        return None

    log = structlog.get_logger()
    fields = from_metadata(message)
    method = "metadata"
    if fields is None:
        fields = from_text(message)
        method = "text"
    if fields is None:
        log.warning("request_reconstruction_failed", channel_id=channel_id, message_ts=message_ts)
        return None

    if not kind_from_request_id(str(fields["request_id"])) and not fields.get("kind"):
        log.warning("request_reconstruction_failed", reason="unknown_prefix", request_id=fields["request_id"])
        return None

    fields.setdefault("project_name", UNTITLED_PROJECT)
    if not fields["project_name"]:
        fields["project_name"] = UNTITLED_PROJECT
    fields.update(
        status="pending",
        source="reconstructed",
        admin_message_ts=message_ts or message.get("ts"),
        admin_channel_id=channel_id,
    )
    try:
        request = IntakeRequest.model_validate(fields)
    except ValidationError as exc:
        log.warning("request_reconstruction_failed", reason="invalid_fields", errors=exc.error_count())
        return None

    log.info("request_reconstructed", request_id=request.request_id, method=method)
    return request
