"""Builders for the Slack modals used by requesters and admins."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Mapping

from slack_intake.store.models import IntakeRequest, StatusHistoryEntry
from slack_intake.store.status import STATUS_UPDATE_LABELS, status_label

from .definitions import KindDefinition, Option, PENTEST, full_report_text, get_definition

MAX_TITLE_LENGTH = 24
MAX_LABEL_LENGTH = 75

REQUEST_MODAL_CALLBACK_ID = "intake_request_submit"
APPROVE_MODAL_CALLBACK_ID = "approve_request_modal"
REJECT_MODAL_CALLBACK_ID = "reject_reason_modal"
REQUEST_INFO_MODAL_CALLBACK_ID = "request_info_modal"
REPLY_MODAL_CALLBACK_ID = "reply_modal"
STATUS_UPDATE_MODAL_CALLBACK_ID = "status_update_modal"
DETAILS_MODAL_CALLBACK_ID = "request_details_modal"

# (block_id, action_id) pairs read back by the submission parsers
PROJECT_NAME_INPUT = ("project_name", "project_name_input")
TARGET_SCOPE_INPUT = ("target_scope", "target_scope_input")
REQUEST_TYPE_INPUT = ("request_type", "request_type_select")
URGENCY_INPUT = ("urgency", "urgency_select")
FULL_REPORT_INPUT = ("full_report", "full_report_choice")
TEAM_MEMBERS_INPUT = ("team_members", "team_members_select")
ADDITIONAL_INFO_INPUT = ("additional_info", "additional_info_input")
TRACKER_URL_INPUT = ("tracker_url", "tracker_url_input")
ASSIGNEES_INPUT = ("assigned_to", "assigned_to_select")
REJECTION_REASON_INPUT = ("rejection_reason", "reason_input")
INFO_REQUEST_INPUT = ("info_request", "message_input")
REPLY_MESSAGE_INPUT = ("reply_message", "message_input")
STATUS_SELECT_INPUT = ("status_select", "status_input")
STATUS_NOTE_INPUT = ("status_note", "note_input")


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "..."


def _plain(text: str) -> Dict[str, Any]:
    return {"type": "plain_text", "text": text, "emoji": True}


def _option(option: Option) -> Dict[str, Any]:
    return {"text": _plain(option.label), "value": option.value}


def _input(ids: tuple[str, str], label: str, element: Dict[str, Any], *, optional: bool = False) -> Dict[str, Any]:
    block_id, action_id = ids
    return {
        "type": "input",
        "block_id": block_id,
        "label": _plain(_truncate(label, MAX_LABEL_LENGTH)),
        "element": {**element, "action_id": action_id},
        "optional": optional,
    }


def _text_input(ids, label: str, *, placeholder: str, multiline: bool = False, optional: bool = False, initial: str | None = None):
    element: Dict[str, Any] = {"type": "plain_text_input", "placeholder": _plain(placeholder)}
    if multiline:
        element["multiline"] = True
    if initial:
        element["initial_value"] = initial
    return _input(ids, label, element, optional=optional)


def _select_input(ids, label: str, options: Iterable[Option], *, placeholder: str, optional: bool = False):
    element = {
        "type": "static_select",
        "placeholder": _plain(placeholder),
        "options": [_option(option) for option in options],
    }
    return _input(ids, label, element, optional=optional)


def _users_input(ids, label: str, *, optional: bool = True, initial: Iterable[str] = ()):
    element: Dict[str, Any] = {"type": "multi_users_select", "placeholder": _plain("Select people")}
    initial_users = [user for user in initial if user]
    if initial_users:
        element["initial_users"] = initial_users
    return _input(ids, label, element, optional=optional)


def encode_metadata(**values: Any) -> str:
    return json.dumps({key: value for key, value in values.items() if value is not None}, separators=(",", ":"))


def decode_metadata(view: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Return the JSON object stored in ``private_metadata``, or an empty dict."""

    raw = (view or {}).get("private_metadata") or "{}"
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _modal(callback_id: str, title: str, blocks: List[Dict[str, Any]], *, metadata: str, submit: str | None = "Submit") -> Dict[str, Any]:
    view: Dict[str, Any] = {
        "type": "modal",
        "callback_id": callback_id,
        "private_metadata": metadata,
        "title": _plain(_truncate(title, MAX_TITLE_LENGTH)),
        "close": _plain("Cancel" if submit else "Close"),
        "blocks": blocks,
    }
    if submit:
        view["submit"] = _plain(submit)
    return view


def _intro(definition: KindDefinition) -> Dict[str, Any]:
    text = (
        f"*Order a {definition.noun} or start a dialogue*\n\n"
        "You do not need every answer yet. Tell us what you know and we will set up a private "
        "channel to sort out scope and timing together.\n\n"
        "*Do not* include passwords, personal data or other sensitive information in this form."
    )
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def build_request_modal(kind: str) -> Dict[str, Any]:
    """Build the submission modal for *kind*."""

    definition = get_definition(kind)
    scope_label = "What should be tested?" if kind == PENTEST else "System description"
    blocks: List[Dict[str, Any]] = [
        _intro(definition),
        _text_input(PROJECT_NAME_INPUT, "Project name", placeholder="Project or application name"),
        _text_input(
            TARGET_SCOPE_INPUT,
            scope_label,
            placeholder="URLs, API endpoints, apps, environments...",
            multiline=True,
            optional=True,
        ),
        _select_input(REQUEST_TYPE_INPUT, definition.type_label, definition.type_options, placeholder="Choose a type"),
        _select_input(URGENCY_INPUT, definition.urgency_label, definition.urgency_options, placeholder="Choose one"),
    ]
    if kind == PENTEST:
        blocks.append(
            _input(
                FULL_REPORT_INPUT,
                "Do you need a full written report?",
                {
                    "type": "radio_buttons",
                    "options": [
                        {"text": _plain("Yes"), "value": "yes"},
                        {"text": _plain("No, findings in the tracker are enough"), "value": "no"},
                    ],
                },
                optional=True,
            )
        )
    blocks.append(_users_input(TEAM_MEMBERS_INPUT, "Team members to invite"))
    blocks.append(
        _text_input(
            ADDITIONAL_INFO_INPUT,
            "Anything else we should know?",
            placeholder="Test accounts needed, environments, deadlines...",
            multiline=True,
            optional=True,
        )
    )
    return _modal(REQUEST_MODAL_CALLBACK_ID, definition.title, blocks, metadata=encode_metadata(kind=kind))


def build_approve_modal(request_id: str, *, channel_id: str | None, message_ts: str | None, tracker_url: str | None = None):
    blocks = [
        {"type": "section", "text": {"type": "mrkdwn", "text": f"Approve request *{request_id}*."}},
        _text_input(
            TRACKER_URL_INPUT,
            "Tracker link",
            placeholder="https://...",
            optional=True,
            initial=tracker_url,
        ),
        _users_input(ASSIGNEES_INPUT, "Assign to"),
    ]
    metadata = encode_metadata(request_id=request_id, channel_id=channel_id, message_ts=message_ts)
    return _modal(APPROVE_MODAL_CALLBACK_ID, "Approve request", blocks, metadata=metadata, submit="Approve")


def build_reject_modal(request_id: str, *, channel_id: str | None, message_ts: str | None):
    blocks = [
        _text_input(
            REJECTION_REASON_INPUT,
            "Reason for rejection",
            placeholder="This is sent to the requester",
            multiline=True,
        )
    ]
    metadata = encode_metadata(request_id=request_id, channel_id=channel_id, message_ts=message_ts)
    return _modal(REJECT_MODAL_CALLBACK_ID, "Reject request", blocks, metadata=metadata, submit="Reject")


def build_request_info_modal(request_id: str, *, channel_id: str | None, message_ts: str | None):
    blocks = [
        _text_input(
            INFO_REQUEST_INPUT,
            "What do you need to know?",
            placeholder="The requester can answer directly",
            multiline=True,
        )
    ]
    metadata = encode_metadata(request_id=request_id, channel_id=channel_id, message_ts=message_ts)
    return _modal(REQUEST_INFO_MODAL_CALLBACK_ID, "Request more info", blocks, metadata=metadata, submit="Send")


def build_reply_modal(request_id: str):
    blocks = [
        _text_input(REPLY_MESSAGE_INPUT, "Your answer", placeholder="Write your reply", multiline=True),
    ]
    return _modal(REPLY_MODAL_CALLBACK_ID, "Reply", blocks, metadata=encode_metadata(request_id=request_id), submit="Send")


def build_status_update_modal(request_id: str, *, channel_id: str | None):
    options = [Option(value=code, label=label) for code, label in STATUS_UPDATE_LABELS.items()]
    blocks = [
        _select_input(STATUS_SELECT_INPUT, "New status", options, placeholder="Choose a status"),
        _text_input(STATUS_NOTE_INPUT, "Note", placeholder="Optional comment", multiline=True, optional=True),
    ]
    metadata = encode_metadata(request_id=request_id, channel_id=channel_id)
    return _modal(STATUS_UPDATE_MODAL_CALLBACK_ID, "Update status", blocks, metadata=metadata, submit="Update")


def _users(user_ids: Iterable[str]) -> str:
    return ", ".join(f"<@{user_id}>" for user_id in user_ids) or "None selected"


def build_details_modal(request: IntakeRequest, history: Iterable[StatusHistoryEntry] = ()) -> Dict[str, Any]:
    """Render the current state of *request* and its status history."""

    definition = get_definition(request.kind)
    fields = [
        f"*Request ID:*\n{request.request_id}",
        f"*Status:*\n{status_label(request.status)}",
        f"*Project:*\n{request.project_name or 'Untitled'}",
        f"*Requested by:*\n<@{request.requested_by}>",
        f"*{definition.type_label}:*\n{request.request_type_text or definition.type_text(request.request_type)}",
        f"*{definition.urgency_label}:*\n{request.urgency_text or definition.urgency_text(request.urgency)}",
    ]
    blocks: List[Dict[str, Any]] = [
        {"type": "section", "fields": [{"type": "mrkdwn", "text": text} for text in fields]},
        {"type": "section", "text": {"type": "mrkdwn", "text": f"*Scope:*\n{request.target_scope or 'Not provided'}"}},
        {"type": "section", "text": {"type": "mrkdwn", "text": f"*Team members:*\n{_users(request.team_members)}"}},
        {"type": "section", "text": {"type": "mrkdwn", "text": f"*Assigned to:*\n{_users(request.assigned_to)}"}},
    ]
    if request.kind == PENTEST:
        blocks.append(
            {"type": "section", "text": {"type": "mrkdwn", "text": f"*Full report:*\n{full_report_text(request.full_report)}"}}
        )
    if request.tracker_url:
        blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": f"*Tracker:*\n{request.tracker_url}"}})

    entries = list(history)
    blocks.append({"type": "divider"})
    if entries:
        lines = []
        for entry in entries:
            line = f"- {entry.timestamp[:16].replace('T', ' ')} *{entry.status_text}* by <@{entry.updated_by}>"
            if entry.note:
                line += f": {entry.note}"
            lines.append(line)
        history_text = "*Status history*\n" + "\n".join(lines)
    else:
        history_text = "*Status history*\nNo status updates yet."
    blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": history_text}})
    if request.is_reconstructed:
        blocks.append(
            {
                "type": "context",
                "elements": [{"type": "mrkdwn", "text": "Recovered from the admin notification; some fields may be missing."}],
            }
        )

    return _modal(
        DETAILS_MODAL_CALLBACK_ID,
        f"{request.request_id}",
        blocks,
        metadata=encode_metadata(request_id=request.request_id),
        submit=None,
    )
