"""Block Kit message builders for intake requests."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Sequence

from slack_intake.store.models import IntakeRequest

from .definitions import PENTEST, full_report_text, get_definition

APPROVE_ACTION_ID = "approve_request"
REJECT_ACTION_ID = "reject_request"
REQUEST_INFO_ACTION_ID = "request_info"
REPLY_ACTION_ID = "reply_to_request"
UPDATE_STATUS_ACTION_ID = "update_status"
VIEW_DETAILS_ACTION_ID = "view_details"
CHECKLIST_ACTION_ID = "requester_checklist"
CREATE_LIST_ACTION_ID = "create_request_list"

ADMIN_ACTIONS_BLOCK_ID = "admin_actions"
CHECKLIST_BLOCK_PREFIX = "requester_checklist:"
CHECKLIST_PROGRESS_BLOCK_ID = "checklist_progress"

# Labels rendered into the admin notification; the reconstruction parser reads them back.
REQUEST_ID_LABEL = "Request ID"
REQUESTED_BY_LABEL = "Requested by"
PROJECT_LABEL = "Project"

CHECKLIST_ITEMS = (
    ("scope", "Define scope"),
    ("access", "Access / test data"),
    ("timing", "Test timing"),
    ("contacts", "Contact persons"),
    ("considerations", "Special considerations"),
)
_CHECKLIST_LABELS = dict(CHECKLIST_ITEMS)

_MISSING_VALUE = "_Not provided_"


def _mrkdwn(text: str) -> Dict[str, Any]:
    return {"type": "mrkdwn", "text": text}


def _section(text: str) -> Dict[str, Any]:
    return {"type": "section", "text": _mrkdwn(text)}


def _fields(*texts: str) -> Dict[str, Any]:
    return {"type": "section", "fields": [_mrkdwn(text) for text in texts]}


def _header(text: str) -> Dict[str, Any]:
    return {"type": "header", "text": {"type": "plain_text", "text": text, "emoji": True}}


def _labelled(label: str, value: Any) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        value = _MISSING_VALUE
    return f"*{label}:*\n{value}"


def _users(user_ids: Iterable[str], empty: str = "None selected") -> str:
    return ", ".join(f"<@{user_id}>" for user_id in user_ids if user_id) or empty


def _button(text: str, action_id: str, value: str, *, style: str | None = None) -> Dict[str, Any]:
    button: Dict[str, Any] = {
        "type": "button",
        "text": {"type": "plain_text", "text": text, "emoji": True},
        "action_id": action_id,
        "value": value,
    }
    if style:
        button["style"] = style
    return button


def build_request_snapshot(request: IntakeRequest) -> Dict[str, Any]:
    """Return the structured payload embedded in the admin notification."""

    data = request.to_store_data()
    return {key: value for key, value in data.items() if value not in (None, "", [])}


def _summary_blocks(request: IntakeRequest) -> List[Dict[str, Any]]:
    definition = get_definition(request.kind)
    blocks: List[Dict[str, Any]] = [
        _fields(
            _labelled(REQUEST_ID_LABEL, request.request_id),
            _labelled(REQUESTED_BY_LABEL, f"<@{request.requested_by}>" if request.requested_by else None),
        ),
        {"type": "divider"},
        _fields(
            _labelled(PROJECT_LABEL, request.project_name or "Untitled"),
            _labelled(definition.type_label, request.request_type_text or definition.type_text(request.request_type)),
            _labelled(definition.urgency_label, request.urgency_text or definition.urgency_text(request.urgency)),
        ),
        _section(_labelled("Scope" if request.kind == PENTEST else "System description", request.target_scope)),
        _section(_labelled("Team members", _users(request.team_members))),
        _section(_labelled("Additional information", request.additional_info or "None")),
    ]
    if request.kind == PENTEST:
        blocks.append(_section(_labelled("Full report", full_report_text(request.full_report))))
    if request.tracker_url:
        blocks.append(_section(_labelled("Tracker", request.tracker_url)))
    return blocks


def build_admin_request_message(request: IntakeRequest) -> Dict[str, Any]:
    """Build the admin notification with decision buttons and a metadata snapshot."""

    definition = get_definition(request.kind)
    blocks = [_header(f":lock: New {definition.title.lower()}"), *_summary_blocks(request), {"type": "divider"}]
    blocks.append(
        {
            "type": "actions",
            "block_id": ADMIN_ACTIONS_BLOCK_ID,
            "elements": [
                _button(":white_check_mark: Approve", APPROVE_ACTION_ID, request.request_id, style="primary"),
                _button(":x: Reject", REJECT_ACTION_ID, request.request_id, style="danger"),
                _button(":speech_balloon: Request info", REQUEST_INFO_ACTION_ID, request.request_id),
            ],
        }
    )
    return {
        "text": f"New {definition.title.lower()}: {request.project_name or 'Untitled'} ({request.request_id})",
        "blocks": blocks,
        "metadata": {"event_type": definition.event_type, "event_payload": build_request_snapshot(request)},
    }


def build_approved_update(
    request: IntakeRequest,
    *,
    approved_by: str,
    channel_id: str | None,
    tracker_url: str | None = None,
) -> Dict[str, Any]:
    definition = get_definition(request.kind)
    fields = [
        _labelled(REQUEST_ID_LABEL, request.request_id),
        _labelled(PROJECT_LABEL, request.project_name),
        _labelled("Approved by", f"<@{approved_by}>"),
        _labelled("Channel", f"<#{channel_id}>" if channel_id else "Not created"),
    ]
    if tracker_url:
        fields.append(_labelled("Tracker", tracker_url))
    return {
        "text": f"{definition.title} approved: {request.project_name}",
        "blocks": [_header(f":white_check_mark: {definition.title} approved"), _fields(*fields)],
    }


def build_rejected_update(request: IntakeRequest, *, rejected_by: str, reason: str) -> Dict[str, Any]:
    definition = get_definition(request.kind)
    return {
        "text": f"{definition.title} rejected: {request.project_name}",
        "blocks": [
            _header(f":x: {definition.title} rejected"),
            _fields(
                _labelled(REQUEST_ID_LABEL, request.request_id),
                _labelled(PROJECT_LABEL, request.project_name),
                _labelled("Rejected by", f"<@{rejected_by}>"),
            ),
            _section(_labelled("Reason", reason)),
        ],
    }


def build_unavailable_update(request_id: str) -> Dict[str, Any]:
    """Replace a notification whose request can no longer be recovered."""

    return {
        "text": f"Request {request_id} is no longer available.",
        "blocks": [
            _section(
                f":warning: Request *{request_id}* is no longer available. "
                "Ask the requester to submit it again."
            )
        ],
    }


def _checklist_element(request_id: str, selections: Sequence[str]) -> Dict[str, Any]:
    element: Dict[str, Any] = {
        "type": "checkboxes",
        "action_id": CHECKLIST_ACTION_ID,
        "options": [{"text": {"type": "plain_text", "text": label}, "value": value} for value, label in CHECKLIST_ITEMS],
    }
    chosen = [value for value in selections if value in _CHECKLIST_LABELS]
    if chosen:
        element["initial_options"] = [
            {"text": {"type": "plain_text", "text": _CHECKLIST_LABELS[value]}, "value": value} for value in chosen
        ]
    return element


def _checklist_progress(selections: Sequence[str]) -> Dict[str, Any]:
    done = len([value for value in selections if value in _CHECKLIST_LABELS])
    return {
        "type": "context",
        "block_id": CHECKLIST_PROGRESS_BLOCK_ID,
        "elements": [_mrkdwn(f"Checklist: {done}/{len(CHECKLIST_ITEMS)} completed")],
    }


def build_welcome_message(
    request: IntakeRequest,
    *,
    approved_by: str,
    tracker_url: str | None = None,
    checklist_selections: Sequence[str] = (),
) -> Dict[str, Any]:
    """Build the first message posted into the dedicated request channel."""

    definition = get_definition(request.kind)
    blocks: List[Dict[str, Any]] = [
        _header(f":lock: {definition.title}: {request.project_name}"),
        _fields(
            _labelled(REQUEST_ID_LABEL, request.request_id),
            _labelled("Approved by", f"<@{approved_by}>"),
            _labelled(definition.type_label, request.request_type_text or definition.type_text(request.request_type)),
            _labelled(definition.urgency_label, request.urgency_text or definition.urgency_text(request.urgency)),
        ),
        {"type": "divider"},
        _section(_labelled("Scope", request.target_scope)),
        _section(_labelled("Additional information", request.additional_info or "None")),
        {"type": "divider"},
        _section(
            "*Checklist: what helps us get started?*\n"
            "None of this has to be ready now. Tick items off as they are clarified here in the channel."
        ),
        {
            "type": "actions",
            "block_id": f"{CHECKLIST_BLOCK_PREFIX}{request.request_id}",
            "elements": [_checklist_element(request.request_id, checklist_selections)],
        },
        _checklist_progress(checklist_selections),
        _section(_labelled("Team members", _users(request.team_members))),
        {"type": "divider"},
    ]
    if tracker_url:
        blocks.append(_section(_labelled(":ticket: Tracker", tracker_url)))
    blocks.append(
        {
            "type": "actions",
            "elements": [
                _button(":clipboard: Update status", UPDATE_STATUS_ACTION_ID, request.request_id),
                _button(":page_facing_up: View details", VIEW_DETAILS_ACTION_ID, request.request_id),
            ],
        }
    )
    return {"text": f"Welcome to the {definition.noun} channel for {request.project_name}", "blocks": blocks}


def refresh_checklist_blocks(blocks: Sequence[Mapping[str, Any]], selections: Sequence[str]) -> List[Dict[str, Any]]:
    """Return *blocks* with the checklist state and progress counter re-rendered."""

    refreshed: List[Dict[str, Any]] = []
    for block in blocks:
        block_id = str(block.get("block_id") or "")
        if block_id.startswith(CHECKLIST_BLOCK_PREFIX):
            request_id = block_id[len(CHECKLIST_BLOCK_PREFIX):]
            refreshed.append({**block, "elements": [_checklist_element(request_id, selections)]})
        elif block_id == CHECKLIST_PROGRESS_BLOCK_ID:
            refreshed.append(_checklist_progress(selections))
        else:
            refreshed.append(dict(block))
    return refreshed


def build_channel_topic(request: IntakeRequest, status_text: str) -> str:
    return f"{request.request_id} | {request.project_name} | Status: {status_text}"


def build_channel_purpose(request: IntakeRequest) -> str:
    definition = get_definition(request.kind)
    return f"Coordination of {definition.noun} request {request.request_id} for {request.project_name}"


def build_submission_confirmation(request: IntakeRequest) -> Dict[str, Any]:
    definition = get_definition(request.kind)
    return {
        "text": f"Your {definition.noun} request was received. ID: {request.request_id}",
        "blocks": [
            _section(
                f":white_check_mark: *Thanks for your {definition.noun} request!*\n\n"
                f"*{REQUEST_ID_LABEL}:* {request.request_id}\n*{PROJECT_LABEL}:* {request.project_name}\n\n"
                "The security team will review it shortly."
            )
        ],
    }


def build_submission_failed_notice() -> Dict[str, Any]:
    return {"text": "Sorry, something went wrong while submitting your request. Please try again or contact the team."}


def build_approval_dm(request: IntakeRequest, *, channel_id: str | None) -> Dict[str, Any]:
    definition = get_definition(request.kind)
    where = f" Continue the conversation in <#{channel_id}>." if channel_id else ""
    return {
        "text": f":tada: Your {definition.noun} request {request.request_id} ({request.project_name}) was approved.{where}",
    }


def build_rejection_dm(request: IntakeRequest, *, reason: str) -> Dict[str, Any]:
    definition = get_definition(request.kind)
    return {
        "text": f"Your {definition.noun} request {request.request_id} was rejected.",
        "blocks": [
            _section(
                f"Your {definition.noun} request *{request.request_id}* ({request.project_name}) was rejected.\n\n"
                f"*Reason:*\n{reason}"
            )
        ],
    }


def build_info_request_dm(request: IntakeRequest, *, asked_by: str, question: str) -> Dict[str, Any]:
    return {
        "text": f"The security team needs more information about {request.request_id}.",
        "blocks": [
            _section(
                f"<@{asked_by}> needs more information about *{request.request_id}* ({request.project_name}):\n\n>{question}"
            ),
            {"type": "actions", "elements": [_button(":leftwards_arrow_with_hook: Reply", REPLY_ACTION_ID, request.request_id)]},
        ],
    }


def build_info_request_thread(*, asked_by: str, requested_by: str, question: str) -> Dict[str, Any]:
    return {"text": f":speech_balloon: <@{asked_by}> asked <@{requested_by}> for more information:\n>{question}"}


def build_reply_thread(*, user_id: str, message: str) -> Dict[str, Any]:
    return {"text": f":leftwards_arrow_with_hook: Reply from <@{user_id}>:\n>{message}"}


def build_status_update_post(*, status_text: str, updated_by: str, note: str | None = None) -> Dict[str, Any]:
    text = f":clipboard: Status changed to *{status_text}* by <@{updated_by}>"
    if note:
        text += f"\n>{note}"
    return {"text": text}


def build_create_list_prompt() -> Dict[str, Any]:
    """Ask admins to provision the request list once."""

    return {
        "text": "The request list has not been set up yet.",
        "blocks": [
            _section(
                ":spiral_note_pad: *The request list has not been set up yet.*\n"
                "Create it once, then store its id in `REQUEST_LIST_ID` so it survives restarts."
            ),
            {
                "type": "actions",
                "elements": [_button("Create request list", CREATE_LIST_ACTION_ID, "create", style="primary")],
            },
        ],
    }


def build_list_created_announcement(list_id: str, *, created_by: str) -> Dict[str, Any]:
    return {
        "text": f"Request list created: {list_id}",
        "blocks": [
            _section(
                f":white_check_mark: <@{created_by}> created the request list `{list_id}`.\n"
                f"Set `REQUEST_LIST_ID={list_id}` in the deployment configuration."
            )
        ],
    }
