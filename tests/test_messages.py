"""Tests for the Block Kit builders."""

from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:  # pragma: no cover
    sys.path.insert(0, str(ROOT))

from conftest import ADMIN, REQUESTER, TEAMMATE  # noqa: E402
from slack_intake.store import IntakeRequest, StatusHistoryEntry  # noqa: E402
from slack_intake.workflows import messages  # noqa: E402
from slack_intake.workflows.home import build_home_view, open_request_action_id  # noqa: E402
from slack_intake.workflows.modals import build_details_modal  # noqa: E402


def _request(**overrides):
    data = {
        "request_id": "PT-1000",
        "project_name": "Apollo",
        "requested_by": REQUESTER,
        "team_members": [TEAMMATE],
        "request_type": "web_app",
        "urgency": "high",
        "full_report": "no",
    }
    data.update(overrides)
    return IntakeRequest.model_validate(data)


def _all_text(payload):
    parts = [payload.get("text") or ""]
    for block in payload.get("blocks") or []:
        text = block.get("text")
        if isinstance(text, dict):
            parts.append(text.get("text") or "")
        for field in block.get("fields") or []:
            parts.append(field.get("text") or "")
        for element in block.get("elements") or []:
            if isinstance(element.get("text"), str):
                parts.append(element["text"])
    return "\n".join(parts)


def test_admin_message_has_decision_buttons_and_snapshot():
    payload = messages.build_admin_request_message(_request())

    actions = next(block for block in payload["blocks"] if block.get("block_id") == messages.ADMIN_ACTIONS_BLOCK_ID)
    assert [element["action_id"] for element in actions["elements"]] == [
        messages.APPROVE_ACTION_ID,
        messages.REJECT_ACTION_ID,
        messages.REQUEST_INFO_ACTION_ID,
    ]
    assert {element["value"] for element in actions["elements"]} == {"PT-1000"}
    assert payload["metadata"]["event_type"] == "pentest_request"
    snapshot = payload["metadata"]["event_payload"]
    assert snapshot["request_id"] == "PT-1000"
    assert snapshot["team_members"] == [TEAMMATE]
    assert "source" not in snapshot
    assert "*Request ID:*\nPT-1000" in _all_text(payload)
    assert f"*Requested by:*\n<@{REQUESTER}>" in _all_text(payload)


def test_threat_modeling_message_uses_priority_label():
    request = _request(request_id="TM-1000", urgency="low", request_type="standalone")

    payload = messages.build_admin_request_message(request)

    assert payload["metadata"]["event_type"] == "threatmodeling_request"
    assert "*Priority:*" in _all_text(payload)
    assert "Full report" not in _all_text(payload)


def test_approved_update_has_no_buttons():
    payload = messages.build_approved_update(_request(), approved_by=ADMIN, channel_id="C12345678", tracker_url=None)

    assert all(block["type"] != "actions" for block in payload["blocks"])
    assert "<#C12345678>" in _all_text(payload)


def test_rejected_update_shows_reason():
    payload = messages.build_rejected_update(_request(), rejected_by=ADMIN, reason="Out of scope")

    assert "Out of scope" in _all_text(payload)
    assert all(block["type"] != "actions" for block in payload["blocks"])


def test_unavailable_update_replaces_buttons():
    payload = messages.build_unavailable_update("PT-1000")

    assert "no longer available" in payload["text"]
    assert all(block["type"] != "actions" for block in payload["blocks"])


def test_welcome_message_checklist_starts_empty():
    payload = messages.build_welcome_message(_request(), approved_by=ADMIN, tracker_url="https://tracker.example.com/c/1")

    progress = next(block for block in payload["blocks"] if block.get("block_id") == messages.CHECKLIST_PROGRESS_BLOCK_ID)
    assert progress["elements"][0]["text"] == "Checklist: 0/5 completed"
    assert "https://tracker.example.com/c/1" in _all_text(payload)
    action_ids = [
        element["action_id"]
        for block in payload["blocks"]
        if block["type"] == "actions"
        for element in block["elements"]
    ]
    assert messages.UPDATE_STATUS_ACTION_ID in action_ids
    assert messages.VIEW_DETAILS_ACTION_ID in action_ids


def test_refresh_checklist_updates_counter_and_selection():
    blocks = messages.build_welcome_message(_request(), approved_by=ADMIN)["blocks"]

    refreshed = messages.refresh_checklist_blocks(blocks, ["scope", "timing", "bogus"])

    progress = next(block for block in refreshed if block.get("block_id") == messages.CHECKLIST_PROGRESS_BLOCK_ID)
    checklist = next(block for block in refreshed if block.get("block_id", "").startswith(messages.CHECKLIST_BLOCK_PREFIX))
    assert progress["elements"][0]["text"] == "Checklist: 2/5 completed"
    assert [option["value"] for option in checklist["elements"][0]["initial_options"]] == ["scope", "timing"]
    assert len(refreshed) == len(blocks)


def test_channel_topic_and_purpose():
    request = _request()

    assert messages.build_channel_topic(request, "In progress") == "PT-1000 | Apollo | Status: In progress"
    assert "PT-1000" in messages.build_channel_purpose(request)


def test_direct_messages_name_the_request():
    request = _request()

    assert "PT-1000" in messages.build_submission_confirmation(request)["text"]
    assert "<#C12345678>" in messages.build_approval_dm(request, channel_id="C12345678")["text"]
    assert "Too broad" in _all_text(messages.build_rejection_dm(request, reason="Too broad"))

    info = messages.build_info_request_dm(request, asked_by=ADMIN, question="Which environment?")
    reply_button = info["blocks"][-1]["elements"][0]
    assert reply_button["action_id"] == messages.REPLY_ACTION_ID
    assert reply_button["value"] == "PT-1000"


def test_status_update_post_includes_note():
    payload = messages.build_status_update_post(status_text="On hold", updated_by=ADMIN, note="Waiting for access")

    assert "*On hold*" in payload["text"]
    assert "Waiting for access" in payload["text"]


def test_home_view_lists_my_requests_and_buttons():
    view = build_home_view(REQUESTER, [_request()])

    buttons = next(block for block in view["blocks"] if block["type"] == "actions")["elements"]
    assert {button["action_id"] for button in buttons} == {
        open_request_action_id("pentest"),
        open_request_action_id("threat_modeling"),
    }
    assert "PT-1000" in _all_text(view)


def test_home_view_without_requests():
    assert "no open requests" in _all_text(build_home_view(REQUESTER))


def test_details_modal_shows_history_and_recovery_notice():
    history = [StatusHistoryEntry(status="review", status_text="Reviewing findings", updated_by=ADMIN, note="Halfway", timestamp="2026-03-01T10:15:00+00:00")]

    view = build_details_modal(_request(source="reconstructed"), history)

    text = _all_text(view)
    assert "Reviewing findings" in text
    assert "Halfway" in text
    assert "2026-03-01 10:15" in text
    assert view["blocks"][-1]["type"] == "context"
    assert "submit" not in view
