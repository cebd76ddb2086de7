"""Parsing of Slack modal state into request fields."""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ValidationError

from .definitions import PENTEST, get_definition
from .modals import (
    ADDITIONAL_INFO_INPUT,
    FULL_REPORT_INPUT,
    PROJECT_NAME_INPUT,
    REQUEST_TYPE_INPUT,
    TARGET_SCOPE_INPUT,
    TEAM_MEMBERS_INPUT,
    URGENCY_INPUT,
)

MAX_PROJECT_NAME_LENGTH = 150


class SelectedOption(BaseModel):
    value: str
    text: Dict[str, Any] | None = None

    @property
    def label(self) -> str | None:
        return (self.text or {}).get("text")


class SubmissionValue(BaseModel):
    """A single control value coming from Slack modal state."""

    value: str | None = None
    selected_option: SelectedOption | None = None
    selected_users: List[str] | None = None


class SubmissionState(BaseModel):
    values: Dict[str, Dict[str, SubmissionValue]]


def parse_state(state_payload: Dict[str, Any]) -> SubmissionState:
    try:
        return SubmissionState.model_validate(state_payload)
    except ValidationError as exc:
        raise ValueError("Invalid submission payload") from exc


def _control(state: SubmissionState, ids: tuple[str, str]) -> SubmissionValue:
    block_id, action_id = ids
    block = state.values.get(block_id, {})
    if action_id in block:
        return block[action_id]
    # fall back to the first control when the action id differs
    return next(iter(block.values()), SubmissionValue())


def text_value(state: SubmissionState, ids: tuple[str, str]) -> str:
    return (_control(state, ids).value or "").strip()


def selected_value(state: SubmissionState, ids: tuple[str, str]) -> SelectedOption | None:
    return _control(state, ids).selected_option


def selected_users(state: SubmissionState, ids: tuple[str, str]) -> List[str]:
    return list(dict.fromkeys(_control(state, ids).selected_users or []))


def parse_request_submission(state_payload: Dict[str, Any], kind: str) -> Dict[str, Any]:
    """Return the request fields for a submitted request modal.

    Raises ``ValueError("<block_id>: <message>")`` for input the modal should flag.
    """

    definition = get_definition(kind)
    state = parse_state(state_payload)

    project_name = text_value(state, PROJECT_NAME_INPUT)
    if not project_name:
        raise ValueError(f"{PROJECT_NAME_INPUT[0]}: Project name is required.")
    if len(project_name) > MAX_PROJECT_NAME_LENGTH:
        raise ValueError(f"{PROJECT_NAME_INPUT[0]}: Keep the project name under {MAX_PROJECT_NAME_LENGTH} characters.")

    request_type = selected_value(state, REQUEST_TYPE_INPUT)
    urgency = selected_value(state, URGENCY_INPUT)
    type_code = request_type.value if request_type else "other"
    urgency_code = urgency.value if urgency else definition.default_urgency

    fields: Dict[str, Any] = {
        "kind": kind,
        "project_name": project_name,
        "target_scope": text_value(state, TARGET_SCOPE_INPUT),
        "additional_info": text_value(state, ADDITIONAL_INFO_INPUT),
        "request_type": type_code,
        "request_type_text": (request_type.label if request_type else None) or definition.type_text(type_code),
        "urgency": urgency_code,
        "urgency_text": (urgency.label if urgency else None) or definition.urgency_text(urgency_code),
        "team_members": selected_users(state, TEAM_MEMBERS_INPUT),
    }
    if kind == PENTEST:
        report = selected_value(state, FULL_REPORT_INPUT)
        fields["full_report"] = report.value if report else None
    return fields
