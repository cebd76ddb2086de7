"""Builders for the App Home tab."""

from __future__ import annotations

from typing import Iterable, Sequence

from slack_intake.store.models import IntakeRequest
from slack_intake.store.status import status_label

from .definitions import KIND_DEFINITIONS

OPEN_REQUEST_ACTION_PREFIX = "open_request_modal"


def open_request_action_id(kind: str) -> str:
    return f"{OPEN_REQUEST_ACTION_PREFIX}:{kind}"


def _section(text: str) -> dict:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _format_summary(request: IntakeRequest) -> str:
    return " · ".join(
        [
            f"`{request.request_id}`",
            f"*{request.project_name or 'Untitled'}*",
            status_label(request.status),
        ]
    )


def _request_buttons() -> dict:
    elements = []
    for kind, definition in KIND_DEFINITIONS.items():
        elements.append(
            {
                "type": "button",
                "action_id": open_request_action_id(kind),
                "text": {"type": "plain_text", "text": f"Order {definition.noun}", "emoji": True},
                "value": kind,
                "style": "primary",
            }
        )
    return {"type": "actions", "elements": elements}


def build_home_view(user_id: str | None, my_requests: Sequence[IntakeRequest] | Iterable[IntakeRequest] = ()) -> dict:
    """Return the App Home view for *user_id*."""

    requests = list(my_requests)
    if requests:
        lines = "\n".join(f"• {_format_summary(request)}" for request in requests)
    else:
        lines = "_You have no open requests._"

    return {
        "type": "home",
        "blocks": [
            {"type": "header", "text": {"type": "plain_text", "text": ":lock: Security requests", "emoji": True}},
            _section(
                f"Hi <@{user_id}>! Order a pentest or a threat modeling session below. "
                "The bar is low: tell us what you know and we take the dialogue from there."
            ),
            _request_buttons(),
            {"type": "divider"},
            _section(f"*My requests*\n{lines}"),
            {"type": "divider"},
            _section(
                "*What happens next?*\n"
                "1. You fill in what you know.\n"
                "2. We open a private channel for dialogue and follow-up.\n"
                "3. Together we agree on scope and find a time that suits.\n\n"
                "Do not share passwords or other confidential information in Slack."
            ),
        ],
    }
