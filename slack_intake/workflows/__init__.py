"""Request kinds, modal and message builders, and submission parsing."""

from .commands import CommandContext, parse_slash_command
from .definitions import KIND_DEFINITIONS, PENTEST, THREAT_MODELING, KindDefinition, get_definition
from .home import build_home_view, open_request_action_id
from .messages import (
    APPROVE_ACTION_ID,
    CHECKLIST_ACTION_ID,
    CREATE_LIST_ACTION_ID,
    REJECT_ACTION_ID,
    REPLY_ACTION_ID,
    REQUEST_INFO_ACTION_ID,
    UPDATE_STATUS_ACTION_ID,
    VIEW_DETAILS_ACTION_ID,
    build_admin_request_message,
)
from .modals import (
    APPROVE_MODAL_CALLBACK_ID,
    REJECT_MODAL_CALLBACK_ID,
    REPLY_MODAL_CALLBACK_ID,
    REQUEST_INFO_MODAL_CALLBACK_ID,
    REQUEST_MODAL_CALLBACK_ID,
    STATUS_UPDATE_MODAL_CALLBACK_ID,
    build_request_modal,
)
from .reconstruction import reconstruct_request
from .submission import parse_request_submission

__all__ = [
    "APPROVE_ACTION_ID",
    "APPROVE_MODAL_CALLBACK_ID",
    "CHECKLIST_ACTION_ID",
    "CREATE_LIST_ACTION_ID",
    "CommandContext",
    "KIND_DEFINITIONS",
    "KindDefinition",
    "PENTEST",
    "REJECT_ACTION_ID",
    "REJECT_MODAL_CALLBACK_ID",
    "REPLY_ACTION_ID",
    "REPLY_MODAL_CALLBACK_ID",
    "REQUEST_INFO_ACTION_ID",
    "REQUEST_INFO_MODAL_CALLBACK_ID",
    "REQUEST_MODAL_CALLBACK_ID",
    "STATUS_UPDATE_MODAL_CALLBACK_ID",
    "THREAT_MODELING",
    "UPDATE_STATUS_ACTION_ID",
    "VIEW_DETAILS_ACTION_ID",
    "build_admin_request_message",
    "build_home_view",
    "build_request_modal",
    "get_definition",
    "open_request_action_id",
    "parse_request_submission",
    "parse_slash_command",
    "reconstruct_request",
]
