"""Request entity, status vocabulary and the list-backed store."""

from .models import IntakeRequest, StatusHistoryEntry, generate_request_id, kind_from_request_id
from .request_store import RequestStore
from .status import (
    StatusTransitionError,
    check_transition,
    from_list_status,
    resolve_status,
    status_label,
    to_list_status,
)

__all__ = [
    "IntakeRequest",
    "RequestStore",
    "StatusHistoryEntry",
    "StatusTransitionError",
    "check_transition",
    "from_list_status",
    "generate_request_id",
    "kind_from_request_id",
    "resolve_status",
    "status_label",
    "to_list_status",
]
