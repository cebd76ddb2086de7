"""Request status vocabulary and its projection onto the list's select column."""

from __future__ import annotations

from slack_intake.errors import RequestProcessingError

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"
IN_PROGRESS = "in_progress"
REVIEW = "review"
REPORTING = "reporting"
COMPLETE = "complete"
COMPLETED = "completed"
DONE = "done"
ON_HOLD = "on_hold"

REQUEST_STATUSES = (
    PENDING,
    APPROVED,
    REJECTED,
    IN_PROGRESS,
    REVIEW,
    REPORTING,
    COMPLETE,
    COMPLETED,
    DONE,
    ON_HOLD,
)

LIST_PENDING = "pending"
LIST_IN_PROGRESS = "in_progress"
LIST_DONE = "done"
LIST_REJECTED = "rejected"
LIST_STATUSES = (LIST_PENDING, LIST_IN_PROGRESS, LIST_DONE, LIST_REJECTED)

# approved and on_hold both show as pending in the list
REQUEST_TO_LIST_STATUS = {
    PENDING: LIST_PENDING,
    APPROVED: LIST_PENDING,
    IN_PROGRESS: LIST_IN_PROGRESS,
    REVIEW: LIST_IN_PROGRESS,
    REPORTING: LIST_IN_PROGRESS,
    COMPLETE: LIST_DONE,
    COMPLETED: LIST_DONE,
    DONE: LIST_DONE,
    ON_HOLD: LIST_PENDING,
    REJECTED: LIST_REJECTED,
}

LIST_TO_REQUEST_STATUS = {
    LIST_PENDING: PENDING,
    LIST_IN_PROGRESS: IN_PROGRESS,
    LIST_DONE: COMPLETED,
    LIST_REJECTED: REJECTED,
}

STATUS_UPDATE_LABELS = {
    IN_PROGRESS: "In progress",
    REVIEW: "Reviewing findings",
    REPORTING: "Writing report",
    COMPLETE: "Completed",
    ON_HOLD: "On hold",
}

STATUS_LABELS = {
    PENDING: "Pending",
    APPROVED: "Approved",
    REJECTED: "Rejected",
    COMPLETED: "Completed",
    DONE: "Done",
    **STATUS_UPDATE_LABELS,
}

TERMINAL_STATUSES = frozenset({REJECTED, COMPLETE, COMPLETED, DONE})

_ALLOWED_TRANSITIONS = {
    PENDING: {APPROVED, REJECTED},
    APPROVED: set(STATUS_UPDATE_LABELS),
    IN_PROGRESS: set(STATUS_UPDATE_LABELS),
    REVIEW: set(STATUS_UPDATE_LABELS),
    REPORTING: set(STATUS_UPDATE_LABELS),
    ON_HOLD: set(STATUS_UPDATE_LABELS),
}


class StatusTransitionError(RequestProcessingError):
    """Raised when a request cannot move from its current status to the next."""


def to_list_status(status: str | None) -> str:
    return REQUEST_TO_LIST_STATUS.get(status or "", LIST_PENDING)


def from_list_status(code: str | None) -> str:
    return LIST_TO_REQUEST_STATUS.get(code or "", PENDING)


def resolve_status(cached: str | None, list_code: str | None) -> str:
    """Combine the list's coarse code with the richer cached status.

    The cached value wins only while it still projects onto the list code;
    otherwise the list is authoritative.
    """

    if list_code is None:
        return cached or PENDING
    if cached and to_list_status(cached) == list_code:
        return cached
    return from_list_status(list_code)


def status_label(status: str | None) -> str:
    return STATUS_LABELS.get(status or "", (status or PENDING).replace("_", " ").capitalize())


def is_terminal(status: str | None) -> bool:
    return (status or "") in TERMINAL_STATUSES


def check_transition(current: str, new: str, *, request_id: str | None = None) -> None:
    if new not in _ALLOWED_TRANSITIONS.get(current, set()):
        raise StatusTransitionError(
            f"Cannot transition from {current} to {new}",
            request_id=request_id,
            operation="transition",
        )
