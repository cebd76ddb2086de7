"""Error taxonomy shared by the list gateway, the request store and the handlers."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Mapping


class IntakeError(Exception):
    """Base class for application errors carrying a code and log context."""

    code = "INTAKE_ERROR"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context
        self.timestamp = datetime.now(UTC).isoformat()

    def to_log(self) -> dict[str, Any]:
        return {"error_code": self.code, "error": self.message, **self.context}


class ConfigurationError(IntakeError):
    """Raised when setup is missing or invalid. Never retried."""

    code = "CONFIGURATION_ERROR"


class RemoteAPIError(IntakeError):
    """Raised when a Slack Web API call fails after classification."""

    code = "REMOTE_API_ERROR"

    def __init__(
        self,
        message: str,
        *,
        method: str,
        params: Mapping[str, Any] | None = None,
        error_code: str = "unknown_error",
        retryable: bool = False,
    ) -> None:
        super().__init__(message, method=method, remote_error=error_code)
        self.method = method
        self.params = dict(params or {})
        self.error_code = error_code
        self.retryable = retryable


class RequestProcessingError(IntakeError):
    """Raised when a business rule is violated while handling a request."""

    code = "REQUEST_PROCESSING_ERROR"

    def __init__(self, message: str, *, request_id: str | None = None, operation: str | None = None) -> None:
        super().__init__(message, request_id=request_id, operation=operation)
        self.request_id = request_id
        self.operation = operation


class ValidationError(IntakeError):
    """Raised when an identifier or payload does not match the expected shape."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, *, field: str, value: Any = None) -> None:
        super().__init__(message, field=field)
        self.field = field
        self.value = value


class TrackerError(IntakeError):
    """Raised when the external card tracker rejects a request."""

    code = "TRACKER_ERROR"


_USER_MESSAGES = {
    ConfigurationError: ":gear: The request list is not configured yet. Please contact an administrator.",
    RemoteAPIError: ":satellite: Slack did not respond as expected. Please try again in a moment.",
    RequestProcessingError: ":clipboard: We could not process this request. Please try again or contact support.",
    ValidationError: ":warning: Some of the submitted values are invalid.",
    TrackerError: ":card_index: The tracker card could not be created.",
}


def format_for_user(error: BaseException) -> str:
    """Return user-facing text for *error*."""

    for error_type, message in _USER_MESSAGES.items():
        if isinstance(error, error_type):
            return message
    return ":x: Something went wrong. Contact support if the problem persists."
