"""Optional Trello card tracker for incoming requests."""

from __future__ import annotations

import httpx
import structlog

from slack_intake.errors import TrackerError
from slack_intake.store.models import IntakeRequest
from slack_intake.workflows.definitions import full_report_text, get_definition

TRELLO_CARDS_URL = "https://api.trello.com/1/cards"
DEFAULT_TIMEOUT = 30.0


def build_card_description(request: IntakeRequest) -> str:
    definition = get_definition(request.kind)
    lines = [
        f"**Request ID:** {request.request_id}",
        f"**Requested by:** {request.requested_by}",
        f"**{definition.type_label}:** {request.request_type_text or definition.type_text(request.request_type)}",
        f"**{definition.urgency_label}:** {request.urgency_text or definition.urgency_text(request.urgency)}",
        "",
        f"**Scope:** {request.target_scope or 'Not provided'}",
        f"**Additional information:** {request.additional_info or 'None'}",
    ]
    if request.full_report:
        lines.append(f"**Full report:** {full_report_text(request.full_report)}")
    return "\n".join(lines)


class TrelloTracker:
    """Create Trello cards through the REST API."""

    def __init__(
        self,
        *,
        api_key: str,
        api_token: str,
        list_id: str,
        http_client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._api_key = api_key
        self._api_token = api_token
        self._list_id = list_id
        self._http_client = http_client
        self._timeout = timeout

    def create_card(self, request: IntakeRequest) -> str:
        """Create a card for *request* and return its short URL."""

        definition = get_definition(request.kind)
        payload = {
            "key": self._api_key,
            "token": self._api_token,
            "idList": self._list_id,
            "name": f"[{request.request_id}] {definition.title}: {request.project_name}",
            "desc": build_card_description(request),
        }
        log = structlog.get_logger().bind(request_id=request.request_id)

        try:
            if self._http_client is not None:
                response = self._http_client.post(TRELLO_CARDS_URL, json=payload)
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    response = client.post(TRELLO_CARDS_URL, json=payload)
        except httpx.HTTPError as exc:
            log.error("tracker_card_failed", error=str(exc))
            raise TrackerError(f"Trello request failed: {exc}", request_id=request.request_id) from exc

        if response.status_code >= 400:
            log.error("tracker_card_failed", status_code=response.status_code)
            raise TrackerError(
                f"Trello API error: {response.status_code}",
                request_id=request.request_id,
                status_code=response.status_code,
            )

        card = response.json()
        url = card.get("shortUrl") or card.get("url")
        if not url:
            raise TrackerError("Trello response did not include a card URL", request_id=request.request_id)
        log.info("tracker_card_created", card_url=url)
        return url


def build_tracker(settings) -> TrelloTracker | None:
    """Return a tracker when Trello credentials are configured."""

    if not settings.trello_enabled:
        return None
    return TrelloTracker(
        api_key=settings.trello_api_key,
        api_token=settings.trello_api_token,
        list_id=settings.trello_list_id,
    )
