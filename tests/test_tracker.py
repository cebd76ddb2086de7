"""Tests for the Trello card tracker."""

import json
from pathlib import Path
import sys

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:  # pragma: no cover
    sys.path.insert(0, str(ROOT))

from conftest import REQUESTER  # noqa: E402
from slack_intake.config import AppSettings  # noqa: E402
from slack_intake.errors import TrackerError  # noqa: E402
from slack_intake.store import IntakeRequest  # noqa: E402
from slack_intake.tracker import TRELLO_CARDS_URL, TrelloTracker, build_card_description, build_tracker  # noqa: E402


def _request():
    return IntakeRequest(
        request_id="TM-1000",
        project_name="Hermes",
        requested_by=REQUESTER,
        request_type="standalone",
        urgency="high",
    )


def _tracker(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return TrelloTracker(api_key="key", api_token="token", list_id="list-1", http_client=client)


def test_create_card_posts_and_returns_short_url():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "card-1", "shortUrl": "https://trello.com/c/abc"})

    url = _tracker(handler).create_card(_request())

    assert url == "https://trello.com/c/abc"
    assert str(seen[0].url) == TRELLO_CARDS_URL
    body = json.loads(seen[0].content)
    assert body["idList"] == "list-1"
    assert body["name"] == "[TM-1000] Threat modeling: Hermes"
    assert "**Priority:**" in body["desc"]


def test_http_error_status_raises_tracker_error():
    tracker = _tracker(lambda request: httpx.Response(401, json={"message": "invalid key"}))

    with pytest.raises(TrackerError) as excinfo:
        tracker.create_card(_request())

    assert excinfo.value.context["status_code"] == 401


def test_transport_failure_raises_tracker_error():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(TrackerError):
        _tracker(handler).create_card(_request())


def test_missing_url_raises_tracker_error():
    with pytest.raises(TrackerError):
        _tracker(lambda request: httpx.Response(200, json={"id": "card-1"})).create_card(_request())


def test_card_description_lists_request_fields():
    description = build_card_description(_request())

    assert "**Request ID:** TM-1000" in description
    assert "**Full report:**" not in description


def _settings(**extra):
    values = {
        "SLACK_BOT_TOKEN": "xoxb-test",
        "SLACK_SIGNING_SECRET": "secret",
        "ADMIN_CHANNEL_ID": "CADMIN0001",
        "ADMIN_USER_IDS": "U20000002",
    }
    values.update(extra)
    return AppSettings.model_validate(values)


def test_build_tracker_requires_all_credentials():
    assert build_tracker(_settings()) is None
    assert build_tracker(_settings(TRELLO_API_KEY="key", TRELLO_API_TOKEN="token")) is None
    assert isinstance(
        build_tracker(_settings(TRELLO_API_KEY="key", TRELLO_API_TOKEN="token", TRELLO_LIST_ID="list")),
        TrelloTracker,
    )
