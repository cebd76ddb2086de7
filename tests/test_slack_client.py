"""Unit tests for the Slack WebClient wrapper."""

from pathlib import Path
import sys

import pytest
from slack_sdk.errors import SlackApiError

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from conftest import FakeSlackClient, REQUESTER, TEAMMATE  # noqa: E402
from slack_intake.slack_client import SlackClient, slack_error_code  # noqa: E402


@pytest.fixture
def dummy():
    return FakeSlackClient()


def test_requires_token_or_client():
    with pytest.raises(ValueError):
        SlackClient()


def test_post_message_passes_optional_fields_only_when_set(dummy):
    client = SlackClient(client=dummy)

    client.post_message(channel="C123", text="hello")
    client.post_message(
        channel="C123",
        text="threaded",
        blocks=[{"type": "section"}],
        metadata={"event_type": "pentest_request", "event_payload": {}},
        thread_ts="1.2",
    )

    first, second = dummy.messages
    assert set(first) == {"channel", "text", "ts"}
    assert second["thread_ts"] == "1.2"
    assert second["metadata"]["event_type"] == "pentest_request"
    assert client.client is dummy


def test_update_message_always_sends_blocks(dummy):
    client = SlackClient(client=dummy)

    client.update_message(channel="C123", ts="123.456", text="updated")

    assert dummy.updates == [{"channel": "C123", "ts": "123.456", "text": "updated", "blocks": []}]


def test_fetch_message_returns_matching_message(dummy):
    client = SlackClient(client=dummy)
    ts = client.post_message(channel="C123", text="hello")["ts"]

    assert client.fetch_message(channel="C123", ts=ts)["text"] == "hello"
    assert client.fetch_message(channel="C123", ts="0.0") is None


def test_create_channel_returns_id(dummy):
    client = SlackClient(client=dummy)

    channel_id = client.create_channel(name="pt-apollo-000001")

    assert channel_id == dummy.channels_created[0]["id"]
    assert dummy.channels_created[0]["is_private"] is True


def test_invite_skips_failures_and_continues(dummy):
    client = SlackClient(client=dummy)
    dummy.fail("conversations.invite", "already_in_channel")

    invited = client.invite_to_channel(channel="C123", user_ids=[REQUESTER, TEAMMATE])

    assert invited == [TEAMMATE]
    assert [call["users"] for call in dummy.invites] == [TEAMMATE]


def test_topic_purpose_and_views(dummy):
    client = SlackClient(client=dummy)

    client.set_channel_topic(channel="C123", topic="PT-1 | Apollo")
    client.set_channel_purpose(channel="C123", purpose="Coordination")
    client.open_modal(trigger_id="trigger", view={"type": "modal"})
    client.publish_home_view(user_id=REQUESTER, view={"type": "home"})
    client.post_ephemeral(channel="C123", user=REQUESTER, text="psst")
    client.delete_message(channel="C123", ts="1.2")

    assert dummy.topics == [{"channel": "C123", "topic": "PT-1 | Apollo"}]
    assert dummy.purposes == [{"channel": "C123", "purpose": "Coordination"}]
    assert dummy.views_opened[0]["trigger_id"] == "trigger"
    assert dummy.views_published[0]["user_id"] == REQUESTER
    assert dummy.ephemerals == [{"channel": "C123", "user": REQUESTER, "text": "psst"}]
    assert dummy.deleted == [{"channel": "C123", "ts": "1.2"}]


def test_slack_error_code_reads_response():
    exc = SlackApiError("failed", {"ok": False, "error": "channel_not_found"})

    assert slack_error_code(exc) == "channel_not_found"
