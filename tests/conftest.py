"""Shared fakes for the Slack Web API and the Slack Lists methods."""

from pathlib import Path
import sys

import pytest
from slack_sdk.errors import SlackApiError

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:  # pragma: no cover
    sys.path.insert(0, str(ROOT))

from slack_intake.lists.schema import LIST_SCHEMA  # noqa: E402

REQUESTER = "U10000001"
ADMIN = "U20000002"
TEAMMATE = "U30000003"
OUTSIDER = "U90000009"
ADMIN_CHANNEL = "CADMIN0001"
LIST_ID = "F0LIST0001"


def column_id(alias: str) -> str:
    return f"Col_{alias}"


def list_schema() -> list[dict]:
    return [{**column, "id": column_id(column["key"])} for column in LIST_SCHEMA]


class FakeSlackClient:
    """In-memory stand-in for ``slack_sdk.WebClient``.

    ``fail(method, error)`` makes the next call to *method* fail: list methods
    answer ``ok: false``, chat and conversation methods raise SlackApiError.
    """

    def __init__(self) -> None:
        self.lists: dict[str, dict] = {}
        self.api_calls: list[tuple[str, dict]] = []
        self.messages: list[dict] = []
        self.ephemerals: list[dict] = []
        self.updates: list[dict] = []
        self.deleted: list[dict] = []
        self.views_opened: list[dict] = []
        self.views_published: list[dict] = []
        self.channels_created: list[dict] = []
        self.invites: list[dict] = []
        self.topics: list[dict] = []
        self.purposes: list[dict] = []
        self.bot_user_id = "UBOT00001"
        self._failures: dict[str, list[str]] = {}
        self._ts = 1700000000
        self._row_seq = 0
        self._channel_seq = 0

    # test helpers

    def add_list(self, list_id: str = LIST_ID, *, with_schema: bool = True, rows=()) -> dict:
        entry = {"schema": list_schema() if with_schema else [], "rows": [dict(row) for row in rows]}
        self.lists[list_id] = entry
        return entry

    def rows(self, list_id: str = LIST_ID) -> list[dict]:
        return self.lists[list_id]["rows"]

    def fail(self, method: str, error: str = "internal_error", *, times: int = 1) -> None:
        self._failures.setdefault(method, []).extend([error] * times)

    def calls_to(self, method: str) -> list[dict]:
        return [payload for name, payload in self.api_calls if name == method]

    def messages_to(self, channel: str) -> list[dict]:
        return [message for message in self.messages if message["channel"] == channel]

    def _next_failure(self, method: str) -> str | None:
        pending = self._failures.get(method)
        if pending:
            return pending.pop(0)
        return None

    def _raise_if_failing(self, method: str) -> None:
        error = self._next_failure(method)
        if error:
            raise SlackApiError(f"{method} failed", {"ok": False, "error": error})

    def _next_ts(self) -> str:
        self._ts += 1
        return f"{self._ts}.000100"

    # Web API: generic call used by the list gateway

    def api_call(self, method: str, json=None):
        payload = dict(json or {})
        self.api_calls.append((method, payload))
        error = self._next_failure(method)
        if error:
            return {"ok": False, "error": error}

        if method == "auth.test":
            return {"ok": True, "user_id": self.bot_user_id}
        if method == "slackLists.create":
            list_id = f"F0NEW{len(self.lists):05d}"
            entry = self.add_list(list_id)
            return {"ok": True, "list_id": list_id, "list_metadata": {"schema": entry["schema"]}}
        if method == "slackLists.access.set":
            return {"ok": True}

        entry = self.lists.get(payload.get("list_id"))
        if entry is None:
            return {"ok": False, "error": "list_not_found"}

        if method == "slackLists.items.create":
            self._row_seq += 1
            row = {"id": f"Rec{self._row_seq:04d}", "fields": [dict(cell) for cell in payload["initial_fields"]]}
            entry["rows"].append(row)
            return {"ok": True, "item": {"id": row["id"]}}
        if method == "slackLists.items.update":
            for cell in payload["cells"]:
                cell = dict(cell)
                row_id = cell.pop("row_id")
                row = next((row for row in entry["rows"] if row["id"] == row_id), None)
                if row is None:
                    return {"ok": False, "error": "item_not_found"}
                row["fields"] = [field for field in row["fields"] if field.get("column_id") != cell["column_id"]]
                row["fields"].append(cell)
            return {"ok": True}
        if method == "slackLists.items.list":
            start = int(payload.get("cursor") or 0)
            limit = int(payload.get("limit") or 100)
            end = start + limit
            response = {
                "ok": True,
                "items": entry["rows"][start:end],
                "response_metadata": {"next_cursor": str(end) if end < len(entry["rows"]) else ""},
            }
            if entry["schema"]:
                response["list_metadata"] = {"schema": entry["schema"]}
            return response
        raise AssertionError(f"unexpected api_call {method}")

    # Web API: chat

    def chat_postMessage(self, **kwargs):
        self._raise_if_failing("chat.postMessage")
        ts = self._next_ts()
        self.messages.append({**kwargs, "ts": ts})
        return {"ok": True, "ts": ts, "channel": kwargs.get("channel")}

    def chat_postEphemeral(self, **kwargs):
        self._raise_if_failing("chat.postEphemeral")
        self.ephemerals.append(kwargs)
        return {"ok": True}

    def chat_update(self, **kwargs):
        self._raise_if_failing("chat.update")
        self.updates.append(kwargs)
        for message in self.messages:
            if message["channel"] == kwargs["channel"] and message["ts"] == kwargs["ts"]:
                message.update(text=kwargs.get("text"), blocks=kwargs.get("blocks"))
        return {"ok": True}

    def chat_delete(self, **kwargs):
        self._raise_if_failing("chat.delete")
        self.deleted.append(kwargs)
        return {"ok": True}

    # Web API: views

    def views_open(self, **kwargs):
        self._raise_if_failing("views.open")
        self.views_opened.append(kwargs)
        return {"ok": True}

    def views_publish(self, **kwargs):
        self._raise_if_failing("views.publish")
        self.views_published.append(kwargs)
        return {"ok": True}

    # Web API: conversations

    def conversations_create(self, **kwargs):
        self._raise_if_failing("conversations.create")
        self._channel_seq += 1
        channel_id = f"CNEW{self._channel_seq:05d}"
        self.channels_created.append({**kwargs, "id": channel_id})
        return {"ok": True, "channel": {"id": channel_id, "name": kwargs.get("name")}}

    def conversations_invite(self, **kwargs):
        self._raise_if_failing("conversations.invite")
        self.invites.append(kwargs)
        return {"ok": True}

    def conversations_setTopic(self, **kwargs):
        self._raise_if_failing("conversations.setTopic")
        self.topics.append(kwargs)
        return {"ok": True}

    def conversations_setPurpose(self, **kwargs):
        self._raise_if_failing("conversations.setPurpose")
        self.purposes.append(kwargs)
        return {"ok": True}

    def conversations_history(self, **kwargs):
        self._raise_if_failing("conversations.history")
        found = [
            message
            for message in self.messages
            if message["channel"] == kwargs.get("channel") and message["ts"] == kwargs.get("latest")
        ]
        return {"ok": True, "messages": found[:1]}


@pytest.fixture
def fake_client():
    client = FakeSlackClient()
    client.add_list()
    return client


def run_async_sync(func, /, *args, **kwargs):
    """Execute run_async workloads synchronously while ignoring trace context metadata."""

    kwargs.pop("trace_id", None)
    return func(*args, **kwargs)
