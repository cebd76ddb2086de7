"""Thin wrapper utilities around the Slack WebClient."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

import structlog
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError


def slack_error_code(exc: SlackApiError) -> str:
    response = getattr(exc, "response", None)
    if response is None:
        return str(exc)
    return str(response.get("error") or exc)


class SlackClient:
    """Encapsulate Slack WebClient interactions for easier testing."""

    def __init__(self, *, token: str | None = None, client: WebClient | None = None) -> None:
        if client is None and token is None:
            raise ValueError("Either an instantiated client or a bot token must be provided.")

        self._client = client or WebClient(token=token)

    @property
    def client(self) -> WebClient:
        """Expose the underlying WebClient for advanced use cases."""

        return self._client

    def post_message(
        self,
        *,
        channel: str,
        text: str,
        blocks: Sequence[Mapping[str, Any]] | None = None,
        metadata: Mapping[str, Any] | None = None,
        thread_ts: str | None = None,
    ) -> Mapping[str, Any]:
        """Post a message, optionally with blocks, metadata or into a thread."""

        kwargs: dict[str, Any] = {"channel": channel, "text": text}
        if blocks is not None:
            kwargs["blocks"] = list(blocks)
        if metadata is not None:
            kwargs["metadata"] = dict(metadata)
        if thread_ts:
            kwargs["thread_ts"] = thread_ts
        return self._client.chat_postMessage(**kwargs)

    def post_ephemeral(
        self,
        *,
        channel: str,
        user: str,
        text: str,
        blocks: Sequence[Mapping[str, Any]] | None = None,
    ) -> Mapping[str, Any]:
        kwargs: dict[str, Any] = {"channel": channel, "user": user, "text": text}
        if blocks is not None:
            kwargs["blocks"] = list(blocks)
        return self._client.chat_postEphemeral(**kwargs)

    def update_message(
        self,
        *,
        channel: str,
        ts: str,
        text: str,
        blocks: Sequence[Mapping[str, Any]] | None = None,
    ) -> Mapping[str, Any]:
        """Update an existing Slack message in place."""

        return self._client.chat_update(channel=channel, ts=ts, text=text, blocks=list(blocks or []))

    def delete_message(self, *, channel: str, ts: str) -> Mapping[str, Any]:
        return self._client.chat_delete(channel=channel, ts=ts)

    def fetch_message(self, *, channel: str, ts: str) -> Mapping[str, Any] | None:
        """Return the message at *ts* in *channel* including its metadata."""

        response = self._client.conversations_history(
            channel=channel,
            latest=ts,
            inclusive=True,
            limit=1,
            include_all_metadata=True,
        )
        messages = response.get("messages") or []
        return messages[0] if messages else None

    def open_modal(self, *, trigger_id: str, view: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._client.views_open(trigger_id=trigger_id, view=dict(view))

    def publish_home_view(self, *, user_id: str, view: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._client.views_publish(user_id=user_id, view=dict(view))

    def create_channel(self, *, name: str, is_private: bool = True) -> str:
        """Create a channel and return its id."""

        response = self._client.conversations_create(name=name, is_private=is_private)
        return response["channel"]["id"]

    def invite_to_channel(self, *, channel: str, user_ids: Iterable[str]) -> list[str]:
        """Invite users one at a time; return those that were added.

        A failed invite (user already in channel, deactivated, ...) is logged
        and skipped so the remaining users are still invited.
        """

        invited: list[str] = []
        for user_id in user_ids:
            try:
                self._client.conversations_invite(channel=channel, users=user_id)
            except SlackApiError as exc:
                structlog.get_logger().warning(
                    "channel_invite_failed",
                    channel=channel,
                    user_id=user_id,
                    error=slack_error_code(exc),
                )
                continue
            invited.append(user_id)
        return invited

    def set_channel_topic(self, *, channel: str, topic: str) -> Mapping[str, Any]:
        return self._client.conversations_setTopic(channel=channel, topic=topic)

    def set_channel_purpose(self, *, channel: str, purpose: str) -> Mapping[str, Any]:
        return self._client.conversations_setPurpose(channel=channel, purpose=purpose)
