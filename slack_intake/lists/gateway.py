"""Gateway around the Slack Lists Web API methods used as the request store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Sequence

import structlog
from slack_sdk.errors import SlackApiError, SlackClientError

from slack_intake.errors import RemoteAPIError, RequestProcessingError

from .retry import DEFAULT_RETRY_POLICY, RetryPolicy, is_retryable

DEFAULT_PAGE_SIZE = 100


@dataclass(frozen=True)
class RowPage:
    """One page of rows returned by ``slackLists.items.list``."""

    items: list[dict[str, Any]]
    schema: list[dict[str, Any]] | None = None
    next_cursor: str | None = None


@dataclass(frozen=True)
class CreatedList:
    list_id: str
    schema: list[dict[str, Any]] = field(default_factory=list)


def _error_code_from(exc: Exception) -> str:
    if isinstance(exc, SlackApiError):
        response = getattr(exc, "response", None)
        if getattr(response, "status_code", None) == 429:
            return "ratelimited"
        code = response.get("error") if response is not None else None
        if code:
            return str(code)
        status_code = getattr(response, "status_code", None)
        if isinstance(status_code, int) and status_code >= 500:
            return "server_error"
        return "unknown_error"
    if isinstance(exc, TimeoutError):
        return "timeout"
    return "network_error"


class ListGateway:
    """Execute Slack Lists calls with uniform retry and error classification.

    The gateway keeps no state of its own; column ids and the active list id
    belong to the request store.
    """

    def __init__(self, client, *, retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY) -> None:
        if client is None:
            raise ValueError("A Slack WebClient is required.")
        self._client = client
        self._retry_policy = retry_policy

    @property
    def client(self):
        return self._client

    def call(self, method: str, params: Mapping[str, Any] | None = None) -> Mapping[str, Any]:
        """Call *method* with *params*, retrying transient failures."""

        payload = dict(params or {})
        return self._retry_policy.run(lambda: self._call_once(method, payload), method=method)

    def _call_once(self, method: str, payload: dict[str, Any]) -> Mapping[str, Any]:
        log = structlog.get_logger().bind(method=method)
        try:
            response = self._client.api_call(method, json=payload)
        except (SlackClientError, OSError) as exc:
            error_code = _error_code_from(exc)
            log.warning("remote_call_failed", error=error_code)
            raise RemoteAPIError(
                f"Slack API call failed: {method} - {error_code}",
                method=method,
                params=payload,
                error_code=error_code,
                retryable=is_retryable(error_code),
            ) from exc

        if response is None or response.get("ok") is False:
            error_code = (response or {}).get("error") or "unknown_error"
            log.warning("remote_call_failed", error=error_code)
            raise RemoteAPIError(
                f"Slack API call failed: {method} - {error_code}",
                method=method,
                params=payload,
                error_code=error_code,
                retryable=is_retryable(error_code),
            )

        log.debug("remote_call_succeeded")
        return response

    def create_list(self, *, name: str, schema: Sequence[Mapping[str, Any]], channel_id: str | None = None) -> CreatedList:
        params: dict[str, Any] = {"name": name, "schema": [dict(column) for column in schema]}
        if channel_id:
            params["channel_id"] = channel_id
        response = self.call("slackLists.create", params)
        list_id = response.get("list_id")
        if not list_id:
            raise RequestProcessingError("List created but response is missing list_id", operation="create_list")
        metadata = response.get("list_metadata") or {}
        return CreatedList(list_id=list_id, schema=list(metadata.get("schema") or []))

    def create_row(self, list_id: str, cells: Sequence[Mapping[str, Any]], *, request_id: str | None = None) -> str:
        response = self.call("slackLists.items.create", {"list_id": list_id, "initial_fields": list(cells)})
        item_id = (response.get("item") or {}).get("id")
        if not item_id:
            raise RequestProcessingError(
                "Failed to create list item: no item ID returned",
                request_id=request_id,
                operation="create_row",
            )
        return item_id

    def update_row_cells(self, list_id: str, row_id: str, cells: Sequence[Mapping[str, Any]]) -> None:
        if not cells:
            return
        payload = [{"row_id": row_id, **cell} for cell in cells]
        self.call("slackLists.items.update", {"list_id": list_id, "cells": payload})

    def list_rows(self, list_id: str, *, limit: int = DEFAULT_PAGE_SIZE, cursor: str | None = None) -> RowPage:
        params: dict[str, Any] = {"list_id": list_id, "limit": limit}
        if cursor:
            params["cursor"] = cursor
        response = self.call("slackLists.items.list", params)
        metadata = response.get("list_metadata") or {}
        next_cursor = (response.get("response_metadata") or {}).get("next_cursor") or None
        return RowPage(
            items=list(response.get("items") or []),
            schema=metadata.get("schema") or None,
            next_cursor=next_cursor,
        )

    def iter_rows(self, list_id: str, *, page_size: int = DEFAULT_PAGE_SIZE) -> Iterator[dict[str, Any]]:
        cursor: str | None = None
        while True:
            page = self.list_rows(list_id, limit=page_size, cursor=cursor)
            yield from page.items
            if not page.next_cursor:
                return
            cursor = page.next_cursor

    def set_access(self, list_id: str, *, channel_ids: Sequence[str], access_level: str = "write") -> None:
        self.call(
            "slackLists.access.set",
            {"list_id": list_id, "channel_ids": list(channel_ids), "access_level": access_level},
        )

    def auth_test(self) -> str | None:
        return self.call("auth.test", {}).get("user_id")
