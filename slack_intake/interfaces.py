"""Capability contracts between the orchestrator, the store and Slack."""

from __future__ import annotations

from typing import Any, Iterable, Iterator, Mapping, Protocol, Sequence, runtime_checkable

from slack_intake.store.models import IntakeRequest, StatusHistoryEntry


@runtime_checkable
class MessagingEndpoint(Protocol):
    def post_message(
        self,
        *,
        channel: str,
        text: str,
        blocks: Sequence[Mapping[str, Any]] | None = None,
        metadata: Mapping[str, Any] | None = None,
        thread_ts: str | None = None,
    ) -> Mapping[str, Any]: ...

    def post_ephemeral(self, *, channel: str, user: str, text: str, blocks=None) -> Mapping[str, Any]: ...

    def update_message(self, *, channel: str, ts: str, text: str, blocks=None) -> Mapping[str, Any]: ...

    def delete_message(self, *, channel: str, ts: str) -> Mapping[str, Any]: ...

    def fetch_message(self, *, channel: str, ts: str) -> Mapping[str, Any] | None: ...

    def open_modal(self, *, trigger_id: str, view: Mapping[str, Any]) -> Mapping[str, Any]: ...

    def publish_home_view(self, *, user_id: str, view: Mapping[str, Any]) -> Mapping[str, Any]: ...

    def create_channel(self, *, name: str, is_private: bool = True) -> str: ...

    def invite_to_channel(self, *, channel: str, user_ids: Iterable[str]) -> list[str]: ...

    def set_channel_topic(self, *, channel: str, topic: str) -> Mapping[str, Any]: ...

    def set_channel_purpose(self, *, channel: str, purpose: str) -> Mapping[str, Any]: ...


@runtime_checkable
class ListBackend(Protocol):
    def create_list(self, *, name: str, schema: Sequence[Mapping[str, Any]], channel_id: str | None = None): ...

    def create_row(self, list_id: str, cells: Sequence[Mapping[str, Any]], *, request_id: str | None = None) -> str: ...

    def update_row_cells(self, list_id: str, row_id: str, cells: Sequence[Mapping[str, Any]]) -> None: ...

    def list_rows(self, list_id: str, *, limit: int = ..., cursor: str | None = None): ...

    def iter_rows(self, list_id: str) -> Iterator[dict[str, Any]]: ...

    def set_access(self, list_id: str, *, channel_ids: Sequence[str], access_level: str = "write") -> None: ...

    def auth_test(self) -> str | None: ...


@runtime_checkable
class RequestRepository(Protocol):
    @property
    def is_initialized(self) -> bool: ...

    def save_request(self, request_id: str, data: Mapping[str, Any]) -> str: ...

    def get_request(self, request_id: str) -> IntakeRequest | None: ...

    def update_request(self, request_id: str, updates: Mapping[str, Any]) -> bool: ...

    def add_status_history(self, request_id: str, entry: StatusHistoryEntry) -> None: ...

    def get_status_history(self, request_id: str) -> list[StatusHistoryEntry]: ...

    def get_requests_by_status(self, status: str) -> list[IntakeRequest]: ...

    def cache_request(self, request_id: str, data: Mapping[str, Any]) -> None: ...

    def get_cached(self, request_id: str) -> dict[str, Any] | None: ...

    def cached_requests_for(self, user_id: str) -> list[IntakeRequest]: ...

    def attach_list(self, list_id: str, schema=None) -> None: ...

    def health_check(self) -> bool: ...
