"""Request store backed by a Slack List with a process-local cache."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

import structlog
from slack_sdk.errors import SlackApiError

from slack_intake.errors import ConfigurationError, RemoteAPIError
from slack_intake.lists.cells import build_cell, decode_field, index_row_fields
from slack_intake.lists.gateway import ListGateway
from slack_intake.lists.schema import ADMIN_MESSAGE_PLACEHOLDER, COLUMN_ALIASES, ColumnMapping, column_type
from slack_intake.validation import validate_request_data, validate_request_id

from .models import IntakeRequest, StatusHistoryEntry, kind_from_request_id
from .status import LIST_STATUSES, PENDING, resolve_status, to_list_status

SCHEMA_PROBE_LIMIT = 10

# Defaults written to select cells when a row is first created.
_CREATE_DEFAULTS = {"status": PENDING, "urgency": "unknown", "request_type": "other"}


class RequestStore:
    """Persist intake requests as rows of one Slack List.

    Row-backed fields live in list cells; everything else, plus status
    history, lives in the in-memory cache. Instances are independent so a
    test can hold several stores against different fake clients.
    """

    def __init__(
        self,
        gateway: ListGateway,
        messaging=None,
        *,
        admin_channel_id: str | None = None,
        list_id: str | None = None,
    ) -> None:
        self._gateway = gateway
        self._messaging = messaging
        self._admin_channel_id = admin_channel_id
        self._list_id = list_id
        self._columns = ColumnMapping()
        self._cache: dict[str, dict[str, Any]] = {}
        self._history: dict[str, list[StatusHistoryEntry]] = {}
        self._prompt_sent = False
        self._connected = False

    @property
    def gateway(self) -> ListGateway:
        return self._gateway

    @property
    def list_id(self) -> str | None:
        return self._list_id

    @property
    def columns(self) -> ColumnMapping:
        return self._columns

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def is_initialized(self) -> bool:
        return bool(self._list_id) and self._columns.is_ready

    # lifecycle

    def connect(self) -> str | None:
        """Mark the store usable and load the list schema when one is configured."""

        self._connected = True
        structlog.get_logger().info("request_store_connecting", list_id=self._list_id)
        return self.initialize()

    def close(self) -> None:
        self._cache.clear()
        self._history.clear()
        self._columns.clear()
        self._connected = False
        structlog.get_logger().info("request_store_closed")

    def initialize(self) -> str | None:
        if not self._list_id:
            structlog.get_logger().warning("request_list_not_configured")
            self._send_create_list_prompt()
            return None
        self.load_schema()
        return self._list_id

    def load_schema(self) -> None:
        """Rebuild the column mapping from list metadata, then from the first row."""

        log = structlog.get_logger().bind(list_id=self._list_id)
        try:
            page = self._gateway.list_rows(self._list_id, limit=SCHEMA_PROBE_LIMIT)
        except RemoteAPIError as exc:
            log.error("list_schema_fetch_failed", **exc.to_log())
            self._columns.clear()
            raise ConfigurationError(
                f"Cannot load column ids for list {self._list_id}",
                list_id=self._list_id,
            ) from exc

        if self._columns.load_from_schema(page.schema):
            log.info("list_schema_loaded", source="metadata")
            return
        if page.items and self._columns.load_from_item(page.items[0]):
            log.warning("list_schema_loaded", source="first_row")
            return

        self._columns.clear()
        raise ConfigurationError(
            f"Cannot load column ids for list {self._list_id}: no schema metadata and no rows",
            list_id=self._list_id,
        )

    def attach_list(self, list_id: str, schema: Iterable[Mapping[str, Any]] | None = None) -> None:
        """Adopt a newly provisioned list."""

        self._list_id = list_id
        self._prompt_sent = False
        if not self._columns.load_from_schema(list(schema or [])):
            self.load_schema()
        structlog.get_logger().info("request_list_attached", list_id=list_id)

    def _send_create_list_prompt(self) -> None:
        if self._prompt_sent or self._messaging is None or not self._admin_channel_id:
            return

        from slack_intake.workflows.messages import build_create_list_prompt

        payload = build_create_list_prompt()
        try:
            self._messaging.post_message(channel=self._admin_channel_id, **payload)
        except SlackApiError as exc:
            structlog.get_logger().warning(
                "create_list_prompt_failed",
                error=exc.response.get("error") if getattr(exc, "response", None) else str(exc),
            )
            return
        self._prompt_sent = True
        structlog.get_logger().info("create_list_prompt_sent", channel=self._admin_channel_id)

    def _require_list(self) -> str:
        if not self.is_initialized:
            raise ConfigurationError(
                "Request list is not initialized. Create it from the admin channel first.",
                missing_config="REQUEST_LIST_ID",
            )
        return self._list_id  # type: ignore[return-value]

    # cells

    def cells_for(self, data: Mapping[str, Any], *, creating: bool = False) -> list[dict[str, Any]]:
        """Build list cells for the row-backed keys present in *data*."""

        values = dict(data)
        if creating:
            for key, default in _CREATE_DEFAULTS.items():
                values.setdefault(key, default)
            values.setdefault("admin_message_ts", ADMIN_MESSAGE_PLACEHOLDER)

        cells: list[dict[str, Any]] = []
        for alias in COLUMN_ALIASES:
            if alias not in values:
                continue
            column_id = self._columns.get(alias)
            if not column_id:
                continue
            value = values[alias]
            if alias == "status":
                value = to_list_status(value)
            elif alias == "admin_message_ts" and not value:
                value = ADMIN_MESSAGE_PLACEHOLDER
            elif value is None:
                continue
            cells.append(build_cell(column_id, column_type(alias), value))
        return cells

    def decode_row(self, item: Mapping[str, Any]) -> dict[str, Any]:
        """Return the row-backed fields of *item*; status stays a list code."""

        indexed = index_row_fields(item)
        fields: dict[str, Any] = {}
        for alias in COLUMN_ALIASES:
            column_id = self._columns.get(alias)
            if not column_id or column_id not in indexed:
                continue
            fields[alias] = decode_field(indexed[column_id], column_type(alias))

        if fields.get("admin_message_ts") in ("", ADMIN_MESSAGE_PLACEHOLDER):
            fields["admin_message_ts"] = None
        # the requester column is a user cell but the entity holds one id
        if "requested_by" in fields:
            users = fields["requested_by"]
            fields["requested_by"] = users[0] if users else None
        if item.get("id"):
            fields["list_item_id"] = item["id"]
        return fields

    # operations

    def save_request(self, request_id: str, data: Mapping[str, Any]) -> str:
        """Create or update the row for *request_id* and return its row id."""

        validate_request_id(request_id)
        validate_request_data(data)
        list_id = self._require_list()
        log = structlog.get_logger().bind(request_id=request_id, list_id=list_id)

        row_id = data.get("list_item_id") or self._cache.get(request_id, {}).get("list_item_id")
        payload = {**data, "request_id": request_id}
        if row_id:
            self._gateway.update_row_cells(list_id, row_id, self.cells_for(payload))
            log.info("request_row_updated", row_id=row_id)
        else:
            row_id = self._gateway.create_row(list_id, self.cells_for(payload, creating=True), request_id=request_id)
            log.info("request_row_created", row_id=row_id)

        self._merge_cache(request_id, {**payload, "list_item_id": row_id})
        log.info("request_saved", status=payload.get("status", PENDING))
        return row_id

    def get_request(self, request_id: str) -> IntakeRequest | None:
        """Return the merged view of *request_id*, or None when unknown."""

        cached = self._cache.get(request_id)
        log = structlog.get_logger().bind(request_id=request_id)

        if not self.is_initialized:
            if cached is None:
                return None
            log.info("request_served_from_cache", reason="list_not_initialized")
            return IntakeRequest.model_validate({**cached, "source": "cache"})

        try:
            item = self._find_row(request_id, hint=(cached or {}).get("list_item_id"))
        except RemoteAPIError as exc:
            if cached is None:
                raise
            log.warning("request_served_from_cache", reason="remote_read_failed", **exc.to_log())
            return IntakeRequest.model_validate({**cached, "source": "cache"})

        if item is None:
            if cached is None:
                return None
            log.info("request_served_from_cache", reason="row_not_found")
            return IntakeRequest.model_validate({**cached, "source": "cache"})

        row = self.decode_row(item)
        list_code = row.pop("status", None)
        merged = dict(cached or {})
        merged.update({key: value for key, value in row.items() if value is not None})
        merged["request_id"] = request_id
        merged["status"] = resolve_status((cached or {}).get("status"), list_code)
        self._cache[request_id] = merged
        return IntakeRequest.model_validate({**merged, "source": "list"})

    def update_request(self, request_id: str, updates: Mapping[str, Any]) -> bool:
        """Merge *updates* into the cache and write implied cells to the row.

        Returns True when the remote row was written.
        """

        log = structlog.get_logger().bind(request_id=request_id)
        row_id = self._cache.get(request_id, {}).get("list_item_id") or updates.get("list_item_id")
        self._merge_cache(request_id, {**updates, "request_id": request_id})

        if not self.is_initialized:
            log.warning("request_update_cache_only", reason="list_not_initialized")
            return False

        if not row_id:
            row_id = self._scan_for_row_id(request_id)
        if not row_id:
            log.warning("request_update_cache_only", reason="row_not_found")
            return False

        self._cache[request_id]["list_item_id"] = row_id
        cells = self.cells_for(updates)
        self._gateway.update_row_cells(self._list_id, row_id, cells)  # type: ignore[arg-type]
        log.info("request_updated", row_id=row_id, fields=sorted(updates))
        return True

    def add_status_history(self, request_id: str, entry: StatusHistoryEntry) -> None:
        self._history.setdefault(request_id, []).insert(0, entry)

    def get_status_history(self, request_id: str) -> list[StatusHistoryEntry]:
        return list(self._history.get(request_id, []))

    def get_requests_by_status(self, status: str) -> list[IntakeRequest]:
        """Return requests whose list status matches *status*."""

        list_id = self._require_list()
        code = status if status in LIST_STATUSES else to_list_status(status)
        status_column = self._columns.get("status")
        request_column = self._columns.get("request_id")

        matches: list[IntakeRequest] = []
        for item in self._gateway.iter_rows(list_id):
            indexed = index_row_fields(item)
            if status_column not in indexed or request_column not in indexed:
                continue
            if decode_field(indexed[status_column], column_type("status")) != code:
                continue
            request_id = decode_field(indexed[request_column], column_type("request_id"))
            if not request_id or kind_from_request_id(request_id) is None:
                continue
            request = self.get_request(request_id)
            if request is not None:
                matches.append(request)
        return matches

    def health_check(self) -> bool:
        if not self._list_id:
            return False
        try:
            self._gateway.list_rows(self._list_id, limit=1)
        except RemoteAPIError as exc:
            structlog.get_logger().error("request_store_unhealthy", **exc.to_log())
            return False
        return True

    # cache helpers

    def cache_request(self, request_id: str, data: Mapping[str, Any]) -> None:
        self._merge_cache(request_id, {**data, "request_id": request_id})

    def get_cached(self, request_id: str) -> dict[str, Any] | None:
        cached = self._cache.get(request_id)
        return dict(cached) if cached is not None else None

    def cached_requests_for(self, user_id: str) -> list[IntakeRequest]:
        """Return cached requests submitted by *user_id*, newest first."""

        entries = [entry for entry in list(self._cache.values()) if entry.get("requested_by") == user_id]
        entries.sort(key=lambda entry: entry.get("requested_at") or "", reverse=True)
        return [IntakeRequest.model_validate({**entry, "source": "cache"}) for entry in entries]

    def clear_request(self, request_id: str) -> None:
        self._cache.pop(request_id, None)
        self._history.pop(request_id, None)

    def _merge_cache(self, request_id: str, data: Mapping[str, Any]) -> dict[str, Any]:
        entry = self._cache.setdefault(request_id, {})
        entry.update({key: value for key, value in data.items() if value is not None and key != "source"})
        return entry

    def _find_row(self, request_id: str, *, hint: str | None = None) -> dict[str, Any] | None:
        request_column = self._columns.get("request_id")
        for item in self._gateway.iter_rows(self._list_id):  # type: ignore[arg-type]
            if hint and item.get("id") == hint:
                return item
            field = index_row_fields(item).get(request_column)  # type: ignore[arg-type]
            if field is not None and decode_field(field, column_type("request_id")) == request_id:
                return item
        return None

    def _scan_for_row_id(self, request_id: str) -> str | None:
        item = self._find_row(request_id)
        return item.get("id") if item else None
