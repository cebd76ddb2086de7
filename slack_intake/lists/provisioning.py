"""One-time creation of the request list from the admin channel."""

from __future__ import annotations

import structlog
from slack_sdk.errors import SlackApiError

from slack_intake.errors import RemoteAPIError
from slack_intake.workflows.messages import build_list_created_announcement

from .gateway import CreatedList, ListGateway
from .schema import EXAMPLE_REQUEST_ID, EXAMPLE_ROW_LABEL, LIST_NAME, LIST_SCHEMA


class ListProvisioner:
    """Create the list, share it, seed an example row and announce it."""

    def __init__(self, gateway: ListGateway, store, messaging, *, admin_channel_id: str) -> None:
        self._gateway = gateway
        self._store = store
        self._messaging = messaging
        self._admin_channel_id = admin_channel_id

    def provision(self, *, created_by: str) -> CreatedList:
        log = structlog.get_logger().bind(created_by=created_by)
        created = self._gateway.create_list(name=LIST_NAME, schema=LIST_SCHEMA, channel_id=self._admin_channel_id)
        log = log.bind(list_id=created.list_id)
        log.info("request_list_created")

        try:
            self._gateway.set_access(created.list_id, channel_ids=[self._admin_channel_id])
        except RemoteAPIError as exc:
            log.warning("request_list_share_failed", **exc.to_log())

        self._store.attach_list(created.list_id, created.schema)

        try:
            self._create_example_row(created.list_id)
        except RemoteAPIError as exc:
            log.warning("example_row_failed", **exc.to_log())

        try:
            self._messaging.post_message(
                channel=self._admin_channel_id,
                **build_list_created_announcement(created.list_id, created_by=created_by),
            )
        except SlackApiError as exc:
            log.warning("request_list_announcement_failed", error=str(exc))
        return created

    def _create_example_row(self, list_id: str) -> str:
        bot_user_id = self._gateway.auth_test()
        data = {
            "project_name": EXAMPLE_ROW_LABEL,
            "request_id": EXAMPLE_REQUEST_ID,
            "status": "pending",
        }
        if bot_user_id:
            data["requested_by"] = bot_user_id
        cells = self._store.cells_for(data, creating=True)
        return self._gateway.create_row(list_id, cells, request_id=EXAMPLE_REQUEST_ID)
