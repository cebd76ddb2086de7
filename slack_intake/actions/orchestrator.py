"""Slack listeners driving the request lifecycle.

Every public ``handle_*`` method is registered as a Bolt listener and takes
Bolt's ``(ack, body, client, logger)`` arguments. Handlers acknowledge first,
gate mutating actions on the admin allow-list and hand slow work to the
background pool. No exception leaves a handler.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping
from urllib.parse import urlparse
from uuid import uuid4

import structlog
from slack_sdk.errors import SlackApiError
from structlog.contextvars import bind_contextvars, unbind_contextvars

from slack_intake.background import run_async
from slack_intake.errors import IntakeError, format_for_user
from slack_intake.interfaces import MessagingEndpoint, RequestRepository
from slack_intake.slack_client import SlackClient, slack_error_code
from slack_intake.store.models import IntakeRequest, StatusHistoryEntry, generate_request_id, utc_now_iso
from slack_intake.store.status import (
    APPROVED,
    PENDING,
    REJECTED,
    STATUS_UPDATE_LABELS,
    StatusTransitionError,
    check_transition,
    status_label,
)
from slack_intake.validation import sanitize_channel_name, unique_user_ids
from slack_intake.workflows import messages
from slack_intake.workflows.commands import parse_slash_command
from slack_intake.workflows.definitions import THREAT_MODELING, get_definition
from slack_intake.workflows.home import build_home_view
from slack_intake.workflows.modals import (
    ASSIGNEES_INPUT,
    INFO_REQUEST_INPUT,
    REJECTION_REASON_INPUT,
    REPLY_MESSAGE_INPUT,
    STATUS_NOTE_INPUT,
    STATUS_SELECT_INPUT,
    TRACKER_URL_INPUT,
    build_approve_modal,
    build_details_modal,
    build_reject_modal,
    build_reply_modal,
    build_request_info_modal,
    build_request_modal,
    build_status_update_modal,
    decode_metadata,
)
from slack_intake.workflows.reconstruction import reconstruct_request
from slack_intake.workflows.submission import (
    parse_request_submission,
    parse_state,
    selected_users,
    selected_value,
    text_value,
)

from . import ActionContext, is_user_authorized, parse_action_context, parse_view_context

FETCH_ATTEMPTS = 3
FETCH_DELAY = 0.5
CHANNEL_NAME_LIMIT = 80

DENIED_TEXT = "You are not authorized to perform this action."
NOT_FOUND_TEXT = "This request could not be found. Ask the requester to submit it again."


def _state_payload(body: Mapping[str, Any]) -> dict:
    return {"values": ((body.get("view") or {}).get("state") or {}).get("values", {})}


def _valid_url(url: str | None) -> bool:
    if not url:
        return True
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _errors(block_id: str, message: str) -> dict:
    return {"response_action": "errors", "errors": {block_id: message}}


def _status_word(status: str) -> str:
    return status.replace("_", " ")


class ActionOrchestrator:
    """Sequence the human-facing lifecycle actions against the request store."""

    def __init__(
        self,
        store: RequestRepository,
        settings,
        *,
        tracker=None,
        provisioner=None,
        id_factory: Callable[[str], str] = generate_request_id,
        messaging_factory: Callable[[Any], MessagingEndpoint] | None = None,
        fetch_attempts: int = FETCH_ATTEMPTS,
        fetch_delay: float = FETCH_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._settings = settings
        self._tracker = tracker
        self._provisioner = provisioner
        self._id_factory = id_factory
        self._messaging_factory = messaging_factory or (lambda client: SlackClient(client=client))
        self._fetch_attempts = max(1, fetch_attempts)
        self._fetch_delay = fetch_delay
        self._sleep = sleep

    @property
    def store(self):
        return self._store

    @contextmanager
    def _traced(self, event: str, logger, **context: Any) -> Iterator[tuple[str, Any]]:
        trace_id = str(uuid4())
        bind_contextvars(trace_id=trace_id)
        log = structlog.get_logger().bind(trace_id=trace_id, **context)
        try:
            log.info(event)
            yield trace_id, log
        except Exception as exc:
            log.exception("handler_failed", handler=event, error=str(exc))
            logger.exception("Unhandled error in Slack listener", extra={"handler": event})
        finally:
            unbind_contextvars("trace_id")

    def _is_admin(self, user_id: str) -> bool:
        return is_user_authorized(user_id, self._settings.admin_user_ids)

    def _tell(self, messaging, *, user_id: str, text: str, channel_id: str | None = None) -> None:
        """Send *text* privately: ephemeral in *channel_id* when given, else by DM."""

        try:
            if channel_id:
                messaging.post_ephemeral(channel=channel_id, user=user_id, text=text)
            else:
                messaging.post_message(channel=user_id, text=text)
        except SlackApiError as exc:
            structlog.get_logger().warning("user_notice_failed", user_id=user_id, error=slack_error_code(exc))

    def _deny(self, messaging, ctx: ActionContext, log) -> None:
        log.warning("unauthorized_attempt", user_id=ctx.user_id)
        self._tell(messaging, user_id=ctx.user_id, text=DENIED_TEXT, channel_id=ctx.channel_id or self._settings.admin_channel_id)

    def _open_modal(self, messaging, trigger_id: str | None, view: dict, log) -> None:
        if not trigger_id:
            log.warning("modal_trigger_missing", callback_id=view.get("callback_id"))
            return
        try:
            messaging.open_modal(trigger_id=trigger_id, view=view)
        except SlackApiError as exc:
            log.error("modal_open_failed", callback_id=view.get("callback_id"), error=slack_error_code(exc))

    def _step(self, log, name: str, func: Callable[[], Any]) -> Any:
        """Run one side effect; failures are logged and the flow continues."""

        try:
            return func()
        except SlackApiError as exc:
            log.warning("side_effect_failed", step=name, error=slack_error_code(exc))
        except IntakeError as exc:
            log.warning("side_effect_failed", step=name, **exc.to_log())
        return None

    def _guarded(self, messaging, ctx: ActionContext, log, func: Callable[[], None]) -> None:
        """Run background work, turning typed errors into a private notice."""

        try:
            func()
        except IntakeError as exc:
            log.error("action_failed", **exc.to_log())
            self._tell(messaging, user_id=ctx.user_id, text=format_for_user(exc), channel_id=ctx.channel_id)
        except SlackApiError as exc:
            log.error("action_failed", error=slack_error_code(exc))
            self._tell(messaging, user_id=ctx.user_id, text=format_for_user(exc), channel_id=ctx.channel_id)

    # request lookup

    def _fetch_request(self, request_id: str) -> IntakeRequest | None:
        """Read *request_id*, retrying briefly to ride out read-after-write lag."""

        for attempt in range(1, self._fetch_attempts + 1):
            request = self._store.get_request(request_id)
            if request is not None:
                return request
            if attempt < self._fetch_attempts:
                self._sleep(self._fetch_delay)
        return None

    def _load_or_recover(self, messaging, ctx: ActionContext, log, *, message: Mapping[str, Any] | None = None):
        request = self._fetch_request(ctx.request_id)
        if request is not None:
            return request

        cached = self._store.get_cached(ctx.request_id)
        if cached is not None:
            log.info("request_served_from_cache", reason="fetch_missed")
            return IntakeRequest.model_validate({**cached, "source": "cache"})

        log.warning("request_missing", request_id=ctx.request_id)
        channel_id = ctx.channel_id or self._settings.admin_channel_id
        if message is None and ctx.message_ts:
            try:
                message = messaging.fetch_message(channel=channel_id, ts=ctx.message_ts)
            except SlackApiError as exc:
                log.warning("admin_message_fetch_failed", error=slack_error_code(exc))

        rebuilt = reconstruct_request(message, channel_id=channel_id, message_ts=ctx.message_ts)
        if rebuilt is None or rebuilt.request_id != ctx.request_id:
            if ctx.message_ts:
                self._step(
                    log,
                    "mark_unavailable",
                    lambda: messaging.update_message(
                        channel=channel_id,
                        ts=ctx.message_ts,
                        **messages.build_unavailable_update(ctx.request_id),
                    ),
                )
            self._tell(messaging, user_id=ctx.user_id, text=NOT_FOUND_TEXT, channel_id=channel_id)
            return None

        data = rebuilt.to_store_data()
        try:
            self._store.save_request(rebuilt.request_id, data)
        except IntakeError as exc:
            log.warning("reconstructed_request_cached_only", **exc.to_log())
            self._store.cache_request(rebuilt.request_id, data)
        log.info("request_recovered", request_id=rebuilt.request_id)
        return rebuilt

    # home and entry points

    def handle_home_opened(self, event, client, logger) -> None:
        user_id = (event or {}).get("user")
        with self._traced("app_home_opened", logger, user_id=user_id) as (_, log):
            view = build_home_view(user_id, self._store.cached_requests_for(user_id) if user_id else ())
            try:
                self._messaging_factory(client).publish_home_view(user_id=user_id, view=view)
            except SlackApiError as exc:
                log.error("app_home_publish_failed", error=slack_error_code(exc))
                logger.error("Failed to publish App Home view", extra={"user_id": user_id})
                return
            log.info("app_home_published")

    def handle_request_command(self, ack, command, client, logger) -> None:
        with self._traced("slash_command_received", logger, command=command.get("command")) as (trace_id, log):
            try:
                context = parse_slash_command(command.get("text") or "")
            except ValueError as exc:
                ack({"response_type": "ephemeral", "text": str(exc)})
                return
            ack()
            messaging = self._messaging_factory(client)
            run_async(
                self._open_modal,
                messaging,
                command.get("trigger_id"),
                build_request_modal(context.kind),
                log,
                trace_id=trace_id,
            )

    def handle_home_open_request(self, ack, body, client, logger) -> None:
        with self._traced("home_request_button", logger) as (_, log):
            ack()
            action = (body.get("actions") or [{}])[0]
            kind = action.get("value") or ""
            try:
                view = build_request_modal(kind)
            except ValueError:
                log.warning("unknown_request_kind", kind=kind)
                return
            self._open_modal(self._messaging_factory(client), body.get("trigger_id"), view, log)

    # submission

    def handle_request_submission(self, ack, body, client, logger) -> None:
        with self._traced("request_submitted", logger) as (trace_id, log):
            metadata = decode_metadata(body.get("view"))
            kind = metadata.get("kind")
            try:
                get_definition(kind or "")
            except ValueError:
                ack(_errors("project_name", "Request type missing. Please reopen the form."))
                return
            try:
                fields = parse_request_submission(_state_payload(body), kind)
            except ValueError as exc:
                message = str(exc)
                block = "project_name"
                if ":" in message:
                    block, message = (part.strip() for part in message.split(":", 1))
                ack(_errors(block, message))
                return

            user_id = (body.get("user") or {}).get("id")
            if not user_id:
                ack(_errors("project_name", "We could not identify the submitting user."))
                return
            ack({"response_action": "clear"})
            run_async(
                self.process_submission,
                self._messaging_factory(client),
                kind=kind,
                fields=fields,
                user_id=user_id,
                trace_id=trace_id,
            )

    def process_submission(self, messaging, *, kind: str, fields: Mapping[str, Any], user_id: str) -> IntakeRequest | None:
        """Persist a new request and notify admins and the requester."""

        request = IntakeRequest(
            request_id=self._id_factory(kind),
            requested_by=user_id,
            status=PENDING,
            admin_channel_id=self._settings.admin_channel_id,
            **fields,
        )
        log = structlog.get_logger().bind(request_id=request.request_id, kind=kind, user_id=user_id)

        if kind == THREAT_MODELING and self._tracker is not None:
            url = self._step(log, "tracker_card", lambda: self._tracker.create_card(request))
            if url:
                request = request.model_copy(update={"tracker_url": url})

        try:
            response = messaging.post_message(
                channel=self._settings.admin_channel_id,
                **messages.build_admin_request_message(request),
            )
        except SlackApiError as exc:
            log.error("admin_notification_failed", error=slack_error_code(exc))
            self._tell(messaging, user_id=user_id, text=messages.build_submission_failed_notice()["text"])
            return None

        request = request.model_copy(update={"admin_message_ts": response.get("ts")})
        data = request.to_store_data()
        try:
            self._store.save_request(request.request_id, data)
        except IntakeError as exc:
            log.error("request_persist_failed", **exc.to_log())
            self._store.cache_request(request.request_id, data)

        self._step(
            log,
            "submission_confirmation",
            lambda: messaging.post_message(channel=user_id, **messages.build_submission_confirmation(request)),
        )
        log.info("request_created", admin_message_ts=request.admin_message_ts)
        return request

    # approve

    def handle_approve_button(self, ack, body, client, logger) -> None:
        with self._traced("approve_clicked", logger) as (_, log):
            ack()
            messaging = self._messaging_factory(client)
            try:
                ctx = parse_action_context(body)
            except ValueError as exc:
                log.warning("invalid_action_payload", error=str(exc))
                return
            if not self._is_admin(ctx.user_id):
                self._deny(messaging, ctx, log)
                return
            cached = self._store.get_cached(ctx.request_id) or {}
            view = build_approve_modal(
                ctx.request_id,
                channel_id=ctx.channel_id,
                message_ts=ctx.message_ts,
                tracker_url=cached.get("tracker_url"),
            )
            self._open_modal(messaging, ctx.trigger_id, view, log)

    def handle_approve_submission(self, ack, body, client, logger) -> None:
        with self._traced("approve_submitted", logger) as (trace_id, log):
            try:
                ctx = parse_view_context(body)
            except ValueError as exc:
                ack(_errors(TRACKER_URL_INPUT[0], str(exc)))
                return
            state = parse_state(_state_payload(body))
            tracker_url = text_value(state, TRACKER_URL_INPUT) or None
            if not _valid_url(tracker_url):
                ack(_errors(TRACKER_URL_INPUT[0], "Enter a valid http(s) link."))
                return
            ack()
            messaging = self._messaging_factory(client)
            if not self._is_admin(ctx.user_id):
                self._deny(messaging, ctx, log)
                return
            run_async(
                self.approve,
                messaging,
                ctx,
                tracker_url=tracker_url,
                assignees=selected_users(state, ASSIGNEES_INPUT),
                trace_id=trace_id,
            )

    def approve(self, messaging, ctx: ActionContext, *, tracker_url: str | None = None, assignees=()) -> None:
        log = structlog.get_logger().bind(request_id=ctx.request_id, user_id=ctx.user_id)
        self._guarded(messaging, ctx, log, lambda: self._approve(messaging, ctx, log, tracker_url, list(assignees)))

    def _approve(self, messaging, ctx: ActionContext, log, tracker_url: str | None, assignees: list[str]) -> None:
        request = self._load_or_recover(messaging, ctx, log)
        if request is None:
            return
        if request.status != PENDING:
            log.info("decision_already_recorded", status=request.status)
            self._tell(
                messaging,
                user_id=ctx.user_id,
                text=f"This request is already {_status_word(request.status)}.",
                channel_id=ctx.channel_id or self._settings.admin_channel_id,
            )
            return

        tracker_url = tracker_url or request.tracker_url
        assigned = unique_user_ids(assignees) or list(request.assigned_to)
        approved_at = utc_now_iso()
        approved = request.model_copy(update={"status": APPROVED, "assigned_to": assigned, "tracker_url": tracker_url})

        channel_id = self._step(log, "create_channel", lambda: self._create_request_channel(messaging, request))
        if channel_id:
            log = log.bind(channel_id=channel_id)
            self._step(
                log,
                "set_topic",
                lambda: messaging.set_channel_topic(
                    channel=channel_id,
                    topic=messages.build_channel_topic(approved, status_label(APPROVED)),
                ),
            )
            self._step(
                log,
                "set_purpose",
                lambda: messaging.set_channel_purpose(channel=channel_id, purpose=messages.build_channel_purpose(approved)),
            )
            members = unique_user_ids(
                [request.requested_by], request.team_members, assigned, self._settings.admin_user_ids
            )
            invited = self._step(log, "invite", lambda: messaging.invite_to_channel(channel=channel_id, user_ids=members))
            log.info("approval_channel_created", invited=invited or [])
            self._step(
                log,
                "welcome_message",
                lambda: messaging.post_message(
                    channel=channel_id,
                    **messages.build_welcome_message(approved, approved_by=ctx.user_id, tracker_url=tracker_url),
                ),
            )

        admin_ts = request.admin_message_ts or ctx.message_ts
        if admin_ts:
            self._step(
                log,
                "update_admin_message",
                lambda: messaging.update_message(
                    channel=ctx.channel_id or self._settings.admin_channel_id,
                    ts=admin_ts,
                    **messages.build_approved_update(
                        approved, approved_by=ctx.user_id, channel_id=channel_id, tracker_url=tracker_url
                    ),
                ),
            )
        self._step(
            log,
            "notify_requester",
            lambda: messaging.post_message(
                channel=request.requested_by,
                **messages.build_approval_dm(approved, channel_id=channel_id),
            ),
        )
        self._step(
            log,
            "persist",
            lambda: self._store.update_request(
                request.request_id,
                {
                    "status": APPROVED,
                    "channel_id": channel_id,
                    "approved_by": ctx.user_id,
                    "approved_at": approved_at,
                    "tracker_url": tracker_url,
                    "assigned_to": assigned,
                    "list_item_id": request.list_item_id,
                },
            ),
        )
        log.info("approved", decided_by=ctx.user_id)

    def _create_request_channel(self, messaging, request: IntakeRequest) -> str:
        definition = get_definition(request.kind)
        suffix = request.request_id.rsplit("-", 1)[-1][-6:]
        name = f"{definition.prefix.lower()}-{sanitize_channel_name(request.project_name)}-{suffix}"
        return messaging.create_channel(name=name[:CHANNEL_NAME_LIMIT], is_private=True)

    # reject

    def handle_reject_button(self, ack, body, client, logger) -> None:
        with self._traced("reject_clicked", logger) as (_, log):
            ack()
            messaging = self._messaging_factory(client)
            try:
                ctx = parse_action_context(body)
            except ValueError as exc:
                log.warning("invalid_action_payload", error=str(exc))
                return
            if not self._is_admin(ctx.user_id):
                self._deny(messaging, ctx, log)
                return
            view = build_reject_modal(ctx.request_id, channel_id=ctx.channel_id, message_ts=ctx.message_ts)
            self._open_modal(messaging, ctx.trigger_id, view, log)

    def handle_reject_submission(self, ack, body, client, logger) -> None:
        with self._traced("reject_submitted", logger) as (trace_id, log):
            try:
                ctx = parse_view_context(body)
            except ValueError as exc:
                ack(_errors(REJECTION_REASON_INPUT[0], str(exc)))
                return
            reason = text_value(parse_state(_state_payload(body)), REJECTION_REASON_INPUT)
            if not reason:
                ack(_errors(REJECTION_REASON_INPUT[0], "A reason is required."))
                return
            ack()
            messaging = self._messaging_factory(client)
            if not self._is_admin(ctx.user_id):
                self._deny(messaging, ctx, log)
                return
            run_async(self.reject, messaging, ctx, reason=reason, trace_id=trace_id)

    def reject(self, messaging, ctx: ActionContext, *, reason: str) -> None:
        log = structlog.get_logger().bind(request_id=ctx.request_id, user_id=ctx.user_id)
        self._guarded(messaging, ctx, log, lambda: self._reject(messaging, ctx, log, reason))

    def _reject(self, messaging, ctx: ActionContext, log, reason: str) -> None:
        request = self._load_or_recover(messaging, ctx, log)
        if request is None:
            return
        if request.status != PENDING:
            log.info("decision_already_recorded", status=request.status)
            self._tell(
                messaging,
                user_id=ctx.user_id,
                text=f"This request is already {_status_word(request.status)}.",
                channel_id=ctx.channel_id or self._settings.admin_channel_id,
            )
            return

        admin_ts = request.admin_message_ts or ctx.message_ts
        if admin_ts:
            self._step(
                log,
                "update_admin_message",
                lambda: messaging.update_message(
                    channel=ctx.channel_id or self._settings.admin_channel_id,
                    ts=admin_ts,
                    **messages.build_rejected_update(request, rejected_by=ctx.user_id, reason=reason),
                ),
            )
        self._step(
            log,
            "notify_requester",
            lambda: messaging.post_message(
                channel=request.requested_by, **messages.build_rejection_dm(request, reason=reason)
            ),
        )
        self._step(
            log,
            "persist",
            lambda: self._store.update_request(
                request.request_id,
                {
                    "status": REJECTED,
                    "rejected_by": ctx.user_id,
                    "rejected_at": utc_now_iso(),
                    "rejection_reason": reason,
                    "list_item_id": request.list_item_id,
                },
            ),
        )
        log.info("rejected", decided_by=ctx.user_id)

    # request info and reply

    def handle_request_info_button(self, ack, body, client, logger) -> None:
        with self._traced("request_info_clicked", logger) as (_, log):
            ack()
            messaging = self._messaging_factory(client)
            try:
                ctx = parse_action_context(body)
            except ValueError as exc:
                log.warning("invalid_action_payload", error=str(exc))
                return
            if not self._is_admin(ctx.user_id):
                self._deny(messaging, ctx, log)
                return
            view = build_request_info_modal(ctx.request_id, channel_id=ctx.channel_id, message_ts=ctx.message_ts)
            self._open_modal(messaging, ctx.trigger_id, view, log)

    def handle_request_info_submission(self, ack, body, client, logger) -> None:
        with self._traced("request_info_submitted", logger) as (trace_id, log):
            try:
                ctx = parse_view_context(body)
            except ValueError as exc:
                ack(_errors(INFO_REQUEST_INPUT[0], str(exc)))
                return
            question = text_value(parse_state(_state_payload(body)), INFO_REQUEST_INPUT)
            if not question:
                ack(_errors(INFO_REQUEST_INPUT[0], "Write what you need to know."))
                return
            ack()
            messaging = self._messaging_factory(client)
            if not self._is_admin(ctx.user_id):
                self._deny(messaging, ctx, log)
                return
            run_async(self.request_info, messaging, ctx, question=question, trace_id=trace_id)

    def request_info(self, messaging, ctx: ActionContext, *, question: str) -> None:
        log = structlog.get_logger().bind(request_id=ctx.request_id, user_id=ctx.user_id)
        self._guarded(messaging, ctx, log, lambda: self._request_info(messaging, ctx, log, question))

    def _request_info(self, messaging, ctx: ActionContext, log, question: str) -> None:
        request = self._load_or_recover(messaging, ctx, log)
        if request is None:
            return
        self._step(
            log,
            "notify_requester",
            lambda: messaging.post_message(
                channel=request.requested_by,
                **messages.build_info_request_dm(request, asked_by=ctx.user_id, question=question),
            ),
        )
        admin_ts = request.admin_message_ts or ctx.message_ts
        self._step(
            log,
            "thread_reply",
            lambda: messaging.post_message(
                channel=ctx.channel_id or self._settings.admin_channel_id,
                thread_ts=admin_ts,
                **messages.build_info_request_thread(
                    asked_by=ctx.user_id, requested_by=request.requested_by, question=question
                ),
            ),
        )
        log.info("info_requested")

    def handle_reply_button(self, ack, body, client, logger) -> None:
        with self._traced("reply_clicked", logger) as (_, log):
            ack()
            try:
                ctx = parse_action_context(body)
            except ValueError as exc:
                log.warning("invalid_action_payload", error=str(exc))
                return
            self._open_modal(self._messaging_factory(client), ctx.trigger_id, build_reply_modal(ctx.request_id), log)

    def handle_reply_submission(self, ack, body, client, logger) -> None:
        with self._traced("reply_submitted", logger) as (trace_id, log):
            try:
                ctx = parse_view_context(body)
            except ValueError as exc:
                ack(_errors(REPLY_MESSAGE_INPUT[0], str(exc)))
                return
            reply = text_value(parse_state(_state_payload(body)), REPLY_MESSAGE_INPUT)
            if not reply:
                ack(_errors(REPLY_MESSAGE_INPUT[0], "Write a reply."))
                return
            ack()
            run_async(self.reply, self._messaging_factory(client), ctx, message=reply, trace_id=trace_id)

    def reply(self, messaging, ctx: ActionContext, *, message: str) -> None:
        log = structlog.get_logger().bind(request_id=ctx.request_id, user_id=ctx.user_id)
        self._guarded(messaging, ctx, log, lambda: self._reply(messaging, ctx, log, message))

    def _reply(self, messaging, ctx: ActionContext, log, message: str) -> None:
        request = self._fetch_request(ctx.request_id)
        if request is None:
            log.warning("request_missing")
            self._tell(messaging, user_id=ctx.user_id, text=NOT_FOUND_TEXT)
            return
        channel = request.admin_channel_id or self._settings.admin_channel_id
        messaging.post_message(
            channel=channel,
            thread_ts=request.admin_message_ts,
            **messages.build_reply_thread(user_id=ctx.user_id, message=message),
        )
        self._tell(messaging, user_id=ctx.user_id, text=f"Your reply about {request.request_id} was sent to the security team.")
        log.info("reply_forwarded")

    # status updates

    def handle_update_status_button(self, ack, body, client, logger) -> None:
        with self._traced("update_status_clicked", logger) as (_, log):
            ack()
            messaging = self._messaging_factory(client)
            try:
                ctx = parse_action_context(body)
            except ValueError as exc:
                log.warning("invalid_action_payload", error=str(exc))
                return
            if not self._is_admin(ctx.user_id):
                self._deny(messaging, ctx, log)
                return
            self._open_modal(
                messaging,
                ctx.trigger_id,
                build_status_update_modal(ctx.request_id, channel_id=ctx.channel_id),
                log,
            )

    def handle_status_update_submission(self, ack, body, client, logger) -> None:
        with self._traced("status_update_submitted", logger) as (trace_id, log):
            try:
                ctx = parse_view_context(body)
            except ValueError as exc:
                ack(_errors(STATUS_SELECT_INPUT[0], str(exc)))
                return
            state = parse_state(_state_payload(body))
            selected = selected_value(state, STATUS_SELECT_INPUT)
            if selected is None or selected.value not in STATUS_UPDATE_LABELS:
                ack(_errors(STATUS_SELECT_INPUT[0], "Choose a status."))
                return
            ack()
            messaging = self._messaging_factory(client)
            if not self._is_admin(ctx.user_id):
                self._deny(messaging, ctx, log)
                return
            run_async(
                self.update_status,
                messaging,
                ctx,
                status=selected.value,
                note=text_value(state, STATUS_NOTE_INPUT) or None,
                trace_id=trace_id,
            )

    def update_status(self, messaging, ctx: ActionContext, *, status: str, note: str | None = None) -> None:
        log = structlog.get_logger().bind(request_id=ctx.request_id, user_id=ctx.user_id, new_status=status)
        self._guarded(messaging, ctx, log, lambda: self._update_status(messaging, ctx, log, status, note))

    def _update_status(self, messaging, ctx: ActionContext, log, status: str, note: str | None) -> None:
        request = self._fetch_request(ctx.request_id)
        if request is None:
            log.warning("request_missing")
            self._tell(messaging, user_id=ctx.user_id, text=NOT_FOUND_TEXT, channel_id=ctx.channel_id)
            return
        try:
            check_transition(request.status, status, request_id=request.request_id)
        except StatusTransitionError:
            log.info("status_transition_refused", current=request.status)
            self._tell(
                messaging,
                user_id=ctx.user_id,
                text=f"This request is {_status_word(request.status)} and cannot be moved to {_status_word(status)}.",
                channel_id=ctx.channel_id,
            )
            return

        status_text = STATUS_UPDATE_LABELS[status]
        channel_id = ctx.channel_id or request.channel_id
        if channel_id:
            self._step(
                log,
                "set_topic",
                lambda: messaging.set_channel_topic(
                    channel=channel_id, topic=messages.build_channel_topic(request, status_text)
                ),
            )
        self._store.add_status_history(
            request.request_id,
            StatusHistoryEntry.record(status=status, status_text=status_text, updated_by=ctx.user_id, note=note),
        )
        self._store.update_request(request.request_id, {"status": status, "list_item_id": request.list_item_id})
        if channel_id:
            self._step(
                log,
                "post_update",
                lambda: messaging.post_message(
                    channel=channel_id,
                    **messages.build_status_update_post(status_text=status_text, updated_by=ctx.user_id, note=note),
                ),
            )
        log.info("status_updated", previous=request.status)

    # self-service

    def handle_view_details(self, ack, body, client, logger) -> None:
        with self._traced("view_details_clicked", logger) as (_, log):
            ack()
            messaging = self._messaging_factory(client)
            try:
                ctx = parse_action_context(body)
            except ValueError as exc:
                log.warning("invalid_action_payload", error=str(exc))
                return
            try:
                request = self._store.get_request(ctx.request_id)
            except IntakeError as exc:
                log.error("request_lookup_failed", **exc.to_log())
                self._tell(messaging, user_id=ctx.user_id, text=format_for_user(exc), channel_id=ctx.channel_id)
                return
            if request is None:
                self._tell(messaging, user_id=ctx.user_id, text=NOT_FOUND_TEXT, channel_id=ctx.channel_id)
                return
            view = build_details_modal(request, self._store.get_status_history(ctx.request_id))
            self._open_modal(messaging, ctx.trigger_id, view, log)

    def handle_checklist_toggle(self, ack, body, client, logger) -> None:
        with self._traced("checklist_toggled", logger) as (_, log):
            ack()
            action = (body.get("actions") or [{}])[0]
            selections = [option.get("value") for option in action.get("selected_options") or [] if option.get("value")]
            message = body.get("message") or {}
            channel_id = (body.get("channel") or {}).get("id") or (body.get("container") or {}).get("channel_id")
            if not channel_id or not message.get("ts"):
                log.warning("checklist_message_missing")
                return
            blocks = messages.refresh_checklist_blocks(message.get("blocks") or [], selections)
            try:
                self._messaging_factory(client).update_message(
                    channel=channel_id,
                    ts=message["ts"],
                    text=message.get("text") or "Checklist updated",
                    blocks=blocks,
                )
            except SlackApiError as exc:
                log.warning("checklist_update_failed", error=slack_error_code(exc))
                return
            log.info("checklist_updated", completed=len(selections))

    # list provisioning

    def handle_create_list(self, ack, body, client, logger) -> None:
        with self._traced("create_list_clicked", logger) as (trace_id, log):
            ack()
            messaging = self._messaging_factory(client)
            user_id = (body.get("user") or {}).get("id") or ""
            channel_id = (body.get("channel") or {}).get("id") or self._settings.admin_channel_id
            ctx = ActionContext(request_id="-", user_id=user_id, channel_id=channel_id)
            if not self._is_admin(user_id):
                self._deny(messaging, ctx, log)
                return
            if self._store.is_initialized:
                self._tell(messaging, user_id=user_id, text="The request list already exists.", channel_id=channel_id)
                return
            if self._provisioner is None:
                self._tell(messaging, user_id=user_id, text="List provisioning is not available.", channel_id=channel_id)
                return
            run_async(self.create_list, messaging, ctx, trace_id=trace_id)

    def create_list(self, messaging, ctx: ActionContext) -> None:
        log = structlog.get_logger().bind(user_id=ctx.user_id)

        def provision() -> None:
            created = self._provisioner.provision(created_by=ctx.user_id)
            log.info("request_list_ready", list_id=created.list_id)

        self._guarded(messaging, ctx, log, provision)
