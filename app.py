"""Application entry point for the Slack security request intake bot."""

from __future__ import annotations

import re
import sys
from pathlib import Path
from uuid import uuid4

import structlog
from flask import Flask, jsonify, request
from slack_bolt import App as SlackApp
from slack_bolt.adapter.flask import SlackRequestHandler

from slack_intake import __version__
from slack_intake.actions.orchestrator import ActionOrchestrator
from slack_intake.config import AppSettings, get_settings
from slack_intake.errors import ConfigurationError, IntakeError
from slack_intake.lists.gateway import ListGateway
from slack_intake.lists.provisioning import ListProvisioner
from slack_intake.logging_config import configure_logging
from slack_intake.security import verify_slack_request
from slack_intake.slack_client import SlackClient
from slack_intake.store import RequestStore
from slack_intake.tracker import build_tracker
from slack_intake.workflows.home import OPEN_REQUEST_ACTION_PREFIX
from slack_intake.workflows.messages import (
    APPROVE_ACTION_ID,
    CHECKLIST_ACTION_ID,
    CREATE_LIST_ACTION_ID,
    REJECT_ACTION_ID,
    REPLY_ACTION_ID,
    REQUEST_INFO_ACTION_ID,
    UPDATE_STATUS_ACTION_ID,
    VIEW_DETAILS_ACTION_ID,
)
from slack_intake.workflows.modals import (
    APPROVE_MODAL_CALLBACK_ID,
    REJECT_MODAL_CALLBACK_ID,
    REPLY_MODAL_CALLBACK_ID,
    REQUEST_INFO_MODAL_CALLBACK_ID,
    REQUEST_MODAL_CALLBACK_ID,
    STATUS_UPDATE_MODAL_CALLBACK_ID,
)

EXTENSION_KEY = "slack_intake"
OPEN_REQUEST_ACTION_PATTERN = re.compile(rf"^{OPEN_REQUEST_ACTION_PREFIX}:.+$")


def _create_bolt_app(settings: AppSettings) -> SlackApp:
    """Initialise the Slack Bolt application using validated settings."""

    return SlackApp(
        token=settings.bot_token,
        signing_secret=settings.signing_secret,
        token_verification_enabled=False,
    )


def build_store(settings: AppSettings, client) -> RequestStore:
    """Construct the request store against *client*; nothing is fetched yet."""

    return RequestStore(
        ListGateway(client),
        SlackClient(client=client),
        admin_channel_id=settings.admin_channel_id,
        list_id=settings.request_list_id,
    )


def _build_orchestrator(settings: AppSettings, store: RequestStore, client) -> ActionOrchestrator:
    provisioner = ListProvisioner(
        store.gateway,
        store,
        SlackClient(client=client),
        admin_channel_id=settings.admin_channel_id,
    )
    return ActionOrchestrator(store, settings, tracker=build_tracker(settings), provisioner=provisioner)


def _register_error_handlers(flask_app: Flask) -> None:
    """Register a JSON error handler that attaches a trace identifier."""

    @flask_app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):  # type: ignore[override]
        trace_id = str(uuid4())
        flask_app.logger.exception("Unhandled application error", extra={"trace_id": trace_id}, exc_info=error)
        response = jsonify({"error": "internal_server_error", "trace_id": trace_id})
        response.status_code = 500
        return response


def _register_home_handlers(bolt_app: SlackApp, orchestrator: ActionOrchestrator) -> None:
    @bolt_app.event("app_home_opened")
    def handle_app_home_opened(event, client, logger):
        orchestrator.handle_home_opened(event=event, client=client, logger=logger)

    @bolt_app.action(OPEN_REQUEST_ACTION_PATTERN)
    def handle_open_request(ack, body, client, logger):
        orchestrator.handle_home_open_request(ack=ack, body=body, client=client, logger=logger)


def _register_slash_handlers(bolt_app: SlackApp, orchestrator: ActionOrchestrator) -> None:
    @bolt_app.command("/request")
    def handle_request_command(ack, command, client, logger):
        orchestrator.handle_request_command(ack=ack, command=command, client=client, logger=logger)


def _register_view_handlers(bolt_app: SlackApp, orchestrator: ActionOrchestrator) -> None:
    views = {
        REQUEST_MODAL_CALLBACK_ID: orchestrator.handle_request_submission,
        APPROVE_MODAL_CALLBACK_ID: orchestrator.handle_approve_submission,
        REJECT_MODAL_CALLBACK_ID: orchestrator.handle_reject_submission,
        REQUEST_INFO_MODAL_CALLBACK_ID: orchestrator.handle_request_info_submission,
        REPLY_MODAL_CALLBACK_ID: orchestrator.handle_reply_submission,
        STATUS_UPDATE_MODAL_CALLBACK_ID: orchestrator.handle_status_update_submission,
    }
    for callback_id, listener in views.items():
        bolt_app.view(callback_id)(_bind_listener(listener))


def _register_action_handlers(bolt_app: SlackApp, orchestrator: ActionOrchestrator) -> None:
    actions = {
        APPROVE_ACTION_ID: orchestrator.handle_approve_button,
        REJECT_ACTION_ID: orchestrator.handle_reject_button,
        REQUEST_INFO_ACTION_ID: orchestrator.handle_request_info_button,
        REPLY_ACTION_ID: orchestrator.handle_reply_button,
        UPDATE_STATUS_ACTION_ID: orchestrator.handle_update_status_button,
        VIEW_DETAILS_ACTION_ID: orchestrator.handle_view_details,
        CHECKLIST_ACTION_ID: orchestrator.handle_checklist_toggle,
        CREATE_LIST_ACTION_ID: orchestrator.handle_create_list,
    }
    for action_id, listener in actions.items():
        bolt_app.action(action_id)(_bind_listener(listener))


def _bind_listener(listener):
    # Bolt injects arguments by parameter name, so bound methods are wrapped.
    def handle(ack, body, client, logger):
        listener(ack=ack, body=body, client=client, logger=logger)

    handle.__name__ = getattr(listener, "__name__", "handle")
    return handle


_LOGGING_CONFIGURED = False


def _load_version() -> str:
    version_file = Path(__file__).resolve().parent / "VERSION"
    if version_file.exists():
        return version_file.read_text(encoding="utf-8").strip()
    return __version__


def create_app(
    settings: AppSettings | None = None,
    *,
    store: RequestStore | None = None,
    orchestrator: ActionOrchestrator | None = None,
) -> Flask:
    """Create and configure the Flask application."""

    global _LOGGING_CONFIGURED

    settings = settings or get_settings()
    if not _LOGGING_CONFIGURED:
        configure_logging(settings.log_level)
        _LOGGING_CONFIGURED = True

    bolt_app = _create_bolt_app(settings)
    handler = SlackRequestHandler(bolt_app)

    if store is None:
        store = build_store(settings, bolt_app.client)
    if orchestrator is None:
        orchestrator = _build_orchestrator(settings, store, bolt_app.client)

    flask_app = Flask(__name__)
    flask_app.config["APP_VERSION"] = _load_version()
    flask_app.extensions[EXTENSION_KEY] = {"store": store, "orchestrator": orchestrator, "settings": settings}
    flask_app.logger.setLevel(settings.log_level)

    _register_error_handlers(flask_app)
    _register_home_handlers(bolt_app, orchestrator)
    _register_slash_handlers(bolt_app, orchestrator)
    _register_view_handlers(bolt_app, orchestrator)
    _register_action_handlers(bolt_app, orchestrator)

    @flask_app.route("/slack/events", methods=["POST"])
    def slack_events():
        raw_body = request.get_data(as_text=True)
        if not verify_slack_request(settings.signing_secret, request.headers, raw_body):
            structlog.get_logger().warning("slack_signature_rejected", path=request.path)
            response = jsonify({"error": "invalid_signature"})
            response.status_code = 401
            return response
        return handler.handle(request)

    @flask_app.route("/internal/is_alive", methods=["GET"])
    def is_alive():
        return "OK", 200

    @flask_app.route("/healthz", methods=["GET"])
    def healthz():
        health: dict[str, object] = {"ok": True}
        health["version"] = flask_app.config.get("APP_VERSION", "unknown")
        try:
            get_settings()
            health["config"] = "valid"
        except RuntimeError as exc:
            health["config"] = "invalid"
            health["config_error"] = str(exc)
            health["ok"] = False
        status = 200 if health["ok"] else 503
        return jsonify(health), status

    return flask_app


def bootstrap(settings: AppSettings | None = None) -> Flask:
    """Build the app, connect the store and verify the request list."""

    settings = settings or get_settings()
    flask_app = create_app(settings)
    store: RequestStore = flask_app.extensions[EXTENSION_KEY]["store"]
    log = structlog.get_logger().bind(list_id=settings.request_list_id)

    store.connect()
    if settings.request_list_id and not store.health_check():
        raise ConfigurationError("Request list health check failed", list_id=settings.request_list_id)
    log.info("startup_complete", initialized=store.is_initialized, version=flask_app.config["APP_VERSION"])
    return flask_app


def main() -> None:
    try:
        settings = get_settings()
        application = bootstrap(settings)
    except (RuntimeError, IntakeError) as exc:
        structlog.get_logger().error("startup_failed", error=str(exc))
        sys.exit(1)
    application.run(host="0.0.0.0", port=settings.port)


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    main()
