"""Tests for the Flask application factory and startup."""

import json
from pathlib import Path
import sys
import time
from types import SimpleNamespace

import pytest
from flask import Response

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:  # pragma: no cover
    sys.path.insert(0, str(ROOT))

import app as app_module  # noqa: E402
from conftest import ADMIN, ADMIN_CHANNEL, LIST_ID, FakeSlackClient  # noqa: E402
from slack_intake import config, security  # noqa: E402
from slack_intake.errors import ConfigurationError  # noqa: E402
from slack_intake.lists.gateway import ListGateway  # noqa: E402
from slack_intake.lists.retry import RetryPolicy  # noqa: E402
from slack_intake.slack_client import SlackClient  # noqa: E402
from slack_intake.store import RequestStore  # noqa: E402

ENV_NAMES = ("SLACK_BOT_TOKEN", "SLACK_SIGNING_SECRET", "ADMIN_CHANNEL_ID", "ADMIN_USER_IDS", "REQUEST_LIST_ID")


class DummyHandler:
    called = False

    def __init__(self, bolt_app):
        self.bolt_app = bolt_app

    def handle(self, _request):
        DummyHandler.called = True
        return Response("", status=200)


def _seed_env(monkeypatch, **extra):
    monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-test")
    monkeypatch.setenv("SLACK_SIGNING_SECRET", "secret")
    monkeypatch.setenv("ADMIN_CHANNEL_ID", ADMIN_CHANNEL)
    monkeypatch.setenv("ADMIN_USER_IDS", f"{ADMIN},U2")
    for name, value in extra.items():
        monkeypatch.setenv(name, value)
    config.get_settings.cache_clear()


def _signed_headers(secret: str, body: str, timestamp: str) -> dict[str, str]:
    signature = security.compute_signature(secret, timestamp, body)
    return {
        security.SLACK_SIGNATURE_HEADER: signature,
        security.SLACK_TIMESTAMP_HEADER: timestamp,
    }


def _fake_store_factory(fake):
    def build(settings, _client):
        return RequestStore(
            ListGateway(fake, retry_policy=RetryPolicy(sleep=lambda _delay: None)),
            SlackClient(client=fake),
            admin_channel_id=settings.admin_channel_id,
            list_id=settings.request_list_id,
        )

    return build


def test_slack_events_route_uses_handler(monkeypatch):
    _seed_env(monkeypatch)

    DummyHandler.called = False
    monkeypatch.setattr(app_module, "SlackRequestHandler", DummyHandler)
    flask_app = app_module.create_app()

    body = "{}"
    timestamp = "1700000000"
    monkeypatch.setattr(security, "time", SimpleNamespace(time=lambda: int(timestamp)))

    response = flask_app.test_client().post(
        "/slack/events",
        data=body,
        content_type="application/json",
        headers=_signed_headers("secret", body, timestamp),
    )

    assert response.status_code == 200
    assert DummyHandler.called is True


def test_invalid_signature_returns_unauthorised(monkeypatch):
    _seed_env(monkeypatch)

    DummyHandler.called = False
    monkeypatch.setattr(app_module, "SlackRequestHandler", DummyHandler)
    flask_app = app_module.create_app()

    timestamp = "1700000000"
    monkeypatch.setattr(security, "time", SimpleNamespace(time=lambda: int(timestamp)))

    response = flask_app.test_client().post(
        "/slack/events",
        data="{}",
        content_type="application/json",
        headers={
            security.SLACK_SIGNATURE_HEADER: "v0=invalid",
            security.SLACK_TIMESTAMP_HEADER: timestamp,
        },
    )

    assert response.status_code == 401
    assert response.get_json()["error"] == "invalid_signature"
    assert DummyHandler.called is False


def test_stale_timestamp_rejected(monkeypatch):
    _seed_env(monkeypatch)

    DummyHandler.called = False
    monkeypatch.setattr(app_module, "SlackRequestHandler", DummyHandler)
    flask_app = app_module.create_app()

    body = "{}"
    monkeypatch.setattr(security, "time", SimpleNamespace(time=lambda: 2000))

    response = flask_app.test_client().post(
        "/slack/events",
        data=body,
        content_type="application/json",
        headers=_signed_headers("secret", body, "100"),
    )

    assert response.status_code == 401
    assert DummyHandler.called is False


def test_url_verification_reaches_bolt(monkeypatch):
    _seed_env(monkeypatch)
    flask_app = app_module.create_app()

    body = json.dumps({"type": "url_verification", "challenge": "challenge-token", "token": "legacy"})
    timestamp = str(int(time.time()))

    response = flask_app.test_client().post(
        "/slack/events",
        data=body,
        content_type="application/json",
        headers=_signed_headers("secret", body, timestamp),
    )

    assert response.status_code == 200
    assert response.get_json()["challenge"] == "challenge-token"


def test_liveness_and_health(monkeypatch):
    _seed_env(monkeypatch)
    flask_app = app_module.create_app()

    with flask_app.test_client() as client:
        assert client.get("/internal/is_alive").data == b"OK"
        response = client.get("/healthz")

    data = response.get_json()
    assert response.status_code == 200
    assert data["ok"] is True
    assert data["config"] == "valid"
    assert "version" in data


def test_health_reports_invalid_config(monkeypatch):
    _seed_env(monkeypatch)
    flask_app = app_module.create_app()
    monkeypatch.delenv("ADMIN_USER_IDS")
    config.get_settings.cache_clear()

    response = flask_app.test_client().get("/healthz")

    data = response.get_json()
    assert response.status_code == 503
    assert data["ok"] is False
    assert "ADMIN_USER_IDS" in data["config_error"]


def test_extension_exposes_wiring(monkeypatch):
    _seed_env(monkeypatch)

    flask_app = app_module.create_app()

    wiring = flask_app.extensions[app_module.EXTENSION_KEY]
    assert wiring["orchestrator"].store is wiring["store"]
    assert wiring["settings"].admin_user_ids == [ADMIN, "U2"]


def test_bootstrap_connects_store(monkeypatch):
    _seed_env(monkeypatch, REQUEST_LIST_ID=LIST_ID)
    fake = FakeSlackClient()
    fake.add_list()
    monkeypatch.setattr(app_module, "build_store", _fake_store_factory(fake))

    flask_app = app_module.bootstrap()

    store = flask_app.extensions[app_module.EXTENSION_KEY]["store"]
    assert store.is_initialized
    assert store.list_id == LIST_ID


def test_bootstrap_without_list_prompts_admins(monkeypatch):
    _seed_env(monkeypatch)
    fake = FakeSlackClient()
    monkeypatch.setattr(app_module, "build_store", _fake_store_factory(fake))

    flask_app = app_module.bootstrap()

    assert not flask_app.extensions[app_module.EXTENSION_KEY]["store"].is_initialized
    prompt = fake.messages_to(ADMIN_CHANNEL)[0]
    assert prompt["blocks"][-1]["elements"][0]["action_id"] == "create_request_list"


def test_bootstrap_fails_for_unreachable_list(monkeypatch):
    _seed_env(monkeypatch, REQUEST_LIST_ID="F0MISSING1")
    fake = FakeSlackClient()
    monkeypatch.setattr(app_module, "build_store", _fake_store_factory(fake))

    with pytest.raises(ConfigurationError):
        app_module.bootstrap()


def test_bootstrap_fails_health_check(monkeypatch):
    _seed_env(monkeypatch, REQUEST_LIST_ID=LIST_ID)
    fake = FakeSlackClient()
    fake.add_list()
    monkeypatch.setattr(app_module, "build_store", _fake_store_factory(fake))
    monkeypatch.setattr(RequestStore, "health_check", lambda self: False)

    with pytest.raises(ConfigurationError):
        app_module.bootstrap()


def test_main_exits_when_environment_is_incomplete(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    config.get_settings.cache_clear()

    with pytest.raises(SystemExit) as excinfo:
        app_module.main()

    assert excinfo.value.code == 1
