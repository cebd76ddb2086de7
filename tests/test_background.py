"""Tests for background task utilities."""

from __future__ import annotations

from pathlib import Path
import sys

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, get_contextvars
from structlog.testing import capture_logs

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:  # pragma: no cover
    sys.path.insert(0, str(ROOT))

from slack_intake.background import run_async  # noqa: E402


def test_run_async_carries_caller_trace_id():
    clear_contextvars()
    bind_contextvars(trace_id="trace-123")
    captured: dict[str, str] = {}

    future = run_async(lambda: captured.update(get_contextvars()))
    future.result(timeout=1)

    assert captured.get("trace_id") == "trace-123"

    clear_contextvars()


def test_run_async_seeds_explicit_trace_id():
    clear_contextvars()
    captured: dict[str, str] = {}

    future = run_async(lambda: captured.update(get_contextvars()), trace_id="trace-456")
    future.result(timeout=1)

    assert captured.get("trace_id") == "trace-456"
    assert get_contextvars().get("trace_id") is None

    clear_contextvars()


def test_run_async_passes_arguments_and_returns_result():
    future = run_async(lambda left, right=0: left + right, 2, right=3, trace_id="trace-1")

    assert future.result(timeout=1) == 5


def test_background_logs_include_trace_id():
    clear_contextvars()

    with capture_logs(processors=[structlog.contextvars.merge_contextvars]) as logs:
        future = run_async(lambda: structlog.get_logger().info("background_event"), trace_id="trace-789")
        future.result(timeout=1)

    event = next(log for log in logs if log.get("event") == "background_event")
    assert event.get("trace_id") == "trace-789"

    clear_contextvars()


def test_failed_task_surfaces_exception():
    def explode():
        raise RuntimeError("boom")

    future = run_async(explode)

    assert isinstance(future.exception(timeout=1), RuntimeError)
