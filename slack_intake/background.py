"""Thread pool used for work that must run after a Slack event is acknowledged."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from contextvars import copy_context
from typing import Any, Callable

import structlog
from structlog.contextvars import bind_contextvars, get_contextvars

MAX_WORKERS = 4

_executor = ThreadPoolExecutor(max_workers=MAX_WORKERS, thread_name_prefix="intake-worker")


def _log_failure(future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        structlog.get_logger().error("background_task_failed", error=str(exc), error_type=type(exc).__name__)


def run_async(
    func: Callable[..., Any],
    /,
    *args: Any,
    trace_id: str | None = None,
    **kwargs: Any,
) -> Future:
    """Submit *func* to the shared pool, carrying the caller's log context."""

    context = copy_context()

    if trace_id is not None and context.run(lambda: get_contextvars().get("trace_id")) != trace_id:
        context.run(lambda: bind_contextvars(trace_id=trace_id))

    def runner() -> Any:
        return context.run(func, *args, **kwargs)

    future = _executor.submit(runner)
    future.add_done_callback(_log_failure)
    return future
