"""Slack intake bot package initialisation."""

from .background import run_async  # noqa: F401
from .config import AppSettings, get_settings  # noqa: F401
from .logging_config import configure_logging  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "AppSettings",
    "get_settings",
    "run_async",
    "configure_logging",
    "__version__",
]
