"""
Configuration defaults and environment overrides.

Every value can be overridden through a DYNAMIC_TERMINAL_* environment
variable; invalid numbers fall back to the default.
"""
from __future__ import annotations

import logging
import os

APP_NAME: str = "dynamic-terminal"
VERSION: str = "1.0.0"

ENV_PREFIX: str = "DYNAMIC_TERMINAL"
ENV_TIMEOUT_MS: str = f"{ENV_PREFIX}_TIMEOUT_MS"
ENV_UPDATE_FREQUENCY: str = f"{ENV_PREFIX}_UPDATE_FREQUENCY"
ENV_WRITE_LOG: str = f"{ENV_PREFIX}_WRITE_LOG"
ENV_DEBUG_LOG: str = f"{ENV_PREFIX}_DEBUG_LOG"

DEFAULT_TIMEOUT_MS: int = 10_000
DEFAULT_UPDATE_FREQUENCY_MS: int = 100
DEFAULT_WIDTH: int = 80
DEFAULT_HEIGHT: int = 30

NO_WORKER_ERROR: str = "No worker! Try restarting the worker"
TIMEOUT_ERROR: str = "Communication timeout"
NOT_STARTED_ERROR: str = "No terminal session to stop"


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def get_timeout_ms() -> int:
    """Milliseconds a caller waits for a command response."""
    return _int_from_env(ENV_TIMEOUT_MS, DEFAULT_TIMEOUT_MS)


def get_update_frequency_ms() -> int:
    """Milliseconds between spinner renders."""
    return _int_from_env(ENV_UPDATE_FREQUENCY, DEFAULT_UPDATE_FREQUENCY_MS)


def get_write_log_path() -> str:
    """File that receives a copy of every terminal write, or ''."""
    return os.environ.get(ENV_WRITE_LOG, "")


def get_debug_log_path() -> str:
    return os.environ.get(ENV_DEBUG_LOG, "")


_debug_handler: logging.Handler | None = None


def configure_debug_log() -> logging.Handler | None:
    """
    Send package debug logging to the file named by DYNAMIC_TERMINAL_DEBUG_LOG.

    stdout is the render surface, so debug output never goes to the terminal.
    Safe to call repeatedly; the handler is only attached once.
    """
    global _debug_handler
    path = get_debug_log_path()
    if not path or _debug_handler is not None:
        return _debug_handler
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
    package_logger = logging.getLogger("dynamic_terminal")
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG)
    _debug_handler = handler
    return handler
