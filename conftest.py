"""
Root conftest.py — loads .env and registers custom markers.

Markers:
  @pytest.mark.tty   — needs a real interactive terminal; skipped unless
                       stdin is a tty or TTY_TESTS=1
"""
from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest


# ---------------------------------------------------------------------------
# Load .env file (if it exists) before any test collection
# ---------------------------------------------------------------------------

def _load_dotenv(path: Path) -> None:
    """Minimal .env parser — handles KEY=value, KEY="value", # comments."""
    if not path.exists():
        return
    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, _, raw_val = line.partition("=")
            key = key.strip()
            raw_val = raw_val.strip()
            if len(raw_val) >= 2 and raw_val[0] == raw_val[-1] and raw_val[0] in ('"', "'"):
                raw_val = raw_val[1:-1]
            # Shell environment wins
            if key and key not in os.environ:
                os.environ[key] = raw_val


_load_dotenv(Path(__file__).parent / ".env")


# ---------------------------------------------------------------------------
# Custom markers
# ---------------------------------------------------------------------------

def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "tty: mark test as requiring an interactive terminal (run with TTY_TESTS=1 or --tty flag)",
    )


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--tty",
        action="store_true",
        default=False,
        help="Run tests marked with @pytest.mark.tty (requires a real terminal on stdin)",
    )


def _stdin_is_tty() -> bool:
    try:
        return os.isatty(sys.__stdin__.fileno())
    except (AttributeError, OSError, ValueError):
        return False


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip @pytest.mark.tty tests unless --tty, TTY_TESTS=1, or stdin is a terminal."""
    run_tty = (
        config.getoption("--tty")
        or os.environ.get("TTY_TESTS", "").lower() in ("1", "true", "yes")
        or _stdin_is_tty()
    )
    skip_tty = pytest.mark.skip(reason="Terminal test — run with --tty or TTY_TESTS=1")
    for item in items:
        if "tty" in item.keywords and not run_tty:
            item.add_marker(skip_tty)
