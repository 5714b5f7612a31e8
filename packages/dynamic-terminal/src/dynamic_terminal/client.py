"""
DynamicTerminal — async caller API for the render worker.

Every call sends a command tagged with a fresh correlation id and waits for
the matching response or the timeout, whichever comes first. Calls never
raise: failures return False (or an empty list) and leave a description in
``last_error``. A timed-out command is not cancelled on the worker; its
late response is dropped.
"""
from __future__ import annotations

import asyncio
import logging
import sys
import uuid
from typing import Any

from .config import NO_WORKER_ERROR, TIMEOUT_ERROR, configure_debug_log, get_timeout_ms
from .frame import SPINNER, Content, LogicalLine, normalize_lines
from .protocol import (
    CommandAppend,
    CommandDestroy,
    CommandQueryLines,
    CommandRender,
    CommandStart,
    CommandStop,
    CommandUpdate,
    RenderCommand,
    Response,
    TerminalOptions,
)
from .terminal import ProcessTerminal, Terminal
from .utils import green, red
from .worker import EngineWorker

logger = logging.getLogger(__name__)

if sys.platform == "win32":
    TICK_RAW = "√"
    CROSS_RAW = "×"
else:
    TICK_RAW = "✔"
    CROSS_RAW = "✖"


class WorkerStartError(RuntimeError):
    """The render worker could not be created."""


def _resolve(future: asyncio.Future[Response], response: Response) -> None:
    if not future.done():
        future.set_result(response)


class DynamicTerminal:
    """
    Keeps several lines of terminal output up to date, with colours and
    spinners, while the rendering work happens on a separate worker.

    Lines passed to update()/append() are copied when the call is made;
    mutate your LogicalLine objects freely and call update() again to show
    the changes.
    """

    SPINNER = SPINNER
    TICK = green(TICK_RAW)
    CROSS = red(CROSS_RAW)
    TICK_RAW = TICK_RAW
    CROSS_RAW = CROSS_RAW

    def __init__(self, terminal: Terminal | None = None, timeout_ms: int | None = None) -> None:
        self.last_error: str | None = None
        self.timeout_ms = timeout_ms or get_timeout_ms()
        self._terminal = terminal
        self._worker: EngineWorker | None = None
        self._pending: dict[str, asyncio.Future[Response]] = {}
        configure_debug_log()
        self.start_worker()

    @property
    def worker(self) -> EngineWorker | None:
        return self._worker

    def start_worker(self) -> None:
        """Start the worker if it is not running. Only needed after destroy()."""
        if self._worker is not None and self._worker.alive:
            return
        try:
            worker = EngineWorker(self._terminal or ProcessTerminal(), self._handle_response)
            worker.start()
        except (RuntimeError, OSError) as e:
            raise WorkerStartError(f"Could not start the render worker: {e}") from e
        self._worker = worker

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def start(self, options: TerminalOptions | None = None) -> bool:
        """Start a session; text written from now on may be replaced."""
        response = await self._send(CommandStart(options=options or TerminalOptions()))
        return response is not None

    async def stop(self, commit: bool = True) -> bool:
        """
        Stop the session, keeping (``commit``) or erasing what was written.

        The worker keeps running; call destroy() to terminate it.
        """
        response = await self._send(CommandStop(commit=commit))
        return response is not None

    def destroy(self) -> bool:
        """Tell the worker to clean up and exit. Does not wait."""
        worker = self._worker
        if worker is None:
            self.last_error = NO_WORKER_ERROR
            return False
        worker.post(CommandDestroy())
        self._worker = None
        return True

    async def update(self, content: Content) -> bool:
        """Replace the whole render queue with ``content``."""
        response = await self._send(CommandUpdate(lines=normalize_lines(content)))
        return response is not None

    async def append(self, content: Content) -> bool:
        """Add ``content`` to the end of the render queue."""
        response = await self._send(CommandAppend(lines=normalize_lines(content)))
        return response is not None

    async def force_render(self, force: bool = False) -> bool:
        """
        Render now. With ``force`` the whole region is repainted, which
        clears any stray text the diff could not know about.
        """
        response = await self._send(CommandRender(force=force))
        return response is not None

    async def get_render_queue(self) -> list[LogicalLine]:
        response = await self._send(CommandQueryLines())
        if response is None:
            return []
        return list(response.data or [])

    # =========================================================================
    # Internal
    # =========================================================================

    def _handle_response(self, response: Response) -> None:
        """Runs on the worker thread; hands the response to the waiting loop."""
        future = self._pending.get(response.id) if response.id else None
        if future is None:
            logger.debug("Dropping unmatched response to %s (%s)", response.command, response.id)
            return
        try:
            future.get_loop().call_soon_threadsafe(_resolve, future, response)
        except RuntimeError:
            logger.debug("Event loop closed before response to %s arrived", response.command)

    async def _send(self, command: RenderCommand, timeout_ms: int | None = None) -> Any:
        """Send a command and return its successful response, or None."""
        worker = self._worker
        if worker is None or not worker.alive:
            self._worker = None
            self.last_error = NO_WORKER_ERROR
            return None

        req_id = uuid.uuid4().hex
        full_command = command.model_copy(update={"id": req_id})
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Response] = loop.create_future()
        self._pending[req_id] = future
        timeout = (timeout_ms or self.timeout_ms) / 1000.0

        try:
            worker.post(full_command)
            response = await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            self.last_error = TIMEOUT_ERROR
            logger.debug("Timeout waiting for response to %s", command.type)
            return None
        except Exception as e:  # noqa: BLE001
            self.last_error = str(e) or type(e).__name__
            logger.exception("Sending %s failed", command.type)
            return None
        finally:
            self._pending.pop(req_id, None)

        if not response.success:
            self.last_error = response.error
            return None
        return response
