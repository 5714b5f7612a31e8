"""
Engine worker: runs a RenderEngine on a dedicated thread.

Commands and spinner ticks land in one inbox queue and are processed strictly
one at a time in arrival order, so frame and cursor state never need locking.
Every command except ``destroy`` produces exactly one response, delivered
through the ``on_response`` callback on the worker thread.
"""
from __future__ import annotations

import atexit
import logging
import os
import queue
import threading
from typing import Any, Callable

from pydantic import ValidationError

from .config import NOT_STARTED_ERROR
from .engine import RenderEngine
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
    ResponseError,
    ResponseSuccess,
    parse_command,
)
from .terminal import Terminal

logger = logging.getLogger(__name__)

ResponseListener = Callable[[Response], None]

_TICK = object()
_SHUTDOWN = object()


def _success(cmd_id: str | None, command: str, data: Any = None) -> ResponseSuccess:
    return ResponseSuccess(id=cmd_id, command=command, data=data)


def _error(cmd_id: str | None, command: str, message: str) -> ResponseError:
    return ResponseError(id=cmd_id, command=command, error=message)


def _raise_priority() -> None:
    # Keep up with fast updates; most systems refuse without privileges
    try:
        os.setpriority(os.PRIO_PROCESS, threading.get_native_id(), -7)
    except (AttributeError, OSError) as exc:
        logger.debug("Could not raise worker priority: %s", exc)


class EngineWorker:
    """
    Owns the engine and the thread it runs on.

    ``post()`` may be called from any thread. Raw mappings are validated on
    the worker thread so that malformed commands still get an error response.
    """

    def __init__(self, terminal: Terminal, on_response: ResponseListener) -> None:
        self._on_response = on_response
        self._inbox: queue.Queue[object] = queue.Queue()
        self.engine = RenderEngine(terminal, post_tick=self._post_tick)
        self._thread = threading.Thread(target=self._run, name="dynamic-terminal", daemon=True)
        self._started = False

    @property
    def alive(self) -> bool:
        return self._thread.is_alive()

    def start(self) -> None:
        if self._started:
            return
        self._started = True
        self._thread.start()
        atexit.register(self._exit_hook)
        logger.debug("NEW worker has started")

    def post(self, command: RenderCommand | dict[str, Any]) -> None:
        self._inbox.put(command)

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def _post_tick(self) -> None:
        self._inbox.put(_TICK)

    def _exit_hook(self) -> None:
        if self.alive:
            self._inbox.put(_SHUTDOWN)
            self._thread.join(1.0)
            logger.debug("EXITHOOK cleanup complete")

    # =========================================================================
    # Loop
    # =========================================================================

    def _run(self) -> None:
        _raise_priority()
        while True:
            item = self._inbox.get()
            if item is _TICK:
                self._tick()
                continue
            if isinstance(item, dict):
                try:
                    item = parse_command(item)
                except ValidationError as e:
                    cmd_id = item.get("id")
                    cmd_type = str(item.get("type", "unknown"))
                    self._reply(_error(
                        cmd_id if isinstance(cmd_id, str) else None,
                        cmd_type,
                        f"Unknown command: {e}",
                    ))
                    continue
            if item is _SHUTDOWN or isinstance(item, CommandDestroy):
                logger.debug("DESTROY worker shutting down")
                self._shutdown()
                if item is not _SHUTDOWN:
                    # _SHUTDOWN comes from the hook itself while atexit runs
                    atexit.unregister(self._exit_hook)
                break
            self._reply(self._handle(item))

    def _tick(self) -> None:
        try:
            self.engine.tick()
        except Exception:
            logger.exception("Spinner render failed")

    def _shutdown(self) -> None:
        try:
            self.engine.destroy()
        except Exception:
            logger.exception("Cleanup on destroy failed")

    def _reply(self, response: Response) -> None:
        try:
            self._on_response(response)
        except Exception:
            logger.exception("Response listener failed for %s", response.id)

    def _handle(self, command: object) -> Response:
        cmd_id = getattr(command, "id", None)
        cmd_type = getattr(command, "type", type(command).__name__)
        logger.debug("COMMAND %s (%s)", cmd_type, cmd_id)
        try:
            return self._dispatch(command)
        except Exception as e:  # noqa: BLE001
            logger.exception("Command %s failed", cmd_type)
            return _error(cmd_id, cmd_type, str(e) or type(e).__name__)

    def _dispatch(self, command: object) -> Response:
        engine = self.engine
        if isinstance(command, CommandStart):
            engine.start(command.options)
            return _success(command.id, "start")

        elif isinstance(command, CommandStop):
            if not engine.stop(command.commit):
                return _error(command.id, "stop", NOT_STARTED_ERROR)
            return _success(command.id, "stop")

        elif isinstance(command, CommandUpdate):
            engine.update(command.lines)
            return _success(command.id, "update")

        elif isinstance(command, CommandAppend):
            engine.append(command.lines)
            return _success(command.id, "append")

        elif isinstance(command, CommandRender):
            if command.force:
                engine.reset_render()
            engine.render()
            return _success(command.id, "render")

        elif isinstance(command, CommandQueryLines):
            return _success(command.id, "query_lines", engine.get_lines())

        return _error(getattr(command, "id", None), "unknown", f"Unknown command: {command!r}")
