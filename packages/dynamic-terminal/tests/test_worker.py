"""Tests for dynamic_terminal.worker — command processing on the worker thread"""
from __future__ import annotations

import queue
import time

import pytest

from dynamic_terminal import worker as worker_module
from dynamic_terminal.config import NOT_STARTED_ERROR
from dynamic_terminal.frame import SPINNER, LogicalLine
from dynamic_terminal.protocol import (
    CommandAppend,
    CommandDestroy,
    CommandQueryLines,
    CommandRender,
    CommandStart,
    CommandStop,
    CommandUpdate,
    TerminalOptions,
)
from dynamic_terminal.worker import EngineWorker


@pytest.fixture
def responses():
    return queue.Queue()


@pytest.fixture
def worker(terminal, responses):
    w = EngineWorker(terminal, responses.put)
    w.start()
    yield w
    if w.alive:
        w.post(CommandDestroy())
        w.join(2.0)


def call(worker, responses, command):
    worker.post(command)
    return responses.get(timeout=2.0)


class TestCommands:
    def test_start_and_update(self, worker, responses, terminal):
        r = call(worker, responses, CommandStart(id="s"))
        assert r.success and r.id == "s" and r.command == "start"
        r = call(worker, responses, CommandUpdate(id="u", lines=[LogicalLine("hello")]))
        assert r.success and r.id == "u"
        assert terminal.lines == ["hello"]

    def test_append_and_query(self, worker, responses):
        call(worker, responses, CommandStart())
        call(worker, responses, CommandUpdate(lines=[LogicalLine("a")]))
        call(worker, responses, CommandAppend(lines=[LogicalLine("b")]))
        r = call(worker, responses, CommandQueryLines(id="q"))
        assert r.success
        assert [line.text for line in r.data] == ["a", "b"]

    def test_forced_render(self, worker, responses, terminal):
        call(worker, responses, CommandStart())
        call(worker, responses, CommandUpdate(lines=[LogicalLine("x")]))
        r = call(worker, responses, CommandRender(id="r", force=True))
        assert r.success and r.command == "render"
        assert terminal.lines == ["x"]

    def test_stop_without_session_is_error(self, worker, responses):
        r = call(worker, responses, CommandStop(id="st"))
        assert r.success is False
        assert r.id == "st"
        assert r.error == NOT_STARTED_ERROR

    def test_start_twice_succeeds(self, worker, responses):
        assert call(worker, responses, CommandStart()).success
        assert call(worker, responses, CommandStart()).success

    def test_responses_in_order(self, worker, responses):
        worker.post(CommandStart(id="1"))
        worker.post(CommandUpdate(id="2", lines=[LogicalLine("a")]))
        worker.post(CommandStop(id="3"))
        ids = [responses.get(timeout=2.0).id for _ in range(3)]
        assert ids == ["1", "2", "3"]


class TestRawCommands:
    def test_mapping_is_validated(self, worker, responses, terminal):
        call(worker, responses, {"type": "start", "id": "s"})
        r = call(worker, responses, {"type": "update", "id": "u", "lines": [{"text": "raw"}]})
        assert r.success
        assert terminal.lines == ["raw"]

    def test_unknown_command(self, worker, responses):
        r = call(worker, responses, {"type": "explode", "id": "x"})
        assert r.success is False
        assert r.id == "x"
        assert r.command == "explode"
        assert r.error.startswith("Unknown command")

    def test_non_string_id_not_echoed(self, worker, responses):
        r = call(worker, responses, {"type": "explode", "id": 7})
        assert r.id is None


class TestFailures:
    def test_engine_error_becomes_response(self, terminal, responses):
        w = EngineWorker(terminal, responses.put)

        def boom(content):
            raise ValueError("render failed")

        w.engine.update = boom
        w.start()
        try:
            call(w, responses, CommandStart())
            r = call(w, responses, CommandUpdate(id="u"))
            assert r.success is False
            assert r.error == "render failed"
            # The worker keeps serving
            assert call(w, responses, CommandQueryLines()).success
        finally:
            w.post(CommandDestroy())
            w.join(2.0)

    def test_listener_error_does_not_kill_worker(self, terminal):
        seen = queue.Queue()

        def listener(response):
            seen.put(response)
            raise RuntimeError("listener broke")

        w = EngineWorker(terminal, listener)
        w.start()
        try:
            w.post(CommandStart())
            seen.get(timeout=2.0)
            w.post(CommandQueryLines())
            assert seen.get(timeout=2.0).success
        finally:
            w.post(CommandDestroy())
            w.join(2.0)


class TestDestroy:
    def test_destroy_ends_thread_without_response(self, worker, responses, terminal):
        call(worker, responses, CommandStart())
        call(worker, responses, CommandUpdate(lines=[LogicalLine("bye")]))
        worker.post(CommandDestroy(id="d"))
        worker.join(2.0)
        assert not worker.alive
        assert responses.empty()
        assert worker.engine.destroyed
        assert terminal.lines == ["bye"]
        assert terminal.cursor_visible

    def test_destroy_drops_exit_hook(self, terminal, responses, monkeypatch):
        registered = []
        monkeypatch.setattr(worker_module.atexit, "register", registered.append)
        monkeypatch.setattr(worker_module.atexit, "unregister", registered.remove)
        w = EngineWorker(terminal, responses.put)
        w.start()
        assert registered == [w._exit_hook]
        w.post(CommandDestroy())
        w.join(2.0)
        assert not w.alive
        assert registered == []

    def test_exit_hook_stops_worker(self, terminal, responses, monkeypatch):
        registered = []
        monkeypatch.setattr(worker_module.atexit, "register", registered.append)
        monkeypatch.setattr(worker_module.atexit, "unregister", registered.remove)
        w = EngineWorker(terminal, responses.put)
        w.start()
        call(w, responses, CommandStart())
        call(w, responses, CommandUpdate(lines=[LogicalLine("last words")]))
        w._exit_hook()
        assert not w.alive
        assert w.engine.destroyed
        assert terminal.lines == ["last words"]
        # Left in place: atexit itself is running it
        assert registered == [w._exit_hook]


class TestSpinnerTicks:
    def test_ticks_render_through_inbox(self, worker, responses, terminal):
        call(worker, responses, CommandStart(options=TerminalOptions(update_frequency=10)))
        call(worker, responses, CommandUpdate(lines=[LogicalLine(f"{SPINNER} working")]))
        deadline = time.monotonic() + 2.0
        while "⠙" not in terminal.get_output() and time.monotonic() < deadline:
            time.sleep(0.01)
        call(worker, responses, CommandStop())
        assert "⠙" in terminal.get_output()
        assert not worker.engine.timer.armed
