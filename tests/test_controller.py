"""Tests for WatchExecController."""

import io
import logging
import os
import sys
from unittest.mock import MagicMock

import pytest

from conftest import COOKED, FakeRunner, FakeTerminalBackend, exited
from watchexec_core.config import UsageError, WatchExecConfig
from watchexec_core.log import SUCCESS
from watchexec_core.models import StopReason, WatchAction, WatchEvent
from watchexec_core.patterns import PatternCompileError, PatternSpec
from watchexec_core.terminal import TerminalController

from watch_exec.controller import WatchExecController


@pytest.fixture
def make_controller(tmp_path):
    """Build a controller with in-memory terminal and mocked observer."""
    created = []

    def build(commands=("A", "B"), patterns=(), keys=b"", runner=None, **config_kwargs):
        config = WatchExecConfig(
            dirs=[tmp_path],
            patterns=list(patterns),
            commands=list(commands),
            **config_kwargs,
        )
        backend = FakeTerminalBackend(keys=keys)
        controller = WatchExecController(
            config,
            terminal=TerminalController(backend=backend),
            runner=runner if runner is not None else FakeRunner(),
            observer=MagicMock(),
        )
        controller.backend = backend
        created.append(controller)
        return controller

    yield build
    for controller in created:
        controller.stop()


class TestLifecycle:
    """Tests for start(), stop() and run()."""

    def test_start_enters_raw_mode_and_stop_restores(self, make_controller):
        controller = make_controller()
        controller.start()

        assert controller.started
        assert controller.terminal.attached
        assert controller.worker.running
        controller.file_watcher.observer.start.assert_called_once()

        controller.stop()

        assert not controller.started
        assert not controller.worker.running
        assert controller.backend.native["mode"] == COOKED

    def test_start_is_idempotent(self, make_controller):
        controller = make_controller()
        controller.start()
        controller.start()
        controller.file_watcher.observer.start.assert_called_once()

    def test_missing_directory_is_usage_error(self, tmp_path):
        config = WatchExecConfig(dirs=[tmp_path / "missing"], commands=["A"])
        backend = FakeTerminalBackend()
        controller = WatchExecController(
            config, terminal=TerminalController(backend=backend), runner=FakeRunner(), observer=MagicMock()
        )

        with pytest.raises(UsageError):
            controller.start()

        # Terminal never touched
        assert backend.writes == []

    def test_invalid_pattern_fails_construction(self, tmp_path):
        config = WatchExecConfig(dirs=[tmp_path], patterns=[PatternSpec("[abc")], commands=["A"])
        with pytest.raises(PatternCompileError):
            WatchExecController(config, terminal=TerminalController(backend=FakeTerminalBackend()))

    def test_q_quits_and_restores_terminal(self, make_controller):
        controller = make_controller(keys=b"xq")
        assert controller.run() == 0
        assert controller.backend.native["mode"] == COOKED
        assert not controller.worker.running

    def test_uppercase_q_quits(self, make_controller):
        controller = make_controller(keys=b"Qr")
        assert controller.run() == 0
        # 'r' after quit is never read
        assert controller.backend.keys == [ord("r")]

    def test_end_of_input_quits(self, make_controller):
        controller = make_controller(keys=b"")
        assert controller.run() == 0

    def test_keyboard_interrupt_restores_terminal(self, make_controller):
        controller = make_controller()

        def interrupted():
            raise KeyboardInterrupt

        controller.backend.read_char = interrupted

        with pytest.raises(KeyboardInterrupt):
            controller.run()
        assert controller.backend.native["mode"] == COOKED


class TestTriggers:
    """Tests for manual and file triggers."""

    def test_r_key_runs_queue_once(self, make_controller):
        runner = FakeRunner()
        controller = make_controller(commands=("A", "B"), keys=b"rq", runner=runner)
        backend = controller.backend
        read_char = backend.read_char

        def read_after_idle():
            if backend.keys == [ord("q")]:
                assert controller.worker.wait_idle(5)
            return read_char()

        backend.read_char = read_after_idle

        controller.run()

        assert runner.calls == ["A", "B"]
        assert controller.queue.run_count == 1

    def test_request_run(self, make_controller):
        results = []
        controller = make_controller()
        controller.on_run_finished = lambda source, result: results.append((source, result))
        controller.start()

        controller.request_run()
        assert controller.worker.wait_idle(5)

        assert len(results) == 1
        assert results[0][0].kind == "manual"
        assert results[0][1].succeeded

    def test_file_event_runs_queue(self, make_controller, tmp_path, caplog):
        runner = FakeRunner()
        controller = make_controller(patterns=[PatternSpec("*.c")], runner=runner)
        controller.start()

        with caplog.at_level(logging.INFO):
            controller.dispatcher.on_event(WatchEvent(WatchAction.MODIFIED, root=str(tmp_path), path="foo.c"))
            controller.dispatcher.on_event(WatchEvent(WatchAction.MODIFIED, root=str(tmp_path), path="foo.h"))
            assert controller.worker.wait_idle(5)

        assert runner.calls == ["A", "B"]
        assert f"Modified {os.path.join(str(tmp_path), 'foo.c')}..." in caplog.text

    def test_failure_keeps_watching(self, make_controller, tmp_path):
        runner = FakeRunner({"false": exited(1)})
        results = []
        controller = make_controller(commands=("false", "never"), runner=runner)
        controller.on_run_finished = lambda source, result: results.append(result)
        controller.start()

        event = WatchEvent(WatchAction.CREATED, root=str(tmp_path), path="x")
        controller.dispatcher.on_event(event)
        assert controller.worker.wait_idle(5)
        controller.dispatcher.on_event(event)
        assert controller.worker.wait_idle(5)

        assert [r.reason for r in results] == [StopReason.NON_ZERO_EXIT, StopReason.NON_ZERO_EXIT]
        assert runner.calls == ["false", "false"]
        assert controller.worker.running

    def test_restart_policy_is_passed_to_worker(self, make_controller):
        controller = make_controller(policy="restart")
        assert controller.worker.policy == "restart"


@pytest.mark.skipif(sys.platform == "win32" or " " in sys.executable, reason="POSIX child processes")
class TestEndToEnd:
    """Real commands through the whole pipeline (terminal and observer faked)."""

    def build(self, tmp_path, commands, patterns=()):
        config = WatchExecConfig(dirs=[tmp_path], patterns=list(patterns), commands=list(commands))
        output = io.BytesIO()
        controller = WatchExecController(
            config,
            terminal=TerminalController(backend=FakeTerminalBackend()),
            observer=MagicMock(),
            output=output,
        )
        return controller, output

    def test_modified_file_runs_both_commands(self, tmp_path, caplog):
        controller, output = self.build(
            tmp_path,
            [f"{sys.executable} -c print('A')", f"{sys.executable} -c print('B')"],
            [PatternSpec("*.c")],
        )
        controller.start()
        try:
            with caplog.at_level(logging.INFO):
                controller.dispatcher.on_event(
                    WatchEvent(WatchAction.MODIFIED, root=str(tmp_path), path="foo.c")
                )
                assert controller.worker.wait_idle(30)
        finally:
            controller.stop()

        assert "foo.c..." in caplog.text
        successes = [r for r in caplog.records if r.levelno == SUCCESS]
        assert len(successes) == 2
        assert output.getvalue() == b"A\nB\n"

    def test_failing_command_warns_and_stops(self, tmp_path, caplog):
        marker = tmp_path / "ran"
        controller, _ = self.build(
            tmp_path,
            [f"{sys.executable} -c exit(1)", f"{sys.executable} -c open({str(marker)!r},'w')"],
        )
        controller.start()
        try:
            with caplog.at_level(logging.WARNING):
                controller.request_run()
                assert controller.worker.wait_idle(30)
        finally:
            controller.stop()

        assert "failed with exit code 1" in caplog.text
        assert not marker.exists()
