"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from watchexec_core.models import ExecResult, SessionState  # noqa: E402
from watchexec_core.terminal import TerminalController, TermMode  # noqa: E402

COOKED = TermMode.ECHO | TermMode.LINE_INPUT | TermMode.INSERT | TermMode.CTRL_PROCESSING


class FakeTerminalBackend:
    """In-memory terminal: the native state is a dict holding a TermMode."""

    def __init__(self, mode=COOKED, tty=True, keys=b""):
        self.native = {"mode": mode}
        self.tty = tty
        self.keys = list(keys)
        self.writes = []

    def is_terminal(self):
        return self.tty

    def read_state(self):
        return dict(self.native)

    def write_state(self, native):
        self.native = dict(native)
        self.writes.append(native["mode"])

    def mode_of(self, native):
        return native["mode"]

    def with_mode(self, native, mode):
        return {"mode": mode}

    def read_char(self):
        if not self.keys:
            return b""
        return bytes([self.keys.pop(0)])


class FakeRunner:
    """SubprocessRunner stand-in returning scripted results by display string."""

    def __init__(self, results=None):
        self.results = results or {}
        self.calls = []
        self.terminate_calls = 0

    def exec(self, argv, display=None):
        self.calls.append(display)
        return self.results.get(
            display, ExecResult(exit_code=0, finished=True, state=SessionState.COMPLETED)
        )

    def terminate(self):
        self.terminate_calls += 1
        return False


def exited(code):
    """ExecResult of a command that ran and exited with code."""
    return ExecResult(exit_code=code, finished=True, state=SessionState.COMPLETED)


def launch_failed():
    return ExecResult(finished=False, state=SessionState.FAILED_TO_START)


@pytest.fixture
def fake_backend():
    return FakeTerminalBackend()


@pytest.fixture
def terminal(fake_backend):
    """TerminalController on an in-memory backend."""
    return TerminalController(backend=fake_backend)


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def python_cmd():
    """Build an argv running a Python snippet with the current interpreter."""

    def build(code):
        return [sys.executable, "-c", code]

    return build


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo setup_logging() calls made by a test."""
    import logging

    from watchexec_core.log import TerminalStreamHandler

    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler, TerminalStreamHandler):
            root.removeHandler(handler)
    root.setLevel(level)
