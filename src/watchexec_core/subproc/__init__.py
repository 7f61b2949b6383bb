"""Cross-platform execution of one external command.

SubprocessRunner.exec() launches a command with stdout and stderr captured
together, waits for it, and forwards the filtered output to the shared
terminal. It never raises for OS failures: they are logged and reported
through ExecResult.finished.
"""

import logging
import sys
import threading
from collections.abc import Callable, Sequence
from contextlib import nullcontext
from typing import BinaryIO

from watchexec_core.models import ExecResult, SessionState
from watchexec_core.subproc.ansi import strip_disruptive_sequences
from watchexec_core.subproc.base import SUBPROC_PIPE_SIZE, ExecutionSession, ProcessLaunchError
from watchexec_core.terminal import TerminalController

logger = logging.getLogger(__name__)

SessionFactory = Callable[[Sequence[str]], ExecutionSession]


def create_session(argv: Sequence[str]) -> ExecutionSession:
    """Create the session implementation for the running platform."""
    if sys.platform == "win32":
        from watchexec_core.subproc.windows import WindowsSession

        return WindowsSession(argv)

    from watchexec_core.subproc.posix import PosixSession

    return PosixSession(argv)


class SubprocessRunner:
    """Runs commands one at a time and forwards their output.

    terminate() may be called from any thread while exec() is blocked; the
    live session is killed and its output is dropped.
    """

    def __init__(
        self,
        terminal: TerminalController | None = None,
        output: BinaryIO | None = None,
        session_factory: SessionFactory | None = None,
    ):
        """Initialize runner.

        Args:
            terminal: Controller whose state is preserved around output writes
            output: Binary stream for child output (default: sys.stdout.buffer)
            session_factory: Creates sessions (default: create_session)
        """
        self.terminal = terminal
        self.output = output
        self._session_factory = session_factory or create_session
        self._lock = threading.Lock()
        self._session: ExecutionSession | None = None

    @property
    def current_session(self) -> ExecutionSession | None:
        return self._session

    def exec(self, argv: Sequence[str], display: str | None = None) -> ExecResult:
        """Run argv to completion.

        Args:
            argv: Program name followed by its arguments
            display: Command string for log lines (default: argv joined)

        Returns:
            ExecResult; finished is False if the command could not be launched
            or its output could not be read
        """
        if not argv:
            logger.error("Cannot run empty command")
            return ExecResult(finished=False, state=SessionState.FAILED_TO_START)

        display = display if display is not None else " ".join(argv)
        logger.info(f"Running '{display}'...")

        session = self._session_factory(argv)
        with self._lock:
            self._session = session
        try:
            return self._run(session, display)
        finally:
            with self._lock:
                self._session = None
            session.close()

    def terminate(self) -> bool:
        """Kill the in-flight command, if any.

        Returns:
            True if a session was running
        """
        with self._lock:
            session = self._session
        if session is None:
            return False
        logger.debug(f"Terminating '{' '.join(session.argv)}'")
        session.request_termination()
        return True

    def _run(self, session: ExecutionSession, display: str) -> ExecResult:
        try:
            session.spawn()
        except ProcessLaunchError as e:
            logger.error(f"{e}")
            return ExecResult(finished=False, state=SessionState.FAILED_TO_START)

        if session.terminated:
            # Termination was requested while spawn() was still running.
            session.terminate()

        try:
            session.read_output()
            exit_code = session.wait()
        except OSError as e:
            if session.terminated:
                return self._terminated(session)
            logger.error(f"Failed to read output from child process '{display}': {e}")
            session.state = SessionState.COMPLETED
            return ExecResult(finished=False, output=bytes(session.output), state=session.state)

        if session.terminated:
            return self._terminated(session)

        session.state = SessionState.COMPLETED
        output = bytes(session.output)
        try:
            self._forward(output)
        except OSError as e:
            logger.error(f"Failed to write output of '{display}': {e}")
            return ExecResult(exit_code=exit_code, finished=False, output=output, state=session.state)

        return ExecResult(exit_code=exit_code, finished=True, output=output, state=session.state)

    def _terminated(self, session: ExecutionSession) -> ExecResult:
        session.state = SessionState.TERMINATED_BY_REQUEST
        exit_code = session.exit_code if session.exit_code is not None else -1
        return ExecResult(exit_code=exit_code, finished=False, state=session.state)

    def _forward(self, data: bytes) -> None:
        data = strip_disruptive_sequences(data)
        if not data:
            return
        if not data.endswith(b"\n"):
            data += b"\n"

        stream = self.output if self.output is not None else sys.stdout.buffer
        guard = self.terminal.saved() if self.terminal is not None else nullcontext()
        with guard:
            stream.write(data)
            stream.flush()


__all__ = [
    "SUBPROC_PIPE_SIZE",
    "ExecutionSession",
    "ProcessLaunchError",
    "SubprocessRunner",
    "create_session",
    "strip_disruptive_sequences",
]
