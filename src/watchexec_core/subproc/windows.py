"""Windows execution session on a pseudo console.

The child runs attached to a ConPTY (through pywinpty) instead of a plain
pipe, so it keeps its ANSI formatting and behaves as it would interactively.
"""

import logging
import shutil

from winpty import PtyProcess, WinptyError

from watchexec_core.models import SessionState
from watchexec_core.subproc.base import SUBPROC_PIPE_SIZE, ExecutionSession, ProcessLaunchError

logger = logging.getLogger(__name__)


def _console_dimensions() -> tuple[int, int]:
    size = shutil.get_terminal_size((120, 40))
    return size.lines, size.columns


class WindowsSession(ExecutionSession):
    """Runs the child on a pseudo console and captures what it renders."""

    def __init__(self, argv):
        super().__init__(argv)
        self._pty: PtyProcess | None = None

    def spawn(self) -> None:
        try:
            self._pty = PtyProcess.spawn(self.argv, dimensions=_console_dimensions())
        except (OSError, WinptyError) as e:
            self.state = SessionState.FAILED_TO_START
            raise ProcessLaunchError(f"Could not create child process: {e}") from e
        self.state = SessionState.RUNNING

    def read_output(self) -> None:
        # Fixed size reads appended to a growing buffer until the console closes.
        while True:
            try:
                chunk = self._pty.read(SUBPROC_PIPE_SIZE)
            except EOFError:
                break
            if chunk:
                self.output.extend(chunk.encode("utf-8", errors="replace"))

    def wait(self) -> int:
        self.exit_code = self._pty.wait()
        return self.exit_code

    def terminate(self) -> None:
        if self._pty is not None and self._pty.isalive():
            self._pty.terminate(force=True)

    def close(self) -> None:
        if self._pty is None:
            return
        try:
            self._pty.close(force=True)
        except (OSError, WinptyError) as e:
            logger.debug(f"Error closing pseudo console: {e}")
        self._pty = None
