"""POSIX execution session: pipe plus a child process in its own session."""

import logging
import os
import signal
import subprocess

from watchexec_core.models import SessionState
from watchexec_core.subproc.base import SUBPROC_PIPE_SIZE, ExecutionSession, ProcessLaunchError

logger = logging.getLogger(__name__)


class PosixSession(ExecutionSession):
    """Runs the child with stdout and stderr on one pipe.

    The child gets its own process group so terminate() also reaches anything
    it spawned, and its stdin is /dev/null so it never competes with the
    keyboard loop for input.
    """

    def __init__(self, argv):
        super().__init__(argv)
        self._process: subprocess.Popen | None = None

    def spawn(self) -> None:
        try:
            self._process = subprocess.Popen(
                self.argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                start_new_session=True,
            )
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            self.state = SessionState.FAILED_TO_START
            raise ProcessLaunchError(f"Could not create child process: {e}") from e
        self.state = SessionState.RUNNING

    def read_output(self) -> None:
        fd = self._process.stdout.fileno()
        while True:
            chunk = os.read(fd, SUBPROC_PIPE_SIZE)
            if not chunk:
                break
            self.output.extend(chunk)

    def wait(self) -> int:
        self.exit_code = self._process.wait()
        return self.exit_code

    def terminate(self) -> None:
        process = self._process
        if process is None or process.poll() is not None:
            return
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        except PermissionError:
            process.kill()

    def close(self) -> None:
        process = self._process
        if process is None:
            return
        if process.poll() is None:
            # Abandoned mid-run (I/O error): do not leave a zombie behind.
            self.terminate()
            process.wait()
        if process.stdout is not None:
            process.stdout.close()
        self._process = None
