"""Platform independent part of one external command execution."""

import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence

from watchexec_core.models import SessionState

# Read chunk size for captured output.
SUBPROC_PIPE_SIZE = 2048


class ProcessLaunchError(OSError):
    """The child process (or its pipe/console) could not be created."""


class ExecutionSession(ABC):
    """Live state of one external command.

    A session owns the OS process handle, any pipe or console handles it
    opened and the output buffer. ``close()`` releases all of them and is safe
    to call on every exit path, including after a failed spawn.
    """

    def __init__(self, argv: Sequence[str]):
        self.argv = list(argv)
        self.state = SessionState.NOT_STARTED
        self.output = bytearray()
        self.exit_code: int | None = None
        self._terminated = threading.Event()

    @property
    def terminated(self) -> bool:
        """Whether termination was requested."""
        return self._terminated.is_set()

    def request_termination(self) -> None:
        """Raise the cooperative flag and force-kill the process if it runs."""
        self._terminated.set()
        if self.state is SessionState.RUNNING:
            self.terminate()

    @abstractmethod
    def spawn(self) -> None:
        """Start the child with combined stdout/stderr captured.

        Raises:
            ProcessLaunchError: If the process could not be created
        """

    @abstractmethod
    def read_output(self) -> None:
        """Read captured output into self.output until end of stream."""

    @abstractmethod
    def wait(self) -> int:
        """Block until the child exits and return its exit code."""

    @abstractmethod
    def terminate(self) -> None:
        """Forcefully kill the child."""

    @abstractmethod
    def close(self) -> None:
        """Release every handle the session opened."""

    def __enter__(self) -> "ExecutionSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
