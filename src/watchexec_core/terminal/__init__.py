"""Terminal mode controller.

Wraps the platform's console attributes (termios on POSIX, console modes on
Windows) behind a portable TermMode bitmask and keeps track of the state that
was active when the program started, so it can be restored exactly on exit.

Any component that changes the terminal mode should do it inside
``TerminalController.saved()``, which restores the state observed right before
the block, not a hardcoded default. That way nested changes compose in any
order.
"""

import logging
import sys
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import IntFlag
from typing import Any, Iterator, Protocol

logger = logging.getLogger(__name__)


class TermMode(IntFlag):
    """Portable terminal attributes."""

    ECHO = 1 << 0
    """Input is echoed back automatically."""

    LINE_INPUT = 1 << 1
    """Input is only delivered once enter is pressed."""

    INSERT = 1 << 2
    """Insert instead of overwrite when editing input."""

    MOUSE = 1 << 3
    """Mouse input events (Windows only)."""

    CTRL_PROCESSING = 1 << 4
    """Control sequences like Ctrl+C are handled by the system."""

    VIRTUAL_PROCESSING = 1 << 5
    """ANSI escape sequences in output are interpreted."""


NO_MODE = TermMode(0)


class TerminalError(OSError):
    """A console/terminal API call failed."""


@dataclass(frozen=True)
class TerminalState:
    """Snapshot of the terminal: portable mode plus the native attributes."""

    mode: TermMode
    native: Any


class TerminalBackend(Protocol):
    """Platform specific access to the console attributes."""

    def is_terminal(self) -> bool:
        """Whether standard input is an interactive terminal."""
        ...

    def read_state(self) -> Any:
        """Read the native attribute snapshot."""
        ...

    def write_state(self, native: Any) -> None:
        """Commit a native attribute snapshot."""
        ...

    def mode_of(self, native: Any) -> TermMode:
        """Translate a native snapshot into a TermMode."""
        ...

    def with_mode(self, native: Any, mode: TermMode) -> Any:
        """Return a copy of native with exactly the given mode applied."""
        ...

    def read_char(self) -> bytes:
        """Blocking read of one input byte; b"" at end of input."""
        ...


def create_backend() -> TerminalBackend:
    """Select the backend for the running platform."""
    if sys.platform == "win32":
        from watchexec_core.terminal.windows import WindowsTerminalBackend

        return WindowsTerminalBackend()

    from watchexec_core.terminal.posix import PosixTerminalBackend

    return PosixTerminalBackend()


class TerminalController:
    """Owns the terminal state for the lifetime of the program.

    Usage:
        terminal = TerminalController()
        terminal.init()          # capture initial state, enter raw mode
        try:
            key = terminal.get_char()
        finally:
            terminal.deinit()    # restore initial state exactly
    """

    # Modes removed by init() so single keystrokes arrive unechoed.
    RAW_OFF = TermMode.LINE_INPUT | TermMode.ECHO
    RAW_ON = TermMode.VIRTUAL_PROCESSING

    def __init__(self, backend: TerminalBackend | None = None):
        """Initialize controller.

        Args:
            backend: Platform backend (defaults to create_backend())
        """
        self._backend = backend if backend is not None else create_backend()
        self._lock = threading.RLock()
        self._initial: TerminalState | None = None
        self._current: TerminalState | None = None

    @property
    def attached(self) -> bool:
        """True between a successful init() and deinit()."""
        return self._current is not None

    @property
    def initial_state(self) -> TerminalState | None:
        return self._initial

    @property
    def current_state(self) -> TerminalState | None:
        return self._current

    def init(self) -> None:
        """Capture the initial state and apply the keyboard-control mode.

        Virtual-terminal processing is enabled, line input and echo are
        disabled, and the system's handling of Ctrl+C is left as it was.
        If standard input is not a terminal this only logs a warning.
        """
        with self._lock:
            if self._current is not None:
                return

            if not self._backend.is_terminal():
                logger.warning("Standard input is not a terminal, keys are read as they arrive")
                return

            self._initial = self._snapshot(self._backend.read_state())
            self._current = self._initial
            mode = (self._initial.mode | self.RAW_ON) & ~self.RAW_OFF
            self.set_mode(mode)
            logger.debug(f"Terminal mode {self._initial.mode!r} -> {self._current.mode!r}")

    def deinit(self) -> None:
        """Restore the state captured by init(), regardless of changes since."""
        with self._lock:
            if self._initial is None or self._current is None:
                return
            try:
                self.set_state(self._initial)
            finally:
                self._current = None

    def get_mode(self) -> TermMode:
        """Mode of the current state (NO_MODE when not attached)."""
        current = self._current
        return current.mode if current is not None else NO_MODE

    def set_mode(self, mode: TermMode) -> None:
        """Apply exactly the given mode and commit it."""
        with self._lock:
            if self._current is None:
                return
            native = self._backend.with_mode(self._current.native, mode)
            self.set_state(self._snapshot(native))

    def add_mode(self, mode: TermMode) -> None:
        """Turn on the given mode bits, leaving the others alone."""
        with self._lock:
            self.set_mode(self.get_mode() | mode)

    def sub_mode(self, mode: TermMode) -> None:
        """Turn off the given mode bits, leaving the others alone."""
        with self._lock:
            self.set_mode(self.get_mode() & ~mode)

    def set_state(self, state: TerminalState) -> None:
        """Commit a previously captured state."""
        with self._lock:
            self._backend.write_state(state.native)
            self._current = state

    @contextmanager
    def saved(self) -> Iterator[TerminalState | None]:
        """Restore the current state when the block exits.

        Yields:
            The captured state (None when not attached)
        """
        with self._lock:
            snapshot = self._current
            try:
                yield snapshot
            finally:
                if snapshot is not None and self._current is not None:
                    self.set_state(snapshot)

    def get_char(self) -> bytes:
        """Blocking read of one byte from standard input."""
        return self._backend.read_char()

    def _snapshot(self, native: Any) -> TerminalState:
        return TerminalState(mode=self._backend.mode_of(native), native=native)

    def __enter__(self) -> "TerminalController":
        self.init()
        return self

    def __exit__(self, *exc_info) -> None:
        self.deinit()


__all__ = [
    "NO_MODE",
    "TermMode",
    "TerminalBackend",
    "TerminalController",
    "TerminalError",
    "TerminalState",
    "create_backend",
]
