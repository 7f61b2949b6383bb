"""termios backend for the terminal mode controller."""

import os
import sys
import termios

from watchexec_core.terminal import TerminalError, TermMode

# Indexes into the list returned by termios.tcgetattr()
LFLAG = 3
CC = 6


def copy_attrs(attrs: list) -> list:
    """Copy a tcgetattr() list, including its control character list."""
    copied = list(attrs)
    copied[CC] = list(attrs[CC])
    return copied


def mode_of(attrs: list) -> TermMode:
    """Translate termios attributes into a TermMode."""
    lflag = attrs[LFLAG]
    mode = TermMode(0)
    if lflag & termios.ECHO:
        mode |= TermMode.ECHO
    if lflag & termios.ICANON:
        # Canonical mode provides the line editor, which is always inserting.
        mode |= TermMode.LINE_INPUT | TermMode.INSERT
    if lflag & termios.ISIG:
        mode |= TermMode.CTRL_PROCESSING
    # Terminals always interpret escape sequences written to them.
    mode |= TermMode.VIRTUAL_PROCESSING
    return mode


def with_mode(attrs: list, mode: TermMode) -> list:
    """Return a copy of attrs with exactly the given mode applied.

    INSERT, MOUSE and VIRTUAL_PROCESSING have no termios equivalent and are
    ignored.
    """
    new = copy_attrs(attrs)
    lflag = new[LFLAG]

    if mode & TermMode.ECHO:
        lflag |= termios.ECHO | termios.ECHONL
    else:
        lflag &= ~(termios.ECHO | termios.ECHONL)

    if mode & TermMode.LINE_INPUT:
        lflag |= termios.ICANON
    else:
        lflag &= ~termios.ICANON
        # Deliver every byte as soon as it arrives.
        new[CC][termios.VMIN] = 1
        new[CC][termios.VTIME] = 0

    if mode & TermMode.CTRL_PROCESSING:
        lflag |= termios.ISIG
    else:
        lflag &= ~termios.ISIG

    new[LFLAG] = lflag
    return new


class PosixTerminalBackend:
    """Terminal backend for POSIX systems using termios on standard input."""

    def __init__(self, fd: int | None = None):
        """Initialize backend.

        Args:
            fd: File descriptor to control (defaults to sys.stdin)
        """
        if fd is None:
            try:
                fd = sys.stdin.fileno()
            except (AttributeError, OSError, ValueError):
                fd = None
        self.fd = fd

    def is_terminal(self) -> bool:
        return self.fd is not None and os.isatty(self.fd)

    def read_state(self) -> list:
        try:
            return termios.tcgetattr(self.fd)
        except termios.error as e:
            raise TerminalError(f"Failed to read terminal attributes: {e}") from e

    def write_state(self, native: list) -> None:
        try:
            termios.tcsetattr(self.fd, termios.TCSANOW, native)
        except termios.error as e:
            raise TerminalError(f"Failed to set terminal attributes: {e}") from e

    def mode_of(self, native: list) -> TermMode:
        return mode_of(native)

    def with_mode(self, native: list, mode: TermMode) -> list:
        return with_mode(native, mode)

    def read_char(self) -> bytes:
        if self.fd is None:
            return b""
        return os.read(self.fd, 1)
