"""Windows console backend for the terminal mode controller.

Uses GetConsoleMode/SetConsoleMode on the standard input, output and error
handles through ctypes.
"""

import ctypes
from typing import NamedTuple

from watchexec_core.terminal import TerminalError, TermMode

STD_INPUT_HANDLE = -10
STD_OUTPUT_HANDLE = -11
STD_ERROR_HANDLE = -12
INVALID_HANDLE_VALUE = ctypes.c_void_p(-1).value

# Input handle modes
ENABLE_PROCESSED_INPUT = 0x0001
ENABLE_LINE_INPUT = 0x0002
ENABLE_ECHO_INPUT = 0x0004
ENABLE_MOUSE_INPUT = 0x0010
ENABLE_INSERT_MODE = 0x0020

# Output handle modes
ENABLE_PROCESSED_OUTPUT = 0x0001
ENABLE_VIRTUAL_TERMINAL_PROCESSING = 0x0004

VT_OUTPUT = ENABLE_PROCESSED_OUTPUT | ENABLE_VIRTUAL_TERMINAL_PROCESSING

# TermMode bit -> input handle flag
_INPUT_FLAGS = (
    (TermMode.ECHO, ENABLE_ECHO_INPUT),
    (TermMode.LINE_INPUT, ENABLE_LINE_INPUT),
    (TermMode.INSERT, ENABLE_INSERT_MODE),
    (TermMode.MOUSE, ENABLE_MOUSE_INPUT),
    (TermMode.CTRL_PROCESSING, ENABLE_PROCESSED_INPUT),
)


class ConsoleModes(NamedTuple):
    """Console mode DWORDs of the three standard handles."""

    stdin: int
    stdout: int
    stderr: int


def mode_of(modes: ConsoleModes) -> TermMode:
    """Translate console modes into a TermMode."""
    mode = TermMode(0)
    for term_flag, console_flag in _INPUT_FLAGS:
        if modes.stdin & console_flag:
            mode |= term_flag
    if (modes.stdout & VT_OUTPUT) == VT_OUTPUT and (modes.stderr & VT_OUTPUT) == VT_OUTPUT:
        mode |= TermMode.VIRTUAL_PROCESSING
    return mode


def with_mode(modes: ConsoleModes, mode: TermMode) -> ConsoleModes:
    """Return console modes with exactly the given mode applied."""
    stdin, stdout, stderr = modes
    for term_flag, console_flag in _INPUT_FLAGS:
        if mode & term_flag:
            stdin |= console_flag
        else:
            stdin &= ~console_flag

    if mode & TermMode.VIRTUAL_PROCESSING:
        stdout |= VT_OUTPUT
        stderr |= VT_OUTPUT
    else:
        stdout &= ~VT_OUTPUT
        stderr &= ~VT_OUTPUT
    return ConsoleModes(stdin, stdout, stderr)


def _kernel32():
    return ctypes.WinDLL("kernel32", use_last_error=True)


class WindowsTerminalBackend:
    """Terminal backend for the Windows console."""

    def __init__(self):
        self._kernel32 = _kernel32()
        self._kernel32.GetStdHandle.restype = ctypes.c_void_p
        self._kernel32.GetConsoleMode.argtypes = [ctypes.c_void_p, ctypes.POINTER(ctypes.c_ulong)]
        self._kernel32.SetConsoleMode.argtypes = [ctypes.c_void_p, ctypes.c_ulong]
        self._handles = tuple(
            self._kernel32.GetStdHandle(which)
            for which in (STD_INPUT_HANDLE, STD_OUTPUT_HANDLE, STD_ERROR_HANDLE)
        )

    def is_terminal(self) -> bool:
        mode = ctypes.c_ulong()
        handle = self._handles[0]
        if not handle or handle == INVALID_HANDLE_VALUE:
            return False
        return bool(self._kernel32.GetConsoleMode(handle, ctypes.byref(mode)))

    def read_state(self) -> ConsoleModes:
        values = []
        for name, handle in zip(ConsoleModes._fields, self._handles):
            mode = ctypes.c_ulong()
            if not self._kernel32.GetConsoleMode(handle, ctypes.byref(mode)):
                raise TerminalError(
                    ctypes.get_last_error(), f"Failed to get console mode for {name.upper()}"
                )
            values.append(mode.value)
        return ConsoleModes(*values)

    def write_state(self, native: ConsoleModes) -> None:
        for name, handle, value in zip(ConsoleModes._fields, self._handles, native):
            if not self._kernel32.SetConsoleMode(handle, ctypes.c_ulong(value)):
                raise TerminalError(
                    ctypes.get_last_error(),
                    f"Failed to set console mode for {name.upper()} (state: {value})",
                )

    def mode_of(self, native: ConsoleModes) -> TermMode:
        return mode_of(native)

    def with_mode(self, native: ConsoleModes, mode: TermMode) -> ConsoleModes:
        return with_mode(native, mode)

    def read_char(self) -> bytes:
        import msvcrt

        return msvcrt.getch()
