"""Minimal cross-platform wakeup event for handing work between threads.

``send()`` marks the event signaled, ``wait()`` blocks until it is signaled and
consumes the signal (auto-reset), ``close()`` releases the OS resources. One
waiter at a time is supported.

Backends:
    - Linux: eventfd
    - other POSIX: a self-pipe
    - Windows: an auto-reset kernel event object
"""

import ctypes
import os
import sys
from abc import ABC, abstractmethod


class _BaseEvent(ABC):
    def __init__(self):
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("Operation on closed event")

    @abstractmethod
    def send(self) -> None:
        """Mark the event signaled, waking the waiter."""

    @abstractmethod
    def wait(self) -> None:
        """Block until the event is signaled, then reset it."""

    @abstractmethod
    def close(self) -> None:
        """Release OS resources. Closing twice is a no-op."""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class EventFdEvent(_BaseEvent):
    """Event backed by a Linux eventfd counter."""

    def __init__(self):
        super().__init__()
        self._fd = os.eventfd(0, os.EFD_CLOEXEC)

    def fileno(self) -> int:
        return self._fd

    def send(self) -> None:
        self._check_open()
        os.eventfd_write(self._fd, 1)

    def wait(self) -> None:
        self._check_open()
        # Reading resets the counter to zero, coalescing multiple sends.
        os.eventfd_read(self._fd)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            os.close(self._fd)


class PipeEvent(_BaseEvent):
    """Event backed by a self-pipe."""

    def __init__(self):
        super().__init__()
        self._read_fd, self._write_fd = os.pipe()
        os.set_blocking(self._write_fd, False)

    def fileno(self) -> int:
        return self._read_fd

    def send(self) -> None:
        self._check_open()
        try:
            os.write(self._write_fd, b"\x01")
        except BlockingIOError:
            # Pipe full: the event is already signaled.
            pass

    def wait(self) -> None:
        self._check_open()
        os.read(self._read_fd, 1)
        # Drain pending signals without blocking so one wait consumes them all.
        os.set_blocking(self._read_fd, False)
        try:
            while os.read(self._read_fd, 512):
                pass
        except BlockingIOError:
            pass
        finally:
            os.set_blocking(self._read_fd, True)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            os.close(self._read_fd)
            os.close(self._write_fd)


class Win32Event(_BaseEvent):
    """Event backed by an auto-reset Windows event object."""

    INFINITE = 0xFFFFFFFF
    WAIT_FAILED = 0xFFFFFFFF

    def __init__(self):
        super().__init__()
        self._kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
        self._kernel32.CreateEventW.restype = ctypes.c_void_p
        self._kernel32.CreateEventW.argtypes = [ctypes.c_void_p, ctypes.c_int, ctypes.c_int, ctypes.c_wchar_p]
        self._kernel32.SetEvent.argtypes = [ctypes.c_void_p]
        self._kernel32.WaitForSingleObject.argtypes = [ctypes.c_void_p, ctypes.c_ulong]
        self._kernel32.WaitForSingleObject.restype = ctypes.c_ulong
        self._kernel32.CloseHandle.argtypes = [ctypes.c_void_p]

        self._handle = self._kernel32.CreateEventW(None, False, False, None)
        if not self._handle:
            raise OSError(ctypes.get_last_error(), "CreateEventW failed")

    def send(self) -> None:
        self._check_open()
        if not self._kernel32.SetEvent(self._handle):
            raise OSError(ctypes.get_last_error(), "SetEvent failed")

    def wait(self) -> None:
        self._check_open()
        if self._kernel32.WaitForSingleObject(self._handle, self.INFINITE) == self.WAIT_FAILED:
            raise OSError(ctypes.get_last_error(), "WaitForSingleObject failed")

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._kernel32.CloseHandle(self._handle)


def create_event() -> _BaseEvent:
    """Create the wakeup event for the running platform."""
    if sys.platform == "win32":
        return Win32Event()
    if hasattr(os, "eventfd"):
        return EventFdEvent()
    return PipeEvent()
