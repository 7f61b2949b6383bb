"""Leveled, color-prefixed log output.

Every line goes to stdout with a level tag: ``[ERROR]``, ``[WARN]``,
``[INFO]`` or ``[SUCC]``. SUCC is an extra level between INFO and WARNING used
for "command ran successfully" lines.

When a TerminalController is attached, each record is written inside
``terminal.saved()`` so the handler never leaves a changed console mode behind.
"""

import logging
import sys
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from watchexec_core.terminal import TerminalController

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCC")

RESET = "\x1b[0m"

# level -> (tag, color prefix)
LEVEL_STYLES = {
    logging.DEBUG: ("[DEBUG]: ", "\x1b[2m"),
    logging.INFO: ("[INFO]: ", ""),
    SUCCESS: ("[SUCC]: ", "\x1b[32m"),
    logging.WARNING: ("[WARN]: ", "\x1b[33m"),
    logging.ERROR: ("[ERROR]: ", "\x1b[31m"),
    logging.CRITICAL: ("[ERROR]: ", "\x1b[31m"),
}


def log_success(logger: logging.Logger, msg: str, *args) -> None:
    """Log msg at the SUCC level."""
    logger.log(SUCCESS, msg, *args)


class ColorFormatter(logging.Formatter):
    """Formats records as ``<color>[TAG]: message<reset>``."""

    def __init__(self, use_color: bool = True):
        super().__init__("%(message)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        tag, color = LEVEL_STYLES.get(record.levelno, (f"[{record.levelname}]: ", ""))
        if self.use_color and color:
            return f"{color}{tag}{message}{RESET}"
        return f"{tag}{message}"


class TerminalStreamHandler(logging.StreamHandler):
    """StreamHandler that respects the terminal's save/restore discipline."""

    def __init__(self, stream: TextIO | None = None, terminal: "TerminalController | None" = None):
        super().__init__(stream if stream is not None else sys.stdout)
        self.terminal = terminal

    def emit(self, record: logging.LogRecord) -> None:
        if self.terminal is None or not self.terminal.attached:
            super().emit(record)
            return

        from watchexec_core.terminal import TermMode

        with self.terminal.saved():
            if not self.terminal.get_mode() & TermMode.VIRTUAL_PROCESSING:
                self.terminal.add_mode(TermMode.VIRTUAL_PROCESSING)
            super().emit(record)


def setup_logging(
    level: int | str = logging.INFO,
    terminal: "TerminalController | None" = None,
    stream: TextIO | None = None,
) -> TerminalStreamHandler:
    """Install the watch-exec handler on the root logger.

    Replaces any handler installed by a previous call, so calling it again
    (e.g. once the terminal is initialized) is safe.

    Args:
        level: Logging level name or number
        terminal: Optional TerminalController whose state must be preserved
        stream: Output stream (default: sys.stdout)

    Returns:
        The installed handler
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    target = stream if stream is not None else sys.stdout
    handler = TerminalStreamHandler(target, terminal=terminal)
    handler.setFormatter(ColorFormatter(use_color=_supports_color(target)))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, TerminalStreamHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
    return handler


def _supports_color(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty and isatty())
    except ValueError:
        return False
