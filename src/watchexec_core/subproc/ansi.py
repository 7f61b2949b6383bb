"""Filtering of captured child output before it reaches the shared terminal."""

import re

# Cursor to origin: ESC[H, ESC[;H, ESC[1;1H, ESC[0;0f, ... (rows/columns 0 or 1)
CURSOR_HOME_RE = rb"\x1b\[(?:[01]?(?:;[01]?)?)?[Hf]"

# Erase display: ESC[J, ESC[0J, ESC[1J, ESC[2J, ESC[3J
ERASE_DISPLAY_RE = rb"\x1b\[[0-3]?J"

DISRUPTIVE_SEQUENCES = re.compile(CURSOR_HOME_RE + rb"|" + ERASE_DISPLAY_RE)


def strip_disruptive_sequences(data: bytes) -> bytes:
    """Remove cursor-home and erase-display sequences, keep everything else.

    Args:
        data: Raw captured output

    Returns:
        Output safe to write to the terminal shared with the log lines
    """
    return DISRUPTIVE_SEQUENCES.sub(b"", data)
