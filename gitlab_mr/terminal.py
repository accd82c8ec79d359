# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Terminal drawing surface and raw-mode key reader for interactive widgets"""

import os
import select
import sys
import termios
from typing import List, Optional, TextIO

KEY_UP = "up"
KEY_DOWN = "down"
KEY_LEFT = "left"
KEY_RIGHT = "right"
KEY_PAGE_UP = "pageup"
KEY_PAGE_DOWN = "pagedown"
KEY_ENTER = "enter"
KEY_ESCAPE = "escape"
KEY_CTRL_C = "ctrl-c"

ESCAPE_SEQUENCES = {
    "\x1b[A": KEY_UP,
    "\x1b[B": KEY_DOWN,
    "\x1b[C": KEY_RIGHT,
    "\x1b[D": KEY_LEFT,
    "\x1bOA": KEY_UP,
    "\x1bOB": KEY_DOWN,
    "\x1bOC": KEY_RIGHT,
    "\x1bOD": KEY_LEFT,
    "\x1b[5~": KEY_PAGE_UP,
    "\x1b[6~": KEY_PAGE_DOWN,
}

SINGLE_KEYS = {
    "\r": KEY_ENTER,
    "\n": KEY_ENTER,
    "\x03": KEY_CTRL_C,
}

# wait for the rest of an escape sequence after a lone ESC byte
ESCAPE_TIMEOUT = 0.05


def parse_keys(data: str) -> List[str]:
    """Split raw terminal input into key names.

    Known escape sequences map to names such as "up" or "pagedown", a lone
    ESC becomes "escape", unknown sequences are dropped and printable
    characters are returned as themselves.
    """
    keys = []
    i = 0
    while i < len(data):
        char = data[i]
        if char == "\x1b":
            for sequence, name in ESCAPE_SEQUENCES.items():
                if data.startswith(sequence, i):
                    keys.append(name)
                    i += len(sequence)
                    break
            else:
                if i + 1 < len(data) and data[i + 1] in "[O":
                    # unknown CSI/SS3 sequence, skip to its final byte
                    j = i + 2
                    while j < len(data) and not data[j].isalpha() and data[j] != "~":
                        j += 1
                    i = j + 1
                else:
                    keys.append(KEY_ESCAPE)
                    i += 1
            continue
        keys.append(SINGLE_KEYS.get(char, char))
        i += 1
    return keys


class TerminalSurface:
    """Output operations a widget needs to redraw itself in place"""

    def write_line(self, text: str):
        raise NotImplementedError

    def move_up(self, count: int):
        raise NotImplementedError

    def clear_down(self):
        raise NotImplementedError

    def flush(self):
        pass


class AnsiSurface(TerminalSurface):
    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    def write_line(self, text: str):
        self.stream.write(f"{text}\n")

    def move_up(self, count: int):
        if count > 0:
            self.stream.write(f"\r\033[{count}A")

    def clear_down(self):
        self.stream.write("\033[J")

    def flush(self):
        self.stream.flush()


class RawKeyReader:
    """Owns the terminal mode while single keypresses are read.

    Echo, line buffering and signal generation are switched off on entry so
    Ctrl-C arrives as a key; the saved mode is restored on exit, whatever
    the reason for leaving.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdin
        self._fd: Optional[int] = None
        self._saved = None

    def __enter__(self) -> "RawKeyReader":
        self._fd = self.stream.fileno()
        self._saved = termios.tcgetattr(self._fd)
        mode = termios.tcgetattr(self._fd)
        mode[3] &= ~(termios.ECHO | termios.ICANON | termios.ISIG | termios.IEXTEN)
        mode[6][termios.VMIN] = 1
        mode[6][termios.VTIME] = 0
        termios.tcsetattr(self._fd, termios.TCSAFLUSH, mode)
        return self

    def __exit__(self, *exc):
        if self._saved is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved)
        self._saved = None
        return False

    def read_keys(self) -> List[str]:
        data = os.read(self._fd, 32)
        if not data:
            # stdin closed underneath us
            return [KEY_ESCAPE]
        if data == b"\x1b":
            ready, _, _ = select.select([self._fd], [], [], ESCAPE_TIMEOUT)
            if ready:
                data += os.read(self._fd, 32)
        return parse_keys(data.decode("utf-8", errors="ignore"))


def is_tty(stream) -> bool:
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty and isatty())
    except ValueError:
        return False
