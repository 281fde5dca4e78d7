"""Raw keyboard input for the watch loop."""

import os
import sys
import time
from typing import Optional, Protocol as TypingProtocol

from ..utils.logging_config import get_logger

logger = get_logger('keys')


class KeySource(TypingProtocol):
    """Byte stream of key presses with a bounded wait."""

    def read(self, timeout: float) -> Optional[bytes]:
        """Wait up to timeout seconds for input. None means nothing arrived."""
        ...

    def close(self) -> None:
        ...


class TerminalKeySource:
    """
    Reads single key presses from the controlling terminal.

    On POSIX the terminal is switched to raw input for the lifetime of the
    source so Ctrl+C and Ctrl+Q arrive as bytes instead of signals. Windows
    consoles are polled through msvcrt.
    """

    POLL_INTERVAL = 0.05  # seconds, Windows only

    def __init__(self, stream=None):
        self.stream = stream or sys.stdin
        self._fd: Optional[int] = None
        self._saved_attrs = None
        self._windows = os.name == 'nt'

    def open(self) -> "TerminalKeySource":
        if self._windows:
            return self
        import termios

        self._fd = self.stream.fileno()
        self._saved_attrs = termios.tcgetattr(self._fd)

        # Raw input, cooked output: no line buffering, echo, signal keys or
        # XON/XOFF, but "\n" still moves to the start of the next line.
        newattr = termios.tcgetattr(self._fd)
        newattr[0] = newattr[0] & ~termios.IXON
        newattr[3] = newattr[3] & ~termios.ICANON & ~termios.ECHO & ~termios.ISIG
        newattr[6][termios.VMIN] = 1
        newattr[6][termios.VTIME] = 0
        termios.tcsetattr(self._fd, termios.TCSANOW, newattr)
        logger.debug("Terminal switched to raw input mode")
        return self

    def read(self, timeout: float) -> Optional[bytes]:
        if self._windows:
            return self._read_windows(timeout)
        import select

        ready, _, _ = select.select([self._fd], [], [], max(0.0, timeout))
        if not ready:
            return None
        data = os.read(self._fd, 32)
        return data or None

    def _read_windows(self, timeout: float) -> Optional[bytes]:
        import msvcrt

        deadline = time.monotonic() + max(0.0, timeout)
        while True:
            if msvcrt.kbhit():
                return msvcrt.getch()
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            time.sleep(min(self.POLL_INTERVAL, remaining))

    def close(self) -> None:
        if self._saved_attrs is None:
            return
        import termios

        termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved_attrs)
        self._saved_attrs = None
        logger.debug("Terminal mode restored")

    def __enter__(self):
        return self.open()

    def __exit__(self, *args):
        self.close()
