"""
detpass - Display Helpers (clipboard + auto-clear)

Not part of derivation. The interactive front end uses these to copy a
password and to forget it again after a fixed delay.
"""

import logging
import threading
from typing import Callable, Optional

import pyperclip

logger = logging.getLogger("detpass.clipboard")


def copy_to_clipboard(text: str) -> bool:
    """
    Put text on the system clipboard.

    Returns:
        True on success, False when no clipboard mechanism is available
        (headless session, missing xclip/xsel, ...)
    """
    try:
        pyperclip.copy(text)
        return True
    except pyperclip.PyperclipException as exc:
        logger.debug("Clipboard copy failed: %s", type(exc).__name__)
        return False


def clear_clipboard(expected: str) -> bool:
    """
    Empty the clipboard, but only if it still holds `expected`.

    Anything the user copied since then is left alone.
    """
    try:
        if pyperclip.paste() != expected:
            return False
        pyperclip.copy("")
        return True
    except pyperclip.PyperclipException as exc:
        logger.debug("Clipboard clear failed: %s", type(exc).__name__)
        return False


class ClearTimer:
    """
    One pending "clear the displayed password" action.

    start() cancels the previous action before scheduling a new one, so only
    the newest password is ever cleared on schedule. cancel() (or leaving a
    `with` block) guarantees nothing fires afterwards.

    Usage:
        with ClearTimer(30, on_clear) as timer:
            timer.start()      # after every new password
    """

    def __init__(self, delay: float, action: Callable[[], None]):
        self.delay = delay
        self.action = action
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def start(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def _fire(self) -> None:
        with self._lock:
            if self._timer is not threading.current_thread():
                return  # replaced or cancelled meanwhile
            self._timer = None
        self.action()

    def __enter__(self) -> "ClearTimer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()
