"""Copy translated text to the clipboard and expose a short-lived "copied" flag."""

from __future__ import annotations

import threading
from typing import Callable

import pyperclip

from .logging_utils import get_logger

LOGGER = get_logger(__name__, component="Clipboard")

DEFAULT_RESET_DELAY = 1.6  # seconds


class ClipboardFeedback:
    """``copied`` turns True after a successful copy and resets after ``reset_delay``."""

    def __init__(
        self,
        reset_delay: float = DEFAULT_RESET_DELAY,
        copier: Callable[[str], None] | None = None,
        timer_factory: Callable[[float, Callable[[], None]], threading.Timer] = threading.Timer,
    ) -> None:
        self.reset_delay = reset_delay
        self._copier = copier or pyperclip.copy
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._copying = False
        self.copied = False

    @property
    def copying(self) -> bool:
        return self._copying

    def copy(self, text: str | None) -> bool:
        content = (text or "").strip()
        with self._lock:
            if not content or self._copying:
                return False
            self._copying = True
        try:
            self._copier(content)
        except pyperclip.PyperclipException as exc:
            LOGGER.warning("Copy to clipboard failed.", details={"error": str(exc)})
            return False
        finally:
            with self._lock:
                self._copying = False

        with self._lock:
            self.copied = True
            if self._timer is not None:
                self._timer.cancel()
            self._timer = self._timer_factory(self.reset_delay, self._reset)
            self._timer.daemon = True
            self._timer.start()
        return True

    def _reset(self) -> None:
        with self._lock:
            self.copied = False
            self._timer = None

    def cancel(self) -> None:
        """Drop a pending reset (e.g. when the result view closes)."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self.copied = False


__all__ = ["ClipboardFeedback", "DEFAULT_RESET_DELAY"]
