"""Storage naming: collision-free on-disk names derived from client file names.

A storage name is ``<token>~<sanitized display name>``. The token is a
millisecond timestamp, extended with a per-process counter when the clock has
not advanced, and never contains the separator. Sanitization removes the
separator from the display name, so splitting on the first separator always
recovers the display name.
"""

import os
import re
import threading
import time
from typing import Callable, Optional

from common.constants import (
    MAX_DISPLAY_NAME_LENGTH,
    PLACEHOLDER_FILE_NAME,
    STORAGE_NAME_SEPARATOR,
)

_CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f]')
_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*' + re.escape(STORAGE_NAME_SEPARATOR) + r']')


def sanitize_display_name(name: Optional[str]) -> str:
    """
    Make a client-supplied file name safe to embed in a storage name.

    Args:
        name: File name as sent by the client (may include a path)

    Returns:
        Filesystem-safe name without the storage separator, or the
        placeholder when nothing usable is left
    """
    if not name:
        return PLACEHOLDER_FILE_NAME

    base = name.replace("\\", "/").rsplit("/", 1)[-1]
    base = _CONTROL_CHARS.sub("", base)
    base = _UNSAFE_CHARS.sub("_", base)
    base = base.strip().lstrip(".").strip()

    if len(base.encode("utf-8")) > MAX_DISPLAY_NAME_LENGTH:
        stem, ext = os.path.splitext(base)
        ext_bytes = len(ext.encode("utf-8"))
        if 0 < ext_bytes < 20:
            base = _truncate_utf8(stem, MAX_DISPLAY_NAME_LENGTH - ext_bytes) + ext
        else:
            base = _truncate_utf8(base, MAX_DISPLAY_NAME_LENGTH)

    return base or PLACEHOLDER_FILE_NAME


def _truncate_utf8(text: str, limit: int) -> str:
    # Most filesystems cap names in bytes, not characters.
    return text.encode("utf-8")[:limit].decode("utf-8", "ignore")


def make_storage_name(display_name: str, token: str) -> str:
    """Join a token and a display name into a storage name."""
    if STORAGE_NAME_SEPARATOR in token:
        raise ValueError(f"token must not contain {STORAGE_NAME_SEPARATOR!r}: {token}")
    return f"{token}{STORAGE_NAME_SEPARATOR}{sanitize_display_name(display_name)}"


def display_name_from_storage_name(storage_name: str) -> str:
    """
    Recover the display name from a storage name.

    Names without a separator (files placed in the directory by other means)
    are returned unchanged.
    """
    token, separator, display_name = storage_name.partition(STORAGE_NAME_SEPARATOR)
    if not separator or not display_name:
        return storage_name
    return display_name


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class TokenGenerator:
    """
    Issues strictly distinct timestamp tokens for one process.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        """
        Args:
            clock: Millisecond clock, injectable for tests
        """
        self._clock = clock or _now_ms
        self._lock = threading.Lock()
        self._last_ms = -1
        self._sequence = 0

    def next_token(self) -> str:
        now = self._clock()
        with self._lock:
            if now > self._last_ms:
                self._last_ms = now
                self._sequence = 0
                return str(now)
            # same millisecond or clock stepped back
            self._sequence += 1
            return f"{self._last_ms}.{self._sequence}"


class NamingPolicy:
    """Derives storage names for uploads."""

    def __init__(self, token_generator: Optional[TokenGenerator] = None):
        self.token_generator = token_generator or TokenGenerator()

    def new_storage_name(self, display_name: str) -> str:
        return make_storage_name(display_name, self.token_generator.next_token())

    @staticmethod
    def display_name(storage_name: str) -> str:
        return display_name_from_storage_name(storage_name)
