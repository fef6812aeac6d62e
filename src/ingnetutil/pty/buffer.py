"""Rolling output buffer for PTY sessions."""

from __future__ import annotations

import threading


class RollingBuffer:
    """Thread-safe rolling buffer for PTY output text.

    Output is addressed by absolute character offsets that only ever grow,
    even after the oldest text has been dropped to respect ``max_chars``.
    Readers keep their own offset and ask for everything after it, so the
    reader thread and the command thread never share a cursor.

    A ``threading.Condition`` is notified whenever new data arrives,
    allowing consumers to block in ``wait_for_data()`` instead of polling.
    """

    def __init__(self, max_chars: int = 1_000_000) -> None:
        self._text: str = ""
        self._base_offset: int = 0  # Absolute offset of _text[0]
        self._max_chars = max_chars
        self._closed: bool = False
        self._cond = threading.Condition()

    def append_text(self, text: str) -> None:
        """Append text and wake up any waiters."""
        if not text:
            return
        with self._cond:
            self._text += text
            overflow = len(self._text) - self._max_chars
            if overflow > 0:
                self._text = self._text[overflow:]
                self._base_offset += overflow
            self._cond.notify_all()

    def mark_closed(self) -> None:
        """Signal that no more data will arrive (the writer has gone)."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def wait_for_data(self, offset: int, timeout: float | None = None) -> bool:
        """Block until text beyond ``offset`` exists or the buffer is closed.

        Returns True if data beyond ``offset`` is available, False on timeout
        or when the buffer was closed with nothing new.
        """
        with self._cond:
            self._cond.wait_for(
                lambda: self._total() > offset or self._closed, timeout=timeout
            )
            return self._total() > offset

    def read_from(self, offset: int) -> tuple[str, int]:
        """Read everything from absolute ``offset`` and return it with the end offset.

        Offsets older than the retained window are clamped to its start, so
        the text returned starts at ``end - len(text)``.
        """
        with self._cond:
            relative = max(0, offset - self._base_offset)
            return self._text[relative:], self._total()

    def _total(self) -> int:
        return self._base_offset + len(self._text)

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed
