"""Tracking and rendering the progress of I/O operations."""

from __future__ import annotations

import threading
from typing import BinaryIO, Optional


def _format_bytes(count: int) -> str:
    if count < 1024:
        return f"{count} B"
    div, exp = 1024, 0
    n = count // 1024
    while n >= 1024:
        div *= 1024
        exp += 1
        n //= 1024
    return f"{count / div:.1f} {'KMGTPE'[exp]}iB"


class Progress:
    """Counts bytes written and renders a progress bar against a total."""

    def __init__(self, total: int, writer: Optional[BinaryIO] = None):
        self._lock = threading.Lock()
        self._written = 0
        self._total = int(total)
        self.writer = writer

    @property
    def written(self) -> int:
        """Bytes written so far."""
        with self._lock:
            return self._written

    @property
    def total(self) -> int:
        """Expected total size in bytes."""
        with self._lock:
            return self._total

    def set_total(self, total: int) -> None:
        """Update the expected total size."""
        with self._lock:
            self._total = int(total)

    def write(self, data) -> int:
        """Count ``data`` and pass it on to the writer, if there is one."""
        n = len(data)
        with self._lock:
            self._written += n
        if self.writer is not None:
            return self.writer.write(data)
        return n

    def progress(self, width: int) -> str:
        """Render the progress bar with ``width`` ticks followed by the sizes."""
        current = self.written
        total = self.total
        if total == 0:
            ticks = 0
        else:
            percentage = current / total * 100
            ticks = int(percentage / (100 / width))
        ticks = max(0, min(ticks, width))
        bar = "=" * ticks + " " * (width - ticks)
        return f"[{bar}] {_format_bytes(current)} / {_format_bytes(total)}"