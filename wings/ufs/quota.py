"""A sandboxed filesystem that tracks disk usage against a size limit."""

from __future__ import annotations

import contextlib
import threading
from typing import Iterator

from .fileinfo import FileStat
from .unixfs import UnixFS


class Quota(UnixFS):
    """A :class:`UnixFS` that keeps a running total of the bytes it holds.

    A limit of ``-1`` forbids any write; a limit of ``0`` disables limit
    checking. A usage of ``-1`` means the usage has not been calculated yet.
    Removing regular files through this filesystem reduces the usage.
    """

    def __init__(self, base_path: str, limit: int):
        super().__init__(base_path)
        self._lock = threading.Lock()
        self._limit = int(limit)
        self._usage = 0
        self._local = threading.local()

    @property
    def limit(self) -> int:
        """The size limit of the filesystem in bytes."""
        with self._lock:
            return self._limit

    @property
    def usage(self) -> int:
        """The tracked usage of the filesystem in bytes."""
        with self._lock:
            return self._usage

    def set_limit(self, new_limit: int) -> int:
        """Replace the limit and return the previous one."""
        with self._lock:
            old, self._limit = self._limit, int(new_limit)
            return old

    def set_usage(self, new_usage: int) -> int:
        """Replace the tracked usage and return the previous value."""
        with self._lock:
            old, self._usage = self._usage, int(new_usage)
            return old

    def add(self, amount: int) -> int:
        """Add ``amount`` (which may be negative) to the usage, never going below zero."""
        with self._lock:
            if self._usage + amount < 0:
                self._usage = 0
            else:
                self._usage += amount
            return self._usage

    def can_fit(self, size: int) -> bool:
        """Whether ``size`` more bytes fit without exceeding the limit."""
        with self._lock:
            limit, usage = self._limit, self._usage
        if limit == -1:
            return False
        if limit == 0:
            return True
        if usage == -1:
            return True
        return usage + size <= limit

    @contextlib.contextmanager
    def _untracked(self) -> Iterator[None]:
        self._local.depth = getattr(self._local, "depth", 0) + 1
        try:
            yield
        finally:
            self._local.depth -= 1

    def remove_stat(self, name: str) -> FileStat:
        """Remove a file or empty directory and return what it was, without touching usage."""
        with self._untracked():
            return super().remove_stat(name)

    def remove(self, name: str) -> None:
        """Remove a file or empty directory, reducing usage by a removed file's size."""
        info = self.remove_stat(name)
        if not info.mode.is_regular():
            return
        self.add(-info.size)

    def remove_all(self, name: str) -> None:
        """Remove a path and everything beneath it, reducing usage for each file removed."""
        super().remove_all(name)

    def unlinkat(self, dirfd: int, name: str, flags: int) -> None:
        """Unlink a name; a regular file's size is taken off the usage."""
        if flags == 0 and not getattr(self._local, "depth", 0):
            try:
                info = self.lstatat(dirfd, name)
            except OSError:
                info = None
            if info is not None and info.mode.is_regular():
                self.add(-info.size)
        super().unlinkat(dirfd, name, flags)