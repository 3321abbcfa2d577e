"""Path confinement for filesystem operations under a base directory."""

from __future__ import annotations

import contextlib
import fcntl
import os
import posixpath
from typing import Iterator, Tuple

from .errors import BadPathResolutionError, ClosedError, convert_error
from .mode import O_CLOEXEC, O_DIRECTORY, O_NOFOLLOW, O_RDONLY, syscall_mode


def _inside(path: str, base: str) -> bool:
    if path.endswith("/"):
        path = path[:-1]
    return (path + "/").startswith(base.rstrip("/") + "/")


def _with_op(err: OSError, op: str, path: str) -> OSError:
    wrapped = OSError(err.errno, err.strerror or str(err), path)
    wrapped.op = op
    wrapped.__cause__ = err
    return wrapped


def _fd_path(fd: int) -> str:
    """Return the path the kernel reports for an open file descriptor."""
    try:
        return os.readlink(f"/proc/self/fd/{fd}")
    except FileNotFoundError:
        if not hasattr(fcntl, "F_GETPATH"):
            raise
    buf = fcntl.fcntl(fd, fcntl.F_GETPATH, bytes(1024))
    return os.fsdecode(buf.split(b"\0", 1)[0])


class Sandbox:
    """A base directory that all paths are resolved within.

    The base directory is held open for the sandbox's lifetime so lookups are
    made relative to it; paths that resolve outside it are rejected.
    """

    def __init__(self, base_path: str):
        if base_path.endswith("/"):
            base_path = base_path[:-1]
        try:
            fd = os.open(base_path, O_DIRECTORY | O_RDONLY | O_CLOEXEC)
        except OSError as err:
            raise convert_error(err)
        self.base_path = base_path
        self._real_base = os.path.realpath(base_path)
        self._dirfd = fd

    @property
    def dirfd(self) -> int:
        """Descriptor of the base directory, or -1 once closed."""
        return self._dirfd

    def close(self) -> None:
        """Release the base directory descriptor."""
        fd, self._dirfd = self._dirfd, -1
        if fd != -1:
            os.close(fd)

    def __enter__(self) -> "Sandbox":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    @contextlib.contextmanager
    def safe_path(self, path: str) -> Iterator[Tuple[int, str]]:
        """Yield a directory descriptor and the final path element for ``path``.

        The parent directory is opened inside the sandbox and closed again
        when the block ends.
        """
        name = self.unsafe_path(path)
        base_fd = self._dirfd
        if base_fd == -1:
            raise ClosedError("safePath", path)
        parent, sep, file = name.rpartition("/")
        if not sep:
            yield base_fd, file
            return
        fd = self.openat(base_fd, parent, O_DIRECTORY | O_RDONLY, 0)
        try:
            yield fd, file
        finally:
            os.close(fd)

    def unsafe_path(self, path: str) -> str:
        """Clean ``path`` and return it relative to the base.

        Absolute paths starting with the base path have it stripped. The base
        itself is returned as ".". Symlinks are not checked here.
        """
        rest = path.removeprefix(self.base_path)
        resolved = posixpath.normpath(self.base_path + "/" + rest)
        if not self.is_path_inside_base(resolved):
            raise BadPathResolutionError("safePath", path)
        relative = resolved.removeprefix(self.base_path).removeprefix("/")
        return relative or "."

    def is_path_inside_base(self, path: str) -> bool:
        """Whether ``path`` is the base path or lies beneath it, by its text alone."""
        return _inside(path, self.base_path)

    def openat(self, dirfd: int, name: str, flags: int, mode: int) -> int:
        """Open ``name`` relative to ``dirfd`` without following a final symlink.

        The opened descriptor is checked to lie within the sandbox; it is
        closed and an error raised if it does not.
        """
        flags |= O_NOFOLLOW | O_CLOEXEC
        try:
            fd = os.open(name, flags, syscall_mode(mode), dir_fd=dirfd)
        except OSError as err:
            raise convert_error(_with_op(err, "openat", name))
        try:
            final = _fd_path(fd)
        except OSError as err:
            os.close(fd)
            raise convert_error(err)
        if not _inside(final, self._real_base):
            os.close(fd)
            raise BadPathResolutionError("openat", name)
        return fd