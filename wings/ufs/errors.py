"""Exceptions raised by the sandboxed filesystem."""

from __future__ import annotations

import errno
from typing import Optional


class UfsError(OSError):
    """An error from a filesystem operation on a path."""

    reason = "filesystem error"
    errno_code: Optional[int] = None

    def __init__(self, op: str = "", path: str = "", cause: Optional[BaseException] = None):
        super().__init__(self.reason)
        self.op = op
        self.path = path
        self.cause = cause
        self.errno = self.errno_code
        self.strerror = self.reason
        self.filename = path or None
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        prefix = " ".join(part for part in (self.op, self.path) if part)
        return f"{prefix}: {self.reason}" if prefix else self.reason


class BadPathResolutionError(UfsError):
    """A path resolved to a location outside the sandbox."""

    reason = "bad path resolution"


class IsDirectoryError(UfsError, IsADirectoryError):
    """A file-only operation was given a directory."""

    reason = "is a directory"
    errno_code = errno.EISDIR


class NotDirectoryError(UfsError, NotADirectoryError):
    """A directory-only operation was given a file."""

    reason = "not a directory"
    errno_code = errno.ENOTDIR


class NotRegularError(UfsError):
    """An operation on regular files was given something else."""

    reason = "not a regular file"


class ClosedError(UfsError):
    """An entry was used after being closed."""

    reason = "file already closed"


class InvalidError(UfsError):
    """An invalid argument was given."""

    reason = "invalid argument"
    errno_code = errno.EINVAL


class ExistError(UfsError, FileExistsError):
    """The entry already exists."""

    reason = "file already exists"
    errno_code = errno.EEXIST


class NotExistError(UfsError, FileNotFoundError):
    """The entry does not exist."""

    reason = "file does not exist"
    errno_code = errno.ENOENT


class PermissionDeniedError(UfsError, PermissionError):
    """The permissions needed for the operation are missing."""

    reason = "permission denied"
    errno_code = errno.EPERM


def _describe(cause: Optional[BaseException]) -> str:
    if cause is None:
        return LinkError.reason
    strerror = getattr(cause, "strerror", None)
    return strerror if strerror else str(cause)


class LinkError(UfsError):
    """An error during a link, symlink or rename involving two paths."""

    reason = "link error"

    def __init__(self, op: str = "", old: str = "", new: str = "", cause: Optional[BaseException] = None):
        super().__init__(op, old, cause)
        self.old = old
        self.new = new
        self.errno = getattr(cause, "errno", None)
        self.strerror = _describe(cause)
        self.filename2 = new or None

    def __str__(self) -> str:
        return f"{self.op} {self.old} {self.new}: {self.strerror}"


_ERRNO_CLASSES = {
    errno.EEXIST: ExistError,
    errno.EISDIR: IsDirectoryError,
    errno.ENOTDIR: NotDirectoryError,
    errno.ENOENT: NotExistError,
    errno.EPERM: PermissionDeniedError,
    errno.EXDEV: BadPathResolutionError,
    errno.ELOOP: BadPathResolutionError,
}


def convert_error(err: Optional[BaseException]) -> Optional[BaseException]:
    """Map an operating-system error onto this package's error types.

    Errors that are already ours, or whose errno has no mapping, are returned
    unchanged.
    """
    if err is None or isinstance(err, UfsError) or not isinstance(err, OSError):
        return err
    cls = _ERRNO_CLASSES.get(err.errno)
    if cls is None:
        return err
    path = err.filename if err.filename is not None else ""
    return cls(getattr(err, "op", ""), str(path), err)