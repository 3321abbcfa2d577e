"""Recursive removal of a path and everything beneath it."""

from __future__ import annotations

import errno
import os
import stat

from .errors import InvalidError, UfsError, convert_error
from .fileinfo import ends_with_dot, split_path
from .mode import AT_REMOVEDIR, O_CLOEXEC, O_NOFOLLOW, O_RDONLY

# Errors from unlink that may still mean the entry is a directory to descend into.
_DESCEND_ERRNOS = {errno.EISDIR, errno.EPERM, errno.EACCES}


def _not_exist(err: BaseException) -> bool:
    return isinstance(err, FileNotFoundError) or getattr(err, "errno", None) == errno.ENOENT


def _path_error(op: str, path: str, err: OSError) -> OSError:
    wrapped = OSError(err.errno, err.strerror or str(err), path)
    wrapped.op = op
    wrapped.__cause__ = err
    return wrapped


def _prefix_path(err: OSError, prefix: str) -> None:
    if err.filename is None:
        return
    joined = f"{prefix}/{err.filename}"
    err.filename = joined
    if isinstance(err, UfsError):
        err.path = joined


def remove_all(fs, path: str) -> None:
    """Remove ``path`` and any children it contains.

    ``fs`` must provide ``remove(name)``, ``open_fd(name)`` returning a
    directory file descriptor, and ``unlinkat(dirfd, name, flags)``. A path
    that does not exist is not an error.
    """
    if path == "":
        return
    # rmdir does not permit removing ".", so neither do we.
    if ends_with_dot(path):
        raise InvalidError("removeall", path)

    try:
        fs.remove(path)
        return
    except OSError as err:
        if _not_exist(err):
            return

    parent_dir, base = split_path(path)
    try:
        parent = fs.open_fd(parent_dir)
    except OSError as err:
        if _not_exist(err):
            return
        raise

    try:
        _remove_all_from(fs, parent, base)
    except OSError as err:
        _prefix_path(err, parent_dir)
        raise convert_error(err)
    finally:
        os.close(parent)


def _remove_all_from(fs, parent_fd: int, base: str) -> None:
    try:
        fs.unlinkat(parent_fd, base, 0)
        return
    except OSError as err:
        if _not_exist(err):
            return
        if err.errno not in _DESCEND_ERRNOS:
            raise _path_error("unlinkat", base, err)
        unlink_err = err

    try:
        info = os.stat(base, dir_fd=parent_fd, follow_symlinks=False)
    except OSError as err:
        if _not_exist(err):
            return
        raise _path_error("fstatat", base, err)
    if not stat.S_ISDIR(info.st_mode):
        raise _path_error("unlinkat", base, unlink_err)

    recurse_err = None
    try:
        fd = os.open(base, O_RDONLY | O_CLOEXEC | O_NOFOLLOW, dir_fd=parent_fd)
    except OSError as err:
        if _not_exist(err):
            return
        recurse_err = _path_error("openfdat", base, err)
    else:
        try:
            try:
                names = os.listdir(fd)
            except OSError as err:
                if _not_exist(err):
                    return
                raise _path_error("readdirnames", base, err)
            for name in names:
                try:
                    _remove_all_from(fs, fd, name)
                except OSError as err:
                    _prefix_path(err, base)
                    if recurse_err is None:
                        recurse_err = err
        finally:
            os.close(fd)

    try:
        fs.unlinkat(parent_fd, base, AT_REMOVEDIR)
        return
    except OSError as err:
        if _not_exist(err):
            return
        if recurse_err is not None:
            raise recurse_err
        raise _path_error("unlinkat", base, err)