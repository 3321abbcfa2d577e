"""Walking and listing directories through open directory descriptors."""

from __future__ import annotations

import os
import posixpath
from typing import Callable, List, Optional, TypeVar

from .errors import convert_error
from .fileinfo import DirEntry, FileStat
from .mode import O_DIRECTORY, O_RDONLY, FileMode
from .walk import SkipAll, SkipDir

T = TypeVar("T")

WalkDiratFunc = Callable[[int, str, str, Optional[DirEntry], Optional[BaseException]], None]


def _with_op(err: OSError, op: str, path: str) -> BaseException:
    wrapped = OSError(err.errno, err.strerror or str(err), path)
    wrapped.op = op
    wrapped.__cause__ = err
    return convert_error(wrapped)


def _read_entries(fs, fd: int, name: str) -> List[DirEntry]:
    try:
        names = sorted(os.listdir(fd))
    except OSError as err:
        raise _with_op(err, "readdirent", name)
    entries = []
    for child in names:
        try:
            result = os.stat(child, dir_fd=fd, follow_symlinks=False)
        except OSError as err:
            raise _with_op(err, "stat", child)
        info = FileStat.from_stat_result(result, child)
        entries.append(
            DirEntry(name=child, mode_type=info.mode.type(), path=name, dirfd=fd, fs=fs, _info=info)
        )
    return entries


def walk_dirat(fs, dirfd: int, name: str, fn: WalkDiratFunc) -> None:
    """Walk the tree at ``name`` relative to ``dirfd``.

    ``fn(dirfd, name, relative, entry, err)`` is called for each entry, with
    the descriptor of its parent directory, its name within that directory
    and its path relative to the walk's start. A ``dirfd`` of 0 means the
    filesystem's base directory. Symlinks are not followed.
    """
    if dirfd == 0:
        dirfd = fs.dirfd
    try:
        info = fs.lstatat(dirfd, name)
    except OSError as err:
        try:
            fn(dirfd, name, name, None, err)
        except (SkipDir, SkipAll):
            pass
        return
    try:
        _walk(fs, dirfd, name, name, DirEntry.from_info(info), fn)
    except (SkipDir, SkipAll):
        pass


def _walk(fs, parentfd: int, name: str, relative: str, entry: DirEntry, fn: WalkDiratFunc) -> None:
    try:
        fn(parentfd, name, relative, entry, None)
    except SkipDir:
        if entry.is_dir():
            return
        raise
    if not entry.is_dir():
        return

    dirfd = fs.openat(parentfd, name, O_DIRECTORY | O_RDONLY, FileMode(0))
    try:
        try:
            children = _read_entries(fs, dirfd, name)
        except OSError as err:
            try:
                fn(dirfd, name, relative, entry, err)
            except SkipDir:
                return
            children = []

        for child in children:
            child_relative = posixpath.normpath(posixpath.join(relative, child.name))
            try:
                _walk(fs, dirfd, child.name, child_relative, child, fn)
            except SkipDir:
                break
    finally:
        os.close(dirfd)


def read_dir_map(fs, path: str, fn: Callable[[DirEntry], T]) -> List[T]:
    """Apply ``fn`` to every entry of the directory at ``path`` and return the results."""
    with fs.safe_path(path) as (dirfd, name):
        fd = fs.openat(dirfd, name, O_DIRECTORY | O_RDONLY, FileMode(0))
    try:
        return [fn(entry) for entry in _read_entries(fs, fd, ".")]
    finally:
        os.close(fd)