"""Walking a file tree through a filesystem object."""

from __future__ import annotations

import posixpath
from typing import Callable, Optional

from .fileinfo import DirEntry


class SkipDir(Exception):
    """Raised by a walk callback to skip the current directory.

    Raised for a file, it skips the remaining entries of the file's directory.
    """


class SkipAll(Exception):
    """Raised by a walk callback to skip all remaining files and directories."""


WalkDirFunc = Callable[[str, Optional[DirEntry], Optional[BaseException]], None]


def walk_dir(fs, root: str, fn: WalkDirFunc) -> None:
    """Walk the tree rooted at ``root``, calling ``fn(path, entry, err)`` for each entry.

    ``fs`` must provide ``stat(name)`` and ``read_dir(name)``. If the root
    cannot be stat'ed, ``fn`` is called once with the root, no entry and the
    error. If a directory cannot be read, ``fn`` is called a second time for
    it with the error. Any other exception raised by ``fn`` stops the walk.
    """
    try:
        info = fs.stat(root)
    except OSError as err:
        try:
            fn(root, None, err)
        except (SkipDir, SkipAll):
            pass
        return
    try:
        _walk(fs, root, DirEntry.from_info(info), fn)
    except (SkipDir, SkipAll):
        pass


def _walk(fs, name: str, entry: DirEntry, fn: WalkDirFunc) -> None:
    try:
        fn(name, entry, None)
    except SkipDir:
        if entry.is_dir():
            return
        raise
    if not entry.is_dir():
        return

    try:
        children = fs.read_dir(name)
    except OSError as err:
        try:
            fn(name, entry, err)
        except SkipDir:
            return
        children = []

    for child in children:
        child_path = posixpath.normpath(posixpath.join(name, child.name))
        try:
            _walk(fs, child_path, child, fn)
        except SkipDir:
            break