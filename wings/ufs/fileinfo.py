"""File information, directory entries and path helpers."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Tuple

from .mode import FileMode

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_TYPE_BITS = {
    stat.S_IFBLK: FileMode.DEVICE,
    stat.S_IFCHR: FileMode.DEVICE | FileMode.CHAR_DEVICE,
    stat.S_IFDIR: FileMode.DIR,
    stat.S_IFIFO: FileMode.NAMED_PIPE,
    stat.S_IFLNK: FileMode.SYMLINK,
    stat.S_IFREG: FileMode(0),
    stat.S_IFSOCK: FileMode.SOCKET,
}


def _mode_from_sys(raw: int) -> FileMode:
    mode = FileMode(raw & 0o777) | _TYPE_BITS.get(stat.S_IFMT(raw), FileMode(0))
    if raw & stat.S_ISGID:
        mode |= FileMode.SETGID
    if raw & stat.S_ISUID:
        mode |= FileMode.SETUID
    if raw & stat.S_ISVTX:
        mode |= FileMode.STICKY
    return mode


def basename(name: str) -> str:
    """Strip trailing slashes and the leading directory from a path."""
    name = name.rstrip("/") or name[:1]
    slash = name.rfind("/", 0, max(len(name) - 1, 0))
    return name[slash + 1 :] if slash >= 0 else name


def ends_with_dot(path: str) -> bool:
    """Whether the final component of the path is ".". """
    return path == "." or (len(path) >= 2 and path[-1] == "." and path[-2] == "/")


def split_path(path: str) -> Tuple[str, str]:
    """Return the parent directory and base name of a path."""
    if path.startswith("//"):
        path = "/" + path.lstrip("/")
    path = path.rstrip("/") or path[:1]
    slash = path.rfind("/", 0, max(len(path) - 1, 0))
    if slash < 0:
        return ".", path
    return ("/" if slash == 0 else path[:slash]), path[slash + 1 :]


@dataclass(frozen=True)
class FileStat:
    """Information about a file, as returned by stat and lstat."""

    name: str
    size: int
    mode: FileMode
    mod_time: datetime
    sys: Optional[os.stat_result] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_stat_result(cls, result: os.stat_result, name: str) -> "FileStat":
        """Build file information from a raw stat result for the given path."""
        seconds, nanos = divmod(result.st_mtime_ns, 1_000_000_000)
        mod_time = _EPOCH + timedelta(seconds=seconds, microseconds=nanos // 1000)
        return cls(
            name=basename(name),
            size=result.st_size,
            mode=_mode_from_sys(result.st_mode),
            mod_time=mod_time,
            sys=result,
        )

    def is_dir(self) -> bool:
        return self.mode.is_dir()


@dataclass(frozen=True)
class DirEntry:
    """An entry read from a directory."""

    name: str
    mode_type: FileMode = FileMode(0)
    path: str = ""
    dirfd: int = -1
    fs: Any = field(default=None, repr=False, compare=False)
    _info: Optional[FileStat] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_info(cls, info: FileStat) -> "DirEntry":
        """Wrap file information as a directory entry."""
        return cls(name=info.name, mode_type=info.mode.type(), _info=info)

    def is_dir(self) -> bool:
        return bool(self.mode_type & FileMode.DIR)

    def type(self) -> FileMode:
        return self.mode_type

    def info(self) -> Optional[FileStat]:
        """Return information on the entry, without following symlinks."""
        if self._info is not None:
            return self._info
        if self.fs is None:
            return None
        return self.fs.lstatat(self.dirfd, self.name)

    def open(self):
        """Open the entry for reading, relative to its directory."""
        if self.fs is None:
            return None
        return self.fs.open_fileat(self.dirfd, self.name, os.O_RDONLY, FileMode(0))