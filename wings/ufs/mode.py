"""File mode bits and open flags used by the sandboxed filesystem."""

from __future__ import annotations

import os
import stat
from typing import ClassVar

_MODE_LETTERS = "dalTLDpSugct?"
_PERM_LETTERS = "rwxrwxrwx"
_MASK = 0xFFFFFFFF


class FileMode(int):
    """Portable file mode: type bits in the high bits, permissions in the low nine."""

    DIR: ClassVar["FileMode"]
    APPEND: ClassVar["FileMode"]
    EXCLUSIVE: ClassVar["FileMode"]
    TEMPORARY: ClassVar["FileMode"]
    SYMLINK: ClassVar["FileMode"]
    DEVICE: ClassVar["FileMode"]
    NAMED_PIPE: ClassVar["FileMode"]
    SOCKET: ClassVar["FileMode"]
    SETUID: ClassVar["FileMode"]
    SETGID: ClassVar["FileMode"]
    CHAR_DEVICE: ClassVar["FileMode"]
    STICKY: ClassVar["FileMode"]
    IRREGULAR: ClassVar["FileMode"]
    TYPE: ClassVar["FileMode"]
    PERM: ClassVar["FileMode"]

    def __new__(cls, value: int = 0) -> "FileMode":
        return super().__new__(cls, int(value) & _MASK)

    def __or__(self, other):
        if not isinstance(other, int):
            return NotImplemented
        return FileMode(int(self) | int(other))

    __ror__ = __or__

    def __and__(self, other):
        if not isinstance(other, int):
            return NotImplemented
        return FileMode(int(self) & int(other))

    __rand__ = __and__

    def __xor__(self, other):
        if not isinstance(other, int):
            return NotImplemented
        return FileMode(int(self) ^ int(other))

    __rxor__ = __xor__

    def __invert__(self) -> "FileMode":
        return FileMode(~int(self) & _MASK)

    def is_dir(self) -> bool:
        """Whether the mode describes a directory."""
        return bool(int(self) & int(FileMode.DIR))

    def is_regular(self) -> bool:
        """Whether the mode describes a regular file (no type bits set)."""
        return not int(self) & int(FileMode.TYPE)

    def perm(self) -> "FileMode":
        """The Unix permission bits."""
        return self & FileMode.PERM

    def type(self) -> "FileMode":
        """The type bits."""
        return self & FileMode.TYPE

    def __str__(self) -> str:
        value = int(self)
        flags = "".join(c for i, c in enumerate(_MODE_LETTERS) if value & (1 << (31 - i))) or "-"
        perms = "".join(c if value & (1 << (8 - i)) else "-" for i, c in enumerate(_PERM_LETTERS))
        return flags + perms

    def __repr__(self) -> str:
        return f"FileMode({str(self)!r})"


FileMode.DIR = FileMode(1 << 31)
FileMode.APPEND = FileMode(1 << 30)
FileMode.EXCLUSIVE = FileMode(1 << 29)
FileMode.TEMPORARY = FileMode(1 << 28)
FileMode.SYMLINK = FileMode(1 << 27)
FileMode.DEVICE = FileMode(1 << 26)
FileMode.NAMED_PIPE = FileMode(1 << 25)
FileMode.SOCKET = FileMode(1 << 24)
FileMode.SETUID = FileMode(1 << 23)
FileMode.SETGID = FileMode(1 << 22)
FileMode.CHAR_DEVICE = FileMode(1 << 21)
FileMode.STICKY = FileMode(1 << 20)
FileMode.IRREGULAR = FileMode(1 << 19)
FileMode.TYPE = (
    FileMode.DIR
    | FileMode.SYMLINK
    | FileMode.NAMED_PIPE
    | FileMode.SOCKET
    | FileMode.DEVICE
    | FileMode.CHAR_DEVICE
    | FileMode.IRREGULAR
)
FileMode.PERM = FileMode(0o777)

O_RDONLY = os.O_RDONLY
O_WRONLY = os.O_WRONLY
O_RDWR = os.O_RDWR
O_APPEND = os.O_APPEND
O_CREATE = os.O_CREAT
O_EXCL = os.O_EXCL
O_SYNC = getattr(os, "O_SYNC", 0)
O_TRUNC = os.O_TRUNC
O_DIRECTORY = getattr(os, "O_DIRECTORY", 0)
O_NOFOLLOW = getattr(os, "O_NOFOLLOW", 0)
O_CLOEXEC = getattr(os, "O_CLOEXEC", 0)
O_LARGEFILE = getattr(os, "O_LARGEFILE", 0)

AT_SYMLINK_NOFOLLOW = 0x100
AT_REMOVEDIR = 0x200
AT_EMPTY_PATH = 0x1000


def syscall_mode(mode: int) -> int:
    """Convert portable mode bits into the raw Unix mode used by system calls."""
    mode = FileMode(mode)
    result = int(mode.perm())
    if mode & FileMode.SETUID:
        result |= stat.S_ISUID
    if mode & FileMode.SETGID:
        result |= stat.S_ISGID
    if mode & FileMode.STICKY:
        result |= stat.S_ISVTX
    return result