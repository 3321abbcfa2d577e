"""A sandboxed filesystem that performs I/O relative to a base directory."""

from __future__ import annotations

import contextlib
import errno
import io
import os
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from .errors import (
    BadPathResolutionError,
    ExistError,
    LinkError,
    NotDirectoryError,
    NotExistError,
    convert_error,
)
from .fileinfo import DirEntry, FileStat
from .mode import (
    AT_REMOVEDIR,
    O_APPEND,
    O_CREATE,
    O_DIRECTORY,
    O_RDONLY,
    O_RDWR,
    O_TRUNC,
    O_WRONLY,
    FileMode,
    syscall_mode,
)
from .removeall import remove_all as _remove_all
from .sandbox import Sandbox
from .walk import walk_dir as _walk_dir

_ACCESS_MASK = O_RDONLY | O_WRONLY | O_RDWR


def _path_error(err: OSError, op: str, path: str) -> BaseException:
    wrapped = OSError(err.errno, err.strerror or str(err), path)
    wrapped.op = op
    wrapped.__cause__ = err
    return convert_error(wrapped)


def _file_mode_string(flags: int) -> str:
    access = flags & _ACCESS_MASK
    append = bool(flags & O_APPEND)
    if access == O_RDWR:
        return "a+" if append else "r+"
    if access == O_WRONLY:
        return "a" if append else "w"
    return "r"


def _timestamp_ns(value: datetime) -> int:
    return round(value.timestamp() * 1_000_000) * 1000


class UnixFS(Sandbox):
    """Filesystem operations confined to the sandbox's base directory.

    Operations on the base directory itself are refused where they would
    remove or replace it; symlinks cannot be used to escape it.
    """

    # -- permissions and ownership -------------------------------------

    def chmod(self, name: str, mode: int) -> None:
        """Change the mode of a file, following a final symlink."""
        with self.safe_path(name) as (dirfd, file):
            try:
                os.chmod(file, syscall_mode(mode), dir_fd=dirfd)
            except OSError as err:
                raise _path_error(err, "chmod", file)

    def chown(self, name: str, uid: int, gid: int) -> None:
        """Change the owner of a file, following a final symlink."""
        with self.safe_path(name) as (dirfd, file):
            self._chown(dirfd, file, uid, gid, True)

    def lchown(self, name: str, uid: int, gid: int) -> None:
        """Change the owner of a file or of the symlink itself."""
        with self.safe_path(name) as (dirfd, file):
            self._chown(dirfd, file, uid, gid, False)

    def chownat(self, dirfd: int, name: str, uid: int, gid: int) -> None:
        """Like chown, relative to an open directory descriptor."""
        self._chown(dirfd, name, uid, gid, True)

    def lchownat(self, dirfd: int, name: str, uid: int, gid: int) -> None:
        """Like lchown, relative to an open directory descriptor."""
        self._chown(dirfd, name, uid, gid, False)

    def _chown(self, dirfd: int, name: str, uid: int, gid: int, follow: bool) -> None:
        try:
            os.chown(name, uid, gid, dir_fd=dirfd, follow_symlinks=follow)
        except OSError as err:
            raise _path_error(err, "chown", name)

    def chtimes(self, name: str, atime: Optional[datetime], mtime: Optional[datetime]) -> None:
        """Set access and modification times; None leaves a time unchanged."""
        with self.safe_path(name) as (dirfd, file):
            self.chtimesat(dirfd, file, atime, mtime)

    def chtimesat(
        self, dirfd: int, name: str, atime: Optional[datetime], mtime: Optional[datetime]
    ) -> None:
        """Like chtimes, relative to an open directory descriptor."""
        if atime is None and mtime is None:
            return
        try:
            if atime is None or mtime is None:
                current = os.stat(name, dir_fd=dirfd)
                a_ns = current.st_atime_ns if atime is None else _timestamp_ns(atime)
                m_ns = current.st_mtime_ns if mtime is None else _timestamp_ns(mtime)
            else:
                a_ns, m_ns = _timestamp_ns(atime), _timestamp_ns(mtime)
            os.utime(name, ns=(a_ns, m_ns), dir_fd=dirfd)
        except OSError as err:
            raise _path_error(err, "chtimes", name)

    # -- creating and opening ------------------------------------------

    def create(self, name: str) -> io.FileIO:
        """Create or truncate a file and open it for writing."""
        return self.open_file(name, O_CREATE | O_WRONLY | O_TRUNC, FileMode(0o644))

    def mkdir(self, name: str, mode: int) -> None:
        """Create a single directory."""
        with self.safe_path(name) as (dirfd, file):
            self.mkdirat(dirfd, file, mode)

    def mkdirat(self, dirfd: int, name: str, mode: int) -> None:
        """Create a directory relative to an open directory descriptor."""
        try:
            os.mkdir(name, syscall_mode(mode), dir_fd=dirfd)
        except OSError as err:
            raise _path_error(err, "mkdir", name)

    def mkdir_all(self, name: str, mode: int) -> None:
        """Create a directory and any missing parents; an existing directory is fine."""
        self._mkdir_all(self.unsafe_path(name), mode)

    def _mkdir_all(self, name: str, mode: int) -> None:
        try:
            existing: Optional[FileStat] = self.lstat(name)
        except OSError:
            existing = None
        if existing is not None:
            if existing.mode & FileMode.SYMLINK:
                existing = self.stat(name)
            if existing.is_dir():
                return
            raise NotDirectoryError("mkdir", name)

        end = len(name.rstrip("/"))
        start = name.rfind("/", 0, end) + 1
        if start > 1:
            self._mkdir_all(name[: start - 1], mode)

        try:
            self.mkdir(name, mode)
        except OSError as err:
            # Handles names like "foo/." whose directory already exists.
            try:
                again = self.lstat(name)
            except OSError:
                raise err
            if again.is_dir():
                return
            raise err

    def open(self, name: str) -> io.FileIO:
        """Open a file for reading."""
        return self.open_file(name, O_RDONLY, FileMode(0))

    def open_file(self, name: str, flags: int, mode: int) -> io.FileIO:
        """Open a file with the given flags, creating it with ``mode`` if asked."""
        with self.safe_path(name) as (dirfd, file):
            return self.open_fileat(dirfd, file, flags, mode)

    def open_fileat(self, dirfd: int, name: str, flags: int, mode: int) -> io.FileIO:
        """Open a file relative to an open directory descriptor."""
        fd = self.openat(dirfd, name, flags, mode)
        handle = io.FileIO(fd, _file_mode_string(flags), closefd=True)
        handle.name = name
        return handle

    def open_fd(self, name: str) -> int:
        """Open a path read-only and return the raw descriptor; the caller closes it."""
        with self.safe_path(name) as (dirfd, file):
            return self.openat(dirfd, file, O_RDONLY, FileMode(0))

    def read_dir(self, path: str) -> List[DirEntry]:
        """Return the entries of a directory, sorted by name."""
        with self.safe_path(path) as (dirfd, name):
            fd = self.openat(dirfd, name, O_DIRECTORY | O_RDONLY, FileMode(0))
        try:
            return self._read_dir(fd, name)
        finally:
            os.close(fd)

    def _read_dir(self, fd: int, name: str) -> List[DirEntry]:
        try:
            names = sorted(os.listdir(fd))
        except OSError as err:
            raise _path_error(err, "readdirent", name)
        entries = []
        for child in names:
            try:
                result = os.stat(child, dir_fd=fd, follow_symlinks=False)
            except OSError as err:
                raise _path_error(err, "stat", child)
            info = FileStat.from_stat_result(result, child)
            entries.append(DirEntry(name=child, mode_type=info.mode.type(), path=name, _info=info))
        return entries

    # -- removing and renaming -----------------------------------------

    def remove_stat(self, name: str) -> FileStat:
        """Remove a file or empty directory and return what it was."""
        with self.safe_path(name) as (dirfd, file):
            info = self.lstatat(dirfd, file)
            flags = AT_REMOVEDIR if info.is_dir() else 0
            try:
                self.unlinkat(dirfd, file, flags)
            except OSError as err:
                raise _path_error(err, "remove", file)
            return info

    def remove(self, name: str) -> None:
        """Remove a file or empty directory; the base directory cannot be removed."""
        with self.safe_path(name) as (dirfd, file):
            if file == ".":
                raise BadPathResolutionError("remove", file)
            try:
                self.unlinkat(dirfd, file, 0)
                return
            except OSError as err:
                unlink_err = err
            try:
                self.unlinkat(dirfd, file, AT_REMOVEDIR)
                return
            except OSError as err:
                rmdir_err = err
            # rmdir on a file reports ENOTDIR; otherwise its error is the real one.
            chosen = unlink_err if rmdir_err.errno == errno.ENOTDIR else rmdir_err
            raise _path_error(chosen, "remove", file)

    def remove_all(self, name: str) -> None:
        """Remove a path and everything beneath it; a missing path is not an error."""
        relative = self.unsafe_path(name)
        if relative == ".":
            raise BadPathResolutionError("removeall", relative)
        _remove_all(self, relative)

    def unlinkat(self, dirfd: int, name: str, flags: int) -> None:
        """Unlink a name, or remove a directory when AT_REMOVEDIR is set."""
        if flags & AT_REMOVEDIR:
            os.rmdir(name, dir_fd=dirfd)
        else:
            os.unlink(name, dir_fd=dirfd)

    def rename(self, oldpath: str, newpath: str) -> None:
        """Move ``oldpath`` to ``newpath``, creating missing parents of the target.

        The target must not exist, and neither path may be the base directory.
        """
        if oldpath == newpath:
            return
        with contextlib.ExitStack() as stack:
            old_dirfd, old_name = stack.enter_context(self.safe_path(oldpath))
            if old_name == ".":
                raise BadPathResolutionError("rename", old_name)
            self.lstatat(old_dirfd, old_name)

            new_dirfd, new_name = self._enter_creating_parents(stack, newpath)
            if new_name == ".":
                raise BadPathResolutionError("rename", new_name)
            try:
                self.lstatat(new_dirfd, new_name)
            except NotExistError:
                pass
            else:
                raise ExistError("rename", new_name)

            try:
                os.rename(old_name, new_name, src_dir_fd=old_dirfd, dst_dir_fd=new_dirfd)
            except OSError as err:
                raise LinkError("rename", oldpath, newpath, err)

    def _enter_creating_parents(self, stack: contextlib.ExitStack, path: str) -> Tuple[int, str]:
        try:
            return stack.enter_context(self.safe_path(path))
        except NotExistError as err:
            if not err.path:
                raise
            self.mkdir_all(err.path, FileMode(0o755))
        return stack.enter_context(self.safe_path(path))

    # -- information ---------------------------------------------------

    def stat(self, name: str) -> FileStat:
        """Describe a file, following a final symlink."""
        with self.safe_path(name) as (dirfd, file):
            return self._fstatat(dirfd, file, True)

    def statat(self, dirfd: int, name: str) -> FileStat:
        """Like stat, relative to an open directory descriptor."""
        return self._fstatat(dirfd, name, True)

    def lstat(self, name: str) -> FileStat:
        """Describe a file without following a final symlink."""
        with self.safe_path(name) as (dirfd, file):
            return self._fstatat(dirfd, file, False)

    def lstatat(self, dirfd: int, name: str) -> FileStat:
        """Like lstat, relative to an open directory descriptor."""
        return self._fstatat(dirfd, name, False)

    def _fstatat(self, dirfd: int, name: str, follow: bool) -> FileStat:
        try:
            result = os.stat(name, dir_fd=dirfd, follow_symlinks=follow)
        except OSError as err:
            raise _path_error(err, "stat", name)
        return FileStat.from_stat_result(result, name)

    # -- links, touching and walking -----------------------------------

    def symlink(self, oldpath: str, newpath: str) -> None:
        """Create ``newpath`` as a symlink to ``oldpath``; the target may be anything."""
        with self.safe_path(newpath) as (dirfd, name):
            try:
                os.symlink(oldpath, name, dir_fd=dirfd)
            except OSError as err:
                raise LinkError("symlink", oldpath, name, err)

    def touch(self, path: str, flags: int, mode: int) -> io.FileIO:
        """Open a file, creating it and any missing parent directories."""
        flags |= O_CREATE
        with contextlib.ExitStack() as stack:
            try:
                dirfd, name = stack.enter_context(self.safe_path(path))
            except NotExistError as err:
                if not err.path:
                    raise
                self.mkdir_all(err.path, FileMode(0o755))
                return self.open_file(path, flags, mode)
            return self.open_fileat(dirfd, name, flags, mode)

    def walk_dir(self, root: str, fn: Callable) -> None:
        """Walk the tree at ``root`` in lexical order; see ``walk.walk_dir``."""
        _walk_dir(self, root, fn)