import os
from datetime import datetime, timezone

import pytest

from wings.ufs.fileinfo import DirEntry, FileStat, basename, ends_with_dot, split_path
from wings.ufs.mode import FileMode


class _RecordingFS:
    def __init__(self):
        self.calls = []

    def lstatat(self, dirfd, name):
        self.calls.append(("lstatat", dirfd, name))
        return name

    def open_fileat(self, dirfd, name, flags, mode):
        self.calls.append(("open_fileat", dirfd, name, flags, int(mode)))
        return name


def test_file_stat_regular(tmp_path):
    target = tmp_path / "data.txt"
    target.write_bytes(b"hello world")
    result = os.lstat(target)
    info = FileStat.from_stat_result(result, str(target))
    assert info.name == target.name
    assert info.size == len(b"hello world")
    assert info.mode.is_regular()
    assert info.mode.perm() == result.st_mode & 0o777
    assert not info.is_dir()
    assert info.sys is result


def test_file_stat_mod_time(tmp_path):
    target = tmp_path / "f"
    target.write_text("x")
    result = os.stat(target)
    info = FileStat.from_stat_result(result, str(target))
    expected = datetime.fromtimestamp(result.st_mtime, timezone.utc)
    assert abs((info.mod_time - expected).total_seconds()) < 0.001


def test_file_stat_directory(tmp_path):
    info = FileStat.from_stat_result(os.lstat(tmp_path), str(tmp_path) + "/")
    assert info.is_dir()
    assert info.name == tmp_path.name


def test_file_stat_symlink(tmp_path):
    link = tmp_path / "link"
    link.symlink_to(tmp_path / "missing")
    info = FileStat.from_stat_result(os.lstat(link), str(link))
    assert info.mode.type() == FileMode.SYMLINK
    assert not info.mode.is_regular()


def test_dir_entry_from_info(tmp_path):
    info = FileStat.from_stat_result(os.lstat(tmp_path), str(tmp_path))
    entry = DirEntry.from_info(info)
    assert entry.name == info.name
    assert entry.is_dir()
    assert entry.type() == info.mode.type()
    assert entry.info() is info
    assert entry.open() is None


def test_dir_entry_without_fs():
    entry = DirEntry(name="file", mode_type=FileMode(0))
    assert entry.info() is None
    assert entry.open() is None
    assert not entry.is_dir()


def test_dir_entry_uses_fs():
    fs = _RecordingFS()
    entry = DirEntry(name="child", mode_type=FileMode.DIR, path="parent", dirfd=9, fs=fs)
    assert entry.info() == "child"
    assert entry.open() == "child"
    assert fs.calls == [
        ("lstatat", 9, "child"),
        ("open_fileat", 9, "child", os.O_RDONLY, 0),
    ]


@pytest.mark.parametrize(
    "name, expected",
    [
        ("a/b/c", "c"),
        ("a/b/c///", "c"),
        ("c", "c"),
        ("/", "/"),
        ("", ""),
    ],
)
def test_basename(name, expected):
    assert basename(name) == expected


@pytest.mark.parametrize(
    "path, expected",
    [(".", True), ("a/.", True), ("a/..", False), ("a.", False), ("a", False)],
)
def test_ends_with_dot(path, expected):
    assert ends_with_dot(path) is expected


@pytest.mark.parametrize("path", ["a/b/c", "dir/file", "x/y"])
def test_split_path_rejoins(path):
    parent, base = split_path(path)
    assert parent + "/" + base == path
    assert base == basename(path)


def test_split_path_without_directory():
    assert split_path("file") == (".", "file")


def test_split_path_root_and_slashes():
    assert split_path("//a") == ("/", "a")
    assert split_path("a/b///") == ("a", "b")