import os

import pytest

from wings.ufs.errors import BadPathResolutionError, ClosedError, NotExistError
from wings.ufs.mode import O_DIRECTORY, O_RDONLY
from wings.ufs.sandbox import Sandbox


@pytest.fixture
def root(tmp_path):
    path = tmp_path / "root"
    path.mkdir()
    return path


@pytest.fixture
def sandbox(root):
    with Sandbox(str(root)) as sb:
        yield sb


def test_trailing_slash_is_trimmed(root):
    with Sandbox(str(root) + "/") as sb:
        assert sb.base_path == str(root)


def test_missing_base_raises(tmp_path):
    with pytest.raises(NotExistError):
        Sandbox(str(tmp_path / "absent"))


def test_close_marks_descriptor_invalid(root):
    sb = Sandbox(str(root))
    sb.close()
    assert sb.dirfd == -1
    with pytest.raises(ClosedError):
        with sb.safe_path("anything"):
            pass


def test_context_manager_closes(root):
    with Sandbox(str(root)) as sb:
        assert sb.dirfd >= 0
    assert sb.dirfd == -1


@pytest.mark.parametrize(
    "path, expected",
    [
        ("", "."),
        ("a/b", "a/b"),
        ("/a/../b", "b"),
        ("../root", "."),
        ("a/./b/", "a/b"),
    ],
)
def test_unsafe_path_cleans(sandbox, path, expected):
    assert sandbox.unsafe_path(path) == expected


def test_unsafe_path_strips_absolute_base(sandbox, root):
    assert sandbox.unsafe_path(str(root) + "/a") == "a"
    assert sandbox.unsafe_path(str(root)) == "."


@pytest.mark.parametrize("path", ["../elsewhere", "a/../../x", "../../etc"])
def test_unsafe_path_rejects_escape(sandbox, path):
    with pytest.raises(BadPathResolutionError):
        sandbox.unsafe_path(path)


def test_is_path_inside_base(sandbox, root):
    base = str(root)
    assert sandbox.is_path_inside_base(base)
    assert sandbox.is_path_inside_base(base + "/")
    assert sandbox.is_path_inside_base(base + "/x/y")
    assert not sandbox.is_path_inside_base(base + "extra")
    assert not sandbox.is_path_inside_base("/")


def test_safe_path_top_level_uses_base_descriptor(sandbox):
    with sandbox.safe_path("file.txt") as (dirfd, name):
        assert dirfd == sandbox.dirfd
        assert name == "file.txt"


def test_safe_path_base_is_dot(sandbox):
    with sandbox.safe_path("") as (dirfd, name):
        assert dirfd == sandbox.dirfd
        assert name == "."


def test_safe_path_nested_opens_parent(sandbox, root):
    (root / "a").mkdir()
    (root / "a" / "f.txt").write_text("content")
    with sandbox.safe_path("a/f.txt") as (dirfd, name):
        assert dirfd != sandbox.dirfd
        assert name == "f.txt"
        assert os.stat(name, dir_fd=dirfd).st_size == len("content")
        opened = dirfd
    with pytest.raises(OSError):
        os.fstat(opened)


def test_safe_path_missing_parent(sandbox):
    with pytest.raises(NotExistError):
        with sandbox.safe_path("missing/file"):
            pass


def test_safe_path_rejects_symlinked_parent(sandbox, root, tmp_path):
    outside = tmp_path / "outside"
    outside.mkdir()
    (root / "link").symlink_to(outside)
    with pytest.raises(BadPathResolutionError):
        with sandbox.safe_path("link/file"):
            pass


def test_safe_path_rejects_intermediate_symlink(sandbox, root, tmp_path):
    outside = tmp_path / "outside"
    (outside / "inner").mkdir(parents=True)
    (root / "link").symlink_to(outside)
    with pytest.raises(BadPathResolutionError):
        with sandbox.safe_path("link/inner/file"):
            pass


def test_openat_reads_file(sandbox, root):
    (root / "f.txt").write_bytes(b"hello")
    fd = sandbox.openat(sandbox.dirfd, "f.txt", O_RDONLY, 0)
    try:
        assert os.read(fd, 100) == b"hello"
    finally:
        os.close(fd)


def test_openat_base_directory(sandbox, root):
    (root / "child").mkdir()
    fd = sandbox.openat(sandbox.dirfd, ".", O_DIRECTORY | O_RDONLY, 0)
    try:
        assert os.listdir(fd) == ["child"]
    finally:
        os.close(fd)


def test_openat_refuses_final_symlink(sandbox, root, tmp_path):
    target = tmp_path / "secret.txt"
    target.write_text("secret")
    (root / "link").symlink_to(target)
    with pytest.raises(BadPathResolutionError):
        sandbox.openat(sandbox.dirfd, "link", O_RDONLY, 0)


def test_openat_missing_file(sandbox):
    with pytest.raises(NotExistError):
        sandbox.openat(sandbox.dirfd, "nope", O_RDONLY, 0)