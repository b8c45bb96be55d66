from pathlib import Path

import pytest

from autocoder.exceptions import PathError
from autocoder.sandbox import relative_to_root, resolve


@pytest.mark.parametrize(
    "path",
    [
        "..",
        "../escape.txt",
        "../../etc/passwd",
        "a/../../escape.txt",
        "..\\escape.txt",
        "/etc/passwd",
        "",
        "   ",
        ".",
        "a/..",
    ],
)
def test_resolve_rejects_escapes(tmp_path: Path, path: str):
    with pytest.raises(PathError):
        resolve(tmp_path, path)


def test_resolve_rejects_lookalike_sibling(tmp_path: Path):
    root = tmp_path / "root"
    root.mkdir()

    with pytest.raises(PathError):
        resolve(root, "../root2/file.txt")
    with pytest.raises(PathError):
        resolve(root, "sub/../../root2/file.txt")


def test_resolve_returns_absolute_path_inside_root(tmp_path: Path):
    resolved = resolve(tmp_path, "src/pkg/module.py")

    assert resolved.is_absolute()
    assert resolved == tmp_path / "src" / "pkg" / "module.py"


def test_resolve_normalizes_current_directory_segments(tmp_path: Path):
    assert resolve(tmp_path, "./a.txt") == tmp_path / "a.txt"
    assert resolve(tmp_path, "a/./b.txt") == tmp_path / "a" / "b.txt"


@pytest.mark.parametrize("path", ["a/../b.txt", "a/b/../c.txt", "a\\..\\b.txt", "src/../../x"])
def test_resolve_rejects_inner_traversal_segments(tmp_path: Path, path: str):
    with pytest.raises(PathError, match="traversal"):
        resolve(tmp_path, path)


def test_resolve_does_not_touch_filesystem(tmp_path: Path):
    resolve(tmp_path, "missing/dir/file.txt")

    assert not (tmp_path / "missing").exists()


def test_relative_to_root_uses_posix_separators(tmp_path: Path):
    assert relative_to_root(tmp_path, tmp_path / "a" / "b.txt") == "a/b.txt"
