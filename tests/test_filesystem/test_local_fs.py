"""Unit tests for LocalFileSystem against a temporary directory."""

from __future__ import annotations

import pytest


pytestmark = pytest.mark.unit


async def test_write_creates_parents(local_fs, tmp_path):
    await local_fs.write("lib/core/app.dart", "class App {}")
    assert (tmp_path / "lib" / "core" / "app.dart").read_text(encoding="utf-8") == "class App {}"
    assert await local_fs.read("lib/core/app.dart") == "class App {}"


async def test_absolute_paths_used_as_given(local_fs, tmp_path):
    target = tmp_path / "abs.txt"
    await local_fs.write(str(target), "x")
    assert await local_fs.exists(str(target))
    assert local_fs.resolve(str(target)) == target


async def test_read_missing(local_fs):
    with pytest.raises(FileNotFoundError):
        await local_fs.read("missing.txt")


async def test_delete_file_and_directory(local_fs, tmp_path):
    await local_fs.write("a/b.txt", "x")
    await local_fs.delete("a/b.txt")
    assert not (tmp_path / "a" / "b.txt").exists()
    await local_fs.write("a/c.txt", "x")
    await local_fs.delete("a")
    assert not (tmp_path / "a").exists()


async def test_mkdir_and_rmdir(local_fs, tmp_path):
    await local_fs.mkdir("x/y")
    assert (tmp_path / "x" / "y").is_dir()
    await local_fs.write("x/y/f.txt", "")
    with pytest.raises(OSError):
        await local_fs.rmdir("x")
    await local_fs.rmdir("x", recursive=True)
    assert not (tmp_path / "x").exists()


async def test_list(local_fs, tmp_path):
    await local_fs.write("lib/main.dart", "")
    await local_fs.write("lib/src/a.dart", "")
    await local_fs.write("lib/src/notes.md", "")

    children = await local_fs.list("lib")
    assert children == sorted([str(tmp_path / "lib" / "main.dart"), str(tmp_path / "lib" / "src")])

    dart_files = await local_fs.list("lib", "**/*.dart")
    assert dart_files == [str(tmp_path / "lib" / "main.dart"), str(tmp_path / "lib" / "src" / "a.dart")]


async def test_stat(local_fs):
    await local_fs.write("data.json", "{}")
    info = await local_fs.stat("data.json")
    assert info.name == "data.json"
    assert info.size == 2
    assert info.is_directory is False


async def test_copy_and_move(local_fs, tmp_path):
    await local_fs.write("src/a.txt", "a")
    await local_fs.copy("src", "backup/src")
    await local_fs.move("src/a.txt", "dest/a.txt")
    assert (tmp_path / "backup" / "src" / "a.txt").read_text(encoding="utf-8") == "a"
    assert (tmp_path / "dest" / "a.txt").exists()
    assert not (tmp_path / "src" / "a.txt").exists()
