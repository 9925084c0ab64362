"""Tests for the atomic write/read primitives."""

import json
from pathlib import Path
from unittest import mock

import pytest

from agent_bridge.atomic import atomic_create_json, atomic_write_json, atomic_write_text, read_json, read_text


def test_write_json_creates_parent_dirs(tmp_path: Path) -> None:
    """Missing parent directories are created."""
    path = tmp_path / "a" / "b" / "test.json"
    atomic_write_json(path, {"hello": "world"})
    assert json.loads(path.read_text()) == {"hello": "world"}


def test_write_json_overwrites(tmp_path: Path) -> None:
    """A second write replaces the whole file."""
    path = tmp_path / "test.json"
    atomic_write_json(path, {"v": 1, "extra": "x"})
    atomic_write_json(path, {"v": 2})
    assert json.loads(path.read_text()) == {"v": 2}


def test_write_leaves_no_temp_files(tmp_path: Path) -> None:
    """Only the target remains after a successful write."""
    path = tmp_path / "test.json"
    atomic_write_json(path, {"v": 1})
    atomic_write_json(path, {"v": 2})
    assert [p.name for p in tmp_path.iterdir()] == ["test.json"]


def test_failed_rename_keeps_old_content(tmp_path: Path) -> None:
    """If the rename fails the old file is untouched and the temp file removed."""
    path = tmp_path / "doc.md"
    atomic_write_text(path, "old")
    with mock.patch.object(Path, "replace", side_effect=OSError("disk gone")), pytest.raises(OSError):
        atomic_write_text(path, "new")
    assert path.read_text() == "old"
    assert [p.name for p in tmp_path.iterdir()] == ["doc.md"]


def test_read_json_parses(tmp_path: Path) -> None:
    """Existing JSON files are parsed."""
    path = tmp_path / "test.json"
    path.write_text(json.dumps({"key": "val"}))
    assert read_json(path) == {"key": "val"}


def test_read_json_missing_is_none(tmp_path: Path) -> None:
    """A missing file reads as None."""
    assert read_json(tmp_path / "nope.json") is None
    assert read_text(tmp_path / "nope.md") is None


def test_read_json_corrupt_raises(tmp_path: Path) -> None:
    """Corrupt JSON is not hidden by the reader."""
    path = tmp_path / "bad.json"
    path.write_text("{not json")
    with pytest.raises(json.JSONDecodeError):
        read_json(path)


def test_read_other_errors_propagate(tmp_path: Path) -> None:
    """Errors other than a missing file propagate (here: path is a directory)."""
    (tmp_path / "dir.json").mkdir()
    with pytest.raises(IsADirectoryError):
        read_json(tmp_path / "dir.json")


def test_create_json_is_exclusive(tmp_path: Path) -> None:
    """atomic_create_json never replaces an existing file and leaves no temp files."""
    path = tmp_path / "meta.json"
    atomic_create_json(path, {"v": 1})
    with pytest.raises(FileExistsError):
        atomic_create_json(path, {"v": 2})
    assert json.loads(path.read_text()) == {"v": 1}
    assert [p.name for p in tmp_path.iterdir()] == ["meta.json"]
