"""
gomod-artifacts — unit tests for filesystem helpers
"""

from __future__ import annotations

from pathlib import Path

import pytest

from gomod_artifacts.utils.fs import atomic_write, is_within


def test_atomic_write_creates_parents_and_leaves_no_temp_files(tmp_path: Path) -> None:
    target = tmp_path / "svc" / "go.sum"

    atomic_write(target, "line\r\n")
    atomic_write(target, b"bytes")

    assert target.read_bytes() == b"bytes"
    assert sorted(path.name for path in target.parent.iterdir()) == ["go.sum"]


def test_atomic_write_preserves_newlines(tmp_path: Path) -> None:
    target = tmp_path / "go.mod"

    atomic_write(target, "module m\r\n")

    assert target.read_bytes() == b"module m\r\n"


def test_atomic_write_cleans_up_on_failure(tmp_path: Path) -> None:
    target = tmp_path / "go.sum"

    with pytest.raises(TypeError):
        atomic_write(target, 42)  # type: ignore[arg-type]

    assert list(tmp_path.iterdir()) == []


def test_is_within(tmp_path: Path) -> None:
    (tmp_path / "inner").mkdir()

    assert is_within(tmp_path / "inner" / "missing.txt", tmp_path)
    assert not is_within(tmp_path.parent, tmp_path)
    assert not is_within(tmp_path / "x", tmp_path / "absent")
