"""
gomod-artifacts — filesystem utilities

Purpose
- Atomic writes for manifest/lock files and containment checks for workspace paths.

Functional requirements
- Atomic writes use temp files in the destination directory and replace in a single step.
- Containment checks resolve symlinks before comparing paths.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path

PathLike = str | os.PathLike[str]

__all__ = [
    "atomic_write",
    "is_within",
]


def atomic_write(path: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    """
    Atomically write ``data`` to ``path``, creating parent directories as needed.

    Data is written to a sibling temp file, flushed and fsynced, then moved over
    the target with ``os.replace``.
    """

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target_parent = target.parent.resolve(strict=True)

    fd, temp_name = tempfile.mkstemp(
        prefix=f".{target.name}.",
        suffix=".tmp",
        dir=str(target_parent),
    )
    temp_path = Path(temp_name)

    try:
        if isinstance(data, bytes):
            with os.fdopen(fd, "wb") as file_handle:
                file_handle.write(data)
                file_handle.flush()
                os.fsync(file_handle.fileno())
        else:
            with os.fdopen(fd, "w", encoding=encoding, newline="") as file_handle:
                file_handle.write(data)
                file_handle.flush()
                os.fsync(file_handle.fileno())

        os.replace(temp_path, target)
    except Exception:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise


def is_within(child: PathLike, parent: PathLike) -> bool:
    """Return ``True`` if ``child`` (which need not exist) resolves inside ``parent``."""

    try:
        resolved_parent = Path(parent).resolve(strict=True)
    except FileNotFoundError:
        return False
    if not resolved_parent.is_dir():
        return False

    resolved_child = Path(child).resolve(strict=False)
    try:
        resolved_child.relative_to(resolved_parent)
    except ValueError:
        return False
    return True
