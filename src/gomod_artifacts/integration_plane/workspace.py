"""Workspace file access confined to the local checkout."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Protocol

from gomod_artifacts.utils.fs import atomic_write, is_within


class WorkspaceError(RuntimeError):
    """Raised when a path escapes the workspace root."""


class FileStore(Protocol):
    """Reads and writes files addressed by workspace-relative POSIX paths."""

    def read_file(self, relative_path: str) -> str | None: ...

    def read_bytes(self, relative_path: str) -> bytes | None: ...

    def write_file(self, relative_path: str, contents: str) -> None: ...


class LocalWorkspace:
    """:class:`FileStore` over a directory on disk."""

    def __init__(self, root: Path | str) -> None:
        resolved = Path(root).resolve()
        if not resolved.is_dir():
            raise WorkspaceError(f"workspace root {resolved!s} is not a directory")
        self._root = resolved

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, relative_path: str) -> Path:
        pure = PurePosixPath(relative_path)
        if pure.is_absolute():
            raise WorkspaceError(f"path must be workspace-relative: {relative_path!r}")
        candidate = self._root.joinpath(*pure.parts)
        if not is_within(candidate, self._root):
            raise WorkspaceError(f"path escapes the workspace: {relative_path!r}")
        return candidate

    def read_file(self, relative_path: str) -> str | None:
        """UTF-8 text with line endings untouched; ``None`` when the file does not exist."""

        data = self.read_bytes(relative_path)
        return None if data is None else data.decode("utf-8")

    def read_bytes(self, relative_path: str) -> bytes | None:
        path = self.resolve(relative_path)
        try:
            return path.read_bytes()
        except (FileNotFoundError, NotADirectoryError):
            return None

    def write_file(self, relative_path: str, contents: str) -> None:
        atomic_write(self.resolve(relative_path), contents)


__all__ = [
    "FileStore",
    "LocalWorkspace",
    "WorkspaceError",
]
