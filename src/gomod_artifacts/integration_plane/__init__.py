"""Working tree integration: git status reading and workspace file access."""

from gomod_artifacts.integration_plane.git_status import (
    GitStatusError,
    GitStatusReader,
    StatusReader,
    parse_porcelain_status,
)
from gomod_artifacts.integration_plane.workspace import FileStore, LocalWorkspace, WorkspaceError

__all__ = [
    "FileStore",
    "GitStatusError",
    "GitStatusReader",
    "LocalWorkspace",
    "StatusReader",
    "WorkspaceError",
    "parse_porcelain_status",
]
