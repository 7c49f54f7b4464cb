"""
gomod-artifacts — change-set collector

Purpose
- Turn the working tree delta reported after the toolchain ran into artifact results.

Functional requirements
- Only paths reported by the status reader are considered; toolchain output is never
  trusted for change detection.
- Deleted paths are never read. Changed files are read as raw bytes.
- Result order: lock file, rewritten Go sources, vendor files, deletions, manifest.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import PurePosixPath

import structlog

from gomod_artifacts.constants import (
    GO_SOURCE_SUFFIX,
    LOCK_SUFFIX,
    MANIFEST_SUFFIX,
    VENDOR_DIRNAME,
    VENDOR_MARKER_FILENAME,
)
from gomod_artifacts.domain.models import (
    ArtifactResult,
    DeletedArtifact,
    FileArtifact,
    WorkingTreeDelta,
)
from gomod_artifacts.integration_plane.workspace import FileStore

_LOGGER = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ArtifactLayout:
    """Workspace-relative locations derived from the manifest path."""

    manifest_path: str
    lock_path: str
    module_dir: str
    vendor_dir: str
    vendor_marker_path: str

    @classmethod
    def for_manifest(cls, manifest_path: str) -> ArtifactLayout:
        manifest = PurePosixPath(manifest_path)
        if manifest.suffix == MANIFEST_SUFFIX:
            lock = manifest.with_suffix(LOCK_SUFFIX)
        else:
            lock = manifest.with_name(f"{manifest.name}{LOCK_SUFFIX}")
        module_dir = manifest.parent
        vendor_dir = module_dir / VENDOR_DIRNAME
        return cls(
            manifest_path=manifest.as_posix(),
            lock_path=lock.as_posix(),
            module_dir=module_dir.as_posix(),
            vendor_dir=vendor_dir.as_posix(),
            vendor_marker_path=(vendor_dir / VENDOR_MARKER_FILENAME).as_posix(),
        )

    def is_vendor_path(self, path: str) -> bool:
        return path.startswith(f"{self.vendor_dir}/")

    def is_module_source(self, path: str) -> bool:
        if not path.endswith(GO_SOURCE_SUFFIX) or self.is_vendor_path(path):
            return False
        if self.module_dir == ".":
            return True
        return path.startswith(f"{self.module_dir}/")


def collect_artifacts(
    delta: WorkingTreeDelta,
    files: FileStore,
    layout: ArtifactLayout,
    *,
    vendor_mode: bool,
    include_sources: bool,
    new_manifest_content: str,
    restore_manifest: Callable[[str], str] = lambda content: content,
) -> list[ArtifactResult] | None:
    """Build the ordered result list; ``None`` when no tracked artifact changed."""

    changed = delta.changed
    results: list[ArtifactResult] = []

    if layout.lock_path in changed:
        _append_read(results, files, layout.lock_path)

    if include_sources:
        for path in changed:
            if layout.is_module_source(path):
                _append_read(results, files, path)

    if vendor_mode:
        for path in changed:
            if layout.is_vendor_path(path):
                _append_read(results, files, path)

    for path in delta.deleted:
        if _is_tracked_deletion(path, layout, vendor_mode=vendor_mode):
            results.append(DeletedArtifact(path=path))

    final_manifest = files.read_file(layout.manifest_path)
    if final_manifest is not None:
        restored = restore_manifest(final_manifest)
        if restored != new_manifest_content:
            results.append(
                FileArtifact(path=layout.manifest_path, contents=restored.encode("utf-8"))
            )

    if not results:
        _LOGGER.debug("no_tracked_artifacts_changed", manifest=layout.manifest_path)
        return None
    return results


def _append_read(results: list[ArtifactResult], files: FileStore, path: str) -> None:
    contents = files.read_bytes(path)
    if contents is None:
        _LOGGER.debug("changed_path_unreadable", path=path)
        return
    results.append(FileArtifact(path=path, contents=contents))


def _is_tracked_deletion(path: str, layout: ArtifactLayout, *, vendor_mode: bool) -> bool:
    if path == layout.lock_path:
        return True
    return vendor_mode and layout.is_vendor_path(path)


__all__ = [
    "ArtifactLayout",
    "collect_artifacts",
]
