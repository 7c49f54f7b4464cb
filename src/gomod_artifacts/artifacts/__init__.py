"""Artifact regeneration: orchestration, change-set collection and manifest masking."""

from gomod_artifacts.artifacts.collector import ArtifactLayout, collect_artifacts
from gomod_artifacts.artifacts.updater import (
    ArtifactUpdater,
    UpdaterSettings,
    build_updater,
    update_artifacts,
)

__all__ = [
    "ArtifactLayout",
    "ArtifactUpdater",
    "UpdaterSettings",
    "build_updater",
    "collect_artifacts",
    "update_artifacts",
]
