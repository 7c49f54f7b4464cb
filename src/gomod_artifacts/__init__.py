"""
gomod-artifacts — Go module artifact regeneration.

Purpose
- Given an already updated ``go.mod``, run the Go toolchain (on the host, from an
  installed toolchain, or inside a container) and report the regenerated ``go.sum``,
  ``vendor/`` tree and rewritten sources.

Import boundary
- Importing the package has no side effects: no config loading, no logging setup.
"""

from gomod_artifacts.artifacts.updater import ArtifactUpdater, update_artifacts
from gomod_artifacts.domain.models import (
    ArtifactError,
    DeletedArtifact,
    DependencyRef,
    FileArtifact,
    ManifestUpdateRequest,
    UpdateConfig,
)

__version__ = "0.1.0"

__all__ = [
    "ArtifactError",
    "ArtifactUpdater",
    "DeletedArtifact",
    "DependencyRef",
    "FileArtifact",
    "ManifestUpdateRequest",
    "UpdateConfig",
    "__version__",
    "update_artifacts",
]
