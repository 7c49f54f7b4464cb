"""Domain types shared by the planner, executor and collector; free of IO side effects."""

from gomod_artifacts.domain.models import (
    ArtifactError,
    ArtifactResult,
    CredentialInsertion,
    DeletedArtifact,
    DependencyRef,
    ExecutionContext,
    FileArtifact,
    ManifestUpdateRequest,
    PlannedCommand,
    PostUpdateOption,
    SandboxMode,
    UpdateConfig,
    UpdateKind,
    WorkingTreeDelta,
    parse_post_update_options,
    parse_update_kind,
    sandbox_mode_from_binary_source,
)

__all__ = [
    "ArtifactError",
    "ArtifactResult",
    "CredentialInsertion",
    "DeletedArtifact",
    "DependencyRef",
    "ExecutionContext",
    "FileArtifact",
    "ManifestUpdateRequest",
    "PlannedCommand",
    "PostUpdateOption",
    "SandboxMode",
    "UpdateConfig",
    "UpdateKind",
    "WorkingTreeDelta",
    "parse_post_update_options",
    "parse_update_kind",
    "sandbox_mode_from_binary_source",
]
