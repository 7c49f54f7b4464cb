"""
gomod-artifacts — artifact update orchestrator

Purpose
- Regenerate ``go.sum`` (and ``vendor/``) for an already updated ``go.mod`` and report
  exactly the files that changed.

Functional requirements
- A missing lock file is a no-op: nothing is written and no command runs.
- Relative ``replace`` directives are masked only while commands run; the manifest on
  disk is unmasked again whether the commands succeed or fail.
- Commands run strictly sequentially with one execution context per call.
- Every failure is contained into a single error entry tagged with the lock path; its
  message never carries credentials.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import structlog

from gomod_artifacts.artifacts.collector import ArtifactLayout, collect_artifacts
from gomod_artifacts.artifacts.replace_directives import (
    mask_relative_replaces,
    restore_relative_replaces,
)
from gomod_artifacts.constants import GO_CONSTRAINT_KEY, MOD_PROGRAM
from gomod_artifacts.domain.models import (
    ArtifactError,
    ArtifactResult,
    ExecutionContext,
    ManifestUpdateRequest,
    PostUpdateOption,
    SandboxMode,
)
from gomod_artifacts.integration_plane.git_status import GitStatusReader, StatusReader
from gomod_artifacts.integration_plane.workspace import FileStore, LocalWorkspace
from gomod_artifacts.planning.command_planner import plan_commands
from gomod_artifacts.sandbox.container import ImagePrefetchCache
from gomod_artifacts.sandbox.credentials import HostRuleLookup
from gomod_artifacts.sandbox.environment import build_execution_context
from gomod_artifacts.sandbox.executor import (
    DEFAULT_COMMAND_TIMEOUT_SECONDS,
    ExecutorSettings,
    ToolchainExecutor,
)
from gomod_artifacts.sandbox.runner import CommandRunner
from gomod_artifacts.security.redaction import RedactionConfig, redact_text

_LOGGER = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class UpdaterSettings:
    local_dir: Path
    cache_dir: Path
    sandbox_mode: SandboxMode = SandboxMode.HOST


class ArtifactUpdater:
    """Orchestrates one ``update_artifacts`` call over injected collaborators."""

    def __init__(
        self,
        settings: UpdaterSettings,
        *,
        files: FileStore,
        status_reader: StatusReader,
        executor: ToolchainExecutor,
        host_rules: HostRuleLookup | None = None,
        process_env: Mapping[str, str] | None = None,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        self._settings = settings
        self._files = files
        self._status_reader = status_reader
        self._executor = executor
        self._host_rules = host_rules
        self._process_env = process_env
        self._base_env = base_env

    def update_artifacts(self, request: ManifestUpdateRequest) -> list[ArtifactResult] | None:
        layout = ArtifactLayout.for_manifest(request.manifest_path)
        context: ExecutionContext | None = None
        try:
            if self._files.read_bytes(layout.lock_path) is None:
                _LOGGER.debug("lock_file_missing", lock_path=layout.lock_path)
                return None

            vendor_marker = self._files.read_bytes(layout.vendor_marker_path)
            vendor_mode = vendor_marker is not None or request.config.has_option(
                PostUpdateOption.VENDOR_SYNC
            )

            context = build_execution_context(
                sandbox_mode=self._settings.sandbox_mode,
                config=request.config,
                cache_dir=self._settings.cache_dir,
                host_rules=self._host_rules,
                process_env=self._process_env,
                base_env=self._base_env,
            )
            working_dir = self._working_dir(layout)
            commands = plan_commands(request, working_dir=working_dir, vendor_mode=vendor_mode)
            rewrites_imports = any(command.program == MOD_PROGRAM for command in commands)

            self._files.write_file(
                layout.manifest_path, mask_relative_replaces(request.new_manifest_content)
            )
            try:
                self._executor.run_all(
                    commands,
                    context,
                    go_constraint=request.config.tool_constraints.get(GO_CONSTRAINT_KEY),
                )
            finally:
                self._unmask_manifest(layout.manifest_path)

            delta = self._status_reader.status()
            results = collect_artifacts(
                delta,
                self._files,
                layout,
                vendor_mode=vendor_mode,
                include_sources=rewrites_imports,
                new_manifest_content=request.new_manifest_content,
                restore_manifest=restore_relative_replaces,
            )
        except Exception as exc:  # noqa: BLE001
            message = redact_text(
                str(exc) or type(exc).__name__,
                config=RedactionConfig(known_secrets=_context_secrets(context)),
            )
            _LOGGER.warning(
                "artifact_update_failed",
                manifest=layout.manifest_path,
                lock_path=layout.lock_path,
                error_type=type(exc).__name__,
                error=message,
            )
            return [ArtifactError(path=layout.lock_path, message=message)]

        if results is None:
            _LOGGER.info("artifacts_unchanged", manifest=layout.manifest_path)
        else:
            _LOGGER.info(
                "artifacts_updated",
                manifest=layout.manifest_path,
                files=[result.path for result in results],
            )
        return results

    def _unmask_manifest(self, manifest_path: str) -> None:
        current = self._files.read_file(manifest_path)
        if current is None:
            return
        restored = restore_relative_replaces(current)
        if restored != current:
            self._files.write_file(manifest_path, restored)

    def _working_dir(self, layout: ArtifactLayout) -> str:
        module_dir = PurePosixPath(layout.module_dir)
        return str(self._settings.local_dir.joinpath(*module_dir.parts))


def build_updater(
    settings: UpdaterSettings,
    *,
    host_rules: HostRuleLookup | None = None,
    prefetch_cache: ImagePrefetchCache | None = None,
    runner: CommandRunner | None = None,
    docker_image: str | None = None,
    container_prefix: str | None = None,
    timeout_seconds: float = DEFAULT_COMMAND_TIMEOUT_SECONDS,
    process_env: Mapping[str, str] | None = None,
) -> ArtifactUpdater:
    """Wire an :class:`ArtifactUpdater` with the default on-disk collaborators."""

    executor_settings = ExecutorSettings(
        local_dir=settings.local_dir,
        cache_dir=settings.cache_dir,
        timeout_seconds=timeout_seconds,
        **_present(docker_image=docker_image, container_prefix=container_prefix),
    )
    return ArtifactUpdater(
        settings,
        files=LocalWorkspace(settings.local_dir),
        status_reader=GitStatusReader(settings.local_dir),
        executor=ToolchainExecutor(
            executor_settings, runner=runner, prefetch_cache=prefetch_cache
        ),
        host_rules=host_rules,
        process_env=process_env,
    )


def update_artifacts(
    request: ManifestUpdateRequest,
    *,
    local_dir: Path | str,
    cache_dir: Path | str,
    sandbox_mode: SandboxMode = SandboxMode.HOST,
    host_rules: HostRuleLookup | None = None,
    prefetch_cache: ImagePrefetchCache | None = None,
) -> list[ArtifactResult] | None:
    """One-shot convenience wrapper around :class:`ArtifactUpdater`."""

    settings = UpdaterSettings(
        local_dir=Path(local_dir).resolve(),
        cache_dir=Path(cache_dir).resolve(),
        sandbox_mode=sandbox_mode,
    )
    updater = build_updater(settings, host_rules=host_rules, prefetch_cache=prefetch_cache)
    return updater.update_artifacts(request)


def _context_secrets(context: ExecutionContext | None) -> tuple[str, ...]:
    if context is None:
        return ()
    secrets: list[str] = []
    for insertion in context.credential_insertions:
        for value in (insertion.token, insertion.password, insertion.render_url()):
            if value:
                secrets.append(value)
    return tuple(secrets)


def _present(**values: str | None) -> dict[str, str]:
    return {key: value for key, value in values.items() if value}


__all__ = [
    "ArtifactUpdater",
    "UpdaterSettings",
    "build_updater",
    "update_artifacts",
]
