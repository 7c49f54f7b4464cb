"""Run planned toolchain commands on the host, via an installed binary, or in a container."""

from __future__ import annotations

import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

import structlog

from gomod_artifacts.constants import DEFAULT_CONTAINER_PREFIX, DEFAULT_DOCKER_IMAGE
from gomod_artifacts.domain.models import ExecutionContext, PlannedCommand, SandboxMode
from gomod_artifacts.sandbox.container import (
    ContainerRuntime,
    ContainerSpec,
    DockerRuntime,
    ImagePrefetchCache,
    build_docker_command,
    resolve_image_tag,
)
from gomod_artifacts.sandbox.runner import (
    CommandExecutionError,
    CommandExecutionResult,
    CommandRunner,
    SubprocessCommandRunner,
    ToolchainNotFoundError,
)

_LOGGER = structlog.get_logger(__name__)

Which = Callable[..., str | None]

DEFAULT_COMMAND_TIMEOUT_SECONDS = 900.0


@dataclass(frozen=True, slots=True)
class ExecutorSettings:
    local_dir: Path
    cache_dir: Path
    docker_image: str = DEFAULT_DOCKER_IMAGE
    container_prefix: str = DEFAULT_CONTAINER_PREFIX
    timeout_seconds: float = DEFAULT_COMMAND_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ValueError("ExecutorSettings.timeout_seconds must be > 0")


class ToolchainExecutor:
    """Dispatch :class:`PlannedCommand` objects through a :class:`CommandRunner`."""

    def __init__(
        self,
        settings: ExecutorSettings,
        *,
        runner: CommandRunner | None = None,
        container_runtime: ContainerRuntime | None = None,
        prefetch_cache: ImagePrefetchCache | None = None,
        which: Which = shutil.which,
    ) -> None:
        self._settings = settings
        self._runner = runner if runner is not None else SubprocessCommandRunner()
        if container_runtime is None:
            cache = prefetch_cache if prefetch_cache is not None else ImagePrefetchCache()
            container_runtime = DockerRuntime(self._runner, cache)
        self._container_runtime = container_runtime
        self._which = which

    @property
    def settings(self) -> ExecutorSettings:
        return self._settings

    def run_all(
        self,
        commands: Sequence[PlannedCommand],
        context: ExecutionContext,
        *,
        go_constraint: str | None = None,
    ) -> tuple[CommandExecutionResult, ...]:
        """Run ``commands`` strictly in order; the first failure aborts the rest."""

        return tuple(
            self.execute(command, context, go_constraint=go_constraint) for command in commands
        )

    def execute(
        self,
        command: PlannedCommand,
        context: ExecutionContext,
        *,
        go_constraint: str | None = None,
    ) -> CommandExecutionResult:
        cwd = Path(command.working_dir)
        env = dict(context.environment)

        if context.sandbox_mode is SandboxMode.CONTAINER:
            argv = self._container_argv(command, context, cwd=cwd, go_constraint=go_constraint)
        elif context.sandbox_mode is SandboxMode.INSTALLED:
            resolved = self._which(command.program, path=env.get("PATH"))
            if resolved is None:
                raise ToolchainNotFoundError(command.program, search_path=env.get("PATH"))
            argv = (resolved, *command.args)
        else:
            argv = command.argv

        _LOGGER.info(
            "toolchain_command_started",
            command=command.render(),
            sandbox_mode=context.sandbox_mode.value,
            description=command.description,
        )
        result = self._runner.run(
            argv, cwd=cwd, env=env, timeout_seconds=self._settings.timeout_seconds
        )
        if not result.succeeded:
            raise CommandExecutionError(
                command=command.argv,
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        return result

    def _container_argv(
        self,
        command: PlannedCommand,
        context: ExecutionContext,
        *,
        cwd: Path,
        go_constraint: str | None,
    ) -> tuple[str, ...]:
        spec = ContainerSpec(
            image=self._settings.docker_image,
            tag=resolve_image_tag(go_constraint),
            name_prefix=self._settings.container_prefix,
            local_dir=self._settings.local_dir,
            cache_dir=self._settings.cache_dir,
        )
        env = dict(context.environment)
        self._container_runtime.prefetch(spec.image_ref, env=env, cwd=cwd)
        self._container_runtime.remove_stale(spec.container_name, env=env, cwd=cwd)
        return build_docker_command(spec, command, env_names=context.forwarded_env)


__all__ = [
    "DEFAULT_COMMAND_TIMEOUT_SECONDS",
    "ExecutorSettings",
    "ToolchainExecutor",
]
