"""Docker based sandbox: image prefetch cache, ``docker run`` construction, stale cleanup."""

from __future__ import annotations

import shlex
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import structlog

from gomod_artifacts.constants import CONTAINER_SHELL, ENV_GOBIN, LATEST_TOOL_VERSION
from gomod_artifacts.domain.models import PlannedCommand
from gomod_artifacts.sandbox.environment import go_version_from_constraint
from gomod_artifacts.sandbox.runner import CommandRunner, ToolchainError

_LOGGER = structlog.get_logger(__name__)

_DOCKER_PROGRAM = "docker"
_DOCKER_HOUSEKEEPING_TIMEOUT_SECONDS = 60.0


class ImagePrefetchCache:
    """Image references pulled during the current work session.

    One instance is shared by every update call of a session; :meth:`reset` starts a
    new session.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._images: set[str] = set()

    def __contains__(self, image: object) -> bool:
        with self._lock:
            return image in self._images

    def __len__(self) -> int:
        with self._lock:
            return len(self._images)

    def mark(self, image: str) -> None:
        with self._lock:
            self._images.add(image)

    def reset(self) -> None:
        with self._lock:
            self._images.clear()


@dataclass(frozen=True, slots=True)
class ContainerSpec:
    image: str
    tag: str
    name_prefix: str
    local_dir: Path
    cache_dir: Path

    @property
    def image_ref(self) -> str:
        return f"{self.image}:{self.tag}"

    @property
    def container_name(self) -> str:
        return f"{self.name_prefix}-go"

    @property
    def child_label(self) -> str:
        return f"{self.name_prefix}-child"


def resolve_image_tag(go_constraint: str | None) -> str:
    """Pick ``<major>.<minor>`` from the ``go`` constraint, else ``latest``."""

    version = go_version_from_constraint(go_constraint)
    if version is None:
        return LATEST_TOOL_VERSION
    return f"{version.major}.{version.minor}"


def build_docker_command(
    spec: ContainerSpec,
    command: PlannedCommand,
    *,
    env_names: Iterable[str] = (),
) -> tuple[str, ...]:
    """Wrap ``command`` into ``docker run``; env values are read by docker from its own env."""

    local_dir = str(spec.local_dir)
    cache_dir = str(spec.cache_dir)
    names = tuple(env_names)
    argv: list[str] = [
        _DOCKER_PROGRAM,
        "run",
        "--rm",
        f"--name={spec.container_name}",
        f"--label={spec.child_label}",
        "-v",
        f"{local_dir}:{local_dir}",
        "-v",
        f"{cache_dir}:{cache_dir}",
    ]
    for name in names:
        argv.extend(("-e", name))
    argv.extend(("-w", str(command.working_dir), spec.image_ref))
    argv.extend(CONTAINER_SHELL)
    script = shlex.join(command.argv)
    if ENV_GOBIN in names:
        # The image PATH locates `go`; GOBIN adds tools installed into the mounted cache.
        script = f'export PATH="${ENV_GOBIN}:$PATH"; {script}'
    argv.append(script)
    return tuple(argv)


class ContainerRuntime(Protocol):
    """Container housekeeping performed before each containerized command."""

    def prefetch(self, image_ref: str, *, env: Mapping[str, str], cwd: Path) -> None: ...

    def remove_stale(self, container_name: str, *, env: Mapping[str, str], cwd: Path) -> None: ...


class DockerRuntime:
    """Docker CLI housekeeping executed through a :class:`CommandRunner`."""

    def __init__(self, runner: CommandRunner, cache: ImagePrefetchCache) -> None:
        self._runner = runner
        self._cache = cache

    @property
    def cache(self) -> ImagePrefetchCache:
        return self._cache

    def prefetch(self, image_ref: str, *, env: Mapping[str, str], cwd: Path) -> None:
        if image_ref in self._cache:
            _LOGGER.debug("docker_image_already_prefetched", image=image_ref)
            return
        command = (_DOCKER_PROGRAM, "pull", image_ref)
        result = self._runner.run(
            command, cwd=cwd, env=env, timeout_seconds=_DOCKER_HOUSEKEEPING_TIMEOUT_SECONDS * 10
        )
        if not result.succeeded:
            # docker run pulls on demand; a failed prefetch is retried on the next call.
            _LOGGER.warning(
                "docker_image_prefetch_failed", image=image_ref, returncode=result.returncode
            )
            return
        self._cache.mark(image_ref)
        _LOGGER.info("docker_image_prefetched", image=image_ref)

    def remove_stale(self, container_name: str, *, env: Mapping[str, str], cwd: Path) -> None:
        command = (_DOCKER_PROGRAM, "rm", "-f", container_name)
        try:
            result = self._runner.run(
                command, cwd=cwd, env=env, timeout_seconds=_DOCKER_HOUSEKEEPING_TIMEOUT_SECONDS
            )
        except ToolchainError as exc:
            _LOGGER.debug("docker_stale_container_remove_failed", error=str(exc))
            return
        if not result.succeeded:
            _LOGGER.debug(
                "docker_stale_container_not_removed",
                container=container_name,
                returncode=result.returncode,
            )


__all__ = [
    "ContainerRuntime",
    "ContainerSpec",
    "DockerRuntime",
    "ImagePrefetchCache",
    "build_docker_command",
    "resolve_image_tag",
]
