"""Frozen dataclass models for artifact update requests, plans and results."""

from __future__ import annotations

import base64
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Final, TypeAlias
from urllib.parse import quote

import structlog

_LOGGER = structlog.get_logger(__name__)

_SECRET_MASK: Final[str] = "***"


class PostUpdateOption(StrEnum):
    """Closed set of recognized post-update options."""

    VENDOR_SYNC = "vendorSync"
    TIDY = "tidy"
    UPDATE_IMPORT_PATHS = "updateImportPaths"


_POST_UPDATE_ALIASES: Final[Mapping[str, PostUpdateOption]] = MappingProxyType(
    {
        "vendorSync": PostUpdateOption.VENDOR_SYNC,
        "tidy": PostUpdateOption.TIDY,
        "gomodTidy": PostUpdateOption.TIDY,
        "updateImportPaths": PostUpdateOption.UPDATE_IMPORT_PATHS,
        "gomodUpdateImportPaths": PostUpdateOption.UPDATE_IMPORT_PATHS,
    }
)


class UpdateKind(StrEnum):
    NONE = "none"
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


class SandboxMode(StrEnum):
    """Execution strategy used to invoke the toolchain."""

    HOST = "host"
    INSTALLED = "installed"
    CONTAINER = "container"


_BINARY_SOURCE_MODES: Final[Mapping[str, SandboxMode]] = MappingProxyType(
    {
        "auto": SandboxMode.HOST,
        "host": SandboxMode.HOST,
        "global": SandboxMode.INSTALLED,
        "installed": SandboxMode.INSTALLED,
        "docker": SandboxMode.CONTAINER,
        "container": SandboxMode.CONTAINER,
    }
)


def parse_post_update_options(
    values: Iterable[str | PostUpdateOption] | None,
) -> frozenset[PostUpdateOption]:
    """Map loosely typed option names onto :class:`PostUpdateOption`, ignoring unknown ones."""

    if values is None:
        return frozenset()
    parsed: set[PostUpdateOption] = set()
    for raw in values:
        if isinstance(raw, PostUpdateOption):
            parsed.add(raw)
            continue
        option = _POST_UPDATE_ALIASES.get(str(raw).strip())
        if option is None:
            _LOGGER.debug("post_update_option_ignored", option=str(raw))
            continue
        parsed.add(option)
    return frozenset(parsed)


def parse_update_kind(value: str | UpdateKind | None) -> UpdateKind:
    if isinstance(value, UpdateKind):
        return value
    if value is None:
        return UpdateKind.NONE
    try:
        return UpdateKind(value.strip().lower())
    except ValueError:
        _LOGGER.debug("update_kind_unrecognized", update_kind=value)
        return UpdateKind.NONE


def sandbox_mode_from_binary_source(value: str | SandboxMode | None) -> SandboxMode:
    """Resolve the external sandbox selector; unset or unknown values mean host execution."""

    if isinstance(value, SandboxMode):
        return value
    if value is None:
        return SandboxMode.HOST
    return _BINARY_SOURCE_MODES.get(value.strip().lower(), SandboxMode.HOST)


@dataclass(frozen=True, slots=True)
class DependencyRef:
    dep_name: str
    current_version: str | None = None
    new_version: str | None = None

    def __post_init__(self) -> None:
        name = self.dep_name.strip() if isinstance(self.dep_name, str) else ""
        if not name:
            raise ValueError("DependencyRef.dep_name must be a non-empty string")
        object.__setattr__(self, "dep_name", name)


@dataclass(frozen=True, slots=True)
class UpdateConfig:
    """Per-call update configuration."""

    tool_constraints: Mapping[str, str] = field(default_factory=dict)
    post_update_options: frozenset[PostUpdateOption] = frozenset()
    registry_urls: tuple[str, ...] = ()
    update_kind: UpdateKind = UpdateKind.NONE
    new_major_version: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "tool_constraints",
            MappingProxyType({str(key): str(val) for key, val in self.tool_constraints.items()}),
        )
        object.__setattr__(
            self, "post_update_options", parse_post_update_options(self.post_update_options)
        )
        object.__setattr__(self, "registry_urls", tuple(str(url) for url in self.registry_urls))
        object.__setattr__(self, "update_kind", parse_update_kind(self.update_kind))
        if self.new_major_version is not None and (
            isinstance(self.new_major_version, bool) or not isinstance(self.new_major_version, int)
        ):
            raise ValueError("UpdateConfig.new_major_version must be an integer")

    def has_option(self, option: PostUpdateOption) -> bool:
        return option in self.post_update_options


@dataclass(frozen=True, slots=True)
class ManifestUpdateRequest:
    """Input of a single artifact update call. Never mutated."""

    manifest_path: str
    new_manifest_content: str
    updated_dependencies: tuple[DependencyRef, ...] = ()
    config: UpdateConfig = field(default_factory=UpdateConfig)

    def __post_init__(self) -> None:
        normalized = PurePosixPath(self.manifest_path.strip()).as_posix()
        if normalized in {"", "."}:
            raise ValueError("ManifestUpdateRequest.manifest_path must not be empty")
        object.__setattr__(self, "manifest_path", normalized)
        object.__setattr__(self, "updated_dependencies", tuple(self.updated_dependencies))


@dataclass(frozen=True, slots=True)
class CredentialInsertion:
    """A credential bound to one private host pattern.

    Exactly one of ``token`` or the ``username``/``password`` pair is set.
    """

    host_pattern: str
    token: str | None = None
    username: str | None = None
    password: str | None = None

    def __post_init__(self) -> None:
        if self.token:
            if self.username or self.password:
                raise ValueError("CredentialInsertion accepts a token or a username/password pair")
            return
        if not (self.username and self.password):
            raise ValueError("CredentialInsertion requires a token or a username/password pair")

    @property
    def base_url(self) -> str:
        return f"https://{self.host_pattern}/"

    def render_url(self) -> str:
        """Return ``https://<token>@<host>/`` or ``https://<user>:<password>@<host>/``."""

        if self.token:
            userinfo = quote(self.token, safe="")
        else:
            user = quote(self.username or "", safe="")
            secret = quote(self.password or "", safe="")
            userinfo = f"{user}:{secret}"
        return f"https://{userinfo}@{self.host_pattern}/"

    def __repr__(self) -> str:
        kind = "token" if self.token else "userpass"
        return (
            f"CredentialInsertion(host_pattern={self.host_pattern!r}, "
            f"kind={kind!r}, secret={_SECRET_MASK!r})"
        )


@dataclass(frozen=True, slots=True)
class ExecutionContext:
    """Environment and credentials shared by every command of one call."""

    sandbox_mode: SandboxMode
    environment: Mapping[str, str]
    credential_insertions: tuple[CredentialInsertion, ...] = ()
    forwarded_env: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "environment", MappingProxyType(dict(self.environment)))
        object.__setattr__(self, "credential_insertions", tuple(self.credential_insertions))
        object.__setattr__(self, "forwarded_env", tuple(self.forwarded_env))


@dataclass(frozen=True, slots=True)
class PlannedCommand:
    program: str
    args: tuple[str, ...]
    working_dir: str
    description: str = ""

    def __post_init__(self) -> None:
        if not self.program.strip():
            raise ValueError("PlannedCommand.program must not be empty")
        object.__setattr__(self, "args", tuple(self.args))

    @property
    def argv(self) -> tuple[str, ...]:
        return (self.program, *self.args)

    def render(self) -> str:
        return " ".join(self.argv)


@dataclass(frozen=True, slots=True)
class WorkingTreeDelta:
    """Working tree changes in the order the status reader reported them."""

    modified: tuple[str, ...] = ()
    added: tuple[str, ...] = ()
    deleted: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "modified", _unique(self.modified))
        object.__setattr__(self, "added", _unique(self.added))
        object.__setattr__(self, "deleted", _unique(self.deleted))

    @property
    def changed(self) -> tuple[str, ...]:
        """Modified paths followed by added paths; both need a re-read."""

        return _unique((*self.modified, *self.added))

    @property
    def is_empty(self) -> bool:
        return not (self.modified or self.added or self.deleted)


@dataclass(frozen=True, slots=True)
class FileArtifact:
    """A changed file; ``contents`` are the bytes on disk after the toolchain ran."""

    path: str
    contents: bytes

    def to_dict(self) -> dict[str, object]:
        try:
            return {"path": self.path, "contents": self.contents.decode("utf-8")}
        except UnicodeDecodeError:
            encoded = base64.b64encode(self.contents).decode("ascii")
            return {"path": self.path, "contents": encoded, "encoding": "base64"}


@dataclass(frozen=True, slots=True)
class DeletedArtifact:
    path: str

    @property
    def contents(self) -> str:
        # Deletions carry their own path as payload, never file bytes.
        return self.path

    def to_dict(self) -> dict[str, object]:
        return {"path": self.path, "is_deleted": True}


@dataclass(frozen=True, slots=True)
class ArtifactError:
    path: str
    message: str

    def to_dict(self) -> dict[str, object]:
        return {"path": self.path, "error": self.message}


ArtifactResult: TypeAlias = FileArtifact | DeletedArtifact | ArtifactError


def _unique(paths: Iterable[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    ordered: list[str] = []
    for raw in paths:
        path = PurePosixPath(raw).as_posix()
        if path in seen:
            continue
        seen.add(path)
        ordered.append(path)
    return tuple(ordered)


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
