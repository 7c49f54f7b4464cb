"""
gomod-artifacts — execution environment builder

Purpose
- Build the environment shared by every toolchain command of one update call.

Functional requirements
- Interactive git credential prompts are disabled.
- Private host credentials are injected as numbered git config entries, continuing the
  numbering of a valid pre-existing ``GIT_CONFIG_COUNT``.
- An unparsable ``GIT_CONFIG_COUNT`` is dropped, never forwarded and never an error.
- Empty values are never emitted.
- ``GOBIN`` lives under the module cache and leads the child ``PATH``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

import structlog
from semantic_version import Version

from gomod_artifacts.constants import (
    BASE_ENV_KEYS,
    ENV_CGO_ENABLED,
    ENV_GIT_CONFIG_COUNT,
    ENV_GIT_CONFIG_KEY_PREFIX,
    ENV_GIT_CONFIG_VALUE_PREFIX,
    ENV_GIT_TERMINAL_PROMPT,
    ENV_GOBIN,
    ENV_GOFLAGS,
    ENV_GONOPROXY,
    ENV_GONOSUMDB,
    ENV_GOPATH,
    ENV_GOPRIVATE,
    ENV_GOPROXY,
    ENV_GOSUMDB,
    ENV_PATH,
    GO_CONSTRAINT_KEY,
)
from gomod_artifacts.domain.models import ExecutionContext, SandboxMode, UpdateConfig
from gomod_artifacts.sandbox.credentials import (
    HostRuleLookup,
    HostRules,
    collect_private_patterns,
    render_git_config_env,
    resolve_credentials,
)

_LOGGER = structlog.get_logger(__name__)

_MODCACHERW_MIN_VERSION = Version("1.14.0")
_CONSTRAINT_PREFIX_CHARS = "^~=<>v "


def minimal_child_env(process_env: Mapping[str, str] | None = None) -> dict[str, str]:
    """The host variables a child process needs to find programs and reach networks."""

    source = os.environ if process_env is None else process_env
    return {key: source[key] for key in BASE_ENV_KEYS if source.get(key)}


def parse_git_config_count(raw: str | None) -> int | None:
    """Return the count when it is a non-negative integer, otherwise ``None``."""

    if raw is None:
        return None
    text = raw.strip()
    if not (text.isascii() and text.isdigit()):
        return None
    return int(text)


def go_version_from_constraint(constraint: str | None) -> Version | None:
    """Best-effort coercion of a ``go`` constraint such as ``1.14`` or ``>=1.13``."""

    if not constraint:
        return None
    text = constraint.strip().lstrip(_CONSTRAINT_PREFIX_CHARS)
    if not text:
        return None
    try:
        return Version.coerce(text)
    except ValueError:
        _LOGGER.debug("go_constraint_unparsable", constraint=constraint)
        return None


def wants_modcacherw(constraint: str | None) -> bool:
    """``-modcacherw`` exists from Go 1.14 on; assume a recent toolchain when unknown."""

    version = go_version_from_constraint(constraint)
    return version is None or version >= _MODCACHERW_MIN_VERSION


def build_execution_context(
    *,
    sandbox_mode: SandboxMode,
    config: UpdateConfig,
    cache_dir: Path | str,
    host_rules: HostRuleLookup | None = None,
    process_env: Mapping[str, str] | None = None,
    base_env: Mapping[str, str] | None = None,
) -> ExecutionContext:
    """Build a fresh :class:`ExecutionContext` for one update call.

    ``process_env`` is where GOPRIVATE, proxies and ``GIT_CONFIG_*`` are read from
    (default ``os.environ``). ``base_env`` replaces the minimal child environment.
    """

    source = dict(os.environ if process_env is None else process_env)
    rules = host_rules if host_rules is not None else HostRules()

    environment = dict(base_env) if base_env is not None else minimal_child_env(source)
    added: dict[str, str] = {}

    added[ENV_GIT_TERMINAL_PROMPT] = "0"
    gopath = Path(cache_dir) / "go"
    added[ENV_GOPATH] = str(gopath)
    added[ENV_GOBIN] = str(gopath / "bin")

    for key in (ENV_GOPROXY, ENV_GOPRIVATE, ENV_GOSUMDB):
        value = source.get(key)
        if value:
            added[key] = value

    patterns = collect_private_patterns(source.get(ENV_GOPRIVATE), config.registry_urls)
    joined_patterns = ",".join(patterns)
    for key in (ENV_GONOPROXY, ENV_GONOSUMDB):
        value = source.get(key) or joined_patterns
        if value:
            added[key] = value

    if wants_modcacherw(config.tool_constraints.get(GO_CONSTRAINT_KEY)):
        added[ENV_GOFLAGS] = "-modcacherw"
    added[ENV_CGO_ENABLED] = "1"

    existing_count = _existing_git_config(source, added)
    insertions = resolve_credentials(patterns, rules)
    added.update(render_git_config_env(insertions, start_index=existing_count))
    total = existing_count + len(insertions)
    if total:
        added[ENV_GIT_CONFIG_COUNT] = str(total)

    # A stale or invalid count from base_env must not reach the child.
    environment.pop(ENV_GIT_CONFIG_COUNT, None)
    environment.update({key: value for key, value in added.items() if value})
    # Tools installed by an earlier `go install` are run by name in later commands.
    environment[ENV_PATH] = os.pathsep.join(
        part for part in (added[ENV_GOBIN], environment.get(ENV_PATH)) if part
    )

    forwarded: tuple[str, ...] = ()
    if sandbox_mode is SandboxMode.CONTAINER:
        forwarded = tuple(key for key, value in added.items() if value)

    _LOGGER.debug(
        "execution_context_built",
        sandbox_mode=sandbox_mode.value,
        private_patterns=len(patterns),
        credential_count=len(insertions),
        git_config_count=total,
    )
    return ExecutionContext(
        sandbox_mode=sandbox_mode,
        environment=environment,
        credential_insertions=insertions,
        forwarded_env=forwarded,
    )


def _existing_git_config(source: Mapping[str, str], added: dict[str, str]) -> int:
    raw = source.get(ENV_GIT_CONFIG_COUNT)
    count = parse_git_config_count(raw)
    if count is None:
        if raw is not None:
            _LOGGER.warning("git_config_count_invalid", value_length=len(raw))
        return 0
    for index in range(count):
        for prefix in (ENV_GIT_CONFIG_KEY_PREFIX, ENV_GIT_CONFIG_VALUE_PREFIX):
            key = f"{prefix}{index}"
            value = source.get(key)
            if value:
                added[key] = value
    return count


__all__ = [
    "build_execution_context",
    "go_version_from_constraint",
    "minimal_child_env",
    "parse_git_config_count",
    "wants_modcacherw",
]
