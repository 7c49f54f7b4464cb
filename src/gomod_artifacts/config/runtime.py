"""Resolve a validated config mapping into the runtime settings objects."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from gomod_artifacts.artifacts.updater import UpdaterSettings
from gomod_artifacts.domain.models import SandboxMode, sandbox_mode_from_binary_source
from gomod_artifacts.sandbox.credentials import HostRules, host_rules_from_mapping
from gomod_artifacts.sandbox.executor import ExecutorSettings

_LOGGER = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RuntimeSettings:
    local_dir: Path
    cache_dir: Path
    sandbox_mode: SandboxMode
    docker_image: str
    container_prefix: str
    command_timeout_seconds: float
    log_level: str
    log_dir: Path
    log_to_stdout: bool
    redact_secrets: bool

    def updater_settings(self) -> UpdaterSettings:
        return UpdaterSettings(
            local_dir=self.local_dir,
            cache_dir=self.cache_dir,
            sandbox_mode=self.sandbox_mode,
        )

    def executor_settings(self) -> ExecutorSettings:
        return ExecutorSettings(
            local_dir=self.local_dir,
            cache_dir=self.cache_dir,
            docker_image=self.docker_image,
            container_prefix=self.container_prefix,
            timeout_seconds=self.command_timeout_seconds,
        )


def runtime_settings_from_config(config: Mapping[str, Any]) -> RuntimeSettings:
    """Build :class:`RuntimeSettings` from the output of ``load_config``."""

    paths = config["paths"]
    sandbox = config["sandbox"]
    observability = config["observability"]
    return RuntimeSettings(
        local_dir=Path(paths["local_dir"]),
        cache_dir=Path(paths["cache_dir"]),
        sandbox_mode=sandbox_mode_from_binary_source(sandbox["binary_source"]),
        docker_image=sandbox["docker_image"],
        container_prefix=sandbox["container_prefix"],
        command_timeout_seconds=float(sandbox["command_timeout_seconds"]),
        log_level=observability["log_level"],
        log_dir=Path(observability["log_dir"]),
        log_to_stdout=observability["log_to_stdout"],
        redact_secrets=observability["redact_secrets"],
    )


def host_rules_from_config(
    config: Mapping[str, Any], environ: Mapping[str, str] | None = None
) -> HostRules:
    """Read each rule's secret from the env var it names.

    A rule whose variables are unset is kept without credentials, so it still shadows
    less specific rules but never produces an insertion.
    """

    env_map = os.environ if environ is None else environ
    entries: list[dict[str, str | None]] = []
    for rule in config.get("host_rules", ()):
        token_env = rule.get("token_env")
        password_env = rule.get("password_env")
        token = env_map.get(token_env) if token_env else None
        password = env_map.get(password_env) if password_env else None
        if (token_env and not token) or (password_env and not password):
            _LOGGER.debug("host_rule_secret_unset", match_host=rule["match_host"])
        entries.append(
            {
                "match_host": rule["match_host"],
                "token": token,
                "username": rule.get("username"),
                "password": password,
            }
        )
    return host_rules_from_mapping(entries)


__all__ = [
    "RuntimeSettings",
    "host_rules_from_config",
    "runtime_settings_from_config",
]
