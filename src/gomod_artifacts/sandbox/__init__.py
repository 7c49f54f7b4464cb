"""Sandbox layer: execution environment, credentials, container runtime and command execution."""

from gomod_artifacts.sandbox.container import (
    ContainerRuntime,
    ContainerSpec,
    DockerRuntime,
    ImagePrefetchCache,
)
from gomod_artifacts.sandbox.credentials import HostRule, HostRuleLookup, HostRules
from gomod_artifacts.sandbox.environment import build_execution_context
from gomod_artifacts.sandbox.executor import ExecutorSettings, ToolchainExecutor
from gomod_artifacts.sandbox.runner import (
    CommandExecutionError,
    CommandExecutionResult,
    CommandRunner,
    CommandTimeoutError,
    SubprocessCommandRunner,
    ToolchainError,
    ToolchainNotFoundError,
)

__all__ = [
    "CommandExecutionError",
    "CommandExecutionResult",
    "CommandRunner",
    "CommandTimeoutError",
    "ContainerRuntime",
    "ContainerSpec",
    "DockerRuntime",
    "ExecutorSettings",
    "HostRule",
    "HostRuleLookup",
    "HostRules",
    "ImagePrefetchCache",
    "SubprocessCommandRunner",
    "ToolchainError",
    "ToolchainExecutor",
    "ToolchainNotFoundError",
    "build_execution_context",
]
