"""Subprocess command runner and the toolchain error hierarchy."""

from __future__ import annotations

import subprocess
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import structlog

from gomod_artifacts.security.redaction import redact_text

_LOGGER = structlog.get_logger(__name__)

_STDERR_TAIL_CHARS = 4000


class ToolchainError(RuntimeError):
    """Base error for failures while running the dependency toolchain."""


class CommandExecutionError(ToolchainError):
    """Raised when a command exits non-zero or cannot be spawned."""

    def __init__(
        self,
        *,
        command: Sequence[str],
        returncode: int | None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        detail = redact_text(stderr.strip() or stdout.strip())[-_STDERR_TAIL_CHARS:]
        status = "could not be started" if returncode is None else f"failed ({returncode})"
        message = f"command {status}: {redact_text(' '.join(command))}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class CommandTimeoutError(ToolchainError):
    """Raised when a command exceeds its timeout."""

    def __init__(self, *, command: Sequence[str], timeout_seconds: float) -> None:
        self.command = tuple(command)
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"command timed out after {timeout_seconds} seconds: "
            f"{redact_text(' '.join(command))}"
        )


class ToolchainNotFoundError(ToolchainError):
    """Raised when a required program cannot be located."""

    def __init__(self, program: str, *, search_path: str | None = None) -> None:
        self.program = program
        self.search_path = search_path
        super().__init__(f"required program {program!r} was not found on PATH")


@dataclass(frozen=True, slots=True)
class CommandExecutionResult:
    """Normalized subprocess execution result."""

    command: tuple[str, ...]
    cwd: Path
    returncode: int
    stdout: str
    stderr: str
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    """Injectable command runner used for deterministic/offline testing."""

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path,
        env: Mapping[str, str],
        timeout_seconds: float,
    ) -> CommandExecutionResult: ...


class SubprocessCommandRunner:
    """Default command runner backed by ``subprocess.run``.

    The child only sees ``env``; nothing is inherited from the current process.
    """

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path,
        env: Mapping[str, str],
        timeout_seconds: float,
    ) -> CommandExecutionResult:
        argv = _normalize_command(command)
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")

        started = time.perf_counter()
        try:
            completed = subprocess.run(
                list(argv),
                cwd=cwd,
                env=dict(env),
                check=False,
                capture_output=True,
                text=True,
                timeout=timeout_seconds,
            )
        except subprocess.TimeoutExpired as exc:
            raise CommandTimeoutError(command=argv, timeout_seconds=timeout_seconds) from exc
        except FileNotFoundError as exc:
            raise ToolchainNotFoundError(argv[0], search_path=env.get("PATH")) from exc
        except OSError as exc:
            raise CommandExecutionError(command=argv, returncode=None, stderr=str(exc)) from exc

        duration_ms = (time.perf_counter() - started) * 1000.0
        _LOGGER.debug(
            "command_finished",
            program=argv[0],
            returncode=completed.returncode,
            duration_ms=round(duration_ms, 3),
        )
        return CommandExecutionResult(
            command=argv,
            cwd=Path(cwd),
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
            duration_ms=duration_ms,
        )


def _normalize_command(command: Sequence[str]) -> tuple[str, ...]:
    if not isinstance(command, (list, tuple)):
        raise ValueError("command must be a sequence of strings")
    normalized = tuple(item for item in command if item.strip())
    if not normalized:
        raise ValueError("command must not be empty")
    return normalized


__all__ = [
    "CommandExecutionError",
    "CommandExecutionResult",
    "CommandRunner",
    "CommandTimeoutError",
    "SubprocessCommandRunner",
    "ToolchainError",
    "ToolchainNotFoundError",
]
