"""Working tree status reader backed by ``git status --porcelain``."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path, PurePosixPath
from typing import Protocol

import structlog

from gomod_artifacts.domain.models import WorkingTreeDelta
from gomod_artifacts.security.redaction import redact_text

_LOGGER = structlog.get_logger(__name__)

_STATUS_ARGS = ("status", "--porcelain=v1", "-z", "--untracked-files=all")


class GitStatusError(RuntimeError):
    """Raised when the working tree status cannot be read."""

    def __init__(
        self,
        *,
        command: Sequence[str],
        returncode: int | None,
        stderr: str,
    ) -> None:
        self.command = tuple(command)
        self.returncode = returncode
        self.stderr = stderr
        message = f"git status failed ({returncode}): {' '.join(command)}"
        if stderr.strip():
            message = f"{message}: {redact_text(stderr.strip())}"
        super().__init__(message)


class StatusReader(Protocol):
    """Reports which files changed in the working tree."""

    def status(self) -> WorkingTreeDelta: ...


class GitStatusReader:
    """Read modified/added/deleted paths relative to ``repo_path``."""

    def __init__(
        self,
        repo_path: Path | str,
        *,
        git_program: str = "git",
        env_overrides: Mapping[str, str] | None = None,
        timeout_seconds: float = 120.0,
    ) -> None:
        self.repo_path = Path(repo_path).resolve()
        self._git_program = git_program
        self._env_overrides = dict(env_overrides or {})
        self._timeout_seconds = timeout_seconds

    def status(self) -> WorkingTreeDelta:
        command = (self._git_program, *_STATUS_ARGS)
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        env.setdefault("GIT_CONFIG_NOSYSTEM", "1")
        env.update(self._env_overrides)

        try:
            completed = subprocess.run(
                command,
                cwd=self.repo_path,
                env=env,
                capture_output=True,
                check=False,
                timeout=self._timeout_seconds,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise GitStatusError(command=command, returncode=None, stderr=str(exc)) from exc

        stderr = completed.stderr.decode("utf-8", errors="replace")
        if completed.returncode != 0:
            raise GitStatusError(command=command, returncode=completed.returncode, stderr=stderr)

        delta = parse_porcelain_status(completed.stdout.decode("utf-8", errors="surrogateescape"))
        _LOGGER.debug(
            "git_status_read",
            modified=len(delta.modified),
            added=len(delta.added),
            deleted=len(delta.deleted),
        )
        return delta


def parse_porcelain_status(output: str) -> WorkingTreeDelta:
    """Parse NUL separated ``git status --porcelain=v1 -z`` output.

    Untracked files count as added. A rename or copy adds its new path; a rename
    also deletes the old one.
    """

    modified: list[str] = []
    added: list[str] = []
    deleted: list[str] = []

    entries = output.split("\0")
    index = 0
    while index < len(entries):
        entry = entries[index]
        index += 1
        if len(entry) < 4:
            continue
        code = entry[:2]
        path = _normalize_status_path(entry[3:])

        if code[0] in {"R", "C"}:
            original = entries[index] if index < len(entries) else ""
            index += 1
            added.append(path)
            if code[0] == "R" and original:
                deleted.append(_normalize_status_path(original))
            continue

        if code == "??":
            added.append(path)
        elif "D" in code and "U" not in code:
            deleted.append(path)
        elif code[0] == "A":
            added.append(path)
        else:
            modified.append(path)

    return WorkingTreeDelta(modified=tuple(modified), added=tuple(added), deleted=tuple(deleted))


def _normalize_status_path(raw: str) -> str:
    normalized = PurePosixPath(raw).as_posix()
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


__all__ = [
    "GitStatusError",
    "GitStatusReader",
    "StatusReader",
    "parse_porcelain_status",
]
