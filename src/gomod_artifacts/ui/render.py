"""Output rendering for the gomod-artifacts CLI.

Plain-text only; respects ``NO_COLOR`` and ``--no-color`` even though no color is
emitted today, so the flag contract stays stable.
"""

from __future__ import annotations

import json
import os
import sys
from collections.abc import Mapping, Sequence
from typing import TextIO

from gomod_artifacts.domain.models import (
    ArtifactError,
    ArtifactResult,
    DeletedArtifact,
    FileArtifact,
)


def _color_allowed(no_color_flag: bool, stream: TextIO) -> bool:
    if no_color_flag:
        return False
    if os.environ.get("NO_COLOR", ""):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


class CLIRenderer:
    """Thin CLI output renderer writing deterministic plain text."""

    def __init__(
        self, *, no_color: bool = False, verbose: bool = False, stream: TextIO | None = None
    ) -> None:
        self.verbose = verbose
        self._stream = stream if stream is not None else sys.stdout
        self._color = _color_allowed(no_color, self._stream)

    def _write(self, line: str = "") -> None:
        self._stream.write(f"{line}\n")

    def heading(self, text: str) -> None:
        self._write(text)

    def kv(self, key: str, value: object) -> None:
        self._write(f"{key}: {value}")

    def text(self, line: str) -> None:
        self._write(line)

    def section(self, title: str) -> None:
        self._write()
        self._write(title)

    def table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        *,
        title: str | None = None,
    ) -> None:
        """Print a formatted ASCII table."""

        if not rows:
            return

        col_count = len(headers)
        widths = [len(h) for h in headers]
        for row in rows:
            for i in range(min(len(row), col_count)):
                widths[i] = max(widths[i], len(str(row[i])))

        def _pad(cells: Sequence[str]) -> str:
            parts: list[str] = []
            for i in range(col_count):
                cell = str(cells[i]) if i < len(cells) else ""
                parts.append(cell.ljust(widths[i]))
            return "  ".join(parts).rstrip()

        if title:
            self.section(title)
        self._write(f"  {_pad(list(headers))}")
        self._write(f"  {'  '.join('-' * w for w in widths)}")
        for row in rows:
            self._write(f"  {_pad(list(row))}")

    def ok(self, label: str) -> None:
        self._write(f"  OK  {label}")

    def fail(self, label: str) -> None:
        self._write(f"  FAIL  {label}")


def create_renderer(
    *, no_color: bool = False, verbose: bool = False, stream: TextIO | None = None
) -> CLIRenderer:
    return CLIRenderer(no_color=no_color, verbose=verbose, stream=stream)


def emit_json(payload: Mapping[str, object], *, stream: TextIO | None = None) -> None:
    """Write one JSON document on a single line with deterministic formatting."""

    target = stream if stream is not None else sys.stdout
    target.write(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))
    target.write("\n")


def render_results_json_lines(
    results: Sequence[ArtifactResult] | None, *, stream: TextIO | None = None
) -> None:
    """One JSON object per artifact entry; nothing at all for the no-op outcome."""

    for result in results or ():
        emit_json(result.to_dict(), stream=stream)


def render_results_table(
    renderer: CLIRenderer, results: Sequence[ArtifactResult] | None
) -> None:
    if not results:
        renderer.text("No artifacts changed.")
        return
    rows = [(_result_status(result), result.path, _result_detail(result)) for result in results]
    renderer.table(("STATUS", "PATH", "DETAIL"), rows)


def _result_status(result: ArtifactResult) -> str:
    if isinstance(result, ArtifactError):
        return "error"
    if isinstance(result, DeletedArtifact):
        return "deleted"
    return "updated"


def _result_detail(result: ArtifactResult) -> str:
    if isinstance(result, ArtifactError):
        return result.message.splitlines()[0] if result.message else ""
    if isinstance(result, FileArtifact):
        return f"{len(result.contents)} bytes"
    return ""


__all__ = [
    "CLIRenderer",
    "create_renderer",
    "emit_json",
    "render_results_json_lines",
    "render_results_table",
]
