"""
gomod-artifacts — unit tests for CLI output rendering
"""

from __future__ import annotations

import io
import json

from gomod_artifacts.domain.models import ArtifactError, DeletedArtifact, FileArtifact
from gomod_artifacts.ui.render import (
    create_renderer,
    emit_json,
    render_results_json_lines,
    render_results_table,
)


def test_table_aligns_columns_and_skips_empty_rows() -> None:
    stream = io.StringIO()
    renderer = create_renderer(stream=stream, no_color=True)

    renderer.table(("A", "LONGER"), [("value", "x"), ("v", "yy")])
    renderer.table(("A",), [])

    assert stream.getvalue().splitlines() == [
        "  A      LONGER",
        "  -----  ------",
        "  value  x",
        "  v      yy",
    ]


def test_results_table_summarizes_each_entry() -> None:
    stream = io.StringIO()
    results = [
        FileArtifact(path="go.sum", contents=b"h1\n"),
        DeletedArtifact(path="vendor/x/x.go"),
        ArtifactError(path="go.sum", message="command failed (1): go get\nmore detail"),
    ]

    render_results_table(create_renderer(stream=stream), results)

    lines = stream.getvalue().splitlines()
    assert lines[0].split() == ["STATUS", "PATH", "DETAIL"]
    assert lines[2].split() == ["updated", "go.sum", "3", "bytes"]
    assert lines[3].split() == ["deleted", "vendor/x/x.go"]
    assert lines[4].endswith("command failed (1): go get")


def test_results_table_reports_no_op() -> None:
    stream = io.StringIO()

    render_results_table(create_renderer(stream=stream), None)

    assert stream.getvalue() == "No artifacts changed.\n"


def test_json_lines_use_snake_case_keys() -> None:
    stream = io.StringIO()

    render_results_json_lines(
        [FileArtifact(path="go.sum", contents=b"c"), DeletedArtifact(path="vendor/a.go")],
        stream=stream,
    )

    assert [json.loads(line) for line in stream.getvalue().splitlines()] == [
        {"contents": "c", "path": "go.sum"},
        {"is_deleted": True, "path": "vendor/a.go"},
    ]


def test_json_lines_emit_nothing_for_no_op() -> None:
    stream = io.StringIO()

    render_results_json_lines(None, stream=stream)

    assert stream.getvalue() == ""


def test_emit_json_is_deterministic() -> None:
    stream = io.StringIO()

    emit_json({"b": 1, "a": [1, 2]}, stream=stream)

    assert stream.getvalue() == '{"a":[1,2],"b":1}\n'
