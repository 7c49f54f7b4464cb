"""
gomod-artifacts — git status reader against a real repository
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from gomod_artifacts.integration_plane.git_status import GitStatusError, GitStatusReader

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(shutil.which("git") is None, reason="git binary not available"),
]


def _git(repo: Path, *args: str) -> None:
    subprocess.run(
        [
            "git",
            "-c",
            "user.name=gomod-artifacts tests",
            "-c",
            "user.email=tests@example.invalid",
            "-c",
            "commit.gpgsign=false",
            *args,
        ],
        cwd=repo,
        check=True,
        capture_output=True,
    )


def _init_repo(repo: Path, files: dict[str, str]) -> None:
    repo.mkdir(parents=True, exist_ok=True)
    _git(repo, "init", "-q")
    for relative, contents in files.items():
        target = repo / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(contents, encoding="utf-8")
    _git(repo, "add", "-A")
    _git(repo, "commit", "-q", "-m", "initial")


def test_reports_modified_added_and_deleted(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    _init_repo(
        repo,
        {
            "go.mod": "module m\n",
            "go.sum": "old\n",
            "vendor/modules.txt": "# old\n",
            "vendor/gone/gone.go": "package gone\n",
        },
    )
    (repo / "go.sum").write_text("new\n", encoding="utf-8")
    (repo / "vendor" / "gone" / "gone.go").unlink()
    (repo / "vendor" / "fresh" / "deep").mkdir(parents=True)
    (repo / "vendor" / "fresh" / "deep" / "pkg.go").write_text("package deep\n", encoding="utf-8")

    delta = GitStatusReader(repo).status()

    assert delta.modified == ("go.sum",)
    assert delta.added == ("vendor/fresh/deep/pkg.go",)
    assert delta.deleted == ("vendor/gone/gone.go",)


def test_clean_tree_is_empty(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    _init_repo(repo, {"go.mod": "module m\n"})

    assert GitStatusReader(repo).status().is_empty


def test_non_repository_raises(tmp_path: Path) -> None:
    outside = tmp_path / "plain"
    outside.mkdir()

    with pytest.raises(GitStatusError):
        GitStatusReader(outside, env_overrides={"GIT_CEILING_DIRECTORIES": str(tmp_path)}).status()
