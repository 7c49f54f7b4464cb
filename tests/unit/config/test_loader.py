"""
gomod-artifacts — unit tests for config loader

Purpose
- Validate deterministic config loading from defaults, TOML, env overrides and CLI overrides.

What this test file should cover
- Precedence: CLI > env > file > defaults.
- Env var path mapping and type coercion.
- Path normalization relative to the config file.
- Redacted effective config dumping.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from gomod_artifacts.config.loader import (
    CONFIG_PATH_ENV,
    ConfigLoadError,
    dump_effective_config,
    env_var_for,
    load_config,
)
from gomod_artifacts.config.schema import ConfigValidationError


def _write_config(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_defaults_when_no_file_exists(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    config = load_config(environ={})

    assert config["sandbox"]["binary_source"] == "auto"
    assert config["sandbox"]["command_timeout_seconds"] == 900.0
    assert config["paths"]["local_dir"] == tmp_path.resolve().as_posix()
    assert config["host_rules"] == []


def test_precedence_cli_over_env_over_file(tmp_path: Path) -> None:
    config_path = tmp_path / "gomod-artifacts.toml"
    _write_config(
        config_path,
        """
[sandbox]
binary_source = "installed"
command_timeout_seconds = 60

[observability]
log_level = "DEBUG"
""",
    )
    environ = {
        "GOMOD_ARTIFACTS_SANDBOX_BINARY_SOURCE": "docker",
        "GOMOD_ARTIFACTS_SANDBOX_COMMAND_TIMEOUT_SECONDS": "120",
        "GOMOD_ARTIFACTS_OBSERVABILITY_LOG_TO_STDOUT": "yes",
    }

    config = load_config(
        config_path,
        environ=environ,
        cli_overrides={"sandbox.binary_source": "host", "observability.log_level": None},
    )

    assert config["sandbox"]["binary_source"] == "host"
    assert config["sandbox"]["command_timeout_seconds"] == 120.0
    assert config["observability"]["log_to_stdout"] is True
    assert config["observability"]["log_level"] == "DEBUG"


def test_paths_are_relative_to_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "conf" / "gomod-artifacts.toml"
    _write_config(
        config_path,
        """
[paths]
local_dir = ".."
cache_dir = "cache"
""",
    )

    config = load_config(config_path, environ={})

    assert config["paths"]["local_dir"] == tmp_path.resolve().as_posix()
    assert config["paths"]["cache_dir"] == (tmp_path / "conf" / "cache").resolve().as_posix()


def test_explicit_missing_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="not found"):
        load_config(tmp_path / "absent.toml", environ={})


def test_invalid_toml_is_a_load_error(tmp_path: Path) -> None:
    config_path = tmp_path / "gomod-artifacts.toml"
    _write_config(config_path, "[sandbox\n")

    with pytest.raises(ConfigLoadError, match="invalid TOML"):
        load_config(config_path, environ={})


@pytest.mark.parametrize(
    ("env_name", "raw"),
    [
        ("GOMOD_ARTIFACTS_SANDBOX_COMMAND_TIMEOUT_SECONDS", "soon"),
        ("GOMOD_ARTIFACTS_OBSERVABILITY_REDACT_SECRETS", "maybe"),
    ],
)
def test_env_values_are_coerced_strictly(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, env_name: str, raw: str
) -> None:
    monkeypatch.chdir(tmp_path)

    with pytest.raises(ConfigLoadError, match=env_name):
        load_config(environ={env_name: raw})


def test_embedded_secret_in_file_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "gomod-artifacts.toml"
    _write_config(
        config_path,
        """
[[host_rules]]
match_host = "git.corp.example"
token = "plaintext-secret"
""",
    )

    with pytest.raises(ConfigValidationError) as excinfo:
        load_config(config_path, environ={})

    assert excinfo.value.issues[0].path == "host_rules[0].token"
    assert "embedded secret" in excinfo.value.issues[0].message


def test_required_secret_envs_must_be_set(tmp_path: Path) -> None:
    config_path = tmp_path / "gomod-artifacts.toml"
    _write_config(
        config_path,
        """
[[host_rules]]
match_host = "git.corp.example"
token_env = "CORP_GIT_TOKEN"
""",
    )

    with pytest.raises(ConfigLoadError, match="CORP_GIT_TOKEN"):
        load_config(config_path, environ={}, require_secret_env_values=True)

    config = load_config(
        config_path, environ={"CORP_GIT_TOKEN": "x"}, require_secret_env_values=True
    )
    assert config["host_rules"] == [
        {"match_host": "git.corp.example", "token_env": "CORP_GIT_TOKEN"}
    ]


def test_dump_effective_config_is_redacted_and_stable(tmp_path: Path) -> None:
    config_path = tmp_path / "gomod-artifacts.toml"
    _write_config(
        config_path,
        """
[[host_rules]]
match_host = "git.corp.example"
username = "bot"
password_env = "CORP_GIT_PASSWORD"
""",
    )
    config = load_config(config_path, environ={})

    first = dump_effective_config(config)
    second = dump_effective_config(load_config(config_path, environ={}))

    assert first == second
    rule = json.loads(first)["host_rules"][0]
    assert rule == {
        "match_host": "git.corp.example",
        "password_env": "<redacted>",
        "username": "bot",
    }


def test_config_path_env_selects_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    config_path = tmp_path / "ci" / "artifacts.toml"
    _write_config(config_path, '[sandbox]\nbinary_source = "global"\n')

    config = load_config(environ={CONFIG_PATH_ENV: str(config_path)})

    assert config["sandbox"]["binary_source"] == "global"
    with pytest.raises(ConfigLoadError, match="not found"):
        load_config(environ={CONFIG_PATH_ENV: str(tmp_path / "gone.toml")})


def test_env_var_names_follow_section_and_key() -> None:
    assert env_var_for(("sandbox", "docker_image")) == "GOMOD_ARTIFACTS_SANDBOX_DOCKER_IMAGE"
