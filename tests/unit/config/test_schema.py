"""
gomod-artifacts — unit tests for config schema validation
"""

from __future__ import annotations

from typing import Any

import pytest

from gomod_artifacts.config.schema import (
    ConfigValidationError,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    redact_config,
    validate_config,
)


def _with(overlay: dict[str, Any]) -> dict[str, Any]:
    return merge_config(default_config(), overlay)


def _issue_paths(config: dict[str, Any]) -> list[str]:
    return [issue.path for issue in validate_config(config).issues]


def test_defaults_are_valid_and_independent_copies() -> None:
    first = default_config()
    first["host_rules"].append({"match_host": "x"})

    assert validate_config(default_config()).is_valid
    assert default_config()["host_rules"] == []


@pytest.mark.parametrize(
    ("overlay", "path"),
    [
        ({"sandbox": {"binary_source": "podman"}}, "sandbox.binary_source"),
        ({"sandbox": {"docker_image": "golang:1.21"}}, "sandbox.docker_image"),
        ({"sandbox": {"container_prefix": "-bad"}}, "sandbox.container_prefix"),
        ({"sandbox": {"command_timeout_seconds": 0.5}}, "sandbox.command_timeout_seconds"),
        ({"sandbox": {"command_timeout_seconds": True}}, "sandbox.command_timeout_seconds"),
        ({"observability": {"log_level": "TRACE"}}, "observability.log_level"),
        ({"observability": {"log_to_stdout": "yes"}}, "observability.log_to_stdout"),
        ({"paths": {"cache_dir": "  "}}, "paths.cache_dir"),
        ({"meta": {"schema_version": 2}}, "meta.schema_version"),
        ({"extra": {}}, "extra"),
    ],
)
def test_invalid_values_report_field_path(overlay: dict[str, Any], path: str) -> None:
    assert _issue_paths(_with(overlay)) == [path]


def test_registry_image_with_port_is_not_a_tag() -> None:
    config = _with({"sandbox": {"docker_image": "registry.local:5000/team/golang"}})

    assert validate_config(config).is_valid


def test_host_rule_rules() -> None:
    config = _with(
        {
            "host_rules": [
                {"match_host": "a.example", "token_env": "A_TOKEN"},
                {"match_host": "b.example", "token_env": "lower-case"},
                {"match_host": "c.example", "token_env": "C", "username": "u"},
                {"token_env": "D_TOKEN"},
                {"match_host": "e.example", "apiKey": "inline"},
            ]
        }
    )

    issues = {issue.path: issue.message for issue in validate_config(config).issues}

    assert set(issues) == {
        "host_rules[1].token_env",
        "host_rules[2]",
        "host_rules[3].match_host",
        "host_rules[4].apiKey",
    }
    assert "env var name" in issues["host_rules[1].token_env"]
    assert "embedded secret" in issues["host_rules[4].apiKey"]


def test_assert_valid_config_raises_with_all_issues() -> None:
    config = _with({"sandbox": {"binary_source": "podman", "container_prefix": ""}})

    with pytest.raises(ConfigValidationError) as excinfo:
        assert_valid_config(config)

    assert len(excinfo.value.issues) == 2
    assert "sandbox.binary_source" in str(excinfo.value)


def test_merge_replaces_lists_and_does_not_mutate_inputs() -> None:
    base = _with({"host_rules": [{"match_host": "a"}]})

    merged = merge_config(base, {"host_rules": [{"match_host": "b"}], "paths": {"local_dir": "x"}})

    assert merged["host_rules"] == [{"match_host": "b"}]
    assert merged["paths"]["cache_dir"] == base["paths"]["cache_dir"]
    assert base["host_rules"] == [{"match_host": "a"}]


def test_redact_config_masks_env_references() -> None:
    config = _with({"host_rules": [{"match_host": "a", "token_env": "A_TOKEN"}]})

    redacted = redact_config(config)

    assert redacted["host_rules"] == [{"match_host": "a", "token_env": "<redacted>"}]
    assert redacted["sandbox"] == config["sandbox"]
    assert redact_config("not a mapping") == {}


def test_migration_guidance_direction() -> None:
    assert "older" in migration_guidance(0)
    assert "newer" in migration_guidance(5)
    assert migration_guidance(1) == "schema version is current"
