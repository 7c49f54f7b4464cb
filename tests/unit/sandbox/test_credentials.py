"""
gomod-artifacts — unit tests for private module credentials

Purpose
- Validate GOPRIVATE pattern normalization, host rule matching, credential resolution
  and git config env rendering.
"""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from gomod_artifacts.domain.models import CredentialInsertion
from gomod_artifacts.sandbox.credentials import (
    HostRule,
    HostRules,
    collect_private_patterns,
    host_rules_from_mapping,
    normalize_private_pattern,
    render_git_config_env,
    resolve_credentials,
)

_HOST_LABEL = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789", min_size=1, max_size=8)
_HOST = st.lists(_HOST_LABEL, min_size=2, max_size=3).map(".".join)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("git.corp.example", "git.corp.example"),
        ("https://git.corp.example/", "git.corp.example"),
        ("http://git.corp.example/team/*", "git.corp.example/team"),
        ("git.corp.example/team/repo.git", "git.corp.example/team/repo"),
        ("  git.corp.example/team/  ", "git.corp.example/team"),
        ("ssh://git.corp.example", None),
        ("*.corp.example", None),
        ("git.corp.example/[ab]", None),
        ("", None),
        ("   ", None),
    ],
)
def test_normalize_private_pattern(raw: str, expected: str | None) -> None:
    assert normalize_private_pattern(raw) == expected


@given(host=_HOST, path=st.lists(_HOST_LABEL, max_size=2).map("/".join))
@settings(max_examples=50, derandomize=True, deadline=None)
def test_property_normalization_is_idempotent_and_scheme_insensitive(host: str, path: str) -> None:
    raw = f"{host}/{path}" if path else host
    normalized = normalize_private_pattern(raw)

    assert normalized is not None
    assert normalize_private_pattern(normalized) == normalized
    assert normalize_private_pattern(f"https://{raw}/") == normalized
    assert normalize_private_pattern(f"{raw}/*") == normalized


def test_collect_private_patterns_keeps_goprivate_then_registry_order() -> None:
    patterns = collect_private_patterns(
        "b.example,,*.glob.example,a.example/team",
        ["https://registry.example/", "ftp://bad.example"],
    )

    assert patterns == ("b.example", "a.example/team", "registry.example")
    assert collect_private_patterns(None) == ()


def test_host_rule_matching_covers_exact_prefix_and_subdomain() -> None:
    rule = HostRule(match_host="https://Corp.Example/")

    assert rule.match_host == "corp.example"
    assert rule.matches("corp.example")
    assert rule.matches("corp.example/team/repo")
    assert rule.matches("git.corp.example")
    assert not rule.matches("notcorp.example")
    assert not HostRule(match_host="corp.example/team").matches("git.corp.example/team")


def test_host_rule_rejects_empty_host_and_hides_secrets_in_repr() -> None:
    with pytest.raises(ValueError):
        HostRule(match_host=" / ")

    rendered = repr(HostRule(match_host="corp.example", token="s3cr3t-token"))
    assert "s3cr3t-token" not in rendered
    assert "has_token=True" in rendered


def test_host_rules_prefer_most_specific_then_later_rule() -> None:
    generic = HostRule(match_host="corp.example", token="generic")
    team = HostRule(match_host="corp.example/team", token="team")
    later_generic = HostRule(match_host="corp.example", token="later")
    rules = HostRules([generic, team, later_generic])

    assert rules.find("https://corp.example/team/repo") is team
    assert rules.find("https://corp.example/other") is later_generic
    assert rules.find("https://elsewhere.example") is None
    assert len(rules) == 3


def test_resolve_credentials_skips_incomplete_and_collapses_repeats() -> None:
    rules = host_rules_from_mapping(
        [
            {"match_host": "a.example", "token": "tok-a"},
            {"match_host": "b.example", "username": "bot", "password": None},
            {"match_host": "c.example", "username": "bot", "password": "pw-c"},
            {"match_host": "", "token": "ignored"},
        ]
    )

    insertions = resolve_credentials(
        ["a.example", "b.example", "c.example", "d.example", "a.example"], rules
    )

    assert [item.host_pattern for item in insertions] == ["a.example", "c.example"]
    assert insertions[0].token == "tok-a"
    assert insertions[1].username == "bot"


def test_render_git_config_env_numbers_from_start_index() -> None:
    insertions = (
        CredentialInsertion(host_pattern="a.example", token="tok"),
        CredentialInsertion(host_pattern="b.example/team", username="u", password="p"),
    )

    env = render_git_config_env(insertions, start_index=2)

    assert env == {
        "GIT_CONFIG_KEY_2": "url.https://tok@a.example/.insteadOf",
        "GIT_CONFIG_VALUE_2": "https://a.example/",
        "GIT_CONFIG_KEY_3": "url.https://u:p@b.example/team/.insteadOf",
        "GIT_CONFIG_VALUE_3": "https://b.example/team/",
    }
