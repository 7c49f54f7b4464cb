"""
gomod-artifacts — private module credentials

Purpose
- Turn GOPRIVATE patterns and registry URLs into git ``insteadOf`` rewrites that carry
  credentials from the host rule registry.

Functional requirements
- Patterns that cannot be turned into an ``https://`` URL are skipped.
- Hosts without a complete credential (token, or username plus password) are skipped
  silently, never inserted with an empty value.
- Repeats of the same host collapse (last wins, first position kept).
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Final, Protocol
from urllib.parse import urlsplit

import structlog

from gomod_artifacts.constants import ENV_GIT_CONFIG_KEY_PREFIX, ENV_GIT_CONFIG_VALUE_PREFIX
from gomod_artifacts.domain.models import CredentialInsertion

_LOGGER = structlog.get_logger(__name__)

_SCHEME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.-]*)://")
_ALLOWED_SCHEMES: Final[frozenset[str]] = frozenset({"http", "https"})
_GLOB_CHARACTERS: Final[frozenset[str]] = frozenset("*?[]")


@dataclass(frozen=True, slots=True)
class HostRule:
    """Credential for every URL under ``match_host`` (a host or a host/path prefix)."""

    match_host: str
    token: str | None = None
    username: str | None = None
    password: str | None = None

    def __post_init__(self) -> None:
        normalized = _strip_scheme(self.match_host.strip()).rstrip("/").lower()
        if not normalized:
            raise ValueError("HostRule.match_host must not be empty")
        object.__setattr__(self, "match_host", normalized)

    def matches(self, target: str) -> bool:
        host, _, _ = target.partition("/")
        if target == self.match_host or target.startswith(f"{self.match_host}/"):
            return True
        return "/" not in self.match_host and host.endswith(f".{self.match_host}")

    def __repr__(self) -> str:
        return (
            f"HostRule(match_host={self.match_host!r}, has_token={bool(self.token)}, "
            f"username={self.username!r}, has_password={bool(self.password)})"
        )


class HostRuleLookup(Protocol):
    """Host credential registry queried once per private host pattern."""

    def find(self, url: str) -> HostRule | None: ...


class HostRules:
    """Ordered registry of :class:`HostRule`; the most specific match wins."""

    def __init__(self, rules: Iterable[HostRule] = ()) -> None:
        self._rules: tuple[HostRule, ...] = tuple(rules)

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def rules(self) -> tuple[HostRule, ...]:
        return self._rules

    def find(self, url: str) -> HostRule | None:
        target = _url_target(url)
        if target is None:
            return None
        best: HostRule | None = None
        for rule in self._rules:
            if not rule.matches(target):
                continue
            # Ties go to the later rule.
            if best is None or len(rule.match_host) >= len(best.match_host):
                best = rule
        return best


def normalize_private_pattern(raw: str) -> str | None:
    """Normalize one GOPRIVATE entry or registry URL into ``host[/path]``.

    Returns ``None`` for entries that cannot be used to build a credential URL.
    """

    value = raw.strip()
    if not value:
        return None
    scheme_match = _SCHEME_PATTERN.match(value)
    if scheme_match is not None:
        if scheme_match.group(1).lower() not in _ALLOWED_SCHEMES:
            _LOGGER.debug("private_pattern_scheme_rejected", pattern=value)
            return None
        value = value[scheme_match.end() :]

    while True:
        trimmed = value.rstrip("/")
        if trimmed.endswith("/*"):
            trimmed = trimmed[:-2]
        if trimmed.endswith(".git"):
            trimmed = trimmed[:-4]
        if trimmed == value:
            break
        value = trimmed

    if not value or _GLOB_CHARACTERS.intersection(value):
        _LOGGER.debug("private_pattern_skipped", pattern=raw.strip())
        return None
    return value


def collect_private_patterns(
    goprivate: str | None,
    registry_urls: Sequence[str] = (),
) -> tuple[str, ...]:
    """GOPRIVATE entries first, then registry URLs, each normalized; order preserved."""

    raw_entries: list[str] = []
    if goprivate:
        raw_entries.extend(goprivate.split(","))
    raw_entries.extend(registry_urls)

    patterns: list[str] = []
    for raw in raw_entries:
        normalized = normalize_private_pattern(raw)
        if normalized is not None:
            patterns.append(normalized)
    return tuple(patterns)


def resolve_credentials(
    patterns: Iterable[str],
    host_rules: HostRuleLookup,
) -> tuple[CredentialInsertion, ...]:
    """Query ``host_rules`` for each pattern and keep the complete credentials."""

    resolved: dict[str, CredentialInsertion] = {}
    for pattern in patterns:
        rule = host_rules.find(f"https://{pattern}")
        insertion = _insertion_from_rule(pattern, rule)
        if insertion is None:
            _LOGGER.debug("credential_skipped", host=pattern, rule_found=rule is not None)
            continue
        # dict assignment keeps the first insertion position.
        resolved[pattern] = insertion
    return tuple(resolved.values())


def render_git_config_env(
    insertions: Sequence[CredentialInsertion],
    *,
    start_index: int = 0,
) -> dict[str, str]:
    """Render numbered ``GIT_CONFIG_KEY_n`` / ``GIT_CONFIG_VALUE_n`` pairs.

    The caller sets ``GIT_CONFIG_COUNT`` to ``start_index + len(insertions)``.
    """

    env: dict[str, str] = {}
    for offset, insertion in enumerate(insertions):
        index = start_index + offset
        env[f"{ENV_GIT_CONFIG_KEY_PREFIX}{index}"] = f"url.{insertion.render_url()}.insteadOf"
        env[f"{ENV_GIT_CONFIG_VALUE_PREFIX}{index}"] = insertion.base_url
    return env


def host_rules_from_mapping(entries: Sequence[Mapping[str, str | None]]) -> HostRules:
    """Build :class:`HostRules` from already-resolved mappings (secrets in clear)."""

    rules: list[HostRule] = []
    for entry in entries:
        match_host = entry.get("match_host")
        if not match_host:
            continue
        rules.append(
            HostRule(
                match_host=match_host,
                token=entry.get("token") or None,
                username=entry.get("username") or None,
                password=entry.get("password") or None,
            )
        )
    return HostRules(rules)


def _insertion_from_rule(pattern: str, rule: HostRule | None) -> CredentialInsertion | None:
    if rule is None:
        return None
    if rule.token:
        return CredentialInsertion(host_pattern=pattern, token=rule.token)
    if rule.username and rule.password:
        return CredentialInsertion(
            host_pattern=pattern, username=rule.username, password=rule.password
        )
    return None


def _strip_scheme(value: str) -> str:
    match = _SCHEME_PATTERN.match(value)
    if match is None:
        return value
    return value[match.end() :]


def _url_target(url: str) -> str | None:
    candidate = url.strip()
    if _SCHEME_PATTERN.match(candidate) is None:
        candidate = f"https://{candidate}"
    parts = urlsplit(candidate)
    host = (parts.hostname or "").lower()
    if not host:
        return None
    path = parts.path.strip("/")
    return f"{host}/{path}" if path else host


__all__ = [
    "HostRule",
    "HostRuleLookup",
    "HostRules",
    "collect_private_patterns",
    "host_rules_from_mapping",
    "normalize_private_pattern",
    "render_git_config_env",
    "resolve_credentials",
]
