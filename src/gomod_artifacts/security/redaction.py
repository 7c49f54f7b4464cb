"""
gomod-artifacts — secret redaction

Purpose
- Scrub credentials from error messages, command output and log records before they
  leave the process.

Functional requirements
- Credential URLs (``https://<token>@host/``) written into git config entries must never
  appear in artifact errors or logs.
- Redaction is deterministic and idempotent for stable inputs.
- Sensitive mapping keys are replaced wholesale, everything else is scanned as text.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final, TypeAlias

REDACTED_VALUE: Final[str] = "***REDACTED***"

KeyPath: TypeAlias = tuple[str, ...]

DEFAULT_SENSITIVE_KEY_DENYLIST: Final[frozenset[str]] = frozenset(
    {
        "access_token",
        "api_key",
        "authorization",
        "credential",
        "credentials",
        "password",
        "passwd",
        "private_key",
        "secret",
        "token",
    }
)

_SENSITIVE_KEY_SUFFIXES: Final[tuple[str, ...]] = (
    "_api_key",
    "_access_token",
    "_password",
    "_passwd",
    "_secret",
    "_token",
)

# Variable names whose values are a reference to a secret, not the secret itself.
_REFERENCE_KEY_SUFFIXES: Final[tuple[str, ...]] = ("_env",)

_MIN_KNOWN_SECRET_LENGTH: Final[int] = 4

_CAMEL_CASE_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True, slots=True)
class _TextRule:
    name: str
    pattern: re.Pattern[str]
    sensitive_group: int | None = None


_TEXT_RULES: Final[tuple[_TextRule, ...]] = (
    _TextRule(
        name="url_userinfo",
        pattern=re.compile(r"(?i)(\b[a-z][a-z0-9+.-]*://)([^\s/@:]+(?::[^\s/@]*)?)(@)"),
        sensitive_group=2,
    ),
    _TextRule(
        name="authorization_header",
        pattern=re.compile(r"(?i)(\bauthorization\s*:\s*(?:bearer|basic|token)\s+)(\S{6,})"),
        sensitive_group=2,
    ),
    _TextRule(
        name="explicit_secret_assignment",
        pattern=re.compile(
            r"(?i)(\b(?:password|passwd|secret|token|api[_-]?key|access[_-]?token)\b"
            r"\s*[:=]\s*[\"']?)"
            r"([A-Za-z0-9._~+/=-]{6,})"
        ),
        sensitive_group=2,
    ),
    _TextRule(name="github_token", pattern=re.compile(r"\bgh[pousr]_[A-Za-z0-9]{20,255}\b")),
    _TextRule(
        name="github_fine_grained_token",
        pattern=re.compile(r"\bgithub_pat_[A-Za-z0-9_]{20,255}\b"),
    ),
    _TextRule(name="gitlab_token", pattern=re.compile(r"\bglpat-[A-Za-z0-9_-]{20,255}\b")),
    _TextRule(name="aws_access_key", pattern=re.compile(r"\b(?:AKIA|ASIA)[A-Z0-9]{16}\b")),
)


@dataclass(frozen=True, slots=True)
class RedactionConfig:
    """Policy for text and structure redaction."""

    replacement: str = REDACTED_VALUE
    key_denylist: frozenset[str] = DEFAULT_SENSITIVE_KEY_DENYLIST
    # Literal values known to be secret (resolved tokens); always replaced in text.
    known_secrets: tuple[str, ...] = ()


DEFAULT_REDACTION_CONFIG: Final[RedactionConfig] = RedactionConfig()


def is_sensitive_key(key: str, *, config: RedactionConfig | None = None) -> bool:
    """Return whether values stored under ``key`` must be masked."""

    resolved = config if config is not None else DEFAULT_REDACTION_CONFIG
    normalized = _normalize_key(key)
    if not normalized:
        return False
    if normalized.endswith(_REFERENCE_KEY_SUFFIXES):
        return False
    if normalized in resolved.key_denylist:
        return True
    return normalized.endswith(_SENSITIVE_KEY_SUFFIXES)


def redact_text(text: str, *, config: RedactionConfig | None = None) -> str:
    """Redact secret-like text. Deterministic and idempotent for stable inputs."""

    if not isinstance(text, str):
        raise TypeError(f"text must be a string, got {type(text).__name__}")

    resolved = config if config is not None else DEFAULT_REDACTION_CONFIG
    redacted = text
    secrets = {item for item in resolved.known_secrets if len(item) >= _MIN_KNOWN_SECRET_LENGTH}
    for secret in sorted(secrets, key=len, reverse=True):
        redacted = redacted.replace(secret, resolved.replacement)
    for rule in _TEXT_RULES:
        redacted = _apply_text_rule(redacted, rule=rule, replacement=resolved.replacement)
    return redacted


def redact_structure(value: object, *, config: RedactionConfig | None = None) -> object:
    """Return a deep-redacted copy of nested mappings and sequences."""

    resolved = config if config is not None else DEFAULT_REDACTION_CONFIG
    return _redact_structure(value, key_path=(), seen=set(), resolved=resolved)


def _apply_text_rule(text: str, *, rule: _TextRule, replacement: str) -> str:
    def repl(match: re.Match[str]) -> str:
        if rule.sensitive_group is None:
            return replacement
        if match.group(rule.sensitive_group) == replacement:
            return match.group(0)
        full = match.group(0)
        start, end = match.span(rule.sensitive_group)
        offset_start = start - match.start(0)
        offset_end = end - match.start(0)
        return f"{full[:offset_start]}{replacement}{full[offset_end:]}"

    return rule.pattern.sub(repl, text)


def _redact_structure(
    value: object,
    *,
    key_path: KeyPath,
    seen: set[int],
    resolved: RedactionConfig,
) -> object:
    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        return redact_text(value, config=resolved)

    if isinstance(value, Mapping):
        value_id = id(value)
        if value_id in seen:
            return resolved.replacement
        seen.add(value_id)
        try:
            out: dict[object, object] = {}
            for key in sorted(value, key=lambda item: str(item)):
                item = value[key]
                child_path = (*key_path, str(key))
                if isinstance(key, str) and is_sensitive_key(key, config=resolved):
                    out[key] = resolved.replacement
                else:
                    out[key] = _redact_structure(
                        item, key_path=child_path, seen=seen, resolved=resolved
                    )
            return out
        finally:
            seen.discard(value_id)

    if isinstance(value, (list, tuple)):
        value_id = id(value)
        if value_id in seen:
            return resolved.replacement
        seen.add(value_id)
        try:
            items = [
                _redact_structure(
                    item, key_path=(*key_path, f"[{index}]"), seen=seen, resolved=resolved
                )
                for index, item in enumerate(value)
            ]
        finally:
            seen.discard(value_id)
        return items if isinstance(value, list) else tuple(items)

    if isinstance(value, (set, frozenset)):
        redacted = [
            _redact_structure(item, key_path=(*key_path, "{}"), seen=seen, resolved=resolved)
            for item in value
        ]
        redacted.sort(key=repr)
        return tuple(redacted)

    return redact_text(str(value), config=resolved)


def _normalize_key(key: str) -> str:
    with_boundaries = _CAMEL_CASE_BOUNDARY.sub(r"\1_\2", key.strip())
    return _NON_ALNUM.sub("_", with_boundaries.lower()).strip("_")


__all__ = [
    "DEFAULT_REDACTION_CONFIG",
    "DEFAULT_SENSITIVE_KEY_DENYLIST",
    "REDACTED_VALUE",
    "RedactionConfig",
    "is_sensitive_key",
    "redact_structure",
    "redact_text",
]
