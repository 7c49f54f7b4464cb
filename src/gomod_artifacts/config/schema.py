"""
gomod-artifacts — configuration schema and validation.

Purpose
- Define authoritative configuration defaults and strict validation rules.

Functional requirements
- Validate config payloads and return structured errors (field path + message).
- Secrets are never stored in the file: host rules reference them through ``*_env``
  variable names; embedded ``token``/``password`` values are rejected.

Non-functional requirements
- Keep rules deterministic and easy to audit.
"""

from __future__ import annotations

import copy
import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, NotRequired, TypedDict

from gomod_artifacts.constants import (
    CACHE_DIR,
    CONFIG_SCHEMA_VERSION,
    DEFAULT_CONTAINER_PREFIX,
    DEFAULT_DOCKER_IMAGE,
    LOG_DIR,
)

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION

BINARY_SOURCES: Final[tuple[str, ...]] = (
    "auto",
    "host",
    "global",
    "installed",
    "docker",
    "container",
)
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

_ENV_NAME_PATTERN = re.compile(r"^[A-Z_][A-Z0-9_]*$")
_CONTAINER_PREFIX_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]*$")
_CAMEL_CASE_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

_SENSITIVE_KEY_TOKENS: Final[frozenset[str]] = frozenset(
    {
        "secret",
        "token",
        "password",
        "passwd",
        "apikey",
        "credential",
        "credentials",
        "auth",
    }
)
_SENSITIVE_KEY_PHRASES: Final[tuple[str, ...]] = (
    "api_key",
    "access_token",
    "private_key",
    "password",
    "secret",
)

# Config paths that are normalized relative to the config file location.
PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (
    ("paths", "local_dir"),
    ("paths", "cache_dir"),
    ("observability", "log_dir"),
)


class MetaConfig(TypedDict):
    schema_version: int


class PathsConfig(TypedDict):
    local_dir: str
    cache_dir: str


class SandboxConfig(TypedDict):
    binary_source: Literal["auto", "host", "global", "installed", "docker", "container"]
    docker_image: str
    container_prefix: str
    command_timeout_seconds: float


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_dir: str
    log_to_stdout: bool
    redact_secrets: bool


class HostRuleConfig(TypedDict):
    match_host: str
    token_env: NotRequired[str]
    username: NotRequired[str]
    password_env: NotRequired[str]


class GomodArtifactsConfig(TypedDict):
    meta: MetaConfig
    paths: PathsConfig
    sandbox: SandboxConfig
    observability: ObservabilityConfig
    host_rules: list[HostRuleConfig]


DEFAULT_CONFIG: Final[GomodArtifactsConfig] = {
    "meta": {
        "schema_version": ConfigSchemaVersion,
    },
    "paths": {
        "local_dir": ".",
        "cache_dir": CACHE_DIR.as_posix(),
    },
    "sandbox": {
        "binary_source": "auto",
        "docker_image": DEFAULT_DOCKER_IMAGE,
        "container_prefix": DEFAULT_CONTAINER_PREFIX,
        "command_timeout_seconds": 900.0,
    },
    "observability": {
        "log_level": "INFO",
        "log_dir": LOG_DIR.as_posix(),
        "log_to_stdout": False,
        "redact_secrets": True,
    },
    "host_rules": [],
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> GomodArtifactsConfig:
    """Return a deep copy of deterministic built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade gomod-artifacts.toml to the current schema"
        )
    if found_version > ConfigSchemaVersion:
        return (
            f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
            "upgrade the gomod-artifacts runtime"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``; lists are replaced."""

    merged = _deep_copy_mapping(base)
    _merge_into(merged, overlay)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Validate config and return structured issues with deterministic paths."""

    issues = _IssueCollector()
    root = _as_object(config, "<root>", issues)
    if root is None:
        return ConfigValidationResult(config=None, issues=issues.items())

    normalized = _validate_root(root, issues)
    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def redact_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Return deterministic redacted representation for logs."""

    if not isinstance(config, Mapping):
        return {}
    redacted = _redact_value(config, parent_key=None)
    if isinstance(redacted, dict):
        return redacted
    return {}


def _validate_root(payload: Mapping[str, object], issues: _IssueCollector) -> dict[str, Any]:
    sections: dict[str, Callable[[dict[str, object], str], dict[str, Any]]] = {
        "meta": lambda section, path: _validate_meta(section, path, issues),
        "paths": lambda section, path: _validate_paths(section, path, issues),
        "sandbox": lambda section, path: _validate_sandbox(section, path, issues),
        "observability": lambda section, path: _validate_observability(section, path, issues),
    }
    allowed = {*sections, "host_rules"}
    _reject_unknown_keys(payload, allowed, "", issues)
    _require_keys(payload, allowed, "", issues)

    out: dict[str, Any] = {}
    for key, validator in sections.items():
        raw = payload.get(key)
        if raw is None:
            continue
        section_obj = _as_object(raw, key, issues)
        if section_obj is not None:
            out[key] = validator(section_obj, key)

    if "host_rules" in payload:
        out["host_rules"] = _validate_host_rules(payload["host_rules"], "host_rules", issues)
    return out


def _validate_meta(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"schema_version"}, path, issues)
    _require_keys(payload, {"schema_version"}, path, issues)

    out: dict[str, Any] = {}
    if "schema_version" in payload:
        parsed = _as_int(
            payload["schema_version"], _join(path, "schema_version"), issues, minimum=1
        )
        if parsed is not None:
            out["schema_version"] = parsed
            if parsed != ConfigSchemaVersion:
                issues.add(_join(path, "schema_version"), migration_guidance(parsed))
    return out


def _validate_paths(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"local_dir", "cache_dir"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    for key in sorted(allowed):
        if key in payload:
            parsed = _as_path_text(payload[key], _join(path, key), issues)
            if parsed is not None:
                out[key] = parsed
    return out


def _validate_sandbox(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"binary_source", "docker_image", "container_prefix", "command_timeout_seconds"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}

    if "binary_source" in payload:
        parsed_source = _as_enum(
            payload["binary_source"],
            _join(path, "binary_source"),
            issues,
            allowed_values=BINARY_SOURCES,
        )
        if parsed_source is not None:
            out["binary_source"] = parsed_source

    if "docker_image" in payload:
        parsed_image = _as_str(payload["docker_image"], _join(path, "docker_image"), issues)
        if parsed_image is not None:
            if ":" in parsed_image.rsplit("/", 1)[-1]:
                issues.add(
                    _join(path, "docker_image"),
                    "must not carry a tag; the tag follows the go constraint",
                )
            else:
                out["docker_image"] = parsed_image

    if "container_prefix" in payload:
        parsed_prefix = _as_str(
            payload["container_prefix"], _join(path, "container_prefix"), issues
        )
        if parsed_prefix is not None:
            if _CONTAINER_PREFIX_PATTERN.fullmatch(parsed_prefix):
                out["container_prefix"] = parsed_prefix
            else:
                issues.add(_join(path, "container_prefix"), "must be a valid container name")

    if "command_timeout_seconds" in payload:
        parsed_timeout = _as_float(
            payload["command_timeout_seconds"],
            _join(path, "command_timeout_seconds"),
            issues,
            minimum=1.0,
        )
        if parsed_timeout is not None:
            out["command_timeout_seconds"] = parsed_timeout

    return out


def _validate_observability(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"log_level", "log_dir", "log_to_stdout", "redact_secrets"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}

    if "log_level" in payload:
        parsed_log_level = _as_enum(
            payload["log_level"],
            _join(path, "log_level"),
            issues,
            allowed_values=LOG_LEVELS,
        )
        if parsed_log_level is not None:
            out["log_level"] = parsed_log_level

    if "log_dir" in payload:
        parsed_log_dir = _as_path_text(payload["log_dir"], _join(path, "log_dir"), issues)
        if parsed_log_dir is not None:
            out["log_dir"] = parsed_log_dir

    for key in ("log_to_stdout", "redact_secrets"):
        if key in payload:
            parsed_flag = _as_bool(payload[key], _join(path, key), issues)
            if parsed_flag is not None:
                out[key] = parsed_flag

    return out


def _validate_host_rules(
    value: object, path: str, issues: _IssueCollector
) -> list[dict[str, Any]]:
    if not isinstance(value, (list, tuple)):
        issues.add(path, f"expected array of tables, got {type(value).__name__}")
        return []

    rules: list[dict[str, Any]] = []
    for index, raw in enumerate(value):
        entry_path = f"{path}[{index}]"
        entry = _as_object(raw, entry_path, issues)
        if entry is None:
            continue
        allowed = {"match_host", "token_env", "username", "password_env"}
        _reject_unknown_keys(entry, allowed, entry_path, issues)
        _require_keys(entry, {"match_host"}, entry_path, issues)

        rule: dict[str, Any] = {}
        if "match_host" in entry:
            parsed_host = _as_str(entry["match_host"], _join(entry_path, "match_host"), issues)
            if parsed_host is not None:
                rule["match_host"] = parsed_host
        for key in ("token_env", "password_env"):
            if key in entry:
                parsed_env = _as_env_name(entry[key], _join(entry_path, key), issues)
                if parsed_env is not None:
                    rule[key] = parsed_env
        if "username" in entry:
            parsed_user = _as_str(entry["username"], _join(entry_path, "username"), issues)
            if parsed_user is not None:
                rule["username"] = parsed_user

        if "token_env" in rule and ("username" in rule or "password_env" in rule):
            issues.add(entry_path, "use either token_env or username/password_env, not both")
        rules.append(rule)
    return rules


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_str(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed:
        issues.add(path, "must not be empty")
        return None
    return parsed


def _as_path_text(value: object, path: str, issues: _IssueCollector) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    return parsed


def _as_env_name(value: object, path: str, issues: _IssueCollector) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if not _ENV_NAME_PATTERN.fullmatch(parsed):
        issues.add(path, "must be an env var name (example: GITHUB_TOKEN)")
        return None
    return parsed


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return value


def _as_float(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: float | None = None,
) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        issues.add(path, f"expected number, got {type(value).__name__}")
        return None
    parsed = float(value)
    if not math.isfinite(parsed):
        issues.add(path, "must be finite")
        return None
    if minimum is not None and parsed < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return parsed


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if parsed not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key in allowed:
            continue
        key_path = _join(path, key)
        if _looks_sensitive_key(key):
            issues.add(
                key_path,
                "embedded secret values are forbidden; use an *_env key with an env var name",
            )
        else:
            issues.add(key_path, "unknown field")


def _require_keys(
    payload: Mapping[str, object],
    required: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(required):
        if key not in payload:
            issues.add(_join(path, key), "missing required field")


def _looks_sensitive_key(key: str) -> bool:
    normalized = _normalize_key(key)
    if normalized.endswith("_env"):
        return False
    if any(phrase in normalized for phrase in _SENSITIVE_KEY_PHRASES):
        return True
    tokens = tuple(token for token in normalized.split("_") if token)
    return any(token in _SENSITIVE_KEY_TOKENS for token in tokens)


def _normalize_key(key: str) -> str:
    with_boundaries = _CAMEL_CASE_BOUNDARY.sub(r"\1_\2", key.strip())
    return _NON_ALNUM.sub("_", with_boundaries.lower()).strip("_")


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            if isinstance(existing, dict):
                _merge_into(existing, value)
            else:
                nested: dict[str, Any] = {}
                _merge_into(nested, value)
                target[key] = nested
        else:
            target[key] = _deep_copy_value(value)


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    return {key: _deep_copy_value(value[key]) for key in sorted(value)}


def _deep_copy_value(value: object) -> Any:
    if isinstance(value, Mapping):
        return {key: _deep_copy_value(item) for key, item in value.items() if isinstance(key, str)}
    if isinstance(value, list):
        return [_deep_copy_value(item) for item in value]
    if isinstance(value, tuple):
        return tuple(_deep_copy_value(item) for item in value)
    return copy.deepcopy(value)


def _redact_value(value: object, parent_key: str | None) -> object:
    if isinstance(value, Mapping):
        out: dict[str, object] = {}
        for key in sorted(value):
            item = value[key]
            if _key_is_sensitive_for_redaction(key):
                out[key] = "<redacted>"
            else:
                out[key] = _redact_value(item, key)
        return out
    if isinstance(value, (list, tuple)):
        return [_redact_value(item, parent_key) for item in value]
    return value


def _key_is_sensitive_for_redaction(key: str) -> bool:
    normalized = _normalize_key(key)
    if normalized.endswith("_env"):
        return True
    return _looks_sensitive_key(normalized)


__all__ = [
    "BINARY_SOURCES",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "GomodArtifactsConfig",
    "HostRuleConfig",
    "LOG_LEVELS",
    "PATH_FIELDS",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "redact_config",
    "validate_config",
]
