"""
gomod-artifacts — layered config loader.

Purpose
- Build the effective config from four layers: built-in defaults, the TOML file,
  ``GOMOD_ARTIFACTS_*`` environment variables and ``--set`` style CLI overrides.

Functional requirements
- Later layers win: CLI > env > file > defaults. Each layer is validated as it lands
  so errors point at the layer that introduced them.
- The file is ``--config``, else ``$GOMOD_ARTIFACTS_CONFIG``, else
  ``./gomod-artifacts.toml``; only the first two are required to exist.
- Relative paths in the file resolve against the file's directory.
- Host rule secrets never live in the file; ``require_secret_env_values`` checks the
  variables the rules name.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Callable, Iterator, Mapping
from pathlib import Path
from typing import Any, Final

from gomod_artifacts.config.schema import (
    PATH_FIELDS,
    assert_valid_config,
    default_config,
    merge_config,
    redact_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "gomod-artifacts.toml"
ENV_PREFIX: Final[str] = "GOMOD_ARTIFACTS_"
CONFIG_PATH_ENV: Final[str] = f"{ENV_PREFIX}CONFIG"

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_FALSY: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})

# Sections whose scalar leaves cannot be set from the environment.
_ENV_EXCLUDED_SECTIONS: Final[frozenset[str]] = frozenset({"meta", "host_rules"})

_SECRET_ENV_KEYS: Final[tuple[str, ...]] = ("token_env", "password_env")

KeyPath = tuple[str, ...]


class ConfigLoadError(ValueError):
    """Raised when config cannot be loaded or overrides cannot be coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
    require_secret_env_values: bool = False,
) -> dict[str, Any]:
    """Load the effective config; see the module docstring for layer order."""

    env_map: Mapping[str, str] = os.environ if environ is None else environ
    path, required = _select_config_file(config_path, env_map)

    config = assert_valid_config(merge_config(default_config(), _read_toml(path, required)))
    for overlay in (_env_layer(config, env_map), _cli_layer(cli_overrides or {})):
        if overlay:
            config = assert_valid_config(merge_config(config, overlay))
    config = assert_valid_config(normalize_paths(config, base_dir=path.parent))

    if require_secret_env_values:
        _check_secret_envs(config, env_map)
    return config


def normalize_paths(config: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    """Return a copy of ``config`` with every path field made absolute against ``base_dir``."""

    normalized = merge_config({}, config)
    for field_path in PATH_FIELDS:
        section = normalized.get(field_path[0])
        if not isinstance(section, dict):
            continue
        raw = section.get(field_path[1])
        if isinstance(raw, str):
            section[field_path[1]] = _absolute_posix(raw, base_dir)
    return normalized


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Deterministic single-line JSON of the redacted config."""

    return json.dumps(
        redact_config(config), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )


def env_var_for(path: KeyPath) -> str:
    """``("sandbox", "docker_image")`` -> ``GOMOD_ARTIFACTS_SANDBOX_DOCKER_IMAGE``."""

    return ENV_PREFIX + "_".join(part.upper() for part in path)


def _select_config_file(
    config_path: str | Path | None, environ: Mapping[str, str]
) -> tuple[Path, bool]:
    if config_path is not None:
        return Path(config_path).expanduser().resolve(), True
    from_env = environ.get(CONFIG_PATH_ENV, "").strip()
    if from_env:
        return Path(from_env).expanduser().resolve(), True
    return (Path.cwd() / DEFAULT_CONFIG_FILE).resolve(), False


def _read_toml(path: Path, required: bool) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        if required:
            raise ConfigLoadError(f"config file not found: {path}") from exc
        return {}
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _env_layer(config: Mapping[str, object], environ: Mapping[str, str]) -> dict[str, Any]:
    overlay: dict[str, Any] = {}
    for path, current in _scalar_leaves(config):
        if path[0] in _ENV_EXCLUDED_SECTIONS:
            continue
        name = env_var_for(path)
        raw = environ.get(name)
        if raw is None:
            continue
        coerce = _COERCERS.get(type(current))
        if coerce is None:
            continue
        try:
            value = coerce(raw.strip())
        except ValueError as exc:
            raise ConfigLoadError(f"{name} -> {'.'.join(path)}: {exc}") from exc
        _assign(overlay, path, value)
    return overlay


def _cli_layer(overrides: Mapping[str, object]) -> dict[str, Any]:
    overlay: dict[str, Any] = {}
    for dotted in sorted(overrides):
        value = overrides[dotted]
        if value is None:
            continue
        path = tuple(part for part in dotted.split(".") if part)
        if not path:
            raise ConfigLoadError(f"invalid CLI override key {dotted!r}")
        _assign(overlay, path, value)
    return overlay


def _scalar_leaves(
    payload: Mapping[str, object], prefix: KeyPath = ()
) -> Iterator[tuple[KeyPath, object]]:
    for key in sorted(payload):
        value = payload[key]
        if isinstance(value, Mapping):
            yield from _scalar_leaves(value, (*prefix, key))
        elif not isinstance(value, (list, tuple)):
            yield (*prefix, key), value


def _as_bool(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError("must be a boolean (true/false/1/0/yes/no/on/off)")


def _as_int(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError("must be an integer") from None


def _as_float(raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ValueError("must be a number") from None


# Keyed by the type of the current value; bool must not fall through to int.
_COERCERS: Final[Mapping[type, Callable[[str], object]]] = {
    bool: _as_bool,
    int: _as_int,
    float: _as_float,
    str: str,
}


def _assign(target: dict[str, Any], path: KeyPath, value: object) -> None:
    node = target
    for part in path[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = node[part] = {}
        node = child
    node[path[-1]] = value


def _absolute_posix(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


def _check_secret_envs(config: Mapping[str, object], environ: Mapping[str, str]) -> None:
    rules = config.get("host_rules")
    missing: list[str] = []
    for index, rule in enumerate(rules if isinstance(rules, list) else ()):
        if not isinstance(rule, Mapping):
            continue
        for key in _SECRET_ENV_KEYS:
            env_name = rule.get(key)
            if isinstance(env_name, str) and not environ.get(env_name, "").strip():
                missing.append(f"host_rules[{index}].{key} -> {env_name}")
    if missing:
        raise ConfigLoadError(
            "missing required secret environment variable values: " + ", ".join(sorted(missing))
        )


__all__ = [
    "CONFIG_PATH_ENV",
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "dump_effective_config",
    "env_var_for",
    "load_config",
    "normalize_paths",
]
