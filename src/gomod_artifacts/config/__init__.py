"""Configuration: TOML schema, layered loader and runtime settings."""

from gomod_artifacts.config.loader import (
    CONFIG_PATH_ENV,
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    load_config,
)
from gomod_artifacts.config.runtime import (
    RuntimeSettings,
    host_rules_from_config,
    runtime_settings_from_config,
)
from gomod_artifacts.config.schema import (
    ConfigValidationError,
    ConfigValidationIssue,
    default_config,
    validate_config,
)

__all__ = [
    "CONFIG_PATH_ENV",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "RuntimeSettings",
    "default_config",
    "dump_effective_config",
    "host_rules_from_config",
    "load_config",
    "runtime_settings_from_config",
    "validate_config",
]
