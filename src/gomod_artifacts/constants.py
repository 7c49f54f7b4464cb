"""Stable constants shared across the artifact regeneration components."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Final

# Conventional Go module file names.
MANIFEST_FILENAME: Final[str] = "go.mod"
MANIFEST_SUFFIX: Final[str] = ".mod"
LOCK_SUFFIX: Final[str] = ".sum"
VENDOR_DIRNAME: Final[str] = "vendor"
VENDOR_MARKER_FILENAME: Final[str] = "modules.txt"
GO_SOURCE_SUFFIX: Final[str] = ".go"

# Prefix used to mask relative ``replace`` directives while the toolchain runs.
REPLACE_MASK_PREFIX: Final[str] = "// gomod-artifacts-replace "

# Toolchain programs and the import path rewrite tool.
GO_PROGRAM: Final[str] = "go"
MOD_PROGRAM: Final[str] = "mod"
MOD_TOOL_MODULE: Final[str] = "github.com/marwan-at-work/mod/cmd/mod"
MOD_TOOL_CONSTRAINT_KEY: Final[str] = "gomodMod"
GO_CONSTRAINT_KEY: Final[str] = "go"
LATEST_TOOL_VERSION: Final[str] = "latest"

# Environment variable names consumed or produced.
ENV_GOPRIVATE: Final[str] = "GOPRIVATE"
ENV_GONOPROXY: Final[str] = "GONOPROXY"
ENV_GONOSUMDB: Final[str] = "GONOSUMDB"
ENV_GOSUMDB: Final[str] = "GOSUMDB"
ENV_GOPROXY: Final[str] = "GOPROXY"
ENV_GOPATH: Final[str] = "GOPATH"
ENV_GOBIN: Final[str] = "GOBIN"
ENV_PATH: Final[str] = "PATH"
ENV_GOFLAGS: Final[str] = "GOFLAGS"
ENV_CGO_ENABLED: Final[str] = "CGO_ENABLED"
ENV_GIT_TERMINAL_PROMPT: Final[str] = "GIT_TERMINAL_PROMPT"
ENV_GIT_CONFIG_COUNT: Final[str] = "GIT_CONFIG_COUNT"
ENV_GIT_CONFIG_KEY_PREFIX: Final[str] = "GIT_CONFIG_KEY_"
ENV_GIT_CONFIG_VALUE_PREFIX: Final[str] = "GIT_CONFIG_VALUE_"

# Host environment variables that make up the minimal child-process environment.
BASE_ENV_KEYS: Final[tuple[str, ...]] = (
    "PATH",
    "HOME",
    "LANG",
    "LC_ALL",
    "TZ",
    "HTTP_PROXY",
    "HTTPS_PROXY",
    "NO_PROXY",
    "http_proxy",
    "https_proxy",
    "no_proxy",
    "DOCKER_HOST",
)

# Container defaults.
DEFAULT_DOCKER_IMAGE: Final[str] = "golang"
DEFAULT_CONTAINER_PREFIX: Final[str] = "gomod-artifacts"
# Not a login shell: /etc/profile would replace the image PATH that locates `go`.
CONTAINER_SHELL: Final[tuple[str, ...]] = ("bash", "-c")

# Schema version for the TOML configuration file.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# Default runtime paths (relative to the config file unless overridden).
CACHE_DIR: Final[PurePosixPath] = PurePosixPath(".cache/gomod-artifacts")
LOG_DIR: Final[PurePosixPath] = PurePosixPath("logs")

__all__ = [
    "BASE_ENV_KEYS",
    "CACHE_DIR",
    "CONFIG_SCHEMA_VERSION",
    "CONTAINER_SHELL",
    "DEFAULT_CONTAINER_PREFIX",
    "DEFAULT_DOCKER_IMAGE",
    "ENV_CGO_ENABLED",
    "ENV_GIT_CONFIG_COUNT",
    "ENV_GIT_CONFIG_KEY_PREFIX",
    "ENV_GIT_CONFIG_VALUE_PREFIX",
    "ENV_GIT_TERMINAL_PROMPT",
    "ENV_GOBIN",
    "ENV_GOFLAGS",
    "ENV_GONOPROXY",
    "ENV_GONOSUMDB",
    "ENV_GOPATH",
    "ENV_GOPRIVATE",
    "ENV_GOPROXY",
    "ENV_GOSUMDB",
    "ENV_PATH",
    "GO_CONSTRAINT_KEY",
    "GO_PROGRAM",
    "GO_SOURCE_SUFFIX",
    "LATEST_TOOL_VERSION",
    "LOCK_SUFFIX",
    "LOG_DIR",
    "MANIFEST_FILENAME",
    "MANIFEST_SUFFIX",
    "MOD_PROGRAM",
    "MOD_TOOL_CONSTRAINT_KEY",
    "MOD_TOOL_MODULE",
    "REPLACE_MASK_PREFIX",
    "VENDOR_DIRNAME",
    "VENDOR_MARKER_FILENAME",
]
