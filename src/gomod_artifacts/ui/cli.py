"""Command-line interface router for gomod-artifacts."""

from __future__ import annotations

import argparse
import json
import os
import shutil
import sys
import time
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

import structlog

from gomod_artifacts.artifacts.updater import build_updater
from gomod_artifacts.config import (
    ConfigLoadError,
    ConfigValidationError,
    RuntimeSettings,
    dump_effective_config,
    host_rules_from_config,
    load_config,
    runtime_settings_from_config,
)
from gomod_artifacts.constants import GO_PROGRAM, MANIFEST_FILENAME
from gomod_artifacts.domain.models import (
    ArtifactError,
    ArtifactResult,
    DependencyRef,
    ManifestUpdateRequest,
    PostUpdateOption,
    SandboxMode,
    UpdateConfig,
    UpdateKind,
)
from gomod_artifacts.observability.logging import (
    LoggingConfig,
    configure_structlog,
    correlation_scope,
    setup_structured_logging,
    shutdown_logging,
)
from gomod_artifacts.sandbox.container import ImagePrefetchCache
from gomod_artifacts.ui.render import (
    CLIRenderer,
    create_renderer,
    emit_json,
    render_results_json_lines,
    render_results_table,
)

_LOGGER = structlog.get_logger(__name__)

BINARY_SOURCE_CHOICES: Final[tuple[str, ...]] = (
    "auto",
    "host",
    "global",
    "installed",
    "docker",
    "container",
)

# Shared by every update in this process; reset at the start of each invocation.
_PREFETCH_CACHE: Final[ImagePrefetchCache] = ImagePrefetchCache()


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="gomod-artifacts",
        description=(
            "gomod-artifacts: regenerate go.sum and vendor/ after a go.mod update.\n\n"
            "Common workflows:\n"
            "  gomod-artifacts update go.mod --dep github.com/pkg/errors@v0.9.1\n"
            "  gomod-artifacts config          Show effective configuration\n"
            "  gomod-artifacts doctor          Check toolchain availability\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help=(
            "Path to TOML config (default: $GOMOD_ARTIFACTS_CONFIG, else "
            "./gomod-artifacts.toml if present)."
        ),
    )
    common.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="SECTION.KEY=VALUE",
        help="Override one config value (repeatable).",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Show detailed output.",
    )
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # update --------------------------------------------------------------
    update_parser = subparsers.add_parser(
        "update",
        parents=[common],
        help="Regenerate the artifacts of one go.mod",
        description=(
            "Write the new go.mod, run the Go toolchain and report the changed files.\n\n"
            "Examples:\n"
            "  gomod-artifacts update go.mod\n"
            "  gomod-artifacts update svc/go.mod --new-content /tmp/go.mod --json\n"
            "  gomod-artifacts update go.mod --update-kind major --new-major 2 \\\n"
            "      --post-update-option updateImportPaths --dep github.com/foo/bar/v2\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    update_parser.add_argument(
        "manifest",
        nargs="?",
        default=MANIFEST_FILENAME,
        help=f"Manifest path relative to the local dir (default: {MANIFEST_FILENAME})",
    )
    update_parser.add_argument(
        "--new-content",
        default=None,
        help="File holding the updated manifest (default: the manifest as it is on disk)",
    )
    update_parser.add_argument(
        "--dep",
        dest="deps",
        action="append",
        default=[],
        metavar="NAME[@VERSION]",
        help="Updated dependency (repeatable)",
    )
    update_parser.add_argument(
        "--post-update-option",
        dest="post_update_options",
        action="append",
        default=[],
        choices=tuple(option.value for option in PostUpdateOption),
        help="Post-update option (repeatable)",
    )
    update_parser.add_argument(
        "--update-kind",
        choices=tuple(kind.value for kind in UpdateKind),
        default=UpdateKind.NONE.value,
    )
    update_parser.add_argument("--new-major", type=int, default=None)
    update_parser.add_argument(
        "--registry-url",
        dest="registry_urls",
        action="append",
        default=[],
        help="Private registry URL treated like a GOPRIVATE pattern (repeatable)",
    )
    update_parser.add_argument(
        "--constraint",
        dest="constraints",
        action="append",
        default=[],
        metavar="TOOL=VERSION",
        help="Tool constraint such as go=1.21 or gomodMod=v0.5.0 (repeatable)",
    )
    update_parser.add_argument(
        "--binary-source",
        choices=BINARY_SOURCE_CHOICES,
        default=None,
        help="Override sandbox.binary_source",
    )
    update_parser.add_argument("--local-dir", default=None, help="Override paths.local_dir")
    update_parser.add_argument("--cache-dir", default=None, help="Override paths.cache_dir")
    update_parser.add_argument(
        "--json", action="store_true", help="Emit one JSON object per artifact"
    )
    update_parser.set_defaults(handler=_cmd_update)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Show effective configuration (redacted)",
        description=(
            "Display the effective config after merging defaults, file, env, and --set.\n"
            "Sensitive values are redacted.\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    config_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    config_parser.set_defaults(handler=_cmd_config)

    # doctor --------------------------------------------------------------
    doctor_parser = subparsers.add_parser(
        "doctor",
        parents=[common],
        help="Check config, git, go and docker availability",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    doctor_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    doctor_parser.set_defaults(handler=_cmd_doctor)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    configure_structlog()
    _PREFETCH_CACHE.reset()
    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


def main(argv: Sequence[str] | None = None) -> int:
    return run_cli(argv)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_update(args: argparse.Namespace) -> int:
    config = _load_effective_config(args, _update_overrides(args))
    settings = runtime_settings_from_config(config)
    request = _build_request(args, settings)

    run_id = _new_run_id()
    handle = setup_structured_logging(
        LoggingConfig(
            run_id=run_id,
            base_log_dir=settings.log_dir,
            level=settings.log_level,
            log_to_stdout=settings.log_to_stdout,
            redact_secrets=settings.redact_secrets,
        )
    )
    try:
        with correlation_scope(run_id=run_id, manifest=request.manifest_path):
            _LOGGER.info(
                "update_started",
                sandbox_mode=settings.sandbox_mode.value,
                dependencies=[dep.dep_name for dep in request.updated_dependencies],
            )
            updater = build_updater(
                settings.updater_settings(),
                host_rules=host_rules_from_config(config),
                prefetch_cache=_PREFETCH_CACHE,
                docker_image=settings.docker_image,
                container_prefix=settings.container_prefix,
                timeout_seconds=settings.command_timeout_seconds,
            )
            results = updater.update_artifacts(request)
    finally:
        shutdown_logging(handle)

    if _flag(args, "json"):
        render_results_json_lines(results)
    else:
        renderer = _get_renderer(args)
        render_results_table(renderer, results)
        if renderer.verbose:
            renderer.kv("Log file", handle.log_path)
    return _exit_code_for(results)


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_effective_config(args, {})
    redacted = json.loads(dump_effective_config(config))

    if _flag(args, "json"):
        emit_json({"command": "config", "config": redacted})
        return 0

    renderer = _get_renderer(args)
    renderer.text(json.dumps(redacted, indent=2, sort_keys=True, ensure_ascii=False))
    return 0


def _cmd_doctor(args: argparse.Namespace) -> int:
    checks: list[tuple[str, bool, str]] = []

    settings: RuntimeSettings | None = None
    try:
        settings = runtime_settings_from_config(_load_effective_config(args, {}))
        checks.append(("config", True, "loaded successfully"))
    except CLIError as exc:
        checks.append(("config", False, str(exc)))

    git_path = shutil.which("git")
    if git_path is not None:
        checks.append(("git", True, f"found at {git_path}"))
    else:
        checks.append(("git", False, "not found in PATH"))

    if settings is not None:
        checks.append(_program_check(GO_PROGRAM, settings))
        if settings.sandbox_mode is SandboxMode.CONTAINER:
            docker_path = shutil.which("docker")
            if docker_path is not None:
                checks.append(("docker", True, f"found at {docker_path}"))
            else:
                checks.append(("docker", False, "not found in PATH; required by container mode"))
        checks.append(_cache_dir_check(settings.cache_dir))

    payload: dict[str, object] = {
        "command": "doctor",
        "checks": [
            {"name": name, "status": "ok" if passed else "fail", "detail": detail}
            for name, passed, detail in checks
        ],
    }
    all_passed = all(passed for _, passed, _ in checks)

    if _flag(args, "json"):
        emit_json(payload)
    else:
        renderer = _get_renderer(args)
        renderer.heading("gomod-artifacts doctor")
        for name, passed, detail in checks:
            if passed:
                renderer.ok(f"{name}: {detail}")
            else:
                renderer.fail(f"{name}: {detail}")
    return 0 if all_passed else 1


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=_flag(args, "no_color"), verbose=_flag(args, "verbose"))


def _load_effective_config(
    args: argparse.Namespace, extra_overrides: Mapping[str, object]
) -> dict[str, Any]:
    overrides = _parse_set_overrides(getattr(args, "overrides", None) or ())
    overrides.update(extra_overrides)
    try:
        return load_config(getattr(args, "config_path", None), cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _parse_set_overrides(raw_items: Sequence[str]) -> dict[str, object]:
    overrides: dict[str, object] = {}
    for item in raw_items:
        key, sep, raw_value = item.partition("=")
        key = key.strip()
        if not sep or "." not in key:
            raise CLIError(f"--set expects SECTION.KEY=VALUE, got {item!r}", exit_code=2)
        overrides[key] = _parse_override_value(raw_value.strip())
    return overrides


def _parse_override_value(raw: str) -> object:
    # JSON scalars keep their type (true, 900, 1.5); anything else stays text.
    try:
        parsed = json.loads(raw)
    except ValueError:
        return raw
    if isinstance(parsed, (bool, int, float, str)):
        return parsed
    return raw


def _update_overrides(args: argparse.Namespace) -> dict[str, object]:
    return {
        "sandbox.binary_source": getattr(args, "binary_source", None),
        "paths.local_dir": _absolute_or_none(getattr(args, "local_dir", None)),
        "paths.cache_dir": _absolute_or_none(getattr(args, "cache_dir", None)),
    }


def _absolute_or_none(raw: str | None) -> str | None:
    if raw is None:
        return None
    return Path(raw).expanduser().resolve().as_posix()


def _build_request(args: argparse.Namespace, settings: RuntimeSettings) -> ManifestUpdateRequest:
    manifest = str(args.manifest)
    if args.new_content is not None:
        content_path = Path(args.new_content).expanduser()
    else:
        content_path = settings.local_dir / manifest
    try:
        new_content = content_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"unable to read manifest content {content_path}: {exc}", exit_code=2) from exc

    try:
        config = UpdateConfig(
            tool_constraints=_parse_constraints(args.constraints),
            post_update_options=frozenset(args.post_update_options),
            registry_urls=tuple(args.registry_urls),
            update_kind=args.update_kind,
            new_major_version=args.new_major,
        )
        return ManifestUpdateRequest(
            manifest_path=manifest,
            new_manifest_content=new_content,
            updated_dependencies=tuple(_parse_dependency(item) for item in args.deps),
            config=config,
        )
    except ValueError as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _parse_dependency(raw: str) -> DependencyRef:
    name, _, version = raw.strip().partition("@")
    return DependencyRef(dep_name=name, new_version=version or None)


def _parse_constraints(raw_items: Sequence[str]) -> dict[str, str]:
    constraints: dict[str, str] = {}
    for item in raw_items:
        key, sep, value = item.partition("=")
        if not sep or not key.strip() or not value.strip():
            raise CLIError(f"--constraint expects TOOL=VERSION, got {item!r}", exit_code=2)
        constraints[key.strip()] = value.strip()
    return constraints


def _program_check(program: str, settings: RuntimeSettings) -> tuple[str, bool, str]:
    if settings.sandbox_mode is SandboxMode.CONTAINER:
        return (program, True, f"provided by image {settings.docker_image}")
    found = shutil.which(program, path=os.environ.get("PATH"))
    if found is not None:
        return (program, True, f"found at {found}")
    return (program, False, f"not found in PATH; required by {settings.sandbox_mode.value} mode")


def _cache_dir_check(cache_dir: Path) -> tuple[str, bool, str]:
    existing = cache_dir
    while not existing.exists() and existing.parent != existing:
        existing = existing.parent
    if os.access(existing, os.W_OK):
        return ("cache_dir", True, f"writable ({cache_dir.as_posix()})")
    return ("cache_dir", False, f"not writable: {cache_dir.as_posix()}")


def _exit_code_for(results: Sequence[ArtifactResult] | None) -> int:
    if results and any(isinstance(result, ArtifactError) for result in results):
        return 1
    return 0


def _new_run_id() -> str:
    stamp = time.strftime("%Y%m%dT%H%M%SZ", time.gmtime())
    return f"{stamp}-{uuid.uuid4().hex[:8]}"


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = ["BINARY_SOURCE_CHOICES", "CLIError", "build_parser", "main", "run_cli"]
