"""
gomod-artifacts — command planner

Purpose
- Decide the ordered toolchain commands for one manifest update.

Functional requirements
- The base ``go get`` command always runs first.
- Later commands may depend on files written by earlier ones; order is significant.
- Import path rewrites are planned only for major bumps past v1 and eligible module
  paths. A malformed tool constraint degrades to the ``latest`` tool version.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Final

import structlog
from semantic_version import Version

from gomod_artifacts.constants import (
    GO_PROGRAM,
    LATEST_TOOL_VERSION,
    MOD_PROGRAM,
    MOD_TOOL_CONSTRAINT_KEY,
    MOD_TOOL_MODULE,
)
from gomod_artifacts.domain.models import (
    DependencyRef,
    ManifestUpdateRequest,
    PlannedCommand,
    PostUpdateOption,
    UpdateKind,
)

_LOGGER = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ImportPathRule:
    """One row of the eligibility table; ``pattern`` is searched in the module path."""

    name: str
    pattern: re.Pattern[str]
    eligible: bool


# First match wins; paths matching no rule are not rewritten.
IMPORT_PATH_RULES: Final[tuple[ImportPathRule, ...]] = (
    ImportPathRule(
        name="gopkg_in_legacy_versioning",
        pattern=re.compile(r"^gopkg\.in/"),
        eligible=False,
    ),
    ImportPathRule(
        name="major_version_suffix",
        pattern=re.compile(r"/v(?:[2-9]|[1-9]\d+)$"),
        eligible=True,
    ),
    # v0/v1 modules carry no suffix; the rewrite adds one.
    ImportPathRule(
        name="unsuffixed_module_path",
        pattern=re.compile(r"^(?!.*/v\d+$)\S+$"),
        eligible=True,
    ),
)


def matching_import_path_rule(
    module_path: str,
    rules: Iterable[ImportPathRule] = IMPORT_PATH_RULES,
) -> ImportPathRule | None:
    for rule in rules:
        if rule.pattern.search(module_path):
            return rule
    return None


def is_import_path_eligible(
    module_path: str,
    rules: Iterable[ImportPathRule] = IMPORT_PATH_RULES,
) -> bool:
    rule = matching_import_path_rule(module_path.strip(), rules)
    return rule is not None and rule.eligible


def resolve_tool_version(tool_constraints: Mapping[str, str]) -> str:
    """Pinned ``vX.Y.Z`` for a valid semantic version constraint, else ``latest``."""

    raw = tool_constraints.get(MOD_TOOL_CONSTRAINT_KEY)
    if raw is None:
        return LATEST_TOOL_VERSION
    candidate = raw.strip()
    if candidate[:1] in {"v", "V"}:
        candidate = candidate[1:]
    try:
        version = Version(candidate)
    except ValueError:
        _LOGGER.debug("tool_constraint_unparsable", tool=MOD_TOOL_CONSTRAINT_KEY, constraint=raw)
        return LATEST_TOOL_VERSION
    return f"v{version}"


def eligible_dependencies(dependencies: Iterable[DependencyRef]) -> tuple[str, ...]:
    """De-duplicated eligible module paths, in request order."""

    seen: set[str] = set()
    eligible: list[str] = []
    for dependency in dependencies:
        module_path = dependency.dep_name
        if module_path in seen:
            continue
        seen.add(module_path)
        if is_import_path_eligible(module_path):
            eligible.append(module_path)
        else:
            _LOGGER.debug("import_path_rewrite_skipped", dependency=module_path)
    return tuple(eligible)


def plan_commands(
    request: ManifestUpdateRequest,
    *,
    working_dir: str,
    vendor_mode: bool,
) -> tuple[PlannedCommand, ...]:
    """Return the commands to run, in execution order."""

    config = request.config
    commands: list[PlannedCommand] = [
        _go(working_dir, "get", "-d", "-t", "./...", description="resolve module graph"),
    ]
    if vendor_mode:
        commands.append(_go(working_dir, "mod", "vendor", description="sync vendor tree"))

    if config.has_option(PostUpdateOption.TIDY):
        commands.extend(_tidy_pass(working_dir, vendor_mode=vendor_mode))

    if _wants_import_rewrite(request):
        dependencies = eligible_dependencies(request.updated_dependencies)
        if dependencies:
            new_major = str(config.new_major_version)
            tool_version = resolve_tool_version(config.tool_constraints)
            commands.append(
                _go(
                    working_dir,
                    "install",
                    f"{MOD_TOOL_MODULE}@{tool_version}",
                    description="install import path rewrite tool",
                )
            )
            for module_path in dependencies:
                commands.append(
                    PlannedCommand(
                        program=MOD_PROGRAM,
                        args=("upgrade", f"--mod-name={module_path}", f"-t={new_major}"),
                        working_dir=working_dir,
                        description=f"rewrite import paths of {module_path}",
                    )
                )
            commands.extend(_tidy_pass(working_dir, vendor_mode=vendor_mode))

    _LOGGER.debug(
        "commands_planned",
        manifest=request.manifest_path,
        count=len(commands),
        vendor_mode=vendor_mode,
    )
    return tuple(commands)


def _wants_import_rewrite(request: ManifestUpdateRequest) -> bool:
    config = request.config
    return (
        config.has_option(PostUpdateOption.UPDATE_IMPORT_PATHS)
        and config.update_kind is UpdateKind.MAJOR
        and config.new_major_version is not None
        and config.new_major_version > 1
    )


def _tidy_pass(working_dir: str, *, vendor_mode: bool) -> list[PlannedCommand]:
    commands = [_go(working_dir, "mod", "tidy", description="tidy module graph")]
    if vendor_mode:
        commands.append(_go(working_dir, "mod", "vendor", description="resync vendor tree"))
    return commands


def _go(working_dir: str, *args: str, description: str) -> PlannedCommand:
    return PlannedCommand(
        program=GO_PROGRAM, args=args, working_dir=working_dir, description=description
    )


__all__ = [
    "IMPORT_PATH_RULES",
    "ImportPathRule",
    "eligible_dependencies",
    "is_import_path_eligible",
    "matching_import_path_rule",
    "plan_commands",
    "resolve_tool_version",
]
