"""Command planning for artifact regeneration."""

from gomod_artifacts.planning.command_planner import (
    IMPORT_PATH_RULES,
    ImportPathRule,
    is_import_path_eligible,
    plan_commands,
    resolve_tool_version,
)

__all__ = [
    "IMPORT_PATH_RULES",
    "ImportPathRule",
    "is_import_path_eligible",
    "plan_commands",
    "resolve_tool_version",
]
