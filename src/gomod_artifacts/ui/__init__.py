"""UI package exports for the CLI and its plain-text rendering."""

from gomod_artifacts.ui.cli import build_parser, main, run_cli
from gomod_artifacts.ui.render import CLIRenderer, create_renderer

__all__ = [
    "CLIRenderer",
    "build_parser",
    "create_renderer",
    "main",
    "run_cli",
]
