"""Module entrypoint for ``python -m gomod_artifacts``."""

from __future__ import annotations

from gomod_artifacts.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
