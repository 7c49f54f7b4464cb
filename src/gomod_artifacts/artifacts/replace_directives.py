"""Mask relative ``replace`` directives so the toolchain never resolves paths outside the checkout."""

from __future__ import annotations

import re
from typing import Final

from gomod_artifacts.constants import REPLACE_MASK_PREFIX

_INLINE_RELATIVE_REPLACE: Final[re.Pattern[str]] = re.compile(
    r"^(\s*)(replace\s+\S+(?:\s+\S+)?\s+=>\s+\.\./.*)$"
)
_BLOCK_START: Final[re.Pattern[str]] = re.compile(r"^\s*replace\s*\(\s*$")
_BLOCK_END: Final[re.Pattern[str]] = re.compile(r"^\s*\)\s*$")
_BLOCK_RELATIVE_ENTRY: Final[re.Pattern[str]] = re.compile(
    r"^(\s*)(\S+(?:\s+\S+)?\s+=>\s+\.\./.*)$"
)


def mask_relative_replaces(manifest: str) -> str:
    """Comment out every ``replace X => ../Y`` line behind :data:`REPLACE_MASK_PREFIX`."""

    lines = manifest.splitlines(keepends=True)
    masked: list[str] = []
    in_block = False
    for line in lines:
        body = line.rstrip("\r\n")
        ending = line[len(body) :]
        if in_block:
            if _BLOCK_END.match(body):
                in_block = False
            else:
                body = _BLOCK_RELATIVE_ENTRY.sub(rf"\1{REPLACE_MASK_PREFIX}\2", body)
        elif _BLOCK_START.match(body):
            in_block = True
        else:
            body = _INLINE_RELATIVE_REPLACE.sub(rf"\1{REPLACE_MASK_PREFIX}\2", body)
        masked.append(f"{body}{ending}")
    return "".join(masked)


def restore_relative_replaces(manifest: str) -> str:
    return manifest.replace(REPLACE_MASK_PREFIX, "")


__all__ = [
    "mask_relative_replaces",
    "restore_relative_replaces",
]
