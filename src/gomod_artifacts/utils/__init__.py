"""Utility exports for filesystem helpers."""

from gomod_artifacts.utils.fs import atomic_write, is_within

__all__ = [
    "atomic_write",
    "is_within",
]
