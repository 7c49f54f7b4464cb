"""
gomod-artifacts — public security utilities

Purpose
- Redaction helpers applied to artifact errors, command output and log records.
"""

from gomod_artifacts.security.redaction import (
    DEFAULT_REDACTION_CONFIG,
    DEFAULT_SENSITIVE_KEY_DENYLIST,
    REDACTED_VALUE,
    RedactionConfig,
    is_sensitive_key,
    redact_structure,
    redact_text,
)

__all__ = [
    "DEFAULT_REDACTION_CONFIG",
    "DEFAULT_SENSITIVE_KEY_DENYLIST",
    "REDACTED_VALUE",
    "RedactionConfig",
    "is_sensitive_key",
    "redact_structure",
    "redact_text",
]
