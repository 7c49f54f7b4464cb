"""Observability exports: structured JSON-lines logging and correlation scopes."""

from gomod_artifacts.observability.logging import (
    LoggingConfig,
    StructuredLoggingHandle,
    configure_structlog,
    correlation_scope,
    setup_structured_logging,
    shutdown_logging,
)

__all__ = [
    "LoggingConfig",
    "StructuredLoggingHandle",
    "configure_structlog",
    "correlation_scope",
    "setup_structured_logging",
    "shutdown_logging",
]
