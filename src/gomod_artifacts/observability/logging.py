"""
gomod-artifacts — structured run logging

Purpose
- Write one JSON object per log line into ``<log_dir>/<run_id>/gomod-artifacts.jsonl``
  for every ``update`` invocation.

Functional requirements
- stdlib records and ``structlog`` events render through the same
  ``structlog.stdlib.ProcessorFormatter`` so both produce the same line shape:
  ``timestamp``, ``level``, ``logger``, ``message``, correlation keys, ``fields``.
- ``run_id``, ``manifest`` and ``command`` are promoted to top-level keys, whether they
  come from :func:`correlation_scope` or from event keywords.
- Every line passes through the redactor before it is written.
"""

from __future__ import annotations

import contextvars
import json
import logging
import math
import threading
from collections.abc import Callable, Iterator, Mapping, MutableMapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Final

import structlog

from gomod_artifacts.security.redaction import REDACTED_VALUE, redact_structure

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
LogRedactor = Callable[[JSONValue], JSONValue]

LOG_FILENAME: Final[str] = "gomod-artifacts.jsonl"
ROOT_LOGGER_NAME: Final[str] = "gomod_artifacts"

_PROMOTED_KEYS: Final[tuple[str, ...]] = ("run_id", "manifest", "command")

_CORRELATION: contextvars.ContextVar[tuple[tuple[str, str], ...]] = contextvars.ContextVar(
    "gomod_artifacts_correlation", default=()
)

_ACTIVE_LOCK = threading.Lock()
_ACTIVE: StructuredLoggingHandle | None = None


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Where and how one run logs."""

    run_id: str
    base_log_dir: Path | str = Path("logs")
    logger_name: str = ROOT_LOGGER_NAME
    level: int | str = "INFO"
    log_filename: str = LOG_FILENAME
    log_to_stdout: bool = False
    redact_secrets: bool = True
    redactor: LogRedactor | None = None


class StructuredLoggingHandle:
    """Owns the handlers attached by :func:`setup_structured_logging`."""

    def __init__(
        self,
        *,
        logger: logging.Logger,
        run_id: str,
        log_path: Path,
        handlers: tuple[logging.Handler, ...],
    ) -> None:
        self.logger = logger
        self.run_id = run_id
        self.log_path = log_path
        self._handlers = handlers
        self._lock = threading.Lock()
        self._closed = False

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def flush(self) -> None:
        for handler in self._handlers:
            handler.flush()

    def shutdown(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for handler in self._handlers:
                self.logger.removeHandler(handler)
                handler.close()


class _LineShaper:
    """Final structlog processor: turn an event dict into the JSON line layout."""

    def __init__(self, *, redactor: LogRedactor, run_id: str) -> None:
        self._redactor = redactor
        self._run_id = run_id

    def __call__(
        self, _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
    ) -> dict[str, JSONValue]:
        record: logging.LogRecord = event_dict.pop("_record")
        event_dict.pop("_from_structlog", None)
        message = event_dict.pop("event", "")
        exception = event_dict.pop("exception", None)

        promoted = {"run_id": self._run_id, **get_correlation_context()}
        for key in _PROMOTED_KEYS:
            value = event_dict.pop(key, None)
            if isinstance(value, str) and value.strip():
                promoted[key] = value.strip()

        line: dict[str, JSONValue] = {
            "timestamp": _utc_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": self._text(message),
        }
        for key in sorted(promoted):
            line[key] = self._text(promoted[key])
        if event_dict:
            line["fields"] = self._redactor(to_json_value(dict(event_dict)))
        if exception:
            line["exception"] = self._text(exception)
        return line

    def _text(self, value: object) -> str:
        redacted = self._redactor(to_json_value(value))
        if isinstance(redacted, str):
            return redacted
        return json.dumps(redacted, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def build_formatter(*, run_id: str, redactor: LogRedactor) -> logging.Formatter:
    """JSON-lines formatter shared by the file and stdout handlers."""

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[structlog.stdlib.ExtraAdder()],
        processors=[
            structlog.processors.format_exc_info,
            _LineShaper(redactor=redactor, run_id=run_id),
            structlog.processors.JSONRenderer(
                sort_keys=True, separators=(",", ":"), ensure_ascii=False
            ),
        ],
    )


def setup_structured_logging(config: LoggingConfig) -> StructuredLoggingHandle:
    """Attach JSON-lines handlers for one run; any previous run's handlers are closed."""

    run_id = _non_empty(config.run_id, "run_id")
    filename = _non_empty(config.log_filename, "log_filename")
    if Path(filename).name != filename:
        raise ValueError("log_filename must not include path separators")
    logger_name = _non_empty(config.logger_name, "logger_name")
    level = _level_number(config.level)

    _close_active()

    log_dir = Path(config.base_log_dir) / run_id
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / filename

    formatter = build_formatter(run_id=run_id, redactor=_pick_redactor(config))
    handlers: list[logging.Handler] = [logging.FileHandler(log_path, encoding="utf-8")]
    if config.log_to_stdout:
        handlers.append(logging.StreamHandler())

    logger = logging.getLogger(logger_name)
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()
    logger.setLevel(level)
    logger.propagate = False
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    handle = StructuredLoggingHandle(
        logger=logger, run_id=run_id, log_path=log_path, handlers=tuple(handlers)
    )
    global _ACTIVE
    with _ACTIVE_LOCK:
        _ACTIVE = handle
    return handle


def configure_structlog() -> None:
    """Send ``structlog.get_logger(...)`` events into the stdlib handlers above."""

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def shutdown_logging(handle: StructuredLoggingHandle | None = None) -> None:
    """Close ``handle``, or the active handle when none is given."""

    target = handle if handle is not None else get_active_logging_handle()
    if target is None:
        return
    target.shutdown()
    global _ACTIVE
    with _ACTIVE_LOCK:
        if _ACTIVE is target:
            _ACTIVE = None


def get_active_logging_handle() -> StructuredLoggingHandle | None:
    with _ACTIVE_LOCK:
        return _ACTIVE


def get_correlation_context() -> dict[str, str]:
    return dict(_CORRELATION.get())


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Bind correlation fields for the duration of the block; ``None`` unbinds a key."""

    state = get_correlation_context()
    for key, value in fields.items():
        if value is None:
            state.pop(key, None)
        else:
            state[_non_empty(key, "correlation key")] = _non_empty(value, "correlation value")
    token = _CORRELATION.set(tuple(state.items()))
    try:
        yield
    finally:
        _CORRELATION.reset(token)


def default_log_redactor(value: JSONValue) -> JSONValue:
    return to_json_value(redact_structure(value))


def to_json_value(value: object) -> JSONValue:
    """Best-effort conversion of log payloads into JSON-compatible values."""

    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else REDACTED_VALUE
    if isinstance(value, Mapping):
        return {str(key): to_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_value(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((to_json_value(item) for item in value), key=repr)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, datetime):
        return _utc_timestamp(value.timestamp())
    if isinstance(value, Path):
        return value.as_posix()
    return str(value)


def _close_active() -> None:
    global _ACTIVE
    with _ACTIVE_LOCK:
        previous, _ACTIVE = _ACTIVE, None
    if previous is not None:
        previous.shutdown()


def _pick_redactor(config: LoggingConfig) -> LogRedactor:
    if config.redactor is not None:
        return config.redactor
    if config.redact_secrets:
        return default_log_redactor
    return to_json_value


def _non_empty(value: str, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{label} must be a non-empty string")
    return value.strip()


def _level_number(value: int | str) -> int:
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(str(value).strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unsupported logging level {value!r}")
    return resolved


def _utc_timestamp(epoch_seconds: float) -> str:
    moment = datetime.fromtimestamp(epoch_seconds, tz=UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


__all__ = [
    "JSONScalar",
    "JSONValue",
    "LOG_FILENAME",
    "LogRedactor",
    "LoggingConfig",
    "ROOT_LOGGER_NAME",
    "StructuredLoggingHandle",
    "build_formatter",
    "configure_structlog",
    "correlation_scope",
    "default_log_redactor",
    "get_active_logging_handle",
    "get_correlation_context",
    "setup_structured_logging",
    "shutdown_logging",
    "to_json_value",
]
