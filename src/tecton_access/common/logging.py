"""Logging configuration and helpers for tecton-access.

Two output formats are supported:

* human-readable console logs, and
* structured JSON logs, one object per line.

Helpers bind a per-run correlation id and build consistent ``extra`` payloads
so every reconciliation event names the principal, scope and role involved.

Everything uses the standard :mod:`logging` library.
"""

from __future__ import annotations

import json
import logging
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tecton_access.settings import Settings

# ---------------------------------------------------------------------------
# Context and constants
# ---------------------------------------------------------------------------

# Correlation id of the current top-level run (one CLI invocation).
_RUN_ID: ContextVar[str | None] = ContextVar("tecton_access_run_id", default=None)

# Attributes already handled by logging; not copied into the key=value list.
_STANDARD_ATTRS: set[str] = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "asctime",
    "run_id",
    "taskName",
}

_CONFIGURED_FLAG = "_tecton_access_configured"


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class ConsoleLogFormatter(logging.Formatter):
    """Render log records as single-line console output.

    Example line:

        2026-10-18T09:12:44.031Z INFO  tecton_access.features.reconcile.service [run=3f9c]
        reconcile.grant principal=user-alice role=viewer scope=baseline
    """

    _time_format = "%Y-%m-%dT%H:%M:%S"

    def __init__(self) -> None:
        fmt = "%(asctime)s %(levelname)-5s %(name)s [run=%(run_id)s] %(message)s"
        super().__init__(fmt=fmt, datefmt=self._time_format)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        dt = datetime.fromtimestamp(record.created, tz=UTC)
        base = dt.strftime(datefmt or self._time_format)
        return f"{base}.{int(record.msecs):03d}Z"

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - std signature
        record.run_id = getattr(record, "run_id", None) or _RUN_ID.get() or "-"
        base = super().format(record)
        extras = [
            f"{key}={_format_extra_value(value)}"
            for key, value in sorted(_record_extras(record).items())
        ]
        if extras:
            return f"{base} " + " ".join(extras)
        return base


class JsonLogFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    _time_format = "%Y-%m-%dT%H:%M:%S"

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        dt = datetime.fromtimestamp(record.created, tz=UTC)
        base = dt.strftime(datefmt or self._time_format)
        return f"{base}.{int(record.msecs):03d}Z"

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - std signature
        run_id = getattr(record, "run_id", None) or _RUN_ID.get() or "-"
        record.run_id = run_id
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self._time_format),
            "level": record.levelname,
            "service": "tecton-access",
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": run_id,
        }
        payload.update(_record_extras(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default, separators=(",", ":"))


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def setup_logging(settings: Settings) -> None:
    """Configure root logging for a tecton-access process.

    Installs a single stderr ``StreamHandler`` with the configured format and
    sets the root level from ``settings.log_level``.
    """
    root_logger = logging.getLogger()
    level = getattr(logging, settings.log_level)

    configured = getattr(root_logger, _CONFIGURED_FLAG, False)
    if not configured or not root_logger.handlers:
        root_logger.handlers = [logging.StreamHandler()]
        setattr(root_logger, _CONFIGURED_FLAG, True)
    else:
        root_logger.handlers = [root_logger.handlers[0]]

    handler = root_logger.handlers[0]
    handler.setFormatter(_build_formatter(settings.log_format))
    root_logger.setLevel(level)


# ---------------------------------------------------------------------------
# Context helpers
# ---------------------------------------------------------------------------


def bind_run_context(run_id: str | None) -> None:
    """Bind a correlation id to the logging context for the current run."""
    _RUN_ID.set(run_id)


def clear_run_context() -> None:
    _RUN_ID.set(None)


def current_run_id() -> str | None:
    return _RUN_ID.get()


def log_context(
    *,
    principal: str | None = None,
    scope: str | None = None,
    role: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a consistent ``extra`` payload for structured logs.

    Example:
        logger.info(
            "reconcile.grant",
            extra=log_context(principal="user-alice", scope="baseline", role="viewer"),
        )
    """
    ctx: dict[str, Any] = {}

    if principal is not None:
        ctx["principal"] = str(principal)
    if scope is not None:
        ctx["scope"] = str(scope)
    if role is not None:
        ctx["role"] = str(role)

    for key, value in extra.items():
        ctx[key] = value

    return ctx


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _format_extra_value(value: Any) -> str:
    if value is None:
        return "null"
    return str(value)


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    extras: dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_ATTRS or key.startswith("_"):
            continue
        extras[key] = value
    return extras


def _json_default(value: Any) -> str:
    return str(value)


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return JsonLogFormatter()
    return ConsoleLogFormatter()


__all__ = [
    "ConsoleLogFormatter",
    "JsonLogFormatter",
    "bind_run_context",
    "clear_run_context",
    "current_run_id",
    "log_context",
    "setup_logging",
]
