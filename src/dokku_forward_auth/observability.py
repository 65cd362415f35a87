"""Structured logging helpers distilled into tiny orchestration phrases.

Purpose
    Keep every emission of logging data predictable and contextual: each record
    carries the application currently processed so hook output from concurrent
    deploys can be told apart.

Contents
    - ``CURRENT_APP``: context variable storing the application being processed.
    - ``get_logger``: returns the shared package logger (quiet by default).
    - ``bind_app``: binds or clears the active application.
    - ``log_debug`` / ``log_info`` / ``log_warning`` / ``log_error``: emit
      structured entries via a single private emitter.
    - ``make_event``: convenience builder for structured event payloads.
    - ``configure_cli_logging``: attach a stderr handler for command line use.

System Integration
    Used by adapters and the trigger entrypoint. The domain layer stays free of
    logging; only the CLI decides whether anything reaches a terminal.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any, Final, Mapping

CURRENT_APP: ContextVar[str | None] = ContextVar("dokku_forward_auth_app", default=None)
"""Application the current trigger invocation is working on."""

_LOGGER: Final[logging.Logger] = logging.getLogger("dokku_forward_auth")
_LOGGER.addHandler(logging.NullHandler())
_CLI_HANDLER_NAME: Final[str] = "dokku_forward_auth.cli"


def get_logger() -> logging.Logger:
    """Expose the package logger so applications may attach handlers."""

    return _LOGGER


def bind_app(app: str | None) -> None:
    """Bind or clear the active application name.

    Examples
    --------
    >>> bind_app('myapp')
    >>> CURRENT_APP.get()
    'myapp'
    >>> bind_app(None)
    >>> CURRENT_APP.get() is None
    True
    """

    CURRENT_APP.set(app)


def log_debug(message: str, **fields: Any) -> None:
    """Emit a structured debug log entry that includes the app context."""

    _emit(logging.DEBUG, message, fields)


def log_info(message: str, **fields: Any) -> None:
    """Emit a structured info log entry that includes the app context."""

    _emit(logging.INFO, message, fields)


def log_warning(message: str, **fields: Any) -> None:
    """Emit a structured warning log entry that includes the app context."""

    _emit(logging.WARNING, message, fields)


def log_error(message: str, **fields: Any) -> None:
    """Emit a structured error log entry that includes the app context."""

    _emit(logging.ERROR, message, fields)


def make_event(
    stage: str,
    path: str | None,
    payload: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a structured logging payload for trigger lifecycle events.

    Examples
    --------
    >>> make_event('inject', None, {'roots': 2})
    {'stage': 'inject', 'path': None, 'roots': 2}
    """

    event: dict[str, Any] = {"stage": stage, "path": path}
    if payload:
        event |= dict(payload)
    return event


def configure_cli_logging(verbose: bool = False) -> logging.Handler:
    """Attach (once) a stderr handler rendering the structured context.

    Why
        The hook runs inside Dokku's deploy output; warnings such as a missing
        fragment must be visible there while library consumers stay silent.
    """

    level = logging.DEBUG if verbose else logging.WARNING
    for handler in _LOGGER.handlers:
        if handler.get_name() == _CLI_HANDLER_NAME:
            handler.setLevel(level)
            _LOGGER.setLevel(level)
            return handler
    handler = _StderrHandler()
    handler.set_name(_CLI_HANDLER_NAME)
    handler.setFormatter(_ContextFormatter())
    handler.setLevel(level)
    _LOGGER.addHandler(handler)
    _LOGGER.setLevel(level)
    return handler


class _StderrHandler(logging.StreamHandler):
    """Stream handler that always writes to the current ``sys.stderr``."""

    @property
    def stream(self):  # type: ignore[override]
        return sys.stderr

    @stream.setter
    def stream(self, value) -> None:  # stdlib assigns in __init__
        pass


class _ContextFormatter(logging.Formatter):
    """Render ``!     message key=value …`` lines in Dokku's output style."""

    def format(self, record: logging.LogRecord) -> str:
        context = getattr(record, "context", {}) or {}
        details = " ".join(f"{key}={value}" for key, value in context.items() if value is not None)
        prefix = "!    " if record.levelno >= logging.WARNING else "     "
        return f"{prefix} {record.getMessage()} {details}".rstrip()


def _emit(level: int, message: str, fields: Mapping[str, Any]) -> None:
    """Send a log entry through the shared logger with contextual metadata."""

    _LOGGER.log(level, message, extra={"context": _with_app(fields)})


def _with_app(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Attach the current application to the provided structured fields."""

    context = {"app": CURRENT_APP.get()}
    context.update(fields)
    return context
