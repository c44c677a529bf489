"""Structured logging for skyframe.

Thin layer over the standard logging module that lets library code attach
key-value data to a record instead of formatting it into the message:

    logger = get_logger(__name__)
    logger.debug("Debayer complete", method="linear", width=4144, height=2822)

Records are rendered either as human-readable text
("... - DEBUG - Debayer complete | method=linear width=4144 height=2822")
or as one JSON object per line for log aggregation.

LogContext adds ambient fields to every record emitted inside a ``with``
block (for example the frame id an acquisition loop is working on). Context
values live in a contextvars.ContextVar, so they are isolated per thread and
per asyncio task.

All loggers hang off the "skyframe" logger. configure_logging() installs one
handler on it and stops propagation to the root logger; applications that
prefer their own handlers can skip configure_logging() and configure the
"skyframe" logger directly.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import threading
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, cast

ROOT_LOGGER_NAME = "skyframe"

# Ambient structured fields for the current thread/task
_log_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "log_context", default={}
)


# =============================================================================
# Structured Log Record
# =============================================================================


class StructuredLogRecord(logging.LogRecord):
    """LogRecord carrying a dict of structured fields."""

    structured_data: dict[str, Any]

    def __init__(
        self,
        name: str,
        level: int,
        pathname: str,
        lineno: int,
        msg: object,
        args: tuple[Any, ...] | MutableMapping[str, Any] | None,
        exc_info: Any,
        func: str | None = None,
        sinfo: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Create a record; ``structured_data`` in kwargs becomes its fields.

        Example:
            >>> record = StructuredLogRecord(
            ...     name="skyframe.demosaic", level=10, pathname="x.py",
            ...     lineno=1, msg="Debayer", args=(), exc_info=None,
            ...     structured_data={"method": "nearest"},
            ... )
            >>> record.structured_data
            {'method': 'nearest'}
        """
        super().__init__(
            name, level, pathname, lineno, msg, args, exc_info, func, sinfo
        )
        self.structured_data = kwargs.get("structured_data", {})


# =============================================================================
# Structured Logger
# =============================================================================


class StructuredLogger(logging.Logger):
    """Logger whose level methods accept structured keyword fields.

    Usage:
        logger = StructuredLogger("skyframe.serialization")
        logger.info("Frame serialized", nbytes=65536, compressed=True)
    """

    def debug(
        self,
        msg: object,
        *args: Any,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        extra: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        """Log at DEBUG with structured fields."""
        if self.isEnabledFor(logging.DEBUG):
            self._log(
                logging.DEBUG,
                msg,
                args,
                exc_info=exc_info,
                extra=extra,
                stack_info=stack_info,
                stacklevel=stacklevel + 1,
                **kwargs,
            )

    def info(
        self,
        msg: object,
        *args: Any,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        extra: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        """Log at INFO with structured fields."""
        if self.isEnabledFor(logging.INFO):
            self._log(
                logging.INFO,
                msg,
                args,
                exc_info=exc_info,
                extra=extra,
                stack_info=stack_info,
                stacklevel=stacklevel + 1,
                **kwargs,
            )

    def warning(
        self,
        msg: object,
        *args: Any,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        extra: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        """Log at WARNING with structured fields."""
        if self.isEnabledFor(logging.WARNING):
            self._log(
                logging.WARNING,
                msg,
                args,
                exc_info=exc_info,
                extra=extra,
                stack_info=stack_info,
                stacklevel=stacklevel + 1,
                **kwargs,
            )

    def error(
        self,
        msg: object,
        *args: Any,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        extra: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        """Log at ERROR with structured fields."""
        if self.isEnabledFor(logging.ERROR):
            self._log(
                logging.ERROR,
                msg,
                args,
                exc_info=exc_info,
                extra=extra,
                stack_info=stack_info,
                stacklevel=stacklevel + 1,
                **kwargs,
            )

    def _log(
        self,
        level: int,
        msg: object,
        args: tuple[Any, ...] | MutableMapping[str, Any] | None = None,
        exc_info: Any = None,
        extra: dict[str, Any] | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **kwargs: Any,
    ) -> None:
        """Merge LogContext fields with keyword fields and emit.

        Explicit keyword fields override context fields of the same name.
        The merged dict travels to formatters as ``record.structured_data``.

        Args:
            level: Numeric log level.
            msg: Message, may contain %-style placeholders.
            args: Arguments for %-formatting.
            exc_info: Exception info as accepted by logging.Logger.
            extra: Extra record attributes; ``structured_data`` is overwritten.
            stack_info: Include the current stack.
            stacklevel: Frames to skip when locating the caller.
            **kwargs: Structured fields, e.g. width=4144, method="cubic".
        """
        structured_data = {**_log_context.get(), **kwargs}

        if extra is None:
            extra = {}
        extra["structured_data"] = structured_data

        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 1,
        )


# =============================================================================
# Formatters
# =============================================================================


class StructuredFormatter(logging.Formatter):
    """Text formatter: ``timestamp - name - level - message | key=value ...``."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        include_structured: bool = True,
    ) -> None:
        """Initialize the formatter.

        Args:
            fmt: logging format string. Defaults to
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'.
            datefmt: Date format for %(asctime)s.
            include_structured: Append structured fields after ' | '.
        """
        if fmt is None:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        super().__init__(fmt, datefmt)
        self.include_structured = include_structured

    def format(self, record: logging.LogRecord) -> str:
        """Render the base message, then any structured fields as key=value.

        Records without a ``structured_data`` attribute (for example records
        from plain stdlib loggers) are rendered with the base format only.
        """
        base = super().format(record)

        if not self.include_structured:
            return base

        structured = getattr(record, "structured_data", {})
        if not structured:
            return base

        pairs = " ".join(f"{k}={_format_value(v)}" for k, v in structured.items())
        return f"{base} | {pairs}"


class JSONFormatter(logging.Formatter):
    """NDJSON formatter: one object per record with structured fields inlined.

    Keys: timestamp (UTC ISO 8601), level, logger, message, exception (when
    exc_info is set), plus every structured field.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Render the record as a single JSON line (no trailing newline)."""
        log_dict: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        log_dict.update(getattr(record, "structured_data", {}))

        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_dict, default=str)


def _format_value(value: Any) -> str:
    """Format one structured value for text output.

    Rules: None -> 'null'; strings containing spaces are double-quoted;
    dicts, lists and tuples are JSON-encoded; everything else uses str().

    Example:
        >>> _format_value(None)
        'null'
        >>> _format_value("BAYER_RGGB")
        'BAYER_RGGB'
        >>> _format_value("two words")
        '"two words"'
        >>> _format_value((4, 4))
        '[4, 4]'
    """
    if value is None:
        return "null"
    if isinstance(value, str):
        if " " in value:
            return f'"{value}"'
        return value
    if isinstance(value, dict | list | tuple):
        return json.dumps(value, default=str)
    return str(value)


# =============================================================================
# Context Management
# =============================================================================


@dataclass
class LogContext:
    """Add structured fields to every record logged inside a ``with`` block.

    Contexts nest; inner values override outer values with the same key and
    the outer context is restored on exit, even when the block raises.

    Usage:
        with LogContext(frame_id=1532):
            image.debayer(DemosaicMethod.LINEAR)  # records carry frame_id
    """

    _kwargs: dict[str, Any] = field(default_factory=dict, init=False, repr=True)
    _token: contextvars.Token[dict[str, Any]] | None = field(
        default=None, init=False, repr=False
    )

    def __init__(self, **kwargs: Any) -> None:
        """Store the fields to activate on ``__enter__``."""
        self._kwargs = kwargs

    def __enter__(self) -> LogContext:
        """Activate this context's fields on top of the current context."""
        current = _log_context.get()
        self._token = _log_context.set({**current, **self._kwargs})
        return self

    def __exit__(self, *args: Any) -> None:
        """Restore the previous context. Exceptions are not suppressed."""
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


# =============================================================================
# Configuration
# =============================================================================

_configured = False
_config_lock = threading.Lock()


def configure_logging(
    level: int | str = logging.WARNING,
    json_format: bool = False,
    stream: Any = None,
    include_structured: bool = True,
    force: bool = False,
) -> None:
    """Install a handler on the "skyframe" logger.

    Idempotent: later calls are ignored unless ``force`` is True. Guarded by
    a lock so concurrent first use from several threads configures once.

    A library should be quiet by default, so the default level is WARNING;
    acquisition applications typically lower it to INFO or DEBUG.

    Args:
        level: Minimum level, as int or name ('DEBUG', 'INFO', ...).
        json_format: Emit NDJSON instead of text.
        stream: Destination stream, default sys.stderr.
        include_structured: Append key=value fields in text mode.
        force: Remove existing handlers and reconfigure.

    Example:
        >>> import io
        >>> buffer = io.StringIO()
        >>> configure_logging(level="DEBUG", stream=buffer, force=True)
    """
    with _config_lock:
        if force:
            _reset_logging_impl()
        _configure_logging_impl(level, json_format, stream, include_structured)


def _configure_logging_impl(
    level: int | str = logging.WARNING,
    json_format: bool = False,
    stream: Any = None,
    include_structured: bool = True,
) -> None:
    """Configure the root skyframe logger (caller holds the lock)."""
    global _configured

    if _configured:
        return

    logging.setLoggerClass(StructuredLogger)

    if stream is None:
        stream = sys.stderr
    handler = logging.StreamHandler(stream)

    formatter: logging.Formatter
    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = StructuredFormatter(include_structured=include_structured)
    handler.setFormatter(formatter)

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    root.addHandler(handler)
    root.propagate = False

    _configured = True


def _reset_logging_impl() -> None:
    """Remove handlers from the root skyframe logger (caller holds the lock)."""
    global _configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)

    _configured = False


def reset_logging() -> None:
    """Return logging to the unconfigured state (for testing)."""
    with _config_lock:
        _reset_logging_impl()


def get_logger(name: str) -> StructuredLogger:
    """Get a StructuredLogger, configuring logging with defaults on first use.

    Args:
        name: Logger name, normally ``__name__`` of a skyframe module.

    Returns:
        Logger accepting structured keyword fields.

    Example:
        >>> logger = get_logger("skyframe.demosaic")
        >>> logger.debug("Rows partitioned", partitions=8)
    """
    if not _configured:
        with _config_lock:
            if not _configured:  # pragma: no branch
                _configure_logging_impl()

    logger = logging.getLogger(name)
    return cast(StructuredLogger, logger)
