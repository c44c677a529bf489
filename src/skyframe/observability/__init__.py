"""Observability for skyframe: structured logging.

Example:
    from skyframe.observability import LogContext, configure_logging, get_logger

    configure_logging(level="DEBUG")
    logger = get_logger(__name__)

    with LogContext(frame_id=42):
        logger.debug("Frame wrapped", width=1920, height=1080)
"""

from skyframe.observability.logging import (
    JSONFormatter,
    LogContext,
    StructuredFormatter,
    StructuredLogger,
    configure_logging,
    get_logger,
    reset_logging,
)

__all__ = [
    "JSONFormatter",
    "LogContext",
    "StructuredFormatter",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "reset_logging",
]
