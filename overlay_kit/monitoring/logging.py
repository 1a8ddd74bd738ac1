"""
overlay-kit - Structured Logging

Logging configuration using structlog on top of the standard library.

Features:
- JSON output for log shipping
- Pretty console output for development
- Context variables merged from structlog.contextvars
- Duration logging for the close barrier
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

from overlay_kit import __version__

# =============================================================================
# Custom Processors
# =============================================================================

def add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add ISO8601 timestamp to log entry."""
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


def add_service_info(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add library identification info."""
    event_dict["service"] = "overlay-kit"
    event_dict["version"] = __version__
    return event_dict


# =============================================================================
# Logging Configuration
# =============================================================================

def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    include_timestamps: bool = True,
    include_service_info: bool = False,
) -> None:
    """
    Configure structured logging for the host application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Use JSON format
        include_timestamps: Add timestamps to logs
        include_service_info: Add library name/version
    """
    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.contextvars.merge_contextvars,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamps:
        processors.insert(0, add_timestamp)

    if include_service_info:
        processors.insert(0, add_service_info)

    if json_output:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )


def configure_from_settings() -> None:
    """Configure logging from the OVERLAY_* settings."""
    from overlay_kit.config import get_settings

    cfg = get_settings()
    configure_logging(level=cfg.log_level, json_output=cfg.log_json)


# =============================================================================
# Performance Logging
# =============================================================================

@contextmanager
def log_duration(
    logger: Any,
    operation: str,
    level: str = "info",
    **extra_context: Any,
) -> Iterator[None]:
    """
    Context manager to log operation duration.

    Works around awaits as well, since it only reads the monotonic clock.

    Usage:
        with log_duration(logger, "overlay_close_barrier", hooks=2):
            await asyncio.gather(*pending)
    """
    start_time = time.monotonic()
    log_method = getattr(logger, level)

    try:
        yield
        duration_ms = (time.monotonic() - start_time) * 1000
        log_method(
            f"{operation}_completed",
            duration_ms=round(duration_ms, 2),
            **extra_context,
        )
    except Exception as e:
        duration_ms = (time.monotonic() - start_time) * 1000
        logger.error(
            f"{operation}_failed",
            duration_ms=round(duration_ms, 2),
            error=str(e),
            **extra_context,
        )
        raise


__all__ = [
    "configure_logging",
    "configure_from_settings",
    "log_duration",
]
