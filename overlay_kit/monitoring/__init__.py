"""
overlay-kit - Monitoring Module

Structured logging helpers.
"""

from .logging import (
    configure_from_settings,
    configure_logging,
    log_duration,
)

__all__ = [
    "configure_logging",
    "configure_from_settings",
    "log_duration",
]
