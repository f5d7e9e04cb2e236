# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Centralized logging configuration for afkbot.

This module provides structured logging using structlog, configured to:
- Write all logs to stderr (the interactive shell owns stdout)
- Respect AFKBOT_LOG_LEVEL environment variable (default: WARNING)
- Use ISO timestamps and console rendering
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from afkbot.settings import Settings

__all__ = ["get_logger", "configure_logging"]


def configure_logging(settings: Settings | None = None, *, level: str | None = None) -> None:
    """Configure structlog for afkbot.

    This should be called once at application startup.

    Args:
        settings: Settings instance (will be created if None)
        level: Explicit level name overriding settings.log_level
    """
    if settings is None:
        from afkbot.settings import Settings

        settings = Settings()

    level_name = (level or settings.log_level).upper()
    log_level = getattr(logging, level_name, logging.WARNING)

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name (typically __name__ of calling module)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)
