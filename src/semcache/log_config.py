# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Structured logging setup.

The library only emits events through ``structlog.get_logger(__name__)``.
Applications (and the ``semcache`` CLI) call ``configure_logging`` once.
"""

import logging
import sys

import structlog

from .config import get_settings


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        level: stdlib level name (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            defaults to the LOG_LEVEL setting
        fmt: "json" for machine-readable lines, "text" for a console renderer;
            defaults to the LOG_FORMAT setting

    Raises:
        ConfigurationError: if the fallback settings are malformed
    """
    if level is None or fmt is None:
        settings = get_settings()
        level = level or settings.log_level
        fmt = fmt or settings.log_format

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level.upper(),
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if fmt == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
