"""
functions/utils/logging_config.py

Process-wide structlog configuration.

Modules keep using `structlog.get_logger(__name__)` and log snake_case
event names with key/value context; this module only decides level,
processors and renderer. Local runs get the console renderer, every
other environment gets one JSON object per line.
"""

from __future__ import annotations

import logging

import structlog

_configured = False


def configure_logging(level: str = "INFO", *, environment: str = "local", force: bool = False) -> None:
    global _configured
    if _configured and not force:
        return

    level_no = logging.getLevelName(level.upper())
    if not isinstance(level_no, int):
        level_no = logging.INFO

    renderer = (
        structlog.dev.ConsoleRenderer()
        if environment == "local"
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        cache_logger_on_first_use=True,
    )
    _configured = True
