"""Structured logging with structlog."""

import logging
import sys
from typing import Optional

import structlog

from sprig.settings import ContainerSettings, get_settings

__all__ = ["configure_logging", "get_logger"]


def configure_logging(settings: Optional[ContainerSettings] = None) -> None:
    """Route structlog through the standard library with the configured renderer."""
    settings = settings or get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    formatter = structlog.stdlib.ProcessorFormatter(processor=renderer)

    for handler in logging.root.handlers:
        handler.setFormatter(formatter)


def get_logger(name: str):
    """Get a structlog logger bound to ``name``."""
    return structlog.get_logger(name)
