"""Structlog-based logging configuration."""

from __future__ import annotations

import logging
import sys
from typing import Final

import structlog

_CONFIGURED: Final[dict[str, bool]] = {"value": False}


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Configure structlog once; later calls only adjust the level."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.root.setLevel(numeric)
    if _CONFIGURED["value"]:
        return

    # Logs go to stderr so printed query results stay clean on stdout
    logging.basicConfig(stream=sys.stderr, level=numeric, format="%(message)s")

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
    ]
    if fmt == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        # ConsoleRenderer formats exceptions itself
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
        wrapper_class=structlog.stdlib.BoundLogger,
    )
    _CONFIGURED["value"] = True


__all__ = ["configure_logging"]
