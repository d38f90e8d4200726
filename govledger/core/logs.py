# govledger/core/logs.py
"""
Structured logging setup.

Library modules only call structlog.get_logger(__name__); nothing is printed
until an application (the CLI, a test, an embedding service) configures it.
"""

import logging
import os
import sys
from typing import Any, Optional

import structlog


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """
    level: GOVLEDGER_LOG_LEVEL or WARNING
    fmt:   GOVLEDGER_LOG_FORMAT or "console" ("json" for machine-readable lines)
    """
    level = (level or os.environ.get("GOVLEDGER_LOG_LEVEL") or "WARNING").upper()
    fmt = (fmt or os.environ.get("GOVLEDGER_LOG_FORMAT") or "console").lower()

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: Any
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    # stderr keeps CLI stdout clean for tables and exports
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level, logging.WARNING))
