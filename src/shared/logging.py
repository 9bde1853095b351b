"""
ProofChain - Structured Logging
structlog configuration on top of the standard logging module
"""

import logging
import sys

import structlog

from .config import get_settings


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog for the application.

    Args:
        level: Log level override (defaults to SERVER_LOG_LEVEL)
        fmt: "json" or "console" override (defaults to SERVER_LOG_FORMAT)
    """
    server = get_settings().server
    level = (level or server.log_level).upper()
    fmt = fmt or server.log_format

    # stdout は MCP stdio 用
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if fmt == "json":
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    formatter = structlog.stdlib.ProcessorFormatter(processor=renderer)
    for handler in logging.root.handlers:
        handler.setFormatter(formatter)


def bind_request(**kwargs) -> None:
    """Bind per-run fields (request_id etc.) to every log line of the task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_request() -> None:
    structlog.contextvars.clear_contextvars()
