"""
Logging setup for the MCP server, the HTTP API and the CLI.

stdout carries the MCP stdio transport, so every record goes to stderr.
Records are JSON lines unless the level is DEBUG, where the console renderer
is easier to read while watching the live feed.
"""

import logging
import sys
from typing import Any, Dict, List, Optional, TextIO

import structlog

from . import __version__
from .config import settings

SERVICE_NAME = "pumpfun-mcp"

# Per-request and per-frame chatter from transport libraries
NOISY_LOGGERS = ("uvicorn.access", "httpcore", "httpx", "websockets", "mcp.server.lowlevel")


def add_service_info(_logger: Any, _method: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", __version__)
    return event_dict


def _processors(json_output: bool) -> List[structlog.types.Processor]:
    processors: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors.append(structlog.processors.format_exc_info)
    return processors


def setup_logging(log_level: Optional[str] = None, stream: Optional[TextIO] = None) -> None:
    """Route stdlib and structlog records through one stderr handler.

    Args:
        log_level: Override log level (default: settings.log_level)
        stream: Override output stream, mainly for tests
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    json_output = level != logging.DEBUG
    shared = _processors(json_output)

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
