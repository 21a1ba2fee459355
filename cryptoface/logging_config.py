"""
Structured logging for the CryptoFace service and CLI.

Console output while debugging, JSON lines everywhere else. Pipeline code logs
through stdlib ``logging``; the records are rendered by structlog so that
context bound with :func:`bind_session` shows up on every line.
"""

import logging
import sys
from typing import Optional

import structlog

from .config import settings


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(log_level: Optional[str] = None, *, json_logs: Optional[bool] = None) -> None:
    """Route stdlib and structlog output through one renderer.

    Args:
        log_level: Override log level (default: ``settings.log_level``)
        json_logs: Force JSON (True) or console (False) output. Defaults to
            console at DEBUG and JSON otherwise.
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    if json_logs is None:
        json_logs = level != logging.DEBUG

    processors = _shared_processors()
    if json_logs:
        processors.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Wallet RPC and parser calls are logged by the pipeline itself
    for name in ("uvicorn.access", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_session(session_id: str, **extra: object) -> None:
    """Attach a pipeline session id to every log line emitted in this context."""

    structlog.contextvars.bind_contextvars(session_id=session_id, **extra)
