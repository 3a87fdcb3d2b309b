"""Structured logging setup using structlog.

One shared processor chain (context vars, level, ISO timestamps, stack
info) feeds either a coloured ConsoleRenderer (development) or a
JSONRenderer (production, or when forced with ``json_output``).  The
environment comes from ``APP_ENV``.

Stdlib ``logging`` is routed through the same formatter so uvicorn,
httpx and the LLM SDKs log in the same shape as our own events.

Ingestion code binds ``scenario_id`` and ``ingest_id`` into structlog's
contextvars with :func:`bind_ingest_context`, so every log line emitted
while a document is in flight carries them without threading the ids
through each call.
"""

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

# Third-party loggers that are chatty at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "aiosqlite")


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog and the stdlib bridge.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        json_output: Force JSON rendering regardless of ``APP_ENV``.

    Returns:
        The root structlog logger.
    """
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if use_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *shared_processors,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root_logger.level))

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger bound with ``logger_name``; configures defaults lazily."""
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)


@contextmanager
def bind_ingest_context(scenario_id: str, ingest_id: str) -> Iterator[None]:
    """Bind the ingestion correlation ids for the duration of the block."""
    tokens = structlog.contextvars.bind_contextvars(
        scenario_id=scenario_id,
        ingest_id=ingest_id,
    )
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)
