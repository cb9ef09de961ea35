"""Structured logging setup using structlog.

GlobalFood is imported as a library far more often than it runs as a
program, so importing it never touches logging configuration.  Modules get
their loggers from :func:`get_logger`, which only binds a name; the host
application decides where the events go.

:func:`configure_logging` is for entry points (the CLI).  It selects a
coloured ConsoleRenderer for development or a JSONRenderer when ``APP_ENV``
is ``production``, and routes standard-library ``logging`` (httpx, httpcore)
through the same processor chain.  Calling it again replaces the handler it
installed earlier and leaves any other root handler alone.
"""

import logging
import os
import sys
from typing import TextIO

import structlog

_HANDLER_NAME = "globalfood"


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> structlog.BoundLogger:
    """Configure structlog and the root logger for a GlobalFood process.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        json_output: Force JSON output. Otherwise JSON is used only when
                     ``APP_ENV=production``.
        stream: Where log lines go. Defaults to stderr so that command
                output on stdout stays clean.

    Returns:
        A configured structlog BoundLogger.
    """
    level = logging.getLevelName(log_level.upper())
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"
    out = stream or sys.stderr

    if use_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=getattr(out, "isatty", lambda: False)())

    structlog.configure(
        processors=[*_shared_processors(), renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=out),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(out)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_shared_processors(),
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    for existing in [h for h in root_logger.handlers if h.get_name() == _HANDLER_NAME]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger bound with *name*; configuration is left as is."""
    return structlog.get_logger(logger_name=name)
