"""Log routing for deliveryctl: structlog rendering over stdlib loggers.

Modules log through ``logging.getLogger(__name__)``; the records are
rendered by structlog, either as console lines or (``--log-json``) as
one JSON object per line. Everything goes to stderr so stdout stays
reserved for command results.

Context bound with :mod:`structlog.contextvars` (the open unit of work,
the running batch step) is attached to every record logged meanwhile.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

APP_LOGGER = "deliveryctl"

# Third-party loggers that stay at WARNING even in verbose mode.
_NOISY_LOGGERS = ("alembic", "sqlalchemy.engine", "sqlalchemy.pool")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Install the structlog formatter on the root handler.

    Args:
        verbose: DEBUG for deliveryctl loggers (rule firings, unit-of-work
            boundaries). Otherwise WARNING.
        log_json: Render JSON lines instead of console lines.
        stream: Destination, stderr by default.
    """
    out = stream or sys.stderr
    shared = _shared_processors()

    renderer: structlog.types.Processor
    if log_json:
        renderer = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=out.isatty())

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(out)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger(APP_LOGGER).setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
