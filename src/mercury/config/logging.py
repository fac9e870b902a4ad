"""Logging setup: stdlib loggers rendered through structlog on stderr.

Services log with ``logging.getLogger(__name__)``; telemetry logs through
``structlog.get_logger``. Both reach the single handler installed here,
which renders either for a terminal (default) or as JSON lines
(``--log-json``). stdout stays reserved for command results.
"""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.types import Processor

HANDLER_NAME = "mercury"

# Libraries that stay at WARNING even under --verbose.
_QUIET_LIBRARIES = ("alembic", "sqlalchemy.engine", "sqlalchemy.pool")


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _build_handler(*, log_json: bool) -> logging.Handler:
    renderer: Processor
    if log_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_shared_processors(),
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    return handler


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Route ``mercury.*`` loggers and structlog events to stderr.

    ``verbose`` lowers the ``mercury`` logger to DEBUG (pair transitions,
    search candidate counts); otherwise only warnings are shown. Calling
    again swaps the handler installed by the previous call and leaves any
    other root handlers alone.
    """
    structlog.configure(
        processors=[*_shared_processors(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    for handler in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(handler)
    root.addHandler(_build_handler(log_json=log_json))
    root.setLevel(logging.WARNING)

    logging.getLogger("mercury").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
