"""Structured logging setup.

Configures structlog so that every ``structlog.get_logger()`` call in the
service emits one JSON line per event, carrying any context bound with
``structlog.contextvars`` (request ids, for example).
"""

import logging

import structlog


def configure_logging(level: str = "INFO", debug: bool = False) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        level: Minimum log level name.
        debug: Render human-readable console output instead of JSON.
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(format="%(message)s", level=log_level)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if debug
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )
