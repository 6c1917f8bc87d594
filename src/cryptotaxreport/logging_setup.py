"""
Structured logging (structlog) for CryptoTaxReport.

Call `configure_logging()` once at startup (the API does it on import);
library code only calls `get_logger(__name__)`.
"""

import logging

import structlog
from structlog.processors import (
    JSONRenderer,
    KeyValueRenderer,
    TimeStamper,
    UnicodeDecoder,
    add_log_level,
)
from structlog.stdlib import BoundLogger, ProcessorFormatter, add_logger_name

from .__about__ import __version__


def get_logger(name: str) -> BoundLogger:
    """
    Return a structlog logger carrying the service name and version.

    The logger stays lazy until first use, so module-level loggers pick up the
    configuration applied later by configure_logging(). Until then events go
    to stdlib logging, so a library caller without handlers sees warnings only.
    """
    if not structlog.is_configured():
        _route_to_stdlib()
    return structlog.get_logger(name, service="cryptotaxreport", version=__version__)


def _route_to_stdlib() -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            TimeStamper(fmt="ISO", utc=True),
            add_log_level,
            add_logger_name,
            KeyValueRenderer(key_order=["timestamp", "level", "event", "logger"]),
        ],
        wrapper_class=BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def configure_logging(log_level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure structlog and route its output through stdlib logging.

    Args:
        log_level: Minimum level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: JSON lines instead of key=value output
    """
    shared_processors = [
        TimeStamper(fmt="ISO", utc=True),
        add_log_level,
        add_logger_name,
        UnicodeDecoder(),
    ]

    if json_logs:
        renderer = JSONRenderer(sort_keys=True)
    else:
        renderer = KeyValueRenderer(key_order=["timestamp", "level", "event", "logger"])

    structlog.configure(
        processors=shared_processors + [ProcessorFormatter.wrap_for_formatter],
        wrapper_class=BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        ProcessorFormatter(
            processors=[ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(_get_log_level_int(log_level))


def _get_log_level_int(level: str) -> int:
    levels = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return levels.get(level.upper(), logging.INFO)
