"""Structured logging configuration"""

import logging
import sys
from typing import Iterable

import structlog
from pythonjsonlogger import jsonlogger

SERVICE_NAME = "watchlist-recommender"

# Standard-library loggers owned by the server and the worker
THIRD_PARTY_LOGGERS = ("uvicorn.access", "uvicorn.error", "celery")


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structlog to render one JSON object per event on stdout

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


class ServiceJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter tagging standard-library records with the service name"""

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["service"] = SERVICE_NAME
        log_record["level"] = record.levelname.lower()


def json_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ServiceJsonFormatter("%(timestamp)s %(name)s %(message)s", timestamp=True))
    return handler


def attach_json_handler(logger: logging.Logger) -> None:
    """Replace the logger's handlers with a single JSON handler"""
    logger.handlers = [json_handler()]


def configure_json_loggers(names: Iterable[str] = THIRD_PARTY_LOGGERS) -> None:
    for name in names:
        attach_json_handler(logging.getLogger(name))
