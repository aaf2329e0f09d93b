# -*- coding: utf-8 -*-
"""
Structured JSON logging configuration.
"""
import logging
import sys

from pythonjsonlogger.json import JsonFormatter

from .config import settings
from .middleware import get_request_id

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ["httpx", "httpcore", "aiosqlite", "uvicorn.access"]


class RequestIDFilter(logging.Filter):
    """Attach the current request_id (or "-") to every record."""

    def filter(self, record):
        record.request_id = get_request_id() or "-"
        return True


class WikiJsonFormatter(JsonFormatter):
    """JSON formatter that always carries a request_id field."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["request_id"] = getattr(record, "request_id", "-")


def build_formatter() -> WikiJsonFormatter:
    """Formatter emitting @timestamp, level, logger, request_id and message."""
    return WikiJsonFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(request_id)s %(message)s",
        rename_fields={"asctime": "@timestamp", "levelname": "level", "name": "logger"},
    )


def setup_logging(level: str | None = None) -> logging.Logger:
    """Configure structured JSON logging on the root logger."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level or settings.LOG_LEVEL))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter())
    handler.addFilter(RequestIDFilter())
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
