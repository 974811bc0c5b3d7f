"""Logging configuration for the Document Retrieval engine."""

import json
import logging
import sys
from typing import Any, Dict, Optional

from document_retrieval.config import Settings, get_settings
from document_retrieval.utils.errors import RetrievalException

ROOT_LOGGER = "document_retrieval"

# Logger instance
_logger: Optional[logging.Logger] = None


def _context_of(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, "extra_fields", None) or {}


class JSONFormatter(logging.Formatter):
    """One JSON object per record; ``extra_fields`` are merged in at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(_context_of(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class StandardFormatter(logging.Formatter):
    """Human-readable lines for development, with any context appended as ``key=value``."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context_of(record)
        if not context:
            return line
        pairs = " ".join(f"{key}={value}" for key, value in context.items())
        head, sep, tail = line.partition("\n")
        return f"{head} [{pairs}]{sep}{tail}"


def setup_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Set up logging configuration based on environment."""
    global _logger

    if _logger is not None:
        return _logger

    settings = settings or get_settings()

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, settings.log_level))

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, settings.log_level))
    console_handler.setFormatter(JSONFormatter() if settings.is_production else StandardFormatter())
    logger.addHandler(console_handler)

    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database.echo else logging.WARNING
    )
    for noisy in ("httpx", "openai", "azure"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.propagate = False

    _logger = logger
    logger.info(
        f"Logging configured: level={settings.log_level}, "
        f"environment={settings.environment.value}, "
        f"format={'JSON' if settings.is_production else 'Standard'}"
    )

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance."""
    if name:
        return logging.getLogger(f"{ROOT_LOGGER}.{name}")
    return logging.getLogger(ROOT_LOGGER)


def log_error(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    **kwargs: Any,
) -> None:
    """
    Log an error that is handled rather than propagated.

    ``RetrievalException`` subclasses contribute their code and details, so a
    failed cleanup of a document or file stays traceable to its cause.
    """
    logger = get_logger("error")
    extra_fields: Dict[str, Any] = {"error_type": type(error).__name__, **(context or {}), **kwargs}
    if isinstance(error, RetrievalException):
        extra_fields["error_code"] = error.code
        if error.details:
            extra_fields["error_details"] = error.details

    logger.error(
        f"{type(error).__name__}: {error}",
        exc_info=error,
        extra={"extra_fields": extra_fields},
    )
