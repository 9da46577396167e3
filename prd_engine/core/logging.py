"""Structured logging configuration for PRD Engine."""

import logging
import sys
from contextvars import ContextVar

# Correlation id for the request currently being handled ("-" outside a request)
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

_CONTEXT_FIELDS = ("stage", "document_id", "section_id", "attempt", "delay_s")


class StructuredFormatter(logging.Formatter):
    """JSON-like structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured output."""
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "request_id": request_id_var.get(),
            "message": record.getMessage(),
        }

        # Add run_id if present in extra
        if hasattr(record, "run_id"):
            log_data["run_id"] = record.run_id

        for key in _CONTEXT_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        # Add any other extra fields
        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        # Format as key=value pairs for readability
        parts = [f"{k}={v}" for k, v in log_data.items()]
        return " ".join(parts)


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)

        # Set level based on environment
        try:
            from prd_engine.core.config import get_settings

            settings = get_settings()
            if settings.PRD_ENGINE_ENV == "dev":
                logger.setLevel(logging.DEBUG)
            else:
                logger.setLevel(logging.INFO)
        except Exception:
            # Default to INFO if settings not available
            logger.setLevel(logging.INFO)

    return logger
