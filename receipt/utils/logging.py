"""
Structured logging for the receipt reconciliation core.
"""

import logging
import json
from datetime import datetime
from typing import Optional
from receipt.config import get_config


config = get_config()


class StructuredFormatter(logging.Formatter):
    """Formats log records as structured JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "extra"):
            log_obj.update(record.extra)

        return json.dumps(log_obj, default=str)


def setup_logging(name: str = __name__) -> logging.Logger:
    """Setup and return a configured logger."""
    logger = logging.getLogger(name)

    # Modules are imported more than once under test runners
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, config.LOG_LEVEL.upper()))

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, config.LOG_LEVEL.upper()))
    console_formatter = logging.Formatter(config.LOG_FORMAT)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    # File handler with structured JSON
    if config.LOG_FILE:
        file_handler = logging.FileHandler(config.LOG_FILE)
        file_handler.setLevel(getattr(logging, config.LOG_LEVEL.upper()))
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    return logger


def log_step_action(
    logger: logging.Logger,
    step_name: str,
    action: str,
    details: Optional[dict] = None,
    score: Optional[float] = None,
) -> None:
    """Log a workflow step action with context."""
    extra = {
        "step": step_name,
        "action": action,
    }
    if score is not None:
        extra["score"] = score
    if details:
        extra.update(details)

    logger.info(
        f"[{step_name}] {action}",
        extra={"extra": extra}
    )


def log_validation_failure(
    logger: logging.Logger,
    component: str,
    message: str,
    details: Optional[dict] = None,
) -> None:
    """Log an advisory validation failure (no state was changed)."""
    extra = {
        "type": "validation",
        "component": component,
        "explanation": message,
    }
    if details:
        extra.update(details)
    logger.warning(
        f"Validation: {message} ({component})",
        extra={"extra": extra}
    )
