"""
Structured JSON logging for the grading service.

Every entry is one JSON object on stdout:
``{timestamp, level, message, channel, context, extra[, exception]}``.

Channels: http, db, grading (state machine, graders, aggregator), ai (client
and orchestrator), review (approve/override) and effects (notification and
audit sinks). ``LOG_LEVEL`` sets the default level; ``LOG_LEVEL_<CHANNEL>``
(e.g. ``LOG_LEVEL_AI=DEBUG``) overrides it for a single channel.
"""

import logging
import json
import os
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

# Set by the HTTP middleware; empty outside a request (scripts, tests)
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CHANNELS = ["http", "db", "grading", "ai", "review", "effects"]

# Libraries that log every HTTP call to the AI service or every SQL statement
NOISY_LOGGERS = ["httpx", "httpcore", "openai", "sqlalchemy.engine"]


def _level(name: str, default: int = logging.INFO) -> int:
    return getattr(logging, name.upper(), default) if name else default


class StructuredJsonFormatter(logging.Formatter):
    """Render a record as a single JSON line, merging the request id into its context."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, timezone.utc)
        context = {"request_id": request_id_var.get("")}
        context.update(getattr(record, "context", None) or {})

        log_entry = {
            "timestamp": timestamp.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
            "channel": getattr(record, "channel", record.name.rsplit(".", 1)[-1]),
            "context": context,
            "extra": getattr(record, "extra_data", None) or {},
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging():
    """
    Send all logging to stdout as JSON and set per-channel levels.

    Safe to call more than once; the root handler is replaced, not added.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredJsonFormatter())

    default_level = _level(LOG_LEVEL)
    root_logger = logging.getLogger()
    root_logger.setLevel(default_level)
    root_logger.handlers = [handler]

    for channel in CHANNELS:
        override = os.getenv(f"LOG_LEVEL_{channel.upper()}", "")
        get_logger(channel).setLevel(_level(override, default_level))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(default_level, logging.WARNING))

    return root_logger


def get_logger(channel: str) -> logging.Logger:
    """Logger for one of CHANNELS."""
    return logging.getLogger(f"exam_grading.{channel}")


def log_with_context(logger: logging.Logger, level: str, message: str,
                     context: dict = None, extra_data: dict = None,
                     exc_info: bool = False):
    """
    Emit a structured log entry.

    Args:
        logger: A channel logger from get_logger
        level: Level name (DEBUG, INFO, WARNING, ERROR)
        message: Human-readable message
        context: Identifiers the entry is about (attempt_id, answer_id, grade_id)
        extra_data: Measurements and details (duration_ms, stats, confidence)
        exc_info: Attach the active exception's traceback
    """
    logger.log(
        _level(level),
        message,
        exc_info=exc_info,
        extra={"context": context or {}, "extra_data": extra_data or {}, "channel": logger.name.rsplit(".", 1)[-1]}
    )


def generate_request_id() -> str:
    return str(uuid.uuid4())
