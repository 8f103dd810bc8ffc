"""
Centralized logging system with structured JSON output.
"""
from __future__ import annotations

import json
import logging
import logging.handlers
import queue
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


# Record attributes promoted to top-level JSON fields when present
CONTEXT_FIELDS = (
    "trace_id",
    "request_id",
    "protocol",
    "fee_tier",
    "token_in",
    "token_out",
    "pool_address",
)

SENSITIVE_PATTERNS = (
    "key", "secret", "password", "passphrase", "private", "mnemonic", "jwt",
)


class StructuredFormatter(logging.Formatter):
    """
    Custom formatter that outputs structured JSON logs with correlation IDs.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as structured JSON.

        Args:
            record: Log record to format

        Returns:
            JSON formatted log string
        """
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": getattr(record, "module", record.name),
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_data = getattr(record, "extra_data", None)
        if extra_data is not None and isinstance(extra_data, dict):
            log_data.update(
                {k: self._redact_sensitive(k, v) for k, v in extra_data.items()}
            )

        return json.dumps(log_data, default=str, separators=(",", ":"))

    def _redact_sensitive(self, key: str, value: Any) -> Any:
        """
        Redact sensitive information from log values.

        Token addresses are public, so only secret-like key names are masked.
        """
        lowered = key.lower()
        if lowered.startswith("token"):
            return value
        if any(pattern in lowered for pattern in SENSITIVE_PATTERNS):
            return "[REDACTED]"
        return value


# Global variable to store the queue listener
_queue_listener: Optional[logging.handlers.QueueListener] = None


def setup_logging(
    log_level: str = "INFO",
    debug: bool = False,
    log_to_file: bool = False,
    log_dir: Path | str = "data/logs",
) -> None:
    """
    Set up centralized logging with structured JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        debug: Use a human-readable console format instead of JSON
        log_to_file: Also write a daily-rotated app.jsonl through a queue listener
        log_dir: Directory for rotated log files
    """
    global _queue_listener

    cleanup_logging()

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    formatter = StructuredFormatter()

    console_handler = logging.StreamHandler()
    if debug:
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    else:
        console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_to_file:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.TimedRotatingFileHandler(
            filename=str(directory / "app.jsonl"),
            when="midnight",
            interval=1,
            backupCount=30,
            encoding="utf-8",
            utc=True,
        )
        file_handler.setFormatter(formatter)

        log_queue: queue.Queue = queue.Queue(-1)
        root_logger.addHandler(logging.handlers.QueueHandler(log_queue))
        _queue_listener = logging.handlers.QueueListener(
            log_queue, file_handler, respect_handler_level=True
        )
        _queue_listener.start()

    logging.getLogger(__name__).info(
        "Logging system initialized",
        extra={"extra_data": {"log_level": log_level, "debug": debug, "log_to_file": log_to_file}},
    )


def cleanup_logging() -> None:
    """
    Clean up logging system on shutdown.
    """
    global _queue_listener

    if _queue_listener is not None:
        _queue_listener.stop()
        _queue_listener = None


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
