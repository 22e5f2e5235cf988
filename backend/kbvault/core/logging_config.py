"""
Centralized logging configuration for the kbvault backend.

Every record carries the id of the HTTP request that produced it. Pipeline
runs are scheduled from the submitting request, so their log lines keep
that request's id after the response has been sent.
"""
import logging
import os
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Optional

DEFAULT_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# File logging is opt-out so test runs and containers can keep stdout only
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "true").lower() == "true"

LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

QUIET_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "botocore", "urllib3")


class RequestContextFilter(logging.Filter):
    """Stamps records with the current request id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def setup_logging(
    log_level: str = DEFAULT_LOG_LEVEL,
    log_file: Optional[str] = None,
    enable_file_logging: bool = LOG_TO_FILE
) -> None:
    """
    Configure root logging for the service.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path (defaults to logs/app.log)
        enable_file_logging: Also write DEBUG-level records to the log file
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    context_filter = RequestContextFilter()

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.addFilter(context_filter)
    console_handler.setFormatter(logging.Formatter(
        fmt='%(asctime)s - %(levelname)s - [%(request_id)s] %(name)s - %(message)s',
        datefmt='%H:%M:%S'
    ))
    root_logger.addHandler(console_handler)

    if enable_file_logging:
        log_path = LOG_DIR / "app.log" if log_file is None else Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.addFilter(context_filter)
        file_handler.setFormatter(logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(filename)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        root_logger.addHandler(file_handler)

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).setLevel(logging.INFO)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger (pass __name__)."""
    return logging.getLogger(name)
