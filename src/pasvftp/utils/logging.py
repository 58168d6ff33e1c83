"""Logging configuration for pasvftp.

Every control command is traced at DEBUG level, so the formatter
scrubs credentials (PASS/ACCT arguments, password fields, user:pass@
URLs) from each record before it reaches stderr or the log file.
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

REDACTED = "[REDACTED]"

REDACT_PATTERNS = [
    (re.compile(r'(\b(?:PASS|ACCT) )\S+', re.IGNORECASE), r'\1' + REDACTED),
    (re.compile(r'(passw(?:or)?d["\s:=]+)[^\s,}\]]+', re.IGNORECASE), r'\1' + REDACTED),
    (re.compile(r'(ftps?://)[^:/@\s]+:[^@\s]+@'), r'\1' + REDACTED + '@'),
]


def redact(message: str) -> str:
    """Replace credentials in a log message with [REDACTED]."""
    for pattern, replacement in REDACT_PATTERNS:
        message = pattern.sub(replacement, message)
    return message


class CredentialRedactingFormatter(logging.Formatter):
    """Formatter that redacts credentials from log messages."""

    def format(self, record: logging.LogRecord) -> str:
        return redact(super().format(record))


def _add_handler(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(CredentialRedactingFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    console: bool = True
) -> logging.Logger:
    """
    Configure the "pasvftp" logger.

    Console output goes to stderr; stdout is reserved for data
    written by ``pasvftp get REMOTE -``.

    Args:
        level: Logging level (default INFO)
        log_file: Optional file path for log output
        console: Whether to log to stderr (default True)

    Returns:
        The configured package logger
    """
    logger = logging.getLogger("pasvftp")
    logger.setLevel(level)
    logger.handlers.clear()

    if console:
        _add_handler(logger, logging.StreamHandler(sys.stderr), level)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        _add_handler(logger, logging.FileHandler(log_file, encoding="utf-8"), level)

    return logger


def get_logger(name: str = "pasvftp") -> logging.Logger:
    """Get a logger under the pasvftp hierarchy."""
    return logging.getLogger(name)
