"""
chat_logger.py - Centralized logging configuration for the shopping assistant

Sets up Python logging with:
- File handler: logs/YYYY-MM-DD/chat.txt (daily folder), optional via LOG_TO_FILE
- Console handler: stdout
- Configurable log level via LOG_LEVEL env variable
- Sanitization of user text and credentials before they reach a log line
"""

import re
import logging
from datetime import datetime
from pathlib import Path

from app_config import LOG_LEVEL, LOG_TO_FILE

LOGGER_NAME = "shopping_assistant"


def sanitize_log_string(text: str) -> str:
    """
    Sanitize string for logging to prevent log injection attacks.
    Removes newlines, carriage returns, and other control characters.

    Args:
        text: String to sanitize

    Returns:
        Sanitized string safe for logging
    """
    if not text:
        return text
    text = text.replace('\n', ' ').replace('\r', ' ').replace('\t', ' ')
    text = ''.join(char if ord(char) >= 32 else ' ' for char in text)
    return text


def truncate_for_log(text: str, limit: int = 100) -> str:
    """Sanitize and shorten user text for a single log line."""
    text = sanitize_log_string(text or "")
    return text[:limit] + "..." if len(text) > limit else text


class MillisecondFormatter(logging.Formatter):
    """Formatter that appends milliseconds to datefmt timestamps."""

    def formatTime(self, record, datefmt=None):
        if datefmt:
            s = datetime.fromtimestamp(record.created).strftime(datefmt)
            ms = int((record.created - int(record.created)) * 1000)
            return f"{s}.{ms:03d}"
        return super().formatTime(record, datefmt)


def setup_logger(
    name: str = LOGGER_NAME,
    log_level: str = "INFO",
    log_to_file: bool = True,
) -> logging.Logger:
    """
    Configure and return a logger with file and console handlers.

    Args:
        name: Logger name
        log_level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Also write to logs/YYYY-MM-DD/chat.txt

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Prevent duplicate handlers if setup is called multiple times
    if logger.handlers:
        return logger

    formatter = MillisecondFormatter(
        fmt="[%(asctime)s] [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # ─── File Handler ───
    if log_to_file:
        today = datetime.now().strftime("%Y-%m-%d")
        log_dir = Path("logs") / today
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_dir / "chat.txt", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)  # Log everything to file
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # ─── Console Handler ───
    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


def sanitize_url(url: str) -> str:
    """
    Remove sensitive query parameters from URLs.
    Strips consumer_key and consumer_secret.
    """
    if not url:
        return url
    url = re.sub(r'consumer_key=[^&]*', 'consumer_key=***', url)
    url = re.sub(r'consumer_secret=[^&]*', 'consumer_secret=***', url)
    return url


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """
    Get the configured logger instance.
    If logger doesn't exist, create it with settings from app_config.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        setup_logger(name, LOG_LEVEL, LOG_TO_FILE)
    return logger
