"""Logging configuration with file and console output.

Three rotating files are written under the log directory:
- app.log: everything at the configured level
- error.log: errors only
- ai.log: completion gateway and AI service activity
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_BACKUPS = 5

# Loggers whose records also go to ai.log
AI_LOGGERS = ("app.llm", "app.services")

NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "asyncio", "watchfiles", "hpack")


def _rotating_handler(
    path: Path, level: int, formatter: logging.Formatter
) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """
    Configure application logging with both console and file output.

    Safe to call more than once; handlers from a previous call are replaced.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files (defaults to $LOG_DIR or ./logs)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    log_path = Path(log_dir or os.environ.get("LOG_DIR", "logs"))
    log_path.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    root_logger.addHandler(_rotating_handler(log_path / "app.log", log_level, formatter))
    root_logger.addHandler(
        _rotating_handler(log_path / "error.log", logging.ERROR, formatter)
    )

    ai_handler = _rotating_handler(log_path / "ai.log", log_level, formatter)
    for name in AI_LOGGERS:
        ai_logger = logging.getLogger(name)
        for handler in list(ai_logger.handlers):
            if isinstance(handler, RotatingFileHandler):
                ai_logger.removeHandler(handler)
                handler.close()
        ai_logger.addHandler(ai_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(f"Logging initialized - Level: {level}, Log directory: {log_path.absolute()}")
