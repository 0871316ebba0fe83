"""
Centralized logging configuration for FlashLyrics
Handles all logging setup and provides convenience functions
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

ROOT_DIR = Path(__file__).parent

LOGS_DIR = Path(os.getenv("FLASHLYRICS_LOGS_DIR", str(ROOT_DIR / "logs")))

# Define log formats
CONSOLE_FORMAT = '(%(filename)s:%(lineno)d) %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'

# Track if logging has been initialized
_logging_initialized = False


def setup_logging(
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    console: bool = True,
    log_file: Optional[str] = None,
    log_providers: bool = True,
    max_bytes: int = 1 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Set up logging configuration with separate console and file handlers

    Args:
        console_level: Logging level for console output (default: INFO)
        file_level: Logging level for file output (default: DEBUG)
        console: Whether to enable console logging (default: True)
        log_file: Optional custom log file name
        log_providers: Whether to enable provider logging (default: True)
        max_bytes: Rotate the log file once it reaches this size
        backup_count: Number of rotated files to keep
    """
    global _logging_initialized
    if _logging_initialized:
        return

    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    log_path = LOGS_DIR / (log_file or "flashlyrics.log")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all levels
    root_logger.handlers = []

    # Console handler (simpler format). Stdout is reserved for command output.
    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, console_level.upper()))
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        root_logger.addHandler(console_handler)

    # File handler (detailed format)
    file_handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    file_handler.setLevel(getattr(logging, file_level.upper()))
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    root_logger.addHandler(file_handler)

    if log_providers:
        logging.getLogger('providers').setLevel(logging.DEBUG)
    else:
        logging.getLogger('providers').setLevel(logging.WARNING)

    # Silence transport chatter
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)

    _logging_initialized = True

    root_logger.info(f"Logging initialized - Console: {console_level}, File: {file_level}")
    root_logger.debug(f"Log file: {log_path}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name"""
    # setup_logging() must be called explicitly by the entry point.
    return logging.getLogger(name)
