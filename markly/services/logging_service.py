"""
Logging service for Markly.

This module provides centralized logging configuration with console and file output.
Log files are stored in ~/.local/share/markly/logs/ by default.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union


# Default log directory following XDG Base Directory Specification
DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "markly" / "logs"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Level used when a configured level name is not recognised
DEFAULT_LOG_LEVEL = logging.INFO

# Module-level flag to track if logging has been set up
_logging_initialized = False


def setup_logging(
    log_level: Union[int, str] = DEFAULT_LOG_LEVEL,
    log_to_file: bool = True,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Configure the logging system for Markly.

    Args:
        log_level: The logging level, as a number (logging.DEBUG) or a
            level name from the config file ("DEBUG", "info").
        log_to_file: Whether to also log to a file.
        log_dir: Directory for log files. Defaults to ~/.local/share/markly/logs/

    This function should be called once at application startup.
    """
    global _logging_initialized

    if _logging_initialized:
        return

    if log_dir is None:
        log_dir = DEFAULT_LOG_DIR

    log_level = resolve_log_level(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    # Console handler - always enabled
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_to_file:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)

            log_filename = f"markly_{datetime.now().strftime('%Y%m%d')}.log"
            log_path = log_dir / log_filename

            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setLevel(log_level)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
            root_logger.addHandler(file_handler)

        except (OSError, PermissionError) as e:
            # If we can't create the log file, just log to console
            console_handler.setLevel(logging.WARNING)
            root_logger.warning(f"Could not create log file: {e}. Logging to console only.")

    _logging_initialized = True


def resolve_log_level(level: Union[int, str]) -> int:
    """
    Turn a level number or case-insensitive level name into a level number.

    Unknown names fall back to DEFAULT_LOG_LEVEL.
    """
    if isinstance(level, int):
        return level

    resolved = logging.getLevelName(str(level).strip().upper())
    if isinstance(resolved, int):
        return resolved
    return DEFAULT_LOG_LEVEL


def set_log_level(level: Union[int, str]) -> None:
    """
    Change the level of the root logger and its handlers after setup.

    The config file is read after logging starts, so its level is applied
    here rather than through setup_logging().
    """
    level = resolve_log_level(level)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers:
        handler.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: The name for the logger, typically __name__ of the calling module.

    Returns:
        A configured Logger instance.
    """
    return logging.getLogger(name)
