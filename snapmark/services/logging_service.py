"""
Logging service for SnapMark.

Every SnapMark module only asks for a named logger through get_logger().
Configuring handlers is left to the embedding application, which calls
setup_logging() once at startup before constructing a ScreenshotMode:

    from snapmark.services.logging_service import setup_logging
    setup_logging(logging.DEBUG)

Until then, records propagate to whatever the host has configured on the
root logger. Log files go to ~/.local/share/snapmark/logs/ by default.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional


# Default log directory following XDG Base Directory Specification
DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "snapmark" / "logs"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Set by the first setup_logging() call
_logging_initialized = False


def setup_logging(
    log_level: int = logging.INFO,
    log_to_file: bool = True,
    log_dir: Optional[Path] = None,
) -> Optional[Path]:
    """
    Configure the root logger for a SnapMark session.

    Args:
        log_level: The logging level (e.g., logging.DEBUG, logging.INFO).
        log_to_file: Whether to also log to a dated file.
        log_dir: Directory for log files. Defaults to DEFAULT_LOG_DIR.

    Returns:
        The log file path, or None when logging to the console only or when
        logging was already configured.
    """
    global _logging_initialized

    if _logging_initialized:
        return None

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    root_logger.addHandler(console_handler)
    _logging_initialized = True

    if not log_to_file:
        return None

    log_path = (log_dir or DEFAULT_LOG_DIR) / f"snapmark_{datetime.now().strftime('%Y%m%d')}.log"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError as e:
        # Console only from here on
        console_handler.setLevel(logging.WARNING)
        root_logger.warning(f"Could not create log file: {e}. Logging to console only.")
        return None

    file_handler.setLevel(log_level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    root_logger.addHandler(file_handler)
    return log_path


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: The name for the logger, typically __name__ of the calling module.

    Returns:
        A Logger that propagates to the root logger.
    """
    return logging.getLogger(name)
