"""Centralized logging configuration for pagestore."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


def setup_logging(
    log_file_prefix: str = "pagestore",
    level: int = logging.INFO,
    log_dir: Path = Path("./logs"),
) -> logging.Logger:
    """
    Configure logging for the application.

    Sets up console (stderr) and file logging with consistent formatting.
    Uses rotating file handler to keep at most 4 previous log files.
    Only configures if not already configured to avoid duplicate handlers.

    Args:
        log_file_prefix: Prefix for the log file name (default: "pagestore")
        level: Level applied to the root logger and both handlers
        log_dir: Directory the log file is written to

    Returns:
        Logger instance for the calling module
    """
    root_logger = logging.getLogger()

    # Only configure if not already configured (avoid duplicate handlers)
    if root_logger.handlers:
        return logging.getLogger(__name__)

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{log_file_prefix}.log"

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # stdout is reserved for command output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    # 5 MB per file, 4 backups
    file_handler = RotatingFileHandler(
        log_file,
        mode="a",
        maxBytes=5 * 1024 * 1024,
        backupCount=4,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    return logging.getLogger(__name__)
