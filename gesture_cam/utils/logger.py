"""Centralized logging setup for the webcam gesture classifier.

This module provides a dual-handler logger configuration:
- Console handler (stderr) at INFO level with a concise format
- File handler at DEBUG level with a detailed timestamped log

Prediction lines are not log records; they are printed to stdout by the
scheduler so they can be piped independently of diagnostics.

Log files are created under the configured `log_dir` and named using the
pattern: `{logger_name}_{YYYYMMDD_HHMMSS}.log`.

Usage:
    from gesture_cam.utils.logger import setup_logger
    logger = setup_logger("gesture_cam", log_dir="logs")
    logger.info("Starting...")
"""

from datetime import datetime
from pathlib import Path
import logging
import sys
from typing import Optional

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    name: str,
    log_dir: Optional[str] = "logs",
    console_level: int = logging.INFO,
) -> logging.Logger:
    """Configure and return a logger with console and file handlers.

    Configuring the package logger (``"gesture_cam"``) routes every module
    logger obtained with ``logging.getLogger(__name__)`` through the same
    handlers.

    Args:
        name: Name for the logger.
        log_dir: Directory where log files will be written. ``None`` disables
            the file handler.
        console_level: Level of the stderr handler.

    Returns:
        Configured ``logging.Logger`` instance.

    Raises:
        OSError: If the log directory cannot be created.
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)

    # Avoid adding multiple handlers if the logger is configured already
    if not logger.handlers:
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(console_level)
        ch.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(ch)

        if log_dir is not None:
            log_path = Path(log_dir)
            log_path.mkdir(parents=True, exist_ok=True)  # Let OSError propagate if it fails

            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            fh = logging.FileHandler(str(log_path / f"{name}_{timestamp}.log"))
            fh.setLevel(logging.DEBUG)
            fh.setFormatter(logging.Formatter(FILE_FORMAT))
            logger.addHandler(fh)

    # Prevent log records from propagating to the root logger (avoids duplicate output)
    logger.propagate = False

    return logger
