"""Logging configuration with a console handler and an optional rotating file handler"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


def setup_logging(
    level: int = logging.INFO,
    log_file: str | None = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Configure the root logger.

    - Console: brief ``LEVEL: message`` lines on stderr at ``level``
    - File (optional): detailed lines with timestamps at DEBUG, rotated at
      ``max_bytes`` keeping ``backup_count`` old files

    Args:
        level: Console logging level.
        log_file: Path of the log file, or None for console only.
        max_bytes: Rotate the file when it reaches this size.
        backup_count: Number of rotated files to keep.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if log_file else level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)
