"""Logging configuration for knows."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional
import time
from functools import wraps

# Log directory
LOG_DIR = Path.home() / ".knows" / "logs"

# Log file with timestamp
LOG_FILE = LOG_DIR / f"knows_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

# Create formatters
DETAILED_FORMAT = logging.Formatter(
    '%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)-25s | %(funcName)-20s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

SIMPLE_FORMAT = logging.Formatter(
    '%(asctime)s | %(levelname)-8s | %(message)s',
    datefmt='%H:%M:%S'
)

# Operations slower than this are logged as warnings
SLOW_THRESHOLD_MS = 100


def setup_logging(level: int = logging.DEBUG,
                  console_level: int = logging.WARNING,
                  log_to_file: bool = True) -> logging.Logger:
    """
    Setup application-wide logging.

    Args:
        level: Level of the application logger (default DEBUG for diagnostics)
        console_level: Level for the stderr handler. Stdout is reserved for
                       command output, so the console stays quiet by default.
        log_to_file: Also write a detailed log under ~/.knows/logs.

    Returns:
        Root logger for the application
    """
    logger = logging.getLogger('knows')
    logger.setLevel(level)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    if log_to_file:
        try:
            LOG_DIR.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(DETAILED_FORMAT)
            logger.addHandler(file_handler)
        except OSError as e:
            sys.stderr.write(f"knows: file logging disabled ({e})\n")

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(SIMPLE_FORMAT)
    logger.addHandler(console_handler)

    logger.debug(f"Logging initialized. Log file: {LOG_FILE}")

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific module."""
    return logging.getLogger(f'knows.{name}')


def timed(func):
    """Decorator to log function execution time."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger('perf')
        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
            elapsed = (time.perf_counter() - start) * 1000  # ms
            if elapsed > SLOW_THRESHOLD_MS:
                logger.warning(f"SLOW: {func.__qualname__} took {elapsed:.2f}ms")
            else:
                logger.debug(f"{func.__qualname__} took {elapsed:.2f}ms")
            return result
        except Exception as e:
            elapsed = (time.perf_counter() - start) * 1000
            logger.error(f"{func.__qualname__} failed after {elapsed:.2f}ms: {e}")
            raise
    return wrapper


class PerfTimer:
    """Context manager for timing code blocks."""

    def __init__(self, name: str, logger: Optional[logging.Logger] = None):
        self.name = name
        self.logger = logger or get_logger('perf')
        self.start: float = 0
        self.elapsed: float = 0

    def __enter__(self):
        self.start = time.perf_counter()
        self.logger.debug(f"Starting: {self.name}")
        return self

    def __exit__(self, *args):
        self.elapsed = (time.perf_counter() - self.start) * 1000
        if self.elapsed > SLOW_THRESHOLD_MS:
            self.logger.warning(f"SLOW: {self.name} took {self.elapsed:.2f}ms")
        else:
            self.logger.debug(f"Completed: {self.name} in {self.elapsed:.2f}ms")
