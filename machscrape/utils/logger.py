"""Logging setup for machscrape.

Loggers are configured once per name: a colored stderr handler and,
when a log directory is given (or MACHSCRAPE_LOG_DIR is set), a
size-rotated file handler. Loggers do not propagate to the root logger,
so embedding applications keep control of their own handlers.
"""

import logging
import os
import sys
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, Optional

import colorlog


CONSOLE_FORMAT = "%(log_color)s%(levelname)-8s%(reset)s %(cyan)s%(name)s%(reset)s | %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_COLORS = {
    'DEBUG': 'white',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'bold_red',
}

LOG_FILE_NAME = "machscrape.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def _resolve_level(level: Optional[str]) -> int:
    """Map a level name to its numeric value; falls back to LOG_LEVEL, then INFO."""
    name = (level or os.environ.get('LOG_LEVEL') or 'INFO').upper()
    value = getattr(logging, name, None)
    return value if isinstance(value, int) else logging.INFO


def _console_handler(level: int) -> logging.Handler:
    handler = colorlog.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(colorlog.ColoredFormatter(CONSOLE_FORMAT, log_colors=LOG_COLORS))
    return handler


def _file_handler(level: int, log_dir: Path) -> logging.Handler:
    """Rotating handler writing to <log_dir>/machscrape.log."""
    log_dir.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding='utf-8',
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def get_logger(name: str, log_dir: Optional[Path] = None, level: Optional[str] = None) -> logging.Logger:
    """Return the named logger, attaching handlers on first use.

    Args:
        name: Logger name, usually the calling module's __name__
        log_dir: Directory for the rotating log file. Defaults to
                 MACHSCRAPE_LOG_DIR; without either, only the console is used.
        level: Level name. Defaults to the LOG_LEVEL env var, then INFO.

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    numeric_level = _resolve_level(level)
    logger.setLevel(numeric_level)
    logger.addHandler(_console_handler(numeric_level))

    if log_dir is None and os.environ.get('MACHSCRAPE_LOG_DIR'):
        log_dir = Path(os.environ['MACHSCRAPE_LOG_DIR'])
    if log_dir is not None:
        logger.addHandler(_file_handler(numeric_level, Path(log_dir)))

    logger.propagate = False
    return logger


@contextmanager
def log_execution_time(logger: logging.Logger, operation: str) -> Iterator[None]:
    """Log how long the wrapped block took, whether or not it raised.

    Usage:
        with log_execution_time(logger, "scrape of https://..."):
            await pipeline.run(url)
    """
    logger.debug(f"Starting {operation}")
    started = time.perf_counter()
    failed = False

    try:
        yield
    except BaseException:
        failed = True
        raise
    finally:
        elapsed = time.perf_counter() - started
        outcome = "aborted" if failed else "finished"
        logger.debug(f"{operation} {outcome} after {elapsed:.3f}s")


def set_log_level(logger: logging.Logger, level: str) -> None:
    """Apply a new level to the logger and every handler it owns."""
    numeric_level = _resolve_level(level)

    logger.setLevel(numeric_level)
    for handler in logger.handlers:
        handler.setLevel(numeric_level)

    logger.debug(f"Log level set to {logging.getLevelName(numeric_level)}")


def log_exception(logger: logging.Logger, operation: str, exception: BaseException) -> None:
    """Log a failed operation with its traceback."""
    logger.error(f"{operation} failed: {type(exception).__name__}: {exception}", exc_info=exception)
