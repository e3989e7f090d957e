"""Logging configuration for fleetview."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.logging import RichHandler


def setup_logging(
    verbose: bool = False,
    log_file: str | None = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    log_level: str = "INFO",
) -> logging.Logger:
    """Configure the ``fleetview`` logger.

    Args:
        verbose: If True, log at DEBUG with timestamps and source paths,
                 overriding ``log_level``.
        log_file: Optional path for a rotating file log (always DEBUG).
        max_bytes: Maximum size of the log file before rotation
        backup_count: Number of rotated files to keep
        log_level: Console level name (e.g. "WARNING"); unknown names fall back to INFO

    Returns:
        The configured ``fleetview`` logger
    """
    # Root logger - suppress third-party noise by default
    logging.getLogger().setLevel(logging.WARNING)

    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), None)
        if not isinstance(level, int):
            level = logging.INFO
    app_logger = logging.getLogger("fleetview")
    app_logger.setLevel(level)

    # Replace handlers from a previous call so repeated setup does not duplicate output
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        show_time=verbose,
        show_path=verbose,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
    )
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    app_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
            app_logger.addHandler(file_handler)
            # File gets everything even when the console is at INFO
            app_logger.setLevel(logging.DEBUG)
        except OSError as e:
            app_logger.warning(f"Could not create log file {log_file}: {e}")

    app_logger.propagate = False  # Don't propagate to root logger
    return app_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
