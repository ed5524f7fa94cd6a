"""Centralized logging utilities."""

import logging
import sys
from typing import Optional
from pathlib import Path

LOG_FORMAT = '[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s'

# Client libraries that log every request at INFO/DEBUG
CHATTY_LOGGERS = ('boto3', 'botocore', 's3transfer', 'urllib3')


def setup_logger(
    name: str = 'clusterjob',
    level: int = logging.INFO,
    log_file: Optional[Path] = None
) -> logging.Logger:
    """
    Configure the package logger for a workflow run.

    Console output goes to stdout. With ``log_file`` the same records are
    also appended to that file, so a long wait on the cluster leaves a
    trail after the terminal is gone. AWS and HTTP client loggers stay at
    WARNING unless ``level`` is DEBUG.

    Args:
        name: Logger name ('clusterjob' configures the whole package)
        level: Logging level
        log_file: Optional file to append logs to

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for library in CHATTY_LOGGERS:
        logging.getLogger(library).setLevel(library_level)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Loggers under the ``clusterjob`` namespace propagate to the package
    logger configured by ``setup_logger``; other names get their own
    console handler on first use.
    """
    logger = logging.getLogger(name)
    if name == 'clusterjob' or name.startswith('clusterjob.'):
        return logger
    if not logger.handlers:
        return setup_logger(name)
    return logger
