#!/usr/bin/env python3
"""
Logging setup for the futarchy quoter.

Library modules only create `logging.getLogger(__name__)` loggers; handlers
are attached here, by the CLI or by an embedding application.
"""

import logging
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER = "futarchy_quoter"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Logging level; DEBUG shows every tick crossed by a walk
        log_file: Also write to this file when given
        console_output: Whether to log to stderr

    Returns:
        The configured package logger
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging initialized at level %s", logging.getLevelName(level))
    return logger
