"""Logging setup: one ``schemair`` logger tree with console and optional file output."""

import logging
import sys
from pathlib import Path
from typing import List, Optional
from .settings import get_settings

ROOT_LOGGER = "schemair"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
) -> None:
    """
    (Re)configure the ``schemair`` logger. Existing handlers are replaced.

    Args:
        level: Level name (default: settings.log_level)
        log_file: Also write to this file (default: settings.log_file)
        format_string: Record format (default: DEFAULT_FORMAT)
    """
    settings = get_settings()
    numeric_level = getattr(logging, (level or settings.log_level).upper())
    log_file_path = log_file or settings.log_file
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file_path:
        handlers.append(logging.FileHandler(log_file_path, encoding="utf-8"))

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(numeric_level)
    logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    # Records stay inside the schemair tree
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``schemair`` tree; configures logging on first use."""
    if not logging.getLogger(ROOT_LOGGER).handlers:
        setup_logging()
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
