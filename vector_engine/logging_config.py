"""
Logging Configuration Module

Provides consistent logging setup across the engine's packages. Modules
log through ``logging.getLogger(__name__)``; setup_logging attaches the
handlers to every package logger so their records share one format.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

# Top-level packages whose loggers are configured together.
PACKAGE_LOGGERS = ("vector_engine", "vector_store", "ann_index", "ingestion", "chunking")


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Configure logging for the vector engine.

    Args:
        level: Logging level (default: INFO)
        log_file: Optional path to log file
        format_string: Optional custom format string

    Returns:
        Configured "vector_engine" logger
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    formatter = logging.Formatter(format_string, datefmt="%Y-%m-%d %H:%M:%S")

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    for name in PACKAGE_LOGGERS:
        package_logger = logging.getLogger(name)
        package_logger.setLevel(level)
        # Remove existing handlers to avoid duplicates
        package_logger.handlers.clear()
        for handler in handlers:
            package_logger.addHandler(handler)

    return logging.getLogger("vector_engine")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger below the "vector_engine" logger.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance
    """
    if name == "vector_engine" or name.startswith("vector_engine."):
        return logging.getLogger(name)
    return logging.getLogger(f"vector_engine.{name}")
