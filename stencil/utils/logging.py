"""
Logging configuration and utilities.

This module provides centralized logging configuration for the
Stencil package with appropriate formatting and levels.
"""

import logging
import os
from typing import Optional

from .constants import DEFAULT_LOG_LEVEL, LOGGER_NAMESPACE


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Configure logging for the Stencil package.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output
    """
    if level is None:
        level = os.environ.get("STENCIL_LOG_LEVEL", DEFAULT_LOG_LEVEL)

    log_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(log_level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    if name == LOGGER_NAMESPACE or name.startswith(LOGGER_NAMESPACE + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


class StencilLogger:
    """
    Event logging for the compile and render pipeline.

    Wraps a module logger with helpers for the events the cache
    manager reports: compilation, cache hits and misses, publishing
    and loading of artifacts.
    """

    def __init__(self, name: str):
        """
        Initialize logger for specific component.

        Args:
            name: Component name for logging context
        """
        self.logger = get_logger(name)

    def log_compile_start(self, template: str, source_path: str) -> None:
        """
        Log beginning of a template compilation.

        Args:
            template: Template identity ("Owner#name")
            source_path: Path of the source being compiled
        """
        self.logger.info(f"Compiling template {template} from {source_path}")

    def log_compile_done(self, template: str, elapsed: float, size: int) -> None:
        """
        Log a finished compilation.

        Args:
            template: Template identity
            elapsed: Seconds spent scanning and generating
            size: Length of the generated artifact text
        """
        self.logger.info(f"Compiled template {template} in {elapsed:.3f}s ({size} chars)")

    def log_cache_hit(self, template: str) -> None:
        """Log a fresh artifact found on disk."""
        self.logger.debug(f"Cache hit for template {template}")

    def log_cache_miss(self, template: str, reason: str) -> None:
        """
        Log a stale or missing artifact.

        Args:
            template: Template identity
            reason: Why the artifact is considered stale
        """
        self.logger.debug(f"Cache miss for template {template}: {reason}")

    def log_race_lost(self, template: str) -> None:
        """Log that another caller published while we waited on the lock."""
        self.logger.debug(f"Template {template} was recompiled by another caller")

    def log_publish(self, template: str, artifact_path: str) -> None:
        """Log an artifact being atomically published."""
        self.logger.debug(f"Published template {template} to {artifact_path}")

    def log_load(self, template: str, artifact_path: str) -> None:
        """Log a render procedure being (re)loaded into the process."""
        self.logger.debug(f"Loaded template {template} from {artifact_path}")


# Initialize logging on module import
setup_logging()
