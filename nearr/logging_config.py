"""
Centralized logging configuration for the application.
"""

import logging
from typing import Optional

from rich.logging import RichHandler

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """
    Setup centralized logging configuration.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...)
    """
    global _configured
    log_level = getattr(logging, level.upper(), logging.INFO)

    if _configured:
        logging.getLogger().setLevel(log_level)
        return

    logging.basicConfig(
        level=log_level,
        format="%(name)s - %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=False, show_path=False)],
    )
    _configured = True


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Logger name (usually __name__)
        level: Optional level override for this logger

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    if level:
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger


def short_id(user_id: Optional[str]) -> str:
    """Truncate an identifier for log lines."""
    if not user_id:
        return "-"
    return f"{user_id[:8]}..."
