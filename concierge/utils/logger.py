"""
Logging setup for the concierge package.

Every module logs through a child of the ``concierge`` logger. Level comes from
the LOG_LEVEL environment variable and can be changed at runtime with
``set_level`` (the demo script quiets it to WARNING).
"""
import logging
import os
import sys

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger("concierge")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    _handler = logging.StreamHandler(sys.stdout)
    _handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(_handler)

# Handlers live on the package logger only
logger.propagate = False


def get_logger(name: str = None) -> logging.Logger:
    """
    Get the package logger or one of its children.

    Args:
        name: Dotted suffix, e.g. "intent.engine" -> "concierge.intent.engine"
    """
    if name:
        return logger.getChild(name)
    return logger


def set_level(level: str) -> None:
    """Change the level of the package logger (children inherit it)."""
    logger.setLevel(level.upper())
