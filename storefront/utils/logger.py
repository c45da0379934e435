"""
Logging for the storefront.

Everything logs under the ``storefront`` logger to stdout. The level comes
from LOG_LEVEL and can be changed at runtime with configure_logging().
Session-scoped code uses get_session_logger() so each line carries the
session id.
"""
import logging
import os
import sys
from typing import Any, MutableMapping, Optional, Tuple

ROOT_LOGGER_NAME = "storefront"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(ROOT_LOGGER_NAME)


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Attach the stdout handler (once) and set the level.

    Args:
        level: Level name; falls back to LOG_LEVEL, then INFO

    Returns:
        The ``storefront`` logger
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
    for handler in logger.handlers:
        handler.setLevel(level)

    # uvicorn configures the root logger too; don't print twice
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for a module, e.g. "cart.ledger" -> "storefront.cart.ledger"."""
    if name:
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return logger


class SessionLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every message with the shopper's session id."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        return f"[session {self.extra['session_id']}] {msg}", kwargs


def get_session_logger(name: str, session_id: str) -> SessionLoggerAdapter:
    return SessionLoggerAdapter(get_logger(name), {"session_id": session_id})


configure_logging()
