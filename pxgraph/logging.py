"""Logging setup shared by every PixelGraph module.

All package loggers hang off a single ``pxgraph`` root logger that owns the
only handler. Modules call ``get_logger(__name__)`` and never attach handlers
themselves, so records reach pytest's ``caplog`` through normal propagation.

The initial level can be set with the ``PXGRAPH_LOG_LEVEL`` environment
variable (``DEBUG``, ``INFO``, ``WARNING``, ...); the CLI overrides it with
``--verbose``/``--quiet``.
"""

import logging
import os
import sys
from typing import Optional, Union

ROOT_LOGGER_NAME = "pxgraph"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LEVEL_ENV_VAR = "PXGRAPH_LOG_LEVEL"

_configured = False


def parse_log_level(level: Union[int, str, None], default: int = logging.INFO) -> int:
    """Turn a level name or number into a ``logging`` level.

    Unknown names fall back to ``default`` instead of raising, since the value
    usually comes from the environment.
    """
    if level is None:
        return default
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else default


def setup_root_logger(
    level: Optional[int] = None,
    format_string: Optional[str] = None,
    handler: Optional[logging.Handler] = None,
) -> None:
    """Attach the package handler to the ``pxgraph`` logger once.

    Args:
        level: Explicit level; defaults to ``$PXGRAPH_LOG_LEVEL`` or INFO.
        format_string: Record format; defaults to ``LOG_FORMAT``.
        handler: Handler to install; defaults to a stdout stream handler.
    """
    global _configured

    if _configured:
        return

    if level is None:
        level = parse_log_level(os.environ.get(LEVEL_ENV_VAR))

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    root.handlers.clear()

    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(format_string or LOG_FORMAT))
    root.addHandler(handler)
    root.propagate = True

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a child logger of ``pxgraph`` that inherits its level.

    Args:
        name: Usually ``__name__`` of the calling module.
    """
    setup_root_logger()
    logger = logging.getLogger(name)
    logger.setLevel(logging.NOTSET)
    return logger


def set_global_log_level(level: Union[int, str]) -> None:
    """Change the level of the package logger and its handlers."""
    setup_root_logger()
    numeric = parse_log_level(level)
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(numeric)
    for handler in root.handlers:
        handler.setLevel(numeric)


def enable_debug_logging() -> None:
    set_global_log_level(logging.DEBUG)


def disable_debug_logging() -> None:
    set_global_log_level(logging.INFO)


def reset_logging() -> None:
    """Drop handlers and forget configuration (used by tests)."""
    global _configured
    _configured = False

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.handlers.clear()
    root.setLevel(logging.NOTSET)


setup_root_logger()
