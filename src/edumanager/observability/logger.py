"""
Logger setup for the ``edumanager`` logger hierarchy.

Modules call ``get_logger(__name__)`` and receive a plain stdlib logger that
propagates to the package logger configured by ``setup_logging``.
"""

import logging
from typing import Optional

from edumanager.settings import get_settings

from .formatters import get_console_formatter

ROOT_LOGGER_NAME = "edumanager"


def setup_logging(
    level: Optional[str] = None, structured: Optional[bool] = None
) -> logging.Logger:
    """
    Configure the package logger once; later calls only adjust the level.

    Parameters
    ----------
    level : str, optional
        Log level name, defaults to ``Settings.LOG_LEVEL``
    structured : bool, optional
        Emit JSON lines instead of the correlated text format, defaults to
        ``Settings.LOG_JSON``
    """
    settings = get_settings()
    level_name = (level or settings.LOG_LEVEL).upper()
    use_json = settings.LOG_JSON if structured is None else structured

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    # Avoid duplicate console handlers
    if not getattr(logger, "_edumanager_configured", False):
        handler = logging.StreamHandler()
        handler.setFormatter(get_console_formatter(structured=use_json))
        logger.addHandler(handler)
        logger.propagate = False
        setattr(logger, "_edumanager_configured", True)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(ROOT_LOGGER_NAME).getChild(name)
