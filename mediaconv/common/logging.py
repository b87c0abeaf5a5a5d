# mediaconv/common/logging.py
from __future__ import annotations

import logging


def get_logger(name: str = "mediaconv", level: int | str | None = None) -> logging.Logger:
    """
    Return a package logger. If the host application configured no handlers,
    we add a basicConfig once so pipeline stage lines are visible.
    Level defaults to settings.log_level.
    """
    if level is None:
        from mediaconv.common.settings import get_settings
        level = get_settings().log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(name)
    if not logging.getLogger().handlers and not logger.handlers:
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logger.setLevel(level)
    return logger
