"""Logging helpers."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    log_dir: str = "logs",
    level: int = logging.INFO,
    console: bool = False,
) -> tuple[logging.Logger, str]:
    """Attach the rotating ``vconlens.log`` handler, plus stderr when asked.

    Safe to call more than once: each handler kind is added at most once,
    and the level is always updated.
    """
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, "vconlens.log")

    logger = logging.getLogger("vconlens")
    logger.setLevel(level)
    fmt = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        handler = RotatingFileHandler(
            log_path, maxBytes=2_000_000, backupCount=3, encoding="utf-8"
        )
        handler.setFormatter(fmt)
        logger.addHandler(handler)

    if console and not any(
        type(h) is logging.StreamHandler for h in logger.handlers
    ):
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(fmt)
        logger.addHandler(stream)

    return logger, log_path
