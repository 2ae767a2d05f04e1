"""Centralized logging configuration for DoorLock."""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

from .config import DEFAULT_CONFIG, DoorLockConfig


def configure_logging(
    config: DoorLockConfig | None = None,
    *,
    force_console: bool | None = None,
) -> logging.Logger:
    """Configure the ``doorlock`` logger with a rotating file and optional console."""
    config = config or DEFAULT_CONFIG
    config.ensure_directories()
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
    )

    logger = logging.getLogger("doorlock")
    logger.setLevel(logging.INFO)
    if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        handler = RotatingFileHandler(
            config.log_location, maxBytes=1_000_000, backupCount=3
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    console_pref = force_console
    if console_pref is None:
        console_pref = os.environ.get("DOORLOCK_CONSOLE_LOG", "0") not in {"0", ""}
    if console_pref and not any(isinstance(h, logging.StreamHandler) and not isinstance(h, RotatingFileHandler) for h in logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
