from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

from core.paths import get_logs_dir


def setup_logging(level: int = logging.INFO, console_level: int = logging.WARNING) -> logging.Logger:
    logs_dir = get_logs_dir()
    log_file = logs_dir / "app.log"

    logger = logging.getLogger("davoverlay")
    logger.setLevel(min(level, console_level))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = RotatingFileHandler(
        filename=log_file,
        maxBytes=1_000_000,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(console_level)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    # httpx logs every request at INFO
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

    return logger
