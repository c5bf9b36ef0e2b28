from __future__ import annotations

import logging
from pathlib import Path

LOGGER_NAME = "l2book"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unsupported log level {level!r}")
    return resolved


def setup_logger(log_file: str, level: int | str = logging.INFO) -> logging.Logger:
    """Book logger writing to ``log_file`` and the console.

    Core modules log through children of this logger (``l2book.orderbook``),
    so rejected update entries land in the same file as session events.
    Calling it again with another path moves the file output there.
    """
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(_resolve_level(level))
    logger.propagate = False
    formatter = logging.Formatter(LOG_FORMAT)

    target = str(path.resolve())
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            if handler.baseFilename == target:
                return logger
            logger.removeHandler(handler)
            handler.close()

    file_handler = logging.FileHandler(target, encoding="utf-8")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if not any(type(handler) is logging.StreamHandler for handler in logger.handlers):
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)
    return logger
