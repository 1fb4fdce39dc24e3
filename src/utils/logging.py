"""Stdout loggers for the tutor service.

The level comes from ``LOG_LEVEL`` (a name such as ``DEBUG``) unless the
caller passes one; unknown names fall back to INFO.
"""

import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s  [%(levelname)s]  %(name)s — %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(level: Optional[int] = None) -> int:
    if level is not None:
        return level
    name = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """Logger for *name* writing to stdout; the handler is attached only once."""
    log = logging.getLogger(name)

    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        log.addHandler(handler)
        log.propagate = False

    log.setLevel(resolve_level(level))
    return log
