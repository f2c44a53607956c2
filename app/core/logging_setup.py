"""
Logging configuration shared by the UI and services.

Modules log through logging.getLogger(__name__); the entry point calls
setup_logging() once so remote-call failures end up on stdout.
"""

from __future__ import annotations
import logging
import os
import sys
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    name: Optional[str] = None,
    level: Optional[str] = None,
    format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Configure the root logger (once) and return the named logger.
    Level defaults to the LOG_LEVEL env var, then INFO.
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    logging.basicConfig(level=log_level, format=format, stream=sys.stdout)

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    return logger
