"""Logging setup for the command line front end."""

from __future__ import annotations

import logging
from typing import IO

__all__ = ["LOG_FORMAT", "configure_logging"]

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(
    level: int | str = logging.INFO,
    stream: IO[str] | None = None,
) -> None:
    """Send records at or above level to stream (default stderr).

    Replaces any handlers already installed on the root logger, so calling
    it twice does not duplicate output.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)

    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root_logger.addHandler(handler)
