"""Process-wide logging setup for the API and scripts."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s level=%(levelname)s logger=%(name)s %(message)s"

_HANDLER_NAME = "prodtrack"


def configure_logging(level: str | int | None = None) -> logging.Logger:
    """Install a single stream handler on the ``prodtrack`` logger.

    Calling it again only updates the level.
    """

    resolved = level or os.getenv("PRODTRACK_LOG_LEVEL", "INFO")
    if isinstance(resolved, str):
        resolved = logging.getLevelName(resolved.upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO

    root = logging.getLogger("prodtrack")
    root.setLevel(resolved)
    if not any(handler.get_name() == _HANDLER_NAME for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    return root
