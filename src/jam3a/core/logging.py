"""Process-wide logging setup."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str) -> None:
    """Configure root logging once for API and CLI entrypoints."""

    resolved_level = logging.getLevelName(level.upper())
    if not isinstance(resolved_level, int):
        resolved_level = logging.INFO
    logging.basicConfig(level=resolved_level, format=LOG_FORMAT)
    logging.getLogger("jam3a").setLevel(resolved_level)
