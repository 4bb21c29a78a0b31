from __future__ import annotations

import logging


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [PID:%(process)d] - %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging once, early in process startup."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    # aiosqlite logs every statement at DEBUG
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
