from __future__ import annotations

import asyncio
import logging
import os

from taskdesk.bootstrap import build_container
from taskdesk.config import load_settings
from taskdesk.logging_setup import setup_logging


async def main() -> None:
    """Prepare the database: apply migrations and seed the first admin."""
    settings = load_settings()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    os.makedirs(os.path.dirname(settings.db_path) or ".", exist_ok=True)
    container = build_container(settings)
    try:
        await container.init()
    except Exception:
        logger.error("Initialisation failed db=%s", settings.db_path, exc_info=True)
        raise
    logger.info("Database ready at %s (reporting tz %s)", settings.db_path, settings.timezone)


if __name__ == "__main__":
    asyncio.run(main())
