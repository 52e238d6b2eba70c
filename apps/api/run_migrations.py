#!/usr/bin/env python3
"""Database bootstrap: wait for the database, then run Alembic migrations.

- Always run `alembic upgrade head` on startup.
- If migrations fail, fail fast (don't start with an unknown schema).
"""

import logging
import os
import sys
import time

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def get_alembic_config(url: str = None):
    """Load Alembic config for programmatic migrations."""
    from alembic.config import Config

    here = os.path.dirname(os.path.abspath(__file__))
    cfg = Config(os.path.join(here, "alembic.ini"))
    if url:
        cfg.set_main_option("sqlalchemy.url", url)
    return cfg


def wait_for_db(max_attempts: int = 30, delay_s: float = 2.0) -> bool:
    from core.database import check_db_connection

    for attempt in range(1, max_attempts + 1):
        if check_db_connection():
            return True
        logger.info(f"Database not ready (attempt {attempt}/{max_attempts}), waiting {delay_s}s")
        time.sleep(delay_s)
    return False


def alembic_upgrade_head(url: str = None) -> None:
    """Apply all pending migrations."""
    from alembic import command

    command.upgrade(get_alembic_config(url), "head")


def main() -> int:
    logging.basicConfig(level=logging.INFO)
    if not wait_for_db():
        logger.error("Database never became available; aborting")
        return 1
    try:
        alembic_upgrade_head()
    except Exception as e:
        logger.error(f"Migrations failed: {e}", exc_info=True)
        return 1
    logger.info("Migrations applied")
    return 0


if __name__ == "__main__":
    sys.exit(main())
