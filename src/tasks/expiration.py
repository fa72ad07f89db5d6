"""
Expiry sweep job.

Deletes unconfirmed registrations older than UNCONFIRMED_HOURS. Meant to
be run periodically by cron or a scheduler:

    python -m src.tasks.expiration
"""

import logging
import sys
from collections.abc import Callable
from datetime import datetime

from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresRegistrationRepository
from src.config.logging_config import configure_logging
from src.config.settings import Settings, get_settings
from src.domain.expiry import sweep
from src.domain.ports import RegistrationRepository
from src.domain.registration import utcnow

logger = logging.getLogger(__name__)


def run_expiration_control(
    repository: RegistrationRepository,
    settings: Settings,
    clock: Callable[[], datetime] = utcnow,
) -> list[int]:
    """Run one sweep against the given repository."""
    logger.info("Expiry sweep started (retention %s hours)", settings.unconfirmed_hours)
    deleted = sweep(repository, clock(), settings.unconfirmed_hours)
    logger.info("Expiry sweep finished")
    return deleted


def main() -> int:
    settings = get_settings()
    configure_logging(settings.log_level)

    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=1)
    try:
        run_expiration_control(PostgresRegistrationRepository(pool), settings)
    except Exception:
        logger.exception("Expiry sweep failed")
        return 1
    finally:
        pool.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
