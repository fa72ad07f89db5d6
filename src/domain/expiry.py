"""
Expiry policy - retention window for unconfirmed registrations.

A record expires once more than `retention_hours` have passed since it
was created. Only unconfirmed records are ever swept.
"""

import logging
from datetime import datetime, timedelta

from .ports import RegistrationRepository

logger = logging.getLogger(__name__)


def expiry_threshold(now: datetime, retention_hours: int) -> datetime:
    """Records created strictly before this instant have expired."""
    if retention_hours < 0:
        raise ValueError("retention_hours must be >= 0")
    return now - timedelta(hours=retention_hours)


def has_expired(time_created: datetime, now: datetime, retention_hours: int) -> bool:
    """True if the record is older than the retention window."""
    return time_created < expiry_threshold(now, retention_hours)


def sweep(repository: RegistrationRepository, now: datetime, retention_hours: int) -> list[int]:
    """
    Delete unconfirmed records past the retention window.

    Returns:
        Ids of the deleted records
    """
    deleted = repository.delete_expired(expiry_threshold(now, retention_hours))
    if deleted:
        logger.info(
            "Deleted %d expired registration(s): %s",
            len(deleted),
            ", ".join(str(record_id) for record_id in deleted),
        )
    else:
        logger.debug("No expired registrations")
    return deleted
