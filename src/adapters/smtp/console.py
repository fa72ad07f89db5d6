"""
Console notification adapter - Implements NotificationTransport protocol.

This module provides a console-based implementation of the domain's
notification port, logging outbound emails and platform notices for
demo purposes.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleNotificationTransport:
    """
    Implements NotificationTransport protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints messages to stdout.
    """

    def send_email(self, to: str, subject: str, body: str) -> None:
        """
        Log an email to console (simulates SMTP delivery).

        The body is logged at INFO level so confirmation and edit links
        are visible in docker-compose logs.
        """
        logger.info("[EMAIL] To: %s Subject: %s\n%s", to, subject, body)

    def send_in_app(self, sender: int | None, recipient: int, subject: str, body: str) -> None:
        """Log a platform notification; sender None is the no-reply user."""
        logger.info(
            "[NOTICE] From: %s To: %s Subject: %s",
            "noreply" if sender is None else sender,
            recipient,
            subject,
        )
