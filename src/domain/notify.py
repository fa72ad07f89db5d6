"""
Best-effort delivery helpers.

Notifications never roll back a state change; failures are logged so an
operator can follow up.
"""

import logging

from .links import View
from .messages import TENANT_NOTICES
from .ports import NotificationTransport, NotificationType, TenantDirectory

logger = logging.getLogger(__name__)


def deliver_email(notifier: NotificationTransport, to: str, subject: str, body: str) -> bool:
    """Send an email, logging instead of raising on transport failure."""
    try:
        notifier.send_email(to, subject, body)
    except Exception:
        logger.exception("Email delivery failed: %s", subject)
        return False
    return True


def notify_tenant_admins(
    tenants: TenantDirectory,
    notifier: NotificationTransport,
    tenant_id: int,
    kind: NotificationType,
    base_url: str,
) -> int:
    """
    Send an in-app notice to every admin of the tenant.

    Returns:
        Number of notices handed to the transport
    """
    subject, body = TENANT_NOTICES[kind]
    body = f"{body}\n\n{View.ADMIN_LIST.url(base_url)}"

    try:
        admins = tenants.list_tenant_admins(tenant_id)
    except Exception:
        logger.exception("Could not list admins of tenant %s", tenant_id)
        return 0

    sent = 0
    for admin_id in admins:
        try:
            notifier.send_in_app(None, admin_id, subject, body)
        except Exception:
            logger.exception("Notice to admin %s of tenant %s failed", admin_id, tenant_id)
            continue
        sent += 1
    return sent
