"""
Review domain service - admin decisions on confirmed registrations.

Each decision writes the new status and the assessor first, then emails
the applicant. The stored state is authoritative: a failed email is
logged and the decision stands.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from .exceptions import (
    AccountProvisioningFailed,
    InvalidReason,
    InvalidTransition,
    NotAuthorized,
    RecordNotFound,
)
from .links import View
from .messages import (
    APPROVAL_BODY,
    APPROVAL_SUBJECT,
    EDIT_REQUEST_BODY,
    EDIT_REQUEST_SUBJECT,
    REJECTION_BODY,
    REJECTION_SUBJECT,
)
from .notify import deliver_email
from .ports import AccountProvisioner, NotificationTransport, RegistrationRepository, TenantDirectory
from .records import Actor, ApprovalStatus, RegistrationRecord
from .registration import utcnow
from .tokens import TokenCodec

logger = logging.getLogger(__name__)

_TAG = re.compile(r"</?[A-Za-z][^>]*>")


@dataclass
class ReviewService:
    """Domain service behind the admin registrations listing."""

    repository: RegistrationRepository
    accounts: AccountProvisioner
    tenants: TenantDirectory
    notifier: NotificationTransport
    token_codec: TokenCodec
    reason_max_length: int = 500
    site_name: str = "Learning Platform"
    base_url: str = "http://localhost:8000"
    clock: Callable[[], datetime] = utcnow

    def list_registrations(
        self, actor: Actor, tenant_id: int | None = None
    ) -> list[RegistrationRecord]:
        """
        List records visible to the actor.

        Site admins may list every tenant. Tenant admins must name one of
        their own tenants.
        """
        if not actor.is_site_admin and (tenant_id is None or not self._may_review(actor, tenant_id)):
            raise NotAuthorized(actor.username)
        return self.repository.list_records(tenant_id)

    def approve(self, record_id: int, actor: Actor) -> RegistrationRecord:
        """
        Provision the host account and approve the record.

        An account already registered under the email is reused and joined
        to the record's tenant like a new one.

        Raises:
            AccountProvisioningFailed: If the host refused; the record is unchanged
        """
        record = self._load_reviewable(record_id, actor)
        now = self.clock()

        account_id = self.accounts.account_id_for(record.email)
        if account_id is not None:
            self._commit(record, ApprovalStatus.APPROVED, actor, now)
        else:
            try:
                account_id = self.accounts.create_account(record)
            except AccountProvisioningFailed:
                raise
            except Exception as e:
                raise AccountProvisioningFailed(str(e)) from e

            try:
                self._commit(record, ApprovalStatus.APPROVED, actor, now)
            except Exception:
                logger.error(
                    "Removing account %s: approval of record %s was not recorded",
                    account_id,
                    record.id,
                )
                try:
                    self.accounts.remove_account(account_id)
                except Exception:
                    logger.exception("Could not remove orphaned account %s", account_id)
                raise

        try:
            self.tenants.attach_account_to_tenant(account_id, record.tenant_id)
        except Exception:
            logger.exception(
                "Could not attach account %s to tenant %s", account_id, record.tenant_id
            )

        deliver_email(
            self.notifier,
            record.email,
            APPROVAL_SUBJECT.format(site=self.site_name),
            APPROVAL_BODY.format(first_name=record.first_name, site=self.site_name),
        )
        return record

    def reject(self, record_id: int, actor: Actor, reason: str) -> RegistrationRecord:
        """Reject the record and email the applicant the reason."""
        record = self._load_reviewable(record_id, actor)
        reason = self._clean_reason(reason)

        self._commit(record, ApprovalStatus.REJECTED, actor, self.clock())

        deliver_email(
            self.notifier,
            record.email,
            REJECTION_SUBJECT.format(site=self.site_name),
            REJECTION_BODY.format(first_name=record.first_name, site=self.site_name, reason=reason),
        )
        return record

    def notify(self, record_id: int, actor: Actor, reason: str) -> RegistrationRecord:
        """Send the record back to the applicant with an edit link."""
        record = self._load_reviewable(record_id, actor)
        reason = self._clean_reason(reason)

        self._commit(record, ApprovalStatus.NOTIFIED, actor, self.clock())

        link = View.EDIT.url(
            self.base_url, record_id=record.id, token=self.token_codec.encode(record.email)
        )
        deliver_email(
            self.notifier,
            record.email,
            EDIT_REQUEST_SUBJECT.format(site=self.site_name),
            EDIT_REQUEST_BODY.format(
                first_name=record.first_name,
                site=self.site_name,
                reason=reason,
                link=link,
            ),
        )
        return record

    def _load_reviewable(self, record_id: int, actor: Actor) -> RegistrationRecord:
        record = self.repository.find(record_id=record_id)
        if record is None:
            raise RecordNotFound(record_id)

        if not self._may_review(actor, record.tenant_id):
            logger.warning("User %s may not review record %s", actor.id, record_id)
            raise NotAuthorized(actor.username)

        if not record.confirmed or not record.approved.awaits_review:
            raise InvalidTransition(f"Record {record_id} is not awaiting review")

        return record

    def _may_review(self, actor: Actor, tenant_id: int) -> bool:
        if actor.is_site_admin:
            return True
        try:
            return self.tenants.is_tenant_admin(tenant_id, actor.id)
        except Exception:
            logger.exception("Tenant admin lookup failed for user %s", actor.id)
            return False

    def _clean_reason(self, reason: str) -> str:
        text = _TAG.sub("", reason).strip()
        if not text:
            raise InvalidReason("Reason must not be empty")
        if len(text) > self.reason_max_length:
            raise InvalidReason(f"Reason must not exceed {self.reason_max_length} characters")
        return text

    def _commit(
        self, record: RegistrationRecord, status: ApprovalStatus, actor: Actor, now: datetime
    ) -> None:
        if not self.repository.set_decision(record.id, status, actor.id, now):
            raise RecordNotFound(record.id)

        record.approved = status
        record.assessor = actor.id
        record.time_modified = now
        logger.info("Record %s set to %s by user %s", record.id, status.name, actor.id)
