"""
Registration domain service - submission and email confirmation.

Confirmation State Machine
==========================

A confirmation link carries (record id, token). Following it moves an
UNCONFIRMED_PENDING record into one of:

    CONFIRMED_AUTO_APPROVED  trusted domain, host account provisioned
    CONFIRMED_HELD           awaiting manual review by a tenant admin

or ends in one of the absorbing outcomes that leave the record untouched:

    INVALID_TOKEN            token undecodable, unknown id, or email mismatch
    ALREADY_CONFIRMED        any repeat visit
    EXPIRED                  retention window passed (the sweep deletes it)
    CONFIRM_WRITE_FAILED     store did not apply the confirmed flag

The confirmed flag is written before anything else, so a second visit to
the same link stops at ALREADY_CONFIRMED and never re-runs provisioning.

Concurrency: records carry no version column. Two actors writing
different fields of one record both succeed and the last write per field
wins. Only the confirmed flip is conditional (WHERE confirmed = FALSE),
which keeps it disjoint from the expiry sweep.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from .exceptions import (
    ConflictReason,
    EmailAlreadyRegistered,
    InvalidToken,
    RecordNotEditable,
    RecordNotFound,
    TenantNotFound,
)
from .expiry import has_expired, sweep
from .links import View
from .messages import CONFIRMATION_BODY, CONFIRMATION_SUBJECT
from .notify import deliver_email, notify_tenant_admins
from .ports import (
    AccountProvisioner,
    ConfirmResult,
    NotificationTransport,
    NotificationType,
    RegistrationRepository,
    TenantDirectory,
)
from .records import (
    ApprovalStatus,
    RegistrationCandidate,
    RegistrationRecord,
    normalize_email,
)
from .tokens import TokenCodec
from .trust import is_trusted

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RegistrationService:
    """
    Domain service for applicant-facing registration steps.

    Orchestrates submission, confirmation, resubmission after an edit
    request, and the expiry sweep.
    """

    repository: RegistrationRepository
    accounts: AccountProvisioner
    tenants: TenantDirectory
    notifier: NotificationTransport
    token_codec: TokenCodec
    trusted_domains: list[str] = field(default_factory=list)
    retention_hours: int = 24
    system_assessor: int = 2
    site_name: str = "Learning Platform"
    base_url: str = "http://localhost:8000"
    clock: Callable[[], datetime] = utcnow

    def check_available(self, email: str) -> str:
        """
        Check that an email can start a new registration.

        Returns:
            Normalized email address

        Raises:
            EmailAlreadyRegistered: If a host account or a record already uses it
        """
        email = normalize_email(email)

        if self.accounts.account_exists(email):
            raise EmailAlreadyRegistered(email, ConflictReason.ACCOUNT_EXISTS)

        record = self.repository.find(email=email)
        if record is not None:
            reason = (
                ConflictReason.REJECTED
                if record.approved == ApprovalStatus.REJECTED
                else ConflictReason.RECORD_EXISTS
            )
            raise EmailAlreadyRegistered(email, reason)

        return email

    def validate(self, candidate: RegistrationCandidate) -> RegistrationCandidate:
        """
        Check a form before it is staged or submitted.

        Returns:
            Candidate with a normalized email

        Raises:
            TenantNotFound: If the tenant does not exist
            EmailAlreadyRegistered: If the email is taken
        """
        candidate = candidate.normalized()

        if not self.tenants.tenant_exists(candidate.tenant_id):
            raise TenantNotFound(candidate.tenant_id)

        self.check_available(candidate.email)
        return candidate

    def submit(self, candidate: RegistrationCandidate) -> int:
        """
        Store a new registration and send the confirmation email.

        Returns:
            Id of the new record

        Raises:
            TenantNotFound: If the tenant does not exist
            EmailAlreadyRegistered: If the email is taken
        """
        candidate = self.validate(candidate)

        record_id = self.repository.insert(candidate, self.clock())
        if record_id is None:
            # Lost a race against another submission for the same email
            raise EmailAlreadyRegistered(candidate.email, ConflictReason.RECORD_EXISTS)

        logger.info("Registration %s submitted for tenant %s", record_id, candidate.tenant_id)

        deliver_email(
            self.notifier,
            candidate.email,
            CONFIRMATION_SUBJECT.format(site=self.site_name),
            CONFIRMATION_BODY.format(
                first_name=candidate.first_name,
                site=self.site_name,
                hours=self.retention_hours,
                link=self.confirmation_link(record_id, candidate.email),
            ),
        )
        return record_id

    def confirm(self, record_id: int, token: str) -> ConfirmResult:
        """Follow a confirmation link. Never raises for bad input."""
        try:
            email = self.token_codec.decode(token)
        except InvalidToken:
            logger.info("Confirmation of record %s rejected: invalid token", record_id)
            return ConfirmResult.INVALID_TOKEN

        record = self.repository.find(record_id=record_id, email=email)
        if record is None or record.email != email:
            logger.info("Confirmation of record %s rejected: invalid token", record_id)
            return ConfirmResult.INVALID_TOKEN

        if record.confirmed:
            return ConfirmResult.ALREADY_CONFIRMED

        now = self.clock()
        if has_expired(record.time_created, now, self.retention_hours):
            logger.info("Confirmation of record %s rejected: expired", record_id)
            return ConfirmResult.EXPIRED

        failed = self._mark_confirmed(record, now)
        if failed is not None:
            return failed

        if is_trusted(record.email, self.trusted_domains):
            result = self._auto_approve(record, now)
        else:
            result = ConfirmResult.CONFIRMED_HELD

        logger.info("Record %s confirmed: %s", record.id, result.value)
        notify_tenant_admins(
            self.tenants,
            self.notifier,
            record.tenant_id,
            NotificationType.CONFIRMATION,
            self.base_url,
        )
        return result

    def load_for_edit(self, record_id: int, token: str) -> RegistrationRecord:
        """
        Load a record the applicant was asked to edit.

        Raises:
            RecordNotFound: If no record has this id
            RecordNotEditable: If the record was not sent back for edits
            InvalidToken: If the token does not belong to the record
        """
        record = self.repository.find(record_id=record_id)
        if record is None:
            raise RecordNotFound(record_id)

        if record.approved != ApprovalStatus.NOTIFIED:
            raise RecordNotEditable(record_id)

        if self.token_codec.decode(token) != record.email:
            raise InvalidToken()

        return record

    def resubmit(
        self, record_id: int, token: str, candidate: RegistrationCandidate
    ) -> RegistrationRecord:
        """
        Apply the applicant's edits and put the record back in the review queue.

        Email and tenant are kept from the stored record.
        """
        record = self.load_for_edit(record_id, token)
        updated = replace(candidate, email=record.email, tenant_id=record.tenant_id)

        if not self.repository.reopen(record.id, updated, self.clock()):
            # A reviewer decided while the applicant was editing
            raise RecordNotEditable(record_id)

        logger.info("Registration %s resubmitted", record.id)
        notify_tenant_admins(
            self.tenants,
            self.notifier,
            record.tenant_id,
            NotificationType.UPDATE,
            self.base_url,
        )

        reloaded = self.repository.find(record_id=record.id)
        if reloaded is None:
            raise RecordNotFound(record_id)
        return reloaded

    def sweep_expired(self) -> list[int]:
        """Delete unconfirmed records past the retention window."""
        return sweep(self.repository, self.clock(), self.retention_hours)

    def confirmation_link(self, record_id: int, email: str) -> str:
        return View.CONFIRM.url(
            self.base_url, record_id=record_id, token=self.token_codec.encode(email)
        )

    def edit_link(self, record_id: int, email: str) -> str:
        return View.EDIT.url(self.base_url, record_id=record_id, token=self.token_codec.encode(email))

    def _mark_confirmed(self, record: RegistrationRecord, now: datetime) -> ConfirmResult | None:
        """Flip the confirmed flag; return a terminal result if that failed."""
        try:
            written = self.repository.set_confirmed(record.id, now)
        except Exception:
            logger.exception("Confirm write failed for record %s", record.id)
            return ConfirmResult.CONFIRM_WRITE_FAILED

        if written:
            record.confirmed = True
            record.time_modified = now
            return None

        current = self.repository.find(record_id=record.id)
        if current is not None and current.confirmed:
            # Concurrent visit to the same link got there first
            return ConfirmResult.ALREADY_CONFIRMED

        logger.error("Confirm write did not apply for record %s", record.id)
        return ConfirmResult.CONFIRM_WRITE_FAILED

    def _auto_approve(self, record: RegistrationRecord, now: datetime) -> ConfirmResult:
        try:
            account_id = self.accounts.create_account(record)
        except Exception:
            logger.exception("Account provisioning failed for record %s", record.id)
            return ConfirmResult.CONFIRMED_HELD

        try:
            written = self.repository.set_decision(
                record.id, ApprovalStatus.APPROVED, self.system_assessor, now
            )
        except Exception:
            logger.exception("Approval write failed for record %s", record.id)
            written = False

        if not written:
            logger.error(
                "Removing account %s: approval of record %s was not recorded",
                account_id,
                record.id,
            )
            try:
                self.accounts.remove_account(account_id)
            except Exception:
                logger.exception("Could not remove orphaned account %s", account_id)
            return ConfirmResult.CONFIRMED_HELD

        record.approved = ApprovalStatus.APPROVED
        record.assessor = self.system_assessor

        try:
            self.tenants.attach_account_to_tenant(account_id, record.tenant_id)
        except Exception:
            logger.exception(
                "Could not attach account %s to tenant %s", account_id, record.tenant_id
            )

        return ConfirmResult.CONFIRMED_AUTO_APPROVED
