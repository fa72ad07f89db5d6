"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure and from the host platform. Adapters implement
these protocols.
"""

from datetime import datetime
from enum import Enum
from typing import Protocol

from .records import (
    Actor,
    ApprovalStatus,
    Policy,
    RegistrationCandidate,
    RegistrationDraft,
    RegistrationRecord,
)


class ConfirmResult(Enum):
    """
    Outcome of following a confirmation link.

    INVALID_TOKEN, EXPIRED and CONFIRM_WRITE_FAILED leave the record
    untouched. ALREADY_CONFIRMED is returned for any repeat visit.
    """

    INVALID_TOKEN = "invalid_token"
    ALREADY_CONFIRMED = "already_confirmed"
    EXPIRED = "expired"
    CONFIRM_WRITE_FAILED = "confirm_write_failed"
    CONFIRMED_AUTO_APPROVED = "confirmed_auto_approved"
    CONFIRMED_HELD = "confirmed_held"


class NotificationType(Enum):
    """Event reported to tenant admins."""

    CONFIRMATION = "confirm"
    UPDATE = "update"


class RegistrationRepository(Protocol):
    """Port interface for registration persistence."""

    def insert(self, candidate: RegistrationCandidate, time_created: datetime) -> int | None:
        """
        Atomically insert a PENDING, unconfirmed record.

        Returns:
            New record id, or None if a record with the same email exists
        """
        ...

    def find(
        self, record_id: int | None = None, email: str | None = None
    ) -> RegistrationRecord | None:
        """
        Load a record by id, email, or both (both must match).

        Raises:
            ValueError: If neither key is given
        """
        ...

    def set_confirmed(self, record_id: int, time_modified: datetime) -> bool:
        """Mark an unconfirmed record confirmed; True if a row changed."""
        ...

    def set_decision(
        self,
        record_id: int,
        status: ApprovalStatus,
        assessor: int,
        time_modified: datetime,
    ) -> bool:
        """Write approval status and assessor together; True if a row changed."""
        ...

    def reopen(
        self, record_id: int, candidate: RegistrationCandidate, time_modified: datetime
    ) -> bool:
        """Replace editable fields of a NOTIFIED record and set it PENDING again."""
        ...

    def delete_expired(self, threshold: datetime) -> list[int]:
        """Delete unconfirmed records created before threshold; return their ids."""
        ...

    def list_records(self, tenant_id: int | None = None) -> list[RegistrationRecord]:
        """List records newest first, optionally for one tenant."""
        ...


class AccountProvisioner(Protocol):
    """Host platform account store."""

    def account_exists(self, email: str) -> bool:
        """Case-insensitive lookup of an existing account."""
        ...

    def account_id_for(self, email: str) -> int | None:
        """Id of the account registered under this email, if any."""
        ...

    def create_account(self, record: RegistrationRecord) -> int:
        """
        Create a host account from a registration record.

        Raises:
            AccountProvisioningFailed: If the host refuses (e.g. email taken)
        """
        ...

    def remove_account(self, account_id: int) -> None:
        """Undo create_account when the approval could not be recorded."""
        ...


class TenantDirectory(Protocol):
    """Host platform tenants and their administrators."""

    def tenant_exists(self, tenant_id: int) -> bool: ...

    def tenant_name(self, tenant_id: int) -> str: ...

    def list_tenant_admins(self, tenant_id: int) -> list[int]: ...

    def is_tenant_admin(self, tenant_id: int, user_id: int) -> bool: ...

    def attach_account_to_tenant(self, account_id: int, tenant_id: int) -> None: ...

    def authenticate(self, username: str, password: str) -> Actor | None:
        """Resolve admin credentials to an actor, or None."""
        ...


class NotificationTransport(Protocol):
    """Port interface for outbound messages. Delivery is best-effort."""

    def send_email(self, to: str, subject: str, body: str) -> None: ...

    def send_in_app(self, sender: int | None, recipient: int, subject: str, body: str) -> None:
        """Send a platform notification; sender None means the no-reply user."""
        ...


class PolicyRegistry(Protocol):
    """Read-only list of site policies shown on the form."""

    def list_current_policies(self) -> list[Policy]: ...


class DraftStore(Protocol):
    """Server-held multi-step form state."""

    def save(self, candidate: RegistrationCandidate) -> RegistrationDraft: ...

    def get(self, draft_id: str) -> RegistrationDraft | None:
        """Return the draft, or None if unknown or expired."""
        ...

    def discard(self, draft_id: str) -> None: ...
