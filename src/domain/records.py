"""
Registration records - value types shared by the domain and its adapters.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import IntEnum


class ApprovalStatus(IntEnum):
    """
    Review outcome stored on a registration record.

    Transitions:
        PENDING  -> APPROVED | REJECTED | NOTIFIED
        NOTIFIED -> PENDING (applicant resubmits) | APPROVED | REJECTED | NOTIFIED

    APPROVED and REJECTED are terminal.
    """

    PENDING = 0
    APPROVED = 1
    REJECTED = -1
    NOTIFIED = -2

    @property
    def awaits_review(self) -> bool:
        return self in (ApprovalStatus.PENDING, ApprovalStatus.NOTIFIED)


@dataclass(frozen=True)
class RegistrationCandidate:
    """Form fields submitted by a prospective user."""

    tenant_id: int
    first_name: str
    last_name: str
    email: str
    country: str = ""
    gender: str = ""
    position: str = ""
    domain: str = ""
    comments: str = ""
    interests: tuple[str, ...] = ()

    def normalized(self) -> "RegistrationCandidate":
        """Return a copy with the email stripped and lowercased."""
        return replace(self, email=normalize_email(self.email), interests=tuple(self.interests))


@dataclass
class RegistrationRecord:
    """Stored registration attempt."""

    id: int
    tenant_id: int
    first_name: str
    last_name: str
    email: str
    time_created: datetime
    country: str = ""
    gender: str = ""
    position: str = ""
    domain: str = ""
    comments: str = ""
    interests: tuple[str, ...] = ()
    confirmed: bool = False
    approved: ApprovalStatus = ApprovalStatus.PENDING
    assessor: int | None = None
    time_modified: datetime | None = None

    @property
    def interests_text(self) -> str:
        return ", ".join(self.interests)

    def as_candidate(self) -> RegistrationCandidate:
        return RegistrationCandidate(
            tenant_id=self.tenant_id,
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            country=self.country,
            gender=self.gender,
            position=self.position,
            domain=self.domain,
            comments=self.comments,
            interests=self.interests,
        )


@dataclass(frozen=True)
class Actor:
    """Authenticated admin performing a review action."""

    id: int
    username: str
    is_site_admin: bool = False


@dataclass(frozen=True)
class Policy:
    """Site policy the applicant accepts on the form."""

    name: str
    url: str


@dataclass
class RegistrationDraft:
    """Form data staged between the form, review and submit steps."""

    draft_id: str
    candidate: RegistrationCandidate
    expires_at: float


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()
