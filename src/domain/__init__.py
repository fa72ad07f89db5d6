"""
Domain layer - Pure business logic with zero framework imports.

This package contains the registration record lifecycle, the email
confirmation state machine and the admin review decisions. It defines
its own port interfaces for infrastructure and host-platform access.
"""

from .exceptions import (
    AccountProvisioningFailed,
    ConflictReason,
    EmailAlreadyRegistered,
    InvalidReason,
    InvalidToken,
    InvalidTransition,
    NotAuthorized,
    RecordNotEditable,
    RecordNotFound,
    RegistrationError,
    TenantNotFound,
)
from .ports import (
    AccountProvisioner,
    ConfirmResult,
    DraftStore,
    NotificationTransport,
    NotificationType,
    PolicyRegistry,
    RegistrationRepository,
    TenantDirectory,
)
from .records import Actor, ApprovalStatus, Policy, RegistrationCandidate, RegistrationRecord
from .registration import RegistrationService
from .review import ReviewService
from .tokens import TokenCodec

__all__ = [
    "AccountProvisioner",
    "AccountProvisioningFailed",
    "Actor",
    "ApprovalStatus",
    "ConfirmResult",
    "ConflictReason",
    "DraftStore",
    "EmailAlreadyRegistered",
    "InvalidReason",
    "InvalidToken",
    "InvalidTransition",
    "NotAuthorized",
    "NotificationTransport",
    "NotificationType",
    "Policy",
    "PolicyRegistry",
    "RecordNotEditable",
    "RecordNotFound",
    "RegistrationCandidate",
    "RegistrationError",
    "RegistrationRecord",
    "RegistrationRepository",
    "RegistrationService",
    "ReviewService",
    "TenantDirectory",
    "TenantNotFound",
    "TokenCodec",
]
