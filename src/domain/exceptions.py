"""
Domain exceptions - Semantic error types for registration.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
"""

from enum import Enum


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    pass


class InvalidToken(RegistrationError):
    """Token is corrupt, tampered with, or was issued under another secret."""

    def __init__(self) -> None:
        super().__init__("Invalid token")


class RecordNotFound(RegistrationError):
    """No registration record matches the lookup."""

    pass


class ConflictReason(str, Enum):
    """Why an email cannot be registered again."""

    ACCOUNT_EXISTS = "account_exists"
    RECORD_EXISTS = "record_exists"
    REJECTED = "rejected"


class EmailAlreadyRegistered(RegistrationError):
    """Email already has a host account or a registration record."""

    def __init__(self, email: str, reason: ConflictReason) -> None:
        super().__init__(email)
        self.email = email
        self.reason = reason


class NotAuthorized(RegistrationError):
    """Actor may not review records of this tenant."""

    pass


class InvalidTransition(RegistrationError):
    """Record is not in a state that accepts the requested decision."""

    pass


class InvalidReason(RegistrationError):
    """Review reason is empty or too long."""

    pass


class RecordNotEditable(RegistrationError):
    """Record was not sent back to the applicant for edits."""

    pass


class TenantNotFound(RegistrationError):
    """Registration targets a tenant that does not exist."""

    pass


class AccountProvisioningFailed(RegistrationError):
    """Host platform refused to create the account."""

    pass
