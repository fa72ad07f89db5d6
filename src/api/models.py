"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.domain.records import ApprovalStatus, RegistrationCandidate, RegistrationRecord

FIELD_MAX_LENGTH = 255


class ApplicantDetails(BaseModel):
    """Editable part of a registration form."""

    first_name: str = Field(..., min_length=1, max_length=FIELD_MAX_LENGTH)
    last_name: str = Field(..., min_length=1, max_length=FIELD_MAX_LENGTH)
    country: str = Field("", max_length=FIELD_MAX_LENGTH)
    gender: str = Field("", max_length=FIELD_MAX_LENGTH)
    position: str = Field("", max_length=FIELD_MAX_LENGTH)
    domain: str = Field("", max_length=FIELD_MAX_LENGTH)
    comments: str = Field("", max_length=500)
    interests: list[str] = Field(default_factory=list, description="Selected interest keys, in order")

    def to_candidate(self, tenant_id: int, email: str) -> RegistrationCandidate:
        return RegistrationCandidate(
            tenant_id=tenant_id,
            first_name=self.first_name,
            last_name=self.last_name,
            email=email,
            country=self.country,
            gender=self.gender,
            position=self.position,
            domain=self.domain,
            comments=self.comments,
            interests=tuple(self.interests),
        )


class RegistrationForm(ApplicantDetails):
    """Request model for staging a new registration."""

    tenant_id: int = Field(..., ge=1)
    email: EmailStr
    policies_accepted: bool = Field(..., description="Applicant accepted the site policies")

    @field_validator("policies_accepted")
    @classmethod
    def must_accept_policies(cls, value: bool) -> bool:
        if not value:
            raise ValueError("Site policies must be accepted")
        return value


class DraftResponse(BaseModel):
    """Response model for a staged registration."""

    draft_id: str
    expires_in_seconds: int


class ReviewField(BaseModel):
    label: str
    value: str


class DraftReview(BaseModel):
    """Staged form data formatted for the review step."""

    draft_id: str
    fields: list[ReviewField]


class SubmitResponse(BaseModel):
    """Response model for a submitted registration."""

    message: str
    record_id: int
    confirm_within_hours: int


class ConfirmResponse(BaseModel):
    """Response model for a followed confirmation link."""

    result: str
    message: str


class EditableRegistration(ApplicantDetails):
    """Record fields an applicant may change after an edit request."""

    id: int
    tenant_id: int
    email: str

    @classmethod
    def from_record(cls, record: RegistrationRecord) -> "EditableRegistration":
        return cls(
            id=record.id,
            tenant_id=record.tenant_id,
            email=record.email,
            first_name=record.first_name,
            last_name=record.last_name,
            country=record.country,
            gender=record.gender,
            position=record.position,
            domain=record.domain,
            comments=record.comments,
            interests=list(record.interests),
        )


class UpdateResponse(BaseModel):
    message: str
    record_id: int


class RegistrationRow(BaseModel):
    """One row of the admin registrations listing."""

    id: int
    tenant_id: int
    tenant_name: str
    first_name: str
    last_name: str
    email: str
    country: str
    gender: str
    position: str
    domain: str
    comments: str
    interests: str
    confirmed: bool
    approved: int
    status: str
    notified: bool
    assessor: int | None
    time_created: datetime
    time_modified: datetime | None

    @classmethod
    def from_record(cls, record: RegistrationRecord, tenant_name: str) -> "RegistrationRow":
        return cls(
            id=record.id,
            tenant_id=record.tenant_id,
            tenant_name=tenant_name,
            first_name=record.first_name,
            last_name=record.last_name,
            email=record.email,
            country=record.country,
            gender=record.gender,
            position=record.position,
            domain=record.domain,
            comments=record.comments,
            interests=record.interests_text,
            confirmed=record.confirmed,
            approved=int(record.approved),
            status=record.approved.name.lower(),
            notified=record.approved == ApprovalStatus.NOTIFIED,
            assessor=record.assessor,
            time_created=record.time_created,
            time_modified=record.time_modified,
        )


class ReasonRequest(BaseModel):
    """Request model for reject and notify decisions."""

    reason: str = Field(..., min_length=1, max_length=500, description="Plain-text reason sent to the applicant")


class DecisionResponse(BaseModel):
    """Response model for an admin decision."""

    id: int
    approved: int
    status: str
    assessor: int | None

    @classmethod
    def from_record(cls, record: RegistrationRecord) -> "DecisionResponse":
        return cls(
            id=record.id,
            approved=int(record.approved),
            status=record.approved.name.lower(),
            assessor=record.assessor,
        )


class PolicyResponse(BaseModel):
    name: str
    url: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
