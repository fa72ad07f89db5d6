"""
API v1 routes.

Defines the applicant-facing REST endpoints: staging and submitting a
registration, following the confirmation link, and editing a record an
admin sent back.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.adapters.drafts.memory import InMemoryDraftStore
from src.adapters.host.memory import InMemoryHostPlatform
from src.api.dependencies import get_draft_store, get_host, get_registration_service
from src.api.models import (
    ApplicantDetails,
    ConfirmResponse,
    DraftResponse,
    DraftReview,
    EditableRegistration,
    ErrorResponse,
    PolicyResponse,
    RegistrationForm,
    ReviewField,
    SubmitResponse,
    UpdateResponse,
)
from src.domain.exceptions import (
    ConflictReason,
    EmailAlreadyRegistered,
    InvalidToken,
    RecordNotEditable,
    RecordNotFound,
    TenantNotFound,
)
from src.domain.ports import ConfirmResult
from src.domain.records import RegistrationCandidate
from src.domain.registration import RegistrationService

router = APIRouter(tags=["v1"])

CONFLICT_MESSAGES = {
    ConflictReason.ACCOUNT_EXISTS: "The email provided is already associated with an existing account. "
    "If you have an account, please log in.",
    ConflictReason.RECORD_EXISTS: "The email provided is already associated with an existing record.",
    ConflictReason.REJECTED: "The email provided has been rejected.",
}

# INVALID_TOKEN and EXPIRED share one message so a link never reveals it was once valid
INVALID_LINK_MESSAGE = "Invalid confirmation link. The link is incorrect or has expired."

CONFIRM_RESPONSES = {
    ConfirmResult.CONFIRMED_HELD: (
        status.HTTP_200_OK,
        "Your registration has been confirmed. "
        "Please await approval from your manager before accessing the platform.",
    ),
    ConfirmResult.CONFIRMED_AUTO_APPROVED: (
        status.HTTP_200_OK,
        "Your registration is now confirmed, and your user account has been successfully created. "
        "An email has been sent to your address with your login details.",
    ),
    ConfirmResult.ALREADY_CONFIRMED: (
        status.HTTP_200_OK,
        "Your registration has already been confirmed.",
    ),
    ConfirmResult.INVALID_TOKEN: (status.HTTP_400_BAD_REQUEST, INVALID_LINK_MESSAGE),
    ConfirmResult.EXPIRED: (status.HTTP_400_BAD_REQUEST, INVALID_LINK_MESSAGE),
    ConfirmResult.CONFIRM_WRITE_FAILED: (
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "There was an error while confirming your registration. "
        "Please try again later or contact support for assistance.",
    ),
}


def review_fields(candidate: RegistrationCandidate, tenant_name: str) -> list[ReviewField]:
    """Format staged form data as labelled rows for the review step."""
    pairs = [
        ("Tenant", tenant_name),
        ("First name", candidate.first_name),
        ("Last name", candidate.last_name),
        ("Email", candidate.email),
        ("Country", candidate.country),
        ("Gender", candidate.gender),
        ("Position", candidate.position),
        ("Domain", candidate.domain),
        ("Comments", candidate.comments),
        ("Fields of interest", ", ".join(candidate.interests)),
    ]
    return [ReviewField(label=label, value=value) for label, value in pairs]


def _conflict(exc: EmailAlreadyRegistered) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=CONFLICT_MESSAGES[exc.reason],
    )


@router.get(
    "/policies",
    response_model=list[PolicyResponse],
    summary="List site policies",
    description="Policies the applicant must accept on the registration form.",
)
async def list_policies(host: InMemoryHostPlatform = Depends(get_host)) -> list[PolicyResponse]:
    return [PolicyResponse(name=p.name, url=p.url) for p in host.list_current_policies()]


@router.post(
    "/registrations/drafts",
    response_model=DraftResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse, "description": "Tenant not found"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
        422: {"description": "Validation error"},
    },
    summary="Stage a registration form",
    description="Validate the form and hold it server-side for the review step.",
)
async def create_draft(
    form: RegistrationForm,
    service: RegistrationService = Depends(get_registration_service),
    drafts: InMemoryDraftStore = Depends(get_draft_store),
) -> DraftResponse:
    try:
        candidate = service.validate(form.to_candidate(form.tenant_id, form.email))
    except TenantNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="The URL did not include a valid tenant id.",
        ) from None
    except EmailAlreadyRegistered as e:
        raise _conflict(e) from None

    draft = drafts.save(candidate)
    return DraftResponse(draft_id=draft.draft_id, expires_in_seconds=drafts.ttl_seconds)


@router.get(
    "/registrations/drafts/{draft_id}",
    response_model=DraftReview,
    responses={404: {"model": ErrorResponse, "description": "Draft not found or expired"}},
    summary="Review a staged registration",
)
async def review_draft(
    draft_id: str,
    drafts: InMemoryDraftStore = Depends(get_draft_store),
    host: InMemoryHostPlatform = Depends(get_host),
) -> DraftReview:
    draft = drafts.get(draft_id)
    if draft is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Registration data not found")

    tenant_name = host.tenant_name(draft.candidate.tenant_id)
    return DraftReview(draft_id=draft.draft_id, fields=review_fields(draft.candidate, tenant_name))


@router.post(
    "/registrations/drafts/{draft_id}/submit",
    response_model=SubmitResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse, "description": "Draft or tenant not found"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
    },
    summary="Submit a staged registration",
    description="Create the registration record and email a confirmation link.",
)
async def submit_draft(
    draft_id: str,
    service: RegistrationService = Depends(get_registration_service),
    drafts: InMemoryDraftStore = Depends(get_draft_store),
) -> SubmitResponse:
    draft = drafts.get(draft_id)
    if draft is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Registration data not found")

    try:
        record_id = service.submit(draft.candidate)
    except TenantNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="The URL did not include a valid tenant id.",
        ) from None
    except EmailAlreadyRegistered as e:
        raise _conflict(e) from None

    drafts.discard(draft_id)
    return SubmitResponse(
        message="Your registration process has begun. Please check your inbox for a confirmation email.",
        record_id=record_id,
        confirm_within_hours=service.retention_hours,
    )


@router.get(
    "/registrations/{record_id}/confirm",
    response_model=ConfirmResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or expired link"},
        503: {"model": ErrorResponse, "description": "Confirmation could not be saved"},
    },
    summary="Confirm a registration email",
    description="Target of the link sent in the confirmation email.",
)
async def confirm_registration(
    record_id: int,
    token: str = Query(..., description="Token from the confirmation link"),
    service: RegistrationService = Depends(get_registration_service),
) -> ConfirmResponse:
    result = service.confirm(record_id, token)
    status_code, message = CONFIRM_RESPONSES[result]

    if status_code != status.HTTP_200_OK:
        raise HTTPException(status_code=status_code, detail=message)

    return ConfirmResponse(result=result.value, message=message)


@router.get(
    "/registrations/{record_id}/edit",
    response_model=EditableRegistration,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid edit link"},
        403: {"model": ErrorResponse, "description": "Record was not sent back for edits"},
        404: {"model": ErrorResponse, "description": "Record not found"},
    },
    summary="Load a registration for editing",
    description="Target of the link sent when an admin asks for changes.",
)
async def get_editable_registration(
    record_id: int,
    token: str = Query(..., description="Token from the edit link"),
    service: RegistrationService = Depends(get_registration_service),
) -> EditableRegistration:
    try:
        record = service.load_for_edit(record_id, token)
    except (RecordNotFound, RecordNotEditable, InvalidToken) as e:
        raise _edit_error(e) from None
    return EditableRegistration.from_record(record)


@router.put(
    "/registrations/{record_id}",
    response_model=UpdateResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid edit link"},
        403: {"model": ErrorResponse, "description": "Record was not sent back for edits"},
        404: {"model": ErrorResponse, "description": "Record not found"},
        422: {"description": "Validation error"},
    },
    summary="Resubmit an edited registration",
)
async def update_registration(
    record_id: int,
    details: ApplicantDetails,
    token: str = Query(..., description="Token from the edit link"),
    service: RegistrationService = Depends(get_registration_service),
) -> UpdateResponse:
    try:
        record = service.load_for_edit(record_id, token)
        service.resubmit(record_id, token, details.to_candidate(record.tenant_id, record.email))
    except (RecordNotFound, RecordNotEditable, InvalidToken) as e:
        raise _edit_error(e) from None

    return UpdateResponse(
        message="Your registration application has been updated.",
        record_id=record_id,
    )


def _edit_error(exc: Exception) -> HTTPException:
    if isinstance(exc, RecordNotFound):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="The URL did not include a valid record id",
        )
    if isinstance(exc, RecordNotEditable):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have the necessary permissions to edit this form.",
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid edit link")
