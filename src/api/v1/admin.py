"""
Admin review routes.

Tenant and site admins list confirmed registrations and approve, reject
or send them back for edits. Every route requires HTTP BASIC AUTH.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.adapters.host.memory import InMemoryHostPlatform
from src.api.dependencies import get_current_actor, get_host, get_review_service
from src.api.models import DecisionResponse, ErrorResponse, ReasonRequest, RegistrationRow
from src.domain.exceptions import (
    AccountProvisioningFailed,
    InvalidReason,
    InvalidTransition,
    NotAuthorized,
    RecordNotFound,
)
from src.domain.records import Actor
from src.domain.review import ReviewService

router = APIRouter(prefix="/admin", tags=["admin"])

DECISION_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Invalid credentials"},
    403: {"model": ErrorResponse, "description": "Not an admin of the record's tenant"},
    404: {"model": ErrorResponse, "description": "Record not found"},
    409: {"model": ErrorResponse, "description": "Record is not awaiting review"},
}


def _decision_error(exc: Exception) -> HTTPException:
    if isinstance(exc, RecordNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Registration not found")
    if isinstance(exc, NotAuthorized):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not allowed to review this registration",
        )
    if isinstance(exc, InvalidTransition):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, InvalidReason):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail="The user account could not be created",
    )


@router.get(
    "/registrations",
    response_model=list[RegistrationRow],
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        403: {"model": ErrorResponse, "description": "Not an admin of the tenant"},
    },
    summary="List registrations",
    description="Site admins see every tenant; tenant admins must pass their tenant_id.",
)
async def list_registrations(
    tenant_id: int | None = Query(None, ge=1),
    actor: Actor = Depends(get_current_actor),
    service: ReviewService = Depends(get_review_service),
    host: InMemoryHostPlatform = Depends(get_host),
) -> list[RegistrationRow]:
    try:
        records = service.list_registrations(actor, tenant_id)
    except NotAuthorized as e:
        raise _decision_error(e) from None
    return [RegistrationRow.from_record(r, host.tenant_name(r.tenant_id)) for r in records]


@router.post(
    "/registrations/{record_id}/approve",
    response_model=DecisionResponse,
    responses={
        **DECISION_RESPONSES,
        502: {"model": ErrorResponse, "description": "Host refused to create the account"},
    },
    summary="Approve a registration",
)
async def approve_registration(
    record_id: int,
    actor: Actor = Depends(get_current_actor),
    service: ReviewService = Depends(get_review_service),
) -> DecisionResponse:
    try:
        record = service.approve(record_id, actor)
    except (RecordNotFound, NotAuthorized, InvalidTransition, AccountProvisioningFailed) as e:
        raise _decision_error(e) from None
    return DecisionResponse.from_record(record)


@router.post(
    "/registrations/{record_id}/reject",
    response_model=DecisionResponse,
    responses={**DECISION_RESPONSES, 422: {"description": "Invalid reason"}},
    summary="Reject a registration",
    description="The applicant receives the reason by email and cannot register again.",
)
async def reject_registration(
    record_id: int,
    body: ReasonRequest,
    actor: Actor = Depends(get_current_actor),
    service: ReviewService = Depends(get_review_service),
) -> DecisionResponse:
    try:
        record = service.reject(record_id, actor, body.reason)
    except (RecordNotFound, NotAuthorized, InvalidTransition, InvalidReason) as e:
        raise _decision_error(e) from None
    return DecisionResponse.from_record(record)


@router.post(
    "/registrations/{record_id}/notify",
    response_model=DecisionResponse,
    responses={**DECISION_RESPONSES, 422: {"description": "Invalid reason"}},
    summary="Request edits to a registration",
    description="The applicant receives the reason and a link to edit the form.",
)
async def notify_registration(
    record_id: int,
    body: ReasonRequest,
    actor: Actor = Depends(get_current_actor),
    service: ReviewService = Depends(get_review_service),
) -> DecisionResponse:
    try:
        record = service.notify(record_id, actor, body.reason)
    except (RecordNotFound, NotAuthorized, InvalidTransition, InvalidReason) as e:
        raise _decision_error(e) from None
    return DecisionResponse.from_record(record)
