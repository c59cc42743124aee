from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventreg.auth import CallerIdentity, get_caller
from eventreg.db import get_session
from eventreg.models import RegistrationStatus
from eventreg.schemas import (
    CancelRequest,
    RegistrationCreate,
    RegistrationCreated,
    RegistrationOut,
    RegistrationPage,
    RegistrationSummaryPage,
    StatusUpdate,
    pagination_out,
    registration_out,
    summary_out,
)
from eventreg.services import registration as registration_service
from eventreg.services.registration import MAX_PAGE_SIZE, RegistrationFilters


router = APIRouter()


@router.post("/registrations", response_model=RegistrationCreated, status_code=status.HTTP_201_CREATED)
async def post_registration(
    req: RegistrationCreate,
    session: AsyncSession = Depends(get_session),
    caller: Optional[CallerIdentity] = Depends(get_caller),
):
    result = await registration_service.create_registration(
        session=session,
        event_id=req.event_id,
        tickets=req.ticket_requests(),
        attendees=[a.to_input() for a in req.attendees],
        caller=caller,
        idempotency_key=req.idempotency_key,
    )
    return RegistrationCreated(message=result.message, registration_id=result.registration_id, status=result.status)


@router.get("/registrations", response_model=RegistrationPage)
async def list_registrations(
    event_id: Optional[int] = Query(None, gt=0),
    user_id: Optional[int] = Query(None, gt=0),
    status_filter: Optional[RegistrationStatus] = Query(None, alias="status"),
    ticket_id: Optional[int] = Query(None, gt=0),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    session: AsyncSession = Depends(get_session),
    caller: Optional[CallerIdentity] = Depends(get_caller),
):
    filters = RegistrationFilters(event_id=event_id, user_id=user_id, status=status_filter, ticket_id=ticket_id, search=search)
    result = await registration_service.get_registrations(session, filters, caller, page=page, limit=limit)
    return RegistrationPage(data=[registration_out(r) for r in result.items], pagination=pagination_out(result))


@router.get("/registrations/{registration_id}", response_model=RegistrationOut)
async def get_registration(
    registration_id: int,
    session: AsyncSession = Depends(get_session),
    caller: Optional[CallerIdentity] = Depends(get_caller),
):
    registration = await registration_service.get_registration_by_id(session, registration_id, caller)
    return registration_out(registration)


@router.patch("/registrations/{registration_id}", response_model=RegistrationOut)
async def cancel_registration(
    registration_id: int,
    req: CancelRequest,
    session: AsyncSession = Depends(get_session),
    caller: Optional[CallerIdentity] = Depends(get_caller),
):
    registration = await registration_service.cancel_registration(session, registration_id, caller)
    return registration_out(registration)


@router.patch("/registrations/{registration_id}/status", response_model=RegistrationOut)
async def update_registration_status(
    registration_id: int,
    req: StatusUpdate,
    session: AsyncSession = Depends(get_session),
    caller: Optional[CallerIdentity] = Depends(get_caller),
):
    registration = await registration_service.update_registration_status(session, registration_id, req.status, caller)
    return registration_out(registration)


@router.get("/events/{event_id}/registrations", response_model=RegistrationSummaryPage)
async def list_event_registrations(
    event_id: int,
    status_filter: Optional[RegistrationStatus] = Query(None, alias="status"),
    ticket_id: Optional[int] = Query(None, gt=0),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    session: AsyncSession = Depends(get_session),
    caller: Optional[CallerIdentity] = Depends(get_caller),
):
    filters = RegistrationFilters(status=status_filter, ticket_id=ticket_id, search=search)
    result = await registration_service.get_registrations_for_event(
        session, event_id, filters, caller, page=page, limit=limit
    )
    return RegistrationSummaryPage(data=[summary_out(r) for r in result.items], pagination=pagination_out(result))


@router.get("/admin/registrations", response_model=RegistrationSummaryPage)
async def admin_list_registrations(
    event_id: Optional[int] = Query(None, gt=0),
    user_id: Optional[int] = Query(None, gt=0),
    participant_id: Optional[int] = Query(None, gt=0),
    status_filter: Optional[RegistrationStatus] = Query(None, alias="status"),
    ticket_id: Optional[int] = Query(None, gt=0),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    session: AsyncSession = Depends(get_session),
    caller: Optional[CallerIdentity] = Depends(get_caller),
):
    filters = RegistrationFilters(
        event_id=event_id,
        user_id=user_id,
        participant_id=participant_id,
        status=status_filter,
        ticket_id=ticket_id,
        search=search,
    )
    result = await registration_service.get_admin_all_registrations(session, filters, caller, page=page, limit=limit)
    return RegistrationSummaryPage(data=[summary_out(r) for r in result.items], pagination=pagination_out(result))
