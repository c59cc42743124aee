# backend/eventreg/services/registration.py
"""Registration engine: create, cancel, status changes and listings.

A registration is written in one transaction: tickets are locked and
re-checked, inventory reserved, and the Registration / Purchase /
PurchaseItem / Attendee / Response rows created together, or none of them.
"""
import logging
import math
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from eventreg.auth import CallerIdentity
from eventreg.errors import (
    CapacityError,
    DuplicateRegistrationError,
    NotFoundError,
    ValidationError,
)
from eventreg.models import (
    Attendee,
    Event,
    EventQuestion,
    EventStatus,
    Participant,
    Purchase,
    PurchaseItem,
    Question,
    Registration,
    RegistrationStatus,
    Response,
    Ticket,
    TicketStatus,
)
from eventreg.services import guard, inventory, participants, questionnaire
from eventreg.services.participants import ParticipantIdentity

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (RegistrationStatus.PENDING, RegistrationStatus.CONFIRMED)
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class TicketRequest:
    ticket_id: int
    quantity: int


@dataclass(frozen=True)
class AttendeeInput:
    identity: ParticipantIdentity
    responses: Sequence[tuple[int, str]] = ()
    is_primary: bool = False
    ticket_id: Optional[int] = None

    @property
    def label(self) -> str:
        return f"participant {self.identity.first_name} {self.identity.last_name}"


@dataclass(frozen=True)
class RegistrationResult:
    message: str
    registration_id: int
    status: RegistrationStatus


@dataclass(frozen=True)
class RegistrationFilters:
    event_id: Optional[int] = None
    user_id: Optional[int] = None
    participant_id: Optional[int] = None
    status: Optional[RegistrationStatus] = None
    ticket_id: Optional[int] = None
    search: Optional[str] = None


@dataclass
class Page:
    items: list = field(default_factory=list)
    total_count: int = 0
    page: int = 1
    limit: int = 10

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit) if self.limit else 0


def parse_status(value) -> RegistrationStatus:
    try:
        return RegistrationStatus(value)
    except ValueError:
        raise ValidationError(
            f"Invalid status value. Must be one of: {', '.join(s.value for s in RegistrationStatus)}"
        )


async def _end_implicit_transaction(session: AsyncSession) -> None:
    # a read issued earlier on this session may have auto-begun a transaction
    if session.in_transaction():
        await session.rollback()


def _merge_ticket_lines(tickets: Sequence[TicketRequest]) -> dict[int, int]:
    requested: dict[int, int] = {}
    for line in tickets:
        if line.quantity <= 0:
            raise ValidationError("Ticket quantity must be at least 1.")
        requested[line.ticket_id] = requested.get(line.ticket_id, 0) + line.quantity
    return requested


def _primary_index(attendees: Sequence[AttendeeInput]) -> int:
    flagged = [i for i, a in enumerate(attendees) if a.is_primary]
    if len(flagged) > 1:
        raise ValidationError("Only one attendee can be marked as the primary registrant.")
    if flagged:
        return flagged[0]
    if len(attendees) == 1:
        return 0
    raise ValidationError("Mark exactly one attendee as the primary registrant.")


def _check_ticket_assignments(attendees: Sequence[AttendeeInput], requested: dict[int, int], is_free: bool) -> None:
    assigned = Counter(a.ticket_id for a in attendees if a.ticket_id is not None)
    if assigned and is_free:
        raise ValidationError("Attendees cannot be assigned tickets for a free event.")
    for ticket_id, count in assigned.items():
        if ticket_id not in requested:
            raise ValidationError(f"Attendee assigned to ticket {ticket_id}, which is not part of this registration.")
        if count > requested[ticket_id]:
            raise ValidationError(
                f"Ticket {ticket_id} is assigned to {count} attendees but only {requested[ticket_id]} requested."
            )


async def _idempotency_key_taken(session: AsyncSession, key: str) -> bool:
    res = await session.execute(select(Registration.id).where(Registration.idempotency_key == key))
    return res.scalar() is not None


async def _active_attendee_count(session: AsyncSession, event_id: int) -> int:
    res = await session.execute(
        select(func.count(Attendee.id))
        .join(Registration, Attendee.registration_id == Registration.id)
        .where(Registration.event_id == event_id, Registration.status.in_(ACTIVE_STATUSES))
    )
    return int(res.scalar_one() or 0)


async def create_registration(
    session: AsyncSession,
    event_id: int,
    tickets: Sequence[TicketRequest],
    attendees: Sequence[AttendeeInput],
    caller: Optional[CallerIdentity] = None,
    idempotency_key: Optional[str] = None,
    now: Optional[datetime] = None,
) -> RegistrationResult:
    if not attendees:
        raise ValidationError("Event ID and participant details are required.")
    requested = _merge_ticket_lines(tickets)
    primary_index = _primary_index(attendees)
    user_id = caller.user_id if caller else None
    now = now or datetime.now(timezone.utc)

    await _end_implicit_transaction(session)

    # Pre-transaction checks: everything that does not have to be race-free.
    async with session.begin():
        if idempotency_key:
            if await _idempotency_key_taken(session, idempotency_key):
                raise DuplicateRegistrationError("Registration with this idempotency key already exists.")

        res = await session.execute(
            select(Event)
            .options(
                selectinload(Event.event_questions)
                .selectinload(EventQuestion.question)
                .selectinload(Question.options)
            )
            .where(Event.id == event_id)
        )
        event = res.scalars().first()
        if not event:
            raise NotFoundError("Event not found")
        if event.status != EventStatus.PUBLISHED:
            raise ValidationError("Event is not currently open for registration.")

        if event.is_free:
            if requested:
                raise ValidationError("Cannot select specific tickets for a free event. The tickets array should be empty.")
            units = len(attendees)
        else:
            if not requested:
                raise ValidationError("Tickets are required for paid events.")
            units = sum(requested.values())
            if units != len(attendees):
                raise ValidationError("Number of participants must match the total quantity of tickets for paid events.")

        taken = await _active_attendee_count(session, event.id)
        if taken + units > event.capacity:
            raise CapacityError(
                f"Event capacity ({event.capacity}) exceeded. Only {max(event.capacity - taken, 0)} spots remaining."
            )

        if requested:
            res = await session.execute(
                select(Ticket).where(Ticket.id.in_(list(requested)), Ticket.event_id == event.id)
            )
            by_id = {t.id: t for t in res.scalars().all()}
            for ticket_id, quantity in requested.items():
                ticket = by_id.get(ticket_id)
                if not ticket:
                    raise NotFoundError(f"Ticket with ID {ticket_id} not found for this event.")
                if ticket.status != TicketStatus.ACTIVE:
                    raise ValidationError(f'Ticket "{ticket.name}" is not active.')
                problem = inventory.sales_window_problem(ticket, now)
                if problem:
                    raise ValidationError(f'Ticket "{ticket.name}" {problem}.')
                if ticket.quantity_sold + quantity > ticket.quantity_total:
                    raise CapacityError(
                        f'Ticket "{ticket.name}" has only {ticket.quantity_total - ticket.quantity_sold} left.'
                    )

        _check_ticket_assignments(attendees, requested, event.is_free)
        for attendee in attendees:
            questionnaire.validate_responses(event.event_questions, attendee.responses, who=attendee.label)

    status = RegistrationStatus.CONFIRMED if event.is_free else RegistrationStatus.PENDING
    try:
        async with session.begin():
            locked = await inventory.lock_tickets(session, requested)
            total = Decimal("0")
            for ticket_id, quantity in requested.items():
                ticket = locked.get(ticket_id)
                if ticket is None:
                    raise NotFoundError(f"Ticket with ID {ticket_id} not found for this event.")
                if ticket.quantity_sold + quantity > ticket.quantity_total:
                    raise CapacityError(
                        f'Ticket "{ticket.name}" quantity became unavailable during registration. '
                        f"Only {ticket.quantity_total - ticket.quantity_sold} left."
                    )
                total += ticket.price * quantity

            seen: dict[str, Participant] = {}
            primary_input = attendees[primary_index]
            primary = await participants.find_or_create(session, primary_input.identity, user_id=user_id, seen=seen)

            registration = Registration(
                event_id=event.id,
                participant_id=primary.id,
                user_id=user_id,
                status=status,
                idempotency_key=idempotency_key,
            )
            session.add(registration)
            await session.flush()

            if not event.is_free:
                purchase = Purchase(registration_id=registration.id, total_price=total)
                session.add(purchase)
                await session.flush()
                for ticket_id, quantity in requested.items():
                    session.add(
                        PurchaseItem(
                            purchase_id=purchase.id,
                            ticket_id=ticket_id,
                            quantity=quantity,
                            unit_price=locked[ticket_id].price,
                        )
                    )
                    await inventory.reserve(session, ticket_id, quantity)

            for index, attendee_input in enumerate(attendees):
                if index == primary_index:
                    participant = primary
                else:
                    participant = await participants.find_or_create(session, attendee_input.identity, seen=seen)
                attendee = Attendee(
                    registration_id=registration.id,
                    participant_id=participant.id,
                    ticket_id=attendee_input.ticket_id,
                )
                session.add(attendee)
                await session.flush()
                for event_question_id, text in attendee_input.responses:
                    session.add(Response(attendee_id=attendee.id, event_question_id=event_question_id, response_text=text))
            await session.flush()
            registration_id = registration.id
    except IntegrityError:
        if idempotency_key:
            # only a lost race on the idempotency key is a duplicate
            await _end_implicit_transaction(session)
            async with session.begin():
                duplicate = await _idempotency_key_taken(session, idempotency_key)
            if duplicate:
                raise DuplicateRegistrationError("Registration with this idempotency key already exists.")
        raise

    logger.info(
        "Registration %s created for event %s: %s attendee(s), status %s",
        registration_id, event.id, len(attendees), status.value,
    )
    message = "Registration confirmed" if event.is_free else "Registration pending payment"
    return RegistrationResult(message=message, registration_id=registration_id, status=status)


def full_graph_options():
    """Loader options for everything a caller needs to render a registration."""
    attendees = selectinload(Registration.attendees)
    purchase = selectinload(Registration.purchase)
    return (
        selectinload(Registration.event),
        selectinload(Registration.participant),
        attendees.selectinload(Attendee.participant),
        attendees.selectinload(Attendee.ticket),
        attendees.selectinload(Attendee.responses)
        .selectinload(Response.event_question)
        .selectinload(EventQuestion.question),
        purchase.selectinload(Purchase.items).selectinload(PurchaseItem.ticket),
        purchase.selectinload(Purchase.payment),
    )


async def _load(session: AsyncSession, registration_id: int) -> Optional[Registration]:
    res = await session.execute(
        select(Registration)
        .options(*full_graph_options())
        .where(Registration.id == registration_id)
        .execution_options(populate_existing=True)
    )
    return res.scalars().first()


async def load_registration_graph(session: AsyncSession, registration_id: int) -> Registration:
    """Load a registration with its full graph, without authorization checks."""
    await _end_implicit_transaction(session)
    async with session.begin():
        registration = await _load(session, registration_id)
    if not registration:
        raise NotFoundError("Registration not found")
    return registration


async def _cancel(session: AsyncSession, registration: Registration) -> bool:
    """
    Move an active registration to CANCELLED and give its tickets back.
    Returns False when it was already cancelled (nothing released).
    """
    if registration.status == RegistrationStatus.CANCELLED:
        return False
    if registration.status not in ACTIVE_STATUSES:
        raise ValidationError(f"Cannot cancel registration with status: {registration.status.value}")

    # conditional update so two concurrent cancels release inventory once
    res = await session.execute(
        update(Registration)
        .where(Registration.id == registration.id, Registration.status.in_(ACTIVE_STATUSES))
        .values(status=RegistrationStatus.CANCELLED)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        return False

    if not registration.event.is_free and registration.purchase is not None:
        for item in registration.purchase.items:
            await inventory.release(session, item.ticket_id, item.quantity, registration.id)
    logger.info("Registration %s cancelled", registration.id)
    return True


async def confirm(session: AsyncSession, registration_id: int) -> bool:
    """PENDING -> CONFIRMED inside the caller's transaction; False if it was not pending."""
    res = await session.execute(
        update(Registration)
        .where(Registration.id == registration_id, Registration.status == RegistrationStatus.PENDING)
        .values(status=RegistrationStatus.CONFIRMED)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


async def cancel_registration(
    session: AsyncSession, registration_id: int, caller: Optional[CallerIdentity]
) -> Registration:
    await _end_implicit_transaction(session)
    async with session.begin():
        registration = await _load(session, registration_id)
        if not registration:
            raise NotFoundError("Registration not found")
        guard.ensure_can_cancel(caller, registration)
        await _cancel(session, registration)
    return await load_registration_graph(session, registration_id)


async def update_registration_status(
    session: AsyncSession,
    registration_id: int,
    new_status: RegistrationStatus,
    caller: Optional[CallerIdentity],
) -> Registration:
    new_status = parse_status(new_status)
    await _end_implicit_transaction(session)
    async with session.begin():
        registration = await _load(session, registration_id)
        if not registration:
            raise NotFoundError("Registration not found.")
        guard.ensure_can_update_status(caller, registration)

        current = registration.status
        if current != new_status:
            if new_status == RegistrationStatus.PENDING:
                raise ValidationError("Registrations can only be moved to CONFIRMED or CANCELLED.")
            if current == RegistrationStatus.CANCELLED:
                raise ValidationError("Cannot change status of a cancelled registration.")
            if new_status == RegistrationStatus.CANCELLED:
                await _cancel(session, registration)
            elif current == RegistrationStatus.PENDING:
                if not await confirm(session, registration.id):
                    raise ValidationError("Registration is no longer pending.")
                logger.info("Registration %s confirmed by override", registration.id)
            else:
                raise ValidationError(f"Cannot move registration from {current.value} to {new_status.value}.")
    return await load_registration_graph(session, registration_id)


async def get_registration_by_id(
    session: AsyncSession, registration_id: int, caller: Optional[CallerIdentity]
) -> Registration:
    registration = await load_registration_graph(session, registration_id)
    guard.ensure_can_view(caller, registration)
    return registration


def _filter_clauses(filters: RegistrationFilters) -> list:
    clauses = []
    if filters.event_id is not None:
        clauses.append(Registration.event_id == filters.event_id)
    if filters.user_id is not None:
        clauses.append(Registration.user_id == filters.user_id)
    if filters.participant_id is not None:
        clauses.append(Registration.participant_id == filters.participant_id)
    if filters.status is not None:
        clauses.append(Registration.status == parse_status(filters.status))
    if filters.ticket_id is not None:
        clauses.append(Registration.purchase.has(Purchase.items.any(PurchaseItem.ticket_id == filters.ticket_id)))
    if filters.search and filters.search.strip():
        term = f"%{filters.search.strip().lower()}%"
        matches = or_(
            func.lower(Participant.first_name).like(term),
            func.lower(Participant.last_name).like(term),
            func.lower(Participant.email).like(term),
        )
        clauses.append(
            or_(
                Registration.participant.has(matches),
                Registration.attendees.any(Attendee.participant.has(matches)),
            )
        )
    return clauses


def _check_paging(page: int, limit: int) -> None:
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")


async def _page(session: AsyncSession, filters: RegistrationFilters, page: int, limit: int) -> Page:
    clauses = _filter_clauses(filters)
    total = await session.execute(select(func.count(Registration.id)).where(*clauses))
    res = await session.execute(
        select(Registration)
        .options(*full_graph_options())
        .where(*clauses)
        .order_by(Registration.created_at.desc(), Registration.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return Page(items=list(res.scalars().all()), total_count=int(total.scalar_one() or 0), page=page, limit=limit)


async def get_registrations(
    session: AsyncSession,
    filters: RegistrationFilters,
    caller: Optional[CallerIdentity],
    page: int = 1,
    limit: int = 10,
) -> Page:
    """List registrations visible to the caller (admins: all; organizers: their event; others: their own)."""
    _check_paging(page, limit)
    await _end_implicit_transaction(session)
    async with session.begin():
        event = None
        if filters.event_id is not None:
            event = await session.get(Event, filters.event_id)
            if not event:
                raise NotFoundError("Event not found")
        scoped_user = guard.scope_listing(caller, event, filters.user_id)
        return await _page(session, replace(filters, user_id=scoped_user), page, limit)


async def get_registrations_for_event(
    session: AsyncSession,
    event_id: int,
    filters: RegistrationFilters,
    caller: Optional[CallerIdentity],
    page: int = 1,
    limit: int = 10,
) -> Page:
    _check_paging(page, limit)
    await _end_implicit_transaction(session)
    async with session.begin():
        event = await session.get(Event, event_id)
        if not event:
            raise NotFoundError("Event not found.")
        guard.ensure_can_list_event(caller, event)
        return await _page(session, replace(filters, event_id=event_id), page, limit)


async def get_admin_all_registrations(
    session: AsyncSession,
    filters: RegistrationFilters,
    caller: Optional[CallerIdentity],
    page: int = 1,
    limit: int = 10,
) -> Page:
    guard.ensure_admin(caller)
    _check_paging(page, limit)
    await _end_implicit_transaction(session)
    async with session.begin():
        return await _page(session, filters, page, limit)
