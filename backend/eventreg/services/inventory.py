# backend/eventreg/services/inventory.py
"""Ticket inventory ledger.

`reserve` and `release` are the only code paths that write
`Ticket.quantity_sold`. Both run inside the caller's transaction.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from eventreg.errors import CapacityError, NotFoundError
from eventreg.models import (
    EventStatus,
    Purchase,
    PurchaseItem,
    Registration,
    RegistrationStatus,
    Ticket,
    TicketStatus,
)
from eventreg.redis_tools import record_inventory_drift

logger = logging.getLogger(__name__)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def sales_window_problem(ticket: Ticket, now: datetime) -> Optional[str]:
    """Return why the ticket is outside its sales window, or None."""
    sales_start = as_utc(ticket.sales_start)
    sales_end = as_utc(ticket.sales_end)
    if sales_start is not None and now < sales_start:
        return "sales have not started yet"
    if sales_end is not None and now > sales_end:
        return "sales have ended"
    return None


async def lock_tickets(session: AsyncSession, ticket_ids: Iterable[int]) -> dict[int, Ticket]:
    """
    Re-read tickets with a row lock, in id order so concurrent registrations
    touching the same tickets always lock them in the same sequence.
    """
    ids = sorted(set(ticket_ids))
    if not ids:
        return {}
    res = await session.execute(
        select(Ticket)
        .where(Ticket.id.in_(ids))
        .order_by(Ticket.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return {t.id: t for t in res.scalars().all()}


async def reserve(session: AsyncSession, ticket_id: int, quantity: int) -> None:
    """
    Add `quantity` to the ticket's sold count, or raise CapacityError if that
    would push it past quantity_total. Must run inside the registration
    transaction, after lock_tickets.
    """
    if quantity <= 0:
        raise ValueError("reserve quantity must be > 0")
    result = await session.execute(
        update(Ticket)
        .where(Ticket.id == ticket_id, Ticket.quantity_sold + quantity <= Ticket.quantity_total)
        .values(quantity_sold=Ticket.quantity_sold + quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise CapacityError(f"Ticket {ticket_id} does not have {quantity} unit(s) left.")


async def release(session: AsyncSession, ticket_id: int, quantity: int, registration_id: int) -> bool:
    """
    Give `quantity` units of a ticket back, never going below zero.

    Runs in its own SAVEPOINT; a failure is logged, queued for the inventory
    audit and reported as False instead of raised, so the surrounding
    cancellation still commits.
    """
    try:
        async with session.begin_nested():
            res = await session.execute(
                select(Ticket.quantity_sold).where(Ticket.id == ticket_id).with_for_update()
            )
            current = res.scalar_one_or_none()
            if current is None:
                raise NotFoundError(f"Ticket {ticket_id} not found")
            if current < quantity:
                logger.warning(
                    "Clamping release of ticket %s at zero: sold=%s release=%s registration=%s",
                    ticket_id, current, quantity, registration_id,
                )
            await session.execute(
                update(Ticket)
                .where(Ticket.id == ticket_id)
                .values(
                    quantity_sold=case(
                        (Ticket.quantity_sold >= quantity, Ticket.quantity_sold - quantity),
                        else_=0,
                    )
                )
                .execution_options(synchronize_session=False)
            )
        return True
    except Exception:
        logger.exception(
            "Failed to release %s unit(s) of ticket %s for registration %s",
            quantity, ticket_id, registration_id,
        )
        await record_inventory_drift(ticket_id, quantity, registration_id)
        return False


@dataclass(frozen=True)
class Availability:
    available: bool
    available_quantity: int
    reason: Optional[str] = None


async def check_availability(session: AsyncSession, ticket_id: int, now: Optional[datetime] = None) -> Availability:
    now = now or datetime.now(timezone.utc)
    res = await session.execute(
        select(Ticket).options(joinedload(Ticket.event)).where(Ticket.id == ticket_id)
    )
    ticket = res.scalars().first()
    if not ticket:
        raise NotFoundError("Ticket not found")

    if ticket.status != TicketStatus.ACTIVE:
        return Availability(False, 0, "Ticket is no longer available")
    if ticket.event.status != EventStatus.PUBLISHED:
        return Availability(False, 0, "Event is not open for registration")
    problem = sales_window_problem(ticket, now)
    if problem:
        return Availability(False, 0, f"Ticket {problem}")
    remaining = ticket.quantity_total - ticket.quantity_sold
    if remaining <= 0:
        return Availability(False, 0, "Sold out")
    return Availability(True, remaining)


@dataclass(frozen=True)
class InventoryDiscrepancy:
    ticket_id: int
    quantity_sold: int
    expected: int


async def audit_inventory(session: AsyncSession, ticket_ids: Optional[Iterable[int]] = None) -> list[InventoryDiscrepancy]:
    """
    Compare each ticket's sold count with the purchase items of its
    non-cancelled registrations. Read-only: nothing is corrected here.
    """
    expected = (
        select(
            PurchaseItem.ticket_id.label("ticket_id"),
            func.sum(PurchaseItem.quantity).label("expected"),
        )
        .join(Purchase, PurchaseItem.purchase_id == Purchase.id)
        .join(Registration, Purchase.registration_id == Registration.id)
        .where(Registration.status != RegistrationStatus.CANCELLED)
        .group_by(PurchaseItem.ticket_id)
        .subquery()
    )
    q = (
        select(Ticket.id, Ticket.quantity_sold, func.coalesce(expected.c.expected, 0))
        .outerjoin(expected, expected.c.ticket_id == Ticket.id)
        .order_by(Ticket.id)
    )
    if ticket_ids is not None:
        q = q.where(Ticket.id.in_(list(ticket_ids)))
    res = await session.execute(q)
    return [
        InventoryDiscrepancy(ticket_id=tid, quantity_sold=sold, expected=int(exp))
        for (tid, sold, exp) in res.all()
        if sold != int(exp)
    ]
