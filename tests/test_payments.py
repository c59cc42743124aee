"""Tests for applying payment outcomes to registrations."""
from decimal import Decimal

import pytest

from eventreg.auth import CallerIdentity, Role
from eventreg.errors import NotFoundError, ValidationError
from eventreg.models import PaymentStatus, RegistrationStatus
from eventreg.services.payments import apply_payment_signal
from eventreg.services.registration import create_registration, update_registration_status
from factories import attendee, line


@pytest.fixture
async def pending_id(session_factory, catalog, paid_event):
    ticket = await catalog.ticket(paid_event, price="75.00")
    async with session_factory() as session:
        result = await create_registration(session, paid_event.id, [line(ticket)], [attendee("ana@example.com")])
    return result.registration_id


async def signal(session_factory, registration_id, succeeded, reference=None):
    async with session_factory() as session:
        return await apply_payment_signal(session, registration_id, succeeded, provider_reference=reference)


async def test_success_confirms_pending_registration(session_factory, pending_id):
    reg = await signal(session_factory, pending_id, True, reference="pi_123")
    assert reg.status == RegistrationStatus.CONFIRMED
    payment = reg.purchase.payment
    assert payment.status == PaymentStatus.COMPLETED
    assert payment.amount == Decimal("75.00")
    assert payment.provider_reference == "pi_123"


async def test_failure_leaves_registration_pending_and_retryable(session_factory, pending_id):
    failed = await signal(session_factory, pending_id, False, reference="pi_1")
    assert failed.status == RegistrationStatus.PENDING
    assert failed.purchase.payment.status == PaymentStatus.FAILED

    retried = await signal(session_factory, pending_id, True)
    assert retried.status == RegistrationStatus.CONFIRMED
    assert retried.purchase.payment.status == PaymentStatus.COMPLETED
    assert retried.purchase.payment.provider_reference == "pi_1"


async def test_completed_payment_ignores_later_signals(session_factory, pending_id):
    await signal(session_factory, pending_id, True)
    reg = await signal(session_factory, pending_id, False)
    assert reg.purchase.payment.status == PaymentStatus.COMPLETED
    assert reg.status == RegistrationStatus.CONFIRMED


async def test_cancelled_registration_is_not_revived(session_factory, pending_id):
    async with session_factory() as session:
        await update_registration_status(
            session, pending_id, RegistrationStatus.CANCELLED, CallerIdentity(user_id=None, role=Role.ADMIN)
        )
    reg = await signal(session_factory, pending_id, True)
    assert reg.status == RegistrationStatus.CANCELLED
    assert reg.purchase.payment.status == PaymentStatus.COMPLETED


async def test_free_registration_has_nothing_to_pay(session_factory, free_event):
    async with session_factory() as session:
        result = await create_registration(session, free_event.id, [], [attendee("ana@example.com")])
    with pytest.raises(ValidationError, match="no purchase"):
        await signal(session_factory, result.registration_id, True)


async def test_unknown_registration(session_factory):
    with pytest.raises(NotFoundError):
        await signal(session_factory, 777, True)
