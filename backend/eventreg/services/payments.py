# backend/eventreg/services/payments.py
"""Consumer of payment outcomes relayed by the payment webhook handler."""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from eventreg.errors import NotFoundError, ValidationError
from eventreg.models import Payment, PaymentStatus, Purchase, Registration, RegistrationStatus
from eventreg.services import registration as registration_service

logger = logging.getLogger(__name__)


async def apply_payment_signal(
    session: AsyncSession,
    registration_id: int,
    succeeded: bool,
    provider_reference: Optional[str] = None,
    currency: str = "aud",
) -> Registration:
    """
    Record a payment outcome for a paid registration.

    Success confirms a PENDING registration. Failure marks the payment FAILED
    and leaves the registration PENDING so the payer can retry. Signals for a
    payment that already completed are ignored.
    """
    if session.in_transaction():
        await session.rollback()

    async with session.begin():
        res = await session.execute(
            select(Registration)
            .options(selectinload(Registration.purchase).selectinload(Purchase.payment))
            .where(Registration.id == registration_id)
            .execution_options(populate_existing=True)
        )
        registration = res.scalars().first()
        if not registration:
            raise NotFoundError("Registration not found")
        purchase = registration.purchase
        if purchase is None:
            raise ValidationError("Registration has no purchase to pay for.")

        payment = purchase.payment
        if payment is None:
            payment = Payment(
                purchase_id=purchase.id,
                amount=purchase.total_price,
                currency=currency,
                status=PaymentStatus.PENDING,
            )
            session.add(payment)

        if payment.status == PaymentStatus.COMPLETED:
            logger.info("Payment %s already COMPLETED; ignoring signal for registration %s", payment.id, registration_id)
        else:
            if provider_reference and payment.provider_reference is None:
                payment.provider_reference = provider_reference
            if succeeded:
                payment.status = PaymentStatus.COMPLETED
                if registration.status == RegistrationStatus.PENDING:
                    await registration_service.confirm(session, registration.id)
                    logger.info("Registration %s confirmed by payment", registration_id)
                elif registration.status == RegistrationStatus.CANCELLED:
                    logger.warning("Payment succeeded for cancelled registration %s; it stays cancelled", registration_id)
            else:
                payment.status = PaymentStatus.FAILED
                logger.info("Payment failed for registration %s; registration left %s", registration_id, registration.status.value)

    return await registration_service.load_registration_graph(session, registration_id)
