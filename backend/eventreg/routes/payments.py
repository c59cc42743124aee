from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventreg.auth import require_admin
from eventreg.db import get_session
from eventreg.schemas import PaymentSignal, RegistrationOut, registration_out
from eventreg.services.payments import apply_payment_signal


router = APIRouter()


@router.post("/payments/signal", response_model=RegistrationOut)
async def post_payment_signal(req: PaymentSignal, session: AsyncSession = Depends(get_session), _=Depends(require_admin)):
    """Called by the payment webhook relay once the provider reports an outcome."""
    registration = await apply_payment_signal(
        session,
        registration_id=req.registration_id,
        succeeded=req.succeeded,
        provider_reference=req.provider_reference,
        currency=req.currency,
    )
    return registration_out(registration)
